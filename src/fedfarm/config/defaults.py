"""Default configuration values.

Used when no configuration file is present.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "provider": {
        "base_url": "http://localhost:8443/adfs/admin",
        "verify_tls": True,
        "timeout_connect": 10,
        "timeout_read": 30,
        "max_retries": 3,
        "backoff_factor": 1.0,
    },
    "certificates": {
        "stores": {"My": "certs/my"},
        "default_store": "My",
        "pkcs12_password_env_var": "FEDFARM_PKCS12_PASSWORD",
    },
    "logging": {
        "level": "INFO",
        "log_file": "logs/fedfarm.log",
        # Credentials pass through debug logs; mask them unless told otherwise
        "redact_secrets": True,
        "operation_levels": {},
    },
}

DEFAULT_CONFIG_PATH = "config/config.json"
