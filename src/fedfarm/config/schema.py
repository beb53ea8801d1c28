"""Configuration schema models using pydantic.

This module defines the configuration structure and validation rules using
pydantic. All configuration values are validated according to the schema
defined here.
"""

from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from fedfarm.logging_audit.logger import OPERATION_LOGGERS, VALID_LEVELS


def _check_level(value: str) -> str:
    if value.upper() not in VALID_LEVELS:
        raise ValueError(
            f"Invalid log level: {value}. Must be one of: {', '.join(VALID_LEVELS)}"
        )
    return value.upper()


class ProviderConfig(BaseModel):
    """Configuration for the REST administrative surface.

    Attributes:
        base_url: Base URL of the administrative API, e.g. https://adfs01/admin/api
        verify_tls: Whether to verify TLS certificates
        timeout_connect: Connection timeout in seconds
        timeout_read: Read timeout in seconds
        max_retries: Retry attempts for idempotent requests
        backoff_factor: Exponential backoff factor for retries
    """

    base_url: str = Field(
        default="http://localhost:8443/adfs/admin",
        description="Administrative API base URL",
    )
    verify_tls: bool = True
    timeout_connect: int = Field(default=10, ge=1, description="Connection timeout in seconds")
    timeout_read: int = Field(default=30, ge=1, description="Read timeout in seconds")
    max_retries: int = Field(default=3, ge=0, description="Maximum retry attempts")
    backoff_factor: float = Field(default=1.0, ge=0.0, description="Exponential backoff factor")

    @field_validator("base_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Require an http(s) URL and strip any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URL: {v}. Must start with http:// or https://")
        return v.rstrip("/")


class CertificatesConfig(BaseModel):
    """Configuration for file-backed certificate stores.

    Attributes:
        stores: Store name -> directory holding PEM/DER/PKCS12 files
        default_store: Store searched when resolving certificate subjects
        pkcs12_password_env_var: Environment variable holding the PKCS12 password
    """

    stores: Dict[str, Path] = Field(default_factory=lambda: {"My": Path("certs/my")})
    default_store: str = "My"
    pkcs12_password_env_var: Optional[str] = Field(
        default="FEDFARM_PKCS12_PASSWORD",
        description="Environment variable for PKCS12 password",
    )

    @model_validator(mode="after")
    def validate_default_store(self) -> "CertificatesConfig":
        """The default store must be one of the configured stores."""
        if self.stores and self.default_store not in self.stores:
            raise ValueError(
                f"default_store '{self.default_store}' is not a configured store. "
                f"Configured: {', '.join(sorted(self.stores))}"
            )
        return self


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        redact_secrets: Whether to mask passwords, secrets and tokens
        operation_levels: Per-operation levels (engine, provider, certificates)
    """

    level: str = Field(default="INFO", description="Log level")
    log_file: Path = Field(default=Path("logs/fedfarm.log"), description="Log file path")
    redact_secrets: bool = True
    operation_levels: Dict[str, str] = Field(default_factory=dict)

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return _check_level(v)

    @field_validator("operation_levels")
    @classmethod
    def validate_operation_levels(cls, v: Dict[str, str]) -> Dict[str, str]:
        for operation in v:
            if operation not in OPERATION_LOGGERS:
                raise ValueError(
                    f"Unknown operation: {operation}. "
                    f"Must be one of: {', '.join(OPERATION_LOGGERS)}"
                )
        return {operation: _check_level(level) for operation, level in v.items()}


class Config(BaseModel):
    """Root configuration model.

    Example:
        >>> config = Config(provider=ProviderConfig(base_url="https://adfs01/admin"))
        >>> config.provider.timeout_read
        30
    """

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    certificates: CertificatesConfig = Field(default_factory=CertificatesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
