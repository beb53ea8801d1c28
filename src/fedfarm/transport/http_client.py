"""HTTP session factory for the REST provider.

Sessions carry a urllib3 ``Retry`` policy limited to idempotent methods, so
a create (POST) or partial update (PATCH) is never replayed behind the
caller's back.
"""

import logging
from typing import Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from fedfarm.config.schema import ProviderConfig

logger = logging.getLogger(__name__)

IDEMPOTENT_METHODS = frozenset({"HEAD", "GET", "PUT", "DELETE", "OPTIONS"})
RETRY_STATUS_CODES = (429, 502, 503, 504)
DEFAULT_POOL_SIZE = 4


def build_retry(config: ProviderConfig) -> Retry:
    """Retry policy for idempotent requests.

    ``raise_on_status=False`` hands the final response back so the provider
    can map its status code instead of seeing a urllib3 ``MaxRetryError``.
    """
    return Retry(
        total=config.max_retries,
        backoff_factor=config.backoff_factor,
        status_forcelist=RETRY_STATUS_CODES,
        allowed_methods=IDEMPOTENT_METHODS,
        raise_on_status=False,
    )


def build_session(config: ProviderConfig, pool_size: int = DEFAULT_POOL_SIZE) -> requests.Session:
    """Create a session configured for the administrative API.

    Args:
        config: Provider configuration
        pool_size: Connection pool size per host

    Returns:
        Configured requests.Session. Caller is responsible for closing.

    Example:
        >>> session = build_session(ProviderConfig(base_url="https://adfs01/admin"))
        >>> try:
        ...     response = session.get("https://adfs01/admin/RelyingPartyTrust/Portal")
        ... finally:
        ...     session.close()
    """
    adapter = HTTPAdapter(
        pool_connections=pool_size,
        pool_maxsize=pool_size,
        max_retries=build_retry(config),
    )
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = config.verify_tls
    session.headers.update({"Accept": "application/json"})

    if not config.verify_tls:
        logger.warning(
            f"TLS verification disabled for {config.base_url}. "
            f"Only use this against test environments."
        )
    logger.debug(
        "Created HTTP session for %s with max_retries=%d, backoff_factor=%.2f",
        config.base_url,
        config.max_retries,
        config.backoff_factor,
    )
    return session


def request_timeout(config: ProviderConfig) -> Tuple[int, int]:
    """(connect, read) timeout tuple for requests."""
    return (config.timeout_connect, config.timeout_read)
