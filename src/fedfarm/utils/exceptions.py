"""Custom exception classes for fedfarm.

All exceptions inherit from FedFarmError to allow catching all custom exceptions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests


class FedFarmError(Exception):
    """Base exception for all fedfarm custom exceptions."""

    pass


class ConfigurationError(FedFarmError):
    """Raised when configuration or desired-state input is invalid.

    Examples:
        - Neither a service credential nor a gMSA identifier supplied
        - Neither a certificate thumbprint nor a subject supplied
        - Malformed configuration file or desired-state document
    """

    pass


class ProviderError(FedFarmError):
    """Base exception for failures reported by a provider adapter."""

    pass


class NotFoundError(ProviderError):
    """Raised when the administrative surface has no matching resource.

    Not a failure for Get and Test, which translate it into an absent
    resource state.
    """

    pass


class ProviderUnavailableError(ProviderError):
    """Raised when the administrative surface cannot be reached.

    Examples:
        - Connection refused or timed out
        - Unexpected 5xx response from the administrative gateway
    """

    pass


class ConflictError(ProviderError):
    """Raised when a create or update collides with existing state.

    Examples:
        - Create attempted against an already-present resource
        - Update attempted against a resource whose key no longer matches
    """

    pass


class CertificateError(FedFarmError):
    """Base exception for certificate handling errors."""

    pass


class CertificateLoadError(CertificateError):
    """Raised when a certificate file cannot be read or parsed.

    Examples:
        - Certificate file not found
        - Invalid certificate format
        - Incorrect password for PKCS12 bundle
    """

    pass


class CertificateResolutionError(CertificateError):
    """Raised when a certificate reference does not resolve to a usable certificate.

    Examples:
        - No certificate in the store matches the requested subject
        - Thumbprint unknown to the administrative surface
    """

    pass


class ErrorCategory(Enum):
    """Error categorization for handling strategy.

    The reconciliation engine never retries. Callers that wrap Get/Test/Set
    in their own retry loop use this to decide what to do.

    Attributes:
        TRANSIENT: Retry with backoff (timeouts, provider unavailable)
        PERMANENT: Do not retry, continue with other resources (conflicts, not found)
        CRITICAL: Halt the run (configuration and certificate errors, TLS failures)

    Example:
        >>> category = categorize_error(ProviderUnavailableError("gateway down"))
        >>> category == ErrorCategory.TRANSIENT
        True
    """

    TRANSIENT = "TRANSIENT"
    PERMANENT = "PERMANENT"
    CRITICAL = "CRITICAL"


@dataclass
class ErrorInfo:
    """Structured error information for actionable error handling.

    Attributes:
        category: Error category (TRANSIENT, PERMANENT, CRITICAL)
        error_type: Exception class name (e.g., "ConflictError")
        message: User-friendly error message
        remediation: Actionable guidance for resolving the error
        is_retryable: Whether the error should trigger retry logic
        technical_details: Optional technical details for debugging
        resource: Optional resource identifier the error relates to
    """

    category: ErrorCategory
    error_type: str
    message: str
    remediation: str
    is_retryable: bool
    technical_details: Optional[str] = None
    resource: Optional[str] = None


def categorize_error(exception: Exception) -> ErrorCategory:
    """Categorize exception for error handling strategy.

    Args:
        exception: The exception to categorize

    Returns:
        ErrorCategory indicating handling strategy

    Example:
        >>> categorize_error(ConfigurationError("no certificate reference"))
        <ErrorCategory.CRITICAL: 'CRITICAL'>
        >>> categorize_error(ConflictError("already exists"))
        <ErrorCategory.PERMANENT: 'PERMANENT'>
    """
    if isinstance(exception, (ConfigurationError, CertificateError)):
        return ErrorCategory.CRITICAL

    if isinstance(exception, requests.exceptions.SSLError):
        return ErrorCategory.CRITICAL

    if isinstance(exception, (ProviderUnavailableError, requests.Timeout, requests.ConnectionError)):
        return ErrorCategory.TRANSIENT

    if isinstance(exception, requests.HTTPError):
        if hasattr(exception, 'response') and exception.response is not None:
            if 500 <= exception.response.status_code < 600:
                return ErrorCategory.TRANSIENT

    return ErrorCategory.PERMANENT


def create_error_info(
    exception: Exception,
    resource: Optional[str] = None,
) -> ErrorInfo:
    """Create structured error information from exception.

    Args:
        exception: Exception that occurred
        resource: Optional resource identifier, e.g. "RelyingPartyTrust[name=Portal]"

    Returns:
        ErrorInfo with categorization and remediation guidance
    """
    category = categorize_error(exception)

    technical_details = None
    if exception.__cause__ is not None:
        technical_details = f"Caused by: {type(exception.__cause__).__name__}: {exception.__cause__}"

    return ErrorInfo(
        category=category,
        error_type=type(exception).__name__,
        message=str(exception),
        remediation=_generate_remediation(exception, category),
        is_retryable=category == ErrorCategory.TRANSIENT,
        technical_details=technical_details,
        resource=resource,
    )


def _generate_remediation(exception: Exception, category: ErrorCategory) -> str:
    """Generate actionable remediation message for an error.

    Args:
        exception: Exception that occurred
        category: Error category

    Returns:
        Actionable remediation message
    """
    if isinstance(exception, CertificateResolutionError):
        return (
            "Certificate reference did not resolve. Check the thumbprint or subject "
            "against the certificate store, and that a matching certificate is "
            "within its validity window."
        )

    if isinstance(exception, CertificateLoadError):
        return (
            "Certificate file could not be loaded. Check the file format "
            "(.pem, .der, .pfx/.p12) and the PKCS12 password environment variable."
        )

    if isinstance(exception, ConfigurationError):
        return (
            "Configuration error. Check the desired-state document and config.json "
            "for missing or mutually exclusive values."
        )

    if isinstance(exception, requests.exceptions.SSLError):
        return (
            "TLS validation failed against the administrative gateway. "
            "Set provider.verify_tls=false in config.json for lab environments only."
        )

    if isinstance(exception, ConflictError):
        return (
            "The administrative surface already holds conflicting state. "
            "Run 'fedfarm get' to inspect the current resource before retrying."
        )

    if isinstance(exception, NotFoundError):
        return (
            "Resource not found. If this is a SAML endpoint, make sure the parent "
            "relying party trust is reconciled first."
        )

    if category == ErrorCategory.TRANSIENT:
        return (
            "Administrative surface unavailable. Check: 1) Network connectivity, "
            "2) provider.base_url in config.json, 3) Timeouts, 4) Gateway is running."
        )

    return "Review error message and check logs/fedfarm.log for complete details."
