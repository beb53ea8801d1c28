"""Resolve certificate references (thumbprint or subject) to a thumbprint."""

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from fedfarm.certificates.selector import select_certificates
from fedfarm.models.certificate import CertificateCriteria, CertificateDescriptor
from fedfarm.utils.exceptions import (
    CertificateResolutionError,
    ConfigurationError,
    NotFoundError,
)

if TYPE_CHECKING:
    from fedfarm.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

DEFAULT_STORE = "My"


class CertificateResolver:
    """Resolves certificate references against a provider's inventory.

    Attributes:
        provider: Provider adapter supplying the certificate inventory
        store: Store searched for subject references

    Example:
        >>> resolver = CertificateResolver(provider, store="My")
        >>> resolver.resolve(subject="CN=sts.contoso.com")
        'A1B2C3...'
    """

    def __init__(self, provider: "ProviderAdapter", store: str = DEFAULT_STORE) -> None:
        self.provider = provider
        self.store = store

    def find(
        self,
        thumbprint: Optional[str] = None,
        subject: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CertificateDescriptor:
        """Find the certificate a reference points at.

        A thumbprint must be known to the provider and the certificate must
        be within its validity window. A subject selects the valid
        certificate with that exact subject that expires last.

        Args:
            thumbprint: Certificate thumbprint
            subject: Certificate subject DN
            now: Reference time for the validity check

        Returns:
            The referenced certificate

        Raises:
            ConfigurationError: If neither reference is supplied
            CertificateResolutionError: If the reference does not resolve
        """
        if thumbprint:
            try:
                cert = self.provider.resolve_certificate(thumbprint)
            except NotFoundError as e:
                raise CertificateResolutionError(
                    f"Certificate with thumbprint {thumbprint} not found. "
                    f"Fix: Import the certificate or correct the thumbprint."
                ) from e
            if not cert.is_valid_at(now or datetime.now(timezone.utc)):
                raise CertificateResolutionError(
                    f"Certificate {thumbprint} ({cert.subject}) is outside its validity "
                    f"window {cert.not_before:%Y-%m-%d} to {cert.not_after:%Y-%m-%d}. "
                    f"Fix: Renew the certificate and reference the new thumbprint."
                )
            return cert

        if subject:
            inventory = self.provider.list_certificates(self.store)
            matches = select_certificates(inventory, CertificateCriteria(subject=subject), now)
            if not matches:
                raise CertificateResolutionError(
                    f"No valid certificate with subject '{subject}' found in store "
                    f"'{self.store}'. Fix: Import a certificate for this subject or "
                    f"renew the expired one."
                )
            if len(matches) > 1:
                logger.info(
                    f"{len(matches)} certificates match subject '{subject}'; "
                    f"using {matches[0].thumbprint} (expires "
                    f"{matches[0].not_after.strftime('%Y-%m-%d')})"
                )
            return matches[0]

        raise ConfigurationError(
            "A certificate reference is required. "
            "Fix: Supply either a certificate thumbprint or a certificate subject."
        )

    def resolve(
        self,
        thumbprint: Optional[str] = None,
        subject: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Resolve a reference to a thumbprint. See :meth:`find`."""
        return self.find(thumbprint=thumbprint, subject=subject, now=now).thumbprint
