"""File-backed certificate inventory.

This module loads X.509 certificates from PEM, DER and PKCS12 files and turns
them into ``CertificateDescriptor`` objects for the selector. A store is a
named directory; the default store name mirrors the Windows personal store.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import ExtendedKeyUsageOID

from fedfarm.models.certificate import CertificateDescriptor
from fedfarm.utils.exceptions import CertificateLoadError, NotFoundError

logger = logging.getLogger(__name__)

PEM_SUFFIXES = (".pem", ".crt", ".cer")
DER_SUFFIXES = (".der",)
PKCS12_SUFFIXES = (".pfx", ".p12")

# Enhanced key usage OIDs rendered with their Windows display names
EKU_NAMES: Dict[x509.ObjectIdentifier, str] = {
    ExtendedKeyUsageOID.SERVER_AUTH: "Server Authentication",
    ExtendedKeyUsageOID.CLIENT_AUTH: "Client Authentication",
    ExtendedKeyUsageOID.CODE_SIGNING: "Code Signing",
    ExtendedKeyUsageOID.EMAIL_PROTECTION: "Secure Email",
    ExtendedKeyUsageOID.TIME_STAMPING: "Time Stamping",
    ExtendedKeyUsageOID.OCSP_SIGNING: "OCSP Signing",
}

KEY_USAGE_NAMES = (
    ("digital_signature", "DigitalSignature"),
    ("content_commitment", "NonRepudiation"),
    ("key_encipherment", "KeyEncipherment"),
    ("data_encipherment", "DataEncipherment"),
    ("key_agreement", "KeyAgreement"),
    ("key_cert_sign", "KeyCertSign"),
    ("crl_sign", "CrlSign"),
)


def compute_thumbprint(cert: x509.Certificate) -> str:
    """SHA-1 fingerprint of the DER encoding, upper-case hex."""
    return cert.fingerprint(hashes.SHA1()).hex().upper()


def _dns_names(cert: x509.Certificate) -> List[str]:
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    return san.value.get_values_for_type(x509.DNSName)


def _key_usage(cert: x509.Certificate) -> List[str]:
    try:
        usage = cert.extensions.get_extension_for_class(x509.KeyUsage).value
    except x509.ExtensionNotFound:
        return []
    names = [name for attr, name in KEY_USAGE_NAMES if getattr(usage, attr)]
    # encipher_only/decipher_only are only defined when key_agreement is set
    if usage.key_agreement:
        if usage.encipher_only:
            names.append("EncipherOnly")
        if usage.decipher_only:
            names.append("DecipherOnly")
    return names


def _enhanced_key_usage(cert: x509.Certificate) -> List[str]:
    try:
        eku = cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
    except x509.ExtensionNotFound:
        return []
    return [EKU_NAMES.get(oid, oid.dotted_string) for oid in eku]


def describe_certificate(
    cert: x509.Certificate,
    friendly_name: Optional[str] = None,
    store: Optional[str] = None,
) -> CertificateDescriptor:
    """Extract the selection attributes of an X.509 certificate.

    Args:
        cert: X.509 certificate
        friendly_name: Friendly name, when the container carries one
        store: Store name recorded on the descriptor

    Returns:
        CertificateDescriptor

    Example:
        >>> descriptor = describe_certificate(cert, store="My")
        >>> descriptor.subject
        'CN=sts.contoso.com'
    """
    return CertificateDescriptor(
        thumbprint=compute_thumbprint(cert),
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        friendly_name=friendly_name,
        dns_names=frozenset(_dns_names(cert)),
        key_usage=frozenset(_key_usage(cert)),
        enhanced_key_usage=frozenset(_enhanced_key_usage(cert)),
        store=store,
    )


def load_certificate_file(
    cert_path: Path,
    password: Optional[bytes] = None,
    store: Optional[str] = None,
) -> List[CertificateDescriptor]:
    """Load every certificate contained in a file.

    Format is detected by file extension: PEM (.pem, .crt, .cer, may hold
    several certificates; DER content is accepted too), DER (.der) or
    PKCS12 (.pfx, .p12, the friendly name is taken from the bundle).

    Args:
        cert_path: Path to the certificate file
        password: Password for PKCS12 bundles
        store: Store name recorded on the descriptors

    Returns:
        Descriptors of the certificates in the file

    Raises:
        CertificateLoadError: If the file is missing, unreadable or unsupported
    """
    if not cert_path.exists():
        raise CertificateLoadError(
            f"Certificate file not found: {cert_path}. "
            f"Ensure the file exists and path is correct."
        )

    suffix = cert_path.suffix.lower()
    try:
        data = cert_path.read_bytes()
        if suffix in PEM_SUFFIXES and b"-----BEGIN" in data:
            return [
                describe_certificate(cert, store=store)
                for cert in x509.load_pem_x509_certificates(data)
            ]
        # .cer/.crt exported from Windows are usually DER
        if suffix in DER_SUFFIXES + PEM_SUFFIXES:
            return [describe_certificate(x509.load_der_x509_certificate(data), store=store)]
        if suffix in PKCS12_SUFFIXES:
            bundle = pkcs12.load_pkcs12(data, password)
            if bundle.cert is None:
                raise CertificateLoadError(f"No certificate found in PKCS12 file: {cert_path}")
            friendly = bundle.cert.friendly_name
            return [
                describe_certificate(
                    bundle.cert.certificate,
                    friendly_name=friendly.decode("utf-8") if friendly else None,
                    store=store,
                )
            ]
    except CertificateLoadError:
        raise
    except (ValueError, TypeError, OSError) as e:
        raise CertificateLoadError(
            f"Failed to load certificate from {cert_path}: {e}. "
            f"Ensure the file format matches its extension and the password is correct."
        ) from e

    raise CertificateLoadError(
        f"Unsupported certificate format: {suffix}. "
        f"Supported formats: {', '.join(PEM_SUFFIXES + DER_SUFFIXES + PKCS12_SUFFIXES)}"
    )


class CertificateStore:
    """Named certificate stores backed by directories.

    Every listing re-reads the directory; nothing is cached.

    Attributes:
        stores: Store name to directory mapping
        password_env_var: Environment variable holding the PKCS12 password

    Example:
        >>> store = CertificateStore({"My": Path("certs/my")})
        >>> [c.subject for c in store.list_certificates("My")]
        ['CN=sts.contoso.com']
    """

    def __init__(
        self,
        stores: Mapping[str, Path],
        password_env_var: Optional[str] = None,
    ) -> None:
        self.stores = {name: Path(path) for name, path in stores.items()}
        self.password_env_var = password_env_var

    def _password(self) -> Optional[bytes]:
        if not self.password_env_var:
            return None
        value = os.getenv(self.password_env_var)
        return value.encode("utf-8") if value else None

    def list_certificates(self, store: str) -> List[CertificateDescriptor]:
        """List the certificates of a store.

        Files that cannot be parsed as certificates (e.g. private keys kept
        next to them) are skipped with a warning.

        Args:
            store: Store name

        Returns:
            Certificates found in the store directory

        Raises:
            NotFoundError: If the store is not configured
        """
        directory = self.stores.get(store)
        if directory is None:
            raise NotFoundError(
                f"Certificate store '{store}' is not configured. "
                f"Configured stores: {', '.join(sorted(self.stores)) or 'none'}"
            )
        if not directory.is_dir():
            logger.warning(f"Certificate store directory does not exist: {directory}")
            return []

        password = self._password()
        inventory: List[CertificateDescriptor] = []
        for path in sorted(directory.iterdir()):
            if path.suffix.lower() not in PEM_SUFFIXES + DER_SUFFIXES + PKCS12_SUFFIXES:
                continue
            try:
                inventory.extend(load_certificate_file(path, password=password, store=store))
            except CertificateLoadError as e:
                logger.warning(f"Skipping {path.name}: {e}")

        logger.debug(f"Loaded {len(inventory)} certificate(s) from store '{store}'")
        return inventory

    def find_by_thumbprint(self, thumbprint: str) -> CertificateDescriptor:
        """Look a thumbprint up across every configured store.

        Raises:
            NotFoundError: If no store holds the certificate
        """
        for name in sorted(self.stores):
            for cert in self.list_certificates(name):
                if cert.thumbprint == thumbprint:
                    return cert
        raise NotFoundError(f"Certificate {thumbprint} not found in any configured store")
