"""
Shared pytest configuration and fixtures.

This module provides fixtures used across the unit and integration suites:
certificate descriptors, real X.509 files generated with ``cryptography``,
and an engine wired to the in-memory provider.
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from fedfarm.certificates.resolver import CertificateResolver
from fedfarm.logging_audit import logger as logger_module
from fedfarm.models.certificate import CertificateDescriptor
from fedfarm.providers.memory import InMemoryProvider
from fedfarm.reconcile.engine import ReconciliationEngine

NOW = datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def project_root() -> Path:
    """
    Return the project root directory.

    Returns:
        Path: Absolute path to the project root directory.
    """
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def clear_fedfarm_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep FEDFARM_* variables from the developer's shell out of the tests."""
    for name in list(os.environ):
        if name.startswith("FEDFARM_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Remove handlers and levels installed by configure_logging after the test."""
    root = logging.getLogger()
    level = root.level
    yield
    while logger_module._installed_handlers:
        handler = logger_module._installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)
    for name in logger_module.OPERATION_LOGGERS.values():
        logging.getLogger(name).setLevel(logging.NOTSET)


@pytest.fixture
def now() -> datetime:
    """Reference time (captured at import) for validity checks."""
    return NOW


@pytest.fixture
def make_descriptor() -> Callable[..., CertificateDescriptor]:
    """
    Factory for certificate descriptors.

    Validity defaults to one year either side of NOW.
    """

    def _make(
        thumbprint: str,
        subject: str = "CN=sts.contoso.com",
        issuer: str = "CN=Contoso Issuing CA",
        not_before: Optional[datetime] = None,
        not_after: Optional[datetime] = None,
        **kwargs,
    ) -> CertificateDescriptor:
        return CertificateDescriptor(
            thumbprint=thumbprint,
            subject=subject,
            issuer=issuer,
            not_before=not_before or NOW - timedelta(days=365),
            not_after=not_after or NOW + timedelta(days=365),
            **kwargs,
        )

    return _make


@pytest.fixture
def memory_provider() -> InMemoryProvider:
    """Empty in-memory provider."""
    return InMemoryProvider()


@pytest.fixture
def engine(memory_provider: InMemoryProvider) -> ReconciliationEngine:
    """Engine wired to the in-memory provider."""
    return ReconciliationEngine(memory_provider, CertificateResolver(memory_provider))


@pytest.fixture
def write_certificate(tmp_path: Path) -> Callable[..., x509.Certificate]:
    """
    Factory writing a self-signed certificate to disk.

    The file format follows the suffix of ``filename``: .pem/.crt (PEM),
    .der/.cer (DER) or .pfx/.p12 (PKCS12, protected by ``password``).

    Returns:
        The generated ``x509.Certificate``.
    """

    def _write(
        filename: str,
        common_name: str = "sts.contoso.com",
        directory: Optional[Path] = None,
        not_before: Optional[datetime] = None,
        not_after: Optional[datetime] = None,
        dns_names: Iterable[str] = (),
        server_auth: bool = True,
        password: Optional[bytes] = None,
        friendly_name: Optional[bytes] = None,
    ) -> x509.Certificate:
        target_dir = directory or tmp_path
        target_dir.mkdir(parents=True, exist_ok=True)

        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
        start = not_before or datetime.now(timezone.utc) - timedelta(days=1)
        end = not_after or datetime.now(timezone.utc) + timedelta(days=365)

        builder = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(private_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(start)
            .not_valid_after(end)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
        )
        if dns_names:
            builder = builder.add_extension(
                x509.SubjectAlternativeName([x509.DNSName(d) for d in dns_names]),
                critical=False,
            )
        if server_auth:
            builder = builder.add_extension(
                x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]),
                critical=False,
            )
        cert = builder.sign(private_key, hashes.SHA256())

        path = target_dir / filename
        suffix = path.suffix.lower()
        if suffix in (".pfx", ".p12"):
            encryption = (
                serialization.BestAvailableEncryption(password)
                if password
                else serialization.NoEncryption()
            )
            path.write_bytes(
                pkcs12.serialize_key_and_certificates(
                    friendly_name, private_key, cert, None, encryption
                )
            )
        elif suffix in (".der", ".cer"):
            path.write_bytes(cert.public_bytes(serialization.Encoding.DER))
        else:
            path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
        return cert

    return _write
