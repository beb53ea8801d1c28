"""Certificates module.

This module provides certificate selection, reference resolution and a
file-backed certificate inventory.
"""

from fedfarm.certificates.resolver import CertificateResolver
from fedfarm.certificates.selector import build_predicates, select_certificates
from fedfarm.certificates.store import (
    CertificateStore,
    compute_thumbprint,
    describe_certificate,
    load_certificate_file,
)

__all__ = [
    "CertificateResolver",
    "CertificateStore",
    "build_predicates",
    "compute_thumbprint",
    "describe_certificate",
    "load_certificate_file",
    "select_certificates",
]
