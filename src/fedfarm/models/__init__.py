"""Models module.

This module provides the data models shared across fedfarm.
"""

from fedfarm.models.certificate import CertificateCriteria, CertificateDescriptor
from fedfarm.models.resources import Credential, Ensure, ResourceKind, ResourceState

__all__ = [
    "CertificateCriteria",
    "CertificateDescriptor",
    "Credential",
    "Ensure",
    "ResourceKind",
    "ResourceState",
]
