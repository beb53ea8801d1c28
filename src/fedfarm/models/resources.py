"""Data models shared by every resource kind.

This module defines the desired existence state, the resource kinds, the
credential value object and the state returned by a Get.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class Ensure(Enum):
    """Desired existence state of a resource."""

    PRESENT = "Present"
    ABSENT = "Absent"


class ResourceKind(Enum):
    """Resource kinds managed on a federation-service farm.

    The value doubles as the collection name on the administrative gateway.
    """

    FARM = "Farm"
    NODE = "Node"
    RELYING_PARTY_TRUST = "RelyingPartyTrust"
    SAML_ENDPOINT = "SamlEndpoint"
    GLOBAL_AUTHENTICATION_POLICY = "GlobalAuthenticationPolicy"
    DEVICE_REGISTRATION = "DeviceRegistration"


@dataclass(frozen=True)
class Credential:
    """User name and password handed to the administrative surface.

    The password is excluded from ``repr`` so credentials never leak into logs.

    Attributes:
        username: Account name, e.g. ``CONTOSO\\svc-adfs``
        password: Plain-text password
    """

    username: str
    password: str = field(repr=False)

    def to_dict(self) -> Dict[str, str]:
        return {"username": self.username, "password": self.password}


@dataclass
class ResourceState:
    """Current state of a resource as read from the administrative surface.

    Attributes:
        kind: Resource kind
        key: Identity fields of the resource
        ensure: PRESENT when the resource was found, ABSENT otherwise
        properties: Managed properties populated from the provider response
    """

    kind: ResourceKind
    key: Dict[str, Any]
    ensure: Ensure
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def exists(self) -> bool:
        return self.ensure is Ensure.PRESENT

    @property
    def label(self) -> str:
        """Human readable identifier, e.g. ``RelyingPartyTrust[name=Portal]``."""
        return format_resource_label(self.kind, self.key)


def format_resource_label(kind: ResourceKind, key: Dict[str, Any]) -> str:
    parts = ",".join(f"{name}={_plain(value)}" for name, value in key.items())
    return f"{kind.value}[{parts}]"


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value
