"""Data models for certificate selection.

This module defines the certificate descriptor read from an inventory and the
criteria used to filter that inventory.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, Optional


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _string_set(value: Any) -> FrozenSet[str]:
    # A bare string is one name, not a set of characters
    if isinstance(value, str):
        return frozenset([value])
    return frozenset(value or ())


@dataclass(frozen=True)
class CertificateDescriptor:
    """Certificate attributes consulted by the selector.

    Contains the metadata of an X.509 certificate without any key material.

    Attributes:
        thumbprint: SHA-1 fingerprint, upper-case hex (unique within a store)
        subject: Subject Distinguished Name (DN)
        issuer: Issuer Distinguished Name (DN)
        not_before: Validity start (UTC)
        not_after: Validity end (UTC)
        friendly_name: Store friendly name, if any
        dns_names: DNS names from the subject alternative name extension
        key_usage: Key usage flags, e.g. "DigitalSignature"
        enhanced_key_usage: Enhanced key usage names, e.g. "Server Authentication"
        store: Store the certificate was read from
    """

    thumbprint: str
    subject: str
    issuer: str
    not_before: datetime
    not_after: datetime
    friendly_name: Optional[str] = None
    dns_names: FrozenSet[str] = field(default_factory=frozenset)
    key_usage: FrozenSet[str] = field(default_factory=frozenset)
    enhanced_key_usage: FrozenSet[str] = field(default_factory=frozenset)
    store: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "not_before", _as_utc(self.not_before))
        object.__setattr__(self, "not_after", _as_utc(self.not_after))
        object.__setattr__(self, "dns_names", _string_set(self.dns_names))
        object.__setattr__(self, "key_usage", _string_set(self.key_usage))
        object.__setattr__(self, "enhanced_key_usage", _string_set(self.enhanced_key_usage))

    def is_valid_at(self, moment: datetime) -> bool:
        """Return True when ``moment`` lies within [not_before, not_after]."""
        moment = _as_utc(moment)
        return self.not_before <= moment <= self.not_after

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CertificateDescriptor":
        """Build a descriptor from a provider JSON payload.

        Args:
            data: Mapping with ISO-8601 ``not_before``/``not_after`` strings

        Returns:
            CertificateDescriptor

        Example:
            >>> CertificateDescriptor.from_dict({
            ...     "thumbprint": "AB12", "subject": "CN=sts.contoso.com",
            ...     "issuer": "CN=Contoso CA",
            ...     "not_before": "2025-01-01T00:00:00+00:00",
            ...     "not_after": "2027-01-01T00:00:00+00:00",
            ... }).subject
            'CN=sts.contoso.com'
        """
        return cls(
            thumbprint=data["thumbprint"],
            subject=data["subject"],
            issuer=data.get("issuer", ""),
            not_before=_parse_timestamp(data["not_before"]),
            not_after=_parse_timestamp(data["not_after"]),
            friendly_name=data.get("friendly_name"),
            dns_names=_string_set(data.get("dns_names")),
            key_usage=_string_set(data.get("key_usage")),
            enhanced_key_usage=_string_set(data.get("enhanced_key_usage")),
            store=data.get("store"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "thumbprint": self.thumbprint,
            "subject": self.subject,
            "issuer": self.issuer,
            "not_before": self.not_before.isoformat(),
            "not_after": self.not_after.isoformat(),
            "friendly_name": self.friendly_name,
            "dns_names": sorted(self.dns_names),
            "key_usage": sorted(self.key_usage),
            "enhanced_key_usage": sorted(self.enhanced_key_usage),
            "store": self.store,
        }


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class CertificateCriteria:
    """Filter criteria for certificate selection.

    Every criterion is optional; the supplied ones are combined with AND.
    Set-valued criteria match when the certificate carries at least the
    requested values.

    Attributes:
        thumbprint: Exact thumbprint
        friendly_name: Exact friendly name
        subject: Exact subject DN
        issuer: Exact issuer DN
        dns_names: Names that must all appear in the certificate's DNS names
        key_usage: Key usage flags that must all be present
        enhanced_key_usage: Enhanced key usages that must all be present
        allow_expired: Skip the validity window check

    Example:
        >>> criteria = CertificateCriteria(
        ...     subject="CN=sts.contoso.com",
        ...     enhanced_key_usage=["Server Authentication"],
        ... )
    """

    thumbprint: Optional[str] = None
    friendly_name: Optional[str] = None
    subject: Optional[str] = None
    issuer: Optional[str] = None
    dns_names: Optional[Iterable[str]] = None
    key_usage: Optional[Iterable[str]] = None
    enhanced_key_usage: Optional[Iterable[str]] = None
    allow_expired: bool = False

    def __post_init__(self) -> None:
        for name in ("dns_names", "key_usage", "enhanced_key_usage"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, _string_set(value))
