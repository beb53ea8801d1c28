"""In-process administrative surface.

``InMemoryProvider`` keeps resources in dictionaries and journals every call,
which makes it the provider of choice for tests and dry runs: the journal
shows exactly which create/update/delete calls a reconciliation issued.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fedfarm.certificates.store import CertificateStore
from fedfarm.models.certificate import CertificateDescriptor
from fedfarm.models.resources import ResourceKind
from fedfarm.providers.base import ProviderAdapter
from fedfarm.reconcile.comparator import normalize
from fedfarm.resources.registry import get_descriptor
from fedfarm.utils.exceptions import ConflictError, NotFoundError, ProviderError

logger = logging.getLogger(__name__)

MUTATING_OPERATIONS = ("create", "update", "delete")

KeyTuple = Tuple[Tuple[str, Any], ...]


def _key_tuple(key: Dict[str, Any]) -> KeyTuple:
    return tuple(sorted((name, normalize(value)) for name, value in key.items()))


@dataclass(frozen=True)
class ProviderCall:
    """One journaled provider call."""

    operation: str
    kind: Optional[ResourceKind]
    key: KeyTuple = ()


class InMemoryProvider(ProviderAdapter):
    """Dictionary-backed provider adapter.

    Args:
        certificates: Static certificate inventory, served for every store
        certificate_store: File-backed store used instead of ``certificates``

    Example:
        >>> provider = InMemoryProvider()
        >>> provider.seed(ResourceKind.RELYING_PARTY_TRUST, {"name": "Portal"})
        >>> provider.get_current(ResourceKind.RELYING_PARTY_TRUST, {"name": "Portal"})
        {'name': 'Portal'}
    """

    name = "memory"

    def __init__(
        self,
        certificates: Optional[Iterable[CertificateDescriptor]] = None,
        certificate_store: Optional[CertificateStore] = None,
    ) -> None:
        self._resources: Dict[ResourceKind, Dict[KeyTuple, Dict[str, Any]]] = {}
        self._certificates: List[CertificateDescriptor] = list(certificates or [])
        self._certificate_store = certificate_store
        self.calls: List[ProviderCall] = []

    @property
    def mutating_calls(self) -> List[ProviderCall]:
        """Journaled create/update/delete calls."""
        return [call for call in self.calls if call.operation in MUTATING_OPERATIONS]

    def _key_from_properties(self, kind: ResourceKind, properties: Dict[str, Any]) -> Dict[str, Any]:
        descriptor = get_descriptor(kind)
        missing = [name for name in descriptor.key_fields if name not in properties]
        if missing:
            raise ProviderError(
                f"{kind.value}: create payload lacks key field(s) {', '.join(missing)}"
            )
        return {name: properties[name] for name in descriptor.key_fields}

    def seed(self, kind: ResourceKind, properties: Dict[str, Any]) -> None:
        """Store a resource directly, without journaling a call."""
        key = self._key_from_properties(kind, properties)
        self._resources.setdefault(kind, {})[_key_tuple(key)] = copy.deepcopy(properties)

    def get_current(self, kind: ResourceKind, key: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(ProviderCall("get", kind, _key_tuple(key)))
        try:
            return copy.deepcopy(self._resources[kind][_key_tuple(key)])
        except KeyError:
            raise NotFoundError(f"{kind.value} {key} not found") from None

    def create(self, kind: ResourceKind, properties: Dict[str, Any]) -> None:
        key = self._key_from_properties(kind, properties)
        self.calls.append(ProviderCall("create", kind, _key_tuple(key)))
        bucket = self._resources.setdefault(kind, {})
        if _key_tuple(key) in bucket:
            raise ConflictError(f"{kind.value} {key} already exists")
        bucket[_key_tuple(key)] = copy.deepcopy(properties)
        logger.debug(f"Created {kind.value} {key}")

    def update(self, kind: ResourceKind, key: Dict[str, Any], properties: Dict[str, Any]) -> None:
        self.calls.append(ProviderCall("update", kind, _key_tuple(key)))
        try:
            current = self._resources[kind][_key_tuple(key)]
        except KeyError:
            raise NotFoundError(f"{kind.value} {key} not found") from None
        current.update(copy.deepcopy(properties))
        logger.debug(f"Updated {kind.value} {key}: {sorted(properties)}")

    def delete(self, kind: ResourceKind, key: Dict[str, Any]) -> None:
        self.calls.append(ProviderCall("delete", kind, _key_tuple(key)))
        try:
            del self._resources[kind][_key_tuple(key)]
        except KeyError:
            raise NotFoundError(f"{kind.value} {key} not found") from None
        logger.debug(f"Deleted {kind.value} {key}")

    def list_certificates(self, store: str) -> List[CertificateDescriptor]:
        self.calls.append(ProviderCall("list_certificates", None))
        if self._certificate_store is not None:
            return self._certificate_store.list_certificates(store)
        return [c for c in self._certificates if c.store in (None, store)]

    def resolve_certificate(self, thumbprint: str) -> CertificateDescriptor:
        self.calls.append(ProviderCall("resolve_certificate", None))
        if self._certificate_store is not None:
            return self._certificate_store.find_by_thumbprint(thumbprint)
        for cert in self._certificates:
            if cert.thumbprint == thumbprint:
                return cert
        raise NotFoundError(f"Certificate {thumbprint} not found")
