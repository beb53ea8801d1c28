"""Resource descriptors: the static schema the reconciliation engine consumes.

A ``ResourceDescriptor`` binds a resource kind to its identity (key fields),
its comparable fields with their comparison semantics, and the fields that
are only meaningful when the resource is created. Resource kinds declare one
descriptor each; nothing is discovered by walking attributes at runtime.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple

from fedfarm.models.resources import Credential, Ensure, ResourceKind, format_resource_label
from fedfarm.reconcile.comparator import FieldSpec, is_set
from fedfarm.utils.exceptions import ConfigurationError


@dataclass(frozen=True)
class CollectionBinding:
    """Locates a resource inside its parent's collection.

    The provider exposes the collection as a whole on the parent resource;
    members are told apart by ``member_key_fields``.

    Attributes:
        parent_kind: Kind of the resource that owns the collection
        parent_key: Pairs of (child field, parent key field)
        collection_field: Name of the collection property on the parent
        member_key_fields: Fields identifying a member inside the collection
    """

    parent_kind: ResourceKind
    parent_key: Tuple[Tuple[str, str], ...]
    collection_field: str
    member_key_fields: Tuple[str, ...]


@dataclass(frozen=True)
class ResourceDescriptor:
    """Declarative schema of a resource kind.

    Attributes:
        kind: Resource kind
        key_fields: Identity fields; always required, never updated
        fields: Comparable fields with their comparison semantics
        create_only_fields: Fields passed on create but never compared or updated
        supports_absent: Whether ``Ensure.ABSENT`` is meaningful for the kind
        singleton_key: Fixed identity for singleton kinds
        collection: Set when the resource lives in a parent's collection
        certificate_fields: (thumbprint field, subject field) when the kind
            references a certificate
    """

    kind: ResourceKind
    key_fields: Tuple[str, ...]
    fields: Tuple[FieldSpec, ...]
    create_only_fields: Tuple[str, ...] = ()
    supports_absent: bool = True
    singleton_key: Optional[Mapping[str, Any]] = None
    collection: Optional[CollectionBinding] = None
    certificate_fields: Optional[Tuple[str, str]] = None

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)


def serialize_value(value: Any) -> Any:
    """Convert a desired value into a provider payload value.

    Enum members become their values, credentials become dictionaries and
    set-like collections become sorted lists.
    """
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Credential):
        return value.to_dict()
    if isinstance(value, (set, frozenset)):
        return sorted(serialize_value(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    if isinstance(value, Mapping):
        return {key: serialize_value(item) for key, item in value.items()}
    return value


class DesiredResource:
    """Behaviour shared by the desired-state dataclasses of every kind.

    Subclasses are dataclasses that set ``DESCRIPTOR`` and declare an
    ``ensure`` field plus one attribute per key, comparable and create-only
    field named in the descriptor.
    """

    DESCRIPTOR: ClassVar[ResourceDescriptor]

    ensure: Ensure

    @property
    def descriptor(self) -> ResourceDescriptor:
        return self.DESCRIPTOR

    @property
    def label(self) -> str:
        return format_resource_label(self.DESCRIPTOR.kind, self.key())

    def key(self) -> Dict[str, Any]:
        """Identity of the resource on the administrative surface."""
        if self.DESCRIPTOR.singleton_key is not None:
            return dict(self.DESCRIPTOR.singleton_key)
        return {name: getattr(self, name) for name in self.DESCRIPTOR.key_fields}

    def desired_properties(self) -> Dict[str, Any]:
        """Managed comparable fields (UNSET fields are left out)."""
        return {
            spec.name: getattr(self, spec.name)
            for spec in self.DESCRIPTOR.fields
            if is_set(getattr(self, spec.name))
        }

    def update_payload(self) -> Dict[str, Any]:
        """Payload for an update: managed comparable fields, serialized."""
        return {name: serialize_value(value) for name, value in self.desired_properties().items()}

    def create_payload(self) -> Dict[str, Any]:
        """Payload for a create: key, managed fields and create-only inputs."""
        payload = {name: serialize_value(value) for name, value in self.key().items()}
        payload.update(self.update_payload())
        subject_field = self.DESCRIPTOR.certificate_fields[1] if self.DESCRIPTOR.certificate_fields else None
        for name in self.DESCRIPTOR.create_only_fields:
            if name == subject_field:
                continue
            value = getattr(self, name)
            if is_set(value) and value is not None:
                payload[name] = serialize_value(value)
        return payload

    def certificate_reference(self) -> Tuple[Optional[str], Optional[str]]:
        """Return the (thumbprint, subject) pair, each None when not supplied."""
        if self.DESCRIPTOR.certificate_fields is None:
            return None, None
        thumbprint_field, subject_field = self.DESCRIPTOR.certificate_fields
        thumbprint = getattr(self, thumbprint_field)
        subject = getattr(self, subject_field)
        return (thumbprint or None), (subject or None)

    def with_certificate_thumbprint(self, thumbprint: str) -> "DesiredResource":
        """Copy of this resource with the certificate pinned to ``thumbprint``."""
        if self.DESCRIPTOR.certificate_fields is None:
            return self
        thumbprint_field, _ = self.DESCRIPTOR.certificate_fields
        return replace(self, **{thumbprint_field: thumbprint})  # type: ignore[type-var]

    def preflight(self) -> None:
        """Validate inputs before any provider call.

        Subclasses extend this with their jointly required and mutually
        exclusive inputs.

        Raises:
            ConfigurationError: If the desired state cannot be acted upon
        """
        descriptor = self.DESCRIPTOR
        for name in descriptor.key_fields:
            if descriptor.singleton_key is not None:
                break
            value = getattr(self, name)
            if not is_set(value) or value is None or value == "":
                raise ConfigurationError(
                    f"{descriptor.kind.value}: key field '{name}' is required. "
                    f"Fix: Supply '{name}' in the desired state."
                )
        if self.ensure is Ensure.ABSENT and not descriptor.supports_absent:
            raise ConfigurationError(
                f"{self.label}: Ensure=Absent is not supported for "
                f"{descriptor.kind.value}. Fix: Declare the resource as Present."
            )

    def _require_one_of(self, first: str, second: str, what: str) -> None:
        """Require exactly one of two mutually exclusive inputs."""
        first_value = getattr(self, first)
        second_value = getattr(self, second)
        has_first = is_set(first_value) and first_value not in (None, "")
        has_second = is_set(second_value) and second_value not in (None, "")
        if not has_first and not has_second:
            raise ConfigurationError(
                f"{self.label}: {what} is required. "
                f"Fix: Supply either '{first}' or '{second}'."
            )
        if has_first and has_second:
            raise ConfigurationError(
                f"{self.label}: '{first}' and '{second}' are mutually exclusive. "
                f"Fix: Supply only one of them."
            )

