"""Field comparator used by every resource's compliance check.

Each comparable field is declared up front with a ``FieldKind`` that selects
its comparison semantics:

- SCALAR: plain equality (enum members compare by value)
- SET: unordered comparison, reordering never signals drift
- OPTIONAL_REFERENCE: ``UNSET`` means "no opinion", ``None``/``""`` means
  "must be absent"
- MAPPING: every desired key/value must be present in the actual mapping

A desired value of ``UNSET`` is never compared: the caller does not manage
that field.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, Iterable, Mapping, Sequence, Tuple


class _Unset:
    """Sentinel type for fields the caller does not manage."""

    _instance = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Unset":
        return self

    def __deepcopy__(self, memo: Any) -> "_Unset":
        return self


UNSET: Any = _Unset()


def is_set(value: Any) -> bool:
    """Return True when ``value`` is managed (anything but UNSET)."""
    return value is not UNSET


class FieldKind(Enum):
    """Comparison semantics of a resource field."""

    SCALAR = "scalar"
    SET = "set"
    OPTIONAL_REFERENCE = "optional_reference"
    MAPPING = "mapping"


@dataclass(frozen=True)
class FieldSpec:
    """A comparable field of a resource kind.

    Attributes:
        name: Property name as used in desired state and provider payloads
        kind: Comparison semantics
    """

    name: str
    kind: FieldKind = FieldKind.SCALAR


@dataclass(frozen=True)
class FieldMismatch:
    """One field whose actual value differs from the desired value."""

    name: str
    desired: Any
    actual: Any


@dataclass(frozen=True)
class ComplianceResult:
    """Outcome of a field-by-field comparison.

    Attributes:
        mismatches: Fields that differ, in declaration order
    """

    mismatches: Tuple[FieldMismatch, ...] = ()

    @property
    def compliant(self) -> bool:
        return not self.mismatches

    @property
    def fields(self) -> FrozenSet[str]:
        """Names of the mismatching fields."""
        return frozenset(m.name for m in self.mismatches)


def normalize(value: Any) -> Any:
    """Reduce enum members to their values so they compare with provider strings."""
    if isinstance(value, Enum):
        return value.value
    return value


def _as_set(value: Any) -> FrozenSet[Any]:
    if value is None:
        return frozenset()
    if isinstance(value, (str, bytes)):
        return frozenset([normalize(value)])
    return frozenset(normalize(item) for item in value)


def _is_empty_reference(value: Any) -> bool:
    return value is None or value == ""


def field_matches(spec: FieldSpec, desired: Any, actual: Any) -> bool:
    """Compare a single field under its declared semantics.

    Args:
        spec: Field declaration
        desired: Desired value, possibly UNSET
        actual: Value reported by the provider

    Returns:
        True when the field is compliant (or unmanaged)

    Example:
        >>> field_matches(FieldSpec("identifier", FieldKind.SET), ["a", "b"], ["b", "a"])
        True
        >>> field_matches(FieldSpec("identifier", FieldKind.SET), ["a", "b"], ["a"])
        False
    """
    if desired is UNSET:
        return True

    if spec.kind is FieldKind.SET:
        return _as_set(desired) == _as_set(actual)

    if spec.kind is FieldKind.OPTIONAL_REFERENCE:
        if _is_empty_reference(desired):
            return _is_empty_reference(actual)
        return normalize(desired) == normalize(actual)

    if spec.kind is FieldKind.MAPPING:
        actual_map: Mapping[str, Any] = actual or {}
        return all(
            key in actual_map and normalize(actual_map[key]) == normalize(value)
            for key, value in (desired or {}).items()
        )

    return normalize(desired) == normalize(actual)


def compare(
    fields: Sequence[FieldSpec],
    desired: Mapping[str, Any],
    actual: Mapping[str, Any],
) -> ComplianceResult:
    """Compare desired against actual state over the declared fields.

    Fields missing from ``desired`` are treated as UNSET. Fields missing from
    ``actual`` are treated as None.

    Args:
        fields: Comparable fields of the resource kind
        desired: Desired property values
        actual: Current property values

    Returns:
        ComplianceResult listing every mismatching field
    """
    mismatches = []
    for spec in fields:
        desired_value = desired.get(spec.name, UNSET)
        actual_value = actual.get(spec.name)
        if not field_matches(spec, desired_value, actual_value):
            mismatches.append(FieldMismatch(spec.name, desired_value, actual_value))
    return ComplianceResult(tuple(mismatches))


def managed_names(fields: Iterable[FieldSpec], desired: Mapping[str, Any]) -> Tuple[str, ...]:
    """Names of the declared fields the caller actually manages."""
    return tuple(spec.name for spec in fields if is_set(desired.get(spec.name, UNSET)))
