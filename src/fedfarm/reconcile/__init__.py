"""Reconcile module.

Field comparison and resource descriptors. The engine lives in
``fedfarm.reconcile.engine``.
"""

from fedfarm.reconcile.comparator import UNSET, FieldKind, FieldSpec, compare, is_set
from fedfarm.reconcile.descriptor import CollectionBinding, DesiredResource, ResourceDescriptor

__all__ = [
    "UNSET",
    "CollectionBinding",
    "DesiredResource",
    "FieldKind",
    "FieldSpec",
    "ResourceDescriptor",
    "compare",
    "is_set",
]
