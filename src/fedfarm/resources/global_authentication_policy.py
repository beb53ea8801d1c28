"""Farm-wide authentication policy (singleton)."""

from dataclasses import dataclass
from typing import Any

from fedfarm.models.resources import Ensure, ResourceKind
from fedfarm.reconcile.comparator import UNSET, FieldKind, FieldSpec
from fedfarm.reconcile.descriptor import DesiredResource, ResourceDescriptor

GLOBAL_AUTHENTICATION_POLICY_DESCRIPTOR = ResourceDescriptor(
    kind=ResourceKind.GLOBAL_AUTHENTICATION_POLICY,
    key_fields=("policy",),
    fields=(
        FieldSpec("primary_extranet_authentication_provider", FieldKind.SET),
        FieldSpec("primary_intranet_authentication_provider", FieldKind.SET),
        FieldSpec("additional_authentication_provider", FieldKind.SET),
        FieldSpec("device_authentication_enabled"),
        FieldSpec("windows_integrated_fallback_enabled"),
    ),
    supports_absent=False,
    singleton_key={"policy": "Global"},
)


@dataclass
class GlobalAuthenticationPolicy(DesiredResource):
    """Desired state of the global authentication policy.

    There is exactly one policy per farm, so the resource has no caller
    supplied identity and cannot be Absent.

    Attributes:
        primary_extranet_authentication_provider: e.g. ``["FormsAuthentication"]``
        primary_intranet_authentication_provider: e.g. ``["WindowsAuthentication"]``
        additional_authentication_provider: MFA providers
        device_authentication_enabled: Allow device authentication as primary
        windows_integrated_fallback_enabled: Fall back to forms for non-WIA browsers
        ensure: Always Present
    """

    primary_extranet_authentication_provider: Any = UNSET
    primary_intranet_authentication_provider: Any = UNSET
    additional_authentication_provider: Any = UNSET
    device_authentication_enabled: Any = UNSET
    windows_integrated_fallback_enabled: Any = UNSET
    ensure: Ensure = Ensure.PRESENT

    DESCRIPTOR = GLOBAL_AUTHENTICATION_POLICY_DESCRIPTOR
