"""Device registration service state for a domain."""

from dataclasses import dataclass
from typing import Any, Optional

from fedfarm.models.resources import Credential, Ensure, ResourceKind
from fedfarm.reconcile.comparator import UNSET, FieldSpec, is_set
from fedfarm.reconcile.descriptor import DesiredResource, ResourceDescriptor
from fedfarm.utils.exceptions import ConfigurationError

DEVICE_REGISTRATION_DESCRIPTOR = ResourceDescriptor(
    kind=ResourceKind.DEVICE_REGISTRATION,
    key_fields=("domain_name",),
    fields=(
        FieldSpec("registration_quota"),
        FieldSpec("maximum_inactive_days"),
    ),
    create_only_fields=("service_account",),
)


@dataclass
class DeviceRegistration(DesiredResource):
    """Desired state of device registration for one domain.

    Present means initialized and enabled; Absent means disabled.

    Attributes:
        domain_name: Active Directory domain
        service_account: Account used to initialize the registration service
        registration_quota: Maximum devices per user
        maximum_inactive_days: Days before an inactive device is considered stale
        ensure: Present (enabled) or Absent (disabled)
    """

    domain_name: str
    service_account: Optional[Credential] = None
    registration_quota: Any = UNSET
    maximum_inactive_days: Any = UNSET
    ensure: Ensure = Ensure.PRESENT

    DESCRIPTOR = DEVICE_REGISTRATION_DESCRIPTOR

    def preflight(self) -> None:
        super().preflight()
        if self.ensure is Ensure.ABSENT:
            return
        if self.service_account is None:
            raise ConfigurationError(
                f"{self.label}: 'service_account' is required to enable device registration. "
                f"Fix: Supply the service account credential."
            )
        for name in ("registration_quota", "maximum_inactive_days"):
            value = getattr(self, name)
            if is_set(value) and (not isinstance(value, int) or isinstance(value, bool) or value < 1):
                raise ConfigurationError(
                    f"{self.label}: '{name}' must be a positive integer, got {value!r}."
                )
