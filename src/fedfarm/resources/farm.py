"""Federation service farm (primary server installation)."""

from dataclasses import dataclass
from typing import Any, Optional

from fedfarm.models.resources import Credential, Ensure, ResourceKind
from fedfarm.reconcile.comparator import UNSET, FieldKind, FieldSpec
from fedfarm.reconcile.descriptor import DesiredResource, ResourceDescriptor

FARM_DESCRIPTOR = ResourceDescriptor(
    kind=ResourceKind.FARM,
    key_fields=("service_name",),
    fields=(
        FieldSpec("display_name"),
        FieldSpec("ssl_port"),
        FieldSpec("admin_configuration", FieldKind.MAPPING),
    ),
    create_only_fields=(
        "certificate_thumbprint",
        "certificate_subject",
        "install_credential",
        "service_credential",
        "group_service_account_identifier",
    ),
    certificate_fields=("certificate_thumbprint", "certificate_subject"),
)


@dataclass
class Farm(DesiredResource):
    """Desired state of the first node of a federation service farm.

    ``admin_configuration`` is a key/value overlay applied to the farm's
    administrative configuration. Leaving it UNSET means the overlay is not
    managed; only the declared keys are checked when it is set.

    Attributes:
        service_name: Federation service name, e.g. ``sts.contoso.com``
        display_name: Federation service display name
        certificate_thumbprint: SSL certificate thumbprint
        certificate_subject: SSL certificate subject, resolved to a thumbprint
        install_credential: Account used to run the installation
        service_credential: Service account credential
        group_service_account_identifier: gMSA identifier, e.g. ``CONTOSO\\gmsa-adfs$``
        ssl_port: HTTPS port when not 443
        admin_configuration: Administrative configuration overlay
        ensure: Present or Absent
    """

    service_name: str
    display_name: Any = UNSET
    certificate_thumbprint: Any = UNSET
    certificate_subject: Any = UNSET
    install_credential: Optional[Credential] = None
    service_credential: Optional[Credential] = None
    group_service_account_identifier: Optional[str] = None
    ssl_port: Any = UNSET
    admin_configuration: Any = UNSET
    ensure: Ensure = Ensure.PRESENT

    DESCRIPTOR = FARM_DESCRIPTOR

    def preflight(self) -> None:
        super().preflight()
        if self.ensure is Ensure.ABSENT:
            return
        self._require_one_of(
            "service_credential",
            "group_service_account_identifier",
            "A service account",
        )
        self._require_one_of(
            "certificate_thumbprint",
            "certificate_subject",
            "A certificate reference",
        )
