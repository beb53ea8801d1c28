"""Additional federation server joining an existing farm."""

from dataclasses import dataclass
from typing import Any, Optional

from fedfarm.models.resources import Credential, Ensure, ResourceKind
from fedfarm.reconcile.comparator import UNSET, FieldSpec
from fedfarm.reconcile.descriptor import DesiredResource, ResourceDescriptor
from fedfarm.utils.exceptions import ConfigurationError

NODE_DESCRIPTOR = ResourceDescriptor(
    kind=ResourceKind.NODE,
    key_fields=("node_name",),
    fields=(FieldSpec("primary_computer_name"),),
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
class Node(DesiredResource):
    """Desired state of a farm node.

    Attributes:
        node_name: Computer name of the joining server
        primary_computer_name: Primary federation server of the farm
        certificate_thumbprint: SSL certificate thumbprint
        certificate_subject: SSL certificate subject, resolved to a thumbprint
        install_credential: Account used to run the join
        service_credential: Service account credential
        group_service_account_identifier: gMSA identifier
        ensure: Present or Absent
    """

    node_name: str
    primary_computer_name: Any = UNSET
    certificate_thumbprint: Any = UNSET
    certificate_subject: Any = UNSET
    install_credential: Optional[Credential] = None
    service_credential: Optional[Credential] = None
    group_service_account_identifier: Optional[str] = None
    ensure: Ensure = Ensure.PRESENT

    DESCRIPTOR = NODE_DESCRIPTOR

    def preflight(self) -> None:
        super().preflight()
        if self.ensure is Ensure.ABSENT:
            return
        if self.primary_computer_name in (UNSET, None, ""):
            raise ConfigurationError(
                f"{self.label}: 'primary_computer_name' is required to join a farm. "
                f"Fix: Name the farm's primary federation server."
            )
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
