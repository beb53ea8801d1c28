"""Relying party trust: an application allowed to request assertions."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from fedfarm.models.resources import Ensure, ResourceKind
from fedfarm.reconcile.comparator import UNSET, FieldKind, FieldSpec
from fedfarm.reconcile.descriptor import DesiredResource, ResourceDescriptor


class ProtocolProfile(Enum):
    """Federation protocol profile of a relying party trust."""

    SAML = "SAML"
    WS_FEDERATION = "WsFederation"
    WS_FED_SAML = "WsFed-SAML"


RELYING_PARTY_TRUST_DESCRIPTOR = ResourceDescriptor(
    kind=ResourceKind.RELYING_PARTY_TRUST,
    key_fields=("name",),
    fields=(
        FieldSpec("identifier", FieldKind.SET),
        FieldSpec("issuance_transform_rules"),
        FieldSpec("issuance_authorization_rules"),
        FieldSpec("claims_provider_name", FieldKind.SET),
        FieldSpec("protocol_profile"),
        FieldSpec("monitoring_enabled"),
        FieldSpec("ws_fed_endpoint"),
        FieldSpec("notes"),
        FieldSpec("access_control_policy_name"),
        FieldSpec("encryption_certificate", FieldKind.OPTIONAL_REFERENCE),
        FieldSpec("signing_certificate_thumbprints", FieldKind.SET),
        FieldSpec("encrypt_claims"),
        FieldSpec("signed_saml_requests_required"),
        FieldSpec("encrypted_name_id_required"),
    ),
)


@dataclass
class RelyingPartyTrust(DesiredResource):
    """Desired state of a relying party trust.

    ``encryption_certificate`` distinguishes "not managed" (UNSET) from
    "explicitly cleared" (None or empty string): a cleared reference is only
    compliant when the trust has no encryption certificate.

    Attributes:
        name: Display name of the trust (global key)
        identifier: Relying party identifiers
        issuance_transform_rules: Claim rule language text
        issuance_authorization_rules: Claim rule language text
        claims_provider_name: Claims providers allowed for this trust
        protocol_profile: SAML, WsFederation or WsFed-SAML
        monitoring_enabled: Whether federation metadata is monitored
        ws_fed_endpoint: WS-Federation passive endpoint URI
        notes: Free-form notes
        access_control_policy_name: Access control policy applied to the trust
        encryption_certificate: Thumbprint of the encryption certificate
        signing_certificate_thumbprints: Request signing certificate thumbprints
        encrypt_claims: Encrypt issued claims
        signed_saml_requests_required: Reject unsigned SAML requests
        encrypted_name_id_required: Require encrypted NameID
        ensure: Present or Absent
    """

    name: str
    identifier: Any = UNSET
    issuance_transform_rules: Any = UNSET
    issuance_authorization_rules: Any = UNSET
    claims_provider_name: Any = UNSET
    protocol_profile: Any = UNSET
    monitoring_enabled: Any = UNSET
    ws_fed_endpoint: Any = UNSET
    notes: Any = UNSET
    access_control_policy_name: Any = UNSET
    encryption_certificate: Any = UNSET
    signing_certificate_thumbprints: Any = UNSET
    encrypt_claims: Any = UNSET
    signed_saml_requests_required: Any = UNSET
    encrypted_name_id_required: Any = UNSET
    ensure: Ensure = Ensure.PRESENT

    DESCRIPTOR = RELYING_PARTY_TRUST_DESCRIPTOR
