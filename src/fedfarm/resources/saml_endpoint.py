"""SAML endpoint of a relying party trust.

Endpoints are members of the parent trust's ``saml_endpoints`` collection and
are identified by ``(protocol, index)`` within it. The administrative surface
only accepts the collection as a whole, so converging one endpoint rewrites
the full collection.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from fedfarm.models.resources import Ensure, ResourceKind
from fedfarm.reconcile.comparator import UNSET, FieldSpec, is_set
from fedfarm.reconcile.descriptor import CollectionBinding, DesiredResource, ResourceDescriptor
from fedfarm.utils.exceptions import ConfigurationError


class SamlProtocol(Enum):
    """SAML protocol an endpoint serves."""

    ARTIFACT_RESOLUTION = "SAMLArtifactResolution"
    ASSERTION_CONSUMER = "SAMLAssertionConsumer"
    LOGOUT = "SAMLLogout"
    SINGLE_SIGN_ON = "SAMLSingleSignOn"


class SamlBinding(Enum):
    """SAML binding of an endpoint."""

    POST = "POST"
    REDIRECT = "Redirect"
    ARTIFACT = "Artifact"


SAML_ENDPOINT_DESCRIPTOR = ResourceDescriptor(
    kind=ResourceKind.SAML_ENDPOINT,
    key_fields=("relying_party_trust", "protocol", "index"),
    fields=(
        FieldSpec("binding"),
        FieldSpec("location"),
        FieldSpec("is_default"),
    ),
    collection=CollectionBinding(
        parent_kind=ResourceKind.RELYING_PARTY_TRUST,
        parent_key=(("relying_party_trust", "name"),),
        collection_field="saml_endpoints",
        member_key_fields=("protocol", "index"),
    ),
)


@dataclass
class SamlEndpoint(DesiredResource):
    """Desired state of one SAML endpoint.

    Attributes:
        relying_party_trust: Name of the parent relying party trust
        protocol: SAML protocol served by the endpoint
        index: Endpoint index, unique per protocol within the trust
        binding: POST, Redirect or Artifact
        location: Endpoint URI
        is_default: Whether this is the default endpoint for the protocol
        ensure: Present or Absent
    """

    relying_party_trust: str
    protocol: SamlProtocol
    index: int
    binding: Any = UNSET
    location: Any = UNSET
    is_default: Any = UNSET
    ensure: Ensure = Ensure.PRESENT

    DESCRIPTOR = SAML_ENDPOINT_DESCRIPTOR

    def member(self) -> dict:
        """Collection member built from the desired state.

        An unmanaged ``is_default`` defaults to False for a new member.
        """
        member = self.update_payload()
        member["protocol"] = self.protocol.value if isinstance(self.protocol, Enum) else self.protocol
        member["index"] = self.index
        member.setdefault("is_default", False)
        return member

    def preflight(self) -> None:
        super().preflight()
        if isinstance(self.index, bool) or not isinstance(self.index, int) or self.index < 0:
            raise ConfigurationError(
                f"{self.label}: 'index' must be a non-negative integer, got {self.index!r}."
            )
        if self.ensure is Ensure.ABSENT:
            return
        for name in ("binding", "location"):
            value = getattr(self, name)
            if not is_set(value) or value in (None, ""):
                raise ConfigurationError(
                    f"{self.label}: '{name}' is required for a present SAML endpoint. "
                    f"Fix: Supply '{name}' in the desired state."
                )
