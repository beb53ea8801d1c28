"""Desired-state documents.

A desired-state document is a JSON file listing the resources to reconcile::

    {
      "resources": [
        {"kind": "RelyingPartyTrust", "name": "Portal", "identifier": ["urn:portal"]},
        {"kind": "SamlEndpoint", "relying_party_trust": "Portal",
         "protocol": "SAMLAssertionConsumer", "index": 0,
         "binding": "POST", "location": "https://portal.example/acs"},
        {"kind": "DeviceRegistration", "domain_name": "corp.example",
         "service_account": {"username": "CORP\\\\svc-drs", "password_env_var": "DRS_PASSWORD"}}
      ]
    }

Each entry is validated by the pydantic model for its ``kind`` and converted
into the matching resource dataclass. Only keys present in the document are
managed; an explicit ``null`` means "should be empty".
"""

import json
import logging
import os
from pathlib import Path
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from fedfarm.models.resources import Credential, Ensure
from fedfarm.reconcile.descriptor import DesiredResource
from fedfarm.resources import (
    DeviceRegistration,
    Farm,
    GlobalAuthenticationPolicy,
    Node,
    ProtocolProfile,
    RelyingPartyTrust,
    SamlBinding,
    SamlEndpoint,
    SamlProtocol,
)
from fedfarm.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

StringSet = Union[List[str], str]


class CredentialDocument(BaseModel):
    """Credential given inline or through an environment variable.

    Attributes:
        username: Account name
        password: Inline password (discouraged outside tests)
        password_env_var: Name of the environment variable holding the password
    """

    model_config = ConfigDict(extra="forbid")

    username: str
    password: Optional[str] = Field(default=None, repr=False)
    password_env_var: Optional[str] = None

    @model_validator(mode="after")
    def validate_password_source(self) -> "CredentialDocument":
        if (self.password is None) == (self.password_env_var is None):
            raise ValueError("exactly one of 'password' or 'password_env_var' is required")
        return self

    def to_credential(self) -> Credential:
        """Build the credential, reading the password from the environment if needed.

        Raises:
            ConfigurationError: If the environment variable is not set
        """
        if self.password is not None:
            return Credential(self.username, self.password)
        password = os.getenv(self.password_env_var)
        if password is None:
            raise ConfigurationError(
                f"Environment variable {self.password_env_var} (password for {self.username}) is not set.\n"
                f"Fix: Export {self.password_env_var} or add it to your .env file"
            )
        return Credential(self.username, password)


class _ResourceDocument(BaseModel):
    """Common base of the per-kind document models."""

    model_config = ConfigDict(extra="forbid")

    RESOURCE: ClassVar[Type[DesiredResource]]

    ensure: Ensure = Ensure.PRESENT

    def to_resource(self) -> DesiredResource:
        values: Dict[str, Any] = {}
        for name in self.model_fields_set - {"kind"}:
            value = getattr(self, name)
            if isinstance(value, CredentialDocument):
                value = value.to_credential()
            values[name] = value
        return self.RESOURCE(**values)


class FarmDocument(_ResourceDocument):
    RESOURCE: ClassVar[Type[DesiredResource]] = Farm

    kind: Literal["Farm"]
    service_name: str
    display_name: Optional[str] = None
    certificate_thumbprint: Optional[str] = None
    certificate_subject: Optional[str] = None
    install_credential: Optional[CredentialDocument] = None
    service_credential: Optional[CredentialDocument] = None
    group_service_account_identifier: Optional[str] = None
    ssl_port: Optional[int] = Field(default=None, ge=1, le=65535)
    admin_configuration: Optional[Dict[str, Any]] = None


class NodeDocument(_ResourceDocument):
    RESOURCE: ClassVar[Type[DesiredResource]] = Node

    kind: Literal["Node"]
    node_name: str
    primary_computer_name: Optional[str] = None
    certificate_thumbprint: Optional[str] = None
    certificate_subject: Optional[str] = None
    install_credential: Optional[CredentialDocument] = None
    service_credential: Optional[CredentialDocument] = None
    group_service_account_identifier: Optional[str] = None


class RelyingPartyTrustDocument(_ResourceDocument):
    RESOURCE: ClassVar[Type[DesiredResource]] = RelyingPartyTrust

    kind: Literal["RelyingPartyTrust"]
    name: str
    identifier: Optional[StringSet] = None
    issuance_transform_rules: Optional[str] = None
    issuance_authorization_rules: Optional[str] = None
    claims_provider_name: Optional[StringSet] = None
    protocol_profile: Optional[ProtocolProfile] = None
    monitoring_enabled: Optional[bool] = None
    ws_fed_endpoint: Optional[str] = None
    notes: Optional[str] = None
    access_control_policy_name: Optional[str] = None
    encryption_certificate: Optional[str] = None
    signing_certificate_thumbprints: Optional[StringSet] = None
    encrypt_claims: Optional[bool] = None
    signed_saml_requests_required: Optional[bool] = None
    encrypted_name_id_required: Optional[bool] = None


class SamlEndpointDocument(_ResourceDocument):
    RESOURCE: ClassVar[Type[DesiredResource]] = SamlEndpoint

    kind: Literal["SamlEndpoint"]
    relying_party_trust: str
    protocol: SamlProtocol
    index: int = Field(ge=0)
    binding: Optional[SamlBinding] = None
    location: Optional[str] = None
    is_default: Optional[bool] = None


class GlobalAuthenticationPolicyDocument(_ResourceDocument):
    RESOURCE: ClassVar[Type[DesiredResource]] = GlobalAuthenticationPolicy

    kind: Literal["GlobalAuthenticationPolicy"]
    primary_extranet_authentication_provider: Optional[StringSet] = None
    primary_intranet_authentication_provider: Optional[StringSet] = None
    additional_authentication_provider: Optional[StringSet] = None
    device_authentication_enabled: Optional[bool] = None
    windows_integrated_fallback_enabled: Optional[bool] = None


class DeviceRegistrationDocument(_ResourceDocument):
    RESOURCE: ClassVar[Type[DesiredResource]] = DeviceRegistration

    kind: Literal["DeviceRegistration"]
    domain_name: str
    service_account: Optional[CredentialDocument] = None
    registration_quota: Optional[int] = Field(default=None, ge=1)
    maximum_inactive_days: Optional[int] = Field(default=None, ge=1)


ResourceDocument = Annotated[
    Union[
        FarmDocument,
        NodeDocument,
        RelyingPartyTrustDocument,
        SamlEndpointDocument,
        GlobalAuthenticationPolicyDocument,
        DeviceRegistrationDocument,
    ],
    Field(discriminator="kind"),
]


class DesiredStateDocument(BaseModel):
    """Root of a desired-state document."""

    model_config = ConfigDict(extra="forbid")

    resources: List[ResourceDocument] = Field(default_factory=list)

    def to_resources(self) -> List[DesiredResource]:
        return [document.to_resource() for document in self.resources]


def _describe_errors(error: ValidationError) -> str:
    # Input values are left out: documents may carry inline passwords
    return "\n".join(
        f"  - {'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    )


def parse_desired_state(data: Any, source: str = "<document>") -> List[DesiredResource]:
    """Validate an already-decoded document and build its resources.

    Raises:
        ConfigurationError: If the document does not validate
    """
    try:
        document = DesiredStateDocument.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid desired-state document {source}:\n{_describe_errors(e)}\n"
            f"Fix: Correct the listed entries; each resource needs a 'kind' and its key fields"
        ) from e
    resources = document.to_resources()
    logger.debug(f"Parsed {len(resources)} resource(s) from {source}")
    return resources


def load_desired_state(path: Path) -> List[DesiredResource]:
    """Load a desired-state document from a JSON file.

    Args:
        path: Path to the document

    Returns:
        Resource dataclasses in document order

    Raises:
        ConfigurationError: If the file is unreadable, malformed or invalid

    Example:
        >>> resources = load_desired_state(Path("state/portal.json"))
        >>> [r.label for r in resources]
        ['RelyingPartyTrust[name=Portal]']
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in desired-state file: {path}\n"
            f"Error: {e}\n"
            f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read desired-state file: {path}\n"
            f"Error: {e}\n"
            f"Fix: Check file permissions and path"
        ) from e

    resources = parse_desired_state(data, source=str(path))
    logger.info(f"Loaded {len(resources)} resource(s) from {path}")
    return resources
