"""Lookup tables from resource kind to descriptor and desired-state type."""

from typing import Dict, Type

from fedfarm.models.resources import ResourceKind
from fedfarm.reconcile.descriptor import DesiredResource, ResourceDescriptor
from fedfarm.resources.device_registration import DeviceRegistration
from fedfarm.resources.farm import Farm
from fedfarm.resources.global_authentication_policy import GlobalAuthenticationPolicy
from fedfarm.resources.node import Node
from fedfarm.resources.relying_party_trust import RelyingPartyTrust
from fedfarm.resources.saml_endpoint import SamlEndpoint

RESOURCE_TYPES: Dict[ResourceKind, Type[DesiredResource]] = {
    ResourceKind.FARM: Farm,
    ResourceKind.NODE: Node,
    ResourceKind.RELYING_PARTY_TRUST: RelyingPartyTrust,
    ResourceKind.SAML_ENDPOINT: SamlEndpoint,
    ResourceKind.GLOBAL_AUTHENTICATION_POLICY: GlobalAuthenticationPolicy,
    ResourceKind.DEVICE_REGISTRATION: DeviceRegistration,
}

DESCRIPTORS: Dict[ResourceKind, ResourceDescriptor] = {
    kind: resource_type.DESCRIPTOR for kind, resource_type in RESOURCE_TYPES.items()
}


def get_descriptor(kind: ResourceKind) -> ResourceDescriptor:
    """Return the descriptor declared for ``kind``."""
    return DESCRIPTORS[kind]
