"""Resources module.

This module provides the desired-state dataclasses of every resource kind.
"""

from fedfarm.resources.device_registration import DeviceRegistration
from fedfarm.resources.farm import Farm
from fedfarm.resources.global_authentication_policy import GlobalAuthenticationPolicy
from fedfarm.resources.node import Node
from fedfarm.resources.relying_party_trust import ProtocolProfile, RelyingPartyTrust
from fedfarm.resources.saml_endpoint import SamlBinding, SamlEndpoint, SamlProtocol

__all__ = [
    "DeviceRegistration",
    "Farm",
    "GlobalAuthenticationPolicy",
    "Node",
    "ProtocolProfile",
    "RelyingPartyTrust",
    "SamlBinding",
    "SamlEndpoint",
    "SamlProtocol",
]
