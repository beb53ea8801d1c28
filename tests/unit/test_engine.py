"""Unit tests for the reconciliation engine.

Tests cover Get/Test/Set for standalone resources, idempotence, Ensure=Absent,
unmanaged optional fields, configuration errors raised before any provider
call, provider failure propagation, certificate reference resolution and the
SAML endpoint collection rewrite.
"""

import logging
from datetime import timedelta
from unittest.mock import Mock

import pytest

from fedfarm.certificates.resolver import CertificateResolver
from fedfarm.models.resources import Credential, Ensure, ResourceKind
from fedfarm.providers.base import ProviderAdapter
from fedfarm.providers.memory import InMemoryProvider
from fedfarm.reconcile.engine import ReconciliationEngine, SetAction
from fedfarm.resources import (
    DeviceRegistration,
    Farm,
    GlobalAuthenticationPolicy,
    RelyingPartyTrust,
    SamlBinding,
    SamlEndpoint,
    SamlProtocol,
)
from fedfarm.utils.exceptions import (
    CertificateResolutionError,
    ConfigurationError,
    NotFoundError,
    ProviderUnavailableError,
)

RPT = ResourceKind.RELYING_PARTY_TRUST
SERVICE_ACCOUNT = Credential("CONTOSO\\svc-adfs", "P@ssw0rd!")


def _endpoint(protocol: str, index: int, location: str, binding: str = "POST") -> dict:
    return {
        "protocol": protocol,
        "index": index,
        "binding": binding,
        "location": location,
        "is_default": False,
    }


class TestGet:
    """Test reading current state."""

    def test_absent_resource(self, engine) -> None:
        # Act
        state = engine.get(RelyingPartyTrust(name="Portal"))

        # Assert
        assert state.exists is False
        assert state.properties == {}
        assert state.label == "RelyingPartyTrust[name=Portal]"

    def test_present_resource_populates_all_fields(self, engine, memory_provider) -> None:
        # Arrange
        memory_provider.seed(RPT, {"name": "Portal", "identifier": ["urn:portal"], "notes": "hi"})

        # Act
        state = engine.get(RelyingPartyTrust(name="Portal"))

        # Assert
        assert state.exists is True
        assert state.properties["identifier"] == ["urn:portal"]
        assert state.properties["notes"] == "hi"
        assert state.properties["encrypt_claims"] is None
        assert set(state.properties) == set(RelyingPartyTrust.DESCRIPTOR.field_names)

    def test_get_never_mutates(self, engine, memory_provider) -> None:
        engine.get(RelyingPartyTrust(name="Portal", ensure=Ensure.ABSENT))
        assert memory_provider.mutating_calls == []


class TestTest:
    """Test compliance checks."""

    def test_missing_present_resource_is_non_compliant(self, engine) -> None:
        report = engine.test(RelyingPartyTrust(name="Portal", identifier=["urn:portal"]))
        assert report.compliant is False
        assert report.exists is False

    def test_missing_absent_resource_is_compliant(self, engine) -> None:
        report = engine.test(RelyingPartyTrust(name="Portal", ensure=Ensure.ABSENT))
        assert report.compliant is True

    def test_existing_absent_resource_is_non_compliant(self, engine, memory_provider) -> None:
        memory_provider.seed(RPT, {"name": "Portal"})
        report = engine.test(RelyingPartyTrust(name="Portal", ensure=Ensure.ABSENT))
        assert report.compliant is False
        assert report.exists is True

    def test_reports_mismatched_fields(self, engine, memory_provider) -> None:
        # Arrange
        memory_provider.seed(
            RPT, {"name": "Portal", "identifier": ["urn:a"], "notes": "old", "encrypt_claims": True}
        )

        # Act
        report = engine.test(
            RelyingPartyTrust(name="Portal", identifier=["urn:a"], notes="new", encrypt_claims=True)
        )

        # Assert
        assert report.compliant is False
        assert report.mismatches == frozenset({"notes"})

    def test_unmanaged_fields_are_ignored(self, engine, memory_provider) -> None:
        memory_provider.seed(RPT, {"name": "Portal", "identifier": ["urn:a"], "notes": "anything"})
        report = engine.test(RelyingPartyTrust(name="Portal", identifier=["urn:a"]))
        assert report.compliant is True

    def test_explicit_none_must_be_empty(self, engine, memory_provider) -> None:
        memory_provider.seed(RPT, {"name": "Portal", "encryption_certificate": "AB12"})
        report = engine.test(RelyingPartyTrust(name="Portal", encryption_certificate=None))
        assert report.mismatches == frozenset({"encryption_certificate"})

    def test_provider_failure_is_not_non_compliance(self) -> None:
        # Arrange
        provider = Mock(spec=ProviderAdapter)
        provider.get_current.side_effect = ProviderUnavailableError("gateway down")
        engine = ReconciliationEngine(provider)

        # Act & Assert
        with pytest.raises(ProviderUnavailableError):
            engine.test(RelyingPartyTrust(name="Portal"))


class TestSet:
    """Test convergence of standalone resources."""

    def test_creates_missing_resource(self, engine, memory_provider) -> None:
        # Act
        outcome = engine.set(RelyingPartyTrust(name="Portal", identifier=["urn:portal"], notes="n"))

        # Assert
        assert outcome.action is SetAction.CREATED
        assert outcome.changed is True
        [call] = memory_provider.mutating_calls
        assert call.operation == "create"
        assert memory_provider.get_current(RPT, {"name": "Portal"}) == {
            "name": "Portal",
            "identifier": ["urn:portal"],
            "notes": "n",
        }

    def test_set_is_idempotent(self, engine, memory_provider) -> None:
        # Arrange
        trust = RelyingPartyTrust(name="Portal", identifier=["urn:b", "urn:a"], monitoring_enabled=True)
        engine.set(trust)
        calls_after_first = len(memory_provider.mutating_calls)

        # Act
        outcome = engine.set(trust)

        # Assert
        assert outcome.action is SetAction.UNCHANGED
        assert len(memory_provider.mutating_calls) == calls_after_first
        assert engine.test(trust).compliant is True

    def test_updates_only_when_drifted(self, engine, memory_provider) -> None:
        # Arrange
        memory_provider.seed(
            RPT, {"name": "Portal", "identifier": ["urn:a"], "notes": "old", "ws_fed_endpoint": "https://x"}
        )

        # Act
        outcome = engine.set(RelyingPartyTrust(name="Portal", identifier=["urn:a"], notes="new"))

        # Assert
        assert outcome.action is SetAction.UPDATED
        assert outcome.mismatches == frozenset({"notes"})
        current = memory_provider.get_current(RPT, {"name": "Portal"})
        assert current["notes"] == "new"
        assert current["ws_fed_endpoint"] == "https://x"

    def test_absent_deletes_existing(self, engine, memory_provider) -> None:
        # Arrange
        memory_provider.seed(RPT, {"name": "Portal"})
        trust = RelyingPartyTrust(name="Portal", ensure=Ensure.ABSENT)

        # Act
        outcome = engine.set(trust)

        # Assert
        assert outcome.action is SetAction.DELETED
        assert engine.test(trust).compliant is True
        assert engine.set(trust).action is SetAction.UNCHANGED

    def test_absent_missing_resource_makes_no_call(self, engine, memory_provider) -> None:
        outcome = engine.set(RelyingPartyTrust(name="Portal", ensure=Ensure.ABSENT))
        assert outcome.action is SetAction.UNCHANGED
        assert memory_provider.mutating_calls == []

    def test_provider_failure_propagates(self) -> None:
        provider = Mock(spec=ProviderAdapter)
        provider.get_current.return_value = {"name": "Portal", "notes": "old"}
        provider.update.side_effect = ProviderUnavailableError("timed out")
        engine = ReconciliationEngine(provider)

        with pytest.raises(ProviderUnavailableError):
            engine.set(RelyingPartyTrust(name="Portal", notes="new"))

    def test_writes_audit_record(self, engine, caplog) -> None:
        caplog.set_level(logging.INFO)
        engine.set(RelyingPartyTrust(name="Portal", identifier=["urn:portal"]))
        assert "AUDIT [RESOURCE_CREATED]" in caplog.text
        assert "resource=RelyingPartyTrust[name=Portal]" in caplog.text


class TestPreflight:
    """Test input validation happening before any provider call."""

    def test_farm_without_certificate_reference(self, engine, memory_provider) -> None:
        farm = Farm(service_name="sts.contoso.com", service_credential=SERVICE_ACCOUNT)

        with pytest.raises(ConfigurationError, match="certificate"):
            engine.set(farm)

        assert memory_provider.calls == []

    def test_farm_with_both_service_accounts(self, engine, memory_provider) -> None:
        farm = Farm(
            service_name="sts.contoso.com",
            certificate_thumbprint="AB12",
            service_credential=SERVICE_ACCOUNT,
            group_service_account_identifier="CONTOSO\\gmsa-adfs$",
        )

        with pytest.raises(ConfigurationError, match="mutually exclusive"):
            engine.set(farm)

        assert memory_provider.calls == []

    def test_global_policy_cannot_be_absent(self, engine, memory_provider) -> None:
        with pytest.raises(ConfigurationError, match="Absent"):
            engine.set(GlobalAuthenticationPolicy(ensure=Ensure.ABSENT))
        assert memory_provider.calls == []


class TestCertificateResolution:
    """Test certificate references on create."""

    def test_subject_resolves_to_latest_expiring(self, make_descriptor, now) -> None:
        # Arrange
        t1 = make_descriptor("T1", not_after=now + timedelta(days=100))
        t2 = make_descriptor("T2", not_after=now + timedelta(days=300))
        provider = InMemoryProvider(certificates=[t1, t2])
        engine = ReconciliationEngine(provider, CertificateResolver(provider))
        farm = Farm(
            service_name="sts.contoso.com",
            certificate_subject="CN=sts.contoso.com",
            group_service_account_identifier="CONTOSO\\gmsa-adfs$",
        )

        # Act
        outcome = engine.set(farm)

        # Assert
        assert outcome.action is SetAction.CREATED
        created = provider.get_current(ResourceKind.FARM, {"service_name": "sts.contoso.com"})
        assert created["certificate_thumbprint"] == "T2"
        assert "certificate_subject" not in created
        assert created["group_service_account_identifier"] == "CONTOSO\\gmsa-adfs$"

    def test_unresolvable_subject_creates_nothing(self, engine, memory_provider) -> None:
        farm = Farm(
            service_name="sts.contoso.com",
            certificate_subject="CN=missing",
            service_credential=SERVICE_ACCOUNT,
        )

        with pytest.raises(CertificateResolutionError):
            engine.set(farm)

        assert memory_provider.mutating_calls == []

    def test_unknown_thumbprint_creates_nothing(self, engine, memory_provider) -> None:
        farm = Farm(
            service_name="sts.contoso.com",
            certificate_thumbprint="DEADBEEF",
            service_credential=SERVICE_ACCOUNT,
        )

        with pytest.raises(CertificateResolutionError):
            engine.set(farm)

        assert memory_provider.mutating_calls == []

    def test_expired_thumbprint_creates_nothing(self, make_descriptor, now) -> None:
        # Arrange
        expired = make_descriptor(
            "EXPIRED1",
            not_before=now - timedelta(days=400),
            not_after=now - timedelta(days=30),
        )
        provider = InMemoryProvider(certificates=[expired])
        engine = ReconciliationEngine(provider, CertificateResolver(provider))
        farm = Farm(
            service_name="sts.contoso.com",
            certificate_thumbprint="EXPIRED1",
            service_credential=SERVICE_ACCOUNT,
        )

        # Act
        with pytest.raises(CertificateResolutionError, match="validity window"):
            engine.set(farm)

        # Assert
        assert provider.mutating_calls == []

    def test_credentials_are_sent_on_create(self, make_descriptor) -> None:
        provider = InMemoryProvider(certificates=[make_descriptor("AB12")])
        engine = ReconciliationEngine(provider)

        engine.set(
            Farm(
                service_name="sts.contoso.com",
                certificate_thumbprint="AB12",
                service_credential=SERVICE_ACCOUNT,
            )
        )

        created = provider.get_current(ResourceKind.FARM, {"service_name": "sts.contoso.com"})
        assert created["service_credential"] == {"username": "CONTOSO\\svc-adfs", "password": "P@ssw0rd!"}


class TestSamlEndpointCollection:
    """Test endpoints managed through the parent trust's collection."""

    @pytest.fixture
    def seeded(self, memory_provider):
        memory_provider.seed(
            RPT,
            {
                "name": "Portal",
                "saml_endpoints": [
                    _endpoint("SAMLSingleSignOn", 0, "https://portal/sso"),
                    _endpoint("SAMLAssertionConsumer", 0, "https://portal/acs0"),
                    _endpoint("SAMLAssertionConsumer", 1, "https://portal/acs1"),
                ],
            },
        )
        return memory_provider

    def _endpoints(self, provider):
        return provider.get_current(RPT, {"name": "Portal"})["saml_endpoints"]

    def test_replaces_member_in_place(self, engine, seeded) -> None:
        # Arrange
        endpoint = SamlEndpoint(
            relying_party_trust="Portal",
            protocol=SamlProtocol.ASSERTION_CONSUMER,
            index=1,
            binding=SamlBinding.POST,
            location="https://portal/acs-new",
        )

        # Act
        outcome = engine.set(endpoint)

        # Assert
        assert outcome.action is SetAction.UPDATED
        assert outcome.mismatches == frozenset({"location"})
        endpoints = self._endpoints(seeded)
        assert [e["location"] for e in endpoints] == [
            "https://portal/sso",
            "https://portal/acs0",
            "https://portal/acs-new",
        ]
        [call] = seeded.mutating_calls
        assert (call.operation, call.kind) == ("update", RPT)

    def test_appends_new_member(self, engine, seeded) -> None:
        endpoint = SamlEndpoint(
            relying_party_trust="Portal",
            protocol=SamlProtocol.LOGOUT,
            index=0,
            binding=SamlBinding.REDIRECT,
            location="https://portal/logout",
        )

        outcome = engine.set(endpoint)

        assert outcome.action is SetAction.CREATED
        endpoints = self._endpoints(seeded)
        assert len(endpoints) == 4
        assert endpoints[-1] == {
            "binding": "Redirect",
            "location": "https://portal/logout",
            "protocol": "SAMLLogout",
            "index": 0,
            "is_default": False,
        }

    def test_absent_removes_only_target(self, engine, seeded) -> None:
        endpoint = SamlEndpoint(
            relying_party_trust="Portal",
            protocol=SamlProtocol.ASSERTION_CONSUMER,
            index=0,
            ensure=Ensure.ABSENT,
        )

        outcome = engine.set(endpoint)

        assert outcome.action is SetAction.DELETED
        keys = [(e["protocol"], e["index"]) for e in self._endpoints(seeded)]
        assert keys == [("SAMLSingleSignOn", 0), ("SAMLAssertionConsumer", 1)]

    def test_compliant_member_is_left_alone(self, engine, seeded) -> None:
        endpoint = SamlEndpoint(
            relying_party_trust="Portal",
            protocol=SamlProtocol.SINGLE_SIGN_ON,
            index=0,
            binding=SamlBinding.POST,
            location="https://portal/sso",
        )

        assert engine.test(endpoint).compliant is True
        assert engine.set(endpoint).action is SetAction.UNCHANGED
        assert seeded.mutating_calls == []

    def test_missing_parent_reports_absent(self, engine) -> None:
        endpoint = SamlEndpoint(
            relying_party_trust="Nowhere",
            protocol=SamlProtocol.SINGLE_SIGN_ON,
            index=0,
            binding=SamlBinding.POST,
            location="https://x/sso",
        )

        state = engine.get(endpoint)
        report = engine.test(endpoint)

        assert state.exists is False
        assert report.compliant is False

    def test_missing_parent_fails_set_present(self, engine, memory_provider) -> None:
        endpoint = SamlEndpoint(
            relying_party_trust="Nowhere",
            protocol=SamlProtocol.SINGLE_SIGN_ON,
            index=0,
            binding=SamlBinding.POST,
            location="https://x/sso",
        )

        with pytest.raises(NotFoundError, match="parent"):
            engine.set(endpoint)

        assert memory_provider.mutating_calls == []

    def test_missing_parent_absent_is_compliant(self, engine) -> None:
        endpoint = SamlEndpoint(
            relying_party_trust="Nowhere",
            protocol=SamlProtocol.SINGLE_SIGN_ON,
            index=0,
            ensure=Ensure.ABSENT,
        )

        assert engine.set(endpoint).action is SetAction.UNCHANGED


class TestSingletonAndDeviceRegistration:
    """Test the global policy singleton and device registration."""

    def test_global_policy_updates_singleton(self, engine, memory_provider) -> None:
        # Arrange
        memory_provider.seed(
            ResourceKind.GLOBAL_AUTHENTICATION_POLICY,
            {"policy": "Global", "primary_extranet_authentication_provider": ["FormsAuthentication"]},
        )
        policy = GlobalAuthenticationPolicy(
            primary_extranet_authentication_provider=["FormsAuthentication", "CertificateAuthentication"],
        )

        # Act
        outcome = engine.set(policy)

        # Assert
        assert outcome.action is SetAction.UPDATED
        current = memory_provider.get_current(ResourceKind.GLOBAL_AUTHENTICATION_POLICY, {"policy": "Global"})
        assert sorted(current["primary_extranet_authentication_provider"]) == [
            "CertificateAuthentication",
            "FormsAuthentication",
        ]

    def test_device_registration_absent_disables(self, engine, memory_provider) -> None:
        memory_provider.seed(ResourceKind.DEVICE_REGISTRATION, {"domain_name": "contoso.com"})

        outcome = engine.set(DeviceRegistration(domain_name="contoso.com", ensure=Ensure.ABSENT))

        assert outcome.action is SetAction.DELETED
        assert engine.get(DeviceRegistration(domain_name="contoso.com")).exists is False
