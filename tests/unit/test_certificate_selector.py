"""Unit tests for certificate selection.

Tests cover each criterion, the AND composition, validity filtering and the
latest-expiry-first ordering.
"""

from datetime import timedelta

from fedfarm.certificates.selector import build_predicates, select_certificates
from fedfarm.models.certificate import CertificateCriteria, CertificateDescriptor


class TestBuildPredicates:
    """Test predicate construction."""

    def test_one_predicate_per_criterion_plus_validity(self) -> None:
        criteria = CertificateCriteria(subject="CN=a", issuer="CN=b")
        assert len(build_predicates(criteria)) == 3

    def test_allow_expired_drops_validity(self) -> None:
        assert build_predicates(CertificateCriteria(allow_expired=True)) == []


class TestSelectCertificates:
    """Test filtering and ordering."""

    def test_orders_by_expiry_descending(self, make_descriptor, now) -> None:
        # Arrange
        t1 = make_descriptor("T1", not_after=now + timedelta(days=30))
        t2 = make_descriptor("T2", not_after=now + timedelta(days=400))

        # Act
        matches = select_certificates([t1, t2], CertificateCriteria(subject="CN=sts.contoso.com"), now)

        # Assert
        assert [c.thumbprint for c in matches] == ["T2", "T1"]

    def test_equal_expiry_keeps_inventory_order(self, make_descriptor, now) -> None:
        expiry = now + timedelta(days=90)
        certs = [make_descriptor(tp, not_after=expiry) for tp in ("A", "B", "C")]

        matches = select_certificates(certs, CertificateCriteria(), now)

        assert [c.thumbprint for c in matches] == ["A", "B", "C"]

    def test_excludes_expired_and_not_yet_valid(self, make_descriptor, now) -> None:
        # Arrange
        expired = make_descriptor(
            "OLD", not_before=now - timedelta(days=400), not_after=now - timedelta(days=1)
        )
        future = make_descriptor("NEW", not_before=now + timedelta(days=1))
        current = make_descriptor("CUR")

        # Act
        matches = select_certificates([expired, future, current], CertificateCriteria(), now)

        # Assert
        assert [c.thumbprint for c in matches] == ["CUR"]

    def test_allow_expired_includes_everything(self, make_descriptor, now) -> None:
        expired = make_descriptor(
            "OLD", not_before=now - timedelta(days=400), not_after=now - timedelta(days=1)
        )
        matches = select_certificates([expired], CertificateCriteria(allow_expired=True), now)
        assert [c.thumbprint for c in matches] == ["OLD"]

    def test_criteria_are_anded(self, make_descriptor, now) -> None:
        # Arrange
        right = make_descriptor("R", friendly_name="adfs-ssl", issuer="CN=Contoso Issuing CA")
        wrong_issuer = make_descriptor("W", friendly_name="adfs-ssl", issuer="CN=Other CA")
        criteria = CertificateCriteria(friendly_name="adfs-ssl", issuer="CN=Contoso Issuing CA")

        # Act
        matches = select_certificates([right, wrong_issuer], criteria, now)

        # Assert
        assert [c.thumbprint for c in matches] == ["R"]

    def test_thumbprint_match_is_exact(self, make_descriptor, now) -> None:
        cert = make_descriptor("AB12CD")
        assert select_certificates([cert], CertificateCriteria(thumbprint="ab12cd"), now) == []
        assert select_certificates([cert], CertificateCriteria(thumbprint="AB12CD"), now) == [cert]

    def test_dns_names_are_a_subset_check(self, make_descriptor, now) -> None:
        cert = make_descriptor("D", dns_names={"sts.contoso.com", "enterpriseregistration.contoso.com"})

        assert select_certificates([cert], CertificateCriteria(dns_names=["sts.contoso.com"]), now) == [cert]
        assert select_certificates([cert], CertificateCriteria(dns_names=["other.contoso.com"]), now) == []

    def test_single_dns_name_string_is_one_name(self, make_descriptor, now) -> None:
        # Arrange
        cert = make_descriptor("D", dns_names="sts.contoso.com")
        criteria = CertificateCriteria(dns_names="sts.contoso.com")

        # Act
        matches = select_certificates([cert], criteria, now)

        # Assert
        assert criteria.dns_names == frozenset({"sts.contoso.com"})
        assert cert.dns_names == frozenset({"sts.contoso.com"})
        assert matches == [cert]

    def test_enhanced_key_usage(self, make_descriptor, now) -> None:
        server = make_descriptor("S", enhanced_key_usage={"Server Authentication"})
        client = make_descriptor("C", enhanced_key_usage={"Client Authentication"})

        matches = select_certificates(
            [server, client], CertificateCriteria(enhanced_key_usage=["Server Authentication"]), now
        )

        assert [c.thumbprint for c in matches] == ["S"]

    def test_key_usage(self, make_descriptor, now) -> None:
        cert = make_descriptor("K", key_usage={"DigitalSignature", "KeyEncipherment"})
        criteria = CertificateCriteria(key_usage=["DigitalSignature"])
        assert select_certificates([cert], criteria, now) == [cert]

    def test_no_match_is_empty_list(self, make_descriptor, now) -> None:
        assert select_certificates([make_descriptor("X")], CertificateCriteria(subject="CN=none"), now) == []


class TestCertificateDescriptorFromDict:
    """Test parsing provider certificate entries."""

    def test_string_valued_sets_are_single_entries(self, now) -> None:
        cert = CertificateDescriptor.from_dict(
            {
                "thumbprint": "AB12",
                "subject": "CN=sts.contoso.com",
                "not_before": (now - timedelta(days=1)).isoformat(),
                "not_after": (now + timedelta(days=1)).isoformat(),
                "dns_names": "sts.contoso.com",
                "enhanced_key_usage": "Server Authentication",
            }
        )

        assert cert.dns_names == frozenset({"sts.contoso.com"})
        assert cert.enhanced_key_usage == frozenset({"Server Authentication"})
        assert cert.key_usage == frozenset()
