"""Reconciliation engine: Get, Test and Set for any resource kind.

The engine is generic over ``DesiredResource``: everything kind-specific
(identity, comparable fields, create-only inputs, collection membership)
comes from the resource's ``ResourceDescriptor``.

Lifecycle of a Set:
  preflight -> fetch current state -> compare -> create | update | delete | nothing

Current state is fetched on every call and never cached. Provider failures
other than "not found" propagate unchanged; the engine performs no retries.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from fedfarm.certificates.resolver import CertificateResolver
from fedfarm.logging_audit.audit import log_reconciliation_event
from fedfarm.models.resources import Ensure, ResourceState
from fedfarm.providers.base import ProviderAdapter
from fedfarm.reconcile.comparator import ComplianceResult, compare, normalize
from fedfarm.reconcile.descriptor import CollectionBinding, DesiredResource
from fedfarm.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class SetAction(Enum):
    """What a Set did to converge a resource."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class ComplianceReport:
    """Outcome of a Test.

    Attributes:
        resource: Resource label, e.g. ``RelyingPartyTrust[name=Portal]``
        ensure: Desired existence state
        exists: Whether the resource currently exists
        result: Field comparison (empty unless the resource exists and is Present)
    """

    resource: str
    ensure: Ensure
    exists: bool
    result: ComplianceResult = ComplianceResult()

    @property
    def compliant(self) -> bool:
        if self.ensure is Ensure.ABSENT:
            return not self.exists
        return self.exists and self.result.compliant

    @property
    def mismatches(self) -> FrozenSet[str]:
        return self.result.fields


@dataclass(frozen=True)
class SetOutcome:
    """Outcome of a Set.

    Attributes:
        resource: Resource label
        action: Action taken
        mismatches: Fields that drove an update
    """

    resource: str
    action: SetAction
    mismatches: FrozenSet[str] = frozenset()

    @property
    def changed(self) -> bool:
        return self.action is not SetAction.UNCHANGED


class ReconciliationEngine:
    """Drives resources toward their desired state through a provider adapter.

    Attributes:
        provider: Provider adapter for the administrative surface
        resolver: Resolves certificate subjects to thumbprints before creates

    Example:
        >>> engine = ReconciliationEngine(InMemoryProvider())
        >>> trust = RelyingPartyTrust(name="Portal", identifier=["urn:portal"])
        >>> engine.test(trust).compliant
        False
        >>> engine.set(trust).action
        <SetAction.CREATED: 'created'>
        >>> engine.test(trust).compliant
        True
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        resolver: Optional[CertificateResolver] = None,
    ) -> None:
        self.provider = provider
        self.resolver = resolver or CertificateResolver(provider)

    # ----- Get ------------------------------------------------------------
    def get(self, resource: DesiredResource) -> ResourceState:
        """Read the current state of ``resource``.

        Never mutates the administrative surface. A resource that does not
        exist yields a state with ``exists == False``.

        Raises:
            ProviderError: For provider failures other than "not found"
        """
        if resource.descriptor.collection is not None:
            state, _ = self._get_member(resource)
            return state

        descriptor = resource.descriptor
        actual = self._fetch(descriptor.kind, resource.key())
        if actual is None:
            return ResourceState(descriptor.kind, resource.key(), Ensure.ABSENT)
        return ResourceState(
            descriptor.kind,
            resource.key(),
            Ensure.PRESENT,
            {name: actual.get(name) for name in descriptor.field_names},
        )

    # ----- Test -----------------------------------------------------------
    def test(self, resource: DesiredResource) -> ComplianceReport:
        """Check whether ``resource`` is in its desired state.

        Absent resources are compliant iff they do not exist; present ones iff
        they exist and every managed field matches.

        Raises:
            ProviderError: When compliance cannot be determined. This is
                never reported as non-compliance.
        """
        report = self._evaluate(resource, self.get(resource))
        logger.debug(
            f"Test {report.resource}: compliant={report.compliant} "
            f"exists={report.exists} mismatches={sorted(report.mismatches)}"
        )
        return report

    # ----- Set ------------------------------------------------------------
    def set(self, resource: DesiredResource) -> SetOutcome:
        """Converge ``resource`` to its desired state.

        Idempotent: a compliant resource causes no create, update or delete.

        Raises:
            ConfigurationError: Before any provider call when inputs are missing
                or mutually exclusive
            CertificateResolutionError: When a certificate reference does not resolve
            ProviderError: Propagated from the provider adapter
        """
        resource.preflight()

        if resource.descriptor.collection is not None:
            outcome = self._set_member(resource)
        else:
            outcome = self._set_resource(resource)

        log_reconciliation_event(
            f"RESOURCE_{outcome.action.name}",
            {
                "status": "success",
                "resource": outcome.resource,
                "mismatches": ",".join(sorted(outcome.mismatches)) or "-",
                "provider": self.provider.name,
            },
        )
        return outcome

    # ----- internals ------------------------------------------------------
    def _fetch(self, kind: Any, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            return self.provider.get_current(kind, key)
        except NotFoundError:
            return None

    def _evaluate(self, resource: DesiredResource, state: ResourceState) -> ComplianceReport:
        result = ComplianceResult()
        if state.exists and resource.ensure is Ensure.PRESENT:
            result = compare(resource.descriptor.fields, resource.desired_properties(), state.properties)
        return ComplianceReport(resource.label, resource.ensure, state.exists, result)

    def _set_resource(self, resource: DesiredResource) -> SetOutcome:
        descriptor = resource.descriptor
        report = self._evaluate(resource, self.get(resource))
        if report.compliant:
            logger.info(f"{report.resource} is in desired state")
            return SetOutcome(report.resource, SetAction.UNCHANGED)

        if resource.ensure is Ensure.ABSENT:
            logger.info(f"Removing {report.resource}")
            self.provider.delete(descriptor.kind, resource.key())
            return SetOutcome(report.resource, SetAction.DELETED)

        if not report.exists:
            resource = self._pin_certificate(resource)
            logger.info(f"Creating {report.resource}")
            self.provider.create(descriptor.kind, resource.create_payload())
            return SetOutcome(report.resource, SetAction.CREATED)

        logger.info(f"Updating {report.resource}: {sorted(report.mismatches)}")
        self.provider.update(descriptor.kind, resource.key(), resource.update_payload())
        return SetOutcome(report.resource, SetAction.UPDATED, report.mismatches)

    def _pin_certificate(self, resource: DesiredResource) -> DesiredResource:
        """Check a thumbprint reference or swap a subject for its thumbprint."""
        if resource.descriptor.certificate_fields is None:
            return resource
        thumbprint, subject = resource.certificate_reference()
        if thumbprint:
            self.resolver.find(thumbprint=thumbprint)
            return resource
        resolved = self.resolver.resolve(subject=subject)
        logger.info(f"{resource.label}: certificate subject '{subject}' resolved to {resolved}")
        return resource.with_certificate_thumbprint(resolved)

    # ----- collection members -----------------------------------------------
    @staticmethod
    def _parent_key(resource: DesiredResource, binding: CollectionBinding) -> Dict[str, Any]:
        return {parent_field: getattr(resource, child_field) for child_field, parent_field in binding.parent_key}

    @staticmethod
    def _member_key(values: Any, binding: CollectionBinding) -> Tuple[Any, ...]:
        if isinstance(values, dict):
            return tuple(normalize(values.get(name)) for name in binding.member_key_fields)
        return tuple(normalize(getattr(values, name)) for name in binding.member_key_fields)

    def _get_member(
        self, resource: DesiredResource
    ) -> Tuple[ResourceState, Optional[List[Dict[str, Any]]]]:
        """Locate the member in its parent's collection.

        Returns:
            The member's state and the parent's full collection (None when
            the parent itself does not exist)
        """
        descriptor = resource.descriptor
        binding = descriptor.collection
        parent = self._fetch(binding.parent_kind, self._parent_key(resource, binding))
        if parent is None:
            logger.debug(f"{resource.label}: parent {binding.parent_kind.value} not found")
            return ResourceState(descriptor.kind, resource.key(), Ensure.ABSENT), None

        members = list(parent.get(binding.collection_field) or [])
        target = self._member_key(resource, binding)
        for member in members:
            if self._member_key(member, binding) == target:
                properties = {name: member.get(name) for name in descriptor.field_names}
                return ResourceState(descriptor.kind, resource.key(), Ensure.PRESENT, properties), members
        return ResourceState(descriptor.kind, resource.key(), Ensure.ABSENT), members

    def _rewrite_collection(
        self, resource: DesiredResource, members: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """Build the replacement collection.

        Members whose key differs from the target pass through untouched and
        keep their position. The target member is replaced in place, appended
        when new, or dropped when Absent.
        """
        binding = resource.descriptor.collection
        target = self._member_key(resource, binding)
        rewritten: List[Dict[str, Any]] = []
        placed = False
        for member in members:
            if self._member_key(member, binding) != target:
                rewritten.append(member)
                continue
            if resource.ensure is Ensure.ABSENT or placed:
                continue
            replacement = dict(member)
            replacement.update(resource.update_payload())
            rewritten.append(replacement)
            placed = True
        if resource.ensure is Ensure.PRESENT and not placed:
            rewritten.append(resource.member())
        return rewritten

    def _set_member(self, resource: DesiredResource) -> SetOutcome:
        binding = resource.descriptor.collection
        state, members = self._get_member(resource)
        report = self._evaluate(resource, state)
        if report.compliant:
            logger.info(f"{report.resource} is in desired state")
            return SetOutcome(report.resource, SetAction.UNCHANGED)

        parent_key = self._parent_key(resource, binding)
        if members is None:
            raise NotFoundError(
                f"{resource.label}: parent {binding.parent_kind.value} {parent_key} not found. "
                f"Fix: Reconcile the parent before its {resource.descriptor.kind.value} resources."
            )

        collection = self._rewrite_collection(resource, members)
        logger.info(
            f"Rewriting {binding.collection_field} of {binding.parent_kind.value} {parent_key} "
            f"({len(members)} -> {len(collection)} member(s)) for {report.resource}"
        )
        self.provider.update(binding.parent_kind, parent_key, {binding.collection_field: collection})

        if resource.ensure is Ensure.ABSENT:
            return SetOutcome(report.resource, SetAction.DELETED)
        if not report.exists:
            return SetOutcome(report.resource, SetAction.CREATED)
        return SetOutcome(report.resource, SetAction.UPDATED, report.mismatches)
