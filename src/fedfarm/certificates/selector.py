"""Certificate selection by composable criteria.

Filters a certificate inventory with the criteria of a ``CertificateCriteria``
(all supplied criteria must hold) and ranks the matches by expiry, latest
first, so that taking the first element yields the match with the longest
remaining validity.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from fedfarm.models.certificate import CertificateCriteria, CertificateDescriptor

logger = logging.getLogger(__name__)

Predicate = Callable[[CertificateDescriptor], bool]


def build_predicates(
    criteria: CertificateCriteria, now: Optional[datetime] = None
) -> List[Predicate]:
    """Turn criteria into a list of predicates, one per supplied criterion.

    Args:
        criteria: Selection criteria
        now: Reference time for the validity check (default: current UTC time)

    Returns:
        Predicates that must all hold for a certificate to match
    """
    predicates: List[Predicate] = []

    if criteria.thumbprint is not None:
        predicates.append(lambda cert: cert.thumbprint == criteria.thumbprint)
    if criteria.friendly_name is not None:
        predicates.append(lambda cert: cert.friendly_name == criteria.friendly_name)
    if criteria.subject is not None:
        predicates.append(lambda cert: cert.subject == criteria.subject)
    if criteria.issuer is not None:
        predicates.append(lambda cert: cert.issuer == criteria.issuer)
    if criteria.dns_names is not None:
        predicates.append(lambda cert: criteria.dns_names <= cert.dns_names)
    if criteria.key_usage is not None:
        predicates.append(lambda cert: criteria.key_usage <= cert.key_usage)
    if criteria.enhanced_key_usage is not None:
        predicates.append(lambda cert: criteria.enhanced_key_usage <= cert.enhanced_key_usage)
    if not criteria.allow_expired:
        moment = now or datetime.now(timezone.utc)
        predicates.append(lambda cert: cert.is_valid_at(moment))

    return predicates


def select_certificates(
    inventory: Iterable[CertificateDescriptor],
    criteria: CertificateCriteria,
    now: Optional[datetime] = None,
) -> List[CertificateDescriptor]:
    """Select the certificates matching every supplied criterion.

    Matches are sorted by ``not_after`` descending. Certificates that expire
    at the same instant keep their inventory order.

    Args:
        inventory: Certificates to choose from
        criteria: Selection criteria
        now: Reference time for the validity check

    Returns:
        Matching certificates, longest remaining validity first. Empty when
        nothing matches.

    Example:
        >>> matches = select_certificates(
        ...     store.list_certificates("My"),
        ...     CertificateCriteria(subject="CN=sts.contoso.com"),
        ... )
        >>> thumbprint = matches[0].thumbprint if matches else None
    """
    predicates = build_predicates(criteria, now)
    matches = [cert for cert in inventory if all(check(cert) for check in predicates)]
    matches.sort(key=lambda cert: cert.not_after, reverse=True)

    logger.debug(
        "Certificate selection matched %d certificate(s) for %s", len(matches), criteria
    )
    return matches
