"""Audit trail for reconciliation actions.

Every Set writes one ``AUDIT [...]`` line so operators can reconstruct what
was created, updated or removed and by which provider.
"""

import time
import uuid
from typing import Any, Dict

from .logger import get_logger

logger = get_logger(__name__)

FIELD_ORDER = (
    "status",
    "resource",
    "mismatches",
    "provider",
    "duration",
    "error_message",
    "correlation_id",
)


def log_reconciliation_event(action: str, details: Dict[str, Any]) -> None:
    """Log an audit trail event.

    Events with ``status == "failure"`` are logged at ERROR, all others at INFO.

    Args:
        action: Event type (e.g. "RESOURCE_CREATED", "RESOURCE_UNCHANGED",
                "STATE_FILE_APPLIED")
        details: Event fields. Common ones: status, resource, mismatches,
                 provider, duration, error_message, correlation_id

    Example:
        >>> log_reconciliation_event("RESOURCE_CREATED", {
        ...     "status": "success",
        ...     "resource": "RelyingPartyTrust[name=Portal]",
        ... })
    """
    details = dict(details)
    details.setdefault("timestamp", time.time())
    details.setdefault("correlation_id", str(uuid.uuid4()))

    message_parts = [f"AUDIT [{action}]"]
    for field in FIELD_ORDER:
        if field in details:
            value = details[field]
            if field == "duration" and isinstance(value, (int, float)):
                message_parts.append(f"{field}={value:.2f}s")
            else:
                message_parts.append(f"{field}={value}")

    for key, value in details.items():
        if key not in FIELD_ORDER and key != "timestamp":
            message_parts.append(f"{key}={value}")

    audit_message = " | ".join(message_parts)
    if details.get("status") == "failure":
        logger.error(audit_message)
    else:
        logger.info(audit_message)
