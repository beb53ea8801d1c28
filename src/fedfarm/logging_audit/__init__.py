"""Logging Audit module.

This module provides logging configuration and the reconciliation audit trail.
"""

from .audit import log_reconciliation_event
from .formatters import SecretRedactingFormatter
from .logger import (
    configure_logging,
    configure_operation_logging,
    get_logger,
    get_operation_logger,
    set_operation_log_level,
)

__all__ = [
    "configure_logging",
    "configure_operation_logging",
    "get_logger",
    "get_operation_logger",
    "log_reconciliation_event",
    "SecretRedactingFormatter",
    "set_operation_log_level",
]
