"""Change ingestion for revent.

Classifies writes to tracked collections, names them for the audit trail
and triggers notification scheduling for events.
"""

from revent.changes.audit import (
    Actor,
    AuditEntry,
    AuditSink,
    InMemoryAuditSink,
    LogAuditSink,
    build_audit_entry,
)
from revent.changes.classifier import ChangeResult, OperationKind, classify, classify_list
from revent.changes.handler import TRACKED_COLLECTIONS, ChangeHandler, ChangeOutcome
from revent.changes.timestamps import parse_instant

__all__ = [
    # Classification
    "ChangeResult",
    "OperationKind",
    "classify",
    "classify_list",
    "parse_instant",
    # Audit
    "Actor",
    "AuditEntry",
    "AuditSink",
    "InMemoryAuditSink",
    "LogAuditSink",
    "build_audit_entry",
    # Ingestion
    "ChangeHandler",
    "ChangeOutcome",
    "TRACKED_COLLECTIONS",
]
