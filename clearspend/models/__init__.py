"""
Data Models Package

This package contains all Pydantic models used by the ClearSpend Assistant.
All data flowing through the resolver must conform to these schemas.
"""

from clearspend.models.receipt import (
    ConversationTurn,
    DateRange,
    PartialFilter,
    RecordRow,
    Reply,
    ResolvedFilter,
    ResultSet,
    SearchType,
    SimilarLineItem,
    StoredReceipt,
    ValidationIssue,
    ValidationResult,
    VendorRecord,
)
from clearspend.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Receipt and query models
    "ConversationTurn",
    "DateRange",
    "PartialFilter",
    "RecordRow",
    "Reply",
    "ResolvedFilter",
    "ResultSet",
    "SearchType",
    "SimilarLineItem",
    "StoredReceipt",
    "ValidationIssue",
    "ValidationResult",
    "VendorRecord",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
