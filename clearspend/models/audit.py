"""
Audit Models for the ClearSpend Assistant

Every significant step of a chat request is logged for audit purposes.
This provides:
1. Traceability of how a question became a filter and a reply
2. Debugging information when a collaborator degrades
3. Visibility into absorbed failures that the user never sees as errors

DESIGN DECISION: Audit events describe what happened; they never
carry the receipts themselves, only counts and identifiers.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every state of the resolution pipeline has its own event type.
    """
    # Request handling
    QUERY_RECEIVED = "query_received"
    QUERY_REJECTED = "query_rejected"

    # Resolution
    FOLLOWUP_RESOLVED = "followup_resolved"
    FILTER_BUILT = "filter_built"
    CALLER_FILTER_OVERRIDDEN = "caller_date_filter_overridden"

    # Search
    SEARCH_COMPLETED = "search_completed"
    SEMANTIC_SEARCH_FAILED = "semantic_search_failed"
    SEMANTIC_SEARCH_TIMED_OUT = "semantic_search_timed_out"
    VENDOR_LOOKUP_FAILED = "vendor_lookup_failed"

    # Response
    RESPONSE_COMPOSED = "response_composed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Correlation - all events of one chat request share an ID
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one request"
    )
    tenant_id: Optional[str] = None

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "tenant_id": self.tenant_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.query_received(tenant_id, message, correlation_id)
        event = AuditEventBuilder.search_completed("basic", 12, correlation_id)
    """

    @staticmethod
    def query_received(
        tenant_id: str,
        message: str,
        has_prior_results: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_RECEIVED,
            tenant_id=tenant_id,
            correlation_id=correlation_id,
            description="Chat query received",
            details={
                "message_length": len(message),
                "has_prior_results": has_prior_results,
            },
        )

    @staticmethod
    def query_rejected(
        reason: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Chat query rejected: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def followup_resolved(
        kind: str,
        prior_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FOLLOWUP_RESOLVED,
            correlation_id=correlation_id,
            description=f"Follow-up answered from prior results ({kind})",
            details={
                "kind": kind,
                "prior_result_count": prior_count,
            },
        )

    @staticmethod
    def filter_built(
        details: dict[str, Any],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FILTER_BUILT,
            correlation_id=correlation_id,
            description="Search filter resolved from message",
            details=details,
        )

    @staticmethod
    def caller_filter_overridden(
        caller_range: str,
        parsed_range: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CALLER_FILTER_OVERRIDDEN,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Date phrase in message replaced the caller's date filter",
            details={
                "caller_range": caller_range,
                "parsed_range": parsed_range,
            },
        )

    @staticmethod
    def search_completed(
        search_type: str,
        result_count: int,
        search_failed: bool,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEARCH_COMPLETED,
            severity=AuditSeverity.WARNING if search_failed else AuditSeverity.INFO,
            correlation_id=correlation_id,
            description=f"Search finished via {search_type} with {result_count} receipts",
            details={
                "search_type": search_type,
                "result_count": result_count,
                "search_failed": search_failed,
            },
        )

    @staticmethod
    def semantic_search_failed(
        error_message: str,
        timed_out: bool,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.SEMANTIC_SEARCH_TIMED_OUT
                if timed_out
                else AuditEventType.SEMANTIC_SEARCH_FAILED
            ),
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Semantic search unavailable, falling back to lexical search",
            error_message=error_message,
        )

    @staticmethod
    def vendor_lookup_failed(
        vendor_count: int,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VENDOR_LOOKUP_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Vendor names could not be resolved",
            details={"vendor_count": vendor_count},
            error_message=error_message,
        )

    @staticmethod
    def response_composed(
        intent: str,
        result_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESPONSE_COMPOSED,
            correlation_id=correlation_id,
            description=f"Reply composed for intent '{intent}'",
            details={
                "intent": intent,
                "result_count": result_count,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"External service error: {service}",
            details={"service": service},
            error_message=error_message,
        )
