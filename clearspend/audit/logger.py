"""
Audit Logger

DESIGN DECISION: Every state transition of a chat request is logged.
This provides:
1. Traceability from message to filter to reply
2. Visibility into absorbed collaborator failures
3. Correlation of all events of one request

The audit logger:
- Is async so callers can await it inline in the pipeline
- Only logs locally (structured JSON); nothing is persisted
- Supports correlation IDs to trace related events
"""

from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from clearspend.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """Writes one structured JSON log line per audit event."""

    def __init__(self, logger_name: str = "clearspend.audit"):
        self._logger = structlog.get_logger(logger_name)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the log handler failed. A failed log line
        never interrupts the chat request.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity.value == "error":
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False

        return True

    async def log_query_received(
        self,
        tenant_id: str,
        message: str,
        has_prior_results: bool,
        correlation_id: UUID,
    ) -> None:
        """Log an incoming chat query."""
        event = AuditEventBuilder.query_received(
            tenant_id=tenant_id,
            message=message,
            has_prior_results=has_prior_results,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_query_rejected(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a query rejected before entering the pipeline."""
        event = AuditEventBuilder.query_rejected(
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_followup_resolved(
        self,
        kind: str,
        prior_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log a follow-up answered without a new search."""
        event = AuditEventBuilder.followup_resolved(
            kind=kind,
            prior_count=prior_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_filter_built(
        self,
        details: dict[str, Any],
        correlation_id: UUID,
    ) -> None:
        """Log the resolved filter."""
        event = AuditEventBuilder.filter_built(
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_caller_filter_overridden(
        self,
        caller_range: str,
        parsed_range: str,
        correlation_id: UUID,
    ) -> None:
        """Log a caller date filter losing to a parsed date phrase."""
        event = AuditEventBuilder.caller_filter_overridden(
            caller_range=caller_range,
            parsed_range=parsed_range,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_search_completed(
        self,
        search_type: str,
        result_count: int,
        search_failed: bool,
        correlation_id: Optional[UUID],
    ) -> None:
        """Log the exit of the search state machine."""
        event = AuditEventBuilder.search_completed(
            search_type=search_type,
            result_count=result_count,
            search_failed=search_failed,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_semantic_search_failed(
        self,
        error_message: str,
        timed_out: bool,
        correlation_id: Optional[UUID],
    ) -> None:
        """Log a semantic attempt that fell through to lexical search."""
        event = AuditEventBuilder.semantic_search_failed(
            error_message=error_message,
            timed_out=timed_out,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_vendor_lookup_failed(
        self,
        vendor_count: int,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        """Log a failed vendor name lookup."""
        event = AuditEventBuilder.vendor_lookup_failed(
            vendor_count=vendor_count,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_response_composed(
        self,
        intent: str,
        result_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log the composed reply."""
        event = AuditEventBuilder.response_composed(
            intent=intent,
            result_count=result_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """New ID shared by every audit event of one chat request."""
    return uuid4()
