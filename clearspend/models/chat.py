"""
HTTP Wire Models for the chat endpoint

The browser speaks camelCase; the resolver speaks snake_case.
These models own that translation so the core never sees raw JSON.

Receipt rows keep their snake_case field names on the wire because
the client stores them verbatim and echoes them back as
context.lastContext.relevantReceipts on the next turn.
"""

from datetime import date, datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from clearspend.models.receipt import (
    ConversationTurn,
    PartialFilter,
    RecordRow,
    Reply,
    ResultSet,
    SearchType,
)


class CamelModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ChatFilters(CamelModel):
    """Filters the dashboard UI already applied."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None
    min_amount: Optional[float] = Field(default=None, ge=0)

    def to_partial_filter(self) -> PartialFilter:
        return PartialFilter(
            start_date=self.start_date,
            end_date=self.end_date,
            search=self.search or None,
            min_amount=self.min_amount,
        )


class LastContext(CamelModel):
    """What the previous assistant reply handed back to the client."""

    relevant_receipts: list[RecordRow] = Field(default_factory=list)
    search_type: Optional[SearchType] = None


class ChatContext(CamelModel):
    selected_receipt: Optional[str] = None
    filters: Optional[ChatFilters] = None
    last_context: Optional[LastContext] = None


class ChatRequest(CamelModel):
    """
    POST body of the chat endpoint.

    message is optional here so an absent message gets the same
    400 as an empty one instead of a schema error.
    """

    message: Optional[str] = None
    conversation_id: Optional[str] = None
    context: Optional[ChatContext] = None

    def to_turn(self) -> ConversationTurn:
        """Build the per-request turn the resolver consumes."""
        prior = None
        filters = None
        if self.context:
            last = self.context.last_context
            if last is not None:
                prior = ResultSet(
                    rows=last.relevant_receipts,
                    search_type=SearchType.CONTEXTUAL,
                    summary=f"{len(last.relevant_receipts)} receipts from the previous response",
                )
            if self.context.filters is not None:
                filters = self.context.filters.to_partial_filter()

        return ConversationTurn(
            message=self.message or "",
            prior_result_set=prior,
            explicit_filters=filters,
        )


class ChatMessage(CamelModel):
    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime


class ResponseContext(CamelModel):
    search_results: Optional[str] = None
    relevant_receipts: list[RecordRow] = Field(default_factory=list)
    search_type: SearchType = SearchType.BASIC


class ChatResponse(CamelModel):
    message: ChatMessage
    conversation_id: str
    context: ResponseContext

    @classmethod
    def from_reply(
        cls,
        reply: Reply,
        conversation_id: Optional[str],
        now: Optional[datetime] = None,
    ) -> "ChatResponse":
        """Wrap a resolver reply in the wire envelope."""
        now = now or datetime.now(timezone.utc)
        stamp = int(now.timestamp() * 1000)
        result_set = reply.result_set
        return cls(
            message=ChatMessage(
                id=f"msg_{stamp}",
                role="assistant",
                content=reply.text,
                timestamp=now,
            ),
            conversation_id=conversation_id or f"conv_{stamp}",
            context=ResponseContext(
                search_results=result_set.summary or None,
                relevant_receipts=result_set.rows,
                search_type=result_set.search_type,
            ),
        )


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str
    version: str
