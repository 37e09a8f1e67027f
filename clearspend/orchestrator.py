"""
Main Orchestrator for the ClearSpend Assistant

This module ties together the query resolution components and defines
the end-to-end flow of one chat turn:

    RECEIVED -> FOLLOWUP_SHORTCUT ------------------------> DONE
    RECEIVED -> FILTER_BUILD -> SEARCH -> COMPOSE -------> DONE

DESIGN DECISION: The orchestrator enforces the boundaries:
- Malformed input is rejected before the pipeline starts
- Follow-ups are answered from the prior result set, never the store
- Every reply about data is backed by a search
- Every state is audited

There is no retry state. Collaborator failures are absorbed one level
down (in the SearchExecutor) and come back as a normally composed
"Search failed" or "No receipts found" reply.
"""

from datetime import date
from enum import Enum
from typing import Callable, Optional
from uuid import UUID

import structlog

from clearspend.audit import AuditLogger, create_correlation_id
from clearspend.config import AssistantSettings, get_settings
from clearspend.models.receipt import (
    ConversationTurn,
    DateRange,
    ResolvedFilter,
    Reply,
    StoredReceipt,
    VendorRecord,
)
from clearspend.queries import (
    ContextualReferenceResolver,
    DateRangeResolver,
    EntityExtractor,
    ResponseComposer,
    SearchExecutor,
)
from clearspend.services.embeddings import GeminiEmbeddingService
from clearspend.services.storage import (
    ConnectionError,
    EmbeddingInterface,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    RecordStoreInterface,
    SimilaritySearchInterface,
)
from clearspend.validation import InvalidMessageError, MessageValidator


logger = structlog.get_logger("clearspend.orchestrator")

DEBUG_PHRASES = ("debug receipts", "all dates")


class ResolutionState(str, Enum):
    """States of one chat turn."""
    RECEIVED = "received"
    FOLLOWUP_SHORTCUT = "followup_shortcut"
    FILTER_BUILD = "filter_build"
    SEARCH = "search"
    COMPOSE = "compose"
    DONE = "done"


class QueryResolutionService:
    """
    Resolves one chat turn into a Reply.

    The sole entry point the HTTP layer calls. Holds no per-conversation
    state: everything a turn needs arrives in the ConversationTurn.
    """

    def __init__(
        self,
        executor: SearchExecutor,
        settings: Optional[AssistantSettings] = None,
        date_resolver: Optional[DateRangeResolver] = None,
        entity_extractor: Optional[EntityExtractor] = None,
        followups: Optional[ContextualReferenceResolver] = None,
        composer: Optional[ResponseComposer] = None,
        validator: Optional[MessageValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._settings = settings or get_settings().assistant
        vendors = self._settings.known_vendors_list

        self._executor = executor
        self._date_resolver = date_resolver or DateRangeResolver()
        self._entities = entity_extractor or EntityExtractor(vendors)
        self._followups = followups or ContextualReferenceResolver()
        self._composer = composer or ResponseComposer(vendors)
        self._validator = validator or MessageValidator(self._settings)
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock

    async def resolve(
        self,
        turn: ConversationTurn,
        tenant_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Reply:
        """
        Answer one chat turn.

        Args:
            turn: Message plus whatever the client carried forward
            tenant_id: Tenant whose receipts to search
            correlation_id: Ties every log line of this turn together

        Returns:
            Reply whose result_set becomes the next turn's prior_result_set

        Raises:
            InvalidMessageError: If the message is empty or too long
        """
        correlation_id = correlation_id or create_correlation_id()
        tenant_id = tenant_id or self._settings.default_tenant_id

        try:
            self._validator.ensure_valid(turn)
        except InvalidMessageError as e:
            await self._audit_logger.log_query_rejected(
                reason=str(e),
                correlation_id=correlation_id,
            )
            raise

        self._enter(ResolutionState.RECEIVED, correlation_id)
        await self._audit_logger.log_query_received(
            tenant_id=tenant_id,
            message=turn.message,
            has_prior_results=turn.prior_result_set is not None,
            correlation_id=correlation_id,
        )

        # Read once: every stage of this turn agrees on "today"
        reference_now = self._clock()

        followup = self._followups.resolve(turn.message, turn.prior_result_set)
        if followup is not None:
            self._enter(ResolutionState.FOLLOWUP_SHORTCUT, correlation_id)
            kind = self._followups.classify(turn.message)
            await self._audit_logger.log_followup_resolved(
                kind=kind.value if kind else "unknown",
                prior_count=followup.result_set.count,
                correlation_id=correlation_id,
            )
            self._enter(ResolutionState.DONE, correlation_id)
            return followup

        self._enter(ResolutionState.FILTER_BUILD, correlation_id)
        filter, parsed_range = self._build_filter(turn, reference_now)
        await self._audit_caller_override(turn, filter, parsed_range, correlation_id)
        await self._audit_logger.log_filter_built(
            details=filter.model_dump(mode="json", exclude={"query_text"}),
            correlation_id=correlation_id,
        )

        self._enter(ResolutionState.SEARCH, correlation_id)
        result_set = await self._executor.search(filter, tenant_id, correlation_id)

        self._enter(ResolutionState.COMPOSE, correlation_id)
        intent = self._composer.detect_intent(turn.message)
        text = self._composer.compose(turn.message, result_set, filter, reference_now)
        await self._audit_logger.log_response_composed(
            intent=intent.name,
            result_count=result_set.count,
            correlation_id=correlation_id,
        )

        self._enter(ResolutionState.DONE, correlation_id)
        return Reply(text=text, result_set=result_set)

    def build_filter(self, turn: ConversationTurn, reference_now: date) -> ResolvedFilter:
        """
        Build the search filter for a turn.

        Precedence:
        1. Caller's UI filters
        2. A date phrase in the message replaces the caller's dates
        3. "debug receipts" / "all dates" drops every date bound
        """
        filter, _ = self._build_filter(turn, reference_now)
        return filter

    def _build_filter(
        self,
        turn: ConversationTurn,
        reference_now: date,
    ) -> tuple[ResolvedFilter, Optional[DateRange]]:
        message = turn.message or ""
        lowered = message.lower()
        caller = turn.explicit_filters

        date_start = caller.start_date if caller else None
        date_end = caller.end_date if caller else None
        description = None

        debug_mode = any(phrase in lowered for phrase in DEBUG_PHRASES)
        parsed = self._date_resolver.resolve(lowered, reference_now)

        if debug_mode:
            date_start = date_end = None
        elif parsed is not None:
            date_start, date_end, description = parsed.start, parsed.end, parsed.description

        min_amount = self._entities.extract_min_amount(lowered)
        if min_amount is None and caller is not None:
            min_amount = caller.min_amount

        filter = ResolvedFilter(
            date_start=date_start,
            date_end=date_end,
            vendor_term=(
                self._entities.extract_vendor(lowered)
                or self._entities.vendor_from_caller(caller)
            ),
            min_amount=min_amount,
            date_description=description,
            query_text=message.strip(),
            debug_mode=debug_mode,
        )
        return filter, (None if debug_mode else parsed)

    async def _audit_caller_override(
        self,
        turn: ConversationTurn,
        filter: ResolvedFilter,
        parsed_range: Optional[DateRange],
        correlation_id: UUID,
    ) -> None:
        """
        Flag a caller date filter that lost to a phrase in the message.

        The override is kept as is; a UI filter silently losing to an
        incidental date word is worth seeing in the logs.
        """
        caller = turn.explicit_filters
        if parsed_range is None or caller is None:
            return
        if caller.start_date is None and caller.end_date is None:
            return
        if (caller.start_date, caller.end_date) == (filter.date_start, filter.date_end):
            return
        await self._audit_logger.log_caller_filter_overridden(
            caller_range=f"{caller.start_date or 'All time'} to {caller.end_date or 'Now'}",
            parsed_range=f"{parsed_range.start} to {parsed_range.end} ({parsed_range.description})",
            correlation_id=correlation_id,
        )

    @staticmethod
    def _enter(state: ResolutionState, correlation_id: UUID) -> None:
        logger.debug("resolution_state", state=state.value, correlation_id=str(correlation_id))


class UnconfiguredRecordStore(RecordStoreInterface):
    """
    Stand-in when no backend is configured.

    Every read fails, so chat replies say "Search failed" instead of
    the service refusing to start.
    """

    async def list_receipts(self, tenant_id, date_from=None, date_to=None, min_amount=None, limit=50) -> list[StoredReceipt]:
        raise ConnectionError("Record store is not configured")

    async def get_vendors(self, vendor_ids) -> list[VendorRecord]:
        raise ConnectionError("Record store is not configured")


def create_app_components(
    use_storage: bool = True,
) -> QueryResolutionService:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run without a backend.

    Returns:
        A ready QueryResolutionService
    """
    settings = get_settings().assistant
    audit_logger = AuditLogger()

    store: RecordStoreInterface = UnconfiguredRecordStore()
    similarity_index: Optional[SimilaritySearchInterface] = None
    embedder: Optional[EmbeddingInterface] = None

    if use_storage:
        try:
            sheets_store = GoogleSheetsRecordStore(GoogleSheetsClient())
            store = similarity_index = sheets_store
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))

    if use_storage and settings.semantic_search_enabled:
        try:
            embedder = GeminiEmbeddingService()
        except Exception as e:
            logger.warning("embeddings_not_configured", error=str(e))

    executor = SearchExecutor(
        store,
        embedder=embedder,
        similarity_index=similarity_index,
        settings=settings,
        audit_logger=audit_logger,
    )
    return QueryResolutionService(
        executor,
        settings=settings,
        audit_logger=audit_logger,
    )
