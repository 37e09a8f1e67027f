"""
Layered Search Execution

DESIGN DECISION: Search is an explicit state machine.
    SEMANTIC_ATTEMPT -> LEXICAL_ATTEMPT -> EMPTY
Every state has exactly one fallback and every path ends in a ResultSet.
A collaborator failure is absorbed, logged and turned into the next
state. search() never raises.

Totals are never taken from the store. ResultSet.total_amount is
computed from the rows it holds.
"""

import asyncio
from enum import Enum
from typing import Optional
from uuid import UUID

from clearspend.audit.logger import AuditLogger
from clearspend.config import AssistantSettings, get_settings
from clearspend.models.receipt import (
    RecordRow,
    ResolvedFilter,
    ResultSet,
    SearchType,
    SimilarLineItem,
    StoredReceipt,
    VendorRecord,
)
from clearspend.queries.formatting import format_currency
from clearspend.services.storage.interface import (
    EmbeddingInterface,
    RecordStoreInterface,
    SimilaritySearchInterface,
)


class SearchState(str, Enum):
    """States of one search."""
    SEMANTIC_ATTEMPT = "semantic_attempt"
    LEXICAL_ATTEMPT = "lexical_attempt"
    EMPTY = "empty"
    DONE = "done"


class SearchExecutor:
    """
    Executes a resolved filter against the record store.

    GUARANTEES:
    - Only returns rows the store actually holds
    - search_type names the strategy that produced the rows
    - A store failure yields an empty, search_failed result set
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        embedder: Optional[EmbeddingInterface] = None,
        similarity_index: Optional[SimilaritySearchInterface] = None,
        settings: Optional[AssistantSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._embedder = embedder
        self._similarity_index = similarity_index
        self._settings = settings or get_settings().assistant
        self._audit = audit_logger or AuditLogger()

    @property
    def semantic_available(self) -> bool:
        return (
            self._settings.semantic_search_enabled
            and self._embedder is not None
            and self._similarity_index is not None
        )

    async def search(
        self,
        filter: ResolvedFilter,
        tenant_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> ResultSet:
        """
        Run the state machine to completion.

        Args:
            filter: Constraints for this turn
            tenant_id: Tenant whose receipts to search
            correlation_id: Ties log lines to the request

        Returns:
            The ResultSet of whichever state finished the search
        """
        state = SearchState.SEMANTIC_ATTEMPT if self.semantic_available else SearchState.LEXICAL_ATTEMPT
        result = ResultSet()

        while state is not SearchState.DONE:
            if state is SearchState.SEMANTIC_ATTEMPT:
                semantic = await self._attempt_semantic(filter, tenant_id, correlation_id)
                if semantic is not None and not semantic.is_empty:
                    result = semantic
                    state = SearchState.DONE
                else:
                    state = SearchState.LEXICAL_ATTEMPT

            elif state is SearchState.LEXICAL_ATTEMPT:
                result = await self._attempt_lexical(filter, tenant_id, correlation_id)
                if result.search_failed or not result.is_empty:
                    state = SearchState.DONE
                else:
                    state = SearchState.EMPTY

            elif state is SearchState.EMPTY:
                # Lexical search worked and found nothing: result already says so
                state = SearchState.DONE

        await self._audit.log_search_completed(
            search_type=result.search_type.value,
            result_count=result.count,
            search_failed=result.search_failed,
            correlation_id=correlation_id,
        )
        return result

    # =========================================================================
    # SEMANTIC
    # =========================================================================

    async def _attempt_semantic(
        self,
        filter: ResolvedFilter,
        tenant_id: str,
        correlation_id: Optional[UUID],
    ) -> Optional[ResultSet]:
        """None means fall through to lexical search."""
        if not filter.query_text.strip():
            return None

        try:
            return await asyncio.wait_for(
                self._semantic_search(filter, tenant_id),
                timeout=self._settings.semantic_timeout_seconds,
            )
        except asyncio.TimeoutError:
            await self._audit.log_semantic_search_failed(
                error_message=f"Timed out after {self._settings.semantic_timeout_seconds}s",
                timed_out=True,
                correlation_id=correlation_id,
            )
        except Exception as e:
            await self._audit.log_semantic_search_failed(
                error_message=str(e),
                timed_out=False,
                correlation_id=correlation_id,
            )
        return None

    async def _semantic_search(self, filter: ResolvedFilter, tenant_id: str) -> ResultSet:
        vector = await self._embedder.embed(filter.query_text)
        items = await self._similarity_index.similarity_search(
            vector,
            tenant_id,
            self._settings.similarity_threshold,
            self._settings.similarity_max_results,
        )

        rows = [row for row in group_by_receipt(items) if filter.matches(row)]
        total = sum(row.total_amount for row in rows)
        return ResultSet(
            rows=rows,
            search_type=SearchType.SEMANTIC,
            summary=f"Found {len(rows)} semantically similar receipts totaling {format_currency(total)}",
            date_range=describe_filter_range(filter),
        )

    # =========================================================================
    # LEXICAL
    # =========================================================================

    async def _attempt_lexical(
        self,
        filter: ResolvedFilter,
        tenant_id: str,
        correlation_id: Optional[UUID],
    ) -> ResultSet:
        try:
            receipts = await self._store.list_receipts(
                tenant_id,
                date_from=filter.date_start,
                date_to=filter.date_end,
                min_amount=filter.min_amount,
                limit=self._settings.search_page_limit,
            )
        except Exception as e:
            await self._audit.log_external_service_error(
                service="record_store",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return ResultSet.failed(SearchType.BASIC)

        vendors: dict[str, VendorRecord] = {}
        vendor_ids = list(dict.fromkeys(r.vendor_id for r in receipts if r.vendor_id))
        if vendor_ids:
            try:
                vendors = {v.id: v for v in await self._store.get_vendors(vendor_ids)}
            except Exception as e:
                await self._audit.log_vendor_lookup_failed(
                    vendor_count=len(vendor_ids),
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                if filter.vendor_term:
                    # Without names the vendor filter cannot be applied honestly
                    return ResultSet.failed(SearchType.BASIC)

        rows = [join_vendor(receipt, vendors.get(receipt.vendor_id)) for receipt in receipts]
        if filter.vendor_term:
            term = filter.vendor_term.lower()
            rows = [row for row in rows if term in row.vendor_name.lower()]

        total = sum(row.total_amount for row in rows)
        summary = f"Found {len(rows)} receipts totaling {format_currency(total)}"
        if filter.vendor_term:
            summary += f" from {filter.vendor_term}"
        if filter.date_description:
            summary += f" {filter.date_description}"

        return ResultSet(
            rows=rows,
            search_type=SearchType.BASIC,
            summary=summary,
            date_range=describe_filter_range(filter),
        )


# =============================================================================
# ROW BUILDING
# =============================================================================

def group_by_receipt(items: list[SimilarLineItem]) -> list[RecordRow]:
    """
    Collapse line-item hits into one row per receipt.

    Each row keeps its best similarity score and counts its matching
    line items. Rows come back most similar first.
    """
    grouped: dict[str, dict] = {}
    for item in items:
        entry = grouped.get(item.receipt_id)
        if entry is None:
            grouped[item.receipt_id] = {
                "id": item.receipt_id,
                "receipt_date": item.receipt_date,
                "total_amount": item.receipt_total_amount,
                "vendor_name": item.vendor_name,
                "vendor_category": item.vendor_category,
                "line_items_count": 1,
                "similarity_score": item.similarity_score,
            }
        else:
            entry["line_items_count"] += 1
            entry["similarity_score"] = max(entry["similarity_score"], item.similarity_score)

    rows = [RecordRow(**entry) for entry in grouped.values()]
    return sorted(rows, key=lambda row: row.similarity_score, reverse=True)


def join_vendor(receipt: StoredReceipt, vendor: Optional[VendorRecord]) -> RecordRow:
    """Attach vendor display fields; missing vendors get the defaults."""
    return RecordRow(
        id=receipt.id,
        receipt_date=receipt.receipt_date,
        total_amount=receipt.total_amount,
        vendor_name=vendor.name if vendor else None,
        vendor_category=vendor.category if vendor else None,
    )


def describe_filter_range(filter: ResolvedFilter) -> str:
    """'2024-03-01 to 2024-03-15 (this month)', or 'All time'."""
    if not filter.has_date_range:
        return "All time"
    start = filter.date_start.isoformat() if filter.date_start else "All time"
    end = filter.date_end.isoformat() if filter.date_end else "Now"
    span = f"{start} to {end}"
    if filter.date_description:
        span += f" ({filter.date_description})"
    return span
