"""
Core Data Models for the ClearSpend Assistant

These models define the strict schemas for all data flowing through
the query resolver. They are designed to:
1. Make optional constraints explicit (None means unconstrained)
2. Be serializable so the caller can echo results back next turn
3. Keep derived values derived (totals are never stored)

DESIGN DECISION: Every entity here lives for exactly one request.
The only thing that survives a request is the serialized ResultSet,
which the client sends back as the next turn's prior result set.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


UNKNOWN_VENDOR = "Unknown Vendor"
UNCATEGORIZED = "Uncategorized"


# =============================================================================
# ENUMS
# =============================================================================

class SearchType(str, Enum):
    """
    Which strategy produced a result set.

    Used to phrase the reply ("semantically similar receipts" vs "receipts").
    """
    SEMANTIC = "semantic"
    BASIC = "basic"
    CONTEXTUAL = "contextual"


# =============================================================================
# RECORD STORE MODELS
# =============================================================================

class StoredReceipt(BaseModel):
    """A receipt row as the record store returns it (vendor not yet joined)."""

    model_config = ConfigDict(frozen=True)

    id: str
    receipt_date: date
    total_amount: float = Field(default=0.0)
    vendor_id: Optional[str] = None


class VendorRecord(BaseModel):
    """Vendor lookup result, keyed by vendor id."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    name: str
    category: Optional[str] = None


class SimilarLineItem(BaseModel):
    """
    A receipt line item returned by similarity search.

    Carries the parent receipt's fields so results can be grouped
    by receipt without a second lookup.
    """

    model_config = ConfigDict(frozen=True)

    line_item_id: str
    receipt_id: str
    receipt_date: date
    receipt_total_amount: float = 0.0
    vendor_name: Optional[str] = None
    vendor_category: Optional[str] = None
    similarity_score: float = Field(ge=-1.0, le=1.0)


# =============================================================================
# QUERY MODELS
# =============================================================================

class RecordRow(BaseModel):
    """
    One receipt in a result set.

    Owned by the record store; the resolver treats it as read-only.
    This is also the shape the client echoes back as relevantReceipts.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    receipt_date: Optional[date] = None
    total_amount: float = 0.0
    vendor_name: str = UNKNOWN_VENDOR
    vendor_category: str = UNCATEGORIZED
    tags: list[str] = Field(default_factory=list)
    line_items_count: int = Field(default=0, ge=0)
    similarity_score: Optional[float] = None

    @field_validator("total_amount", mode="before")
    @classmethod
    def missing_amount_is_zero(cls, v):
        """Echoed rows may carry null amounts."""
        return 0.0 if v is None else v

    @field_validator("vendor_name", mode="before")
    @classmethod
    def missing_vendor_is_unknown(cls, v):
        return v or UNKNOWN_VENDOR

    @field_validator("vendor_category", mode="before")
    @classmethod
    def missing_category_is_uncategorized(cls, v):
        return v or UNCATEGORIZED


class ResultSet(BaseModel):
    """
    Rows matching a filter plus the strategy that produced them.

    INVARIANT: total_amount is always the sum of rows[].total_amount.
    It is computed on access and never stored, so it cannot drift.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    rows: list[RecordRow] = Field(default_factory=list)
    search_type: SearchType = SearchType.BASIC
    summary: str = ""
    search_failed: bool = False
    date_range: Optional[str] = Field(
        default=None,
        description="Human-readable span the search covered"
    )

    @computed_field
    @property
    def total_amount(self) -> float:
        return sum(row.total_amount for row in self.rows)

    @property
    def count(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    @classmethod
    def failed(cls, search_type: SearchType = SearchType.BASIC) -> "ResultSet":
        """The exit value of a search whose store call failed."""
        return cls(rows=[], search_type=search_type, summary="Search failed", search_failed=True)


class DateRange(BaseModel):
    """Concrete calendar bounds resolved from a temporal phrase (inclusive)."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date
    description: str


class PartialFilter(BaseModel):
    """
    Filters the caller's UI already applied.

    All fields optional. Natural-language date phrases in the message
    take precedence over start_date/end_date.
    """

    model_config = ConfigDict(extra="ignore")

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = Field(
        default=None,
        description="Free-text vendor term"
    )
    min_amount: Optional[float] = Field(default=None, ge=0)


class ResolvedFilter(BaseModel):
    """
    The immutable set of constraints derived from one conversational turn.

    Absence of a field means the dimension is unconstrained.
    """

    model_config = ConfigDict(frozen=True)

    date_start: Optional[date] = None
    date_end: Optional[date] = None
    vendor_term: Optional[str] = None
    min_amount: Optional[float] = None
    date_description: Optional[str] = None

    # Raw message, used as the semantic search query
    query_text: str = ""
    # "debug receipts" / "all dates": date bounds were deliberately dropped
    debug_mode: bool = False

    @property
    def has_date_range(self) -> bool:
        return self.date_start is not None or self.date_end is not None

    @property
    def is_unconstrained(self) -> bool:
        return (
            not self.has_date_range
            and self.vendor_term is None
            and self.min_amount is None
        )

    def matches(self, row: RecordRow) -> bool:
        """Apply every constraint to an already-fetched row."""
        if self.date_start and (row.receipt_date is None or row.receipt_date < self.date_start):
            return False
        if self.date_end and (row.receipt_date is None or row.receipt_date > self.date_end):
            return False
        if self.min_amount is not None and row.total_amount < self.min_amount:
            return False
        if self.vendor_term and self.vendor_term.lower() not in row.vendor_name.lower():
            return False
        return True


class ConversationTurn(BaseModel):
    """
    One incoming user message plus whatever the client carried forward.

    Ephemeral: exists only for the duration of one request.
    """

    message: str
    prior_result_set: Optional[ResultSet] = None
    explicit_filters: Optional[PartialFilter] = None


class Reply(BaseModel):
    """The assistant's answer. result_set becomes the next prior_result_set."""

    text: str
    result_set: ResultSet


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'too_long', 'inverted_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating an incoming chat turn."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def first_error(self) -> Optional[ValidationIssue]:
        return next((i for i in self.issues if i.severity == "error"), None)
