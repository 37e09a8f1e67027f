"""Query resolution package."""

from clearspend.queries.composer import ResponseComposer
from clearspend.queries.dates import DateRangeResolver
from clearspend.queries.entities import EntityExtractor
from clearspend.queries.executor import SearchExecutor, SearchState
from clearspend.queries.followups import ContextualReferenceResolver, FollowUpKind

__all__ = [
    "ContextualReferenceResolver",
    "DateRangeResolver",
    "EntityExtractor",
    "FollowUpKind",
    "ResponseComposer",
    "SearchExecutor",
    "SearchState",
]
