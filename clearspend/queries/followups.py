"""
Follow-up Resolution Against the Previous Result Set

DESIGN DECISION: Follow-ups NEVER touch the record store.
"yes", "list them" or "more" refer to rows the client already holds,
so we answer from the prior result set the client echoed back.
If there is no prior result set we say so instead of inventing data.
"""

import re
from enum import Enum
from typing import Optional

from clearspend.models.receipt import RecordRow, Reply, ResultSet, SearchType
from clearspend.queries.formatting import describe_span, format_currency, format_date


SHORT_ACK_MAX_LENGTH = 10

AFFIRMATIVE_TOKENS = ("yes", "yeah", "yep", "ok", "okay", "sure", "please", "go ahead", "more", "continue")
NEGATIVE_TOKENS = ("no", "nope", "nah", "stop", "cancel")
DETAIL_TOKENS = ("details", "breakdown")
SHORT_ACK_TOKENS = AFFIRMATIVE_TOKENS + NEGATIVE_TOKENS + DETAIL_TOKENS

FOLLOW_UP_PHRASES = (
    "list them",
    "show them",
    "show me them",
    "what are they",
    "which ones",
    "tell me more",
    "break it down",
    "breakdown",
    "details about those",
    "more about those",
    "those receipts",
)
BREAKDOWN_PHRASES = ("break it down", "breakdown")

BREAKDOWN_TOP_VENDORS = 5

NOTHING_TO_RESOLVE = (
    "I don't have any previous results to show. "
    "Please ask a specific question first."
)
DECLINE_REPLY = (
    "No problem! Feel free to ask me anything else about your receipts. I can help you:\n"
    "• Find specific expenses\n"
    "• Analyze spending by vendor\n"
    "• Look at spending over time\n"
    "• Export your data\n\n"
    "What would you like to explore?"
)


class FollowUpKind(str, Enum):
    """How a follow-up is answered."""
    BREAKDOWN = "breakdown"
    LISTING = "listing"
    DECLINE = "decline"


def _contains_word(text: str, token: str) -> bool:
    return re.search(rf"\b{re.escape(token)}\b", text) is not None


class ContextualReferenceResolver:
    """
    Answers short acknowledgements and follow-up phrases.

    resolve() returns None whenever the message should go through the
    normal filter/search pipeline instead.
    """

    def is_short_ack(self, text: str) -> bool:
        """
        A terse reply like "yes" or "ok".

        The length gate keeps "no thank you very much" out.
        """
        lowered = (text or "").strip().lower()
        if not lowered or len(lowered) > SHORT_ACK_MAX_LENGTH:
            return False
        return any(lowered == token or token in lowered for token in SHORT_ACK_TOKENS)

    def is_follow_up(self, text: str) -> bool:
        """A phrase that refers back to unnamed prior results."""
        lowered = (text or "").lower()
        return any(phrase in lowered for phrase in FOLLOW_UP_PHRASES)

    def classify(self, text: str) -> Optional[FollowUpKind]:
        """
        Decide how to answer, or None to defer.

        Short acks are matched on whole words, so "november" (which
        contains "no") is left to the date resolver.
        """
        lowered = (text or "").strip().lower()

        if self.is_short_ack(lowered):
            if any(_contains_word(lowered, t) for t in NEGATIVE_TOKENS):
                return FollowUpKind.DECLINE
            if any(_contains_word(lowered, t) for t in AFFIRMATIVE_TOKENS + DETAIL_TOKENS):
                return FollowUpKind.BREAKDOWN

        if self.is_follow_up(lowered):
            if any(phrase in lowered for phrase in BREAKDOWN_PHRASES):
                return FollowUpKind.BREAKDOWN
            return FollowUpKind.LISTING

        return None

    def resolve(self, text: str, prior: Optional[ResultSet]) -> Optional[Reply]:
        """
        Answer a follow-up from the prior result set.

        Args:
            text: The user's message
            prior: Result set from the previous reply, if the client sent one

        Returns:
            Reply with a contextual result set, or None to defer
        """
        kind = self.classify(text)
        if kind is None:
            return None

        rows = list(prior.rows) if prior is not None else []
        carried = ResultSet(
            rows=rows,
            search_type=SearchType.CONTEXTUAL,
            summary=f"Here are the {len(rows)} receipts from my previous response" if rows else "",
            date_range=prior.date_range if prior is not None else None,
        )

        if kind is FollowUpKind.DECLINE:
            return Reply(text=DECLINE_REPLY, result_set=carried)

        if not rows:
            return Reply(text=NOTHING_TO_RESOLVE, result_set=carried)

        if kind is FollowUpKind.BREAKDOWN:
            return Reply(text=self._vendor_breakdown(carried), result_set=carried)
        return Reply(text=self._listing(carried), result_set=carried)

    def _vendor_breakdown(self, result_set: ResultSet) -> str:
        lines = ["Here's your spending breakdown:", ""]
        for index, (vendor, amount) in enumerate(top_vendors(result_set.rows), start=1):
            lines.append(f"{index}. {vendor}: {format_currency(amount)}")

        lines.append("")
        lines.append(
            f"Total: {format_currency(result_set.total_amount)} "
            f"across {result_set.count} receipts"
        )
        span = describe_span(row.receipt_date for row in result_set.rows)
        if span:
            lines.append(f"Date range: {span}")
        return "\n".join(lines)

    def _listing(self, result_set: ResultSet) -> str:
        listing = "\n".join(
            f"{index}. {row.vendor_name}: {format_currency(row.total_amount)} - {format_date(row.receipt_date)}"
            for index, row in enumerate(result_set.rows, start=1)
        )
        return (
            f"Here are the {result_set.count} receipts:\n\n{listing}\n\n"
            f"Total: {format_currency(result_set.total_amount)}"
        )


def top_vendors(rows: list[RecordRow], limit: int = BREAKDOWN_TOP_VENDORS) -> list[tuple[str, float]]:
    """
    Vendors by summed amount, largest first.

    Ties keep first-encountered order (sorted() is stable and dicts
    keep insertion order).
    """
    totals: dict[str, float] = {}
    for row in rows:
        totals[row.vendor_name] = totals.get(row.vendor_name, 0.0) + row.total_amount
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)[:limit]
