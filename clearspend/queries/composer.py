"""
Reply Composition

DESIGN DECISION: Replies are TEMPLATED, never generated.
Every number in a reply comes from the ResultSet; nothing is estimated.

Intent is picked from an ordered rule table. The first rule whose
predicate matches the message wins, so precedence is the order of
INTENT_RULES and nothing else:

    show_all > totals > vendor > recency > category > help > debug_date > default

Static rules (help, debug_date) ignore the result set entirely.
Every other rule answers "Search failed: ..." when the search failed.
"""

from datetime import date
from typing import Callable, NamedTuple, Optional

from clearspend.models.receipt import RecordRow, ResolvedFilter, ResultSet, SearchType
from clearspend.queries.followups import top_vendors
from clearspend.queries.formatting import format_currency, format_date, plural


SHOW_ALL_PHRASES = ("all receipts", "show me all", "debug receipts", "all dates")
TOTAL_WORDS = ("total", "sum", "spent")
VENDOR_WORDS = ("vendor", "merchant", "store")
RECENCY_WORDS = (
    "recent", "latest", "today", "yesterday",
    "this week", "last week", "current week", "past week",
    "this month", "last month", "current month",
    "this year", "last year", "current year",
)
CATEGORY_WORDS = ("category", "tag")
HELP_PHRASES = ("help", "what can you do")
DEBUG_DATE_PHRASES = ("what date", "current date", "system date")

SHOW_ALL_LIMIT = 10
SHORT_LIST_LIMIT = 5

SEARCH_FAILED_REPLY = (
    "Search failed: I couldn't reach your receipts right now. "
    "Please try again in a moment."
)

HELP_REPLY = """I'm your ClearSpendly AI assistant! I can help you:

• Analyze spending: "What's my total spending this month?"
• Find receipts: "Show me all Starbucks receipts"
• Vendor analysis: "Which vendor do I spend the most with?"
• Time-based queries: "What did I spend last week?"
• Category insights: "Show me travel expenses"
• Export guidance: "How do I export my data?"

Just ask me anything about your receipts!"""


class IntentRule(NamedTuple):
    name: str
    predicate: Callable[[str], bool]
    handler: Callable[..., str]
    static: bool


def _any(words: tuple[str, ...]) -> Callable[[str], bool]:
    return lambda message: any(word in message for word in words)


def _show_all(message: str) -> bool:
    return message == "all" or any(phrase in message for phrase in SHOW_ALL_PHRASES)


class ResponseComposer:
    """Turns a result set and the user's wording into reply text."""

    def __init__(self, known_vendors: Optional[list[str]] = None):
        self._known_vendors = [v.lower() for v in (known_vendors or [])]
        self._rules = [
            IntentRule("show_all", _show_all, self._compose_show_all, False),
            IntentRule("totals", _any(TOTAL_WORDS), self._compose_totals, False),
            IntentRule("vendor", _any(VENDOR_WORDS), self._compose_vendors, False),
            IntentRule("recency", _any(RECENCY_WORDS), self._compose_recency, False),
            IntentRule("category", _any(CATEGORY_WORDS), self._compose_categories, False),
            IntentRule("help", _any(HELP_PHRASES), self._compose_help, True),
            IntentRule("debug_date", _any(DEBUG_DATE_PHRASES), self._compose_debug_date, True),
            IntentRule("default", lambda message: True, self._compose_default, False),
        ]

    @property
    def rule_names(self) -> list[str]:
        return [rule.name for rule in self._rules]

    def detect_intent(self, intent_signal: str) -> IntentRule:
        """First rule whose predicate matches the lower-cased message."""
        message = (intent_signal or "").strip().lower()
        return next(rule for rule in self._rules if rule.predicate(message))

    def compose(
        self,
        intent_signal: str,
        result_set: ResultSet,
        filter: ResolvedFilter,
        reference_now: date,
    ) -> str:
        """
        Produce the reply text.

        Args:
            intent_signal: The user's raw message
            result_set: What the search returned
            filter: The filter the search ran with
            reference_now: The request's "today"
        """
        message = (intent_signal or "").strip().lower()
        rule = self.detect_intent(message)
        if result_set.search_failed and not rule.static:
            return SEARCH_FAILED_REPLY
        return rule.handler(message, result_set, filter, reference_now)

    # =========================================================================
    # DATA BRANCHES
    # =========================================================================

    def _compose_show_all(self, message, result_set, filter, now) -> str:
        if result_set.is_empty:
            return "No receipts found in the system. Try uploading some receipts first!"

        newest = newest_first(result_set.rows)
        lines = "\n".join(receipt_line(row) for row in newest[:SHOW_ALL_LIMIT])
        text = (
            f"Found {result_set.count} total {self._noun(result_set)} worth "
            f"{format_currency(result_set.total_amount)}. Here are the most recent:\n\n{lines}"
        )
        if result_set.count > SHOW_ALL_LIMIT:
            text += f"\n\n...and {result_set.count - SHOW_ALL_LIMIT} more receipts"
        if "debug" in message:
            sample = ", ".join(format_date(row.receipt_date) for row in newest[:3])
            text += (
                f"\n\nDEBUG INFO:\nSystem date: {format_date(now)} ({now.isoformat()})"
                f"\nReceipt dates found: {sample}"
            )
        return text

    def _compose_totals(self, message, result_set, filter, now) -> str:
        if result_set.is_empty:
            return self._no_results(
                filter,
                "I didn't find any receipts matching your query. "
                "Try adjusting your search terms or date range.",
            )

        summary = (
            f"You've spent {format_currency(result_set.total_amount)} across "
            f"{result_set.count} {self._noun(result_set)}."
        )
        if result_set.count <= SHORT_LIST_LIMIT:
            breakdown = "\n".join(receipt_line(row) for row in result_set.rows)
            return f"{summary}\n\nBreakdown:\n{breakdown}"
        return f"{summary} Would you like me to break this down by vendor, category, or time period?"

    def _compose_vendors(self, message, result_set, filter, now) -> str:
        if result_set.is_empty:
            return self._no_results(
                filter,
                "I didn't find any receipts from that vendor. "
                "Try checking the spelling or looking for similar vendor names.",
            )

        vendors = "\n".join(
            f"• {vendor}: {format_currency(amount)}"
            for vendor, amount in top_vendors(result_set.rows)
        )
        return (
            f"Found {result_set.count} {self._noun(result_set)} totaling "
            f"{format_currency(result_set.total_amount)}.\n\nTop vendors:\n{vendors}"
        )

    def _compose_recency(self, message, result_set, filter, now) -> str:
        if result_set.is_empty:
            description = filter.date_description or "that time period"
            return (
                f"No receipts found for {description}. "
                "Try uploading some receipts or asking about a different date range."
            )

        recent = "\n".join(
            receipt_line(row) for row in newest_first(result_set.rows)[:SHORT_LIST_LIMIT]
        )
        period = f" {filter.date_description}" if filter.date_description else ""
        noun = "receipt" if result_set.count == 1 else "receipts"
        if result_set.search_type is SearchType.SEMANTIC:
            noun = f"semantically similar {noun}"
        return (
            f"Your spending{period} totals {format_currency(result_set.total_amount)} "
            f"across {result_set.count} {noun}:\n\n{recent}"
        )

    def _compose_categories(self, message, result_set, filter, now) -> str:
        header = (
            f"Found {result_set.count} {self._noun(result_set)} totaling "
            f"{format_currency(result_set.total_amount)}."
        )
        if result_set.is_empty:
            return self._no_results(filter, header)

        totals: dict[str, float] = {}
        for row in result_set.rows:
            totals[row.vendor_category] = totals.get(row.vendor_category, 0.0) + row.total_amount
        categories = "\n".join(
            f"• {category}: {format_currency(amount)}"
            for category, amount in sorted(totals.items(), key=lambda item: item[1], reverse=True)
        )
        return (
            f"{header}\n\nBy category:\n{categories}\n\n"
            "To see tag breakdowns, make sure your receipts are properly tagged. "
            "You can add tags by clicking on any receipt in the table."
        )

    def _compose_default(self, message, result_set, filter, now) -> str:
        if result_set.is_empty:
            if filter.date_description or filter.vendor_term:
                return (
                    f"No receipts found for {describe_filter(filter)}. "
                    "Your receipts might be from a different time period. "
                    "Try asking \"show me all receipts\" to see what's available."
                )
            return (
                "I didn't find any receipts matching your query. Try:\n"
                "• Using different keywords\n"
                "• Adjusting your date range\n"
                "• Checking vendor names\n"
                "• Or ask \"help\" to see what I can do!"
            )

        vendor = next((v for v in self._known_vendors if v in message), None)
        if vendor:
            display = vendor.title()
            matching = [row for row in result_set.rows if vendor in row.vendor_name.lower()]
            if matching:
                spent = sum(row.total_amount for row in matching)
                return (
                    f"You spent {format_currency(spent)} at {display} "
                    f"across {plural(len(matching), 'receipt')}."
                )
            return (
                f"I couldn't find any receipts from {display}. You have {result_set.count} "
                f"other receipts totaling {format_currency(result_set.total_amount)}."
            )

        largest = max(result_set.rows, key=lambda row: row.total_amount)
        return (
            f"I found {result_set.count} {self._noun(result_set)} totaling "
            f"{format_currency(result_set.total_amount)}. Your largest expense was from "
            f"{largest.vendor_name}. What would you like to know about these expenses?"
        )

    # =========================================================================
    # STATIC BRANCHES
    # =========================================================================

    def _compose_help(self, message, result_set, filter, now) -> str:
        return HELP_REPLY

    def _compose_debug_date(self, message, result_set, filter, now) -> str:
        return (
            f"System date is: {format_date(now)} ({now.isoformat()})\n\n"
            "If your receipts are from a different time period, try:\n"
            "• \"show me all receipts\" to see what dates are available\n"
            f"• Ask for specific months like \"{now.strftime('%B')} {now.year}\" or \"last month\""
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _noun(self, result_set: ResultSet) -> str:
        if result_set.search_type is SearchType.SEMANTIC:
            return "semantically similar receipts"
        return "receipts"

    def _no_results(self, filter: ResolvedFilter, fallback: str) -> str:
        """Name the constraint that matched nothing, when there is one."""
        if filter.date_description or filter.vendor_term:
            return f"No receipts found for {describe_filter(filter)}."
        return fallback


def describe_filter(filter: ResolvedFilter) -> str:
    """'Starbucks last month', 'last month', 'Starbucks'."""
    parts = []
    if filter.vendor_term:
        parts.append(filter.vendor_term.title())
    if filter.date_description:
        parts.append(filter.date_description)
    return " ".join(parts)


def receipt_line(row: RecordRow) -> str:
    return f"• {row.vendor_name}: {format_currency(row.total_amount)} ({format_date(row.receipt_date)})"


def newest_first(rows: list[RecordRow]) -> list[RecordRow]:
    """Rows by date descending; undated rows last."""
    return sorted(
        rows,
        key=lambda row: (row.receipt_date is not None, row.receipt_date or date.min),
        reverse=True,
    )
