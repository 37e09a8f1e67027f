"""
Vendor and Amount Extraction

DESIGN DECISION: Extraction is heuristic and order-sensitive.
A configured vendor term always beats a pattern guess, so "spent at
target last week" never turns "last" into a vendor. When nothing is
found we return None and the filter stays unconstrained.
"""

import re
from typing import Optional

from clearspend.models.receipt import PartialFilter


_VENDOR_PATTERN = re.compile(
    r"\b(?:spend|spent|at|from|vendor|store|merchant)\s+(?:at\s+)?(\w+)"
)
_AMOUNT_PATTERN = re.compile(r"\b(?:over|above|more\s+than)\s+\$?(\d+)")

# Words the vendor pattern catches that are never vendors
NON_VENDOR_WORDS = frozenset({
    "a", "all", "an", "any", "each", "every", "my", "our", "the", "this", "that",
    "these", "those", "last", "past", "next", "current", "previous",
    "today", "yesterday", "week", "month", "year", "days",
    "in", "on", "for", "over", "above", "under", "more", "less", "than",
    "about", "around", "me", "what", "which", "where", "there", "here",
    "receipts", "receipt", "stores", "vendors", "merchants",
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
})


class EntityExtractor:
    """Pulls vendor names and amount floors out of free text."""

    def __init__(self, known_vendors: list[str]):
        self._known_vendors = [v.strip().lower() for v in known_vendors if v.strip()]

    @property
    def known_vendors(self) -> list[str]:
        return list(self._known_vendors)

    def extract_vendor(self, text: str) -> Optional[str]:
        """
        Find a vendor term.

        Known vendors are matched first, in configured order. Otherwise
        the first word after spend/spent/at/from/vendor/store/merchant
        is used, unless it is a temporal or filler word.
        """
        if not text:
            return None
        lowered = text.lower()

        known = self.match_known_vendor(lowered)
        if known:
            return known

        for match in _VENDOR_PATTERN.finditer(lowered):
            candidate = match.group(1)
            if candidate in NON_VENDOR_WORDS or candidate.isdigit():
                continue
            return candidate
        return None

    def match_known_vendor(self, text: str) -> Optional[str]:
        """First configured vendor that appears anywhere in text."""
        lowered = text.lower()
        for vendor in self._known_vendors:
            if vendor in lowered:
                return vendor
        return None

    def extract_min_amount(self, text: str) -> Optional[float]:
        """First integer after over/above/more than, e.g. 'over $50' -> 50.0."""
        if not text:
            return None
        match = _AMOUNT_PATTERN.search(text.lower())
        if not match:
            return None
        return float(match.group(1))

    def vendor_from_caller(self, caller: Optional[PartialFilter]) -> Optional[str]:
        """The UI search box, when the message names no vendor."""
        if caller is None or not caller.search:
            return None
        term = caller.search.strip().lower()
        return term or None
