"""Tests for reply composition."""

from datetime import date

import pytest

from clearspend.config.settings import DEFAULT_KNOWN_VENDORS
from clearspend.models.receipt import RecordRow, ResolvedFilter, ResultSet, SearchType
from clearspend.queries.composer import HELP_REPLY, SEARCH_FAILED_REPLY, ResponseComposer
from clearspend.queries.formatting import format_currency, format_date
from tests.fakes import REFERENCE_NOW


@pytest.fixture
def composer():
    return ResponseComposer(DEFAULT_KNOWN_VENDORS.split(","))


@pytest.fixture
def rows():
    return [
        RecordRow(id="1", receipt_date=date(2024, 3, 10), total_amount=5.75, vendor_name="Starbucks", vendor_category="Coffee"),
        RecordRow(id="2", receipt_date=date(2024, 3, 2), total_amount=6.25, vendor_name="Starbucks", vendor_category="Coffee"),
        RecordRow(id="3", receipt_date=date(2024, 2, 20), total_amount=84.10, vendor_name="Target", vendor_category="Retail"),
    ]


@pytest.fixture
def results(rows):
    return ResultSet(rows=rows, search_type=SearchType.BASIC)


EMPTY = ResultSet(rows=[])
NO_FILTER = ResolvedFilter()


class TestFormatting:
    def test_currency(self):
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(0) == "$0.00"

    def test_date(self):
        assert format_date(date(2024, 3, 5)) == "3/5/2024"


class TestIntentPrecedence:
    """The first matching rule wins."""

    @pytest.mark.parametrize("message, intent", [
        ("show me all receipts", "show_all"),
        ("all", "show_all"),
        ("debug receipts", "show_all"),
        ("total spent at the store", "totals"),
        ("which vendor this month", "vendor"),
        ("recent purchases", "recency"),
        ("spending by category", "category"),
        ("help", "help"),
        ("what date is it", "debug_date"),
        ("coffee", "default"),
    ])
    def test_detect_intent(self, composer, message, intent):
        assert composer.detect_intent(message).name == intent

    def test_rule_order(self, composer):
        assert composer.rule_names == [
            "show_all", "totals", "vendor", "recency", "category", "help", "debug_date", "default",
        ]


class TestDataBranches:
    """Replies built from the result set."""

    def test_show_all_with_no_rows(self, composer):
        text = composer.compose("show me all receipts", EMPTY, NO_FILTER, REFERENCE_NOW)
        assert "No receipts found" in text

    def test_show_all_lists_newest_first(self, composer, results):
        text = composer.compose("show me all receipts", results, NO_FILTER, REFERENCE_NOW)
        assert text.startswith("Found 3 total receipts worth $96.10.")
        assert text.index("3/10/2024") < text.index("2/20/2024")

    def test_show_all_debug_info(self, composer, results):
        text = composer.compose("debug receipts", results, NO_FILTER, REFERENCE_NOW)
        assert "DEBUG INFO:" in text
        assert "System date: 3/15/2024" in text

    def test_totals_with_breakdown(self, composer, results):
        text = composer.compose("how much have I spent", results, NO_FILTER, REFERENCE_NOW)
        assert text.startswith("You've spent $96.10 across 3 receipts.")
        assert "• Target: $84.10 (2/20/2024)" in text

    def test_totals_no_rows_names_the_period(self, composer):
        filter = ResolvedFilter(date_description="last month")
        text = composer.compose("total spent last month", EMPTY, filter, REFERENCE_NOW)
        assert text.startswith("No receipts found for last month")

    def test_vendor_breakdown(self, composer, results):
        text = composer.compose("top vendors", results, NO_FILTER, REFERENCE_NOW)
        assert "Top vendors:" in text
        assert text.index("Target: $84.10") < text.index("Starbucks: $12.00")

    def test_vendor_no_rows_names_vendor(self, composer):
        filter = ResolvedFilter(vendor_term="costco")
        text = composer.compose("costco store receipts", EMPTY, filter, REFERENCE_NOW)
        assert text.startswith("No receipts found for Costco")

    def test_recency_reply(self, composer, results):
        filter = ResolvedFilter(date_description="this month")
        text = composer.compose("this month", results, filter, REFERENCE_NOW)
        assert text.startswith("Your spending this month totals $96.10 across 3 receipts:")

    def test_recency_no_rows(self, composer):
        filter = ResolvedFilter(date_description="yesterday")
        text = composer.compose("yesterday", EMPTY, filter, REFERENCE_NOW)
        assert text.startswith("No receipts found for yesterday.")

    def test_category_breakdown(self, composer, results):
        text = composer.compose("by category", results, NO_FILTER, REFERENCE_NOW)
        assert "• Retail: $84.10" in text
        assert "• Coffee: $12.00" in text

    def test_default_known_vendor(self, composer, results):
        text = composer.compose("starbucks?", results, NO_FILTER, REFERENCE_NOW)
        assert text == "You spent $12.00 at Starbucks across 2 receipts."

    def test_default_known_vendor_missing(self, composer, results):
        text = composer.compose("amazon orders", results, NO_FILTER, REFERENCE_NOW)
        assert text.startswith("I couldn't find any receipts from Amazon.")

    def test_default_names_largest_expense(self, composer, results):
        text = composer.compose("coffee", results, NO_FILTER, REFERENCE_NOW)
        assert "Your largest expense was from Target." in text

    def test_default_no_rows_with_month(self, composer):
        filter = ResolvedFilter(date_description="March 2023")
        text = composer.compose("march 2023", EMPTY, filter, REFERENCE_NOW)
        assert text.startswith("No receipts found for March 2023.")

    def test_default_no_rows_without_constraints(self, composer):
        text = composer.compose("coffee", EMPTY, NO_FILTER, REFERENCE_NOW)
        assert text.startswith("I didn't find any receipts matching your query.")

    def test_semantic_phrasing(self, composer, rows):
        semantic = ResultSet(rows=rows, search_type=SearchType.SEMANTIC)
        text = composer.compose("coffee", semantic, NO_FILTER, REFERENCE_NOW)
        assert "3 semantically similar receipts" in text


class TestStaticAndFailedBranches:
    """Static branches ignore data; data branches report failures."""

    def test_search_failed_on_data_branches(self, composer):
        failed = ResultSet.failed()
        for message in ("show me all receipts", "total", "vendors", "this month", "coffee"):
            text = composer.compose(message, failed, NO_FILTER, REFERENCE_NOW)
            assert text == SEARCH_FAILED_REPLY
            assert text.startswith("Search failed")

    def test_help_is_static(self, composer, results):
        assert composer.compose("help", results, NO_FILTER, REFERENCE_NOW) == HELP_REPLY
        assert composer.compose("help", ResultSet.failed(), NO_FILTER, REFERENCE_NOW) == HELP_REPLY

    def test_debug_date_uses_reference_now(self, composer):
        text = composer.compose("what date is it", EMPTY, NO_FILTER, date(2025, 7, 4))
        assert text.startswith("System date is: 7/4/2025 (2025-07-04)")
        assert "July 2025" in text
