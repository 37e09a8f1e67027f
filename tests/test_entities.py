"""Tests for vendor and amount extraction."""

import pytest

from clearspend.config.settings import DEFAULT_KNOWN_VENDORS
from clearspend.queries.entities import EntityExtractor
from clearspend.models.receipt import PartialFilter


@pytest.fixture
def extractor():
    return EntityExtractor(DEFAULT_KNOWN_VENDORS.split(","))


class TestVendorExtraction:
    """Known vendors first, pattern guess second."""

    def test_known_vendor_substring(self, extractor):
        assert extractor.extract_vendor("How much at Starbucks?") == "starbucks"

    def test_multi_word_known_vendor(self, extractor):
        assert extractor.extract_vendor("anything from home depot") == "home depot"

    def test_known_vendor_beats_pattern(self, extractor):
        """'spent at lunch ... target' picks the configured vendor."""
        assert extractor.extract_vendor("spent at lunch near target") == "target"

    def test_pattern_fallback(self, extractor):
        assert extractor.extract_vendor("what did I spend at trader joes") == "trader"

    def test_pattern_skips_temporal_words(self, extractor):
        """'spent last month' has no vendor in it."""
        assert extractor.extract_vendor("how much have I spent last month") is None

    def test_pattern_continues_past_filler(self, extractor):
        assert extractor.extract_vendor("spent this week at wegmans") == "wegmans"

    def test_trigger_word_needs_boundary(self, extractor):
        """'that' contains 'at' but is not a trigger."""
        assert extractor.extract_vendor("what about that receipt") is None

    def test_no_vendor(self, extractor):
        assert extractor.extract_vendor("show me everything") is None
        assert extractor.extract_vendor("") is None

    def test_vendor_from_caller_filter(self, extractor):
        caller = PartialFilter(search="  Acme  ")
        assert extractor.vendor_from_caller(caller) == "acme"
        assert extractor.vendor_from_caller(PartialFilter()) is None
        assert extractor.vendor_from_caller(None) is None


class TestAmountExtraction:
    """First integer after over/above/more than."""

    @pytest.mark.parametrize("text, expected", [
        ("receipts over $50", 50.0),
        ("anything above 100", 100.0),
        ("more than $25 please", 25.0),
        ("More Than 7", 7.0),
    ])
    def test_amount_phrases(self, extractor, text, expected):
        assert extractor.extract_min_amount(text) == expected

    def test_no_amount(self, extractor):
        assert extractor.extract_min_amount("over there") is None
        assert extractor.extract_min_amount("spent $50") is None
        assert extractor.extract_min_amount("") is None
