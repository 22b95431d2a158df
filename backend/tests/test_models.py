"""
Tests for the token record and the age, freshness and ranking helpers.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from conftest import NOW
from hypescreener.discovery.models import (
    TokenRecord,
    format_age,
    is_fresh,
    parse_age_hours,
    parse_timestamp,
    rank_tokens,
)


class TestTokenRecord:
    """Test suite for TokenRecord."""

    def test_public_shape_uses_camel_case(self):
        token = TokenRecord(address="Mint111", market_cap=1.5, hype_score=70, x_mentions=3)
        data = token.to_public()

        assert data["address"] == "Mint111"
        assert data["marketCap"] == 1.5
        assert data["hypeScore"] == 70
        assert data["xMentions"] == 3
        assert data["chartData"] == []
        assert data["sponsored"] is False
        assert data["name"] == "Unknown"
        assert data["age"] == "N/A"

    def test_accepts_camel_case_and_string_values(self):
        token = TokenRecord.model_validate({
            "name": "Foo",
            "address": "Mint111",
            "marketCap": "1200.5",
            "hypeScore": "82",
            "chartData": "[10.0, 11.5]",
            "sponsored": "true",
            "price": "",
        })

        assert token.market_cap == 1200.5
        assert token.hype_score == 82
        assert token.chart_data == [10.0, 11.5]
        assert token.sponsored is True
        assert token.price == 0.0

    def test_empty_name_defaults(self):
        assert TokenRecord(name=None, address="Mint111").name == "Unknown"
        assert TokenRecord(name="", address="Mint111").name == "Unknown"

    def test_non_text_name_and_symbol_are_treated_as_missing(self):
        token = TokenRecord(name=123, symbol=7, address="Mint111")

        assert token.name == "Unknown"
        assert token.symbol is None

    def test_address_is_required(self):
        with pytest.raises(ValueError):
            TokenRecord(address="")


class TestAgeHelpers:
    """Test suite for age parsing and formatting."""

    @pytest.mark.parametrize("hours,expected", [
        (0.2, "0h"),
        (3.99, "3h"),
        (11.5, "11h"),
        (-0.5, "0h"),
    ])
    def test_format_age(self, hours, expected):
        assert format_age(hours) == expected

    @pytest.mark.parametrize("age,expected", [
        ("3h", 3),
        ("0h", 0),
        ("12h", 12),
        ("N/A", None),
        ("", None),
        (None, None),
    ])
    def test_parse_age_hours(self, age, expected):
        assert parse_age_hours(age) == expected


class TestParseTimestamp:
    """Test suite for parse_timestamp."""

    def test_iso_with_z(self):
        parsed = parse_timestamp("2024-06-01T10:00:00Z")
        assert parsed == datetime(2024, 6, 1, 10, tzinfo=timezone.utc)

    def test_naive_iso_is_utc(self):
        parsed = parse_timestamp("2024-06-01T10:00:00")
        assert parsed.tzinfo is not None
        assert parsed == datetime(2024, 6, 1, 10, tzinfo=timezone.utc)

    def test_epoch_milliseconds(self):
        ms = int(datetime(2024, 6, 1, 10, tzinfo=timezone.utc).timestamp() * 1000)
        assert parse_timestamp(ms) == datetime(2024, 6, 1, 10, tzinfo=timezone.utc)
        assert parse_timestamp(str(ms)) == datetime(2024, 6, 1, 10, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "yesterday", True, {"t": 1}])
    def test_unreadable_values(self, value):
        assert parse_timestamp(value) is None


class TestFreshness:
    """Test suite for the freshness window."""

    def test_eleven_hours_is_fresh(self):
        assert is_fresh(NOW - timedelta(hours=11), 12, NOW)

    def test_thirteen_hours_is_stale(self):
        assert not is_fresh(NOW - timedelta(hours=13), 12, NOW)

    def test_window_boundary_is_exclusive(self):
        assert not is_fresh(NOW - timedelta(hours=12), 12, NOW)

    def test_unknown_creation_time_is_stale(self):
        assert not is_fresh(None, 12, NOW)

    def test_future_timestamp_is_fresh(self):
        assert is_fresh(NOW + timedelta(minutes=5), 12, NOW)


class TestRankTokens:
    """Test suite for rank_tokens."""

    @staticmethod
    def tokens(scores):
        return [TokenRecord(address=f"Mint{i}", hype_score=s) for i, s in enumerate(scores)]

    def test_top_five_in_descending_order(self):
        ranked = rank_tokens(self.tokens([60, 90, 40, 50, 80, 70, 65]), limit=5)
        assert [t.hype_score for t in ranked] == [90, 80, 70, 65, 60]

    def test_exact_five(self):
        ranked = rank_tokens(self.tokens([70, 50, 90, 60, 80]), limit=5)
        assert [t.hype_score for t in ranked] == [90, 80, 70, 60, 50]

    def test_ties_keep_incoming_order(self):
        ranked = rank_tokens(self.tokens([70, 80, 70, 80]))
        assert [t.address for t in ranked] == ["Mint1", "Mint3", "Mint0", "Mint2"]

    def test_fewer_than_limit(self):
        assert len(rank_tokens(self.tokens([70, 80]), limit=5)) == 2
        assert rank_tokens([], limit=5) == []
