"""Tests for lead field helpers and named default parsers."""

from datetime import datetime

from lead_insight.discovery.fields import (
    amount_text,
    field_text,
    is_active,
    is_lost,
    is_won,
    parse_currency_or_zero,
    parse_date_or_none,
    parse_leading_float_or_none,
    parse_probability_or_zero,
    round_half_up,
    safe_pct,
)


# ---------------------------------------------------------------------------
# Cell access
# ---------------------------------------------------------------------------


class TestFieldText:
    def test_present(self):
        assert field_text({"a": "x"}, "a") == "x"

    def test_absent_defaults_to_empty(self):
        assert field_text({}, "a") == ""

    def test_empty_uses_default(self):
        assert field_text({"a": ""}, "a", "未設定") == "未設定"

    def test_number_as_text(self):
        assert field_text({"a": 12}, "a") == "12"

    def test_booleans(self):
        assert field_text({"a": True}, "a") == "true"
        assert field_text({"a": False}, "a", "d") == "d"


class TestClassification:
    def test_won_by_stage_substring(self):
        assert is_won({"ステージ": "S6 契約済"})

    def test_won_by_contract_cell(self):
        assert is_won({"ステージ": "S5", "契約": "2024/05/01"})

    def test_blank_contract_cell_not_won(self):
        assert not is_won({"ステージ": "S5", "契約": "   "})

    def test_lost_is_exact(self):
        assert is_lost({"ステージ": "失注"})
        assert not is_lost({"ステージ": "失注(再アプローチ)"})

    def test_active(self):
        assert is_active({"ステージ": "S4"})
        assert not is_active({"ステージ": "失注"})
        assert not is_active({"ステージ": "契約"})


class TestAmountText:
    def test_quote_preferred(self):
        assert amount_text({"見積り・提案": "100", "プラン": "200"}) == "100"

    def test_falls_back_to_plan(self):
        assert amount_text({"見積り・提案": "", "プラン": "200"}) == "200"


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


class TestParseDate:
    def test_iso(self):
        assert parse_date_or_none("2024-06-15") == datetime(2024, 6, 15)

    def test_slash(self):
        assert parse_date_or_none("2024/06/15") == datetime(2024, 6, 15)

    def test_slash_unpadded(self):
        assert parse_date_or_none("2024/6/5") == datetime(2024, 6, 5)

    def test_with_time(self):
        assert parse_date_or_none("2024/06/15 10:30") == datetime(2024, 6, 15, 10, 30)

    def test_iso_utc_suffix(self):
        assert parse_date_or_none("2024-06-12T10:00:00Z") == datetime(2024, 6, 12, 10, 0)

    def test_iso_milliseconds_utc(self):
        assert parse_date_or_none("2024-06-12T10:00:00.000Z") == datetime(2024, 6, 12, 10, 0)

    def test_iso_offset_converted_to_utc(self):
        assert parse_date_or_none("2024-06-12T09:00:00+09:00") == datetime(2024, 6, 12, 0, 0)

    def test_iso_milliseconds_naive(self):
        assert parse_date_or_none("2024-06-12T10:00:00.250") == datetime(2024, 6, 12, 10, 0, 0, 250000)

    def test_japanese(self):
        assert parse_date_or_none("2024年6月15日") == datetime(2024, 6, 15)

    def test_empty(self):
        assert parse_date_or_none("") is None
        assert parse_date_or_none("   ") is None
        assert parse_date_or_none(None) is None

    def test_garbage(self):
        assert parse_date_or_none("未定") is None

    def test_impossible_date(self):
        assert parse_date_or_none("2024-02-30") is None


class TestParseLeadingFloat:
    def test_percent(self):
        assert parse_leading_float_or_none("70%") == 70.0

    def test_decimal(self):
        assert parse_leading_float_or_none(" 12.5abc") == 12.5

    def test_no_leading_number(self):
        assert parse_leading_float_or_none("A(70%)") is None

    def test_none(self):
        assert parse_leading_float_or_none(None) is None


class TestParseCurrency:
    def test_yen_with_separators(self):
        assert parse_currency_or_zero("¥1,200,000") == 1_200_000.0

    def test_suffix(self):
        assert parse_currency_or_zero("500000円") == 500_000.0

    def test_empty(self):
        assert parse_currency_or_zero("") == 0.0
        assert parse_currency_or_zero(None) == 0.0

    def test_non_numeric(self):
        assert parse_currency_or_zero("要見積") == 0.0

    def test_negative(self):
        assert parse_currency_or_zero("-3,000") == -3000.0

    def test_lone_minus(self):
        assert parse_currency_or_zero("-") == 0.0


class TestParseProbability:
    def test_percent(self):
        assert parse_probability_or_zero("50%") == 50.0

    def test_missing(self):
        assert parse_probability_or_zero("") == 0.0

    def test_label_without_number(self):
        assert parse_probability_or_zero("高") == 0.0


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------


class TestRounding:
    def test_half_goes_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1

    def test_below_half(self):
        assert round_half_up(2.49) == 2


class TestSafePct:
    def test_normal(self):
        assert safe_pct(1, 4) == 25.0

    def test_zero_denominator(self):
        assert safe_pct(5, 0) == 0.0
