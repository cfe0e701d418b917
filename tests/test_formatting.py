"""Tests for value formatting and percentage conversion."""

from __future__ import annotations

import pytest

from analysis.chart_config_dto import ChartElement, Formatting
from analysis.dto import NA
from analysis.formatting import (
    CalculationOptions,
    effective_formatting,
    format_number,
    format_series,
    formatting_from_legacy_type,
    percentage_shares,
)

pytestmark = pytest.mark.unit

PERCENT = Formatting(rounded=False, suffix="%")


def test_percentage_series_matches_share_of_total() -> None:
    """Percentage formatting shows each value as its share of the sum."""

    formatted = format_series([100, 200, 300], [PERCENT] * 3)
    assert [text for _, text in formatted] == ["16.67%", "33.33%", "50%"]
    assert formatted[2][0] == pytest.approx(50.0)


def test_rounded_percentage_series() -> None:
    """Rounded percentage values are whole numbers."""

    formatted = format_series([100, 200, 300], [Formatting(rounded=True, suffix="%")] * 3)
    assert [text for _, text in formatted] == ["17%", "33%", "50%"]


def test_percentage_series_with_zero_total_is_zero() -> None:
    """A zero total yields 0% for every value instead of NA."""

    formatted = format_series([0, 0], [PERCENT, PERCENT])
    assert [text for _, text in formatted] == ["0%", "0%"]


def test_percentage_series_excludes_na_values() -> None:
    """NA values stay NA and do not contribute to the total."""

    formatted = format_series([NA, 50, 50], [PERCENT] * 3)
    assert formatted[0] == (None, "N/A")
    assert [text for _, text in formatted[1:]] == ["50%", "50%"]


def test_percentage_shares_sum_to_one_hundred() -> None:
    """Available shares always add up to 100 when the total is non-zero."""

    shares = percentage_shares([3, 7, NA, 10])
    assert shares[2] is NA
    assert sum(share for share in shares if share is not NA) == pytest.approx(100.0)


def test_format_series_rejects_misaligned_inputs() -> None:
    """Values and formatting blocks must pair up."""

    with pytest.raises(ValueError):
        format_series([1, 2], [PERCENT])


def test_format_number_rounds_half_up_with_separators() -> None:
    """Rounded values are whole numbers with thousands separators."""

    rounded = Formatting(rounded=True)
    assert format_number(1312.0, rounded) == "1,312"
    assert format_number(2.5, rounded) == "3"
    assert format_number(0.5, rounded) == "1"
    assert format_number(1_000_000.4, rounded) == "1,000,000"
    assert format_number(-0.4, rounded) == "0"


def test_format_number_keeps_up_to_two_decimals() -> None:
    """Unrounded values keep up to two decimals, trailing zeros trimmed."""

    plain = Formatting(rounded=False)
    assert format_number(1234.5, Formatting(rounded=False, prefix="€")) == "€1,234.5"
    assert format_number(16.666, plain) == "16.67"
    assert format_number(50.0, plain) == "50"
    assert format_number(0.125, plain) == "0.13"


def test_format_number_honors_decimal_places_option() -> None:
    """The decimal places option bounds unrounded output."""

    options = CalculationOptions(decimal_places=1)
    assert format_number(3.14159, Formatting(rounded=False), options=options) == "3.1"


def test_format_number_renders_na_text() -> None:
    """NA formats as the configured display text."""

    assert format_number(NA, Formatting()) == "N/A"
    assert format_number(NA, Formatting(), options=CalculationOptions(na_text="n/a")) == "n/a"


def test_format_number_defaults_to_rounded_plain_number() -> None:
    """With no formatting block the value is rounded and undecorated."""

    assert format_number(12.6) == "13"


def test_legacy_type_hints_map_to_formatting_blocks() -> None:
    """Legacy hints are adapted into equivalent formatting blocks."""

    assert formatting_from_legacy_type("currency") == Formatting(rounded=False, prefix="€")
    assert formatting_from_legacy_type("currency", options=CalculationOptions(currency_prefix="$")) == Formatting(
        rounded=False, prefix="$"
    )
    assert formatting_from_legacy_type("percentage") == Formatting(rounded=False, suffix="%")
    assert formatting_from_legacy_type("number") == Formatting(rounded=True)
    assert formatting_from_legacy_type(None) == Formatting(rounded=True)


def test_explicit_formatting_wins_over_legacy_hint() -> None:
    """An element's formatting block takes precedence over its type hint."""

    block = Formatting(rounded=True, suffix=" fans")
    element = ChartElement(label="Fans", formula="[stats.fans]", formatting=block, type="currency")
    assert effective_formatting(element) == block
    legacy = ChartElement(label="Revenue", formula="[stats.revenue]", type="currency")
    assert effective_formatting(legacy) == Formatting(rounded=False, prefix="€")
