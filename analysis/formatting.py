"""Display formatting for chart values.

This module turns evaluated numbers into display strings:

1. optional percentage-of-total conversion (`suffix == "%"`),
2. rounding (whole numbers, or up to `decimal_places` decimals),
3. thousands separators,
4. `prefix + number + suffix`.

Legacy element type hints (`currency`, `percentage`, `number`) are converted
into an equivalent `Formatting` block by `formatting_from_legacy_type`, so the
rest of the engine only ever deals with one formatting representation.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .chart_config_dto import ChartElement, Formatting
from .dto import NA, NumericValue, is_number


@dataclass(frozen=True, slots=True)
class CalculationOptions:
    """Engine-wide display options.

    Args:
        na_text: Display string for NA values.
        currency_prefix: Prefix used when adapting the legacy `currency` hint.
        decimal_places: Maximum decimals rendered for non-rounded values.
    """

    na_text: str = "N/A"
    currency_prefix: str = "€"
    decimal_places: int = 2


DEFAULT_OPTIONS = CalculationOptions()
DEFAULT_FORMATTING = Formatting(rounded=True)


def formatting_from_legacy_type(
    value_type: str | None,
    *,
    options: CalculationOptions = DEFAULT_OPTIONS,
) -> Formatting:
    """Synthesize a `Formatting` block from a legacy element type hint.

    Args:
        value_type: One of `currency`, `percentage`, `number`, or None.
        options: Engine options providing the currency prefix.

    Returns:
        Equivalent Formatting block; the default (rounded, no decoration) for
        `number`, None or unknown hints.
    """

    if value_type == "currency":
        return Formatting(rounded=False, prefix=options.currency_prefix)
    if value_type == "percentage":
        return Formatting(rounded=False, suffix="%")
    return DEFAULT_FORMATTING


def effective_formatting(
    element: ChartElement,
    *,
    options: CalculationOptions = DEFAULT_OPTIONS,
) -> Formatting:
    """Return the formatting block that applies to an element."""

    if element.formatting is not None:
        return element.formatting
    return formatting_from_legacy_type(element.type, options=options)


def percentage_shares(values: Sequence[NumericValue]) -> list[NumericValue]:
    """Convert values into percentages of their sum.

    NA values are excluded from the sum and stay NA. When the sum is zero
    every available value becomes 0.
    """

    total = sum(float(value) for value in values if is_number(value))  # type: ignore[arg-type]
    shares: list[NumericValue] = []
    for value in values:
        if not is_number(value):
            shares.append(NA)
        elif total == 0:
            shares.append(0.0)
        else:
            shares.append(float(value) / total * 100)  # type: ignore[arg-type]
    return shares


def format_number(
    value: NumericValue,
    formatting: Formatting | None = None,
    *,
    options: CalculationOptions = DEFAULT_OPTIONS,
) -> str:
    """Format a single value for display without percentage conversion.

    Args:
        value: Number or NA.
        formatting: Formatting block (defaults to rounded, undecorated).
        options: Engine options.

    Returns:
        Display string such as "€1,234.5", "1,312" or the NA text.
    """

    if not is_number(value):
        return options.na_text
    block = formatting or DEFAULT_FORMATTING
    number = _render_number(float(value), rounded=block.rounded, places=options.decimal_places)  # type: ignore[arg-type]
    return f"{block.prefix}{number}{block.suffix}"


def format_series(
    values: Sequence[NumericValue],
    formattings: Sequence[Formatting],
    *,
    options: CalculationOptions = DEFAULT_OPTIONS,
) -> list[tuple[float | None, str]]:
    """Format sibling values, applying percentage conversion where requested.

    Each value is paired with its own formatting block. Values whose block has
    a `%` suffix are shown as their share of the sum of all sibling values.

    Returns:
        `(display_value, formatted_value)` pairs aligned to `values`, where
        `display_value` is the number that was formatted (None for NA).
    """

    if len(values) != len(formattings):
        raise ValueError("values and formattings must have the same length.")

    shares = percentage_shares(values) if any(block.is_percentage for block in formattings) else None
    formatted: list[tuple[float | None, str]] = []
    for idx, (value, block) in enumerate(zip(values, formattings)):
        display = shares[idx] if shares is not None and block.is_percentage else value
        if not is_number(display):
            formatted.append((None, options.na_text))
            continue
        formatted.append((float(display), format_number(display, block, options=options)))  # type: ignore[arg-type]
    return formatted


def _render_number(value: float, *, rounded: bool, places: int) -> str:
    """Round half-up and insert thousands separators."""

    try:
        decimal_value = Decimal(repr(value))
    except InvalidOperation:
        return str(value)

    if rounded:
        quantized = decimal_value.quantize(Decimal(1), rounding=ROUND_HALF_UP)
        if quantized == 0:
            quantized = quantized.copy_abs()
        return f"{quantized:,.0f}"

    places = max(places, 0)
    quantized = decimal_value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    if quantized == 0:
        quantized = quantized.copy_abs()
    text = f"{quantized:,.{places}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
