"""DTO types returned by the chart calculation engine.

DTOs are plain data containers used to transport calculation results to a
rendering collaborator. They intentionally avoid any Django/ORM dependencies.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, TypeAlias


class NotAvailable(Enum):
    """Sentinel for "no usable numeric value", distinct from zero."""

    NA = "NA"

    def __repr__(self) -> str:
        return "NA"

    def __str__(self) -> str:
        return "NA"


NA = NotAvailable.NA

NumericValue: TypeAlias = "float | NotAvailable"

ChartErrorKind = Literal["missing_chart_config", "invalid_chart_type", "calculation_error"]


def is_number(value: object) -> bool:
    """Return True when a value is a finite int/float (bools excluded)."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


@dataclass(frozen=True, slots=True)
class ChartError:
    """Structured error attached to a chart result.

    Attributes:
        kind: Error category.
        message: Human-readable description.
        context: Extra details (chart id, chart type, ...).
    """

    kind: ChartErrorKind
    message: str
    context: dict[str, str] = field(default_factory=dict)

    def user_message(self) -> str:
        """Return a short message suitable for an administrator-facing UI."""

        if self.kind == "missing_chart_config":
            return f"Chart configuration {self.context.get('chart_id', '')!r} not found"
        if self.kind == "invalid_chart_type":
            return f"Chart type {self.context.get('chart_type', '')!r} is not supported"
        return f"Chart calculation failed: {self.message}"


@dataclass(frozen=True, slots=True)
class ElementResult:
    """A resolved chart element.

    Attributes:
        label: Display label with `{{stats.x}}` placeholders resolved.
        value: Raw evaluated value: a number, NA, or an opaque string for
            text/image charts.
        formatted_value: Display string.
        color: Color passed through from the configuration.
        display_value: The number that was formatted (a percentage share when
            percentage conversion applied), or None for NA/string values.
    """

    label: str
    value: float | NotAvailable | str
    formatted_value: str
    color: str = ""
    display_value: float | None = None

    @property
    def is_available(self) -> bool:
        """Return True when the element carries a finite numeric value."""

        return is_number(self.value)


@dataclass(frozen=True, slots=True)
class TotalResult:
    """Sum of the evaluated element values with its own formatting.

    Attributes:
        value: Numeric total, or NA when no element evaluated.
        formatted_value: Display string.
        label: Optional total label from the configuration.
    """

    value: float | NotAvailable
    formatted_value: str
    label: str | None = None


@dataclass(frozen=True, slots=True)
class ChartResult:
    """Calculation output for one chart configuration.

    Attributes:
        chart_id: Configuration identifier.
        type: Chart type.
        title: Chart title.
        elements: Resolved elements in configuration order.
        total: Optional total (always present for value charts).
        valid: Whether the chart has enough data to be worth rendering.
        has_errors: Whether any element (or the total) resolved to NA.
        aspect_ratio: Image aspect ratio passed through for layout.
        subtitle: Subtitle passed through from the configuration.
        emoji: Decoration passed through from the configuration.
        error: Structured error when the chart could not be calculated.
    """

    chart_id: str
    type: str
    title: str
    elements: tuple[ElementResult, ...] = ()
    total: TotalResult | None = None
    valid: bool = False
    has_errors: bool = False
    aspect_ratio: str | None = None
    subtitle: str | None = None
    emoji: str | None = None
    error: ChartError | None = None

    @property
    def total_label(self) -> str | None:
        """Return the label attached to the total, if any."""

        return self.total.label if self.total is not None else None


@dataclass(frozen=True, slots=True)
class CalculationSummary:
    """Aggregate counters describing a batch of chart calculations.

    Attributes:
        total_charts: Number of configurations considered.
        active_charts: Number of active configurations.
        charts_with_errors: Results flagged with NA values or errors.
        elements_with_errors: Elements that resolved to NA.
        total_elements: Elements across all results.
        valid_charts: Results marked valid for rendering.
        chart_types: Result count per chart type.
    """

    total_charts: int
    active_charts: int
    charts_with_errors: int
    elements_with_errors: int
    total_elements: int
    valid_charts: int
    chart_types: dict[str, int]
