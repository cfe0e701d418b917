"""DTO schema for chart configurations.

Chart configurations are authored by an administrative collaborator and handed
to the analysis layer as read-only input. They are:
- declarative (formulas are token expressions, not code),
- serializable through `core.charting.snapshot_codec`,
- validated before persistence by `analysis.chart_config_validator`,
- consumed by `analysis.chart_config_engine` to produce chart-ready results.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal

ChartType = Literal["kpi", "pie", "bar", "value", "text", "image"]
AspectRatio = Literal["16:9", "9:16", "1:1"]
LegacyValueType = Literal["currency", "percentage", "number"]

CHART_TYPES: frozenset[str] = frozenset({"kpi", "pie", "bar", "value", "text", "image"})
NUMERIC_CHART_TYPES: frozenset[str] = frozenset({"kpi", "pie", "bar", "value"})
STRING_CHART_TYPES: frozenset[str] = frozenset({"text", "image"})
ASPECT_RATIOS: frozenset[str] = frozenset({"16:9", "9:16", "1:1"})
LEGACY_VALUE_TYPES: frozenset[str] = frozenset({"currency", "percentage", "number"})

StatsRecord = Mapping[str, float | int | str]


def _frozen_mapping(values: Mapping[str, float] | None) -> Mapping[str, float]:
    """Return a read-only copy of a mapping."""

    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True, slots=True)
class Formatting:
    """Display formatting for a numeric value.

    Args:
        rounded: Render as a whole number when True, else up to 2 decimals.
        prefix: Text placed before the number (e.g. a currency sign).
        suffix: Text placed after the number. A `%` suffix converts sibling
            values into percentages of their total.
    """

    rounded: bool = True
    prefix: str = ""
    suffix: str = ""

    @property
    def is_percentage(self) -> bool:
        """Return True when the block triggers percentage-of-total conversion."""

        return self.suffix == "%"


@dataclass(frozen=True, slots=True)
class ChartElement:
    """One labeled quantity inside a chart.

    Args:
        label: Display label; may embed `{{stats.field}}` placeholders.
        formula: Token expression (e.g. `[stats.female] + [stats.male]`).
        color: Opaque color value passed through to results.
        formatting: Optional formatting block.
        type: Legacy value-type hint used when `formatting` is absent.
        parameters: Element-scoped `[PARAM:key]` values.
        manual_data: Element-scoped `[MANUAL:key]` values.
        element_id: Optional stable identifier for the element.
        description: Optional free-text documentation.
    """

    label: str
    formula: str
    color: str = ""
    formatting: Formatting | None = None
    type: LegacyValueType | None = None
    parameters: Mapping[str, float] = field(default_factory=dict)
    manual_data: Mapping[str, float] = field(default_factory=dict)
    element_id: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", _frozen_mapping(self.parameters))
        object.__setattr__(self, "manual_data", _frozen_mapping(self.manual_data))


@dataclass(frozen=True, slots=True)
class ChartConfiguration:
    """Declarative definition of one chart.

    Args:
        chart_id: Stable, unique identifier.
        type: Chart type.
        title: Display title.
        elements: Ordered chart elements.
        order: Display order (positive integer).
        active: Whether the chart takes part in report calculation.
        kpi_formatting: Formatting of the headline total (value charts only).
        bar_formatting: Formatting of the bar segments (value charts only).
        aspect_ratio: Image aspect ratio (image charts only).
        parameters: Configuration-scoped `[PARAM:key]` values.
        show_total: Whether non-value charts compute a total.
        total_label: Label attached to the total.
        subtitle: Optional subtitle passed through to results.
        emoji: Optional decoration passed through to results.
    """

    chart_id: str
    type: ChartType
    title: str
    elements: tuple[ChartElement, ...]
    order: int = 1
    active: bool = True
    kpi_formatting: Formatting | None = None
    bar_formatting: Formatting | None = None
    aspect_ratio: AspectRatio | None = None
    parameters: Mapping[str, float] = field(default_factory=dict)
    show_total: bool = False
    total_label: str | None = None
    subtitle: str | None = None
    emoji: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "elements", tuple(self.elements))
        object.__setattr__(self, "parameters", _frozen_mapping(self.parameters))

    @property
    def is_numeric(self) -> bool:
        """Return True for chart types whose elements evaluate to numbers."""

        return self.type in NUMERIC_CHART_TYPES
