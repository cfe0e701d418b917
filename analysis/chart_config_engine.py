"""Chart calculation for ChartConfiguration values.

This module consumes a ChartConfiguration plus a stats record and produces
ChartResult DTOs the rendering layer can display without performing any
calculation inline.

Calculation is permissive: missing fields resolve to 0, evaluation failures
become NA per element, and a chart with nothing to show is marked
`valid=False` rather than raising.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from analysis.chart_config_dto import (
    CHART_TYPES,
    STRING_CHART_TYPES,
    ChartConfiguration,
    ChartElement,
    Formatting,
)
from analysis.derived import DEFAULT_ALIAS_TABLE, DerivedAliasTable
from analysis.derived_formula import evaluate_expression
from analysis.dto import (
    NA,
    CalculationSummary,
    ChartError,
    ChartResult,
    ElementResult,
    NumericValue,
    TotalResult,
    is_number,
)
from analysis.formatting import (
    DEFAULT_OPTIONS,
    CalculationOptions,
    effective_formatting,
    format_number,
    format_series,
)
from analysis.tokens import TokenSources, resolve_formula, resolve_label, resolve_text

logger = logging.getLogger(__name__)

# Chart types whose elements are siblings for percentage conversion.
_MULTI_ELEMENT_TYPES = frozenset({"pie", "bar", "value"})


@dataclass(frozen=True, slots=True)
class StatsCheck:
    """Outcome of dry-running a chart against a stats record.

    Args:
        chart_id: Configuration identifier.
        errors: Elements or totals that resolved to NA.
        warnings: Suspicious but renderable values (negatives, empty pies).
    """

    chart_id: str
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_ok(self) -> bool:
        """Return True when no errors were found."""

        return not self.errors


def calculate(
    config: ChartConfiguration,
    stats: Mapping[str, object],
    parameters: Mapping[str, object] | None = None,
    manual_data: Mapping[str, object] | None = None,
    *,
    options: CalculationOptions | None = None,
    aliases: DerivedAliasTable = DEFAULT_ALIAS_TABLE,
) -> ChartResult:
    """Calculate one chart from a stats record.

    Args:
        config: Chart configuration.
        stats: Flat stats record.
        parameters: Caller-level `[PARAM:key]` values (lowest precedence).
        manual_data: Caller-level `[MANUAL:key]` values.
        options: Display options; defaults to `CalculationOptions()`.
        aliases: Derived alias table used for computed stats fields.

    Returns:
        ChartResult for the configuration. Unknown chart types return a result
        carrying an `invalid_chart_type` error.
    """

    opts = options or DEFAULT_OPTIONS

    if config.type not in CHART_TYPES:
        logger.warning("Chart %s has unsupported type %r", config.chart_id, config.type)
        return _error_result(
            config.chart_id,
            ChartError(
                kind="invalid_chart_type",
                message=f"Unsupported chart type: {config.type!r}",
                context={"chart_id": config.chart_id, "chart_type": str(config.type)},
            ),
            chart_type=str(config.type),
            title=config.title,
        )

    base_parameters = {**dict(parameters or {}), **dict(config.parameters)}
    base_manual = dict(manual_data or {})

    if config.type in STRING_CHART_TYPES:
        return _calculate_string_chart(config, stats, base_parameters, base_manual, options=opts, aliases=aliases)
    return _calculate_numeric_chart(config, stats, base_parameters, base_manual, options=opts, aliases=aliases)


def calculate_charts(
    configs: Iterable[ChartConfiguration],
    stats: Mapping[str, object],
    parameters: Mapping[str, object] | None = None,
    manual_data: Mapping[str, object] | None = None,
    *,
    options: CalculationOptions | None = None,
    aliases: DerivedAliasTable = DEFAULT_ALIAS_TABLE,
    include_inactive: bool = False,
) -> list[ChartResult]:
    """Calculate every active chart, ordered by `order`.

    A chart that fails unexpectedly yields a result carrying a
    `calculation_error` instead of aborting its siblings.

    Args:
        configs: Chart configurations.
        stats: Flat stats record.
        parameters: Caller-level parameter values.
        manual_data: Caller-level manual values.
        options: Display options.
        aliases: Derived alias table.
        include_inactive: Also calculate charts with `active=False`.

    Returns:
        Results in ascending `order` (ties keep input order).
    """

    selected = [config for config in configs if include_inactive or config.active]
    selected.sort(key=lambda config: config.order)
    return [
        _calculate_contained(config, stats, parameters, manual_data, options=options, aliases=aliases)
        for config in selected
    ]


def calculate_report(
    configs: Iterable[ChartConfiguration],
    chart_ids: Sequence[str],
    stats: Mapping[str, object],
    parameters: Mapping[str, object] | None = None,
    manual_data: Mapping[str, object] | None = None,
    *,
    options: CalculationOptions | None = None,
    aliases: DerivedAliasTable = DEFAULT_ALIAS_TABLE,
) -> list[ChartResult]:
    """Calculate the charts a report layout references, in layout order.

    Args:
        configs: Available chart configurations.
        chart_ids: Chart ids in the order the report places them.
        stats: Flat stats record.
        parameters: Caller-level parameter values.
        manual_data: Caller-level manual values.
        options: Display options.
        aliases: Derived alias table.

    Returns:
        One result per requested id; unknown ids yield a
        `missing_chart_config` error result.
    """

    by_id: dict[str, ChartConfiguration] = {}
    for config in configs:
        by_id.setdefault(config.chart_id, config)

    results: list[ChartResult] = []
    for chart_id in chart_ids:
        config = by_id.get(chart_id)
        if config is None:
            logger.warning("Report references unknown chart %s", chart_id)
            results.append(
                _error_result(
                    chart_id,
                    ChartError(
                        kind="missing_chart_config",
                        message=f"No chart configuration with id {chart_id!r}",
                        context={"chart_id": chart_id},
                    ),
                )
            )
            continue
        results.append(
            _calculate_contained(config, stats, parameters, manual_data, options=options, aliases=aliases)
        )
    return results


def summarize_results(
    configs: Sequence[ChartConfiguration],
    results: Sequence[ChartResult],
) -> CalculationSummary:
    """Summarize a batch of chart results.

    Args:
        configs: Configurations that were considered.
        results: Results produced for them.

    Returns:
        CalculationSummary with counters per batch and per chart type.
    """

    chart_types: dict[str, int] = {}
    for result in results:
        chart_types[result.type] = chart_types.get(result.type, 0) + 1

    elements_with_errors = 0
    total_elements = 0
    for result in results:
        total_elements += len(result.elements)
        if result.type in STRING_CHART_TYPES:
            continue
        elements_with_errors += sum(1 for element in result.elements if not element.is_available)

    return CalculationSummary(
        total_charts=len(configs),
        active_charts=sum(1 for config in configs if config.active),
        charts_with_errors=sum(1 for result in results if result.has_errors or result.error is not None),
        elements_with_errors=elements_with_errors,
        total_elements=total_elements,
        valid_charts=sum(1 for result in results if result.valid),
        chart_types=chart_types,
    )


def check_chart_against_stats(
    config: ChartConfiguration,
    stats: Mapping[str, object],
    parameters: Mapping[str, object] | None = None,
    manual_data: Mapping[str, object] | None = None,
    *,
    options: CalculationOptions | None = None,
    aliases: DerivedAliasTable = DEFAULT_ALIAS_TABLE,
) -> StatsCheck:
    """Dry-run a chart against a stats record and report data problems.

    Args:
        config: Chart configuration.
        stats: Sample stats record.
        parameters: Caller-level parameter values.
        manual_data: Caller-level manual values.
        options: Display options.
        aliases: Derived alias table.

    Returns:
        StatsCheck listing NA elements (errors) plus negative values and
        all-zero pie charts (warnings).
    """

    result = calculate(config, stats, parameters, manual_data, options=options, aliases=aliases)
    errors: list[str] = []
    warnings: list[str] = []

    if result.error is not None:
        return StatsCheck(chart_id=config.chart_id, errors=(result.error.message,))

    if config.type in STRING_CHART_TYPES:
        for element in result.elements:
            if not element.value:
                warnings.append(f"Element {element.label!r} resolved to an empty value.")
        return StatsCheck(chart_id=config.chart_id, errors=tuple(errors), warnings=tuple(warnings))

    for element in result.elements:
        if not element.is_available:
            errors.append(f"Element {element.label!r} could not be calculated.")
        elif float(element.value) < 0:  # type: ignore[arg-type]
            warnings.append(f"Element {element.label!r} has a negative value: {element.formatted_value}.")

    if result.total is not None and not is_number(result.total.value):
        errors.append("Total could not be calculated.")

    if config.type == "pie":
        available = [float(element.value) for element in result.elements if element.is_available]  # type: ignore[arg-type]
        if available and all(value == 0 for value in available):
            warnings.append("Pie chart has no data: every segment is zero.")

    return StatsCheck(chart_id=config.chart_id, errors=tuple(errors), warnings=tuple(warnings))


def _calculate_contained(
    config: ChartConfiguration,
    stats: Mapping[str, object],
    parameters: Mapping[str, object] | None,
    manual_data: Mapping[str, object] | None,
    *,
    options: CalculationOptions | None,
    aliases: DerivedAliasTable,
) -> ChartResult:
    try:
        return calculate(config, stats, parameters, manual_data, options=options, aliases=aliases)
    except Exception as exc:  # noqa: BLE001 - one chart must not break the batch
        logger.exception("Chart %s failed to calculate", config.chart_id)
        return _error_result(
            config.chart_id,
            ChartError(
                kind="calculation_error",
                message=str(exc) or exc.__class__.__name__,
                context={"chart_id": config.chart_id, "chart_type": str(config.type)},
            ),
            chart_type=str(config.type),
            title=config.title,
        )


def _sources_for(
    element: ChartElement,
    stats: Mapping[str, object],
    parameters: Mapping[str, object],
    manual_data: Mapping[str, object],
    aliases: DerivedAliasTable,
) -> TokenSources:
    return TokenSources(
        stats=stats,
        parameters={**parameters, **dict(element.parameters)},
        manual_data={**manual_data, **dict(element.manual_data)},
        aliases=aliases,
    )


def _calculate_string_chart(
    config: ChartConfiguration,
    stats: Mapping[str, object],
    parameters: Mapping[str, object],
    manual_data: Mapping[str, object],
    *,
    options: CalculationOptions,
    aliases: DerivedAliasTable,
) -> ChartResult:
    elements: list[ElementResult] = []
    for element in config.elements:
        sources = _sources_for(element, stats, parameters, manual_data, aliases)
        text = resolve_text(element.formula, sources)
        elements.append(
            ElementResult(
                label=resolve_label(element.label, stats, missing_text=options.na_text),
                value=text,
                formatted_value=text,
                color=element.color,
            )
        )

    return ChartResult(
        chart_id=config.chart_id,
        type=config.type,
        title=config.title,
        elements=tuple(elements),
        valid=any(bool(element.value) for element in elements),
        aspect_ratio=config.aspect_ratio if config.type == "image" else None,
        subtitle=config.subtitle,
        emoji=config.emoji,
    )


def _calculate_numeric_chart(
    config: ChartConfiguration,
    stats: Mapping[str, object],
    parameters: Mapping[str, object],
    manual_data: Mapping[str, object],
    *,
    options: CalculationOptions,
    aliases: DerivedAliasTable,
) -> ChartResult:
    values: list[NumericValue] = []
    for element in config.elements:
        sources = _sources_for(element, stats, parameters, manual_data, aliases)
        expression = resolve_formula(element.formula, sources)
        value = evaluate_expression(expression)
        if value is NA:
            logger.debug(
                "Chart %s element %r evaluated to NA (formula=%r, expression=%r)",
                config.chart_id,
                element.label,
                element.formula,
                expression,
            )
        values.append(value)

    formattings = [_element_formatting(config, element, options=options) for element in config.elements]
    if config.type in _MULTI_ELEMENT_TYPES:
        formatted = format_series(values, formattings, options=options)
    else:
        formatted = [
            (float(value) if is_number(value) else None, format_number(value, block, options=options))  # type: ignore[arg-type]
            for value, block in zip(values, formattings)
        ]

    elements = tuple(
        ElementResult(
            label=resolve_label(element.label, stats, missing_text=options.na_text),
            value=value,
            formatted_value=formatted_value,
            color=element.color,
            display_value=display_value,
        )
        for element, value, (display_value, formatted_value) in zip(config.elements, values, formatted)
    )

    total: TotalResult | None = None
    if config.type == "value" or config.show_total:
        total = _total_for(config, values, formattings, options=options)

    has_errors = any(value is NA for value in values) or (total is not None and total.value is NA)
    return ChartResult(
        chart_id=config.chart_id,
        type=config.type,
        title=config.title,
        elements=elements,
        total=total,
        valid=any(is_number(value) and abs(float(value)) > 0 for value in values),  # type: ignore[arg-type]
        has_errors=has_errors,
        subtitle=config.subtitle,
        emoji=config.emoji,
    )


def _element_formatting(
    config: ChartConfiguration,
    element: ChartElement,
    *,
    options: CalculationOptions,
) -> Formatting:
    if config.type == "value" and config.bar_formatting is not None:
        return config.bar_formatting
    return effective_formatting(element, options=options)


def _total_for(
    config: ChartConfiguration,
    values: Sequence[NumericValue],
    formattings: Sequence[Formatting],
    *,
    options: CalculationOptions,
) -> TotalResult:
    available = [float(value) for value in values if is_number(value)]  # type: ignore[arg-type]
    total_value: NumericValue = sum(available) if available else NA

    if config.type == "value" and config.kpi_formatting is not None:
        block = config.kpi_formatting
    elif formattings:
        block = formattings[0]
    else:
        block = Formatting()

    return TotalResult(
        value=total_value,
        formatted_value=format_number(total_value, block, options=options),
        label=config.total_label,
    )


def _error_result(
    chart_id: str,
    error: ChartError,
    *,
    chart_type: str = "",
    title: str = "",
) -> ChartResult:
    return ChartResult(
        chart_id=chart_id,
        type=chart_type,
        title=title,
        valid=False,
        has_errors=True,
        error=error,
    )
