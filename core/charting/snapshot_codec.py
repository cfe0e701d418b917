"""Payload encoding/decoding helpers for chart configurations and results.

Chart configurations are stored and exchanged as camelCase JSON documents
(`chartId`, `isActive`, `kpiFormatting`, ...). Decoding is strict about the
structure (a chart needs an id, a type and a list of elements) and best-effort
about scalar values (numeric strings, "true"/"false" strings).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, cast

from analysis.chart_config_dto import ChartConfiguration, ChartElement, Formatting
from analysis.dto import CalculationSummary, ChartError, ChartResult, ElementResult, TotalResult, is_number


def decode_chart_configuration(payload: Mapping[str, Any]) -> ChartConfiguration:
    """Decode a ChartConfiguration from a camelCase payload dictionary.

    Args:
        payload: Stored configuration document.

    Returns:
        ChartConfiguration instance (not yet validated against type rules).

    Raises:
        ValueError: When required fields are missing or malformed.
    """

    if not isinstance(payload, Mapping):
        raise ValueError(f"Chart configuration must be an object, got {type(payload).__name__}.")

    chart_id = _first(payload, "chartId", "chart_id", "id")
    if chart_id is None or str(chart_id).strip() == "":
        raise ValueError("Chart configuration is missing 'chartId'.")
    chart_type = payload.get("type")
    if not chart_type:
        raise ValueError(f"Chart configuration {chart_id!r} is missing 'type'.")

    elements_raw = payload.get("elements")
    if not isinstance(elements_raw, list):
        raise ValueError(f"Chart configuration {chart_id!r} must define 'elements' as a list.")

    active_raw = _first(payload, "isActive", "active")
    order = _parse_order(payload.get("order"), chart_id=str(chart_id))
    return ChartConfiguration(
        chart_id=str(chart_id),
        type=str(chart_type),  # type: ignore[arg-type]
        title=str(payload.get("title") or ""),
        elements=tuple(
            _decode_element(cast(Mapping[str, Any], raw), chart_id=str(chart_id), idx=idx)
            for idx, raw in enumerate(elements_raw)
        ),
        order=order,
        active=True if active_raw is None else _parse_bool(active_raw),
        kpi_formatting=_decode_formatting(_first(payload, "kpiFormatting", "kpi_formatting")),
        bar_formatting=_decode_formatting(_first(payload, "barFormatting", "bar_formatting")),
        aspect_ratio=_optional_str(_first(payload, "aspectRatio", "aspect_ratio")),  # type: ignore[arg-type]
        parameters=_decode_numbers(payload.get("parameters")),
        show_total=_parse_bool(_first(payload, "showTotal", "show_total")),
        total_label=_optional_str(_first(payload, "totalLabel", "total_label")),
        subtitle=_optional_str(payload.get("subtitle")),
        emoji=_optional_str(payload.get("emoji")),
    )


def decode_chart_configurations(payload: object) -> list[ChartConfiguration]:
    """Decode a document holding one or many chart configurations.

    Accepts a list of configurations, an object with a `charts` list, or a
    single configuration object.

    Raises:
        ValueError: When the document shape is not recognized.
    """

    if isinstance(payload, list):
        return [decode_chart_configuration(item) for item in payload]
    if isinstance(payload, Mapping):
        charts = payload.get("charts")
        if isinstance(charts, list):
            return [decode_chart_configuration(item) for item in charts]
        return [decode_chart_configuration(payload)]
    raise ValueError("Expected a chart configuration object or a list of configurations.")


def encode_chart_configuration(config: ChartConfiguration) -> dict[str, Any]:
    """Encode a ChartConfiguration into a JSON-serializable camelCase dictionary.

    Optional fields are omitted when unset.
    """

    payload: dict[str, Any] = {
        "chartId": config.chart_id,
        "type": config.type,
        "title": config.title,
        "order": config.order,
        "isActive": config.active,
        "elements": [_encode_element(element) for element in config.elements],
    }
    if config.kpi_formatting is not None:
        payload["kpiFormatting"] = _encode_formatting(config.kpi_formatting)
    if config.bar_formatting is not None:
        payload["barFormatting"] = _encode_formatting(config.bar_formatting)
    if config.aspect_ratio is not None:
        payload["aspectRatio"] = config.aspect_ratio
    if config.parameters:
        payload["parameters"] = dict(config.parameters)
    if config.show_total:
        payload["showTotal"] = True
    if config.total_label is not None:
        payload["totalLabel"] = config.total_label
    if config.subtitle is not None:
        payload["subtitle"] = config.subtitle
    if config.emoji is not None:
        payload["emoji"] = config.emoji
    return payload


def encode_chart_result(result: ChartResult) -> dict[str, Any]:
    """Encode a ChartResult for a rendering collaborator; NA becomes "NA"."""

    payload: dict[str, Any] = {
        "chartId": result.chart_id,
        "type": result.type,
        "title": result.title,
        "elements": [_encode_element_result(element) for element in result.elements],
        "valid": result.valid,
        "hasErrors": result.has_errors,
    }
    if result.total is not None:
        payload["total"] = _encode_total(result.total)
    if result.aspect_ratio is not None:
        payload["aspectRatio"] = result.aspect_ratio
    if result.subtitle is not None:
        payload["subtitle"] = result.subtitle
    if result.emoji is not None:
        payload["emoji"] = result.emoji
    if result.error is not None:
        payload["error"] = _encode_error(result.error)
    return payload


def encode_chart_results(results: Iterable[ChartResult]) -> list[dict[str, Any]]:
    """Encode several results, preserving order."""

    return [encode_chart_result(result) for result in results]


def encode_calculation_summary(summary: CalculationSummary) -> dict[str, Any]:
    """Encode a CalculationSummary as a camelCase dictionary."""

    return {
        "totalCharts": summary.total_charts,
        "activeCharts": summary.active_charts,
        "chartsWithErrors": summary.charts_with_errors,
        "elementsWithErrors": summary.elements_with_errors,
        "totalElements": summary.total_elements,
        "validCharts": summary.valid_charts,
        "chartTypes": dict(summary.chart_types),
    }


def _decode_element(raw: Mapping[str, Any], *, chart_id: str, idx: int) -> ChartElement:
    if not isinstance(raw, Mapping):
        raise ValueError(f"Chart configuration {chart_id!r} element {idx} must be an object.")
    formula = raw.get("formula")
    if formula is None:
        raise ValueError(f"Chart configuration {chart_id!r} element {idx} is missing 'formula'.")
    return ChartElement(
        label=str(raw.get("label") or ""),
        formula=str(formula),
        color=str(raw.get("color") or ""),
        formatting=_decode_formatting(raw.get("formatting")),
        type=_optional_str(raw.get("type")),  # type: ignore[arg-type]
        parameters=_decode_numbers(raw.get("parameters")),
        manual_data=_decode_numbers(_first(raw, "manualData", "manual_data")),
        element_id=_optional_str(_first(raw, "id", "elementId", "element_id")),
        description=_optional_str(raw.get("description")),
    )


def _encode_element(element: ChartElement) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "label": element.label,
        "formula": element.formula,
        "color": element.color,
    }
    if element.formatting is not None:
        payload["formatting"] = _encode_formatting(element.formatting)
    if element.type is not None:
        payload["type"] = element.type
    if element.parameters:
        payload["parameters"] = dict(element.parameters)
    if element.manual_data:
        payload["manualData"] = dict(element.manual_data)
    if element.element_id is not None:
        payload["id"] = element.element_id
    if element.description is not None:
        payload["description"] = element.description
    return payload


def _decode_formatting(raw: object) -> Formatting | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise ValueError(f"Formatting block must be an object, got {type(raw).__name__}.")
    rounded = raw.get("rounded")
    return Formatting(
        rounded=True if rounded is None else _parse_bool(rounded),
        prefix=str(raw.get("prefix") or ""),
        suffix=str(raw.get("suffix") or ""),
    )


def _encode_formatting(block: Formatting) -> dict[str, Any]:
    return {"rounded": block.rounded, "prefix": block.prefix, "suffix": block.suffix}


def _encode_element_result(element: ElementResult) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "label": element.label,
        "value": _encode_value(element.value),
        "formattedValue": element.formatted_value,
        "color": element.color,
    }
    if element.display_value is not None:
        payload["displayValue"] = element.display_value
    return payload


def _encode_total(total: TotalResult) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "value": _encode_value(total.value),
        "formattedValue": total.formatted_value,
    }
    if total.label is not None:
        payload["label"] = total.label
    return payload


def _encode_error(error: ChartError) -> dict[str, Any]:
    return {"kind": error.kind, "message": error.message, "context": dict(error.context)}


def _encode_value(value: object) -> object:
    if isinstance(value, str):
        return value
    if is_number(value):
        return value
    return "NA"


def _decode_numbers(raw: object) -> dict[str, float]:
    """Decode a `{key: number}` mapping; numeric strings are accepted."""

    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected an object of numbers, got {type(raw).__name__}.")
    values: dict[str, float] = {}
    for key, value in raw.items():
        parsed = _parse_float(value)
        if parsed is None:
            raise ValueError(f"Value for {key!r} must be numeric, got {value!r}.")
        values[str(key)] = parsed
    return values


def _first(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _optional_str(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _parse_order(value: object, *, chart_id: str) -> int:
    """Parse the display order, defaulting to 1 when absent.

    Whole-number floats and strings such as ``"2.0"`` are accepted.

    Raises:
        ValueError: If the value is present but not a whole number.
    """

    if value is None or value == "":
        return 1
    parsed = None if isinstance(value, bool) else _parse_float(value)
    if parsed is None or not parsed.is_integer():
        raise ValueError(f"Chart configuration {chart_id!r} has a non-integer 'order': {value!r}.")
    return int(parsed)


def _parse_float(value: object) -> float | None:
    """Best-effort float parsing for stored payloads."""

    if isinstance(value, bool) or value is None:
        return None
    if is_number(value):
        return float(value)  # type: ignore[arg-type]
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return None
    return parsed if is_number(parsed) else None


def _parse_bool(value: object) -> bool:
    """Best-effort bool parsing for stored payloads."""

    if isinstance(value, bool):
        return value
    if value is None:
        return False
    normalized = str(value).strip().casefold()
    return normalized in {"1", "true", "yes", "on"}
