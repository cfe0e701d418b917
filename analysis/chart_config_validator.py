"""Validation for ChartConfiguration definitions.

Chart configurations are authored by an administrator and persisted for later
calculation, so validation is strict and runs at write time. Calculation
itself stays permissive (missing data renders as NA), which is why structural
problems have to be caught here.
"""

from __future__ import annotations

import ast
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from analysis.chart_config_dto import (
    ASPECT_RATIOS,
    CHART_TYPES,
    NUMERIC_CHART_TYPES,
    STRING_CHART_TYPES,
    ChartConfiguration,
    ChartElement,
    Formatting,
)
from analysis.derived_formula import is_safe_expression
from analysis.dto import is_number
from analysis.tokens import extract_variables, iter_tokens, single_field_reference

# Required element counts per chart type; bar charts only need at least one.
REQUIRED_ELEMENT_COUNTS: dict[str, int] = {
    "kpi": 1,
    "pie": 2,
    "value": 5,
    "text": 1,
    "image": 1,
}
EXPECTED_BAR_ELEMENTS = 5


@dataclass(frozen=True, slots=True)
class ChartConfigValidationResult:
    """Validation result for a ChartConfiguration.

    Args:
        is_valid: True when no errors exist.
        errors: Fatal validation errors.
        warnings: Non-fatal warnings intended for the administrator.
    """

    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FormulaInspection:
    """Result of inspecting a token formula.

    Args:
        variables: Canonical variable names referenced by the formula.
        is_balanced: Whether parentheses are balanced.
        is_valid_syntax: Whether the token-substituted formula parses.
        is_safe: Whether the substituted formula only uses numeric literals,
            parentheses, unary +/- and binary + - * /.
    """

    variables: tuple[str, ...]
    is_balanced: bool
    is_valid_syntax: bool
    is_safe: bool

    @property
    def is_valid(self) -> bool:
        """Return True when the formula can be evaluated."""

        return self.is_balanced and self.is_valid_syntax and self.is_safe


class ChartConfigurationError(ValueError):
    """Raised when a chart configuration violates its type rules."""

    def __init__(self, chart_id: str, errors: Iterable[str]) -> None:
        self.chart_id = chart_id
        self.errors = tuple(errors)
        super().__init__(f"Invalid chart configuration {chart_id!r}: " + "; ".join(self.errors))


def inspect_formula(formula: str) -> FormulaInspection:
    """Inspect a numeric token formula for syntax and safety.

    Every recognized token is replaced with a placeholder literal before the
    result is parsed, so only the arithmetic structure is checked. Unknown
    bracket syntax is left in place and makes the formula invalid.

    Args:
        formula: Formula text (e.g. `([stats.female] / [stats.total]) * 100`).

    Returns:
        FormulaInspection for the formula.
    """

    text = formula or ""
    variables = extract_variables(text)
    is_balanced = _parentheses_balanced(text)

    pieces: list[str] = []
    cursor = 0
    for match in iter_tokens(text):
        pieces.append(text[cursor : match.start])
        pieces.append("(1)")
        cursor = match.end
    pieces.append(text[cursor:])
    substituted = "".join(pieces).strip()

    if not substituted:
        return FormulaInspection(variables=variables, is_balanced=is_balanced, is_valid_syntax=False, is_safe=False)

    try:
        ast.parse(substituted, mode="eval")
    except (SyntaxError, ValueError):
        return FormulaInspection(variables=variables, is_balanced=is_balanced, is_valid_syntax=False, is_safe=False)

    return FormulaInspection(
        variables=variables,
        is_balanced=is_balanced,
        is_valid_syntax=True,
        is_safe=is_safe_expression(substituted),
    )


def validate_chart_configuration(config: ChartConfiguration) -> ChartConfigValidationResult:
    """Validate one ChartConfiguration against its chart type rules.

    Args:
        config: Configuration to validate.

    Returns:
        ChartConfigValidationResult containing errors and warnings.
    """

    errors: list[str] = []
    warnings: list[str] = []

    if not str(config.chart_id or "").strip():
        errors.append("chart_id must be a non-empty string.")
    if not str(config.title or "").strip():
        errors.append(f"Chart[{config.chart_id}].title must be a non-empty string.")
    if isinstance(config.order, bool) or not isinstance(config.order, int) or config.order < 1:
        errors.append(f"Chart[{config.chart_id}].order must be a positive integer, got {config.order!r}.")

    if config.type not in CHART_TYPES:
        errors.append(f"Chart[{config.chart_id}].type is not a supported value: {config.type!r}.")
        return ChartConfigValidationResult(is_valid=False, errors=tuple(errors), warnings=tuple(warnings))

    count = len(config.elements)
    required = REQUIRED_ELEMENT_COUNTS.get(config.type)
    if required is not None and count != required:
        noun = "element" if required == 1 else "elements"
        errors.append(f"{config.type} chart requires exactly {required} {noun}, got {count}")
    if config.type == "bar":
        if count < 1:
            errors.append(f"bar chart requires at least 1 element, got {count}")
        elif count != EXPECTED_BAR_ELEMENTS:
            warnings.append(f"bar chart usually has {EXPECTED_BAR_ELEMENTS} elements, got {count}")

    if config.type == "value":
        for name in ("kpi_formatting", "bar_formatting"):
            block = getattr(config, name)
            if block is None:
                errors.append(f"value chart requires {name}")
            else:
                errors.extend(_formatting_errors(block, where=f"Chart[{config.chart_id}].{name}"))
    else:
        for name in ("kpi_formatting", "bar_formatting"):
            if getattr(config, name) is not None:
                warnings.append(f"Chart[{config.chart_id}].{name} is ignored for {config.type} charts.")

    if config.type == "image":
        if config.aspect_ratio not in ASPECT_RATIOS:
            errors.append(
                f"image chart aspect_ratio must be one of {sorted(ASPECT_RATIOS)}, got {config.aspect_ratio!r}"
            )
    elif config.aspect_ratio is not None:
        warnings.append(f"Chart[{config.chart_id}].aspect_ratio is ignored for {config.type} charts.")

    errors.extend(_parameter_errors(config.parameters, where=f"Chart[{config.chart_id}].parameters"))

    for idx, element in enumerate(config.elements):
        where = f"Chart[{config.chart_id}].elements[{idx}]"
        if config.type in STRING_CHART_TYPES:
            _validate_string_element(element, chart_type=config.type, where=where, errors=errors)
        elif config.type in NUMERIC_CHART_TYPES:
            _validate_numeric_element(element, where=where, errors=errors, warnings=warnings)

    return ChartConfigValidationResult(is_valid=not errors, errors=tuple(errors), warnings=tuple(warnings))


def validate_chart_configurations(configs: Iterable[ChartConfiguration]) -> ChartConfigValidationResult:
    """Validate a set of configurations, including chart id uniqueness.

    Args:
        configs: Configurations to validate together.

    Returns:
        One ChartConfigValidationResult aggregating every configuration.
    """

    errors: list[str] = []
    warnings: list[str] = []
    seen: set[str] = set()
    for config in configs:
        if config.chart_id in seen:
            errors.append(f"Duplicate chart_id: {config.chart_id!r}.")
        seen.add(config.chart_id)
        result = validate_chart_configuration(config)
        errors.extend(f"[{config.chart_id}] {message}" for message in result.errors)
        warnings.extend(f"[{config.chart_id}] {message}" for message in result.warnings)
    return ChartConfigValidationResult(is_valid=not errors, errors=tuple(errors), warnings=tuple(warnings))


def ensure_valid_configuration(config: ChartConfiguration) -> ChartConfiguration:
    """Return `config` unchanged or raise when it violates any rule.

    Raises:
        ChartConfigurationError: Listing every violated rule.
    """

    result = validate_chart_configuration(config)
    if not result.is_valid:
        raise ChartConfigurationError(config.chart_id, result.errors)
    return config


def _validate_numeric_element(
    element: ChartElement,
    *,
    where: str,
    errors: list[str],
    warnings: list[str],
) -> None:
    if not str(element.formula or "").strip():
        errors.append(f"{where}.formula must be a non-empty string.")
        return

    inspection = inspect_formula(element.formula)
    if not inspection.is_balanced:
        errors.append(f"{where}.formula has unbalanced parentheses: {element.formula!r}.")
    elif not inspection.is_valid_syntax:
        errors.append(f"{where}.formula must be valid syntax: {element.formula!r}.")
    elif not inspection.is_safe:
        errors.append(f"{where}.formula contains unsupported operations: {element.formula!r}.")

    if element.formatting is not None:
        errors.extend(_formatting_errors(element.formatting, where=f"{where}.formatting"))
    if element.type is not None:
        warnings.append(f"{where}.type={element.type!r} is a legacy hint; prefer a formatting block.")

    errors.extend(_parameter_errors(element.parameters, where=f"{where}.parameters"))
    errors.extend(_parameter_errors(element.manual_data, where=f"{where}.manual_data"))


def _validate_string_element(element: ChartElement, *, chart_type: str, where: str, errors: list[str]) -> None:
    if single_field_reference(element.formula) is None:
        errors.append(f"{chart_type} chart formula must be a single field reference, got {element.formula!r}")


def _formatting_errors(block: Formatting, *, where: str) -> list[str]:
    errors: list[str] = []
    if not isinstance(block, Formatting):
        return [f"{where} must be a formatting block."]
    if not isinstance(block.rounded, bool):
        errors.append(f"{where}.rounded must be a boolean.")
    if not isinstance(block.prefix, str):
        errors.append(f"{where}.prefix must be a string.")
    if not isinstance(block.suffix, str):
        errors.append(f"{where}.suffix must be a string.")
    return errors


def _parameter_errors(values: Mapping[str, object], *, where: str) -> list[str]:
    return [f"{where}[{key!r}] must be numeric, got {value!r}." for key, value in values.items() if not is_number(value)]


def _parentheses_balanced(text: str) -> bool:
    depth = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0
