"""Pure chart calculation package for eventReports.

This package contains deterministic, testable computations that operate on
in-memory chart configurations and stats records and return DTOs. It must not
import Django or perform any I/O.
"""

from .chart_config_engine import calculate, calculate_charts, calculate_report
from .chart_config_validator import ensure_valid_configuration, validate_chart_configuration

__all__ = [
    "calculate",
    "calculate_charts",
    "calculate_report",
    "ensure_valid_configuration",
    "validate_chart_configuration",
]
