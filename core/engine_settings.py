"""Bridge between Django settings and the pure calculation options."""

from __future__ import annotations

from collections.abc import Mapping

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from analysis.formatting import CalculationOptions

_DEFAULTS = CalculationOptions()


def get_calculation_options(overrides: Mapping[str, object] | None = None) -> CalculationOptions:
    """Build CalculationOptions from `settings.CHART_ENGINE`.

    Args:
        overrides: Optional keys (same names as `CHART_ENGINE`) that take
            precedence over settings, e.g. values passed on the command line.

    Returns:
        CalculationOptions for the engine.

    Raises:
        ImproperlyConfigured: When DECIMAL_PLACES is not a non-negative integer.
    """

    configured = dict(getattr(settings, "CHART_ENGINE", None) or {})
    configured.update({key: value for key, value in (overrides or {}).items() if value is not None})

    raw_places = configured.get("DECIMAL_PLACES", _DEFAULTS.decimal_places)
    try:
        decimal_places = int(str(raw_places))
    except ValueError as exc:
        raise ImproperlyConfigured(f"CHART_ENGINE['DECIMAL_PLACES'] must be an integer, got {raw_places!r}.") from exc
    if decimal_places < 0:
        raise ImproperlyConfigured("CHART_ENGINE['DECIMAL_PLACES'] must not be negative.")

    return CalculationOptions(
        na_text=str(configured.get("NA_TEXT", _DEFAULTS.na_text)),
        currency_prefix=str(configured.get("CURRENCY_PREFIX", _DEFAULTS.currency_prefix)),
        decimal_places=decimal_places,
    )
