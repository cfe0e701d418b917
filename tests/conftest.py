"""Pytest fixtures shared across chart engine tests."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from analysis.chart_config_dto import ChartConfiguration, ChartElement, Formatting


@pytest.fixture
def stats_record() -> dict[str, float | int | str]:
    """Return a flat stats record for one event."""

    return {
        "female": 462,
        "male": 850,
        "indoor": 120,
        "outdoor": 80,
        "stadium": 1000,
        "remoteImages": 40,
        "hostessImages": 25,
        "selfies": 35,
        "genAlpha": 100,
        "genYZ": 200,
        "genX": 300,
        "boomer": 0,
        "eventName": "Cup Final",
        "reportImage": "https://cdn.example.org/final.png",
    }


@pytest.fixture
def value_chart() -> ChartConfiguration:
    """Return a five-element value chart with euro KPI formatting."""

    return ChartConfiguration(
        chart_id="merch-value",
        type="value",
        title="Merchandise value",
        elements=tuple(
            ChartElement(label=f"Item {idx}", formula=f"[PARAM:price{idx}]", color=f"#00{idx}")
            for idx in range(5)
        ),
        kpi_formatting=Formatting(rounded=True, prefix="€"),
        bar_formatting=Formatting(rounded=True, prefix="€"),
        parameters={"price0": 100, "price1": 200, "price2": 300, "price3": 150, "price4": 250},
    )


@pytest.fixture
def gender_pie() -> ChartConfiguration:
    """Return a two-segment pie chart over the gender fields."""

    return ChartConfiguration(
        chart_id="gender",
        type="pie",
        title="Gender split",
        elements=(
            ChartElement(label="Female", formula="[stats.female]", color="#f0a"),
            ChartElement(label="Male", formula="[stats.male]", color="#0af"),
        ),
    )


def pytest_collection_modifyitems(items: Sequence[pytest.Item]) -> None:
    """Enforce that every test has exactly one speed marker.

    The suite is runnable by intent:
    - `unit`: pure, fast tests over the `analysis` package.
    - `integration`: tests touching Django settings, commands, or file IO.

    Each test must have exactly one of these markers.
    """

    invalid: list[str] = []
    for item in items:
        has_unit = item.get_closest_marker("unit") is not None
        has_integration = item.get_closest_marker("integration") is not None
        if has_unit == has_integration:
            markers = []
            if has_unit:
                markers.append("unit")
            if has_integration:
                markers.append("integration")
            invalid.append(f"{item.nodeid} (markers={markers or 'none'})")

    if invalid:
        joined = "\n".join(f"- {nodeid}" for nodeid in invalid)
        raise pytest.UsageError(
            "Each test must have exactly one speed marker: `@pytest.mark.unit` or "
            "`@pytest.mark.integration`.\n"
            f"Offending tests:\n{joined}"
        )
