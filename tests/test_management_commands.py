"""Tests for the chart engine management commands."""

from __future__ import annotations

import json
from io import StringIO

import pytest
import yaml
from django.core.management import call_command
from django.core.management.base import CommandError

pytestmark = pytest.mark.integration

CONFIGS = [
    {
        "chartId": "fans",
        "type": "kpi",
        "title": "Fans",
        "order": 2,
        "elements": [{"label": "Total fans", "formula": "[stats.totalFans]"}],
    },
    {
        "chartId": "gender",
        "type": "pie",
        "title": "Gender",
        "order": 1,
        "elements": [
            {"label": "Female", "formula": "[stats.female]", "formatting": {"rounded": False, "suffix": "%"}},
            {"label": "Male", "formula": "[stats.male]", "formatting": {"rounded": False, "suffix": "%"}},
        ],
    },
    {
        "chartId": "hidden",
        "type": "kpi",
        "title": "Hidden",
        "isActive": False,
        "elements": [{"label": "Price", "formula": "[PARAM:price]"}],
    },
]
STATS = {"female": 25, "male": 75, "indoor": 10, "outdoor": 20, "stadium": 70}


def _write_json(path, document) -> str:
    path.write_text(json.dumps(document), encoding="utf-8")
    return str(path)


def test_validate_chart_configs_accepts_valid_yaml(tmp_path) -> None:
    """A valid YAML document passes validation."""

    path = tmp_path / "charts.yaml"
    path.write_text(yaml.safe_dump({"charts": CONFIGS}), encoding="utf-8")
    out = StringIO()

    call_command("validate_chart_configs", str(path), stdout=out)

    assert "[OK] 3 chart configuration(s) valid" in out.getvalue()


def test_validate_chart_configs_lists_violations(tmp_path) -> None:
    """Invalid configurations fail with every violation listed."""

    broken = [dict(CONFIGS[1], elements=CONFIGS[1]["elements"] * 2), CONFIGS[0], CONFIGS[0]]
    path = _write_json(tmp_path / "charts.json", broken)

    with pytest.raises(CommandError) as excinfo:
        call_command("validate_chart_configs", path, stdout=StringIO())

    message = str(excinfo.value)
    assert "pie chart requires exactly 2 elements, got 4" in message
    assert "Duplicate chart_id: 'fans'." in message


def test_validate_chart_configs_strict_mode_fails_on_warnings(tmp_path) -> None:
    """--strict turns warnings into failures."""

    bar = {
        "chartId": "bar",
        "type": "bar",
        "title": "Bar",
        "elements": [{"label": "A", "formula": "[stats.a]"}],
    }
    path = _write_json(tmp_path / "bar.json", [bar])

    call_command("validate_chart_configs", path, stdout=StringIO())
    with pytest.raises(CommandError):
        call_command("validate_chart_configs", path, "--strict", stdout=StringIO())


def test_validate_chart_configs_reports_unreadable_documents(tmp_path) -> None:
    """Parse errors surface as CommandError."""

    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(CommandError):
        call_command("validate_chart_configs", str(path), stdout=StringIO())


def test_calculate_charts_prints_ordered_json(tmp_path) -> None:
    """Results are printed as JSON, active charts only, sorted by order."""

    configs = _write_json(tmp_path / "charts.json", CONFIGS)
    stats = _write_json(tmp_path / "stats.json", STATS)
    out = StringIO()

    call_command("calculate_charts", "--configs", configs, "--stats", stats, stdout=out)

    payload = json.loads(out.getvalue())
    assert [chart["chartId"] for chart in payload] == ["gender", "fans"]
    assert [element["formattedValue"] for element in payload[0]["elements"]] == ["25%", "75%"]
    assert payload[1]["elements"][0]["value"] == 100.0
    assert payload[1]["elements"][0]["formattedValue"] == "100"


def test_calculate_charts_with_parameters_and_summary(tmp_path) -> None:
    """Inactive charts can be included and parameters supplied from a file."""

    configs = _write_json(tmp_path / "charts.json", CONFIGS)
    stats = _write_json(tmp_path / "stats.json", STATS)
    parameters = _write_json(tmp_path / "params.json", {"price": 9.5})
    out = StringIO()

    call_command(
        "calculate_charts",
        "--configs",
        configs,
        "--stats",
        stats,
        "--parameters",
        parameters,
        "--include-inactive",
        "--summary",
        stdout=out,
    )

    payload = json.loads(out.getvalue())
    hidden = next(chart for chart in payload["charts"] if chart["chartId"] == "hidden")
    assert hidden["elements"][0]["formattedValue"] == "10"
    assert payload["summary"]["totalCharts"] == 3
    assert payload["summary"]["activeCharts"] == 2
    assert payload["summary"]["chartTypes"] == {"kpi": 2, "pie": 1}


def test_calculate_charts_report_mode_flags_missing_ids(tmp_path) -> None:
    """Requested chart ids are calculated in order; unknown ids become errors."""

    configs = _write_json(tmp_path / "charts.json", CONFIGS)
    stats = _write_json(tmp_path / "stats.json", STATS)
    out = StringIO()

    call_command(
        "calculate_charts",
        "--configs",
        configs,
        "--stats",
        stats,
        "--chart",
        "fans",
        "--chart",
        "nope",
        "--na-text",
        "n/a",
        stdout=out,
    )

    payload = json.loads(out.getvalue())
    assert [chart["chartId"] for chart in payload] == ["fans", "nope"]
    assert payload[1]["error"]["kind"] == "missing_chart_config"


def test_calculate_charts_rejects_non_numeric_parameters(tmp_path) -> None:
    """Parameter documents must contain numbers only."""

    configs = _write_json(tmp_path / "charts.json", CONFIGS)
    stats = _write_json(tmp_path / "stats.json", STATS)
    parameters = _write_json(tmp_path / "params.json", {"price": "cheap"})

    with pytest.raises(CommandError):
        call_command(
            "calculate_charts",
            "--configs",
            configs,
            "--stats",
            stats,
            "--parameters",
            parameters,
            stdout=StringIO(),
        )


def test_calculate_charts_reports_bad_engine_settings(tmp_path, settings) -> None:
    """Misconfigured CHART_ENGINE settings surface as a CommandError."""

    settings.CHART_ENGINE = {"DECIMAL_PLACES": "two"}
    configs = _write_json(tmp_path / "charts.json", CONFIGS)
    stats = _write_json(tmp_path / "stats.json", STATS)

    with pytest.raises(CommandError, match="DECIMAL_PLACES"):
        call_command("calculate_charts", "--configs", configs, "--stats", stats, stdout=StringIO())
