"""Calculate chart results for a stats record and print them as JSON."""

from __future__ import annotations

import json
import logging

from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError

from analysis.chart_config_engine import calculate_charts, calculate_report, summarize_results
from core.charting.documents import load_document, load_mapping, load_numbers
from core.charting.snapshot_codec import (
    decode_chart_configurations,
    encode_calculation_summary,
    encode_chart_results,
)
from core.engine_settings import get_calculation_options

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Run the chart engine over configuration and stats documents."""

    help = "Calculate chart results from configuration and stats documents (JSON or YAML)."

    def add_arguments(self, parser) -> None:
        """Add command arguments."""

        parser.add_argument("--configs", required=True, help="Chart configuration document.")
        parser.add_argument("--stats", required=True, help="Flat stats record document.")
        parser.add_argument("--parameters", default=None, help="Optional {key: number} parameter document.")
        parser.add_argument("--manual", default=None, help="Optional {key: number} manual data document.")
        parser.add_argument(
            "--chart",
            action="append",
            dest="chart_ids",
            default=None,
            help="Calculate only these chart ids, in the given order (repeatable).",
        )
        parser.add_argument(
            "--include-inactive",
            action="store_true",
            help="Also calculate charts marked inactive.",
        )
        parser.add_argument("--na-text", default=None, help="Override the display text for NA values.")
        parser.add_argument(
            "--summary",
            action="store_true",
            help="Wrap the output with a calculation summary.",
        )

    def handle(self, *args, **options) -> str | None:
        """Run the command."""

        try:
            configs = decode_chart_configurations(load_document(options["configs"]))
            stats = load_mapping(options["stats"])
            parameters = load_numbers(options["parameters"])
            manual_data = load_numbers(options["manual"])
        except ValueError as exc:
            raise CommandError(str(exc)) from exc

        try:
            calc_options = get_calculation_options({"NA_TEXT": options["na_text"]})
        except ImproperlyConfigured as exc:
            raise CommandError(str(exc)) from exc

        chart_ids: list[str] | None = options["chart_ids"]
        if chart_ids:
            results = calculate_report(configs, chart_ids, stats, parameters, manual_data, options=calc_options)
        else:
            results = calculate_charts(
                configs,
                stats,
                parameters,
                manual_data,
                options=calc_options,
                include_inactive=options["include_inactive"],
            )
        logger.info("Calculated %d chart(s) from %s", len(results), options["configs"])

        payload: object = encode_chart_results(results)
        if options["summary"]:
            payload = {
                "charts": payload,
                "summary": encode_calculation_summary(summarize_results(configs, results)),
            }
        self.stdout.write(json.dumps(payload, indent=2, ensure_ascii=False))
        return None
