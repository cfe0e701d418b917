"""Validate chart configuration documents before they are stored."""

from __future__ import annotations

import logging

from django.core.management.base import BaseCommand, CommandError

from analysis.chart_config_validator import validate_chart_configurations
from core.charting.documents import load_document
from core.charting.snapshot_codec import decode_chart_configurations

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Validate a JSON/YAML file of chart configurations."""

    help = "Validate chart configurations (JSON or YAML) against their chart type rules."

    def add_arguments(self, parser) -> None:
        """Add command arguments."""

        parser.add_argument("path", help="Path to a JSON or YAML configuration document.")
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Treat warnings as errors.",
        )

    def handle(self, *args, **options) -> str | None:
        """Run the command."""

        path: str = options["path"]
        strict: bool = options["strict"]

        try:
            configs = decode_chart_configurations(load_document(path))
        except ValueError as exc:
            raise CommandError(str(exc)) from exc

        result = validate_chart_configurations(configs)
        for warning in result.warnings:
            self.stdout.write(f"[WARN] {warning}")

        problems = list(result.errors)
        if strict:
            problems.extend(result.warnings)
        if problems:
            logger.info("Rejected %s: %d problem(s)", path, len(problems))
            raise CommandError("Invalid chart configurations:\n" + "\n".join(f"- {p}" for p in problems))

        self.stdout.write(f"[OK] {len(configs)} chart configuration(s) valid")
        return None
