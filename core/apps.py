"""App configuration for the core Django app."""

from __future__ import annotations

from pathlib import Path

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Configuration for the `core` app (chart engine commands and settings)."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
    verbose_name = "Chart engine"
    # `core` is a namespace package, so Django cannot infer its location.
    path = str(Path(__file__).resolve().parent)
