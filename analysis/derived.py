"""Derived stats aliases computed on the fly.

Some formulas reference aggregate fields (e.g. `stats.totalFans`) that a
stats record may not carry. Each alias is declared as the sum of other fields
(which may themselves be aliases) and resolved lazily from the record. A value
stored on the record always wins over the computed one.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from .dto import is_number


@dataclass(frozen=True, slots=True)
class DerivedAlias:
    """A stats field computed as the sum of other fields.

    Args:
        name: Alias field name referenced from formulas.
        components: Field names (or other alias names) summed to produce it.
        description: Optional documentation string.
    """

    name: str
    components: tuple[str, ...]
    description: str | None = None


DEFAULT_DERIVED_ALIASES: tuple[DerivedAlias, ...] = (
    DerivedAlias("remoteFans", ("indoor", "outdoor"), "Remote fans (indoor + outdoor)."),
    DerivedAlias("totalFans", ("remoteFans", "stadium"), "Remote fans plus stadium fans."),
    DerivedAlias("allImages", ("remoteImages", "hostessImages", "selfies"), "All captured images."),
    DerivedAlias("totalImages", ("remoteImages", "hostessImages", "selfies"), "Alias of allImages."),
    DerivedAlias("totalUnder40", ("genAlpha", "genYZ"), "Gen Alpha + Gen Y/Z."),
    DerivedAlias("totalOver40", ("genX", "boomer"), "Gen X + Boomer."),
)


class DerivedAliasTable:
    """Lookup table for derived aliases."""

    def __init__(self, aliases: tuple[DerivedAlias, ...] = DEFAULT_DERIVED_ALIASES) -> None:
        self._aliases: dict[str, DerivedAlias] = {alias.name: alias for alias in aliases}

    def __contains__(self, name: object) -> bool:
        return name in self._aliases

    def names(self) -> frozenset[str]:
        """Return every alias name."""

        return frozenset(self._aliases)

    def resolve(self, name: str, stats: Mapping[str, object]) -> float | None:
        """Resolve an alias against a stats record.

        Args:
            name: Alias name.
            stats: Read-only stats record.

        Returns:
            The stored numeric value when the record carries the field,
            otherwise the sum of the components (missing components count as
            0). None when `name` is not an alias.
        """

        return self._resolve(name, stats, visiting=frozenset())

    def _resolve(self, name: str, stats: Mapping[str, object], *, visiting: frozenset[str]) -> float | None:
        alias = self._aliases.get(name)
        if alias is None:
            return None

        stored = numeric_field(stats, name)
        if stored is not None:
            return stored

        total = 0.0
        for component in alias.components:
            if component in visiting or component == name:
                continue
            if component in self._aliases:
                value = self._resolve(component, stats, visiting=visiting | {name})
            else:
                value = numeric_field(stats, component)
            total += value or 0.0
        return total


def numeric_field(stats: Mapping[str, object], name: str) -> float | None:
    """Return a stats field as a float when it holds a number (or numeric string)."""

    raw = stats.get(name)
    if is_number(raw):
        return float(raw)  # type: ignore[arg-type]
    if isinstance(raw, str):
        try:
            parsed = float(raw.strip().replace(",", ""))
        except ValueError:
            return None
        return parsed if is_number(parsed) else None
    return None


DEFAULT_ALIAS_TABLE = DerivedAliasTable()
