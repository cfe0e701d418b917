"""Token resolution for chart formulas.

Formulas embed variable references in several historical syntaxes:

- `[stats.female]`: bracketed stats reference,
- `stats.female`: bare stats reference (never matched inside brackets),
- `[FEMALE]` / `[female]`: legacy reference without the `stats.` prefix,
- `[PARAM:key]`: configuration parameter,
- `[MANUAL:key]`: externally precomputed value.

All forms are recognized by a single ordered-rule pattern and substituted in
one left-to-right pass, so a span of text is never resolved twice. Resolution
is permissive: a missing field or key becomes `0` (numeric formulas) or `""`
(text/image formulas). Unrecognized syntax is left untouched so the evaluator
fails closed on it.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType

from .derived import DEFAULT_ALIAS_TABLE, DerivedAliasTable, numeric_field
from .dto import is_number


@dataclass(frozen=True, slots=True)
class StatsRef:
    """Reference to a stats field (`[stats.x]` or bare `stats.x`)."""

    name: str

    @property
    def canonical(self) -> str:
        return f"stats.{self.name}"


@dataclass(frozen=True, slots=True)
class LegacyRef:
    """Bracketed reference without the `stats.` prefix (`[FEMALE]`)."""

    name: str

    @property
    def canonical(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class ParamRef:
    """Reference to a configuration parameter (`[PARAM:key]`)."""

    key: str

    @property
    def canonical(self) -> str:
        return f"PARAM:{self.key}"


@dataclass(frozen=True, slots=True)
class ManualRef:
    """Reference to a manual data value (`[MANUAL:key]`)."""

    key: str

    @property
    def canonical(self) -> str:
        return f"MANUAL:{self.key}"


Token = StatsRef | LegacyRef | ParamRef | ManualRef


@dataclass(frozen=True, slots=True)
class TokenMatch:
    """A token located inside a formula.

    Attributes:
        token: Parsed token variant.
        start: Start offset in the formula.
        end: End offset in the formula (exclusive).
        text: Matched source text.
    """

    token: Token
    start: int
    end: int
    text: str


# Alternatives are tried in order at each position. Bracketed forms consume
# the whole `[...]` span, and the bare form refuses to start after `[`, `.` or
# a word character or to end before `]`.
_TOKEN_PATTERN = re.compile(
    r"\[PARAM:(?P<param>[A-Za-z0-9_]+)\]"
    r"|\[MANUAL:(?P<manual>[A-Za-z0-9_]+)\]"
    r"|\[stats\.(?P<bracket_stats>[A-Za-z0-9_]+)\]"
    r"|\[(?P<legacy>[A-Za-z0-9_]+)\]"
    r"|(?<![\w.\[])stats\.(?P<bare_stats>[A-Za-z0-9_]+)(?![\w.]*\])"
)
_BARE_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_LABEL_PLACEHOLDER = re.compile(r"\{\{\s*(?:stats\.)?([A-Za-z0-9_]+)\s*\}\}")


def _normalize_name(name: str) -> str:
    return name.replace("_", "").casefold()


@dataclass(frozen=True)
class TokenSources:
    """Read-only value sources used to resolve tokens.

    Args:
        stats: Flat stats record.
        parameters: Values for `[PARAM:key]` tokens.
        manual_data: Values for `[MANUAL:key]` tokens.
        aliases: Derived alias table for computed stats fields.
    """

    stats: Mapping[str, object]
    parameters: Mapping[str, object] = field(default_factory=dict)
    manual_data: Mapping[str, object] = field(default_factory=dict)
    aliases: DerivedAliasTable = DEFAULT_ALIAS_TABLE

    def __post_init__(self) -> None:
        object.__setattr__(self, "stats", MappingProxyType(dict(self.stats)))
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))
        object.__setattr__(self, "manual_data", MappingProxyType(dict(self.manual_data)))

    @cached_property
    def _normalized_index(self) -> dict[str, str]:
        """Map case/underscore-insensitive names to stats keys and aliases."""

        index: dict[str, str] = {}
        for key in sorted(str(k) for k in self.stats):
            index.setdefault(_normalize_name(key), key)
        for name in sorted(self.aliases.names()):
            index.setdefault(_normalize_name(name), name)
        return index

    def stats_field(self, name: str) -> object | None:
        """Return a stats field, falling back to derived aliases."""

        value = self.stats.get(name)
        if value is not None:
            return value
        return self.aliases.resolve(name, self.stats)

    def legacy_field(self, name: str) -> object | None:
        """Return a field referenced with legacy syntax (`[FEMALE]`)."""

        value = self.stats_field(name)
        if value is not None:
            return value
        resolved_name = self._normalized_index.get(_normalize_name(name))
        if resolved_name is None:
            return None
        return self.stats_field(resolved_name)

    def lookup(self, token: Token) -> object | None:
        """Return the raw value for a token, or None when it is absent."""

        if isinstance(token, ParamRef):
            return self.parameters.get(token.key)
        if isinstance(token, ManualRef):
            return self.manual_data.get(token.key)
        if isinstance(token, StatsRef):
            return self.stats_field(token.name)
        return self.legacy_field(token.name)


def _token_from_match(match: re.Match[str]) -> Token:
    groups = match.groupdict()
    if groups["param"] is not None:
        return ParamRef(groups["param"])
    if groups["manual"] is not None:
        return ManualRef(groups["manual"])
    if groups["bracket_stats"] is not None:
        return StatsRef(groups["bracket_stats"])
    if groups["legacy"] is not None:
        return LegacyRef(groups["legacy"])
    return StatsRef(groups["bare_stats"])


def iter_tokens(formula: str) -> Iterator[TokenMatch]:
    """Yield every recognized token in a formula, left to right."""

    for match in _TOKEN_PATTERN.finditer(formula or ""):
        yield TokenMatch(
            token=_token_from_match(match),
            start=match.start(),
            end=match.end(),
            text=match.group(0),
        )


def tokenize_formula(formula: str) -> tuple[TokenMatch, ...]:
    """Return every recognized token in a formula."""

    return tuple(iter_tokens(formula))


def extract_variables(formula: str) -> tuple[str, ...]:
    """Return distinct canonical variable names in order of first appearance.

    Stats references are reported as `stats.<name>`, legacy references by
    their bare name, parameters as `PARAM:<key>` and manual data as
    `MANUAL:<key>`.
    """

    seen: dict[str, None] = {}
    for match in iter_tokens(formula):
        seen.setdefault(match.token.canonical, None)
    return tuple(seen)


def missing_variables(formula: str, sources: TokenSources) -> tuple[str, ...]:
    """Return stats fields a formula references that the record cannot supply.

    Derived aliases are always available, and `PARAM`/`MANUAL` tokens are
    resolved externally, so neither is ever reported.
    """

    missing: dict[str, None] = {}
    for match in iter_tokens(formula):
        token = match.token
        if isinstance(token, (ParamRef, ManualRef)):
            continue
        if sources.lookup(token) is None:
            missing.setdefault(token.name, None)
    return tuple(missing)


def numeric_literal(value: object) -> str:
    """Render a resolved value as an expression literal.

    Every literal is wrapped in parentheses so that adjacent tokens never
    merge into one number (`[stats.a][stats.b]` becomes `(1)(2)`, which the
    evaluator rejects). Numbers and numeric strings become numeric literals;
    any other string becomes a quoted string literal, which the evaluator
    also rejects. Absent values become `(0)`.
    """

    if value is None:
        return "(0)"
    if is_number(value):
        number = float(value)  # type: ignore[arg-type]
    elif isinstance(value, str):
        parsed = numeric_field({"value": value}, "value")
        if parsed is None:
            return f"({value!r})"
        number = parsed
    else:
        return f"({str(value)!r})"

    text = str(int(number)) if number.is_integer() and abs(number) < 1e15 else repr(number)
    return f"({text})"


def resolve_formula(formula: str, sources: TokenSources) -> str:
    """Substitute every token in a numeric formula with its literal value.

    Args:
        formula: Formula text containing tokens.
        sources: Value sources for stats, parameters and manual data.

    Returns:
        An arithmetic expression ready for `evaluate_expression`.
    """

    return _TOKEN_PATTERN.sub(
        lambda match: numeric_literal(sources.lookup(_token_from_match(match))),
        formula or "",
    )


def single_field_reference(formula: str) -> Token | None:
    """Return the token when a formula is exactly one field reference.

    Accepts `[stats.x]`, `stats.x`, `[X]` and a bare identifier `x`.
    `PARAM`/`MANUAL` tokens are not field references.
    """

    text = (formula or "").strip()
    if not text:
        return None
    match = _TOKEN_PATTERN.fullmatch(text)
    if match is not None:
        token = _token_from_match(match)
        return token if isinstance(token, (StatsRef, LegacyRef)) else None
    if _BARE_IDENTIFIER.fullmatch(text):
        return LegacyRef(text)
    return None


def resolve_text(formula: str, sources: TokenSources) -> str:
    """Resolve a text/image formula to its raw string content.

    Args:
        formula: A single field reference.
        sources: Value sources.

    Returns:
        The referenced value as a string, or "" when the field is missing or
        the formula is not a single field reference.
    """

    token = single_field_reference(formula)
    if token is None:
        return ""
    return _plain_text(sources.lookup(token))


def resolve_label(label: str, stats: Mapping[str, object], *, missing_text: str = "N/A") -> str:
    """Replace `{{stats.field}}` placeholders in a label with record values."""

    if "{{" not in (label or ""):
        return label or ""

    def _replace(match: re.Match[str]) -> str:
        value = stats.get(match.group(1))
        if value is None or isinstance(value, bool):
            return missing_text
        return _plain_text(value)

    return _LABEL_PLACEHOLDER.sub(_replace, label)


def _plain_text(value: object) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
