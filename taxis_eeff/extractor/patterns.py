"""Pattern-based field extraction from statement HTML.

Each extracted field is described by a ``FieldSpec`` holding an ordered list of
``ExtractionRule`` objects. Rules are tried in declared order and the first one
whose pattern matches with a parseable capture wins. When the portal changes its
page layout, a new rule is appended to ``config/extraction_rules.json``; the
orchestrator does not change.

Fields that no rule resolves default to ``0``. That zero is a "not found"
sentinel: it is reported as an ``ExtractionMiss`` and logged at WARNING so
extraction drift does not go unnoticed, while a genuine matched zero is only
logged at DEBUG.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from taxis_eeff.config import get_extraction_rules, setup_logging
from taxis_eeff.models import ExtractedFields

logger = setup_logging(__name__)

__all__ = [
    "ExtractionMiss",
    "ExtractionRule",
    "FieldResult",
    "FieldSpec",
    "extract_field",
    "extract_fields",
    "load_field_specs",
]


# =============================================================================
# Dataclasses
# =============================================================================


@dataclass(frozen=True)
class ExtractionRule:
    """One regex rule capturing a numeric value.

    Attributes
    ----------
    name : str
        Identifier used in diagnostics (e.g., ``"original_layout"``).
    pattern : re.Pattern[str]
        Compiled regex.
    group : str | int
        Named group (or group index) holding the number.
    """

    name: str
    pattern: re.Pattern[str]
    group: str | int = 1

    @classmethod
    def compile(cls, name: str, pattern: str, group: str | int = 1) -> ExtractionRule:
        """Compile ``pattern`` into a rule.

        Raises
        ------
        ValueError
            If the pattern is invalid or does not define ``group``.
        """
        try:
            compiled = re.compile(pattern)
        except re.error as err:
            msg = f"Invalid pattern for rule {name!r}: {err}"
            raise ValueError(msg) from err

        if isinstance(group, str) and group not in compiled.groupindex:
            msg = f"Rule {name!r} has no named group {group!r}"
            raise ValueError(msg)
        if isinstance(group, int) and group > compiled.groups:
            msg = f"Rule {name!r} has no group {group}"
            raise ValueError(msg)

        return cls(name=name, pattern=compiled, group=group)


@dataclass(frozen=True)
class FieldSpec:
    """Ordered extraction rules for one field of ``ExtractedFields``."""

    field: str
    rules: tuple[ExtractionRule, ...]


@dataclass(frozen=True)
class FieldResult:
    """Outcome of resolving one field.

    ``matched`` is ``False`` when ``value`` is the default 0 rather than a
    captured number; ``rule`` names the rule that produced the value.
    """

    field: str
    value: int
    rule: str | None = None
    matched: bool = False
    failures: tuple[str, ...] = ()


@dataclass
class ExtractionMiss:
    """Diagnostic for a field that fell back to its default.

    Attributes
    ----------
    field : str
        Field name (e.g., ``"total_income"``).
    context : str
        Where it happened, typically ``"<entity> (<year>)"``.
    rules_tried : list[str]
        Rule names in the order they were attempted.
    reasons : list[str]
        Per-rule failure descriptions.
    """

    field: str
    context: str
    rules_tried: list[str] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)

    def describe(self) -> str:
        """Return a one-line description for logs."""
        detail = "; ".join(self.reasons) if self.reasons else "no rules defined"
        return f"{self.field} not found for {self.context} ({detail})"


# =============================================================================
# Rule loading
# =============================================================================


def _parse_non_negative_int(raw: str) -> int | None:
    """Parse a captured number, returning ``None`` when it is not a non-negative integer."""
    cleaned = raw.strip()
    if not cleaned.isdecimal():
        return None
    return int(cleaned)


def load_field_specs(config: dict[str, Any] | None = None) -> list[FieldSpec]:
    """Build ``FieldSpec`` objects from extraction rule config.

    Parameters
    ----------
    config : dict[str, Any] | None, optional
        Payload shaped like ``extraction_rules.json``; read from disk when ``None``.

    Returns
    -------
    list[FieldSpec]
        One spec per configured field, rules in declared order.

    Raises
    ------
    ValueError
        If a field is not part of ``ExtractedFields`` or a rule is invalid.
    """
    if config is None:
        config = get_extraction_rules()

    known_fields = set(ExtractedFields.__dataclass_fields__)
    specs: list[FieldSpec] = []

    for field_name, rule_defs in config.get("fields", {}).items():
        if field_name not in known_fields:
            msg = f"Unknown extraction field: {field_name}"
            raise ValueError(msg)

        rules = tuple(
            ExtractionRule.compile(
                name=rule_def.get("name", f"{field_name}_{index}"),
                pattern=rule_def["pattern"],
                group=rule_def.get("group", 1),
            )
            for index, rule_def in enumerate(rule_defs)
        )
        specs.append(FieldSpec(field=field_name, rules=rules))

    return specs


# =============================================================================
# Extraction
# =============================================================================


def extract_field(document: str, spec: FieldSpec) -> FieldResult:
    """Resolve one field by trying its rules in order.

    Parameters
    ----------
    document : str
        Raw statement HTML.
    spec : FieldSpec
        Field name and ordered rules.

    Returns
    -------
    FieldResult
        Value from the first rule that matches with a parseable capture, or
        ``0`` with ``matched=False`` and the per-rule failures.
    """
    failures: list[str] = []

    for rule in spec.rules:
        match = rule.pattern.search(document)
        if match is None:
            failures.append(f"{rule.name}: no match")
            continue

        captured = match.group(rule.group)
        value = _parse_non_negative_int(captured or "")
        if value is None:
            failures.append(f"{rule.name}: unparseable capture {captured!r}")
            continue

        return FieldResult(field=spec.field, value=value, rule=rule.name, matched=True, failures=tuple(failures))

    return FieldResult(field=spec.field, value=0, failures=tuple(failures))


def extract_fields(
    document: str,
    specs: list[FieldSpec],
    context: str = "",
) -> tuple[ExtractedFields, list[ExtractionMiss]]:
    """Extract all configured fields from a statement page.

    Parameters
    ----------
    document : str
        Raw statement HTML.
    specs : list[FieldSpec]
        Field specs, usually from :func:`load_field_specs`.
    context : str, optional
        Label used in log lines and miss diagnostics.

    Returns
    -------
    tuple[ExtractedFields, list[ExtractionMiss]]
        Extracted values and one miss per defaulted field. Never raises on
        missing data.
    """
    fields = ExtractedFields()
    misses: list[ExtractionMiss] = []

    for spec in specs:
        result = extract_field(document, spec)
        setattr(fields, spec.field, result.value)

        if result.matched:
            if result.failures:
                logger.info(
                    "%s for %s resolved by fallback rule %s",
                    spec.field,
                    context,
                    result.rule,
                )
            if result.value == 0:
                logger.debug("%s for %s matched a genuine zero (rule %s)", spec.field, context, result.rule)
            continue

        miss = ExtractionMiss(
            field=spec.field,
            context=context,
            rules_tried=[rule.name for rule in spec.rules],
            reasons=list(result.failures),
        )
        logger.warning("Extraction miss, defaulting to 0: %s", miss.describe())
        misses.append(miss)

    return fields, misses
