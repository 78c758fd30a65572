"""Target filter engine – composable predicates over candidate cards.

Candidates are either ``FieldCard`` (battlefield) or ``Card`` (hand,
graveyard). Every function here is pure: it returns a new list and never
touches the candidates themselves.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence, TypeVar

from faction_battle.models import Card, FieldCard, FilterRule

C = TypeVar("C", Card, FieldCard)

RULE_TYPES = ("brand", "cost", "keyword", "card_type", "faction", "health", "property", "exclude_self")
RULE_OPERATORS = ("eq", "ne", "has", "not_has", "range")

LEGACY_FILTER_KEYS = frozenset({
    "min_cost", "max_cost", "has_keyword", "exclude_self", "hasBrand",
    "property", "value", "min_health", "max_health",
})


def rule_from_dict(raw: dict[str, Any]) -> FilterRule:
    rule = FilterRule(
        type=raw["type"],
        operator=raw.get("operator", "eq"),
        value=raw.get("value"),
        min=raw.get("min"),
        max=raw.get("max"),
    )
    if rule.type not in RULE_TYPES:
        raise ValueError(f"Unknown filter rule type: {rule.type}")
    if rule.operator not in RULE_OPERATORS:
        raise ValueError(f"Unknown filter operator: {rule.operator}")
    return rule


def convert_legacy_filter(legacy: dict[str, Any]) -> list[FilterRule]:
    """Translate ``{min_cost, max_cost, has_keyword, ...}`` into rules."""
    unknown = set(legacy) - LEGACY_FILTER_KEYS
    if unknown:
        raise ValueError(f"Unknown legacy filter keys: {sorted(unknown)}")

    rules: list[FilterRule] = []
    if legacy.get("hasBrand") is not None:
        rules.append(FilterRule("brand", "has" if legacy["hasBrand"] else "not_has"))
    if legacy.get("property") and legacy.get("value") is not None:
        rules.append(FilterRule(
            "property", "eq",
            value={"property": legacy["property"], "expected": legacy["value"]},
        ))
    if legacy.get("min_cost") is not None or legacy.get("max_cost") is not None:
        rules.append(FilterRule("cost", "range", min=legacy.get("min_cost"), max=legacy.get("max_cost")))
    if legacy.get("has_keyword"):
        rules.append(FilterRule("keyword", "has", value=legacy["has_keyword"]))
    if legacy.get("min_health") is not None or legacy.get("max_health") is not None:
        rules.append(FilterRule("health", "range", min=legacy.get("min_health"), max=legacy.get("max_health")))
    if legacy.get("exclude_self"):
        rules.append(FilterRule("exclude_self", "eq", value=True))
    return rules


# ---------------------------------------------------------------------------
# Rule evaluation
# ---------------------------------------------------------------------------

def _health_of(candidate: Card | FieldCard) -> int:
    if isinstance(candidate, FieldCard):
        return candidate.current_health
    return candidate.template.health


def _is_branded(candidate: Card | FieldCard) -> bool:
    return isinstance(candidate, FieldCard) and candidate.has_status("branded")


def _compare(actual: int, rule: FilterRule) -> bool:
    if rule.operator == "range":
        return (rule.min is None or actual >= rule.min) and (rule.max is None or actual <= rule.max)
    if rule.operator == "ne":
        return actual != rule.value
    return actual == rule.value


def _property_of(candidate: Card | FieldCard, name: str) -> Any:
    if hasattr(candidate, name):
        return getattr(candidate, name)
    return getattr(candidate.template, name, None)


def _evaluate(candidate: Card | FieldCard, rule: FilterRule, source_id: str | None) -> bool:
    t = candidate.template
    match rule.type:
        case "brand":
            branded = _is_branded(candidate)
            return branded if rule.operator == "has" else not branded
        case "cost":
            return _compare(t.cost, rule)
        case "keyword":
            present = rule.value in t.keywords
            return not present if rule.operator == "not_has" else present
        case "card_type":
            return t.card_type == rule.value
        case "faction":
            return t.faction == rule.value
        case "health":
            return _compare(_health_of(candidate), rule)
        case "property":
            wanted = rule.value if isinstance(rule.value, dict) else {}
            if "property" not in wanted:
                return True
            return _property_of(candidate, wanted["property"]) == wanted.get("expected")
        case "exclude_self":
            return source_id is None or candidate.instance_id != source_id
    raise ValueError(f"Unknown filter rule type: {rule.type}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def filter_targets(
    candidates: Iterable[C],
    rules: Sequence[FilterRule],
    source_id: str | None = None,
) -> list[C]:
    """Keep the candidates that pass every rule."""
    return [c for c in candidates if all(_evaluate(c, r, source_id) for r in rules)]


def apply_legacy_filter(
    candidates: Iterable[C],
    legacy: dict[str, Any],
    source_id: str | None = None,
) -> list[C]:
    return filter_targets(candidates, convert_legacy_filter(legacy), source_id)


def apply_multiple_filters(
    candidates: Iterable[C],
    filters: Sequence[dict[str, Any] | Sequence[FilterRule]],
    source_id: str | None = None,
) -> list[C]:
    """Sequential AND across several rule sets (legacy dicts or rule lists)."""
    out = list(candidates)
    for f in filters:
        if isinstance(f, dict):
            out = apply_legacy_filter(out, f, source_id)
        else:
            out = filter_targets(out, f, source_id)
    return out
