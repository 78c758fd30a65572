"""Activation and play conditions. Pure reads of the game state."""

from __future__ import annotations

import operator
from typing import Callable, Iterable, TYPE_CHECKING

from faction_battle.models import EffectCondition, opponent_of

if TYPE_CHECKING:
    from faction_battle.models import GameState

OPERATORS: dict[str, Callable[[int, int], bool]] = {
    "lt": operator.lt,
    "lte": operator.le,
    "gt": operator.gt,
    "gte": operator.ge,
    "eq": operator.eq,
}

CONDITION_SUBJECTS = (
    "graveyard", "allyCount", "enemyCreatureCount", "playerLife",
    "opponentLife", "brandedEnemyCount", "hasBrandedEnemy",
)


def subject_value(gs: "GameState", player_id: str, subject: str) -> int:
    me = gs.player(player_id)
    opp = gs.player(opponent_of(player_id))
    match subject:
        case "graveyard":
            return len(me.graveyard)
        case "allyCount":
            return len(me.field)
        case "enemyCreatureCount":
            return len(opp.field)
        case "playerLife":
            return me.life
        case "opponentLife":
            return opp.life
        case "brandedEnemyCount":
            return sum(1 for fc in opp.field if fc.has_status("branded"))
        case "hasBrandedEnemy":
            return 1 if any(fc.has_status("branded") for fc in opp.field) else 0
    raise ValueError(f"Unknown condition subject: {subject}")


def validate_condition(cond: EffectCondition) -> None:
    if cond.subject not in CONDITION_SUBJECTS:
        raise ValueError(f"Unknown condition subject: {cond.subject}")
    if cond.operator not in OPERATORS:
        raise ValueError(f"Unknown condition operator: {cond.operator}")
    if isinstance(cond.value, str) and cond.value not in CONDITION_SUBJECTS:
        raise ValueError(f"Unknown condition value: {cond.value}")


def check_condition(gs: "GameState", player_id: str, cond: EffectCondition | None) -> bool:
    """Evaluate ``subject <op> value`` from ``player_id``'s point of view.

    ``value`` may name another subject, e.g. ``playerLife lt opponentLife``.
    A missing condition always holds.
    """
    if cond is None:
        return True
    left = subject_value(gs, player_id, cond.subject)
    if isinstance(cond.value, str):
        right = subject_value(gs, player_id, cond.value)
    else:
        right = cond.value
    op = OPERATORS.get(cond.operator)
    if op is None:
        raise ValueError(f"Unknown condition operator: {cond.operator}")
    return op(left, right)


def check_all_conditions(
    gs: "GameState",
    player_id: str,
    conditions: Iterable[EffectCondition | None],
) -> bool:
    return all(check_condition(gs, player_id, c) for c in conditions)
