"""Action logger – the only way a state change becomes observable."""

from __future__ import annotations

import time
from typing import Any, TYPE_CHECKING

from faction_battle.models import GameAction

if TYPE_CHECKING:
    from faction_battle.models import FieldCard, GameState

ACTION_TYPES = (
    "card_play",
    "card_attack",
    "creature_destroyed",
    "effect_trigger",
    "phase_change",
    "trigger_event",
    "energy_update",
    "keyword_trigger",
    "combat_stage",
    "card_draw",
)

COMBAT_STAGES = ("attack_declare", "damage_defender", "damage_attacker", "deaths")


def add_action(gs: "GameState", player_id: str, action_type: str, data: dict[str, Any]) -> GameAction:
    if action_type not in ACTION_TYPES:
        raise ValueError(f"Unknown action type: {action_type}")
    action = GameAction(
        sequence=len(gs.action_log),
        player_id=player_id,
        type=action_type,
        data=data,
        timestamp=time.time(),
    )
    gs.action_log.append(action)
    return action


def card_snapshot(fc: "FieldCard") -> dict[str, Any]:
    """Stats of a creature at the moment it is destroyed."""
    return {
        "id": fc.instance_id,
        "template_id": fc.template.template_id,
        "owner": fc.owner,
        "name": fc.name,
        "attack_total": fc.attack_total,
        "health_total": fc.max_health,
        "current_health": fc.current_health,
        "base_attack": fc.template.attack,
        "base_health": fc.template.health,
        "keywords": list(fc.template.keywords),
    }


# ---------------------------------------------------------------------------
# Typed helpers
# ---------------------------------------------------------------------------

def log_phase_change(gs: "GameState", player_id: str, from_phase: str, to_phase: str) -> None:
    add_action(gs, player_id, "phase_change", {"from_phase": from_phase, "to_phase": to_phase})


def log_card_play(
    gs: "GameState",
    player_id: str,
    card_id: str,
    position: int,
    energy_before: int,
    energy_after: int,
    initial_stats: dict[str, int] | None = None,
) -> None:
    data: dict[str, Any] = {
        "card_id": card_id,
        "position": position,
        "player_energy": {"before": energy_before, "after": energy_after},
    }
    if initial_stats is not None:
        data["initial_stats"] = initial_stats
    add_action(gs, player_id, "card_play", data)


def log_card_draw(gs: "GameState", player_id: str, card_id: str, hand_before: int, hand_after: int) -> None:
    add_action(gs, player_id, "card_draw", {
        "card_id": card_id,
        "hand_size_before": hand_before,
        "hand_size_after": hand_after,
    })


def log_card_attack(
    gs: "GameState",
    player_id: str,
    attacker_id: str,
    target_id: str,
    damage: int,
    target_health: tuple[int, int] | None = None,
    target_player_life: tuple[int, int] | None = None,
    attacker_health: tuple[int, int] | None = None,
) -> None:
    data: dict[str, Any] = {
        "attacker_card_id": attacker_id,
        "target_id": target_id,
        "damage": damage,
    }
    if target_health is not None:
        data["target_health"] = {"before": target_health[0], "after": target_health[1]}
    if target_player_life is not None:
        data["target_player_life"] = {"before": target_player_life[0], "after": target_player_life[1]}
    if attacker_health is not None:
        data["attacker_health"] = {"before": attacker_health[0], "after": attacker_health[1]}
    add_action(gs, player_id, "card_attack", data)


def log_creature_destroyed(
    gs: "GameState",
    fc: "FieldCard",
    source: str,
    source_card_id: str | None,
) -> None:
    add_action(gs, fc.owner, "creature_destroyed", {
        "destroyed_card_id": fc.instance_id,
        "source": source,
        "source_card_id": source_card_id,
        "card_snapshot": card_snapshot(fc),
    })


def log_effect_trigger(
    gs: "GameState",
    player_id: str,
    source_card_id: str,
    effect_type: str,
    effect_value: int,
    targets: dict[str, dict[str, Any]],
    affected_ids: list[str] | None = None,
) -> None:
    data: dict[str, Any] = {
        "source_card_id": source_card_id,
        "effect_type": effect_type,
        "effect_value": effect_value,
        "targets": targets,
    }
    if affected_ids:
        data["affected_ids"] = affected_ids
    add_action(gs, player_id, "effect_trigger", data)


def log_trigger_event(
    gs: "GameState",
    player_id: str,
    trigger_type: str,
    source_card_id: str | None,
    target_card_id: str | None = None,
) -> None:
    add_action(gs, player_id, "trigger_event", {
        "trigger_type": trigger_type,
        "source_card_id": source_card_id,
        "target_card_id": target_card_id,
    })


def log_energy_update(gs: "GameState", player_id: str, before: int, after: int) -> None:
    add_action(gs, player_id, "energy_update", {
        "max_energy_before": before,
        "max_energy_after": after,
    })


def log_keyword_trigger(
    gs: "GameState",
    player_id: str,
    keyword: str,
    source_card_id: str,
    target_id: str,
    value: int,
) -> None:
    add_action(gs, player_id, "keyword_trigger", {
        "keyword": keyword,
        "source_card_id": source_card_id,
        "target_id": target_id,
        "value": value,
    })


def log_combat_stage(
    gs: "GameState",
    player_id: str,
    stage: str,
    attacker_id: str,
    target_id: str | None = None,
) -> None:
    if stage not in COMBAT_STAGES:
        raise ValueError(f"Unknown combat stage: {stage}")
    add_action(gs, player_id, "combat_stage", {
        "stage": stage,
        "attacker_id": attacker_id,
        "target_id": target_id,
    })
