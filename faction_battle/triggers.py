"""Trigger dispatch, effect execution, passive recompute and death handling."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from faction_battle.action_log import log_creature_destroyed, log_trigger_event
from faction_battle.conditions import check_condition
from faction_battle.effects import (
    PLAYER_LEVEL_ACTIONS, EffectContext, reindex_field, resolve_effect,
)
from faction_battle.filters import apply_legacy_filter, filter_targets
from faction_battle.models import (
    PLAYER_IDS, Card, CardEffect, DynamicValue, FieldCard, opponent_of,
)

if TYPE_CHECKING:
    from faction_battle.models import GameState

logger = logging.getLogger(__name__)

SINGLE_CARD_TRIGGERS = ("on_play", "on_death", "on_damage_taken", "on_attack")
PLAYER_SCOPED_TRIGGERS = ("on_spell_play", "on_ally_death", "turn_start", "turn_end")
GLOBAL_TRIGGERS = ("passive",)

# Actions after which passive modifiers must be recomputed.
FIELD_CHANGING_ACTIONS = frozenset({"summon", "resurrect", "banish", "silence"})


# ---------------------------------------------------------------------------
# Dynamic values and targeting
# ---------------------------------------------------------------------------

def resolve_dynamic_value(
    gs: "GameState",
    dv: DynamicValue,
    source_id: str,
    player_id: str,
) -> int:
    """Count a live zone. Reads only; never mutates the state."""
    me = gs.player(player_id)
    opp = gs.player(opponent_of(player_id))
    match dv.source:
        case "graveyard":
            pool: list[Card | FieldCard] = list(me.graveyard)
        case "field":
            pool = list(me.field)
        case "enemy_field":
            pool = list(opp.field)
        case _:
            raise ValueError(f"Unknown dynamic value source: {dv.source}")

    match dv.filter:
        case None:
            pass
        case "creatures":
            pool = [c for c in pool if c.template.is_creature]
        case "alive":
            pool = [c for c in pool if not isinstance(c, FieldCard) or c.is_alive]
        case "exclude_self":
            pool = [c for c in pool if c.instance_id != source_id]
        case "has_brand":
            pool = [c for c in pool if isinstance(c, FieldCard) and c.has_status("branded")]
        case _:
            raise ValueError(f"Unknown dynamic value filter: {dv.filter}")
    return len(pool) + dv.base_value


def _narrow(effect: CardEffect, pool: list[FieldCard], source_id: str) -> list[FieldCard]:
    if effect.selection_rules:
        pool = filter_targets(pool, effect.selection_rules, source_id)
    if effect.target_filter:
        pool = apply_legacy_filter(pool, effect.target_filter, source_id)
    return pool


def select_targets(
    gs: "GameState",
    effect: CardEffect,
    source_id: str,
    player_id: str,
) -> list[FieldCard]:
    """Creatures an effect applies to. ``player`` targets select no creature."""
    me = gs.player(player_id)
    opp = gs.player(opponent_of(player_id))
    allies = [fc for fc in me.field if fc.is_alive]
    enemies = [fc for fc in opp.field if fc.is_alive and not fc.has_keyword("untargetable")]

    match effect.target:
        case "self":
            fc = gs.find_field_card(source_id)
            return [fc] if fc is not None and fc.is_alive else []
        case "player":
            return []
        case "ally_all":
            return _narrow(effect, allies, source_id)
        case "enemy_all":
            return _narrow(effect, enemies, source_id)
        case "ally_random":
            pick = gs.rng.choice(_narrow(effect, allies, source_id))
            return [pick] if pick is not None else []
        case "enemy_random":
            pool = [fc for fc in enemies if not fc.is_stealthed]
            pick = gs.rng.choice(_narrow(effect, pool, source_id))
            return [pick] if pick is not None else []
    raise ValueError(f"Unknown effect target: {effect.target}")


# ---------------------------------------------------------------------------
# Effect execution
# ---------------------------------------------------------------------------

def execute_card_effect(
    gs: "GameState",
    effect: CardEffect,
    source: Card | FieldCard,
    player_id: str,
    trigger: str | None = None,
) -> bool:
    """Run one effect: condition, value, targets, action, deaths.

    Returns False when the effect did nothing because its condition failed or
    it found no target.
    """
    if not check_condition(gs, player_id, effect.activation_condition):
        return False

    value = effect.value
    if effect.dynamic_value is not None:
        value = resolve_dynamic_value(gs, effect.dynamic_value, source.instance_id, player_id)

    targets = select_targets(gs, effect, source.instance_id, player_id)
    if not targets and effect.target != "player" and effect.action not in PLAYER_LEVEL_ACTIONS:
        return False

    ctx = EffectContext(
        effect=effect,
        source_id=source.instance_id,
        source_template=source.template,
        player_id=player_id,
        trigger=trigger or effect.trigger,
        value=value,
        targets=targets,
    )
    resolve_effect(gs, ctx)

    if ctx.is_passive:
        return True
    resolve_pending_deaths(gs, "effect", source.instance_id)
    if effect.action in FIELD_CHANGING_ACTIONS:
        apply_passive_effects(gs)
    return True


def _run_card_effects(
    gs: "GameState",
    card: Card | FieldCard,
    trigger: str,
    player_id: str,
    target_card_id: str | None = None,
) -> None:
    effects = [e for e in card.template.effects if e.trigger == trigger]
    if not effects:
        return
    log_trigger_event(gs, player_id, trigger, card.instance_id, target_card_id)
    for effect in effects:
        execute_card_effect(gs, effect, card, player_id, trigger)


def process_effect_trigger(
    gs: "GameState",
    trigger: str,
    source_card: Card | FieldCard | None = None,
    player_id: str | None = None,
    target_card_id: str | None = None,
) -> None:
    """Fire ``trigger`` for every effect that listens to it.

    Single-card triggers run only the source card's effects. Player-scoped
    triggers run the given player's field in position order. Passive effects
    are not dispatched here; use ``apply_passive_effects``.
    """
    if trigger in SINGLE_CARD_TRIGGERS:
        if source_card is None:
            raise ValueError(f"Trigger {trigger} requires a source card")
        if isinstance(source_card, FieldCard):
            if source_card.is_silenced:
                return
            owner = source_card.owner
        else:
            if player_id is None:
                raise ValueError(f"Trigger {trigger} on a card in hand requires a player")
            owner = player_id
        _run_card_effects(gs, source_card, trigger, owner, target_card_id)
        return

    if trigger in PLAYER_SCOPED_TRIGGERS:
        if player_id is None:
            raise ValueError(f"Trigger {trigger} requires a player")
        for fc in list(gs.player(player_id).field):
            if fc.is_silenced or not fc.is_alive:
                continue
            # an earlier effect in this pass may have removed it
            if fc not in gs.player(player_id).field:
                continue
            _run_card_effects(gs, fc, trigger, player_id, target_card_id)
        return

    if trigger in GLOBAL_TRIGGERS:
        apply_passive_effects(gs)
        return

    raise ValueError(f"Unknown effect trigger: {trigger}")


# ---------------------------------------------------------------------------
# Passive recompute
# ---------------------------------------------------------------------------

def apply_passive_effects(gs: "GameState") -> None:
    """Recompute every passive modifier from scratch.

    Gains in passive health heal by the same amount; losses only clamp.
    Calling this twice without a field change leaves the board as it was.
    """
    previous: dict[str, int] = {}
    for pid in PLAYER_IDS:
        for fc in gs.player(pid).field:
            previous[fc.instance_id] = fc.passive_health_modifier
            fc.passive_attack_modifier = 0
            fc.passive_health_modifier = 0

    for pid in PLAYER_IDS:
        for fc in list(gs.player(pid).field):
            if fc.is_silenced or not fc.is_alive:
                continue
            for effect in fc.template.effects:
                if effect.trigger == "passive":
                    execute_card_effect(gs, effect, fc, pid, "passive")

    for pid in PLAYER_IDS:
        for fc in gs.player(pid).field:
            gained = fc.passive_health_modifier - previous.get(fc.instance_id, 0)
            if gained > 0:
                fc.current_health += gained
            fc.current_health = min(fc.current_health, fc.max_health)

    resolve_pending_deaths(gs, "effect", None)


# ---------------------------------------------------------------------------
# Deaths
# ---------------------------------------------------------------------------

def handle_creature_death(
    gs: "GameState",
    fc: FieldCard,
    cause: str,
    source_card_id: str | None,
) -> None:
    """Log, move to graveyard, then fire on_death and on_ally_death."""
    owner = gs.player(fc.owner)
    if fc not in owner.field:
        return
    log_creature_destroyed(gs, fc, cause, source_card_id)
    owner.field.remove(fc)
    owner.graveyard.append(fc.to_card())
    reindex_field(owner.field)
    logger.debug("%s destroyed (%s)", fc.instance_id, cause)

    if not fc.is_silenced:
        _run_card_effects(gs, fc, "on_death", fc.owner)
    process_effect_trigger(gs, "on_ally_death", player_id=fc.owner, target_card_id=fc.instance_id)


def resolve_pending_deaths(gs: "GameState", cause: str, source_card_id: str | None) -> None:
    """Destroy creatures at zero health until none remain, then recompute passives."""
    died = False
    while True:
        dead = next(
            (fc for pid in PLAYER_IDS for fc in gs.player(pid).field if fc.current_health <= 0),
            None,
        )
        if dead is None:
            break
        handle_creature_death(gs, dead, cause, source_card_id)
        died = True
    if died:
        apply_passive_effects(gs)
