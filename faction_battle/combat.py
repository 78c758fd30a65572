"""Combat resolution – one attacker at a time."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from faction_battle.action_log import (
    log_card_attack, log_combat_stage, log_keyword_trigger,
)
from faction_battle.models import FieldCard, StatusEffect, opponent_of
from faction_battle.tactics import choose_attack_target
from faction_battle.triggers import process_effect_trigger, resolve_pending_deaths

if TYPE_CHECKING:
    from faction_battle.models import GameState

logger = logging.getLogger(__name__)

POISON_DURATION = 2
POISON_DAMAGE = 1


def can_attack(fc: FieldCard, turn_number: int) -> bool:
    if not fc.is_alive or fc.is_silenced or fc.has_attacked or fc.has_status("stun"):
        return False
    return fc.summon_turn < turn_number or fc.has_keyword("rush")


def eligible_attackers(gs: "GameState", player_id: str) -> list[FieldCard]:
    return [fc for fc in gs.player(player_id).field if can_attack(fc, gs.turn_number)]


def select_attack_target(gs: "GameState", attacker: FieldCard) -> FieldCard | None:
    """Guards first, chosen uniformly through the RNG; otherwise defer to tactics.

    Returns None when the attack goes to the enemy player.
    """
    opp = gs.player(opponent_of(attacker.owner))
    visible = [fc for fc in opp.field if fc.is_alive and not fc.is_stealthed]
    guards = [fc for fc in visible if fc.has_keyword("guard")]
    if guards:
        return gs.rng.choice(guards)
    return choose_attack_target(gs, attacker, visible)


def _counter_damage(target: FieldCard) -> tuple[int, int]:
    """Damage the defender deals back, and the retaliate part of it (floor of half)."""
    atk = target.attack_total
    retaliate = atk // 2 if target.has_keyword("retaliate") else 0
    return atk + retaliate, retaliate


def _apply_poison(target: FieldCard) -> None:
    existing = next((s for s in target.status_effects if s.type == "poison"), None)
    if existing is None:
        target.status_effects.append(
            StatusEffect("poison", duration=POISON_DURATION, damage=POISON_DAMAGE)
        )
    else:
        existing.duration = max(existing.duration or 0, POISON_DURATION)


def _lifesteal(gs: "GameState", attacker: FieldCard, target_id: str, dealt: int) -> None:
    if dealt <= 0 or not attacker.has_keyword("lifesteal"):
        return
    gs.player(attacker.owner).life += dealt
    log_keyword_trigger(gs, attacker.owner, "lifesteal", attacker.instance_id, attacker.owner, dealt)


def _attack_player(gs: "GameState", attacker: FieldCard, damage: int) -> None:
    opp_id = opponent_of(attacker.owner)
    opp = gs.player(opp_id)
    before = opp.life
    opp.life = max(0, opp.life - damage)
    log_combat_stage(gs, attacker.owner, "damage_defender", attacker.instance_id, opp_id)
    log_card_attack(
        gs, attacker.owner, attacker.instance_id, opp_id, damage,
        target_player_life=(before, opp.life),
    )
    _lifesteal(gs, attacker, opp_id, before - opp.life)


def _attack_creature(gs: "GameState", attacker: FieldCard, target: FieldCard, damage: int) -> None:
    pid = attacker.owner
    opp = gs.player(opponent_of(pid))
    counter, retaliate = _counter_damage(target)

    before = target.current_health
    target.current_health -= damage
    log_combat_stage(gs, pid, "damage_defender", attacker.instance_id, target.instance_id)
    log_card_attack(
        gs, pid, attacker.instance_id, target.instance_id, damage,
        target_health=(before, target.current_health),
    )

    _lifesteal(gs, attacker, target.instance_id, min(damage, max(before, 0)))
    if attacker.has_keyword("poison") and target.is_alive and damage > 0:
        _apply_poison(target)
        log_keyword_trigger(gs, pid, "poison", attacker.instance_id, target.instance_id, POISON_DAMAGE)
    if attacker.has_keyword("trample") and not target.is_alive:
        excess = damage - max(before, 0)
        if excess > 0:
            life_before = opp.life
            opp.life = max(0, opp.life - excess)
            log_keyword_trigger(gs, pid, "trample", attacker.instance_id, opp.id, life_before - opp.life)

    if target.is_alive and damage > 0:
        process_effect_trigger(gs, "on_damage_taken", source_card=target, target_card_id=attacker.instance_id)

    # Counter-damage is simultaneous: it is dealt even when the defender died.
    if counter > 0 and attacker.is_alive:
        if retaliate > 0:
            log_keyword_trigger(gs, target.owner, "retaliate", target.instance_id, attacker.instance_id, retaliate)
        a_before = attacker.current_health
        attacker.current_health -= counter
        log_combat_stage(gs, pid, "damage_attacker", attacker.instance_id, target.instance_id)
        log_card_attack(
            gs, target.owner, target.instance_id, attacker.instance_id, counter,
            attacker_health=(a_before, attacker.current_health),
        )


def resolve_attack(gs: "GameState", attacker: FieldCard) -> None:
    """Full attack of one creature: on_attack, target, damage, keywords, deaths."""
    pid = attacker.owner
    attacker.has_attacked = True
    process_effect_trigger(gs, "on_attack", source_card=attacker)
    if not attacker.is_alive or attacker not in gs.player(pid).field:
        resolve_pending_deaths(gs, "effect", attacker.instance_id)
        return

    target = select_attack_target(gs, attacker)
    target_id = target.instance_id if target is not None else opponent_of(pid)
    log_combat_stage(gs, pid, "attack_declare", attacker.instance_id, target_id)
    attacker.is_stealthed = False
    damage = attacker.attack_total
    logger.debug("%s attacks %s for %d", attacker.instance_id, target_id, damage)

    if target is None:
        _attack_player(gs, attacker, damage)
    else:
        _attack_creature(gs, attacker, target, damage)

    if any(fc.current_health <= 0 for p in gs.players.values() for fc in p.field):
        log_combat_stage(gs, pid, "deaths", attacker.instance_id, target_id)
        resolve_pending_deaths(gs, "combat", attacker.instance_id)
