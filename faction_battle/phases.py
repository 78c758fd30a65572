"""Phase processors and the phase/turn transition."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from faction_battle.action_log import (
    log_card_draw, log_card_play, log_effect_trigger, log_energy_update,
    log_phase_change,
)
from faction_battle.combat import eligible_attackers, resolve_attack
from faction_battle.models import (
    ENERGY_LIMIT, HAND_LIMIT, PHASES, Card, FieldCard, opponent_of,
)
from faction_battle.tactics import choose_card_to_play
from faction_battle.triggers import (
    apply_passive_effects, process_effect_trigger, resolve_pending_deaths,
)

if TYPE_CHECKING:
    from faction_battle.models import GameState

logger = logging.getLogger(__name__)

MAX_DEPLOY_ATTEMPTS = 10


def advance_phase(gs: "GameState") -> None:
    """Move to the next phase; after ``end`` the other player's turn begins."""
    from_phase = gs.phase
    idx = PHASES.index(from_phase)
    if idx == len(PHASES) - 1:
        gs.current_player = opponent_of(gs.current_player)
        gs.turn_number += 1
        gs.phase = PHASES[0]
    else:
        gs.phase = PHASES[idx + 1]
    log_phase_change(gs, gs.current_player, from_phase, gs.phase)
    logger.debug("turn %d %s: %s -> %s", gs.turn_number, gs.current_player, from_phase, gs.phase)


# ---------------------------------------------------------------------------
# draw / energy
# ---------------------------------------------------------------------------

def process_draw_phase(gs: "GameState") -> None:
    pid = gs.current_player
    process_effect_trigger(gs, "turn_start", player_id=pid)
    p = gs.active()
    # a full hand skips the draw entirely, including the empty-deck penalty
    if len(p.hand) < HAND_LIMIT:
        if p.deck:
            card = p.deck.pop()
            p.hand.append(card)
            log_card_draw(gs, pid, card.instance_id, len(p.hand) - 1, len(p.hand))
        else:
            before = p.life
            p.life = max(0, p.life - 1)
            log_effect_trigger(gs, pid, "deck_empty", "damage", 1, {pid: {"life": {"before": before, "after": p.life}}})
    advance_phase(gs)


def process_energy_phase(gs: "GameState") -> None:
    p = gs.active()
    before = p.max_energy
    p.max_energy = min(before + 1, ENERGY_LIMIT)
    if p.max_energy != before:
        log_energy_update(gs, p.id, before, p.max_energy)
    p.energy = p.max_energy
    advance_phase(gs)


# ---------------------------------------------------------------------------
# deploy
# ---------------------------------------------------------------------------

def play_card(gs: "GameState", player_id: str, card: Card) -> None:
    """Pay for ``card`` and put it into play. Playability is the caller's concern."""
    p = gs.player(player_id)
    p.hand.remove(card)
    energy_before = p.energy
    p.energy -= card.cost

    if card.template.is_creature:
        fc = FieldCard.from_card(card, player_id, gs.turn_number, len(p.field))
        p.field.append(fc)
        log_card_play(
            gs, player_id, card.instance_id, fc.position, energy_before, p.energy,
            initial_stats={"attack": fc.attack_total, "health": fc.current_health},
        )
        process_effect_trigger(gs, "on_play", source_card=fc)
    else:
        p.graveyard.append(card)
        log_card_play(gs, player_id, card.instance_id, -1, energy_before, p.energy)
        process_effect_trigger(gs, "on_play", source_card=card, player_id=player_id)
        process_effect_trigger(gs, "on_spell_play", player_id=player_id, target_card_id=card.instance_id)

    logger.debug("%s plays %s (%d energy left)", player_id, card.instance_id, p.energy)
    apply_passive_effects(gs)


def process_deploy_phase(gs: "GameState") -> None:
    pid = gs.current_player
    apply_passive_effects(gs)
    for _ in range(MAX_DEPLOY_ATTEMPTS):
        if any(p.life <= 0 for p in gs.players.values()):
            break
        card = choose_card_to_play(gs, pid)
        if card is None:
            break
        play_card(gs, pid, card)
    advance_phase(gs)


# ---------------------------------------------------------------------------
# battle
# ---------------------------------------------------------------------------

def process_battle_phase(gs: "GameState") -> None:
    apply_passive_effects(gs)
    advance_phase(gs)


def process_battle_attack_phase(gs: "GameState") -> None:
    """One attacker per call; moves on when nobody is left to attack."""
    if any(p.life <= 0 for p in gs.players.values()):
        advance_phase(gs)
        return
    attackers = eligible_attackers(gs, gs.current_player)
    if not attackers:
        advance_phase(gs)
        return
    resolve_attack(gs, attackers[0])


# ---------------------------------------------------------------------------
# end
# ---------------------------------------------------------------------------

def _tick_statuses(gs: "GameState", fc: FieldCard) -> None:
    for status in fc.status_effects:
        if status.type == "poison" and status.damage > 0 and fc.is_alive:
            before = fc.current_health
            fc.current_health -= status.damage
            log_effect_trigger(
                gs, fc.owner, "poison_effect", "damage", status.damage,
                {fc.instance_id: {"health": {"before": before, "after": fc.current_health}}},
            )
    for status in fc.status_effects:
        if status.duration is not None:
            status.duration -= 1
    fc.status_effects = [s for s in fc.status_effects if s.duration is None or s.duration > 0]


def process_end_phase(gs: "GameState") -> None:
    """Statuses of the current player's creatures tick down on their own turn end."""
    pid = gs.current_player
    for fc in list(gs.player(pid).field):
        _tick_statuses(gs, fc)
        fc.has_attacked = False
        fc.readied_this_turn = False
    resolve_pending_deaths(gs, "effect", "poison_effect")
    process_effect_trigger(gs, "turn_end", player_id=pid)
    advance_phase(gs)


PHASE_PROCESSORS = {
    "draw": process_draw_phase,
    "energy": process_energy_phase,
    "deploy": process_deploy_phase,
    "battle": process_battle_phase,
    "battle_attack": process_battle_attack_phase,
    "end": process_end_phase,
}
