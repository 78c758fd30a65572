"""Tactics-weighted card evaluation and attack targeting."""

from __future__ import annotations

from typing import Callable, TYPE_CHECKING

from faction_battle.conditions import check_all_conditions, check_condition
from faction_battle.models import (
    FIELD_LIMIT, INITIAL_LIFE, Card, CardTemplate, FieldCard, opponent_of,
)

if TYPE_CHECKING:
    from faction_battle.models import GameState

SPELL_NO_TARGET_SCORE = -1000.0

# Base value of a creature per tactics: f(attack, health, cost).
AI_EVALUATION_WEIGHTS: dict[str, Callable[[int, int, int], float]] = {
    "aggressive": lambda atk, hp, cost: atk * 2 + hp - cost,
    "defensive": lambda atk, hp, cost: hp * 2 + atk - cost,
    "tempo": lambda atk, hp, cost: (atk + hp) / max(cost, 1) * 3 - cost * 2,
    "balanced": lambda atk, hp, cost: (atk + hp) / max(cost, 1),
}

# Chance that an attack goes to the enemy player while unguarded creatures exist.
TACTICS_ATTACK_PROBABILITIES: dict[str, float] = {
    "aggressive": 0.6,
    "defensive": 0.2,
    "balanced": 0.4,
    "tempo": 0.5,
}

_DEBUFF_ACTIONS = frozenset({"debuff_attack", "debuff_health", "destroy_all_creatures", "banish"})
_DISABLE_ACTIONS = frozenset({"silence", "stun"})


def _actions(t: CardTemplate) -> set[str]:
    return {e.action for e in t.effects}


def _triggers(t: CardTemplate) -> set[str]:
    return {e.trigger for e in t.effects}


# ---------------------------------------------------------------------------
# Playability
# ---------------------------------------------------------------------------

def spell_has_target(gs: "GameState", card: Card, player_id: str) -> bool:
    """True when at least one on_play effect of the spell would do something."""
    me = gs.player(player_id)
    opp = gs.player(opponent_of(player_id))
    for effect in card.template.effects:
        if effect.trigger != "on_play":
            continue
        if not check_condition(gs, player_id, effect.activation_condition):
            continue
        if effect.target.startswith("enemy_"):
            random_pick = effect.target == "enemy_random"
            if any(
                fc.is_alive and not fc.has_keyword("untargetable")
                and not (random_pick and fc.is_stealthed)
                for fc in opp.field
            ):
                return True
        elif effect.target.startswith("ally_"):
            if any(fc.is_alive for fc in me.field):
                return True
        elif effect.target == "player":
            return True
    return False


def is_playable(gs: "GameState", card: Card, player_id: str) -> bool:
    me = gs.player(player_id)
    t = card.template
    if me.energy < t.cost:
        return False
    if t.is_creature and len(me.field) >= FIELD_LIMIT:
        return False
    return check_all_conditions(gs, player_id, t.play_conditions)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def base_score(t: CardTemplate, tactics: str) -> float:
    if not t.is_creature:
        return t.cost * 1.5
    weigh = AI_EVALUATION_WEIGHTS.get(tactics)
    if weigh is None:
        raise ValueError(f"Unknown tactics: {tactics}")
    return weigh(t.attack, t.health, t.cost)


def faction_bonus(gs: "GameState", card: Card, player_id: str) -> float:
    me = gs.player(player_id)
    opp = gs.player(opponent_of(player_id))
    t = card.template
    actions = _actions(t)
    triggers = _triggers(t)
    enemies = len(opp.field)
    bonus = 0.0

    match me.faction:
        case "necromancer":
            if "echo" in t.keywords:
                bonus += len(me.graveyard) * 3
            if "on_death" in triggers:
                bonus += 5
        case "knight":
            if "formation" in t.keywords:
                bonus += len(me.field) * 4
            if "guard" in t.keywords:
                bonus += 6
        case "berserker":
            bonus += max(0, INITIAL_LIFE - me.life) * 1.5
            if t.is_creature and t.attack > t.health:
                bonus += t.attack * 2
        case "mage":
            if not t.is_creature:
                bonus += 15
                bonus += max(0, len(me.hand) - len(opp.hand)) * 2
                spell_allies = sum(
                    1 for fc in me.field
                    if any(e.trigger == "on_spell_play" for e in fc.template.effects)
                )
                bonus += spell_allies * 5
            if "on_spell_play" in triggers:
                bonus += 10
            if "draw_card" in actions:
                bonus += 8
            aoe = any(e.action == "damage" and e.target == "enemy_all" for e in t.effects)
            if aoe and enemies >= 2:
                bonus += enemies * 4
        case "inquisitor":
            if actions & _DEBUFF_ACTIONS:
                bonus += enemies * 3
            if actions & _DISABLE_ACTIONS:
                bonus += 8
    return bonus


def evaluate_card_for_play(gs: "GameState", card: Card, player_id: str) -> float:
    t = card.template
    if not t.is_creature and not spell_has_target(gs, card, player_id):
        return SPELL_NO_TARGET_SCORE
    tactics = gs.player(player_id).tactics
    return base_score(t, tactics) + faction_bonus(gs, card, player_id)


def choose_card_to_play(gs: "GameState", player_id: str) -> Card | None:
    """Best playable card in hand; ties keep hand order."""
    best: Card | None = None
    best_score = SPELL_NO_TARGET_SCORE
    for card in gs.player(player_id).hand:
        if not is_playable(gs, card, player_id):
            continue
        score = evaluate_card_for_play(gs, card, player_id)
        if score <= SPELL_NO_TARGET_SCORE:
            continue
        if best is None or score > best_score:
            best, best_score = card, score
    return best


# ---------------------------------------------------------------------------
# Attack targeting (guards are enforced by the combat layer)
# ---------------------------------------------------------------------------

def choose_attack_target(
    gs: "GameState",
    attacker: FieldCard,
    candidates: list[FieldCard],
) -> FieldCard | None:
    """Pick a creature to attack, or None to attack the enemy player."""
    if not candidates:
        return None
    tactics = gs.player(attacker.owner).tactics
    if gs.rng.next() < TACTICS_ATTACK_PROBABILITIES.get(tactics, 0.4):
        return None
    return gs.rng.choice(candidates)
