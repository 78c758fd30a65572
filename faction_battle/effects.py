"""Effect actions – decorator-based registry.

Each handler applies one effect action to already-selected targets and logs
exactly one ``effect_trigger`` entry. Handlers never resolve deaths; the
trigger layer sweeps creatures at zero health once the handler returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, TYPE_CHECKING

from faction_battle.action_log import log_effect_trigger
from faction_battle.filters import filter_targets
from faction_battle.models import (
    FIELD_LIMIT, HAND_LIMIT, Card, CardEffect, CardTemplate, FieldCard,
    StatusEffect, opponent_of,
)

if TYPE_CHECKING:
    from faction_battle.models import GameState


@dataclass
class EffectContext:
    effect: CardEffect
    source_id: str
    source_template: CardTemplate
    player_id: str
    trigger: str
    value: int
    targets: list[FieldCard] = field(default_factory=list)

    @property
    def targets_player(self) -> bool:
        return self.effect.target == "player"

    @property
    def is_passive(self) -> bool:
        return self.trigger == "passive"


EffectHandler = Callable[["GameState", EffectContext], None]

EFFECT_REGISTRY: dict[str, EffectHandler] = {}

# Actions that work on a player's zones rather than on selected creatures.
PLAYER_LEVEL_ACTIONS = frozenset({
    "summon", "draw_card", "resurrect", "destroy_deck_top",
    "hand_discard", "destroy_all_creatures",
})


def register_effect(name: str):
    """Decorator to register an effect handler."""
    def decorator(fn: EffectHandler) -> EffectHandler:
        EFFECT_REGISTRY[name] = fn
        return fn
    return decorator


def resolve_effect(gs: "GameState", ctx: EffectContext) -> None:
    handler = EFFECT_REGISTRY.get(ctx.effect.action)
    if handler is None:
        raise ValueError(f"Unknown effect action: {ctx.effect.action}")
    handler(gs, ctx)


# ---------------------------------------------------------------------------
# Utility
# ---------------------------------------------------------------------------

def _delta(before: int, after: int) -> dict[str, int]:
    return {"before": before, "after": after}


def _emit(
    gs: "GameState",
    ctx: EffectContext,
    targets: dict[str, dict[str, Any]],
    affected: list[str] | None = None,
) -> None:
    log_effect_trigger(gs, ctx.player_id, ctx.source_id, ctx.effect.action, ctx.value, targets, affected)


def reindex_field(field_cards: list[FieldCard]) -> None:
    for i, fc in enumerate(field_cards):
        fc.position = i


def draw_cards(gs: "GameState", player_id: str, n: int) -> tuple[list[str], tuple[int, int] | None]:
    """Draw up to ``n`` cards, stopping at the hand limit.

    An empty deck costs 1 life and ends the draw. Returns the drawn instance
    ids and the (before, after) life pair when the deck ran out.
    """
    p = gs.player(player_id)
    drawn: list[str] = []
    for _ in range(n):
        if len(p.hand) >= HAND_LIMIT:
            break
        if not p.deck:
            before = p.life
            p.life = max(0, p.life - 1)
            return drawn, (before, p.life)
        card = p.deck.pop()
        p.hand.append(card)
        drawn.append(card.instance_id)
    return drawn, None


def _place_on_field(gs: "GameState", player_id: str, card: Card) -> FieldCard:
    p = gs.player(player_id)
    fc = FieldCard.from_card(card, player_id, gs.turn_number, len(p.field))
    p.field.append(fc)
    return fc


# ---------------------------------------------------------------------------
# Damage and healing
# ---------------------------------------------------------------------------

@register_effect("damage")
def _damage(gs: "GameState", ctx: EffectContext) -> None:
    targets: dict[str, dict[str, Any]] = {}
    if ctx.targets_player:
        opp_id = opponent_of(ctx.player_id)
        opp = gs.player(opp_id)
        before = opp.life
        opp.life = max(0, opp.life - ctx.value)
        if opp.life != before:
            targets[opp_id] = {"life": _delta(before, opp.life)}
    for fc in ctx.targets:
        before = fc.current_health
        fc.current_health -= ctx.value
        if fc.current_health != before:
            targets[fc.instance_id] = {"health": _delta(before, fc.current_health)}
    _emit(gs, ctx, targets)


@register_effect("heal")
def _heal(gs: "GameState", ctx: EffectContext) -> None:
    targets: dict[str, dict[str, Any]] = {}
    if ctx.targets_player:
        me = gs.player(ctx.player_id)
        before = me.life
        me.life += ctx.value
        if me.life != before:
            targets[ctx.player_id] = {"life": _delta(before, me.life)}
    for fc in ctx.targets:
        before = fc.current_health
        fc.current_health = min(fc.max_health, fc.current_health + ctx.value)
        if fc.current_health != before:
            targets[fc.instance_id] = {"health": _delta(before, fc.current_health)}
    _emit(gs, ctx, targets)


# ---------------------------------------------------------------------------
# Stat modifiers
# ---------------------------------------------------------------------------

@register_effect("buff_attack")
def _buff_attack(gs: "GameState", ctx: EffectContext) -> None:
    if ctx.is_passive:
        for fc in ctx.targets:
            fc.passive_attack_modifier += ctx.value
        return
    targets: dict[str, dict[str, Any]] = {}
    for fc in ctx.targets:
        before = fc.attack_total
        fc.attack_modifier += ctx.value
        if fc.attack_total != before:
            targets[fc.instance_id] = {"attack": _delta(before, fc.attack_total)}
    _emit(gs, ctx, targets)


@register_effect("buff_health")
def _buff_health(gs: "GameState", ctx: EffectContext) -> None:
    if ctx.is_passive:
        # current_health follows the passive total in apply_passive_effects
        for fc in ctx.targets:
            fc.passive_health_modifier += ctx.value
        return
    targets: dict[str, dict[str, Any]] = {}
    for fc in ctx.targets:
        before = fc.current_health
        fc.health_modifier += ctx.value
        fc.current_health += ctx.value
        if fc.current_health != before:
            targets[fc.instance_id] = {"health": _delta(before, fc.current_health)}
    _emit(gs, ctx, targets)


@register_effect("debuff_attack")
def _debuff_attack(gs: "GameState", ctx: EffectContext) -> None:
    targets: dict[str, dict[str, Any]] = {}
    for fc in ctx.targets:
        before = fc.attack_total
        fc.attack_modifier = max(-fc.template.attack, fc.attack_modifier - ctx.value)
        if fc.attack_total != before:
            targets[fc.instance_id] = {"attack": _delta(before, fc.attack_total)}
    _emit(gs, ctx, targets)


@register_effect("debuff_health")
def _debuff_health(gs: "GameState", ctx: EffectContext) -> None:
    targets: dict[str, dict[str, Any]] = {}
    for fc in ctx.targets:
        before = fc.current_health
        fc.health_modifier -= ctx.value
        fc.current_health = min(fc.current_health, fc.max_health)
        if fc.current_health != before:
            targets[fc.instance_id] = {"health": _delta(before, fc.current_health)}
    _emit(gs, ctx, targets)


@register_effect("swap_attack_health")
def _swap_attack_health(gs: "GameState", ctx: EffectContext) -> None:
    targets: dict[str, dict[str, Any]] = {}
    for fc in ctx.targets:
        atk_before = fc.attack_total
        hp_before = fc.current_health
        fc.attack_modifier += hp_before - atk_before
        fc.health_modifier += atk_before - fc.max_health
        fc.current_health = atk_before
        changes: dict[str, Any] = {}
        if fc.attack_total != atk_before:
            changes["attack"] = _delta(atk_before, fc.attack_total)
        if fc.current_health != hp_before:
            changes["health"] = _delta(hp_before, fc.current_health)
        if changes:
            targets[fc.instance_id] = changes
    _emit(gs, ctx, targets)


# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------

@register_effect("silence")
def _silence(gs: "GameState", ctx: EffectContext) -> None:
    for fc in ctx.targets:
        fc.is_silenced = True
    _emit(gs, ctx, {}, [fc.instance_id for fc in ctx.targets])


@register_effect("stun")
def _stun(gs: "GameState", ctx: EffectContext) -> None:
    duration = max(1, ctx.value)
    for fc in ctx.targets:
        existing = next((s for s in fc.status_effects if s.type == "stun"), None)
        if existing is None:
            fc.status_effects.append(StatusEffect("stun", duration=duration))
        else:
            existing.duration = max(existing.duration or 0, duration)
    _emit(gs, ctx, {}, [fc.instance_id for fc in ctx.targets])


@register_effect("apply_brand")
def _apply_brand(gs: "GameState", ctx: EffectContext) -> None:
    branded: list[str] = []
    for fc in ctx.targets:
        if not fc.has_status("branded"):
            fc.status_effects.append(StatusEffect("branded"))
            branded.append(fc.instance_id)
    _emit(gs, ctx, {}, branded)


@register_effect("ready")
def _ready(gs: "GameState", ctx: EffectContext) -> None:
    readied: list[str] = []
    for fc in ctx.targets:
        if fc.readied_this_turn:
            continue
        fc.has_attacked = False
        fc.readied_this_turn = True
        readied.append(fc.instance_id)
    _emit(gs, ctx, {}, readied)


@register_effect("banish")
def _banish(gs: "GameState", ctx: EffectContext) -> None:
    banished: list[str] = []
    for fc in ctx.targets:
        owner = gs.player(fc.owner)
        if fc not in owner.field:
            continue
        owner.field.remove(fc)
        owner.banished_cards.append(fc.to_card())
        reindex_field(owner.field)
        banished.append(fc.instance_id)
    _emit(gs, ctx, {}, banished)


# ---------------------------------------------------------------------------
# Zone changes (player level)
# ---------------------------------------------------------------------------

@register_effect("summon")
def _summon(gs: "GameState", ctx: EffectContext) -> None:
    me = gs.player(ctx.player_id)
    src = ctx.source_template
    token = CardTemplate(
        template_id=f"{src.template_id}_token",
        name=f"{src.name} Token",
        faction=src.faction,
        cost=0,
        card_type="creature",
        attack=1,
        health=1,
    )
    targets: dict[str, dict[str, Any]] = {}
    for _ in range(ctx.value):
        if len(me.field) >= FIELD_LIMIT:
            break
        card = Card(template=token, instance_id=gs.alloc_instance_id(token.template_id, ctx.player_id))
        fc = _place_on_field(gs, ctx.player_id, card)
        targets[fc.instance_id] = {"health": _delta(0, fc.current_health)}
    _emit(gs, ctx, targets)


@register_effect("draw_card")
def _draw_card(gs: "GameState", ctx: EffectContext) -> None:
    drawn, fatigue = draw_cards(gs, ctx.player_id, ctx.value)
    targets: dict[str, dict[str, Any]] = {}
    if fatigue is not None and fatigue[0] != fatigue[1]:
        targets[ctx.player_id] = {"life": _delta(*fatigue)}
    _emit(gs, ctx, targets, drawn)


@register_effect("resurrect")
def _resurrect(gs: "GameState", ctx: EffectContext) -> None:
    """Return one random creature from the graveyard, whatever the effect value."""
    me = gs.player(ctx.player_id)
    targets: dict[str, dict[str, Any]] = {}
    if len(me.field) < FIELD_LIMIT:
        pool = [c for c in me.graveyard if c.template.is_creature]
        card = gs.rng.choice(pool)
        if card is not None:
            me.graveyard.remove(card)
            fc = _place_on_field(gs, ctx.player_id, card)
            fc.has_attacked = True
            targets[fc.instance_id] = {"health": _delta(0, fc.current_health)}
    _emit(gs, ctx, targets)


@register_effect("destroy_deck_top")
def _destroy_deck_top(gs: "GameState", ctx: EffectContext) -> None:
    opp = gs.player(opponent_of(ctx.player_id))
    destroyed: list[str] = []
    if opp.deck and opp.deck[-1].cost >= ctx.value:
        card = opp.deck.pop()
        opp.graveyard.append(card)
        destroyed.append(card.instance_id)
    _emit(gs, ctx, {}, destroyed)


@register_effect("hand_discard")
def _hand_discard(gs: "GameState", ctx: EffectContext) -> None:
    opp = gs.player(opponent_of(ctx.player_id))
    discarded: list[str] = []
    for _ in range(ctx.value):
        pool = filter_targets(opp.hand, ctx.effect.selection_rules, ctx.source_id)
        card = gs.rng.choice(pool)
        if card is None:
            break
        opp.hand.remove(card)
        opp.graveyard.append(card)
        discarded.append(card.instance_id)
    _emit(gs, ctx, {}, discarded)


@register_effect("destroy_all_creatures")
def _destroy_all_creatures(gs: "GameState", ctx: EffectContext) -> None:
    targets: dict[str, dict[str, Any]] = {}
    for pid in (ctx.player_id, opponent_of(ctx.player_id)):
        for fc in gs.player(pid).field:
            if fc.current_health > 0:
                targets[fc.instance_id] = {"health": _delta(fc.current_health, 0)}
                fc.current_health = 0
    _emit(gs, ctx, targets)
