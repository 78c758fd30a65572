"""JSON card and deck loading with validation."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from faction_battle.conditions import validate_condition
from faction_battle.effects import EFFECT_REGISTRY
from faction_battle.filters import convert_legacy_filter, rule_from_dict
from faction_battle.models import (
    CARD_COPY_LIMIT, CARD_TYPES, DECK_SIZE, EFFECT_ACTIONS, EFFECT_TARGETS,
    EFFECT_TRIGGERS, FACTIONS, KEYWORDS, TACTICS, CardEffect, CardTemplate,
    DeckDef, DeckEntry, DynamicValue, EffectCondition,
)

logger = logging.getLogger(__name__)

DYNAMIC_SOURCES = ("graveyard", "field", "enemy_field")
DYNAMIC_FILTERS = (None, "creatures", "alive", "exclude_self", "has_brand")
PASSIVE_ACTIONS = ("buff_attack", "buff_health")


def _condition(raw: dict[str, Any]) -> EffectCondition:
    cond = EffectCondition(subject=raw["subject"], operator=raw["operator"], value=raw["value"])
    validate_condition(cond)
    return cond


def _effect(card_id: str, raw: dict[str, Any]) -> CardEffect:
    dv = raw.get("dynamic_value")
    cond = raw.get("activation_condition")
    effect = CardEffect(
        trigger=raw["trigger"],
        target=raw["target"],
        action=raw["action"],
        value=raw.get("value", 0),
        dynamic_value=DynamicValue(
            source=dv["source"],
            filter=dv.get("filter"),
            base_value=dv.get("base_value", 0),
        ) if dv else None,
        activation_condition=_condition(cond) if cond else None,
        selection_rules=tuple(rule_from_dict(r) for r in raw.get("selection_rules", ())),
        target_filter=raw.get("target_filter"),
    )
    _validate_effect(card_id, effect)
    return effect


def validate_passive_effect(card_id: str, effect: CardEffect) -> None:
    """Passives are recomputed from scratch, so they may only buff fixed targets."""
    if effect.action not in PASSIVE_ACTIONS:
        raise ValueError(f"Card {card_id}: passive effects may only buff, got '{effect.action}'")
    if effect.target.endswith("_random"):
        raise ValueError(f"Card {card_id}: passive effects cannot pick random targets")


def _validate_effect(card_id: str, effect: CardEffect) -> None:
    if effect.trigger not in EFFECT_TRIGGERS:
        raise ValueError(f"Card {card_id}: unknown trigger '{effect.trigger}'")
    if effect.target not in EFFECT_TARGETS:
        raise ValueError(f"Card {card_id}: unknown target '{effect.target}'")
    if effect.action not in EFFECT_ACTIONS or effect.action not in EFFECT_REGISTRY:
        raise ValueError(f"Card {card_id}: unknown action '{effect.action}'")
    if effect.value < 0:
        raise ValueError(f"Card {card_id}: negative effect value {effect.value}")
    if effect.trigger == "passive":
        validate_passive_effect(card_id, effect)
    dv = effect.dynamic_value
    if dv is not None:
        if dv.source not in DYNAMIC_SOURCES:
            raise ValueError(f"Card {card_id}: unknown dynamic value source '{dv.source}'")
        if dv.filter not in DYNAMIC_FILTERS:
            raise ValueError(f"Card {card_id}: unknown dynamic value filter '{dv.filter}'")
    if effect.target_filter is not None:
        convert_legacy_filter(effect.target_filter)


def _validate_card(card: CardTemplate) -> None:
    if card.cost < 0 or card.cost > 10:
        raise ValueError(f"Card {card.template_id}: cost {card.cost} out of range [0,10]")
    if card.card_type not in CARD_TYPES:
        raise ValueError(f"Card {card.template_id}: invalid card_type '{card.card_type}'")
    if card.faction not in FACTIONS:
        raise ValueError(f"Card {card.template_id}: unknown faction '{card.faction}'")
    for kw in card.keywords:
        if kw not in KEYWORDS:
            raise ValueError(f"Card {card.template_id}: unknown keyword '{kw}'")
    if card.is_creature:
        if card.health < 1 or card.attack < 0:
            raise ValueError(f"Card {card.template_id}: creature needs attack >= 0 and health >= 1")
    else:
        for effect in card.effects:
            if effect.trigger != "on_play":
                raise ValueError(f"Card {card.template_id}: spell effects must trigger on_play")


def parse_card(entry: dict[str, Any]) -> CardTemplate:
    card_id = entry["template_id"]
    card = CardTemplate(
        template_id=card_id,
        name=entry["name"],
        faction=entry["faction"],
        cost=entry["cost"],
        card_type=entry["card_type"],
        attack=entry.get("attack", 0),
        health=entry.get("health", 0),
        keywords=tuple(entry.get("keywords", ())),
        effects=tuple(_effect(card_id, e) for e in entry.get("effects", ())),
        play_conditions=tuple(_condition(c) for c in entry.get("play_conditions", ())),
        flavor=entry.get("flavor", ""),
    )
    _validate_card(card)
    return card


def load_cards(path: str | Path) -> dict[str, CardTemplate]:
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    card_db: dict[str, CardTemplate] = {}
    for entry in raw:
        card = parse_card(entry)
        if card.template_id in card_db:
            raise ValueError(f"Duplicate card id '{card.template_id}'")
        card_db[card.template_id] = card
    logger.info("loaded %d cards from %s", len(card_db), path)
    return card_db


def load_deck(path: str | Path, card_db: dict[str, CardTemplate]) -> DeckDef:
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    deck_id = raw["deck_id"]
    faction = raw["faction"]
    tactics = raw.get("tactics", "balanced")
    if faction not in FACTIONS:
        raise ValueError(f"Deck {deck_id}: unknown faction '{faction}'")
    if tactics not in TACTICS:
        raise ValueError(f"Deck {deck_id}: unknown tactics '{tactics}'")

    entries: list[DeckEntry] = []
    total = 0
    for e in raw["entries"]:
        card_id = e["card_id"]
        count = e["count"]
        if card_id not in card_db:
            raise ValueError(f"Deck {deck_id}: unknown card_id '{card_id}'")
        if card_db[card_id].faction != faction:
            raise ValueError(f"Deck {deck_id}: card '{card_id}' is not a {faction} card")
        if count < 1 or count > CARD_COPY_LIMIT:
            raise ValueError(f"Deck {deck_id}: card '{card_id}' count {count} not in [1,{CARD_COPY_LIMIT}]")
        total += count
        entries.append(DeckEntry(card_id=card_id, count=count))

    if total != DECK_SIZE:
        raise ValueError(f"Deck {deck_id}: total cards {total}, expected {DECK_SIZE}")

    return DeckDef(deck_id=deck_id, faction=faction, tactics=tactics, entries=tuple(entries))


def build_deck(deck: DeckDef, card_db: dict[str, CardTemplate]) -> list[CardTemplate]:
    """Expand a deck definition into the template list the engine shuffles."""
    return [card_db[card_id] for card_id in deck.card_ids()]
