"""Tests for card and deck loading."""

import json
import os
import tempfile
import unittest

from faction_battle.loader import build_deck, load_cards, load_deck, parse_card
from faction_battle.models import DECK_SIZE, EFFECT_ACTIONS, FACTIONS, KEYWORDS

from factories import CARDS_JSON, DECKS_DIR, deck_path


def _creature(**overrides):
    entry = {
        "template_id": "x", "name": "X", "faction": "knight",
        "card_type": "creature", "cost": 2, "attack": 1, "health": 1,
    }
    entry.update(overrides)
    return entry


class TestLoadCards(unittest.TestCase):
    def setUp(self):
        self.db = load_cards(CARDS_JSON)

    def test_load_all_cards(self):
        self.assertEqual(len(self.db), 55)
        self.assertEqual({c.faction for c in self.db.values()}, set(FACTIONS))

    def test_card_fields(self):
        zombie = self.db["necro_zombie"]
        self.assertTrue(zombie.is_creature)
        self.assertIn("guard", zombie.keywords)
        rally = self.db["kni_rally"]
        self.assertEqual(rally.card_type, "spell")
        self.assertEqual(rally.effects[0].target_filter, {"max_cost": 3})

    def test_catalogue_covers_vocabulary(self):
        actions = {e.action for c in self.db.values() for e in c.effects}
        keywords = {k for c in self.db.values() for k in c.keywords}
        self.assertEqual(actions, set(EFFECT_ACTIONS))
        self.assertEqual(keywords, set(KEYWORDS))

    def test_templates_are_frozen(self):
        with self.assertRaises(AttributeError):
            self.db["necro_zombie"].cost = 0


class TestCardValidation(unittest.TestCase):
    def _assert_rejected(self, entry):
        with self.assertRaises(ValueError):
            parse_card(entry)

    def test_valid_creature(self):
        card = parse_card(_creature(keywords=["guard"]))
        self.assertEqual(card.keywords, ("guard",))

    def test_cost_range(self):
        self._assert_rejected(_creature(cost=11))
        self._assert_rejected(_creature(cost=-1))

    def test_unknown_vocabulary(self):
        self._assert_rejected(_creature(card_type="artifact"))
        self._assert_rejected(_creature(faction="pirate"))
        self._assert_rejected(_creature(keywords=["flying"]))
        self._assert_rejected(_creature(effects=[{"trigger": "on_play", "target": "self", "action": "explode"}]))
        self._assert_rejected(_creature(effects=[{"trigger": "on_win", "target": "self", "action": "heal"}]))

    def test_creature_needs_health(self):
        self._assert_rejected(_creature(health=0))

    def test_spell_effects_trigger_on_play(self):
        self._assert_rejected({
            "template_id": "s", "name": "S", "faction": "mage", "card_type": "spell", "cost": 1,
            "effects": [{"trigger": "turn_start", "target": "player", "action": "damage", "value": 1}],
        })

    def test_passive_restrictions(self):
        self._assert_rejected(_creature(effects=[
            {"trigger": "passive", "target": "enemy_all", "action": "damage", "value": 1},
        ]))
        self._assert_rejected(_creature(effects=[
            {"trigger": "passive", "target": "ally_random", "action": "buff_attack", "value": 1},
        ]))

    def test_conditions_and_rules_validated(self):
        self._assert_rejected(_creature(play_conditions=[{"subject": "mana", "operator": "gt", "value": 1}]))
        self._assert_rejected(_creature(effects=[{
            "trigger": "on_play", "target": "enemy_all", "action": "damage", "value": 1,
            "selection_rules": [{"type": "colour", "value": "red"}],
        }]))
        self._assert_rejected(_creature(effects=[{
            "trigger": "on_play", "target": "enemy_all", "action": "damage", "value": 1,
            "target_filter": {"max_power": 2},
        }]))
        self._assert_rejected(_creature(effects=[{
            "trigger": "on_play", "target": "player", "action": "damage",
            "dynamic_value": {"source": "deck"},
        }]))

    def test_duplicate_ids(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "cards.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump([_creature(), _creature()], f)
            with self.assertRaises(ValueError):
                load_cards(path)


class TestLoadDeck(unittest.TestCase):
    def setUp(self):
        self.card_db = load_cards(CARDS_JSON)

    def _write_deck(self, tmp, raw):
        path = os.path.join(tmp, "deck.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(raw, f)
        return path

    def test_all_shipped_decks_load(self):
        for name in sorted(os.listdir(DECKS_DIR)):
            with self.subTest(deck=name):
                deck = load_deck(os.path.join(DECKS_DIR, name), self.card_db)
                self.assertEqual(sum(e.count for e in deck.entries), DECK_SIZE)
                self.assertEqual(len(build_deck(deck, self.card_db)), DECK_SIZE)

    def test_deck_fields(self):
        deck = load_deck(deck_path("iron_phalanx"), self.card_db)
        self.assertEqual(deck.deck_id, "iron_phalanx")
        self.assertEqual(deck.faction, "knight")
        self.assertEqual(deck.tactics, "defensive")

    def test_tactics_default(self):
        entries = [{"card_id": cid, "count": 2} for cid in
                   ["kni_squire", "kni_shield_bearer", "kni_sanctuary_prayer", "kni_banneret", "kni_lancer",
                    "kni_rally", "kni_paladin", "kni_marshal", "kni_vanguard", "kni_commander"]]
        with tempfile.TemporaryDirectory() as tmp:
            deck = load_deck(self._write_deck(tmp, {"deck_id": "d", "faction": "knight", "entries": entries}),
                             self.card_db)
        self.assertEqual(deck.tactics, "balanced")

    def test_rejections(self):
        bad = [
            {"deck_id": "short", "faction": "knight", "entries": [{"card_id": "kni_squire", "count": 2}]},
            {"deck_id": "copies", "faction": "knight", "entries": [{"card_id": "kni_squire", "count": 3}]},
            {"deck_id": "unknown", "faction": "knight", "entries": [{"card_id": "nope", "count": 1}]},
            {"deck_id": "offfaction", "faction": "knight", "entries": [{"card_id": "mag_torrent", "count": 1}]},
            {"deck_id": "tactics", "faction": "knight", "tactics": "reckless", "entries": []},
            {"deck_id": "faction", "faction": "pirate", "entries": []},
        ]
        with tempfile.TemporaryDirectory() as tmp:
            for raw in bad:
                with self.subTest(deck=raw["deck_id"]):
                    with self.assertRaises(ValueError):
                        load_deck(self._write_deck(tmp, raw), self.card_db)


if __name__ == "__main__":
    unittest.main()
