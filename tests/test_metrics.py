"""Tests for action-log metrics."""

import unittest

from faction_battle.engine import execute_full_game
from faction_battle.loader import build_deck, load_cards, load_deck
from faction_battle.metrics import (
    aggregate_game_summaries, compute_game_metrics, summarize_game,
)
from faction_battle.models import GameAction

from factories import CARDS_JSON, deck_path


def _action(seq, pid, atype, data=None):
    return GameAction(seq, pid, atype, data or {}, 0.0)


def _phase(seq, pid, src, dst):
    return _action(seq, pid, "phase_change", {"from_phase": src, "to_phase": dst})


class TestComputeGameMetrics(unittest.TestCase):
    def setUp(self):
        self.actions = [
            _phase(0, "player1", "draw", "draw"),
            _action(1, "player1", "card_draw"),
            _phase(2, "player1", "draw", "energy"),
            _action(3, "player1", "energy_update"),
            _phase(4, "player2", "end", "draw"),
            _action(5, "player2", "card_draw"),
        ]

    def test_aggregate_counts(self):
        m = compute_game_metrics(self.actions, "g1")
        self.assertEqual(m["game_id"], "g1")
        self.assertEqual(m["aggregate"]["total"], 6)
        self.assertEqual(m["aggregate"]["by_type"], {"phase_change": 3, "card_draw": 2, "energy_update": 1})

    def test_per_turn_split(self):
        m = compute_game_metrics(self.actions)
        self.assertEqual(m["total_turns"], 2)
        self.assertEqual([t["total"] for t in m["per_turn"]], [4, 2])
        self.assertEqual([t["current_player"] for t in m["per_turn"]], ["player1", "player2"])

    def test_phase_ratios(self):
        phases = compute_game_metrics(self.actions)["phases"]
        self.assertEqual(phases["total_by_phase"], {"draw": 4, "energy": 2})
        self.assertAlmostEqual(phases["ratio_by_phase"]["energy"], 2 / 6)

    def test_empty_log(self):
        m = compute_game_metrics([])
        self.assertEqual(m["aggregate"]["total"], 0)
        self.assertEqual(m["per_turn"], [])


class TestSummaries(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        card_db = load_cards(CARDS_JSON)
        a = load_deck(deck_path("iron_phalanx"), card_db)
        b = load_deck(deck_path("starlight_ritual"), card_db)
        cls.gs = execute_full_game(
            "metrics", build_deck(a, card_db), build_deck(b, card_db),
            a.faction, b.faction, a.tactics, b.tactics, "metrics",
        )

    def test_summarize_game(self):
        s = summarize_game(self.gs)
        plays = [a for a in self.gs.action_log if a.type == "card_play"]
        self.assertEqual(s["player1_cards_played"] + s["player2_cards_played"], len(plays))
        self.assertEqual(
            s["player1_cards_played"], s["player1_spells_cast"] + s["player1_creatures_played"],
        )
        self.assertEqual(s["total_actions"], len(self.gs.action_log))
        self.assertEqual((s["player1_faction"], s["player2_faction"]), ("knight", "mage"))

    def test_face_damage_matches_counters(self):
        s = summarize_game(self.gs)
        for pid in ("player1", "player2"):
            self.assertGreaterEqual(s[f"{pid}_face_damage"], 0)
            self.assertGreaterEqual(s[f"{pid}_attacks"], 0)

    def test_aggregate_summaries(self):
        summaries = [
            {"player1_attacks": 2, "player1_faction": "knight"},
            {"player1_attacks": 4, "player1_faction": "knight"},
            {"player1_attacks": 9, "player1_faction": "mage"},
        ]
        agg = aggregate_game_summaries(summaries, group_keys=["player1_faction"])
        self.assertEqual(agg["count"], 3)
        self.assertEqual(agg["overall"]["player1_attacks"]["sum"], 15)
        self.assertEqual(agg["by_group"]["knight"]["player1_attacks"]["mean"], 3)
        self.assertEqual(agg["by_group"]["mage"]["player1_attacks"]["count"], 1)

    def test_aggregate_without_groups(self):
        agg = aggregate_game_summaries([summarize_game(self.gs)])
        self.assertNotIn("by_group", agg)
        self.assertIn("total_turns", agg["overall"])


if __name__ == "__main__":
    unittest.main()
