"""Tests for batch simulation and aggregation."""

import json
import os
import tempfile
import unittest

from faction_battle.loader import load_cards, load_deck
from faction_battle.models import MatchLog
from faction_battle.simulation import aggregate, match_log, read_logs, run_batch

from factories import CARDS_JSON, deck_path, make_gs


class TestRunBatch(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.card_db = load_cards(CARDS_JSON)
        cls.decks = [
            load_deck(deck_path(name), cls.card_db)
            for name in ("iron_phalanx", "starlight_ritual", "endless_harvest")
        ]

    def test_batch_small(self):
        logs = run_batch(self.card_db, self.decks, n_matches=2, base_seed="batch")
        # 3 decks -> 3 pairs x 2 matches
        self.assertEqual(len(logs), 6)
        for log in logs:
            self.assertIn(log.winner, ("player1", "player2", None))
            self.assertIn(log.reason, ("life_zero", "timeout"))
        self.assertEqual(logs[0].seed, "batch-0")
        self.assertEqual(logs[-1].deck_ids, ("starlight_ritual", "endless_harvest"))

    def test_batch_is_reproducible(self):
        a = run_batch(self.card_db, self.decks[:2], n_matches=2, base_seed="rep")
        b = run_batch(self.card_db, self.decks[:2], n_matches=2, base_seed="rep")
        self.assertEqual(a, b)

    def test_batch_writes_output(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            logs = run_batch(self.card_db, self.decks[:2], n_matches=2, base_seed="out",
                             output_dir=tmpdir, check_invariants=True)
            logfile = os.path.join(tmpdir, "match_logs.json")
            self.assertEqual(read_logs(logfile), logs)
            with open(os.path.join(tmpdir, "summary_metrics.json"), encoding="utf-8") as f:
                summary = json.load(f)
        self.assertEqual(summary["count"], 2)
        self.assertIn("knight|mage", summary["by_group"])

    def test_needs_two_decks(self):
        with self.assertRaises(ValueError):
            run_batch(self.card_db, self.decks[:1], n_matches=1, base_seed="x")

    def test_match_log_needs_finished_game(self):
        with self.assertRaises(RuntimeError):
            match_log(make_gs(), self.decks[0], self.decks[1])


class TestAggregate(unittest.TestCase):
    def _log(self, winner, reason="life_zero", first="player1", turns=10):
        return MatchLog(
            seed="s", deck_ids=("a", "b"), factions=("knight", "mage"),
            first_player=first, winner=winner, reason=reason, turns=turns,
            final_life=(5, 0), action_count=100,
        )

    def test_counts(self):
        logs = [
            self._log("player1"),
            self._log("player2", first="player2"),
            self._log(None, reason="timeout", turns=20),
            self._log("player1", first="player2"),
        ]
        stats = aggregate(logs)
        self.assertEqual(stats["total_matches"], 4)
        self.assertEqual(stats["draws"], 1)
        self.assertEqual(stats["timeouts"], 1)
        self.assertEqual(stats["first_player_wins"], 2)
        self.assertEqual(stats["avg_turns"], 12.5)
        self.assertEqual(stats["decks"]["a"], {"wins": 2, "losses": 1, "draws": 1, "games": 4, "win_rate": 50.0})
        self.assertEqual(stats["factions"]["mage"]["win_rate"], 25.0)

    def test_empty(self):
        stats = aggregate([])
        self.assertEqual(stats["total_matches"], 0)
        self.assertEqual(stats["avg_turns"], 0.0)


if __name__ == "__main__":
    unittest.main()
