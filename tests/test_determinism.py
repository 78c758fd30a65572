"""Same seed, same game: the action log is a pure function of the inputs."""

import unittest

from faction_battle.engine import execute_full_game
from faction_battle.loader import build_deck, load_cards, load_deck

from factories import CARDS_JSON, deck_path


def _without_timestamps(gs):
    return [(a.sequence, a.player_id, a.type, a.data) for a in gs.action_log]


class TestDeterminism(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.card_db = load_cards(CARDS_JSON)
        cls.deck_a = load_deck(deck_path("starlight_ritual"), cls.card_db)
        cls.deck_b = load_deck(deck_path("endless_harvest"), cls.card_db)

    def _play(self, seed):
        return execute_full_game(
            "det",
            build_deck(self.deck_a, self.card_db),
            build_deck(self.deck_b, self.card_db),
            self.deck_a.faction, self.deck_b.faction,
            self.deck_a.tactics, self.deck_b.tactics,
            seed,
        )

    def test_same_seed_identical_logs(self):
        for seed in ("1", "alpha", "match-7"):
            with self.subTest(seed=seed):
                a = self._play(seed)
                b = self._play(seed)
                self.assertEqual(_without_timestamps(a), _without_timestamps(b))
                self.assertEqual(a.result.winner, b.result.winner)
                self.assertEqual(a.result.total_turns, b.result.total_turns)

    def test_seed_sensitivity(self):
        logs = {tuple(map(repr, _without_timestamps(self._play(f"s{i}")))) for i in range(5)}
        self.assertGreater(len(logs), 1)

    def test_sequence_is_contiguous(self):
        gs = self._play("contiguous")
        self.assertEqual([a.sequence for a in gs.action_log], list(range(len(gs.action_log))))

    def test_log_is_append_only_across_steps(self):
        from faction_battle.engine import create_initial_game_state, process_game_step

        gs = create_initial_game_state(
            "append",
            build_deck(self.deck_a, self.card_db),
            build_deck(self.deck_b, self.card_db),
            self.deck_a.faction, self.deck_b.faction,
            self.deck_a.tactics, self.deck_b.tactics,
            "append",
        )
        for _ in range(40):
            if gs.result is not None:
                break
            prev = list(gs.action_log)
            gs = process_game_step(gs)
            self.assertEqual(gs.action_log[:len(prev)], prev)


if __name__ == "__main__":
    unittest.main()
