"""Batch simulation and aggregation."""

from __future__ import annotations

import json
import logging
from itertools import combinations
from pathlib import Path
from typing import Any

from faction_battle.engine import MAX_STEPS, execute_full_game
from faction_battle.invariants import assert_invariants
from faction_battle.loader import build_deck
from faction_battle.metrics import aggregate_game_summaries, summarize_game
from faction_battle.models import CardTemplate, DeckDef, GameState, MatchLog

logger = logging.getLogger(__name__)


def play_match(
    card_db: dict[str, CardTemplate],
    deck_a: DeckDef,
    deck_b: DeckDef,
    seed: str,
    game_id: str,
    max_steps: int = MAX_STEPS,
) -> GameState:
    return execute_full_game(
        game_id,
        build_deck(deck_a, card_db),
        build_deck(deck_b, card_db),
        deck_a.faction, deck_b.faction,
        deck_a.tactics, deck_b.tactics,
        seed,
        max_steps=max_steps,
    )


def match_log(gs: GameState, deck_a: DeckDef, deck_b: DeckDef) -> MatchLog:
    if gs.result is None:
        raise RuntimeError(f"Game {gs.game_id} has no result yet")
    return MatchLog(
        seed=gs.random_seed,
        deck_ids=(deck_a.deck_id, deck_b.deck_id),
        factions=(deck_a.faction, deck_b.faction),
        first_player=gs.action_log[0].player_id,
        winner=gs.result.winner,
        reason=gs.result.reason,
        turns=gs.result.total_turns,
        final_life=(gs.player("player1").life, gs.player("player2").life),
        action_count=len(gs.action_log),
    )


def run_batch(
    card_db: dict[str, CardTemplate],
    decks: list[DeckDef],
    n_matches: int,
    base_seed: str,
    output_dir: str | Path | None = None,
    max_steps: int = MAX_STEPS,
    check_invariants: bool = False,
) -> list[MatchLog]:
    """Run round-robin matches between all deck pairs."""
    if len(decks) < 2:
        raise ValueError(f"Need at least 2 decks for a batch, got {len(decks)}")

    logs: list[MatchLog] = []
    summaries: list[dict[str, Any]] = []
    pairs = list(combinations(range(len(decks)), 2))

    match_id = 0
    for i, j in pairs:
        for _ in range(n_matches):
            seed = f"{base_seed}-{match_id}"
            gs = play_match(card_db, decks[i], decks[j], seed, f"match-{match_id}", max_steps)
            if check_invariants:
                assert_invariants(gs)
            logs.append(match_log(gs, decks[i], decks[j]))
            summaries.append(summarize_game(gs))
            match_id += 1
        logger.info("%s vs %s: %d matches done", decks[i].deck_id, decks[j].deck_id, n_matches)

    if output_dir is not None:
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        _write_logs(logs, out / "match_logs.json")
        with open(out / "summary_metrics.json", "w", encoding="utf-8") as f:
            json.dump(
                aggregate_game_summaries(summaries, group_keys=["player1_faction", "player2_faction"]),
                f, indent=2, ensure_ascii=False,
            )

    return logs


def _write_logs(logs: list[MatchLog], path: Path) -> None:
    data = []
    for i, log in enumerate(logs):
        data.append({
            "match_id": i,
            "seed": log.seed,
            "deck_ids": list(log.deck_ids),
            "factions": list(log.factions),
            "first_player": log.first_player,
            "winner": log.winner,
            "reason": log.reason,
            "turns": log.turns,
            "final_life": list(log.final_life),
            "action_count": log.action_count,
        })
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def read_logs(path: str | Path) -> list[MatchLog]:
    with open(Path(path), encoding="utf-8") as f:
        raw = json.load(f)
    return [
        MatchLog(
            seed=entry["seed"],
            deck_ids=tuple(entry["deck_ids"]),
            factions=tuple(entry["factions"]),
            first_player=entry["first_player"],
            winner=entry["winner"],
            reason=entry["reason"],
            turns=entry["turns"],
            final_life=tuple(entry["final_life"]),
            action_count=entry["action_count"],
        )
        for entry in raw
    ]


def _rate(wins: int, games: int) -> float:
    return round(wins / games * 100, 1) if games else 0.0


def aggregate(logs: list[MatchLog]) -> dict[str, Any]:
    """Per-deck and per-faction win rates plus first-player and timeout counts."""
    deck_stats: dict[str, dict[str, int]] = {}
    faction_stats: dict[str, dict[str, int]] = {}
    draws = 0
    timeouts = 0
    first_player_wins = 0
    total_turns = 0

    for log in logs:
        total_turns += log.turns
        if log.reason == "timeout":
            timeouts += 1
        if log.winner is None:
            draws += 1
        elif log.winner == log.first_player:
            first_player_wins += 1

        for seat, (did, faction) in enumerate(zip(log.deck_ids, log.factions)):
            pid = f"player{seat + 1}"
            ds = deck_stats.setdefault(did, {"wins": 0, "losses": 0, "draws": 0, "games": 0})
            fs = faction_stats.setdefault(faction, {"wins": 0, "games": 0})
            ds["games"] += 1
            fs["games"] += 1
            if log.winner is None:
                ds["draws"] += 1
            elif log.winner == pid:
                ds["wins"] += 1
                fs["wins"] += 1
            else:
                ds["losses"] += 1

    result: dict[str, Any] = {
        "decks": {},
        "factions": {},
        "total_matches": len(logs),
        "draws": draws,
        "timeouts": timeouts,
        "first_player_wins": first_player_wins,
        "avg_turns": total_turns / len(logs) if logs else 0.0,
    }
    for did, stats in sorted(deck_stats.items()):
        result["decks"][did] = {**stats, "win_rate": _rate(stats["wins"], stats["games"])}
    for faction, stats in sorted(faction_stats.items()):
        result["factions"][faction] = {**stats, "win_rate": _rate(stats["wins"], stats["games"])}
    return result
