"""CLI entry point – play / simulate / replay / metrics / stats subcommands."""

from __future__ import annotations

import argparse
import glob
import logging
import sys
from pathlib import Path

from faction_battle.config import LOG_LEVELS, SimulationConfig
from faction_battle.display import format_action, render_board, render_metrics, render_stats
from faction_battle.engine import MAX_STEPS, create_initial_game_state, run_to_completion
from faction_battle.loader import build_deck, load_cards, load_deck
from faction_battle.metrics import compute_game_metrics
from faction_battle.replay import (
    export_replay, initial_state_from_replay, load_replay, render_replay, verify_replay,
)
from faction_battle.simulation import aggregate, read_logs, run_batch

DATA_DIR = Path(__file__).resolve().parent.parent / "data"
DEFAULT_CARDS = DATA_DIR / "cards.json"


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="faction-battle", description="Faction battle simulator")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None)
    sub = parser.add_subparsers(dest="command")

    # --- play ---
    p_play = sub.add_parser("play", help="Play a single match")
    p_play.add_argument("--deck-a", required=True, help="Path to deck A JSON")
    p_play.add_argument("--deck-b", required=True, help="Path to deck B JSON")
    p_play.add_argument("--seed", default="42")
    p_play.add_argument("--cards", default=str(DEFAULT_CARDS), help="Path to cards.json")
    p_play.add_argument("--max-steps", type=int, default=MAX_STEPS)
    p_play.add_argument("--replay-out", default=None, help="Write a JSONL replay here")
    p_play.add_argument("--trace", action="store_true", help="Print the action log")

    # --- simulate ---
    p_sim = sub.add_parser("simulate", help="Run batch simulation")
    p_sim.add_argument("--config", default=None, help="Path to simulation config JSON")
    p_sim.add_argument("--decks", nargs="+", default=None, help="Deck JSON files (glob supported)")
    p_sim.add_argument("--matches", type=int, default=None, help="Matches per pair")
    p_sim.add_argument("--seed", default=None)
    p_sim.add_argument("--cards", default=None, help="Path to cards.json")
    p_sim.add_argument("--output", default=None, help="Output directory")
    p_sim.add_argument("--check-invariants", action="store_true", default=None)

    # --- replay ---
    p_rep = sub.add_parser("replay", help="Render or verify a JSONL replay")
    p_rep.add_argument("--file", required=True, help="Path to replay JSONL")
    p_rep.add_argument("--from-turn", type=int, default=None)
    p_rep.add_argument("--to-turn", type=int, default=None)
    p_rep.add_argument("--compact", action="store_true")
    p_rep.add_argument("--verify", action="store_true", help="Re-simulate and compare the log")
    p_rep.add_argument("--cards", default=str(DEFAULT_CARDS), help="Path to cards.json")

    # --- metrics ---
    p_met = sub.add_parser("metrics", help="Action metrics of a JSONL replay")
    p_met.add_argument("--file", required=True, help="Path to replay JSONL")

    # --- stats ---
    p_stats = sub.add_parser("stats", help="Win-rate stats from saved match logs")
    p_stats.add_argument("--logs", required=True, help="Path to match_logs.json")

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level or "WARNING", format="%(levelname)s %(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "play":
        _cmd_play(args)
    elif args.command == "simulate":
        _cmd_simulate(args)
    elif args.command == "replay":
        _cmd_replay(args)
    elif args.command == "metrics":
        _cmd_metrics(args)
    elif args.command == "stats":
        _cmd_stats(args)


def _cmd_play(args: argparse.Namespace) -> None:
    card_db = load_cards(args.cards)
    deck_a = load_deck(args.deck_a, card_db)
    deck_b = load_deck(args.deck_b, card_db)

    gs = create_initial_game_state(
        f"{deck_a.deck_id}-vs-{deck_b.deck_id}",
        build_deck(deck_a, card_db), build_deck(deck_b, card_db),
        deck_a.faction, deck_b.faction, deck_a.tactics, deck_b.tactics,
        args.seed,
    )
    gs = run_to_completion(gs, args.max_steps)

    if gs.result is None:
        raise RuntimeError(f"Game {gs.game_id} finished without a result")
    render_board(gs)
    print(f"Result: {gs.result.winner or 'draw'} ({gs.result.reason})")
    print(f"Turns: {gs.result.total_turns}  Actions: {len(gs.action_log)}")

    if args.trace:
        print(f"\nTrace ({len(gs.action_log)} actions):")
        for action in gs.action_log:
            print(f"  #{action.sequence:<4d} {format_action(action)}")

    if args.replay_out:
        export_replay(gs, args.replay_out, (deck_a.card_ids(), deck_b.card_ids()), args.max_steps)
        print(f"Replay written to: {args.replay_out}")


def _expand_globs(patterns: list[str]) -> list[str]:
    paths: list[str] = []
    for pattern in patterns:
        expanded = glob.glob(pattern)
        if expanded:
            paths.extend(expanded)
        else:
            paths.append(pattern)
    return sorted(set(paths))


def _cmd_simulate(args: argparse.Namespace) -> None:
    overrides = {
        "decks": args.decks,
        "matches": args.matches,
        "seed": args.seed,
        "cards_path": args.cards,
        "output_dir": args.output,
        "check_invariants": args.check_invariants,
        "log_level": args.log_level,
    }
    if args.config is not None:
        config = SimulationConfig.from_json(args.config, **overrides)
    else:
        config = SimulationConfig(**{k: v for k, v in overrides.items() if v is not None})
        if args.cards is None:
            config.cards_path = str(DEFAULT_CARDS)
        if args.decks is None:
            config.decks = [str(DATA_DIR / "decks" / "*.json")]
    logging.getLogger().setLevel(config.log_level)

    card_db = load_cards(config.cards_path)
    decks = [load_deck(p, card_db) for p in _expand_globs(config.decks)]
    print(f"Loaded {len(decks)} decks: {[d.deck_id for d in decks]}")

    logs = run_batch(
        card_db, decks, config.matches, config.seed, config.output_dir,
        max_steps=config.max_steps, check_invariants=config.check_invariants,
    )
    render_stats(aggregate(logs))
    if config.output_dir is not None:
        print(f"Logs written to: {Path(config.output_dir) / 'match_logs.json'}")


def _cmd_replay(args: argparse.Namespace) -> None:
    if args.verify:
        replay = load_replay(args.file)
        initial = initial_state_from_replay(replay, load_cards(args.cards))
        final = verify_replay(initial, replay["actions"], replay["meta"].get("max_steps", MAX_STEPS))
        print(f"Replay verified: {len(final.action_log)} actions match")
        return
    render_replay(args.file, from_turn=args.from_turn, to_turn=args.to_turn, compact=args.compact)


def _cmd_metrics(args: argparse.Namespace) -> None:
    replay = load_replay(args.file)
    render_metrics(compute_game_metrics(replay["actions"], replay["meta"]["game_id"]))


def _cmd_stats(args: argparse.Namespace) -> None:
    render_stats(aggregate(read_logs(args.logs)))


if __name__ == "__main__":
    main()
