"""Replay export, loading, state reconstruction and playback."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Sequence, TYPE_CHECKING

from faction_battle.engine import (
    MAX_STEPS, clone_state, create_initial_game_state, process_game_step,
    run_to_completion,
)
from faction_battle.models import GameAction

if TYPE_CHECKING:
    from faction_battle.models import CardTemplate, FieldCard, GameState, PlayerState

logger = logging.getLogger(__name__)


def snapshot_field(field_cards: "list[FieldCard]") -> list[dict]:
    """Snapshot a battlefield as a list of dicts."""
    return [
        {
            "id": fc.instance_id,
            "template_id": fc.template.template_id,
            "attack": fc.attack_total,
            "health": fc.current_health,
            "max_health": fc.max_health,
            "has_attacked": fc.has_attacked,
            "statuses": [s.type for s in fc.status_effects],
        }
        for fc in field_cards
    ]


def snapshot_player(player: "PlayerState") -> dict:
    """Snapshot a player's state."""
    return {
        "life": player.life,
        "energy": player.energy,
        "max_energy": player.max_energy,
        "hand_count": len(player.hand),
        "deck_count": len(player.deck),
        "graveyard_count": len(player.graveyard),
        "field": snapshot_field(player.field),
    }


def _comparable(action: GameAction) -> tuple:
    # Round-trip through JSON so recorded and replayed data compare alike.
    return (action.sequence, action.player_id, action.type, json.loads(json.dumps(action.data)))


class ReplayWriter:
    """Writes replay events as JSONL to a file."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self._path, "w", encoding="utf-8")
        self._closed = False

    def write(self, event: dict) -> None:
        if self._closed:
            raise RuntimeError("ReplayWriter is closed")
        self._file.write(json.dumps(event, ensure_ascii=False) + "\n")

    def write_meta(
        self,
        gs: "GameState",
        decks: tuple[Sequence[str], Sequence[str]],
        max_steps: int = MAX_STEPS,
    ) -> None:
        p1, p2 = gs.player("player1"), gs.player("player2")
        self.write({
            "type": "meta",
            "game_id": gs.game_id,
            "seed": gs.random_seed,
            "factions": [p1.faction, p2.faction],
            "tactics": [p1.tactics, p2.tactics],
            "decks": [list(decks[0]), list(decks[1])],
            "max_steps": max_steps,
        })

    def write_actions(self, actions: Iterable[GameAction]) -> None:
        for action in actions:
            self.write({"type": "action", "action": action.to_dict()})

    def write_result(self, gs: "GameState") -> None:
        if gs.result is None:
            raise RuntimeError(f"Game {gs.game_id} has no result yet")
        self.write({
            "type": "result",
            **gs.result.to_dict(),
            "final": {pid: snapshot_player(p) for pid, p in gs.players.items()},
        })

    def close(self) -> None:
        if not self._closed:
            self._file.close()
            self._closed = True

    @property
    def path(self) -> Path:
        return self._path

    def __enter__(self) -> "ReplayWriter":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def export_replay(
    gs: "GameState",
    path: str | Path,
    decks: tuple[Sequence[str], Sequence[str]],
    max_steps: int = MAX_STEPS,
) -> Path:
    """Write a finished game: meta header, every action, result footer.

    ``max_steps`` is the step cap the game ran under; verification needs it
    to reproduce a game that was cut off by the cap.
    """
    with ReplayWriter(Path(path)) as writer:
        writer.write_meta(gs, decks, max_steps)
        writer.write_actions(gs.action_log)
        writer.write_result(gs)
    logger.info("replay for %s written to %s (%d actions)", gs.game_id, path, len(gs.action_log))
    return Path(path)


def load_replay(path: str | Path) -> dict[str, Any]:
    """Read a JSONL replay back into ``{"meta", "actions", "result"}``."""
    replay: dict[str, Any] = {"meta": None, "actions": [], "result": None}
    with open(Path(path), encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            ev = json.loads(line)
            etype = ev.pop("type")
            if etype == "meta":
                replay["meta"] = ev
            elif etype == "action":
                replay["actions"].append(GameAction.from_dict(ev["action"]))
            elif etype == "result":
                replay["result"] = ev
            else:
                raise ValueError(f"Unknown replay event type: {etype}")
    if replay["meta"] is None:
        raise ValueError(f"Replay {path} has no meta header")
    return replay


def initial_state_from_replay(replay: dict[str, Any], card_db: "dict[str, CardTemplate]") -> "GameState":
    meta = replay["meta"]
    decks = []
    for ids in meta["decks"]:
        missing = [i for i in ids if i not in card_db]
        if missing:
            raise ValueError(f"Replay references unknown cards: {missing}")
        decks.append([card_db[i] for i in ids])
    return create_initial_game_state(
        meta["game_id"], decks[0], decks[1],
        meta["factions"][0], meta["factions"][1],
        meta["tactics"][0], meta["tactics"][1],
        meta["seed"],
    )


# ---------------------------------------------------------------------------
# Reconstruction
# ---------------------------------------------------------------------------

def _check_prefix(gs: "GameState", recorded: Sequence[GameAction], start: int) -> None:
    upto = min(len(gs.action_log), len(recorded))
    for i in range(start, upto):
        if _comparable(gs.action_log[i]) != _comparable(recorded[i]):
            raise ValueError(
                f"Replay diverged at sequence {i}: "
                f"recorded {recorded[i].type}, replayed {gs.action_log[i].type}"
            )


def reconstruct_state(
    initial: "GameState",
    sequence: int,
    recorded: Sequence[GameAction] | None = None,
) -> "GameState":
    """Earliest state whose log contains ``sequence``, replayed from ``initial``.

    ``initial`` itself is never modified. When ``recorded`` is given, every
    replayed entry is checked against it and a mismatch raises ValueError.
    """
    if sequence < 0:
        raise ValueError(f"Invalid sequence: {sequence}")
    gs = clone_state(initial)
    checked = 0
    while len(gs.action_log) <= sequence:
        if gs.result is not None:
            raise ValueError(f"Game ended before sequence {sequence} (log length {len(gs.action_log)})")
        gs = process_game_step(gs)
        if recorded is not None:
            _check_prefix(gs, recorded, checked)
            checked = len(gs.action_log)
    return gs


def verify_replay(
    initial: "GameState",
    recorded: Sequence[GameAction],
    max_steps: int = MAX_STEPS,
) -> "GameState":
    """Re-simulate a whole recorded log under the same step cap; returns the final state.

    A game cut off by the cap ends without a logged action, so the cap must
    match the one the recorded game ran under.
    """
    if not recorded:
        raise ValueError("Nothing to verify: empty action log")
    gs = run_to_completion(clone_state(initial), max_steps)
    if len(gs.action_log) != len(recorded):
        raise ValueError(
            f"Replay length mismatch: recorded {len(recorded)}, replayed {len(gs.action_log)}"
        )
    _check_prefix(gs, recorded, 0)
    return gs


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------

def render_replay(
    path: str | Path,
    from_turn: int | None = None,
    to_turn: int | None = None,
    compact: bool = False,
) -> None:
    """Render a JSONL replay file to stdout."""
    from faction_battle.display import format_action

    replay = load_replay(path)
    meta = replay["meta"]
    print(f"=== REPLAY: {meta['game_id']} seed={meta['seed']} ===")
    print(f"  player1: {meta['factions'][0]} ({meta['tactics'][0]})")
    print(f"  player2: {meta['factions'][1]} ({meta['tactics'][1]})")

    turn = 1
    for action in replay["actions"]:
        if action.type == "phase_change" and action.data["from_phase"] == "end":
            turn += 1
        if from_turn is not None and turn < from_turn:
            continue
        if to_turn is not None and turn > to_turn:
            break
        if action.type == "phase_change":
            if action.data["to_phase"] == "draw":
                print(f"\n--- Turn {turn} ({action.player_id}) ---")
            if compact:
                continue
        if compact and action.type in ("trigger_event", "combat_stage"):
            continue
        print(f"  #{action.sequence:<4d} {format_action(action)}")

    result = replay["result"]
    if result is not None:
        print("\n=== GAME END ===")
        print(f"  Winner: {result['winner'] or 'draw'} (reason: {result['reason']})")
        print(f"  Turns: {result['total_turns']}")
