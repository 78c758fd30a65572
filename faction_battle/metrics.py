"""Action-log metrics: per-game counts and cross-game aggregation."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Sequence, TYPE_CHECKING

from faction_battle.models import PLAYER_IDS, GameAction

if TYPE_CHECKING:
    from faction_battle.models import GameState


# Per-player counters produced by summarize_game
_COUNTERS = (
    "cards_played", "spells_cast", "creatures_played", "energy_spent",
    "attacks", "face_damage", "creatures_lost", "effects_triggered",
    "keyword_triggers",
)

_NUMERIC_KEYS: set[str] = {f"{pid}_{c}" for pid in PLAYER_IDS for c in _COUNTERS}
_NUMERIC_KEYS.add("total_turns")
_NUMERIC_KEYS.add("total_actions")


def _empty_counts() -> dict[str, Any]:
    return {"total": 0, "by_type": {}}


def _add(counts: dict[str, Any], action: GameAction) -> None:
    counts["total"] += 1
    counts["by_type"][action.type] = counts["by_type"].get(action.type, 0) + 1


def compute_game_metrics(
    actions: Sequence[GameAction],
    game_id: str = "",
) -> dict[str, Any]:
    """Count actions in aggregate, per turn and per phase.

    A new turn opens at every phase change out of ``end``; the action that
    opens it is counted in the new turn.
    """
    per_turn: list[dict[str, Any]] = []
    turn = 1
    current_player = actions[0].player_id if actions else ""
    bucket = _empty_counts()
    aggregate = _empty_counts()
    phase_totals: dict[str, int] = defaultdict(int)
    phase = "draw"

    for action in actions:
        if action.type == "phase_change":
            phase = action.data["to_phase"]
            if action.data["from_phase"] == "end":
                per_turn.append({"turn_number": turn, "current_player": current_player, **bucket})
                turn += 1
                bucket = _empty_counts()
                current_player = action.player_id
        _add(bucket, action)
        _add(aggregate, action)
        phase_totals[phase] += 1

    if bucket["total"] > 0:
        per_turn.append({"turn_number": turn, "current_player": current_player, **bucket})

    total = aggregate["total"]
    return {
        "game_id": game_id,
        "total_turns": turn,
        "aggregate": aggregate,
        "per_turn": per_turn,
        "phases": {
            "total_by_phase": dict(phase_totals),
            "ratio_by_phase": {p: (n / total if total else 0.0) for p, n in phase_totals.items()},
        },
    }


def summarize_game(gs: "GameState") -> dict[str, Any]:
    """Flat per-player counters read off the action log."""
    summary: dict[str, Any] = {f"{pid}_{c}": 0 for pid in PLAYER_IDS for c in _COUNTERS}
    for action in gs.action_log:
        d = action.data
        pid = action.player_id
        match action.type:
            case "card_play":
                summary[f"{pid}_cards_played"] += 1
                kind = "spells_cast" if d["position"] < 0 else "creatures_played"
                summary[f"{pid}_{kind}"] += 1
                energy = d["player_energy"]
                summary[f"{pid}_energy_spent"] += energy["before"] - energy["after"]
            case "card_attack":
                if "attacker_health" in d:
                    continue
                summary[f"{pid}_attacks"] += 1
                if "target_player_life" in d:
                    life = d["target_player_life"]
                    summary[f"{pid}_face_damage"] += life["before"] - life["after"]
            case "creature_destroyed":
                summary[f"{pid}_creatures_lost"] += 1
            case "effect_trigger":
                if pid in PLAYER_IDS:
                    summary[f"{pid}_effects_triggered"] += 1
            case "keyword_trigger":
                summary[f"{pid}_keyword_triggers"] += 1
    summary["total_turns"] = gs.turn_number
    summary["total_actions"] = len(gs.action_log)
    summary["game_id"] = gs.game_id
    for pid in PLAYER_IDS:
        summary[f"{pid}_faction"] = gs.player(pid).faction
    return summary


def aggregate_game_summaries(
    summaries: list[dict[str, Any]],
    group_keys: list[str] | None = None,
) -> dict[str, Any]:
    """Aggregate a list of game summaries.

    Returns a dict with:
      - "overall": {field: {"sum": .., "mean": .., "count": ..}}
      - "by_group": {group_value: {field: {...}}} (only if group_keys is provided)
    """
    if group_keys is None:
        group_keys = []

    result: dict[str, Any] = {
        "overall": _aggregate_group(summaries),
        "count": len(summaries),
    }

    if group_keys:
        groups: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for s in summaries:
            key = "|".join(str(s.get(k, "unknown")) for k in group_keys)
            groups[key].append(s)
        result["by_group"] = {k: _aggregate_group(g) for k, g in sorted(groups.items())}

    return result


def _aggregate_group(summaries: list[dict[str, Any]]) -> dict[str, Any]:
    if not summaries:
        return {}

    totals: dict[str, float] = defaultdict(float)
    count = len(summaries)
    for s in summaries:
        for key in _NUMERIC_KEYS:
            if key in s:
                totals[key] += float(s[key])

    return {
        key: {"sum": total, "mean": round(total / count, 4), "count": count}
        for key, total in sorted(totals.items())
    }
