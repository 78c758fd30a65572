"""Structural checks over a game state, used by tests and batch runs."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from faction_battle.models import FIELD_LIMIT, HAND_LIMIT, PLAYER_IDS

if TYPE_CHECKING:
    from faction_battle.models import GameState


def check_invariants(gs: "GameState") -> list[str]:
    """Return every violated invariant as a message; empty when the state is sound."""
    problems: list[str] = []

    for i, action in enumerate(gs.action_log):
        if action.sequence != i:
            problems.append(f"action log: sequence {action.sequence} at index {i}")
            break

    destroyed = {
        a.data["destroyed_card_id"] for a in gs.action_log if a.type == "creature_destroyed"
    }
    seen: Counter[str] = Counter()

    for pid in PLAYER_IDS:
        p = gs.player(pid)
        if len(p.hand) > HAND_LIMIT:
            problems.append(f"{pid}: hand size {len(p.hand)} exceeds {HAND_LIMIT}")
        if len(p.field) > FIELD_LIMIT:
            problems.append(f"{pid}: field size {len(p.field)} exceeds {FIELD_LIMIT}")
        for i, fc in enumerate(p.field):
            if fc.position != i:
                problems.append(f"{fc.instance_id}: position {fc.position} at index {i}")
            if fc.current_health > fc.max_health:
                problems.append(
                    f"{fc.instance_id}: current health {fc.current_health} above max {fc.max_health}"
                )
            if fc.current_health <= 0 and fc.instance_id not in destroyed:
                problems.append(f"{fc.instance_id}: lingering dead creature ({fc.current_health} hp)")
        for zone in (p.deck, p.hand, p.field, p.graveyard, p.banished_cards):
            seen.update(c.instance_id for c in zone)

    for instance_id, n in seen.items():
        if n > 1:
            problems.append(f"{instance_id}: present in {n} zones")
    return problems


def assert_invariants(gs: "GameState") -> None:
    problems = check_invariants(gs)
    if problems:
        raise AssertionError("Invariant violations:\n  " + "\n  ".join(problems))
