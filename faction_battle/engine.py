"""Game engine – setup, single-step processing, full-game loop, win checks."""

from __future__ import annotations

import copy
import logging
import time
from typing import Sequence

from faction_battle.action_log import log_phase_change
from faction_battle.loader import validate_passive_effect
from faction_battle.models import (
    FACTIONS, INITIAL_HAND_SIZE, PHASES, TACTICS, Card,
    CardTemplate, GameResult, GameState, PlayerState,
)
from faction_battle.phases import PHASE_PROCESSORS
from faction_battle.rng import SeededRandom

logger = logging.getLogger(__name__)

MAX_TURNS = 30
MAX_STEPS = 1000


def create_initial_game_state(
    game_id: str,
    deck1: Sequence[CardTemplate],
    deck2: Sequence[CardTemplate],
    faction1: str,
    faction2: str,
    tactics1: str,
    tactics2: str,
    seed: str,
) -> GameState:
    for faction in (faction1, faction2):
        if faction not in FACTIONS:
            raise ValueError(f"Unknown faction: {faction}")
    for tactics in (tactics1, tactics2):
        if tactics not in TACTICS:
            raise ValueError(f"Unknown tactics: {tactics}")
    for template in {t.template_id: t for t in (*deck1, *deck2)}.values():
        for effect in template.effects:
            if effect.trigger == "passive":
                validate_passive_effect(template.template_id, effect)

    rng = SeededRandom(seed)
    gs = GameState(
        game_id=game_id,
        turn_number=1,
        current_player="player1",
        phase=PHASES[0],
        players={
            "player1": PlayerState(id="player1", faction=faction1, tactics=tactics1),
            "player2": PlayerState(id="player2", faction=faction2, tactics=tactics2),
        },
        random_seed=str(seed),
        start_time=time.time(),
        rng=rng,
    )

    # Build instances, shuffle, deal the opening hand from the top
    for pid, templates in (("player1", deck1), ("player2", deck2)):
        cards = [Card(template=t, instance_id=gs.alloc_instance_id(t.template_id, pid)) for t in templates]
        p = gs.player(pid)
        p.deck = rng.shuffle(cards)
        for _ in range(min(INITIAL_HAND_SIZE, len(p.deck))):
            p.hand.append(p.deck.pop())

    gs.current_player = "player1" if rng.next() < 0.5 else "player2"
    log_phase_change(gs, gs.current_player, gs.phase, gs.phase)
    logger.debug("game %s: seed=%s first=%s", game_id, seed, gs.current_player)
    return gs


def check_game_end(gs: GameState) -> GameResult | None:
    p1 = gs.player("player1")
    p2 = gs.player("player2")
    winner: str | None
    if p1.life <= 0 or p2.life <= 0:
        reason = "life_zero"
        if p1.life <= 0 and p2.life <= 0:
            winner = None
        elif p1.life <= 0:
            winner = "player2"
        else:
            winner = "player1"
    elif gs.turn_number > MAX_TURNS:
        reason = "timeout"
        if p1.life > p2.life:
            winner = "player1"
        elif p2.life > p1.life:
            winner = "player2"
        else:
            winner = None
    else:
        return None
    return _make_result(gs, winner, reason)


def _make_result(gs: GameState, winner: str | None, reason: str) -> GameResult:
    now = time.time()
    return GameResult(
        winner=winner,
        reason=reason,
        total_turns=gs.turn_number,
        duration_seconds=round(now - gs.start_time, 3),
        end_time=now,
    )


def clone_state(gs: GameState) -> GameState:
    """Deep copy that shares the (append-only, frozen) log entries."""
    memo = {id(gs.action_log): list(gs.action_log)}
    return copy.deepcopy(gs, memo)


def process_game_step(gs: GameState) -> GameState:
    """Advance exactly one phase unit and return the new state.

    The input state is not modified. Stepping a finished game is an error.
    """
    if gs.result is not None:
        raise RuntimeError(f"Game {gs.game_id} is already finished")
    new = clone_state(gs)

    result = check_game_end(new)
    if result is None:
        processor = PHASE_PROCESSORS.get(new.phase)
        if processor is None:
            raise ValueError(f"Unknown phase: {new.phase}")
        processor(new)
        result = check_game_end(new)

    if result is not None:
        new.result = result
        logger.info(
            "game %s over: winner=%s reason=%s turns=%d",
            new.game_id, result.winner, result.reason, result.total_turns,
        )
    return new


def run_to_completion(gs: GameState, max_steps: int = MAX_STEPS) -> GameState:
    """Step until a result appears; the step cap yields an explicit timeout."""
    steps = 0
    while gs.result is None and steps < max_steps:
        gs = process_game_step(gs)
        steps += 1
    if gs.result is None:
        logger.warning("game %s hit the step cap (%d steps)", gs.game_id, max_steps)
        gs = clone_state(gs)
        gs.result = _make_result(gs, None, "timeout")
    return gs


def execute_full_game(
    game_id: str,
    deck1: Sequence[CardTemplate],
    deck2: Sequence[CardTemplate],
    faction1: str,
    faction2: str,
    tactics1: str,
    tactics2: str,
    seed: str,
    max_steps: int = MAX_STEPS,
) -> GameState:
    gs = create_initial_game_state(game_id, deck1, deck2, faction1, faction2, tactics1, tactics2, seed)
    return run_to_completion(gs, max_steps)