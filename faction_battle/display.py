"""CLI display – board state, action log lines, and stats."""

from __future__ import annotations

from typing import Any

from faction_battle.models import PLAYER_IDS, GameAction, GameState


def _delta(d: dict[str, int]) -> str:
    return f"{d['before']}->{d['after']}"


def format_action(action: GameAction) -> str:
    """One human-readable line for an action log entry."""
    d = action.data
    who = action.player_id
    match action.type:
        case "phase_change":
            return f"{who}: phase {d['from_phase']} -> {d['to_phase']}"
        case "card_draw":
            return f"{who} draws {d['card_id']} (hand {d['hand_size_before']}->{d['hand_size_after']})"
        case "energy_update":
            return f"{who}: max energy {d['max_energy_before']}->{d['max_energy_after']}"
        case "card_play":
            where = "spell" if d["position"] < 0 else f"pos {d['position']}"
            return f"{who} plays {d['card_id']} ({where}, energy {_delta(d['player_energy'])})"
        case "card_attack":
            detail = ""
            if "target_health" in d:
                detail = f" health {_delta(d['target_health'])}"
            elif "target_player_life" in d:
                detail = f" life {_delta(d['target_player_life'])}"
            elif "attacker_health" in d:
                detail = f" counter, health {_delta(d['attacker_health'])}"
            return f"{d['attacker_card_id']} -> {d['target_id']} ({d['damage']} dmg){detail}"
        case "creature_destroyed":
            snap = d["card_snapshot"]
            return (f"{d['destroyed_card_id']} destroyed by {d['source']}"
                    f" [{snap['attack_total']}/{snap['health_total']}]")
        case "effect_trigger":
            parts = []
            for tid, changes in d["targets"].items():
                for stat, delta in changes.items():
                    parts.append(f"{tid}.{stat} {_delta(delta)}")
            affected = d.get("affected_ids")
            if affected:
                parts.append("on " + ", ".join(affected))
            suffix = f": {'; '.join(parts)}" if parts else ""
            return f"{d['source_card_id']} {d['effect_type']}({d['effect_value']}){suffix}"
        case "trigger_event":
            return f"trigger {d['trigger_type']} on {d['source_card_id']}"
        case "keyword_trigger":
            return f"{d['source_card_id']} {d['keyword']} -> {d['target_id']} ({d['value']})"
        case "combat_stage":
            return f"[{d['stage']}] {d['attacker_id']} -> {d['target_id']}"
    return f"{who}: {action.type} {d}"


def render_board(gs: GameState) -> None:
    print(f"\n{'='*60}")
    print(f"  Turn {gs.turn_number}  |  Active: {gs.current_player}  |  Phase: {gs.phase}")
    print(f"{'='*60}")

    for pid in PLAYER_IDS:
        p = gs.player(pid)
        marker = " <<" if pid == gs.current_player else ""
        print(f"  {pid} [{p.faction}/{p.tactics}]: Life={p.life}  Energy={p.energy}/{p.max_energy}  "
              f"Hand={len(p.hand)}  Deck={len(p.deck)}  Grave={len(p.graveyard)}{marker}")
        if p.field:
            units = "  ".join(
                f"[{fc.name} {fc.attack_total}/{fc.current_health}"
                f"{' G' if fc.has_keyword('guard') else ''}{' S' if fc.is_silenced else ''}]"
                for fc in p.field
            )
            print(f"      Field: {units}")
        else:
            print("      Field: (empty)")
    print()


def render_stats(stats: dict[str, Any]) -> None:
    print(f"\n{'='*60}")
    print(f"  Simulation Results  ({stats['total_matches']} matches)")
    print(f"{'='*60}")

    for did, ds in stats["decks"].items():
        print(f"  {did:20s}  W={ds['wins']:4d}  L={ds['losses']:4d}  "
              f"D={ds['draws']:4d}  WR={ds['win_rate']:5.1f}%")

    print("\n  By faction:")
    for faction, fs in stats["factions"].items():
        print(f"  {faction:20s}  games={fs['games']:4d}  WR={fs['win_rate']:5.1f}%")

    print(f"\n  Draws: {stats['draws']}  Timeouts: {stats['timeouts']}  "
          f"First-player wins: {stats['first_player_wins']}  Avg turns: {stats['avg_turns']:.1f}")


def render_metrics(metrics: dict[str, Any]) -> None:
    agg = metrics["aggregate"]
    print(f"Game {metrics['game_id']}: {agg['total']} actions over {metrics['total_turns']} turns")
    for atype, count in sorted(agg["by_type"].items(), key=lambda x: -x[1]):
        print(f"  {atype:20s} {count:6d}")
    print("\n  By phase:")
    for phase, count in metrics["phases"]["total_by_phase"].items():
        ratio = metrics["phases"]["ratio_by_phase"][phase]
        print(f"  {phase:20s} {count:6d}  ({ratio:.1%})")
