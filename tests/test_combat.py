"""Tests for combat resolution and attack targeting."""

import unittest

from faction_battle.combat import (
    POISON_DAMAGE, POISON_DURATION, can_attack, eligible_attackers,
    resolve_attack, select_attack_target,
)
from faction_battle.models import StatusEffect

from factories import actions_of, creature, effect, make_gs, put_on_field


def _stages(gs):
    return [a.data["stage"] for a in actions_of(gs, "combat_stage")]


class TestCanAttack(unittest.TestCase):
    def test_summoning_sickness(self):
        gs = make_gs(turn=3)
        fresh = put_on_field(gs, "player1", creature("fresh"), summon_turn=3)
        rusher = put_on_field(gs, "player1", creature("rusher", keywords=("rush",)), summon_turn=3)
        veteran = put_on_field(gs, "player1", creature("veteran"), summon_turn=1)
        self.assertFalse(can_attack(fresh, 3))
        self.assertTrue(can_attack(rusher, 3))
        self.assertEqual(eligible_attackers(gs, "player1"), [rusher, veteran])

    def test_stunned_or_spent(self):
        gs = make_gs()
        stunned = put_on_field(gs, "player1", creature())
        stunned.status_effects.append(StatusEffect("stun", duration=1))
        spent = put_on_field(gs, "player1", creature())
        spent.has_attacked = True
        self.assertEqual(eligible_attackers(gs, "player1"), [])

    def test_silenced_rush_is_lost(self):
        gs = make_gs(turn=3)
        fc = put_on_field(gs, "player1", creature(keywords=("rush",)), summon_turn=3)
        fc.is_silenced = True
        self.assertFalse(can_attack(fc, 3))

    def test_silenced_veteran_sits_out(self):
        gs = make_gs(turn=5)
        quiet = put_on_field(gs, "player1", creature("quiet", attack=3), summon_turn=1)
        loud = put_on_field(gs, "player1", creature("loud", attack=1), summon_turn=1)
        quiet.is_silenced = True
        self.assertFalse(can_attack(quiet, 5))
        self.assertEqual(eligible_attackers(gs, "player1"), [loud])


class TestTargetSelection(unittest.TestCase):
    def test_guard_always_chosen(self):
        for i in range(100):
            gs = make_gs(seed=f"guard-{i}", tactics=("aggressive", "balanced"))
            attacker = put_on_field(gs, "player1", creature("a"))
            put_on_field(gs, "player2", creature("plain"))
            guard = put_on_field(gs, "player2", creature("wall", keywords=("guard",)))
            put_on_field(gs, "player2", creature("plain2"))
            self.assertIs(select_attack_target(gs, attacker), guard)

    def test_guard_tie_break_reaches_both(self):
        chosen = set()
        for i in range(100):
            gs = make_gs(seed=f"tie-{i}")
            attacker = put_on_field(gs, "player1", creature("a"))
            put_on_field(gs, "player2", creature("left", keywords=("guard",)))
            put_on_field(gs, "player2", creature("right", keywords=("guard",)))
            chosen.add(select_attack_target(gs, attacker).template.template_id)
        self.assertEqual(chosen, {"left", "right"})

    def test_stealthed_creatures_not_targeted(self):
        gs = make_gs()
        attacker = put_on_field(gs, "player1", creature("a"))
        put_on_field(gs, "player2", creature("hidden", keywords=("stealth", "guard")))
        self.assertIsNone(select_attack_target(gs, attacker))

    def test_silenced_guard_does_not_protect(self):
        seen = set()
        for i in range(50):
            gs = make_gs(seed=f"silenced-{i}", tactics=("defensive", "balanced"))
            attacker = put_on_field(gs, "player1", creature("a"))
            wall = put_on_field(gs, "player2", creature("wall", keywords=("guard",)))
            wall.is_silenced = True
            put_on_field(gs, "player2", creature("plain"))
            target = select_attack_target(gs, attacker)
            seen.add(target.template.template_id if target else None)
        self.assertIn("plain", seen)


class TestResolveAttack(unittest.TestCase):
    def setUp(self):
        self.gs = make_gs()

    def _attacker(self, **kwargs):
        return put_on_field(self.gs, "player1", creature("attacker", **kwargs))

    def _guard(self, **kwargs):
        keywords = ("guard",) + tuple(kwargs.pop("keywords", ()))
        return put_on_field(self.gs, "player2", creature("defender", keywords=keywords, **kwargs))

    def test_face_attack_with_lifesteal(self):
        attacker = self._attacker(attack=3, health=3, keywords=("lifesteal",))
        self.gs.player("player1").life = 10
        resolve_attack(self.gs, attacker)
        self.assertEqual(self.gs.player("player2").life, 12)
        self.assertEqual(self.gs.player("player1").life, 13)
        self.assertTrue(attacker.has_attacked)
        self.assertEqual(_stages(self.gs), ["attack_declare", "damage_defender"])
        attack = actions_of(self.gs, "card_attack")[0]
        self.assertEqual(attack.data["target_id"], "player2")
        self.assertEqual(attack.data["target_player_life"], {"before": 15, "after": 12})
        lifesteal = actions_of(self.gs, "keyword_trigger")[0]
        self.assertEqual((lifesteal.data["keyword"], lifesteal.data["value"]), ("lifesteal", 3))

    def test_retaliate_adds_half_attack_floored(self):
        attacker = self._attacker(attack=3, health=5)
        defender = self._guard(attack=3, health=6, keywords=("retaliate",))
        resolve_attack(self.gs, attacker)
        self.assertEqual(defender.current_health, 3)
        self.assertEqual(attacker.current_health, 1)
        counter = actions_of(self.gs, "card_attack")[1]
        self.assertEqual(counter.player_id, "player2")
        self.assertEqual(counter.data["damage"], 4)
        self.assertEqual(counter.data["attacker_health"], {"before": 5, "after": 1})
        retaliate = [a for a in actions_of(self.gs, "keyword_trigger") if a.data["keyword"] == "retaliate"]
        self.assertEqual(retaliate[0].data["value"], 1)

    def test_counter_damage_when_defender_dies(self):
        attacker = self._attacker(attack=3, health=3)
        defender = self._guard(attack=2, health=2)
        resolve_attack(self.gs, attacker)
        self.assertEqual(attacker.current_health, 1)
        self.assertNotIn(defender, self.gs.player("player2").field)
        self.assertEqual(
            _stages(self.gs), ["attack_declare", "damage_defender", "damage_attacker", "deaths"],
        )
        destroyed = actions_of(self.gs, "creature_destroyed")
        self.assertEqual(len(destroyed), 1)
        self.assertEqual(destroyed[0].data["source"], "combat")
        self.assertEqual(destroyed[0].data["source_card_id"], attacker.instance_id)

    def test_mutual_destruction(self):
        attacker = self._attacker(attack=2, health=2)
        self._guard(attack=2, health=2)
        resolve_attack(self.gs, attacker)
        self.assertEqual(self.gs.player("player1").field, [])
        self.assertEqual(self.gs.player("player2").field, [])
        self.assertEqual(len(actions_of(self.gs, "creature_destroyed")), 2)

    def test_poison_applies_status(self):
        attacker = self._attacker(attack=1, health=3, keywords=("poison",))
        defender = self._guard(attack=0, health=5)
        resolve_attack(self.gs, attacker)
        poison = [s for s in defender.status_effects if s.type == "poison"]
        self.assertEqual(len(poison), 1)
        self.assertEqual((poison[0].duration, poison[0].damage), (POISON_DURATION, POISON_DAMAGE))
        self.assertEqual(defender.current_health, 4)
        self.assertEqual(attacker.current_health, 3)

    def test_trample_excess_hits_player(self):
        attacker = self._attacker(attack=5, health=5, keywords=("trample",))
        self._guard(attack=0, health=2)
        resolve_attack(self.gs, attacker)
        self.assertEqual(self.gs.player("player2").life, 12)
        trample = [a for a in actions_of(self.gs, "keyword_trigger") if a.data["keyword"] == "trample"]
        self.assertEqual(trample[0].data["value"], 3)

    def test_attacking_breaks_stealth(self):
        attacker = self._attacker(keywords=("stealth",))
        self.assertTrue(attacker.is_stealthed)
        resolve_attack(self.gs, attacker)
        self.assertFalse(attacker.is_stealthed)

    def test_on_attack_fires_before_damage(self):
        attacker = self._attacker(
            attack=1, health=2, effects=(effect("on_attack", "self", "buff_attack", 2),),
        )
        resolve_attack(self.gs, attacker)
        self.assertEqual(self.gs.player("player2").life, 12)
        types = [a.type for a in self.gs.action_log]
        self.assertLess(types.index("trigger_event"), types.index("card_attack"))

    def test_on_damage_taken_when_survived(self):
        attacker = self._attacker(attack=2, health=5)
        defender = self._guard(
            attack=1, health=5, effects=(effect("on_damage_taken", "self", "buff_attack", 1),),
        )
        resolve_attack(self.gs, attacker)
        self.assertEqual(defender.current_health, 3)
        self.assertEqual(defender.attack_total, 2)
        # counter damage uses the attack the defender had when hit
        self.assertEqual(attacker.current_health, 4)


if __name__ == "__main__":
    unittest.main()
