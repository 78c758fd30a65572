"""Data models for the faction battle engine."""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from faction_battle.rng import SeededRandom


# ---------------------------------------------------------------------------
# Rules constants
# ---------------------------------------------------------------------------

INITIAL_LIFE = 15
INITIAL_HAND_SIZE = 3
HAND_LIMIT = 7
FIELD_LIMIT = 5
ENERGY_LIMIT = 8
DECK_SIZE = 20
CARD_COPY_LIMIT = 2

PLAYER_IDS = ("player1", "player2")

PHASES = ("draw", "energy", "deploy", "battle", "battle_attack", "end")

FACTIONS = ("necromancer", "berserker", "mage", "knight", "inquisitor")
TACTICS = ("aggressive", "defensive", "tempo", "balanced")

CARD_TYPES = ("creature", "spell")

KEYWORDS = (
    "guard", "lifesteal", "stealth", "poison", "retaliate",
    "echo", "formation", "rush", "trample", "untargetable",
)

EFFECT_TRIGGERS = (
    "on_play", "on_death", "on_ally_death", "turn_start", "turn_end",
    "passive", "on_damage_taken", "on_attack", "on_spell_play",
)

EFFECT_TARGETS = (
    "self", "player", "ally_all", "ally_random", "enemy_all", "enemy_random",
)

EFFECT_ACTIONS = (
    "damage", "heal", "buff_attack", "buff_health", "debuff_attack",
    "debuff_health", "summon", "draw_card", "resurrect", "silence", "stun",
    "destroy_deck_top", "swap_attack_health", "hand_discard",
    "destroy_all_creatures", "ready", "apply_brand", "banish",
)


def opponent_of(player_id: str) -> str:
    return "player2" if player_id == "player1" else "player1"


# ---------------------------------------------------------------------------
# Card definition (immutable)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EffectCondition:
    subject: str
    operator: str
    value: int | str


@dataclass(frozen=True)
class DynamicValue:
    source: str                 # "graveyard" / "field" / "enemy_field"
    filter: str | None = None   # "creatures" / "alive" / "exclude_self" / "has_brand"
    base_value: int = 0


@dataclass(frozen=True)
class FilterRule:
    type: str
    operator: str = "eq"
    value: Any = None
    min: int | None = None
    max: int | None = None


@dataclass(frozen=True)
class CardEffect:
    trigger: str
    target: str
    action: str
    value: int = 0
    dynamic_value: DynamicValue | None = None
    activation_condition: EffectCondition | None = None
    selection_rules: tuple[FilterRule, ...] = ()
    target_filter: dict[str, Any] | None = None   # legacy object-shaped filter


@dataclass(frozen=True)
class CardTemplate:
    template_id: str
    name: str
    faction: str
    cost: int
    card_type: str          # "creature" or "spell"
    attack: int = 0
    health: int = 0
    keywords: tuple[str, ...] = ()
    effects: tuple[CardEffect, ...] = ()
    play_conditions: tuple[EffectCondition, ...] = ()
    flavor: str = ""

    @property
    def is_creature(self) -> bool:
        return self.card_type == "creature"

    def __deepcopy__(self, memo: dict) -> "CardTemplate":
        # Templates are static data shared by every state snapshot.
        return self


# ---------------------------------------------------------------------------
# In-game instances
# ---------------------------------------------------------------------------

@dataclass
class Card:
    """A template bound to a unique instance id; lives in deck, hand or graveyard."""
    template: CardTemplate
    instance_id: str

    @property
    def name(self) -> str:
        return self.template.name

    @property
    def cost(self) -> int:
        return self.template.cost


@dataclass
class StatusEffect:
    type: str
    duration: int | None = None
    damage: int = 0


@dataclass
class FieldCard:
    template: CardTemplate
    instance_id: str
    owner: str
    current_health: int
    summon_turn: int
    position: int
    attack_modifier: int = 0
    health_modifier: int = 0
    passive_attack_modifier: int = 0
    passive_health_modifier: int = 0
    has_attacked: bool = False
    is_stealthed: bool = False
    is_silenced: bool = False
    readied_this_turn: bool = False
    status_effects: list[StatusEffect] = dataclass_field(default_factory=list)

    @classmethod
    def from_card(cls, card: Card, owner: str, turn: int, position: int) -> "FieldCard":
        t = card.template
        return cls(
            template=t,
            instance_id=card.instance_id,
            owner=owner,
            current_health=t.health,
            summon_turn=turn,
            position=position,
            is_stealthed="stealth" in t.keywords,
        )

    def to_card(self) -> Card:
        return Card(template=self.template, instance_id=self.instance_id)

    @property
    def name(self) -> str:
        return self.template.name

    @property
    def attack_total(self) -> int:
        return max(0, self.template.attack + self.attack_modifier + self.passive_attack_modifier)

    @property
    def max_health(self) -> int:
        return self.template.health + self.health_modifier + self.passive_health_modifier

    @property
    def is_alive(self) -> bool:
        return self.current_health > 0

    def has_keyword(self, keyword: str) -> bool:
        """Keywords stop working once the creature is silenced."""
        return not self.is_silenced and keyword in self.template.keywords

    def has_status(self, status_type: str) -> bool:
        return any(s.type == status_type for s in self.status_effects)


@dataclass
class PlayerState:
    id: str
    faction: str
    tactics: str
    life: int = INITIAL_LIFE
    energy: int = 0
    max_energy: int = 0
    deck: list[Card] = dataclass_field(default_factory=list)      # top of deck is the last element
    hand: list[Card] = dataclass_field(default_factory=list)
    field: list[FieldCard] = dataclass_field(default_factory=list)
    graveyard: list[Card] = dataclass_field(default_factory=list)
    banished_cards: list[Card] = dataclass_field(default_factory=list)


# ---------------------------------------------------------------------------
# Action log entry and game result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GameAction:
    sequence: int
    player_id: str
    type: str
    data: dict[str, Any]
    timestamp: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "player_id": self.player_id,
            "type": self.type,
            "data": self.data,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "GameAction":
        return cls(
            sequence=raw["sequence"],
            player_id=raw["player_id"],
            type=raw["type"],
            data=raw["data"],
            timestamp=raw.get("timestamp", 0.0),
        )


@dataclass(frozen=True)
class GameResult:
    winner: str | None          # "player1" / "player2" / None for a draw
    reason: str                 # "life_zero" / "timeout"
    total_turns: int
    duration_seconds: float
    end_time: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "winner": self.winner,
            "reason": self.reason,
            "total_turns": self.total_turns,
            "duration_seconds": self.duration_seconds,
            "end_time": self.end_time,
        }


# ---------------------------------------------------------------------------
# Game state (threaded through process_game_step, copied per step)
# ---------------------------------------------------------------------------

@dataclass
class GameState:
    game_id: str
    turn_number: int
    current_player: str
    phase: str
    players: dict[str, PlayerState]
    random_seed: str
    start_time: float
    rng: "SeededRandom"
    action_log: list[GameAction] = dataclass_field(default_factory=list)
    result: GameResult | None = None
    next_instance: int = 1

    def player(self, player_id: str) -> PlayerState:
        return self.players[player_id]

    def active(self) -> PlayerState:
        return self.players[self.current_player]

    def opponent(self) -> PlayerState:
        return self.players[opponent_of(self.current_player)]

    def alloc_instance_id(self, template_id: str, player_id: str) -> str:
        n = self.next_instance
        self.next_instance += 1
        return f"{template_id}@{player_id}:{n}"

    def find_field_card(self, instance_id: str) -> FieldCard | None:
        for pid in PLAYER_IDS:
            for fc in self.players[pid].field:
                if fc.instance_id == instance_id:
                    return fc
        return None


# ---------------------------------------------------------------------------
# Deck definition and match summary
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DeckEntry:
    card_id: str
    count: int


@dataclass(frozen=True)
class DeckDef:
    deck_id: str
    faction: str
    tactics: str
    entries: tuple[DeckEntry, ...]

    def card_ids(self) -> list[str]:
        ids: list[str] = []
        for entry in self.entries:
            ids.extend([entry.card_id] * entry.count)
        return ids


@dataclass
class MatchLog:
    seed: str
    deck_ids: tuple[str, str]
    factions: tuple[str, str]
    first_player: str
    winner: str | None
    reason: str
    turns: int
    final_life: tuple[int, int]
    action_count: int
