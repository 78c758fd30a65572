"""Simulation configuration loaded from JSON with CLI overrides."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from faction_battle.engine import MAX_STEPS

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class SimulationConfig:
    seed: str = "42"
    matches: int = 10
    decks: list[str] = field(default_factory=lambda: ["data/decks/*.json"])
    cards_path: str = "data/cards.json"
    output_dir: str | None = None
    max_steps: int = MAX_STEPS
    log_level: str = "WARNING"
    check_invariants: bool = False

    def __post_init__(self) -> None:
        self.seed = str(self.seed)
        if self.matches < 1:
            raise ValueError(f"matches must be >= 1, got {self.matches}")
        if self.max_steps < 1:
            raise ValueError(f"max_steps must be >= 1, got {self.max_steps}")
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

    @classmethod
    def from_json(cls, path: str | Path, **overrides: Any) -> "SimulationConfig":
        """Load config from JSON file with optional CLI overrides."""
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        known = {f.name for f in fields(cls)}
        unknown = set(raw) - known
        if unknown:
            raise ValueError(f"Unknown config keys in {path}: {sorted(unknown)}")
        raw.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**raw)
