from __future__ import annotations

import os
from dataclasses import dataclass, field

from .targets import FinishRule, InRule

MAX_PLAYERS = 4


@dataclass(frozen=True)
class MatchConfig:
    """Settings the presentation layer owns and hands to the engine at startup."""

    player_names: tuple[str, ...] = ("Player 1", "Player 2")
    finish_rule: FinishRule = FinishRule.DOUBLE_OUT
    in_rule: InRule = InRule.DEFAULT
    starting_score: int = 501
    set_mode_enabled: bool = False
    legs_to_win: int = 3
    shuffle_seed: int | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.starting_score <= 1:
            raise ValueError("starting_score must be > 1")
        if self.legs_to_win < 1:
            raise ValueError("legs_to_win must be >= 1")
        object.__setattr__(self, "player_names", tuple(self.player_names)[:MAX_PLAYERS])
        object.__setattr__(self, "finish_rule", FinishRule(self.finish_rule))
        object.__setattr__(self, "in_rule", InRule(self.in_rule))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> MatchConfig:
    """Build a MatchConfig from DARTSCORER_* environment variables."""
    names = os.getenv("DARTSCORER_PLAYERS", "Player 1,Player 2")
    seed = os.getenv("DARTSCORER_SHUFFLE_SEED")
    return MatchConfig(
        player_names=tuple(name.strip() for name in names.split(",")),
        finish_rule=FinishRule(os.getenv("DARTSCORER_FINISH_RULE", FinishRule.DOUBLE_OUT.value).lower()),
        in_rule=InRule(os.getenv("DARTSCORER_IN_RULE", InRule.DEFAULT.value).lower()),
        starting_score=int(os.getenv("DARTSCORER_STARTING_SCORE", "501")),
        set_mode_enabled=_env_bool("DARTSCORER_SET_MODE", False),
        legs_to_win=int(os.getenv("DARTSCORER_LEGS_TO_WIN", "3")),
        shuffle_seed=int(seed) if seed else None,
    )
