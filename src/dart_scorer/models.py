from typing import Literal, Optional

from pydantic import BaseModel, Field

from .targets import FinishRule, InRule


class NewGameRequest(BaseModel):
    player_names: list[str] = Field(default_factory=lambda: ["Player 1", "Player 2"])
    finish_rule: FinishRule = FinishRule.DOUBLE_OUT
    in_rule: InRule = InRule.DEFAULT
    starting_score: int = Field(default=501, ge=2)
    set_mode_enabled: bool = False
    legs_to_win: int = Field(default=3, ge=1)


class ThrowCreate(BaseModel):
    # 25 is the bull; validity of the pair is checked by the engine.
    segment: int
    multiplier: int = Field(default=1, ge=1, le=3)


class RestartRequest(BaseModel):
    order: Literal["same", "random", "inverted"] = "same"


class PlayerNameUpdate(BaseModel):
    name: str


class PlayerOut(BaseModel):
    id: int
    name: str
    score: int
    legs_won: int
    last_turn_throws: list[int]
    leg_average: Optional[float]


class TurnOut(BaseModel):
    starting_score: int
    darts: list[str]
    darts_remaining: int


class MatchOut(BaseModel):
    players: list[PlayerOut]
    active_player_index: int
    current_turn: TurnOut
    finish_rule: FinishRule
    in_rule: InRule
    starting_score: int
    set_mode_enabled: bool
    legs_to_win: int
    winner: Optional[str]
    set_winner: Optional[str]
    status_message: Optional[str]
    can_undo: bool
    is_leg_in_progress: bool
    best_possible_finish: str
    has_best_possible_finish: bool


class ThrowOut(BaseModel):
    outcome: str
    match: MatchOut


class CheckoutSuggestion(BaseModel):
    score: int
    combinations: list[list[str]]


class FinishRouteOut(BaseModel):
    score: int
    darts_remaining: int
    strategy: Literal["preferred", "minimal"]
    finish_rule: FinishRule
    darts: list[str]
    label: str
    rationale: str
    is_checkout: bool


class AssistantStart(BaseModel):
    starting_at: int = Field(default=501, ge=2)


class AssistantThrow(BaseModel):
    # Either a route token ("T20", "Bull") or raw points.
    target: Optional[str] = None
    points: Optional[int] = Field(default=None, ge=0, le=60)


class AssistantOut(BaseModel):
    current_score: int
    darts_remaining: int
    did_bust_last_throw: bool
    can_undo: bool
    suggestion: Optional[list[str]]
    label: Optional[str]
    rationale: Optional[str]
