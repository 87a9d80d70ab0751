from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum


BULL_SEGMENT = 25
DARTS_PER_TURN = 3


class Multiplier(IntEnum):
    SINGLE = 1
    DOUBLE = 2
    TRIPLE = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


class FinishRule(str, Enum):
    DOUBLE_OUT = "double_out"
    SINGLE_OUT = "single_out"

    @property
    def label(self) -> str:
        return "Double Out" if self is FinishRule.DOUBLE_OUT else "Single Out"


class InRule(str, Enum):
    DEFAULT = "default"
    DOUBLE_IN = "double_in"

    @property
    def label(self) -> str:
        return "Double In" if self is InRule.DOUBLE_IN else "Default"


def _is_valid_value(value: int, multiplier: int) -> bool:
    if value == BULL_SEGMENT:
        return multiplier != Multiplier.TRIPLE
    return 1 <= value <= 20


@dataclass(frozen=True)
class DartTarget:
    """A scorable board position used by the checkout solver.

    The inner bull is modelled as (25, DOUBLE) and totals 50.
    """

    value: int
    multiplier: Multiplier

    def __post_init__(self) -> None:
        if self.multiplier not in (1, 2, 3):
            raise ValueError("multiplier must be 1, 2, or 3")
        if not _is_valid_value(self.value, self.multiplier):
            raise ValueError(f"invalid target {self.multiplier}x{self.value}")
        object.__setattr__(self, "multiplier", Multiplier(self.multiplier))

    @property
    def total(self) -> int:
        if self.is_bull:
            return 50
        return self.value * self.multiplier

    @property
    def is_bull(self) -> bool:
        return self.value == BULL_SEGMENT and self.multiplier == Multiplier.DOUBLE

    @property
    def is_outer_bull(self) -> bool:
        return self.value == BULL_SEGMENT and self.multiplier == Multiplier.SINGLE

    @property
    def is_double(self) -> bool:
        return self.multiplier == Multiplier.DOUBLE

    @property
    def token(self) -> str:
        if self.is_bull:
            return "Bull"
        if self.is_outer_bull:
            return "25"
        prefix = {Multiplier.SINGLE: "S", Multiplier.DOUBLE: "D", Multiplier.TRIPLE: "T"}[self.multiplier]
        return f"{prefix}{self.value}"

    def __str__(self) -> str:
        return self.token


OUTER_BULL = DartTarget(BULL_SEGMENT, Multiplier.SINGLE)
BULL = DartTarget(BULL_SEGMENT, Multiplier.DOUBLE)


def parse_target(token: str) -> DartTarget | None:
    """Parse a route token such as "T20", "d16", "S9", "9", "25" or "Bull"."""
    normalized = token.strip().upper()
    if not normalized:
        return None
    if normalized == "BULL":
        return BULL
    if normalized == "25":
        return OUTER_BULL

    prefixes = {"S": Multiplier.SINGLE, "D": Multiplier.DOUBLE, "T": Multiplier.TRIPLE}
    multiplier = prefixes.get(normalized[0])
    digits = normalized[1:] if multiplier is not None else normalized
    if multiplier is None:
        multiplier = Multiplier.SINGLE
    if not digits.isdecimal():
        return None

    value = int(digits)
    if not _is_valid_value(value, multiplier):
        return None
    return DartTarget(value, multiplier)


@dataclass(frozen=True)
class DartThrow:
    """A single dart as entered during a match.

    `segment` is 0-20 for the numbered beds (0 is a miss) or BULL_SEGMENT.
    """

    segment: int
    multiplier: Multiplier

    @staticmethod
    def is_valid(segment: int, multiplier: int) -> bool:
        if multiplier not in (1, 2, 3):
            return False
        if segment == BULL_SEGMENT:
            return multiplier != Multiplier.TRIPLE
        return 0 <= segment <= 20

    @classmethod
    def create(cls, segment: int, multiplier: int) -> DartThrow | None:
        if not cls.is_valid(segment, multiplier):
            return None
        return cls(segment=segment, multiplier=Multiplier(multiplier))

    @property
    def points(self) -> int:
        return self.segment * self.multiplier

    @property
    def is_double(self) -> bool:
        return self.multiplier == Multiplier.DOUBLE

    @property
    def is_bull(self) -> bool:
        return self.segment == BULL_SEGMENT

    @property
    def notation(self) -> str:
        if self.is_bull:
            return "Bull" if self.is_double else "25"
        if self.multiplier == Multiplier.SINGLE:
            return str(self.segment)
        return f"{'D' if self.is_double else 'T'}{self.segment}"

    @property
    def display_text(self) -> str:
        segment = "Bull" if self.is_bull else str(self.segment)
        return f"{self.multiplier.label} {segment} ({self.points})"

    def as_target(self) -> DartTarget | None:
        if self.segment == 0:
            return None
        return DartTarget(self.segment, self.multiplier)


@dataclass(frozen=True)
class Turn:
    starting_score: int
    opened_at_turn_start: bool = True
    darts: tuple[DartThrow, ...] = field(default_factory=tuple)

    @property
    def darts_used(self) -> int:
        return len(self.darts)

    @property
    def darts_remaining(self) -> int:
        return max(0, DARTS_PER_TURN - self.darts_used)

    def with_dart(self, dart: DartThrow) -> Turn:
        return replace(self, darts=self.darts + (dart,))


@dataclass
class Player:
    id: int
    name: str
    score: int = 501
