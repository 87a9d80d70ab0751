from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .checkout import FinishRoute, get_best_finish, is_finishing_target
from .targets import DARTS_PER_TURN, DartTarget

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssistantState:
    current_score: int = 501
    darts_remaining: int = DARTS_PER_TURN
    turn_start_score: int = 501
    suggestion: FinishRoute | None = None
    did_bust_last_throw: bool = False


class CheckoutAssistant:
    """Double-out practice tracker that re-suggests a route after every dart."""

    def __init__(self, starting_at: int = 501) -> None:
        self._state = AssistantState()
        self._history: list[AssistantState] = []
        self.start_leg(starting_at)

    @property
    def state(self) -> AssistantState:
        return self._state

    @property
    def current_score(self) -> int:
        return self._state.current_score

    @property
    def darts_remaining(self) -> int:
        return self._state.darts_remaining

    @property
    def suggestion(self) -> FinishRoute | None:
        return self._state.suggestion

    @property
    def did_bust_last_throw(self) -> bool:
        return self._state.did_bust_last_throw

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    def start_leg(self, starting_at: int = 501) -> None:
        self._history.clear()
        self._state = AssistantState(
            current_score=starting_at,
            darts_remaining=DARTS_PER_TURN,
            turn_start_score=starting_at,
            suggestion=get_best_finish(starting_at, DARTS_PER_TURN),
        )

    def reset_leg(self) -> None:
        self.start_leg()

    def record_target(self, target: DartTarget) -> bool:
        """Apply a dart by board target, enforcing a double or bull finish."""
        return self._record(target.total, finishing=is_finishing_target(target))

    def record_points(self, points: int) -> bool:
        """Apply a dart by points only; any dart reaching zero finishes."""
        return self._record(points, finishing=True)

    def undo_last_throw(self) -> bool:
        if not self._history:
            return False
        self._state = self._history.pop()
        return True

    def _record(self, points: int, finishing: bool) -> bool:
        state = self._state
        if state.darts_remaining <= 0 or state.current_score <= 1:
            return False
        self._history.append(state)

        proposed = state.current_score - points
        if proposed < 0 or proposed == 1 or (proposed == 0 and not finishing):
            log.debug("assistant bust on %d from %d", points, state.current_score)
            self._state = AssistantState(
                current_score=state.turn_start_score,
                darts_remaining=DARTS_PER_TURN,
                turn_start_score=state.turn_start_score,
                suggestion=get_best_finish(state.turn_start_score, DARTS_PER_TURN),
                did_bust_last_throw=True,
            )
            return True

        if proposed == 0:
            self._state = replace(state, current_score=0, darts_remaining=0, suggestion=None, did_bust_last_throw=False)
            return True

        darts = state.darts_remaining - 1
        turn_start = state.turn_start_score
        if darts == 0:
            darts = DARTS_PER_TURN
            turn_start = proposed
        self._state = AssistantState(
            current_score=proposed,
            darts_remaining=darts,
            turn_start_score=turn_start,
            suggestion=get_best_finish(proposed, darts),
        )
        return True
