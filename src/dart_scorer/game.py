from __future__ import annotations

import logging
import random
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from .checkout import minimal_route
from .config import MAX_PLAYERS, MatchConfig
from .targets import DARTS_PER_TURN, DartTarget, DartThrow, FinishRule, InRule, Player, Turn

log = logging.getLogger(__name__)

NO_FINISH = "No finish available"
INVALID_THROW = "Invalid throw."


class ThrowOutcome(str, Enum):
    SCORED = "scored"
    BUST = "bust"
    LEG_WON = "leg_won"
    MATCH_WON = "match_won"
    INVALID = "invalid"
    IGNORED = "ignored"


@dataclass
class MatchState:
    """Everything an undo has to restore. Per-player maps are keyed by Player.id."""

    players: list[Player]
    finish_rule: FinishRule
    in_rule: InRule
    starting_score: int
    set_mode_enabled: bool
    legs_to_win: int
    current_turn: Turn
    active_player_index: int = 0
    winner_id: int | None = None
    set_winner_id: int | None = None
    status_message: str | None = None
    turn_points: int = 0
    legs_won: dict[int, int] = field(default_factory=dict)
    last_turn_throws: dict[int, list[int]] = field(default_factory=dict)
    points_scored: dict[int, int] = field(default_factory=dict)
    darts_thrown: dict[int, int] = field(default_factory=dict)
    has_opened_leg: dict[int, bool] = field(default_factory=dict)


def sanitize_names(names: Iterable[str]) -> list[str]:
    """Keep at most four names, trimmed, with "Player N" for blanks."""
    prepared = [
        name.strip() or f"Player {position}"
        for position, name in enumerate(list(names)[:MAX_PLAYERS], start=1)
    ]
    return prepared or ["Player 1"]


def hint_notation(target: DartTarget) -> str:
    """Scoreboard notation: bare number for singles, D/T prefixes, 25 and Bull."""
    return DartThrow(target.value, target.multiplier).notation


class MatchEngine:
    """Turn, leg and set state machine for one match.

    Darts are applied one at a time with `submit_throw`. Every accepted dart
    first pushes a deep copy of the whole `MatchState`, so `undo_last_throw`
    restores the exact previous state.
    """

    def __init__(self, config: MatchConfig | None = None, rng: random.Random | None = None) -> None:
        config = config or MatchConfig()
        self._rng = rng or random.Random(config.shuffle_seed)
        self._history: list[MatchState] = []
        self._state: MatchState
        self.new_game(
            player_names=config.player_names,
            finish_rule=config.finish_rule,
            in_rule=config.in_rule,
            starting_score=config.starting_score,
            set_mode_enabled=config.set_mode_enabled,
            legs_to_win=config.legs_to_win,
        )

    # ---------------------------------------------------------
    # Read accessors
    # ---------------------------------------------------------

    @property
    def state(self) -> MatchState:
        return self._state

    @property
    def players(self) -> list[Player]:
        return self._state.players

    @property
    def active_player_index(self) -> int:
        return self._state.active_player_index

    @property
    def active_player(self) -> Player:
        return self._state.players[self._state.active_player_index]

    @property
    def current_turn(self) -> Turn:
        return self._state.current_turn

    @property
    def remaining_darts(self) -> int:
        return self._state.current_turn.darts_remaining

    @property
    def winner(self) -> Player | None:
        return self._player_by_id(self._state.winner_id)

    @property
    def set_winner(self) -> Player | None:
        return self._player_by_id(self._state.set_winner_id)

    @property
    def status_message(self) -> str | None:
        return self._state.status_message

    @property
    def finish_rule(self) -> FinishRule:
        return self._state.finish_rule

    @property
    def in_rule(self) -> InRule:
        return self._state.in_rule

    @property
    def starting_score(self) -> int:
        return self._state.starting_score

    @property
    def set_mode_enabled(self) -> bool:
        return self._state.set_mode_enabled

    @property
    def legs_to_win(self) -> int:
        return self._state.legs_to_win

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    @property
    def is_leg_in_progress(self) -> bool:
        return self._state.winner_id is None and any(n > 0 for n in self._state.darts_thrown.values())

    @property
    def best_possible_finish_route(self) -> tuple[DartTarget, ...] | None:
        if self._state.winner_id is not None or self.remaining_darts <= 0:
            return None
        return minimal_route(self.active_player.score, self.remaining_darts, self._state.finish_rule)

    @property
    def best_possible_finish_line(self) -> str:
        if self._state.winner_id is not None:
            return ""
        route = self.best_possible_finish_route
        if route is None:
            return NO_FINISH
        return " ".join(hint_notation(dart) for dart in route)

    @property
    def has_best_possible_finish(self) -> bool:
        return self.best_possible_finish_line != NO_FINISH

    def last_turn_throws(self, player: Player) -> list[int]:
        return list(self._state.last_turn_throws.get(player.id, []))

    def legs_won(self, player: Player) -> int:
        return self._state.legs_won.get(player.id, 0)

    def leg_average(self, player: Player) -> float | None:
        """Three-dart average this leg, from effective points; None before the first dart."""
        darts = self._state.darts_thrown.get(player.id, 0)
        if darts <= 0:
            return None
        points = self._state.points_scored.get(player.id, 0)
        return points / darts * 3.0

    # ---------------------------------------------------------
    # Mutations
    # ---------------------------------------------------------

    def submit_throw(self, segment: int, multiplier: int) -> ThrowOutcome:
        state = self._state
        if state.winner_id is not None or self.remaining_darts <= 0:
            return ThrowOutcome.IGNORED

        dart = DartThrow.create(segment, multiplier)
        if dart is None:
            state.status_message = INVALID_THROW
            return ThrowOutcome.INVALID

        self._history.append(deepcopy(state))
        state.status_message = None

        player = self.active_player
        effective = self._effective_points(dart, player.id)
        proposed = player.score - effective

        self._append_throw_history(player.id, dart.points)
        state.darts_thrown[player.id] = state.darts_thrown.get(player.id, 0) + 1

        if self._is_bust(proposed, dart, effective):
            state.points_scored[player.id] = state.points_scored.get(player.id, 0) - state.turn_points
            state.has_opened_leg[player.id] = state.current_turn.opened_at_turn_start
            player.score = state.current_turn.starting_score
            state.status_message = f"Bust! {player.name} stays on {player.score}."
            log.debug("bust: %s threw %s needing %d", player.name, dart.notation, proposed + effective)
            self._end_turn()
            return ThrowOutcome.BUST

        state.points_scored[player.id] = state.points_scored.get(player.id, 0) + effective
        state.turn_points += effective
        player.score = proposed
        state.current_turn = state.current_turn.with_dart(dart)

        if proposed == 0:
            return self._finish_leg(player)

        if state.current_turn.darts_used == DARTS_PER_TURN:
            self._end_turn()
        return ThrowOutcome.SCORED

    def undo_last_throw(self) -> bool:
        if not self._history:
            return False
        self._state = self._history.pop()
        log.debug("undo: %d snapshot(s) left", len(self._history))
        return True

    def restart_leg(self) -> None:
        self._start_new_leg(random_sequence=False, inverted_sequence=False)

    def restart_leg_random_sequence(self) -> None:
        self._start_new_leg(random_sequence=True, inverted_sequence=False)

    def restart_leg_inverted_sequence(self) -> None:
        self._start_new_leg(random_sequence=False, inverted_sequence=True)

    def new_game(
        self,
        player_names: Iterable[str],
        finish_rule: FinishRule = FinishRule.DOUBLE_OUT,
        in_rule: InRule = InRule.DEFAULT,
        starting_score: int = 501,
        set_mode_enabled: bool = False,
        legs_to_win: int = 3,
    ) -> None:
        if starting_score <= 1:
            raise ValueError("starting_score must be > 1")
        self._history.clear()
        names = sanitize_names(player_names)
        in_rule = InRule(in_rule)
        players = [Player(id=position, name=name, score=starting_score) for position, name in enumerate(names, start=1)]
        opened = in_rule is InRule.DEFAULT

        self._state = MatchState(
            players=players,
            finish_rule=FinishRule(finish_rule),
            in_rule=in_rule,
            starting_score=starting_score,
            set_mode_enabled=set_mode_enabled,
            legs_to_win=max(1, legs_to_win),
            current_turn=Turn(starting_score=starting_score, opened_at_turn_start=opened),
            legs_won={p.id: 0 for p in players},
            last_turn_throws={p.id: [] for p in players},
            points_scored={p.id: 0 for p in players},
            darts_thrown={p.id: 0 for p in players},
            has_opened_leg={p.id: opened for p in players},
        )
        log.info(
            "new game: %d player(s), %d %s/%s, set mode %s",
            len(players),
            starting_score,
            self._state.finish_rule.label,
            in_rule.label,
            "on" if set_mode_enabled else "off",
        )

    def update_player_name(self, index: int, name: str) -> None:
        if not 0 <= index < len(self._state.players):
            return
        self._state.players[index].name = name.strip() or f"Player {index + 1}"

    # ---------------------------------------------------------
    # Rules
    # ---------------------------------------------------------

    def _effective_points(self, dart: DartThrow, player_id: int) -> int:
        state = self._state
        if state.in_rule is InRule.DOUBLE_IN and not state.has_opened_leg.get(player_id, False):
            if not dart.is_double:
                return 0
            state.has_opened_leg[player_id] = True
        return dart.points

    def _is_bust(self, proposed: int, dart: DartThrow, effective: int) -> bool:
        if effective == 0:
            return False
        if proposed < 0:
            return True
        if self._state.finish_rule is FinishRule.DOUBLE_OUT:
            if proposed == 1:
                return True
            if proposed == 0 and not dart.is_double:
                return True
        return False

    def _finish_leg(self, player: Player) -> ThrowOutcome:
        state = self._state
        if not state.set_mode_enabled:
            state.winner_id = player.id
            state.status_message = f"{player.name} wins the leg."
            log.info("%s wins the leg", player.name)
            return ThrowOutcome.MATCH_WON

        state.legs_won[player.id] = state.legs_won.get(player.id, 0) + 1
        if state.legs_won[player.id] >= state.legs_to_win:
            state.winner_id = player.id
            state.set_winner_id = player.id
            state.status_message = f"{player.name} wins the set."
            log.info("%s wins the set (%d legs)", player.name, state.legs_to_win)
            return ThrowOutcome.MATCH_WON

        log.info("%s wins a leg (%d/%d)", player.name, state.legs_won[player.id], state.legs_to_win)
        self._start_new_leg(random_sequence=False, inverted_sequence=True)
        return ThrowOutcome.LEG_WON

    # ---------------------------------------------------------
    # Turn and leg lifecycle
    # ---------------------------------------------------------

    def _new_turn_for_active(self) -> None:
        state = self._state
        player = self.active_player
        state.current_turn = Turn(
            starting_score=player.score,
            opened_at_turn_start=state.has_opened_leg.get(player.id, state.in_rule is InRule.DEFAULT),
        )
        state.turn_points = 0

    def _end_turn(self) -> None:
        state = self._state
        state.active_player_index = (state.active_player_index + 1) % len(state.players)
        self._new_turn_for_active()

    def _start_new_leg(self, random_sequence: bool, inverted_sequence: bool) -> None:
        state = self._state
        self._history.clear()
        state.winner_id = None
        state.status_message = None

        players = list(state.players)
        if inverted_sequence:
            players.reverse()
        elif random_sequence:
            previous_starter = players[0].id
            self._rng.shuffle(players)
            if len(players) > 1 and players[0].id == previous_starter:
                swap = self._rng.randrange(1, len(players))
                players[0], players[swap] = players[swap], players[0]

        for player in players:
            player.score = state.starting_score
        state.players = players
        state.active_player_index = 0

        opened = state.in_rule is InRule.DEFAULT
        state.last_turn_throws = {p.id: [] for p in players}
        state.points_scored = {p.id: 0 for p in players}
        state.darts_thrown = {p.id: 0 for p in players}
        state.has_opened_leg = {p.id: opened for p in players}
        self._new_turn_for_active()
        log.debug("new leg, order: %s", ", ".join(p.name for p in players))

    def _append_throw_history(self, player_id: int, points: int) -> None:
        throws = self._state.last_turn_throws.setdefault(player_id, [])
        throws.append(points)
        del throws[:-DARTS_PER_TURN]

    def _player_by_id(self, player_id: int | None) -> Player | None:
        if player_id is None:
            return None
        return next((p for p in self._state.players if p.id == player_id), None)
