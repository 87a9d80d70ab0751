import random
from copy import deepcopy

import pytest

from src.dart_scorer.config import MatchConfig
from src.dart_scorer.game import NO_FINISH, MatchEngine, ThrowOutcome
from src.dart_scorer.targets import FinishRule, InRule


def create_engine(names=("A", "B"), **kwargs):
    engine = MatchEngine(rng=random.Random(7))
    engine.new_game(player_names=list(names), **kwargs)
    return engine


def throw_many(engine, darts):
    return [engine.submit_throw(segment, multiplier) for segment, multiplier in darts]


# ---------- scoring ----------

def test_treble_twenty_reduces_score():
    engine = MatchEngine(MatchConfig(player_names=("A", "B")))

    assert engine.submit_throw(20, 3) is ThrowOutcome.SCORED
    assert engine.players[0].score == 441
    assert engine.current_turn.darts_used == 1
    assert engine.active_player_index == 0


def test_turn_switches_after_three_darts():
    engine = create_engine()
    throw_many(engine, [(1, 1)] * 3)

    assert engine.active_player_index == 1
    assert engine.current_turn.darts == ()
    assert engine.current_turn.starting_score == 501
    assert engine.players[0].score == 498


def test_miss_uses_a_dart_without_scoring():
    engine = create_engine()
    engine.submit_throw(0, 1)

    assert engine.players[0].score == 501
    assert engine.remaining_darts == 2


# ---------- bust ----------

def test_bust_reverts_to_turn_start_and_switches_player():
    engine = create_engine(starting_score=40)

    assert engine.submit_throw(20, 3) is ThrowOutcome.BUST
    assert engine.players[0].score == 40
    assert engine.active_player_index == 1
    assert engine.current_turn.darts == ()
    assert engine.status_message.startswith("Bust")


def test_bust_reverts_earlier_darts_of_the_turn():
    engine = create_engine(starting_score=60)
    engine.submit_throw(20, 2)
    assert engine.players[0].score == 20

    assert engine.submit_throw(20, 3) is ThrowOutcome.BUST
    assert engine.players[0].score == 60
    assert engine.last_turn_throws(engine.players[0]) == [40, 60]
    assert engine.leg_average(engine.players[0]) == 0.0


def test_double_out_required_to_win():
    engine = create_engine(names=["A"], starting_score=20)

    assert engine.submit_throw(20, 1) is ThrowOutcome.BUST
    assert engine.winner is None
    assert engine.players[0].score == 20


def test_leaving_one_is_a_bust_under_double_out():
    engine = create_engine(starting_score=21)

    assert engine.submit_throw(20, 1) is ThrowOutcome.BUST
    assert engine.players[0].score == 21


def test_single_out_win():
    engine = create_engine(names=["A"], starting_score=20, finish_rule=FinishRule.SINGLE_OUT)

    assert engine.submit_throw(20, 1) is ThrowOutcome.MATCH_WON
    assert engine.winner.name == "A"
    assert engine.status_message == "A wins the leg."


def test_bull_finishes_double_out():
    engine = create_engine(starting_score=50)

    assert engine.submit_throw(25, 2) is ThrowOutcome.MATCH_WON
    assert engine.winner.name == "A"


def test_throws_after_winner_are_ignored():
    engine = create_engine(starting_score=40)
    engine.submit_throw(20, 2)

    assert engine.submit_throw(20, 1) is ThrowOutcome.IGNORED
    assert engine.players[1].score == 40


# ---------- invalid input ----------

@pytest.mark.parametrize("segment, multiplier", [(21, 1), (25, 3), (-1, 1)])
def test_invalid_throw_leaves_state_unchanged(segment, multiplier):
    engine = create_engine()
    before = deepcopy(engine.state)

    assert engine.submit_throw(segment, multiplier) is ThrowOutcome.INVALID
    assert engine.status_message == "Invalid throw."
    assert engine.can_undo is False
    assert engine.players == before.players
    assert engine.current_turn == before.current_turn


# ---------- double in ----------

def test_double_in_ignores_points_until_first_double():
    engine = create_engine(names=["A"], in_rule=InRule.DOUBLE_IN)
    player = engine.players[0]

    engine.submit_throw(20, 1)
    assert player.score == 501
    assert engine.last_turn_throws(player) == [20]
    assert engine.leg_average(player) == 0.0

    engine.submit_throw(10, 2)
    assert player.score == 481
    engine.submit_throw(20, 1)
    assert player.score == 461
    assert engine.leg_average(player) == pytest.approx(40.0)


def test_double_in_bust_restores_open_state():
    engine = create_engine(starting_score=40, in_rule=InRule.DOUBLE_IN)
    player_a = engine.players[0]

    engine.submit_throw(10, 2)
    assert engine.state.has_opened_leg[player_a.id] is True

    assert engine.submit_throw(20, 3) is ThrowOutcome.BUST
    assert player_a.score == 40
    assert engine.state.has_opened_leg[player_a.id] is False
    assert engine.leg_average(player_a) == 0.0


# ---------- undo ----------

def test_undo_is_a_strict_inverse():
    engine = create_engine(starting_score=101, in_rule=InRule.DOUBLE_IN)
    before = deepcopy(engine.state)
    darts = [(20, 1), (10, 2), (20, 3), (5, 1), (19, 3), (20, 3), (1, 1), (20, 3)]

    throw_many(engine, darts)
    for _ in darts:
        assert engine.undo_last_throw() is True

    assert engine.state == before
    assert engine.can_undo is False
    assert engine.undo_last_throw() is False


def test_undo_reopens_a_won_leg():
    engine = create_engine(starting_score=40)
    engine.submit_throw(20, 2)
    assert engine.winner is not None

    engine.undo_last_throw()
    assert engine.winner is None
    assert engine.players[0].score == 40
    assert engine.remaining_darts == 3


# ---------- set mode ----------

def test_set_mode_single_player_counts_legs():
    engine = create_engine(
        names=["A"], starting_score=10, finish_rule=FinishRule.SINGLE_OUT, set_mode_enabled=True, legs_to_win=2
    )
    player = engine.players[0]

    assert engine.submit_throw(10, 1) is ThrowOutcome.LEG_WON
    assert engine.winner is None
    assert engine.legs_won(player) == 1
    assert player.score == 10

    assert engine.submit_throw(10, 1) is ThrowOutcome.MATCH_WON
    assert engine.winner is player
    assert engine.legs_won(player) == 2


def test_set_mode_reverses_order_between_legs():
    engine = create_engine(
        names=["A", "B"], starting_score=10, finish_rule=FinishRule.SINGLE_OUT, set_mode_enabled=True, legs_to_win=2
    )

    engine.submit_throw(10, 1)
    assert [p.name for p in engine.players] == ["B", "A"]
    assert engine.active_player.name == "B"
    assert engine.can_undo is False

    assert engine.submit_throw(10, 1) is ThrowOutcome.LEG_WON
    assert [p.name for p in engine.players] == ["A", "B"]

    assert engine.submit_throw(10, 1) is ThrowOutcome.MATCH_WON
    assert engine.winner.name == "A"
    assert engine.set_winner.name == "A"
    assert engine.legs_won(engine.winner) == 2
    assert engine.legs_won(engine.players[1]) == 1


# ---------- restarts and setup ----------

def test_restart_leg_resets_scores_and_history():
    engine = create_engine()
    throw_many(engine, [(20, 3), (20, 3)])

    engine.restart_leg()
    assert [p.score for p in engine.players] == [501, 501]
    assert [p.name for p in engine.players] == ["A", "B"]
    assert engine.can_undo is False
    assert engine.last_turn_throws(engine.players[0]) == []
    assert engine.leg_average(engine.players[0]) is None
    assert engine.is_leg_in_progress is False


def test_restart_inverted_sequence():
    engine = create_engine(names=["A", "B", "C"])
    engine.restart_leg_inverted_sequence()
    assert [p.name for p in engine.players] == ["C", "B", "A"]


@pytest.mark.parametrize("seed", range(20))
def test_random_restart_never_keeps_the_same_starter(seed):
    engine = MatchEngine(MatchConfig(player_names=("A", "B", "C")), rng=random.Random(seed))
    engine.restart_leg_random_sequence()
    assert engine.players[0].name != "A"
    assert sorted(p.name for p in engine.players) == ["A", "B", "C"]


def test_new_game_sanitizes_names():
    engine = create_engine(names=["  Ann ", "", "Cy", "Di", "Ed"])
    assert [p.name for p in engine.players] == ["Ann", "Player 2", "Cy", "Di"]

    engine.new_game([])
    assert [p.name for p in engine.players] == ["Player 1"]


def test_update_player_name():
    engine = create_engine()
    engine.update_player_name(1, "  Zoe ")
    assert engine.players[1].name == "Zoe"
    engine.update_player_name(1, "   ")
    assert engine.players[1].name == "Player 2"
    engine.update_player_name(5, "Nobody")
    assert [p.name for p in engine.players] == ["A", "Player 2"]


def test_last_turn_throws_keeps_three_most_recent():
    engine = create_engine(names=["A"])
    throw_many(engine, [(1, 1), (2, 1), (3, 1), (4, 1)])
    assert engine.last_turn_throws(engine.players[0]) == [2, 3, 4]


def test_leg_in_progress():
    engine = create_engine()
    assert engine.is_leg_in_progress is False
    engine.submit_throw(5, 1)
    assert engine.is_leg_in_progress is True


# ---------- best finish hint ----------

def test_best_possible_finish_line():
    engine = create_engine(starting_score=50)
    assert engine.best_possible_finish_line == "Bull"
    assert engine.has_best_possible_finish is True


def test_best_possible_finish_uses_remaining_darts():
    engine = create_engine(starting_score=140)
    assert engine.best_possible_finish_line == "T20 T20 D10"

    engine.submit_throw(0, 1)
    assert engine.best_possible_finish_line == NO_FINISH
    assert engine.has_best_possible_finish is False


def test_best_possible_finish_single_notation():
    engine = create_engine(starting_score=61, finish_rule=FinishRule.SINGLE_OUT)
    assert engine.best_possible_finish_line == "T20 1"


def test_no_finish_from_501():
    engine = create_engine()
    assert engine.best_possible_finish_line == NO_FINISH


def test_finish_line_empty_after_win():
    engine = create_engine(starting_score=40)
    engine.submit_throw(20, 2)
    assert engine.best_possible_finish_line == ""


@pytest.mark.parametrize("starting_score", [0, 1, -40])
def test_new_game_rejects_unplayable_starting_score(starting_score):
    engine = create_engine()
    with pytest.raises(ValueError):
        engine.new_game(["A"], starting_score=starting_score)
    assert engine.players[0].score == 501
