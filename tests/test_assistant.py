from src.dart_scorer.assistant import CheckoutAssistant
from src.dart_scorer.targets import parse_target


def test_miss_recovery_from_101_after_single_20():
    assistant = CheckoutAssistant()
    assistant.start_leg(starting_at=101)
    assert assistant.suggestion.tokens == ["T20", "S9", "D16"]

    assistant.record_points(20)

    assert assistant.current_score == 81
    assert assistant.darts_remaining == 2
    assert assistant.suggestion.tokens == ["T19", "D12"]


def test_bust_restores_visit_start():
    assistant = CheckoutAssistant(starting_at=40)

    assistant.record_target(parse_target("S20"))
    assert assistant.current_score == 20

    assistant.record_target(parse_target("S20"))
    assert assistant.did_bust_last_throw is True
    assert assistant.current_score == 40
    assert assistant.darts_remaining == 3
    assert assistant.suggestion.tokens == ["D20"]


def test_checkout_ends_leg():
    assistant = CheckoutAssistant(starting_at=40)

    assert assistant.record_target(parse_target("D20")) is True
    assert assistant.current_score == 0
    assert assistant.darts_remaining == 0
    assert assistant.suggestion is None
    assert assistant.record_points(5) is False


def test_visit_rolls_over_after_three_darts():
    assistant = CheckoutAssistant(starting_at=301)
    for _ in range(3):
        assistant.record_points(60)

    assert assistant.current_score == 121
    assert assistant.darts_remaining == 3
    assert assistant.suggestion.tokens == ["T20", "T11", "D14"]


def test_undo_restores_previous_throw():
    assistant = CheckoutAssistant(starting_at=101)
    assistant.record_points(20)

    assert assistant.undo_last_throw() is True
    assert assistant.current_score == 101
    assert assistant.darts_remaining == 3
    assert assistant.suggestion.tokens == ["T20", "S9", "D16"]
    assert assistant.undo_last_throw() is False
