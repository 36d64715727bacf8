import pytest

from shoggoths.betting import BettingEngine
from shoggoths.errors import IllegalAction, InsufficientSanity
from shoggoths.models import ActionType, PotState, RoundState, Seat


def setup_betting(human: int = 90, opponent: int = 90, pot: int = 20) -> BettingEngine:
    seats = [Seat("You", True, human), Seat("The Ancient One", False, opponent)]
    engine = BettingEngine(seats, [RoundState(), RoundState()], PotState(pot=pot))
    engine.open(0)
    return engine


def test_open_gives_first_seat_the_action():
    engine = setup_betting()
    assert engine.turn.to_act == 0
    legal, to_call, max_wager = engine.legal_actions(0)
    assert legal == [ActionType.FOLD, ActionType.CHECK, ActionType.BET]
    assert to_call == 0
    assert max_wager == 90
    assert engine.legal_actions(1) == ([], 0, 0)


def test_check_check_closes_the_round():
    engine = setup_betting()
    engine.apply(0, ActionType.CHECK)
    assert not engine.is_closed()
    engine.apply(1, ActionType.CHECK)
    assert engine.is_closed()
    assert engine.turn.to_act is None


def test_bet_raise_call_sequence():
    engine = setup_betting()
    engine.apply(0, ActionType.BET, 10)
    legal, to_call, max_wager = engine.legal_actions(1)
    assert legal == [ActionType.FOLD, ActionType.CALL, ActionType.RAISE]
    assert (to_call, max_wager) == (10, 80)

    events = engine.apply(1, ActionType.RAISE, 15)
    assert events == [{"ev": "RAISE", "seat": 1, "amount": 15, "total": 25}]
    assert engine.pot.current_bet == 25
    assert engine.turn.to_act == 0
    assert not engine.is_closed()

    engine.apply(0, ActionType.CALL)
    assert engine.is_closed()
    assert engine.pot.pot == 20 + 25 + 25
    assert [seat.sanity for seat in engine.seats] == [65, 65]


def test_check_facing_bet_rejected():
    engine = setup_betting()
    engine.apply(0, ActionType.BET, 10)
    with pytest.raises(IllegalAction, match="Cannot check"):
        engine.apply(1, ActionType.CHECK)


def test_out_of_turn_rejected():
    engine = setup_betting()
    with pytest.raises(IllegalAction, match="not your turn"):
        engine.apply(1, ActionType.CHECK)


def test_call_with_nothing_to_call_rejected():
    engine = setup_betting()
    with pytest.raises(IllegalAction, match="Nothing to call"):
        engine.apply(0, ActionType.CALL)


def test_bet_beyond_sanity_leaves_state_untouched():
    engine = setup_betting(human=5)
    with pytest.raises(InsufficientSanity):
        engine.apply(0, ActionType.BET, 10)
    assert engine.seats[0].sanity == 5
    assert engine.pot.pot == 20
    assert engine.turn.to_act == 0
    assert engine.turn.acted == []


def test_zero_bet_rejected():
    engine = setup_betting()
    with pytest.raises(IllegalAction, match="positive"):
        engine.apply(0, ActionType.BET, 0)


def test_short_call_goes_all_in_and_returns_the_excess():
    engine = setup_betting(human=90, opponent=15)
    engine.apply(0, ActionType.BET, 50)
    events = engine.apply(1, ActionType.CALL)

    assert events[0] == {"ev": "CALL", "seat": 1, "amount": 15, "all_in": True}
    assert events[1] == {"ev": "RETURN", "seat": 0, "amount": 35}
    assert engine.seats[0].sanity == 75
    assert engine.seats[1].sanity == 0
    assert engine.pot.pot == 50
    assert engine.is_closed()


def test_no_bet_or_raise_against_an_all_in_seat():
    engine = setup_betting(human=90, opponent=0)
    # Only one seat can act and nothing is owed, so the round is already over.
    assert engine.is_closed()

    engine = setup_betting(human=90, opponent=40)
    engine.apply(0, ActionType.BET, 40)
    engine.apply(1, ActionType.CALL)
    assert engine.seats[1].sanity == 0
    assert engine.is_closed()


def test_fold_ends_the_round():
    engine = setup_betting()
    engine.apply(0, ActionType.BET, 10)
    engine.apply(1, ActionType.FOLD)
    assert engine.live_seats() == [0]
    assert engine.is_closed()
