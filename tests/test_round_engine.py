import pytest

from shoggoths.errors import IllegalIndex, IllegalPhase, InsufficientSanity
from shoggoths.models import ActionType, Phase
from shoggoths.policy import Decision

from .helpers import ScriptedPolicy, create_session, rigged_deck, total_sanity

PAIR_OF_ACES = ["Ah", "Ad", "7c", "4s", "2h"]
KING_HIGH = ["Kh", "Qd", "9c", "6s", "3h"]


def play_to_showdown(session) -> None:
    session.submit_action(ActionType.CHECK)
    session.submit_discard([])
    session.submit_action(ActionType.CHECK)


def test_ante_then_bet_and_call_moves_to_discard():
    session = create_session(ante=5)
    outcome = session.start_round()
    assert outcome.phase == Phase.BET_PRE
    assert session.round.pot.pot == 10
    assert [seat.sanity for seat in session.seats] == [95, 95]
    assert outcome.state["to_act"] == "player"

    outcome = session.submit_action(ActionType.BET, 10)

    assert session.round.pot.pot == 30
    assert [seat.sanity for seat in session.seats] == [85, 85]
    assert outcome.phase == Phase.DISCARD
    assert "You bet 10." in outcome.narration
    assert "The Ancient One calls." in outcome.narration


def test_bet_beyond_sanity_is_rejected_without_changes():
    session = create_session(starting_sanity=15)
    session.start_round()
    before = session.to_dict()

    with pytest.raises(InsufficientSanity):
        session.submit_action(ActionType.BET, 10)

    assert session.to_dict() == before


def test_showdown_awards_pot_to_better_hand(monkeypatch):
    rigged_deck(monkeypatch, PAIR_OF_ACES, KING_HIGH)
    session = create_session()
    session.start_round()
    play_to_showdown(session)

    assert session.phase == Phase.COMPLETE
    assert [seat.sanity for seat in session.seats] == [110, 90]
    settlement = session.round.settlement
    assert settlement.winner == 0
    assert settlement.payouts == [20, 0]
    assert settlement.hand_names == ["One Pair", "High Card"]

    outcome = session.resolve_showdown()
    assert outcome.extras["result"]["message"] == "You win with One Pair! The Ancient One had High Card."
    assert outcome.state["players"][1]["hand"] == ["K♥", "Q♦", "9♣", "6♠", "3♥"]


def test_opponent_cards_stay_hidden_until_showdown(monkeypatch):
    rigged_deck(monkeypatch, PAIR_OF_ACES, KING_HIGH)
    session = create_session()
    outcome = session.start_round()
    opponent = outcome.state["players"][1]
    assert opponent["hand"] is None
    assert opponent["hand_size"] == 5
    assert outcome.state["players"][0]["hand"] == ["A♥", "A♦", "7♣", "4♠", "2♥"]


def test_tie_splits_pot_with_odd_unit_to_first_seat(monkeypatch):
    rigged_deck(monkeypatch, ["2c", "3d", "4h", "5s", "7c"], ["2d", "3h", "4s", "5c", "7d"])
    session = create_session(opponent_regenerates=False)
    session.seats[1].sanity = 5

    outcome = session.start_round()
    # Opponent is all-in on the ante, so betting closes straight away.
    assert outcome.phase == Phase.DISCARD
    assert session.round.pot.pot == 15

    session.submit_discard([])

    assert session.phase == Phase.COMPLETE
    assert session.round.settlement.winner is None
    assert session.round.settlement.payouts == [8, 7]
    assert [seat.sanity for seat in session.seats] == [98, 7]


def test_human_fold_awards_pot_and_reveals(monkeypatch):
    rigged_deck(monkeypatch, PAIR_OF_ACES, KING_HIGH)
    session = create_session()
    session.start_round()
    outcome = session.submit_action(ActionType.FOLD)

    assert outcome.phase == Phase.COMPLETE
    assert [seat.sanity for seat in session.seats] == [90, 110]
    assert session.round.settlement.by_fold
    assert outcome.state["players"][1]["hand"] is not None
    assert "player_fold" in outcome.situations


def test_fold_keeps_cards_hidden_without_reveal_on_fold():
    session = create_session(reveal_on_fold=False)
    session.start_round()
    outcome = session.submit_action(ActionType.FOLD)
    assert outcome.state["players"][1]["hand"] is None


def test_opponent_fold_hands_human_the_pot():
    policy = ScriptedPolicy([Decision(ActionType.FOLD)])
    session = create_session(policy=policy)
    session.start_round()
    outcome = session.submit_action(ActionType.BET, 10)

    assert outcome.phase == Phase.COMPLETE
    assert session.round.settlement.winner == 0
    assert [seat.sanity for seat in session.seats] == [110, 90]
    assert "The Ancient One folds. You win!" in outcome.narration


def test_short_call_returns_uncalled_sanity():
    session = create_session()
    session.start_round()
    session.seats[1].sanity = 15

    outcome = session.submit_action(ActionType.BET, 50)

    assert session.seats[0].sanity == 75
    assert session.seats[1].sanity == 0
    assert session.round.pot.pot == 50
    assert "35 uncalled sanity returns to you." in outcome.narration
    assert "(all-in)" in outcome.narration


def test_discard_replaces_chosen_cards_in_place(monkeypatch):
    rigged_deck(monkeypatch, PAIR_OF_ACES, KING_HIGH, draws=["Ac", "As"])
    session = create_session()
    session.start_round()
    session.submit_action(ActionType.CHECK)

    outcome = session.submit_discard([3, 2])

    assert [card.label for card in session.round.hand_of(0)] == ["A♥", "A♦", "A♣", "A♠", "2♥"]
    assert outcome.phase == Phase.BET_POST
    assert "You exchanged 2 cards." in outcome.narration


@pytest.mark.parametrize(
    "indices, message",
    [
        ([1, 1], "Duplicate"),
        ([5], "out of range"),
        ([-1], "out of range"),
        ([0, 1, 2, 3], "At most 3"),
    ],
)
def test_invalid_discards_rejected(indices, message):
    session = create_session()
    session.start_round()
    session.submit_action(ActionType.CHECK)
    before = session.to_dict()

    with pytest.raises(IllegalIndex, match=message):
        session.submit_discard(indices)
    assert session.to_dict() == before


def test_actions_out_of_phase_rejected():
    session = create_session()
    with pytest.raises(IllegalPhase):
        session.submit_action(ActionType.CHECK)

    session.start_round()
    with pytest.raises(IllegalPhase):
        session.submit_discard([0])
    with pytest.raises(IllegalPhase):
        session.start_round()

    session.submit_action(ActionType.CHECK)
    with pytest.raises(IllegalPhase):
        session.submit_action(ActionType.CHECK)

    session.submit_discard([])
    with pytest.raises(IllegalPhase):
        session.submit_discard([])


def test_showdown_result_requires_a_settled_hand():
    session = create_session()
    session.start_round()
    with pytest.raises(IllegalPhase):
        session.resolve_showdown()


def test_losing_everything_ends_the_game_and_rebuy_restores(monkeypatch):
    rigged_deck(monkeypatch, KING_HIGH, PAIR_OF_ACES)
    session = create_session(starting_sanity=20)
    session.start_round()
    session.submit_action(ActionType.BET, 10)
    outcome = session.submit_discard([])

    assert outcome.phase == Phase.GAME_OVER
    assert session.seats[0].sanity == 0
    assert "You lost everything. Game Over." in outcome.narration
    with pytest.raises(IllegalPhase):
        session.start_round()

    outcome = session.rebuy()
    assert outcome.phase == Phase.ANTE
    assert [seat.sanity for seat in session.seats] == [20, 20]
    assert session.start_round().phase == Phase.BET_PRE


def test_rebuy_only_after_game_over():
    session = create_session()
    with pytest.raises(IllegalPhase):
        session.rebuy()


def test_short_ante_ends_the_game():
    session = create_session()
    session.seats[0].sanity = 5
    outcome = session.start_round()
    assert outcome.phase == Phase.GAME_OVER
    assert session.seats[0].sanity == 5
    assert "Insufficient sanity for ante" in outcome.narration


def test_opponent_regenerates_when_short_of_the_ante():
    session = create_session()
    session.seats[1].sanity = 5
    outcome = session.start_round()
    assert session.seats[1].sanity == 90
    assert "regenerates" in outcome.narration


def test_sanity_is_conserved_through_hands():
    session = create_session(seed=99, opponent_regenerates=False)
    expected = total_sanity(session)
    for _ in range(6):
        if session.phase == Phase.GAME_OVER:
            break
        session.start_round()
        assert total_sanity(session) == expected
        while session.phase not in (Phase.COMPLETE, Phase.GAME_OVER):
            if session.phase == Phase.DISCARD:
                session.submit_discard([0, 1])
            else:
                view = session.snapshot()
                if "bet" in view["legal"]:
                    session.submit_action(ActionType.BET, min(5, view["max_wager"]))
                elif "call" in view["legal"]:
                    session.submit_action(ActionType.CALL)
                else:
                    session.submit_action(ActionType.CHECK)
            assert total_sanity(session) == expected
