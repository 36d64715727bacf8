import json

from shoggoths.models import ActionType, Phase
from shoggoths.policy import AncientOnePolicy
from shoggoths.session import SessionState

from .helpers import FakeClock, create_session


def finish(session: SessionState) -> None:
    while session.phase not in (Phase.COMPLETE, Phase.GAME_OVER):
        if session.phase == Phase.DISCARD:
            session.submit_discard([4])
        else:
            legal = session.snapshot()["legal"]
            session.submit_action(ActionType.CALL if "call" in legal else ActionType.CHECK)


def script(session: SessionState) -> None:
    if session.phase != Phase.GAME_OVER:
        session.start_round()
        finish(session)


def test_same_seed_replays_identically():
    sessions = [create_session(seed=2024, policy=AncientOnePolicy(discard_simulations=5)) for _ in range(2)]
    for session in sessions:
        for _ in range(3):
            script(session)
    first, second = (session.to_dict() for session in sessions)
    assert first == second


def test_different_seeds_deal_different_hands():
    a = create_session(seed=1)
    b = create_session(seed=2)
    a.start_round()
    b.start_round()
    assert a.round.hand_of(0) != b.round.hand_of(0)


def test_to_dict_is_json_safe_and_round_trips():
    clock = FakeClock()
    session = create_session(clock=clock, ante=5)
    session.start_round()
    session.submit_action(ActionType.BET, 10)

    data = json.loads(json.dumps(session.to_dict()))
    restored = SessionState.from_dict(data, policy=session.policy, clock=clock)

    assert restored.to_dict() == session.to_dict()
    assert restored.phase == Phase.DISCARD
    assert restored.round.pot.pot == 30
    assert restored.round.hand_of(0) == session.round.hand_of(0)


def test_restored_session_continues_exactly_like_the_live_one():
    live = create_session(seed=31, policy=AncientOnePolicy(discard_simulations=5))
    live.start_round()
    restored = SessionState.from_dict(
        json.loads(json.dumps(live.to_dict())), policy=AncientOnePolicy(discard_simulations=5)
    )

    for session in (live, restored):
        session.submit_action(ActionType.CHECK)
        if session.phase == Phase.DISCARD:
            session.submit_discard([0, 1, 2])
        finish(session)
        script(session)

    assert live.to_dict() == restored.to_dict()


def test_esp_state_survives_a_round_trip():
    clock = FakeClock()
    session = create_session(clock=clock)
    session.start_esp()
    link = session.esp.active.link

    restored = SessionState.from_dict(json.loads(json.dumps(session.to_dict())), clock=clock)

    assert restored.esp.active.link == link
    assert restored.guess_esp(*link).extras["correct"] is True


def test_esp_snapshot_keeps_only_what_the_round_reads():
    session = create_session()
    session.start_esp()
    active = session.to_dict()["esp"]["active"]
    assert set(active) == {"hand1", "hand2", "link", "deadline", "theme", "guesses_used"}


def test_snapshot_offers_legal_actions_on_the_human_turn():
    session = create_session()
    state = session.start_round().state
    assert state["to_act"] == "player"
    assert state["legal"] == ["fold", "check", "bet"]
    assert state["to_call"] == 0
    assert state["max_wager"] == 90
    assert state["round_id"] == 1


def test_snapshot_between_hands_has_no_turn():
    session = create_session()
    state = session.fetch_state().state
    assert state["phase"] == "ante"
    assert state["to_act"] is None
    assert "legal" not in state
    assert state["players"][0]["hand"] == []


def test_fetch_state_repeats_last_action_without_changing_it():
    session = create_session()
    session.start_round()
    last = session.last_action
    outcome = session.fetch_state()
    assert outcome.narration == last
    assert session.last_action == last


def test_outcome_payload_merges_extras():
    session = create_session()
    session.start_esp()
    payload = session.guess_esp(*session.esp.active.link).to_payload()
    assert payload["correct"] is True
    assert payload["phase"] == "ante"
    assert "Your mind pierces the veil!" in payload["narration"]
