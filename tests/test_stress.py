from shoggoths.models import ActionType, Phase
from shoggoths.policy import AncientOnePolicy

from .helpers import create_session, total_sanity


def test_session_survives_hundreds_of_hands():
    session = create_session(
        seed=1_000,
        policy=AncientOnePolicy(discard_simulations=3),
        opponent_regenerates=False,
    )
    total = total_sanity(session)
    hands_played = 0

    for _ in range(300):
        if session.phase == Phase.GAME_OVER:
            session.rebuy()
            total = total_sanity(session)
        session.start_round()
        while session.phase not in (Phase.COMPLETE, Phase.GAME_OVER):
            if session.phase == Phase.DISCARD:
                session.submit_discard([hands_played % 5])
                continue
            legal = session.snapshot()["legal"]
            if "check" in legal:
                session.submit_action(ActionType.CHECK)
            else:
                session.submit_action(ActionType.CALL)
        hands_played += 1
        assert total_sanity(session) == total
        assert all(seat.sanity >= 0 for seat in session.seats)

    assert hands_played == 300
