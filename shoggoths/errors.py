from __future__ import annotations


class GameError(Exception):
    """Recoverable rule violation. Engine state is left untouched."""

    code = "GAME_ERROR"

    def __init__(self, msg: str) -> None:
        super().__init__(msg)
        self.msg = msg


class IllegalAction(GameError):
    code = "ILLEGAL_ACTION"


class IllegalPhase(IllegalAction):
    code = "ILLEGAL_PHASE"


class IllegalIndex(GameError):
    code = "ILLEGAL_INDEX"


class InsufficientSanity(GameError):
    code = "INSUFFICIENT_SANITY"


class NoActiveESP(GameError):
    code = "NO_ACTIVE_ESP"


class DeadlineExpired(GameError):
    code = "DEADLINE_EXPIRED"


class ExhaustedDeck(GameError):
    # Two seats never draw more than 26 cards; seeing this means an invariant broke.
    code = "EXHAUSTED_DECK"
