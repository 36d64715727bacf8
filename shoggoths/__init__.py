"""Card Shoggoths engine: five-card draw for sanity, plus the ESP side challenge."""

from .cards import Card, Deck, RANKS, SUITS, parse_cards
from .errors import (
    DeadlineExpired,
    ExhaustedDeck,
    GameError,
    IllegalAction,
    IllegalIndex,
    IllegalPhase,
    InsufficientSanity,
    NoActiveESP,
)
from .evaluator import Category, HandRank, compare, describe, rank
from .models import ActionType, Phase, SessionConfig
from .policy import AncientOnePolicy, Decision, OpponentPolicy, PolicyView
from .session import Outcome, SessionState
from .store import MemorySessionStore, SessionStore, SqliteSessionStore

__all__ = [
    "Card",
    "Deck",
    "RANKS",
    "SUITS",
    "parse_cards",
    "DeadlineExpired",
    "ExhaustedDeck",
    "GameError",
    "IllegalAction",
    "IllegalIndex",
    "IllegalPhase",
    "InsufficientSanity",
    "NoActiveESP",
    "Category",
    "HandRank",
    "compare",
    "describe",
    "rank",
    "ActionType",
    "Phase",
    "SessionConfig",
    "AncientOnePolicy",
    "Decision",
    "OpponentPolicy",
    "PolicyView",
    "Outcome",
    "SessionState",
    "MemorySessionStore",
    "SessionStore",
    "SqliteSessionStore",
]
