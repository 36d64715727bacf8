from __future__ import annotations

import random
from collections import deque
from typing import Iterable, List, Optional, Sequence

from shoggoths.cards import RANKS, Card, Deck, full_deck, parse_cards
from shoggoths.models import ActionType, SessionConfig
from shoggoths.policy import Decision, PolicyView
from shoggoths.session import SessionState


class FakeClock:
    """Wall clock stand-in; tests move time explicitly."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedPolicy:
    """Plays queued decisions, then checks or calls. Discards whatever it was told to."""

    def __init__(self, actions: Iterable[Decision] = (), discards: Sequence[int] = ()) -> None:
        self.actions = deque(actions)
        self.discards = list(discards)
        self.views: List[PolicyView] = []

    def decide(self, view: PolicyView) -> Decision:
        self.views.append(view)
        if self.actions:
            return self.actions.popleft()
        if ActionType.CHECK in view.legal:
            return Decision(ActionType.CHECK)
        return Decision(ActionType.CALL)

    def choose_discard(self, hand: Sequence[Card], rng: random.Random, max_discards: int) -> List[int]:
        return list(self.discards)


def create_session(
    *,
    policy=None,
    seed: int = 7,
    clock: Optional[FakeClock] = None,
    **config_overrides,
) -> SessionState:
    """Build a session with a scripted opponent unless a policy is given."""
    config = SessionConfig(**config_overrides)
    return SessionState(
        "test-session",
        config=config,
        policy=policy if policy is not None else ScriptedPolicy(),
        seed=seed,
        clock=clock or FakeClock(),
    )


def rigged_deck(monkeypatch, human: Sequence[str], opponent: Sequence[str], draws: Sequence[str] = ()) -> List[Card]:
    """Force the next deals: human gets `human`, opponent `opponent`, discards draw from `draws`."""
    top = parse_cards(human) + parse_cards(opponent) + parse_cards(draws)
    cards = top + [card for card in full_deck() if card not in top]

    def shuffled(cls, rng, ranks=RANKS):
        if tuple(ranks) != RANKS:
            deck = cls(full_deck(ranks), rng)
            deck.shuffle()
            return deck
        return cls(list(cards), rng)

    monkeypatch.setattr(Deck, "shuffled", classmethod(shuffled))
    return cards


def total_sanity(session: SessionState) -> int:
    return sum(seat.sanity for seat in session.seats) + session.round.pot.pot
