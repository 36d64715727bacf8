from __future__ import annotations

import itertools
import random
from dataclasses import dataclass
from typing import List, NamedTuple, Protocol, Sequence

from .cards import Card, full_deck
from .evaluator import Category, HandRank, rank
from .models import ActionType, Phase


class PolicyView(NamedTuple):
    """What the non-human seat is allowed to see when it must act."""

    hand: List[Card]
    phase: Phase
    pot: int
    to_call: int
    sanity: int
    legal: List[ActionType]
    max_wager: int


class Decision(NamedTuple):
    action: ActionType
    amount: int = 0


class OpponentPolicy(Protocol):
    def decide(self, view: PolicyView) -> Decision: ...

    def choose_discard(self, hand: Sequence[Card], rng: random.Random, max_discards: int) -> List[int]: ...


def win_probability(hand_rank: HandRank) -> float:
    """Rough chance of holding the best hand, keyed off the hand category."""
    category = hand_rank.category
    if category == Category.HIGH_CARD:
        return 0.2 if hand_rank.tiebreak[0] > 10 else 0.1
    if category == Category.ONE_PAIR:
        return 0.55 if hand_rank.tiebreak[0] > 10 else 0.4
    if category == Category.TWO_PAIR:
        return 0.7
    if category == Category.THREE_OF_A_KIND:
        return 0.85
    return 0.95


def score_hand(hand_rank: HandRank) -> float:
    # Category dominates; tiebreak ranks add diminishing weight so averages stay meaningful.
    score = float(hand_rank.category) * 1_000_000.0
    weight = 10_000.0
    for value in hand_rank.tiebreak:
        score += value * weight
        weight /= 15.0
    return score


@dataclass(frozen=True)
class AncientOnePolicy:
    """Pot-odds driven opponent. Stateless: the same view always yields the same action."""

    courage: float = 1.2
    bet_size: int = 20
    raise_size: int = 20
    margin: float = 0.1
    discard_simulations: int = 100

    def strength(self, hand: Sequence[Card]) -> float:
        return min(win_probability(rank(hand)) * self.courage, 0.99)

    def decide(self, view: PolicyView) -> Decision:
        legal = view.legal
        strength = self.strength(view.hand)

        if view.to_call == 0:
            if ActionType.BET in legal and strength > 0.6:
                return Decision(ActionType.BET, max(1, min(self.bet_size, view.max_wager)))
            if ActionType.CHECK in legal:
                return Decision(ActionType.CHECK)
            return Decision(ActionType.FOLD)

        pot_odds = view.to_call / (view.pot + view.to_call)
        if strength > pot_odds + self.margin:
            if ActionType.RAISE in legal and strength > 0.8:
                return Decision(ActionType.RAISE, max(1, min(self.raise_size, view.max_wager)))
            if ActionType.CALL in legal:
                return Decision(ActionType.CALL)
        return Decision(ActionType.FOLD)

    def choose_discard(self, hand: Sequence[Card], rng: random.Random, max_discards: int = 3) -> List[int]:
        """Monte Carlo over every discard set of size <= max_discards; best average score wins."""
        unknown = [card for card in full_deck() if card not in hand]
        best: List[int] = []
        best_score = score_hand(rank(hand))

        for size in range(1, max_discards + 1):
            for discard in itertools.combinations(range(len(hand)), size):
                if self.discard_simulations <= 0:
                    break
                kept = [card for idx, card in enumerate(hand) if idx not in discard]
                total = 0.0
                for _ in range(self.discard_simulations):
                    drawn = rng.sample(unknown, size)
                    total += score_hand(rank(kept + drawn))
                average = total / self.discard_simulations
                if average > best_score:
                    best_score = average
                    best = list(discard)
        return best
