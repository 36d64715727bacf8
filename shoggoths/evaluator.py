from __future__ import annotations

from collections import Counter
from enum import IntEnum
from typing import NamedTuple, Optional, Sequence, Tuple

from .cards import Card


class Category(IntEnum):
    HIGH_CARD = 0
    ONE_PAIR = 1
    TWO_PAIR = 2
    THREE_OF_A_KIND = 3
    STRAIGHT = 4
    FLUSH = 5
    FULL_HOUSE = 6
    FOUR_OF_A_KIND = 7
    STRAIGHT_FLUSH = 8


class HandRank(NamedTuple):
    category: Category
    tiebreak: Tuple[int, ...]


_NAMES = {
    Category.HIGH_CARD: "High Card",
    Category.ONE_PAIR: "One Pair",
    Category.TWO_PAIR: "Two Pair",
    Category.THREE_OF_A_KIND: "Three of a Kind",
    Category.STRAIGHT: "Straight",
    Category.FLUSH: "Flush",
    Category.FULL_HOUSE: "Full House",
    Category.FOUR_OF_A_KIND: "Four of a Kind",
    Category.STRAIGHT_FLUSH: "Straight Flush",
}


def rank(hand: Sequence[Card]) -> HandRank:
    """Rank a five-card hand. HandRank values compare as plain tuples; higher is better."""
    if len(hand) != 5:
        raise ValueError(f"Expected 5 cards, got {len(hand)}")
    if len(set(hand)) != 5:
        raise ValueError("Hand contains duplicate cards")

    values = sorted((card.value for card in hand), reverse=True)
    is_flush = len({card.suit for card in hand}) == 1
    straight_high = _straight_high(values)

    counts = Counter(values)
    # Groups ordered by size, then rank: e.g. full house -> [(K,3), (4,2)].
    groups = sorted(counts.items(), key=lambda item: (item[1], item[0]), reverse=True)
    shape = [count for _, count in groups]
    by_group = tuple(value for value, _ in groups)

    if straight_high and is_flush:
        return HandRank(Category.STRAIGHT_FLUSH, (straight_high,))
    if shape[0] == 4:
        return HandRank(Category.FOUR_OF_A_KIND, by_group)
    if shape == [3, 2]:
        return HandRank(Category.FULL_HOUSE, by_group)
    if is_flush:
        return HandRank(Category.FLUSH, tuple(values))
    if straight_high:
        return HandRank(Category.STRAIGHT, (straight_high,))
    if shape[0] == 3:
        return HandRank(Category.THREE_OF_A_KIND, by_group)
    if shape[:2] == [2, 2]:
        return HandRank(Category.TWO_PAIR, by_group)
    if shape[0] == 2:
        return HandRank(Category.ONE_PAIR, by_group)
    return HandRank(Category.HIGH_CARD, tuple(values))


def _straight_high(values: Sequence[int]) -> Optional[int]:
    distinct = sorted(set(values))
    if len(distinct) != 5:
        return None
    if distinct[-1] - distinct[0] == 4:
        return distinct[-1]
    if distinct == [2, 3, 4, 5, 14]:  # wheel: ace plays low
        return 5
    return None


def compare(hand_a: Sequence[Card], hand_b: Sequence[Card]) -> int:
    """1 if hand_a wins, -1 if hand_b wins, 0 for a split."""
    rank_a, rank_b = rank(hand_a), rank(hand_b)
    if rank_a > rank_b:
        return 1
    if rank_a < rank_b:
        return -1
    return 0


def describe(hand_rank: HandRank) -> str:
    if hand_rank.category == Category.STRAIGHT_FLUSH and hand_rank.tiebreak[0] == 14:
        return "Royal Flush"
    return _NAMES[hand_rank.category]
