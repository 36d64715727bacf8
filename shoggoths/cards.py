from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import ExhaustedDeck

RANKS = ("2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K", "A")
SUITS = ("♣", "♦", "♥", "♠")
RANK_VALUE = {rank: idx for idx, rank in enumerate(RANKS, start=2)}

_SUIT_ALIASES = {"c": "♣", "d": "♦", "h": "♥", "s": "♠"}


@dataclass(frozen=True)
class Card:
    rank: str
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in RANKS:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}")

    @property
    def value(self) -> int:
        return RANK_VALUE[self.rank]

    @property
    def label(self) -> str:
        return f"{self.rank}{self.suit}"

    def to_dict(self) -> Dict[str, str]:
        return {"rank": self.rank, "suit": self.suit}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "Card":
        return cls(data["rank"], data["suit"])


def full_deck(ranks: Iterable[str] = RANKS) -> List[Card]:
    return [Card(rank, suit) for suit in SUITS for rank in ranks]


class Deck:
    """Shuffled card source; cards leave it only through deal()."""

    def __init__(self, cards: Optional[Sequence[Card]] = None, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()
        self.cards: List[Card] = list(cards) if cards is not None else full_deck()

    @classmethod
    def shuffled(cls, rng: random.Random, ranks: Iterable[str] = RANKS) -> "Deck":
        deck = cls(full_deck(ranks), rng)
        deck.shuffle()
        return deck

    def shuffle(self) -> None:
        self.rng.shuffle(self.cards)

    def deal(self, count: int) -> List[Card]:
        if count < 0:
            raise ValueError("count must be non-negative")
        if len(self.cards) < count:
            raise ExhaustedDeck(f"Cannot deal {count} cards, {len(self.cards)} left in deck")
        cards = self.cards[:count]
        del self.cards[:count]
        return cards

    def __len__(self) -> int:
        return len(self.cards)


def cards_to_labels(cards: Iterable[Card]) -> List[str]:
    return [card.label for card in cards]


def parse_label(label: str) -> Card:
    text = label.strip()
    if len(text) < 2:
        raise ValueError(f"Invalid card label: {label}")
    rank, suit = text[:-1].upper(), text[-1]
    if rank == "T":
        rank = "10"
    return Card(rank, _SUIT_ALIASES.get(suit.lower(), suit))


def parse_cards(labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
