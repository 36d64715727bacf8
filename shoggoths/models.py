from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .cards import Card

HUMAN = 0
OPPONENT = 1


class Phase(str, Enum):
    ANTE = "ante"
    BET_PRE = "bet_pre"
    DISCARD = "discard"
    BET_POST = "bet_post"
    SHOWDOWN = "showdown"
    COMPLETE = "complete"
    GAME_OVER = "game_over"


BETTING_PHASES = (Phase.BET_PRE, Phase.BET_POST)
BETWEEN_HANDS = (Phase.ANTE, Phase.COMPLETE, Phase.GAME_OVER)


class ActionType(str, Enum):
    CHECK = "check"
    BET = "bet"
    CALL = "call"
    RAISE = "raise"
    FOLD = "fold"


@dataclass
class SessionConfig:
    ante: int = 10
    starting_sanity: int = 100
    reveal_on_fold: bool = True
    opponent_regenerates: bool = True
    max_discards: int = 3
    esp_hand_size: int = 5
    esp_seconds: float = 15.0
    esp_reward: int = 15
    esp_miss_penalty: int = 0
    esp_timeout_penalty: int = 10
    courage: float = 1.2
    bet_size: int = 20
    raise_size: int = 20
    discard_simulations: int = 100
    human_name: str = "You"
    opponent_name: str = "The Ancient One"

    def validate(self) -> None:
        if self.ante <= 0:
            raise ValueError("ante must be positive")
        if self.starting_sanity <= 0:
            raise ValueError("starting_sanity must be positive")
        if not 1 <= self.esp_hand_size <= 26:
            raise ValueError("esp_hand_size must be between 1 and 26")
        if not 0 <= self.max_discards <= 5:
            raise ValueError("max_discards must be between 0 and 5")
        if self.esp_seconds <= 0:
            raise ValueError("esp_seconds must be positive")
        for name in ("esp_reward", "esp_miss_penalty", "esp_timeout_penalty", "discard_simulations"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.bet_size <= 0 or self.raise_size <= 0:
            raise ValueError("bet_size and raise_size must be positive")

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "SessionConfig":
        known = {key: value for key, value in data.items() if key in cls.__dataclass_fields__}
        return cls(**known)  # type: ignore[arg-type]


@dataclass
class Seat:
    # Identity plus the seat's sanity pool; survives across rounds.
    name: str
    is_human: bool
    sanity: int

    def to_dict(self) -> Dict[str, object]:
        return {"name": self.name, "is_human": self.is_human, "sanity": self.sanity}

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Seat":
        return cls(name=str(data["name"]), is_human=bool(data["is_human"]), sanity=int(data["sanity"]))  # type: ignore[arg-type]


@dataclass
class RoundState:
    hand: List[Card] = field(default_factory=list)
    contributed: int = 0
    has_discarded: bool = False
    folded: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "hand": [card.to_dict() for card in self.hand],
            "contributed": self.contributed,
            "has_discarded": self.has_discarded,
            "folded": self.folded,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "RoundState":
        return cls(
            hand=[Card.from_dict(card) for card in data["hand"]],  # type: ignore[union-attr]
            contributed=int(data["contributed"]),  # type: ignore[arg-type]
            has_discarded=bool(data["has_discarded"]),
            folded=bool(data["folded"]),
        )


@dataclass
class PotState:
    pot: int = 0
    current_bet: int = 0


@dataclass
class Settlement:
    winner: Optional[int]
    payouts: List[int]
    hand_names: List[Optional[str]]
    message: str
    by_fold: bool = False

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Settlement":
        return cls(**data)  # type: ignore[arg-type]


@dataclass
class ESPRound:
    hand1: List[Card]
    hand2: List[Card]
    link: Tuple[int, int]
    deadline: float
    theme: str = "void"
    guesses_used: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "hand1": [card.to_dict() for card in self.hand1],
            "hand2": [card.to_dict() for card in self.hand2],
            "link": list(self.link),
            "deadline": self.deadline,
            "theme": self.theme,
            "guesses_used": self.guesses_used,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "ESPRound":
        link = data["link"]
        return cls(
            hand1=[Card.from_dict(card) for card in data["hand1"]],  # type: ignore[union-attr]
            hand2=[Card.from_dict(card) for card in data["hand2"]],  # type: ignore[union-attr]
            link=(int(link[0]), int(link[1])),  # type: ignore[index]
            deadline=float(data["deadline"]),  # type: ignore[arg-type]
            theme=str(data.get("theme", "void")),
            guesses_used=int(data.get("guesses_used", 0)),  # type: ignore[arg-type]
        )


@dataclass
class Narration:
    # Display lines, chat situations and raw events gathered while applying one intent.
    lines: List[str] = field(default_factory=list)
    situations: List[str] = field(default_factory=list)
    events: List[Dict[str, object]] = field(default_factory=list)

    def say(self, line: str, situation: Optional[str] = None) -> None:
        self.lines.append(line)
        if situation:
            self.situations.append(situation)

    @property
    def text(self) -> str:
        return " ".join(self.lines)
