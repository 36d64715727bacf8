from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional, Tuple

from .cards import RANKS, SUITS, Deck
from .errors import DeadlineExpired, IllegalIndex, IllegalPhase, NoActiveESP
from .models import BETWEEN_HANDS, HUMAN, ESPRound, Narration, Phase, Seat, SessionConfig

LOGGER = logging.getLogger("shoggoths.esp")

# Each theme restricts the ESP deck to a handful of ranks, so same-rank
# decoys are common and only the hidden link counts as a match.
THEMES: Dict[str, Tuple[str, ...]] = {
    "primes": ("2", "3", "5", "7"),
    "faces": ("J", "Q", "K", "A"),
    "odds": ("3", "5", "7", "9", "J", "K"),
    "evens": ("2", "4", "6", "8", "10", "Q"),
}

THEME_MESSAGES = {
    "primes": "The primes align... 2, 3, 5, 7...",
    "faces": "Royal visions emerge...",
    "odds": "Odd energies swirl...",
    "evens": "Even patterns crystallize...",
    "void": "The void stirs...",
}


class ESPEngine:
    """Timed matching challenge played between hands. Wall-clock deadlines are authoritative."""

    def __init__(self, config: SessionConfig, seats: List[Seat]) -> None:
        self.config = config
        self.seats = seats
        self.active: Optional[ESPRound] = None
        # Set when the last round ended by timeout, so a late guess still reads as expired.
        self.expired = False

    def start(self, phase: Phase, now: float, rng: random.Random) -> Narration:
        if self.active is not None:
            raise IllegalPhase("ESP training is already underway")
        if phase not in BETWEEN_HANDS:
            raise IllegalPhase("The spirits are occupied. Complete your current hand first.")

        size = self.config.esp_hand_size
        themes = sorted(name for name, ranks in THEMES.items() if len(ranks) * len(SUITS) >= 2 * size)
        if themes:
            theme = rng.choice(themes)
            deck = Deck.shuffled(rng, THEMES[theme])
        else:
            theme = "void"
            deck = Deck.shuffled(rng, RANKS)

        hand1 = deck.deal(size)
        hand2 = deck.deal(size)
        link = (rng.randrange(size), rng.randrange(size))
        self.active = ESPRound(
            hand1=hand1,
            hand2=hand2,
            link=link,
            deadline=now + self.config.esp_seconds,
            theme=theme,
        )
        self.expired = False
        LOGGER.debug("ESP started theme=%s link=%s deadline=%.3f", theme, link, self.active.deadline)

        narration = Narration()
        narration.say(f"{THEME_MESSAGES[theme]} Find the matching cards!", "esp_start")
        return narration

    def guess(self, index1: int, index2: int, now: float) -> Tuple[bool, Narration]:
        timeout = self.expire(now)
        if timeout is not None or (self.active is None and self.expired):
            raise DeadlineExpired("The vision has already faded.")
        if self.active is None:
            raise NoActiveESP("Not in ESP mode")

        esp = self.active
        size = len(esp.hand1)
        for idx in (index1, index2):
            if not isinstance(idx, int) or isinstance(idx, bool) or not 0 <= idx < size:
                raise IllegalIndex("Invalid card selection")

        narration = Narration()
        human = self.seats[HUMAN]
        if (index1, index2) == esp.link:
            reward = self.config.esp_reward
            human.sanity += reward
            self.active = None
            narration.say(f"Your mind pierces the veil! +{reward} Sanity", "esp_success")
            return True, narration

        esp.guesses_used += 1
        penalty = self.config.esp_miss_penalty
        if not penalty:
            narration.say("The cards blur... Try again.", "esp_fail")
            return False, narration
        human.sanity = max(0, human.sanity - penalty)
        if human.sanity <= 0:
            self.active = None
            narration.say("The visions consumed you. Game Over.", "esp_fail")
        else:
            narration.say(f"The cards blur... -{penalty} Sanity. Try again.", "esp_fail")
        return False, narration

    def exit(self, now: float) -> Narration:
        timeout = self.expire(now)
        if timeout is not None:
            return timeout
        narration = Narration()
        if self.active is None:
            if not self.expired:
                raise NoActiveESP("Not in ESP mode")
            narration.say("The vision has already faded.")
            return narration
        self.active = None
        narration.say("You close your third eye.")
        return narration

    def expire(self, now: float) -> Optional[Narration]:
        """Apply the timeout outcome once if the deadline has passed."""
        esp = self.active
        if esp is None or now < esp.deadline:
            return None
        # Clear the marker before touching sanity so the penalty can only land once.
        self.active = None
        self.expired = True
        human = self.seats[HUMAN]
        penalty = self.config.esp_timeout_penalty
        human.sanity = max(0, human.sanity - penalty)
        LOGGER.info("ESP timed out after %s guesses; sanity now %s", esp.guesses_used, human.sanity)
        narration = Narration()
        if human.sanity <= 0:
            narration.say("Time has run out. The visions consumed you. Game Over.", "esp_fail")
        else:
            narration.say(f"Time has run out. The vision fades... -{penalty} Sanity.", "esp_fail")
        return narration

    def seconds_left(self, now: float) -> Optional[float]:
        if self.active is None:
            return None
        return max(0.0, self.active.deadline - now)

    def to_dict(self) -> Dict[str, object]:
        return {"active": self.active.to_dict() if self.active else None, "expired": self.expired}

    def load(self, data: Dict[str, object]) -> None:
        active = data.get("active")
        self.active = ESPRound.from_dict(active) if active else None  # type: ignore[arg-type]
        self.expired = bool(data.get("expired", False))
