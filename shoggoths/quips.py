"""Lines the Ancient One speaks, keyed by the situation the engine reports."""

from __future__ import annotations

import random
from typing import Dict, Optional, Tuple

QUIPS: Dict[str, Tuple[str, ...]] = {
    "deal": (
        "*shuffles cards with tentacles*",
        "The cards whisper secrets...",
        "Fate is dealt anew.",
        "Let us see what the void reveals.",
        "*eyes glow faintly*",
    ),
    "player_bet": (
        "Bold... or foolish?",
        "You wager your sanity freely.",
        "*chuckles in frequencies below human hearing*",
        "The stakes... rise.",
        "Interesting.",
    ),
    "player_fold": (
        "Wisdom... or cowardice?",
        "The void notes your retreat.",
        "*nods slowly*",
        "Self-preservation. How... mortal.",
        "You yield to the inevitable.",
    ),
    "ancient_wins": (
        "Your sanity feeds me.",
        "*absorbs essence*",
        "The cosmos favors the eternal.",
        "Another fragment of your mind... mine.",
        "Delicious despair.",
    ),
    "player_wins": (
        "*hisses* Impossible...",
        "A temporary setback.",
        "You have... luck. For now.",
        "*tentacles twitch with agitation*",
        "The void is patient.",
    ),
    "idle": (
        "*clears throat in a tone that predates language*",
        "Time moves differently for immortals... but still, it moves.",
        "*taps table with appendage*",
        "Do mortals always deliberate this long?",
        "The cards grow cold waiting.",
        "*stares into your soul*",
    ),
    "esp_start": (
        "Ah, you dare peer beyond the veil?",
        "*opens third eye*",
        "The patterns of reality shimmer...",
        "Focus... if your feeble mind can.",
    ),
    "esp_success": (
        "*surprised gurgle* You... saw?",
        "The gift stirs within you.",
        "*grudging respect*",
    ),
    "esp_fail": (
        "*laughs in cosmic horror*",
        "Your third eye remains... clouded.",
        "The visions elude you.",
    ),
    "greeting": (
        "Welcome, mortal. Sit. Play. Lose your mind.",
        "Another soul seeks to challenge the void.",
        "*manifests at the table* Shall we begin?",
    ),
}

FALLBACK = "*stares inscrutably*"


def quip(situation: str, rng: Optional[random.Random] = None) -> str:
    lines = QUIPS.get(situation)
    if not lines:
        return FALLBACK
    return (rng or random).choice(lines)
