from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from .cards import cards_to_labels
from .errors import IllegalPhase
from .esp import ESPEngine
from .models import BETTING_PHASES, HUMAN, OPPONENT, ActionType, Narration, Phase, Seat, SessionConfig
from .policy import AncientOnePolicy, OpponentPolicy
from .round import RoundEngine

LOGGER = logging.getLogger("shoggoths.session")

Clock = Callable[[], float]


@dataclass
class Outcome:
    """Result of one intent: what happened, where the session now stands, and the full client view."""

    narration: str
    phase: Phase
    state: Dict[str, object]
    situations: List[str] = field(default_factory=list)
    extras: Dict[str, object] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "narration": self.narration,
            "phase": self.phase.value,
            "state": self.state,
        }
        payload.update(self.extras)
        return payload


def default_policy(config: SessionConfig) -> AncientOnePolicy:
    return AncientOnePolicy(
        courage=config.courage,
        bet_size=config.bet_size,
        raise_size=config.raise_size,
        discard_simulations=config.discard_simulations,
    )


class SessionState:
    """One human against one opponent policy. The unit that is stored and resumed."""

    def __init__(
        self,
        session_id: str,
        config: Optional[SessionConfig] = None,
        policy: Optional[OpponentPolicy] = None,
        seed: Optional[int] = None,
        clock: Clock = time.time,
    ) -> None:
        self.session_id = session_id
        self.config = config or SessionConfig()
        self.config.validate()
        self.policy = policy or default_policy(self.config)
        self.clock = clock
        self.rng = random.Random(seed)
        self.seats: List[Seat] = [
            Seat(name=self.config.human_name, is_human=True, sanity=self.config.starting_sanity),
            Seat(name=self.config.opponent_name, is_human=False, sanity=self.config.starting_sanity),
        ]
        self.round = RoundEngine(self.config, self.seats, self.policy)
        self.esp = ESPEngine(self.config, self.seats)
        self.last_action = "Game started. Ante up!"

    @property
    def phase(self) -> Phase:
        return self.round.phase

    # Round intents ---------------------------------------------------------

    def start_round(self) -> Outcome:
        pending = self._touch()
        self._require_no_esp()
        narration = self.round.deal(self.rng.getrandbits(32))
        LOGGER.debug("Session %s dealt round %s", self.session_id, self.round.round_id)
        return self._outcome(pending, narration)

    def submit_action(self, action: ActionType, amount: int = 0) -> Outcome:
        pending = self._touch()
        self._require_no_esp()
        narration = self.round.act(HUMAN, ActionType(action), amount)
        return self._outcome(pending, narration)

    def submit_discard(self, indices: Iterable[int]) -> Outcome:
        pending = self._touch()
        self._require_no_esp()
        narration = self.round.discard(HUMAN, indices)
        return self._outcome(pending, narration)

    def resolve_showdown(self) -> Outcome:
        pending = self._touch()
        settlement = self.round.settlement
        if settlement is None or self.phase not in (Phase.COMPLETE, Phase.GAME_OVER):
            raise IllegalPhase("Cannot showdown now")
        narration = Narration()
        narration.say(settlement.message)
        return self._outcome(pending, narration, result=settlement.to_dict())

    def rebuy(self) -> Outcome:
        pending = self._touch()
        self._require_no_esp()
        if self.phase != Phase.GAME_OVER:
            raise IllegalPhase("Rebuy is only possible after game over")
        for seat in self.seats:
            seat.sanity = self.config.starting_sanity
        self.round.phase = Phase.ANTE
        self.round.settlement = None
        narration = Narration()
        narration.say("Your mind is restored. Ante up!", "greeting")
        LOGGER.info("Session %s rebuy", self.session_id)
        return self._outcome(pending, narration)

    # ESP intents -------------------------------------------------------------

    def start_esp(self) -> Outcome:
        pending = self._touch()
        narration = self.esp.start(self.phase, self.clock(), self.rng)
        return self._outcome(pending, narration)

    def guess_esp(self, index1: int, index2: int) -> Outcome:
        pending = self._touch()
        correct, narration = self.esp.guess(index1, index2, self.clock())
        self._after_esp()
        return self._outcome(pending, narration, correct=correct)

    def exit_esp(self) -> Outcome:
        pending = self._touch()
        narration = self.esp.exit(self.clock())
        self._after_esp()
        return self._outcome(pending, narration)

    # Reads and sweeps ----------------------------------------------------------

    def fetch_state(self) -> Outcome:
        pending = self._touch()
        if not pending.lines:
            pending.say(self.last_action)
        return self._outcome(Narration(), pending, record=False)

    def sweep(self, now: Optional[float] = None) -> Optional[Outcome]:
        """Convert an expired ESP round into its timeout outcome. None when nothing was due."""
        narration = self.esp.expire(self.clock() if now is None else now)
        if narration is None:
            return None
        self._after_esp()
        return self._outcome(Narration(), narration)

    # Internals -------------------------------------------------------------------

    def _touch(self) -> Narration:
        # Lazy deadline check. A timeout found here stands even if the intent itself is rejected.
        narration = self.esp.expire(self.clock()) or Narration()
        if narration.lines:
            self._after_esp()
            self.last_action = narration.text
        return narration

    def _require_no_esp(self) -> None:
        if self.esp.active is not None:
            raise IllegalPhase("Finish or exit ESP training first")
        self.esp.expired = False

    def _after_esp(self) -> None:
        if self.esp.active is None and self.seats[HUMAN].sanity <= 0:
            self.round.phase = Phase.GAME_OVER
            LOGGER.info("Session %s game over during ESP", self.session_id)

    def _outcome(self, pending: Narration, narration: Narration, record: bool = True, **extras: object) -> Outcome:
        text = " ".join(pending.lines + narration.lines)
        if record:
            self.last_action = text
        return Outcome(
            narration=text,
            phase=self.phase,
            state=self.snapshot(),
            situations=pending.situations + narration.situations,
            extras=dict(extras),
        )

    # Views ---------------------------------------------------------------------

    def snapshot(self) -> Dict[str, object]:
        """Client view. The opponent's cards stay hidden until revealed and the ESP link never leaves."""
        rnd = self.round
        players = []
        for idx, (seat, state) in enumerate(zip(self.seats, rnd.rounds)):
            visible = seat.is_human or rnd.revealed
            players.append(
                {
                    "name": seat.name,
                    "is_human": seat.is_human,
                    "sanity": seat.sanity,
                    "contributed": state.contributed,
                    "folded": state.folded,
                    "has_discarded": state.has_discarded,
                    "hand": cards_to_labels(state.hand) if visible else None,
                    "hand_size": len(state.hand),
                }
            )

        to_act = rnd.turn.to_act if rnd.phase in BETTING_PHASES else None
        payload: Dict[str, object] = {
            "session_id": self.session_id,
            "phase": rnd.phase.value,
            "round_id": rnd.round_id,
            "pot": rnd.pot.pot,
            "current_bet": rnd.pot.current_bet,
            "to_act": {HUMAN: "player", OPPONENT: "opponent"}.get(to_act) if to_act is not None else None,
            "players": players,
            "last_action": self.last_action,
            "settlement": rnd.settlement.to_dict() if rnd.settlement else None,
            "esp": self._esp_view(),
        }
        if to_act == HUMAN:
            legal, to_call, max_wager = rnd.betting.legal_actions(HUMAN)
            payload["legal"] = [action.value for action in legal]
            payload["to_call"] = to_call
            payload["max_wager"] = max_wager
        return payload

    def _esp_view(self) -> Optional[Dict[str, object]]:
        esp = self.esp.active
        if esp is None:
            return None
        return {
            "theme": esp.theme,
            "hand1": cards_to_labels(esp.hand1),
            "hand2": cards_to_labels(esp.hand2),
            "guesses_used": esp.guesses_used,
            "deadline": esp.deadline,
            "seconds_left": self.esp.seconds_left(self.clock()),
        }

    # Persistence -----------------------------------------------------------------

    def to_dict(self) -> Dict[str, object]:
        version, internal, gauss = self.rng.getstate()
        return {
            "session_id": self.session_id,
            "config": self.config.to_dict(),
            "seats": [seat.to_dict() for seat in self.seats],
            "round": self.round.to_dict(),
            "esp": self.esp.to_dict(),
            "last_action": self.last_action,
            "rng": [version, list(internal), gauss],
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, object],
        policy: Optional[OpponentPolicy] = None,
        clock: Clock = time.time,
    ) -> "SessionState":
        config = SessionConfig.from_dict(data["config"])  # type: ignore[arg-type]
        session = cls(str(data["session_id"]), config=config, policy=policy, clock=clock)
        for seat, raw in zip(session.seats, data["seats"]):  # type: ignore[arg-type]
            loaded = Seat.from_dict(raw)
            seat.name, seat.is_human, seat.sanity = loaded.name, loaded.is_human, loaded.sanity
        session.round.load(data["round"])  # type: ignore[arg-type]
        session.esp.load(data["esp"])  # type: ignore[arg-type]
        session.last_action = str(data.get("last_action", ""))
        rng_state = data.get("rng")
        if rng_state:
            version, internal, gauss = rng_state  # type: ignore[misc]
            session.rng.setstate((version, tuple(internal), gauss))
        return session
