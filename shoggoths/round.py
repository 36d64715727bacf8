from __future__ import annotations

import logging
import random
from typing import Dict, Iterable, List, Optional

from . import evaluator
from .betting import BettingEngine, BettingTurn
from .cards import Card, Deck
from .errors import IllegalIndex, IllegalPhase
from .models import (
    BETTING_PHASES,
    HUMAN,
    OPPONENT,
    ActionType,
    Narration,
    Phase,
    PotState,
    RoundState,
    Seat,
    SessionConfig,
    Settlement,
)
from .policy import OpponentPolicy, PolicyView

LOGGER = logging.getLogger("shoggoths.round")

HAND_SIZE = 5

# RoundEngine runs one hand of five-card draw:
# ante -> bet_pre -> discard -> bet_post -> showdown -> complete.
# The opponent seat is driven by the policy whenever it is its turn.


class RoundEngine:
    def __init__(self, config: SessionConfig, seats: List[Seat], policy: OpponentPolicy) -> None:
        self.config = config
        self.seats = seats
        self.policy = policy
        self.phase = Phase.ANTE
        self.round_id = 0
        self.seed = 0
        self.deck = Deck([])
        self.rounds: List[RoundState] = [RoundState() for _ in seats]
        self.pot = PotState()
        self.turn = BettingTurn()
        self.settlement: Optional[Settlement] = None
        self.revealed = False

    @property
    def betting(self) -> BettingEngine:
        return BettingEngine(self.seats, self.rounds, self.pot, self.turn)

    # Hand lifecycle --------------------------------------------------

    def deal(self, seed: int) -> Narration:
        if self.phase not in (Phase.ANTE, Phase.COMPLETE):
            raise IllegalPhase(f"Cannot deal during {self.phase.value}")
        narration = Narration()
        human, opponent = self.seats[HUMAN], self.seats[OPPONENT]
        ante = self.config.ante

        if human.sanity < ante:
            self.phase = Phase.GAME_OVER
            narration.say("Insufficient sanity for ante. Game Over.")
            return narration

        self.round_id += 1
        self.seed = seed
        self.deck = Deck.shuffled(random.Random(seed))
        self.rounds = [RoundState() for _ in self.seats]
        self.pot = PotState()
        self.turn = BettingTurn()
        self.settlement = None
        self.revealed = False

        if opponent.sanity < ante and self.config.opponent_regenerates:
            opponent.sanity = self.config.starting_sanity
            narration.say(f"{opponent.name} regenerates its form!")

        for seat, state in zip(self.seats, self.rounds):
            paid = min(ante, seat.sanity)
            seat.sanity -= paid
            self.pot.pot += paid
            state.hand = self.deck.deal(HAND_SIZE)
        narration.say(f"Ante paid: {ante}.", "deal")
        LOGGER.debug("Round %s dealt seed=%s pot=%s", self.round_id, seed, self.pot.pot)

        self.phase = Phase.BET_PRE
        self.betting.open(HUMAN)
        self._advance(narration)
        return narration

    def act(self, seat_idx: int, action: ActionType, amount: int = 0) -> Narration:
        if self.phase not in BETTING_PHASES:
            raise IllegalPhase(f"No betting during {self.phase.value}")
        narration = Narration()
        events = self.betting.apply(seat_idx, action, amount)
        self._narrate(events, narration)
        self._advance(narration)
        return narration

    def discard(self, seat_idx: int, indices: Iterable[int]) -> Narration:
        if self.phase != Phase.DISCARD:
            raise IllegalPhase(f"Cannot discard during {self.phase.value}")
        state = self.rounds[seat_idx]
        if state.has_discarded:
            raise IllegalPhase("Cards already exchanged this round")
        chosen = self._validate_discard(list(indices))

        narration = Narration()
        self._replace(seat_idx, chosen)
        seat = self.seats[seat_idx]
        if seat.is_human:
            narration.say(f"You exchanged {len(chosen)} card{'s' if len(chosen) != 1 else ''}.")
        else:
            narration.say(f"{seat.name} exchanges {len(chosen)}.")
        self._advance(narration)
        return narration

    def _validate_discard(self, indices: List[int]) -> List[int]:
        if len(indices) != len(set(indices)):
            raise IllegalIndex("Duplicate discard index")
        if len(indices) > self.config.max_discards:
            raise IllegalIndex(f"At most {self.config.max_discards} cards may be exchanged")
        for idx in indices:
            if not isinstance(idx, int) or isinstance(idx, bool) or not 0 <= idx < HAND_SIZE:
                raise IllegalIndex(f"Discard index out of range: {idx}")
        return sorted(indices)

    def _replace(self, seat_idx: int, indices: List[int]) -> None:
        state = self.rounds[seat_idx]
        fresh = self.deck.deal(len(indices))
        for idx, card in zip(indices, fresh):
            state.hand[idx] = card
        state.has_discarded = True

    # Phase advancement -------------------------------------------------

    def _advance(self, narration: Narration) -> None:
        while True:
            folded = [idx for idx, state in enumerate(self.rounds) if state.folded]
            if folded and self.phase in BETTING_PHASES:
                self._settle_fold(folded[0], narration)
                return

            if self.phase in BETTING_PHASES:
                betting = self.betting
                if betting.is_closed():
                    self._close_betting(narration)
                    continue
                if self.turn.to_act == OPPONENT:
                    self._opponent_bets(narration)
                    continue
                return

            if self.phase == Phase.DISCARD:
                if self.rounds[HUMAN].has_discarded and not self.rounds[OPPONENT].has_discarded:
                    self._opponent_discards(narration)
                    continue
                if all(state.has_discarded for state in self.rounds):
                    self.phase = Phase.BET_POST
                    narration.say("Cards exchanged. Final betting round.")
                    self.betting.open(HUMAN)
                    continue
                return

            if self.phase == Phase.SHOWDOWN:
                self._settle_showdown(narration)
            return

    def _close_betting(self, narration: Narration) -> None:
        if self.phase == Phase.BET_PRE:
            self.phase = Phase.DISCARD
            self.pot.current_bet = 0
            for state in self.rounds:
                state.contributed = 0
            self.turn = BettingTurn()
            narration.say("Betting complete. Choose cards to discard.")
        else:
            self.phase = Phase.SHOWDOWN
            self.turn = BettingTurn()

    def _opponent_bets(self, narration: Narration) -> None:
        betting = self.betting
        legal, to_call, max_wager = betting.legal_actions(OPPONENT)
        view = PolicyView(
            hand=list(self.rounds[OPPONENT].hand),
            phase=self.phase,
            pot=self.pot.pot,
            to_call=to_call,
            sanity=self.seats[OPPONENT].sanity,
            legal=legal,
            max_wager=max_wager,
        )
        decision = self.policy.decide(view)
        LOGGER.debug("Opponent decision round=%s phase=%s decision=%s", self.round_id, self.phase.value, decision)
        events = betting.apply(OPPONENT, decision.action, decision.amount)
        self._narrate(events, narration)

    def _opponent_discards(self, narration: Narration) -> None:
        rng = random.Random(self.seed ^ 0x5EED)
        picked = self.policy.choose_discard(self.rounds[OPPONENT].hand, rng, self.config.max_discards)
        chosen = self._validate_discard(list(picked))
        self._replace(OPPONENT, chosen)
        narration.say(f"{self.seats[OPPONENT].name} exchanges {len(chosen)}.")

    # Settlement ----------------------------------------------------------

    def _settle_fold(self, folder: int, narration: Narration) -> None:
        winner = 1 - folder
        amount = self.pot.pot
        self.seats[winner].sanity += amount
        payouts = [0 for _ in self.seats]
        payouts[winner] = amount
        self.pot.pot = 0
        self.turn = BettingTurn()
        self.revealed = self.config.reveal_on_fold

        if self.seats[folder].is_human:
            message = f"You folded. {self.seats[winner].name} wins."
            narration.say(message, "player_fold")
        else:
            message = f"{self.seats[folder].name} folds. You win!"
            narration.say(message, "player_wins")
        self.settlement = Settlement(winner=winner, payouts=payouts, hand_names=[None, None], message=message, by_fold=True)
        self._finish(narration)

    def _settle_showdown(self, narration: Narration) -> None:
        human_hand = self.rounds[HUMAN].hand
        opponent_hand = self.rounds[OPPONENT].hand
        names = [evaluator.describe(evaluator.rank(human_hand)), evaluator.describe(evaluator.rank(opponent_hand))]
        result = evaluator.compare(human_hand, opponent_hand)
        opponent_name = self.seats[OPPONENT].name

        payouts = [0 for _ in self.seats]
        if result > 0:
            winner: Optional[int] = HUMAN
            payouts[HUMAN] = self.pot.pot
            message = f"You win with {names[HUMAN]}! {opponent_name} had {names[OPPONENT]}."
            situation = "player_wins"
        elif result < 0:
            winner = OPPONENT
            payouts[OPPONENT] = self.pot.pot
            message = f"{opponent_name} wins with {names[OPPONENT]}! You had {names[HUMAN]}."
            situation = "ancient_wins"
        else:
            winner = None
            share, remainder = divmod(self.pot.pot, len(self.seats))
            for idx in range(len(self.seats)):
                payouts[idx] = share + (1 if idx < remainder else 0)
            message = f"It's a tie! Both hands have {names[HUMAN]}."
            situation = None

        for seat, payout in zip(self.seats, payouts):
            seat.sanity += payout
        self.pot.pot = 0
        self.revealed = True
        narration.say(message, situation)
        self.settlement = Settlement(winner=winner, payouts=payouts, hand_names=names, message=message)
        LOGGER.info("Round %s showdown: %s", self.round_id, message)
        self._finish(narration)

    def _finish(self, narration: Narration) -> None:
        self.phase = Phase.COMPLETE
        for seat in self.seats:
            if seat.sanity <= 0:
                self.phase = Phase.GAME_OVER
                if seat.is_human:
                    narration.say("You lost everything. Game Over.")
                else:
                    narration.say(f"{seat.name} is banished to the void. Game Over.")
                break

    # Narration -----------------------------------------------------------

    def _narrate(self, events: List[Dict[str, object]], narration: Narration) -> None:
        for event in events:
            narration.events.append(event)
            seat = self.seats[int(event["seat"])]  # type: ignore[arg-type]
            kind = event["ev"]
            if kind == "FOLD":
                continue  # settlement narrates folds
            if seat.is_human:
                line = {
                    "CHECK": "You checked.",
                    "BET": f"You bet {event.get('amount')}.",
                    "CALL": "You called.",
                    "RAISE": f"You raised by {event.get('amount')}.",
                    "RETURN": f"{event.get('amount')} uncalled sanity returns to you.",
                }[kind]  # type: ignore[index]
                situation = "player_bet" if kind in ("BET", "RAISE") else None
            else:
                line = {
                    "CHECK": f"{seat.name} checks.",
                    "BET": f"{seat.name} bets {event.get('amount')}.",
                    "CALL": f"{seat.name} calls.",
                    "RAISE": f"{seat.name} raises by {event.get('amount')}.",
                    "RETURN": f"{event.get('amount')} uncalled sanity returns to {seat.name}.",
                }[kind]  # type: ignore[index]
                situation = None
            if event.get("all_in"):
                line = line[:-1] + " (all-in)."
            narration.say(line, situation)

    # Views ----------------------------------------------------------------

    def hand_of(self, seat_idx: int) -> List[Card]:
        return list(self.rounds[seat_idx].hand)

    def to_dict(self) -> Dict[str, object]:
        return {
            "phase": self.phase.value,
            "round_id": self.round_id,
            "seed": self.seed,
            "deck": [card.to_dict() for card in self.deck.cards],
            "rounds": [state.to_dict() for state in self.rounds],
            "pot": self.pot.pot,
            "current_bet": self.pot.current_bet,
            "turn": self.turn.to_dict(),
            "settlement": self.settlement.to_dict() if self.settlement else None,
            "revealed": self.revealed,
        }

    def load(self, data: Dict[str, object]) -> None:
        self.phase = Phase(data["phase"])
        self.round_id = int(data["round_id"])  # type: ignore[arg-type]
        self.seed = int(data["seed"])  # type: ignore[arg-type]
        self.deck = Deck([Card.from_dict(card) for card in data["deck"]])  # type: ignore[union-attr]
        self.rounds = [RoundState.from_dict(state) for state in data["rounds"]]  # type: ignore[union-attr]
        self.pot = PotState(pot=int(data["pot"]), current_bet=int(data["current_bet"]))  # type: ignore[arg-type]
        self.turn = BettingTurn.from_dict(data["turn"])  # type: ignore[arg-type]
        settlement = data.get("settlement")
        self.settlement = Settlement.from_dict(settlement) if settlement else None  # type: ignore[arg-type]
        self.revealed = bool(data.get("revealed", False))
