from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import IllegalAction, InsufficientSanity
from .models import ActionType, PotState, RoundState, Seat

# BettingEngine owns legality and turn order inside one betting sub-phase.
# Phase transitions belong to the RoundEngine.


@dataclass
class BettingTurn:
    to_act: Optional[int] = None
    acted: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {"to_act": self.to_act, "acted": list(self.acted)}

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "BettingTurn":
        to_act = data.get("to_act")
        return cls(
            to_act=int(to_act) if to_act is not None else None,  # type: ignore[arg-type]
            acted=[int(seat) for seat in data.get("acted", [])],  # type: ignore[union-attr]
        )


class BettingEngine:
    """Check/bet/call/raise/fold legality for a strict two-seat table."""

    def __init__(
        self,
        seats: List[Seat],
        rounds: List[RoundState],
        pot: PotState,
        turn: Optional[BettingTurn] = None,
    ) -> None:
        self.seats = seats
        self.rounds = rounds
        self.pot = pot
        self.turn = turn or BettingTurn()

    # Sub-phase lifecycle ----------------------------------------------

    def open(self, first: int) -> None:
        self.pot.current_bet = 0
        for state in self.rounds:
            state.contributed = 0
        self.turn.acted.clear()
        self.turn.to_act = None
        if not self.is_closed():
            self.turn.to_act = first if self.can_act(first) else self._other(first)

    def is_closed(self) -> bool:
        live = self.live_seats()
        if len(live) < 2:
            return True
        matched = all(
            self.rounds[idx].contributed == self.pot.current_bet or self.seats[idx].sanity == 0 for idx in live
        )
        if not matched:
            return False
        actors = [idx for idx in live if self.seats[idx].sanity > 0]
        if len(actors) <= 1:
            return True
        return all(idx in self.turn.acted for idx in actors)

    def live_seats(self) -> List[int]:
        return [idx for idx, state in enumerate(self.rounds) if not state.folded]

    def can_act(self, seat_idx: int) -> bool:
        return not self.rounds[seat_idx].folded and self.seats[seat_idx].sanity > 0

    def to_call(self, seat_idx: int) -> int:
        return max(self.pot.current_bet - self.rounds[seat_idx].contributed, 0)

    def _other(self, seat_idx: int) -> int:
        return 1 - seat_idx

    # Legality -----------------------------------------------------------

    def legal_actions(self, seat_idx: int) -> Tuple[List[ActionType], int, int]:
        """Legal actions plus helper numbers: amount to call and the largest wager on top of it."""
        if self.turn.to_act != seat_idx:
            return [], 0, 0
        seat = self.seats[seat_idx]
        to_call = self.to_call(seat_idx)
        legal: List[ActionType] = [ActionType.FOLD]
        max_wager = 0
        opponent_live = self.can_act(self._other(seat_idx))
        if to_call == 0:
            legal.append(ActionType.CHECK)
            if self.pot.current_bet == 0 and seat.sanity > 0 and opponent_live:
                legal.append(ActionType.BET)
                max_wager = seat.sanity
        else:
            legal.append(ActionType.CALL)
            if seat.sanity > to_call and opponent_live:
                legal.append(ActionType.RAISE)
                max_wager = seat.sanity - to_call
        return legal, to_call, max_wager

    def apply(self, seat_idx: int, action: ActionType, amount: int = 0) -> List[Dict[str, object]]:
        if self.turn.to_act is None:
            raise IllegalAction("Betting is closed")
        if self.turn.to_act != seat_idx:
            raise IllegalAction("It is not your turn")
        if amount is None:
            amount = 0
        if amount < 0:
            raise IllegalAction("Amount must not be negative")

        seat = self.seats[seat_idx]
        state = self.rounds[seat_idx]
        other = self._other(seat_idx)
        events: List[Dict[str, object]] = []

        # Validate everything before the first mutation.
        if action == ActionType.FOLD:
            state.folded = True
            events.append({"ev": "FOLD", "seat": seat_idx})
        elif action == ActionType.CHECK:
            if self.pot.current_bet != state.contributed:
                raise IllegalAction("Cannot check when there is a bet to call")
            events.append({"ev": "CHECK", "seat": seat_idx})
        elif action == ActionType.BET:
            if self.pot.current_bet != 0:
                raise IllegalAction("A bet is already open; call or raise")
            if amount <= 0:
                raise IllegalAction("Bet amount must be positive")
            if amount > seat.sanity:
                raise InsufficientSanity(f"Not enough sanity. You need {amount} but have {seat.sanity}")
            if not self.can_act(other):
                raise IllegalAction("Opponent is all-in")
            self._commit(seat_idx, amount)
            self.pot.current_bet = state.contributed
            events.append({"ev": "BET", "seat": seat_idx, "amount": amount})
        elif action == ActionType.CALL:
            owed = self.pot.current_bet - state.contributed
            if owed <= 0:
                raise IllegalAction("Nothing to call, please check")
            paid = min(owed, seat.sanity)
            self._commit(seat_idx, paid)
            events.append({"ev": "CALL", "seat": seat_idx, "amount": paid, "all_in": seat.sanity == 0})
            if state.contributed < self.pot.current_bet:
                events.append(self._return_uncalled(other, self.pot.current_bet - state.contributed))
        elif action == ActionType.RAISE:
            owed = self.pot.current_bet - state.contributed
            if owed <= 0:
                raise IllegalAction("Nothing to raise; bet instead")
            if amount <= 0:
                raise IllegalAction("Raise amount must be positive")
            if owed + amount > seat.sanity:
                raise InsufficientSanity(f"Not enough sanity. You need {owed + amount} but have {seat.sanity}")
            if not self.can_act(other):
                raise IllegalAction("Opponent is all-in")
            self._commit(seat_idx, owed + amount)
            self.pot.current_bet = state.contributed
            events.append({"ev": "RAISE", "seat": seat_idx, "amount": amount, "total": state.contributed})
        else:
            raise IllegalAction(f"Unsupported action {action}")

        if seat_idx not in self.turn.acted:
            self.turn.acted.append(seat_idx)
        # A raise reopens the action for the other seat.
        if action in (ActionType.BET, ActionType.RAISE) and other in self.turn.acted:
            self.turn.acted.remove(other)

        if self.is_closed():
            self.turn.to_act = None
        elif self.can_act(other):
            self.turn.to_act = other
        else:
            self.turn.to_act = seat_idx if self.can_act(seat_idx) else None
        return events

    def _commit(self, seat_idx: int, amount: int) -> None:
        seat = self.seats[seat_idx]
        amount = min(amount, seat.sanity)
        seat.sanity -= amount
        self.rounds[seat_idx].contributed += amount
        self.pot.pot += amount

    def _return_uncalled(self, seat_idx: int, amount: int) -> Dict[str, object]:
        # No side pots with two seats: the part of a bet nobody could call goes back.
        self.seats[seat_idx].sanity += amount
        self.rounds[seat_idx].contributed -= amount
        self.pot.pot -= amount
        self.pot.current_bet = self.rounds[seat_idx].contributed
        return {"ev": "RETURN", "seat": seat_idx, "amount": amount}
