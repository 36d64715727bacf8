#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import websockets

logging.basicConfig(level=logging.INFO)

# ManualClient plays a parlor session from the terminal.

HELP = """Commands:
  d                 deal a new hand (ante up)
  c / b / r / f     check or call / bet / raise / fold (bet and raise use the default size)
  b N / r N         bet or raise by N
  x 0 2 4           discard cards by index (x alone stands pat)
  s                 show the showdown result
  e                 start ESP training
  g I J             guess that hand1[I] is linked to hand2[J]
  q                 exit ESP training
  rebuy             restore your sanity after game over
  ?                 refresh state
  teardown          end the session for good"""


@dataclass
class View:
    phase: str = "ante"
    pot: int = 0
    legal: List[str] = field(default_factory=list)
    to_call: int = 0
    esp: Optional[Dict[str, Any]] = None


class ManualClient:
    def __init__(self, url: str, session_id: Optional[str], bet_size: int, name: Optional[str] = None) -> None:
        self.url = url
        self.name = name
        self.session_id = session_id
        self.bet_size = bet_size
        self.view = View()

    async def run(self) -> None:
        async with websockets.connect(self.url) as ws:
            hello: Dict[str, Any] = {"type": "hello", "v": 1}
            if self.session_id:
                hello["session_id"] = self.session_id
            if self.name:
                hello["name"] = self.name
            await ws.send(json.dumps(hello))
            async for raw in ws:
                msg = json.loads(raw)
                self._print_message(msg)
                if msg.get("type") == "bye":
                    break
                if msg.get("type") in {"state", "error"}:
                    intent = await asyncio.to_thread(self._prompt)
                    await ws.send(json.dumps({"type": "intent", "v": 1, **intent}))

    def _prompt(self) -> Dict[str, Any]:
        while True:
            hint = "/".join(self.view.legal) if self.view.legal else self.view.phase
            choice = input(f"[{hint}] (h=help): ").strip().lower()
            intent = self._parse(choice)
            if intent is not None:
                return intent

    def _parse(self, choice: str) -> Optional[Dict[str, Any]]:
        parts = choice.split()
        if not parts or parts[0] == "h":
            print(HELP)
            return None
        head, rest = parts[0], parts[1:]
        try:
            numbers = [int(part) for part in rest]
        except ValueError:
            print("Arguments must be integers")
            return None

        if head == "d":
            return {"intent": "deal"}
        if head == "c":
            return {"intent": "action", "action": "call" if "call" in self.view.legal else "check"}
        if head in {"b", "r"}:
            amount = numbers[0] if numbers else self.bet_size
            return {"intent": "action", "action": "bet" if head == "b" else "raise", "amount": amount}
        if head == "f":
            return {"intent": "action", "action": "fold"}
        if head == "x":
            return {"intent": "discard", "indices": numbers}
        if head == "s":
            return {"intent": "showdown"}
        if head == "e":
            return {"intent": "esp_start"}
        if head == "g":
            if len(numbers) != 2:
                print("Guess needs two indices")
                return None
            return {"intent": "esp_guess", "index1": numbers[0], "index2": numbers[1]}
        if head == "q":
            return {"intent": "esp_exit"}
        if head in {"rebuy", "teardown"}:
            return {"intent": head}
        if head == "?":
            return {"intent": "state"}
        print("Unknown command")
        return None

    def _print_message(self, msg: Dict[str, Any]) -> None:
        msg_type = msg.get("type", "?")
        if msg_type == "welcome":
            self.session_id = msg.get("session_id")
            print(f"Session {self.session_id} (pass --session to resume)")
        elif msg_type == "chat":
            print(f"  {msg.get('sender')}: {msg.get('text')}")
        elif msg_type == "error":
            print(f"Error {msg.get('code')}: {msg.get('msg')}")
            if msg.get("state"):
                self._render(msg["state"])
        elif msg_type == "state":
            print(f"\n>>> {msg.get('narration')}")
            if "result" in msg:
                print(f"Result: {msg['result'].get('message')}")
            self._render(msg.get("state", {}))
        elif msg_type == "bye":
            print("Session closed.")
        else:
            print(json.dumps(msg, indent=2))

    def _render(self, state: Dict[str, Any]) -> None:
        self.view = View(
            phase=state.get("phase", "ante"),
            pot=state.get("pot", 0),
            legal=list(state.get("legal", [])),
            to_call=state.get("to_call", 0),
            esp=state.get("esp"),
        )
        print(f"Phase {self.view.phase} | Pot {self.view.pot} | Current bet {state.get('current_bet', 0)}")
        for player in state.get("players", []):
            if player.get("hand"):
                hand = " ".join(player["hand"])
            else:
                hand = "[hidden]" if player.get("hand_size") else ""
            status = " (folded)" if player.get("folded") else ""
            print(f"  {player['name']}: sanity={player['sanity']} in={player['contributed']} {hand}{status}")
        if self.view.legal:
            print(f"Legal: {self.view.legal} | to_call={self.view.to_call} | max={state.get('max_wager')}")
        esp = self.view.esp
        if esp:
            print(f"ESP [{esp['theme']}] {esp['seconds_left']:.0f}s left, guesses={esp['guesses_used']}")
            print("  hand1: " + "  ".join(f"{i}:{card}" for i, card in enumerate(esp["hand1"])))
            print("  hand2: " + "  ".join(f"{i}:{card}" for i, card in enumerate(esp["hand2"])))


def main() -> None:
    parser = argparse.ArgumentParser(description="Terminal client for the Card Shoggoths parlor")
    parser.add_argument("--url", default="ws://localhost:8080")
    parser.add_argument("--session", default=None, help="Resume an existing session id")
    parser.add_argument("--bet-size", type=int, default=10)
    parser.add_argument("--name", default=None, help="Display name for a new session")
    args = parser.parse_args()
    try:
        asyncio.run(ManualClient(args.url, args.session, args.bet_size, args.name).run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
