from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import random
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

import websockets

from shoggoths.errors import ExhaustedDeck, GameError
from shoggoths.models import HUMAN, ActionType, SessionConfig
from shoggoths.quips import quip
from shoggoths.session import Outcome, SessionState
from shoggoths.store import MemorySessionStore, SessionStore

LOGGER = logging.getLogger("shoggoths_host")

# HostServer glues SessionState to WebSocket clients. Every network concern
# lives here; the engine stays pure and synchronous.


@dataclass
class SessionSlot:
    session: SessionState
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    sockets: Set[Any] = field(default_factory=set)
    chat: "asyncio.Queue[Dict[str, object]]" = field(default_factory=asyncio.Queue)
    chat_task: Optional[asyncio.Task] = None
    last_seen: float = field(default_factory=time.time)
    idle_quipped: bool = False


class HostServer:
    def __init__(
        self,
        config: SessionConfig,
        store: Optional[SessionStore] = None,
        sweep_interval: float = 1.0,
        idle_ttl: float = 3600.0,
        session_ttl: float = 7 * 24 * 3600.0,
        idle_quip_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        config.validate()
        self.config = config
        self.store: SessionStore = store if store is not None else MemorySessionStore()
        self.sweep_interval = sweep_interval
        self.idle_ttl = idle_ttl
        self.session_ttl = session_ttl
        self.idle_quip_seconds = idle_quip_seconds
        self.clock = clock
        self.slots: Dict[str, SessionSlot] = {}
        self.registry_lock = asyncio.Lock()
        self.chat_rng = random.Random()

    async def start(self, host: str = "0.0.0.0", port: int = 8080) -> None:
        sweeper = asyncio.create_task(self._sweep_loop())
        try:
            async with websockets.serve(self._handle_connection, host, port):
                LOGGER.info("Host server listening on %s:%s", host, port)
                await asyncio.Future()
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

    # Connection handling -------------------------------------------------

    async def _handle_connection(self, websocket: Any) -> None:
        hello = await self._read_message(websocket)
        if hello is None or hello.get("type") != "hello":
            await self._send_error(websocket, code="BAD_HELLO", msg="Expected hello")
            await websocket.close()
            return

        requested = hello.get("session_id")
        name = hello.get("name")
        slot = await self.attach(
            requested if isinstance(requested, str) else None,
            name=name if isinstance(name, str) and name.strip() else None,
        )
        slot.sockets.add(websocket)
        session_id = slot.session.session_id
        LOGGER.info("Client attached to session %s", session_id)

        await self._send_json(websocket, "welcome", {"session_id": session_id, "config": self.config.to_dict()})
        async with slot.lock:
            outcome = slot.session.fetch_state()
        await self._send_json(websocket, "state", outcome.to_payload())
        self._enqueue_chat(slot, "greeting")

        try:
            async for raw in websocket:
                message = self._decode(raw)
                if message.get("type") == "intent":
                    await self._handle_intent(slot, websocket, message)
                else:
                    await self._send_error(websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
        except websockets.ConnectionClosed:
            pass
        finally:
            slot.sockets.discard(websocket)
            slot.last_seen = self.clock()
        LOGGER.info("Client left session %s", session_id)

    async def attach(self, session_id: Optional[str], name: Optional[str] = None) -> SessionSlot:
        """Find a live session, resume a stored one, or open a new one."""
        async with self.registry_lock:
            if session_id and session_id in self.slots:
                slot = self.slots[session_id]
            else:
                data = await asyncio.to_thread(self.store.load, session_id) if session_id else None
                if data is not None:
                    session = SessionState.from_dict(data, clock=self.clock)
                    LOGGER.info("Resumed session %s from store", session_id)
                else:
                    session = SessionState(session_id or uuid.uuid4().hex, config=self.config, clock=self.clock)
                    if name:
                        session.seats[HUMAN].name = name.strip()[:32]
                    LOGGER.info("Created session %s", session.session_id)
                slot = SessionSlot(session=session)
                self.slots[session.session_id] = slot
            if slot.chat_task is None or slot.chat_task.done():
                slot.chat_task = asyncio.create_task(self._chat_worker(slot))
            slot.last_seen = self.clock()
            return slot

    async def teardown(self, session_id: str) -> None:
        async with self.registry_lock:
            slot = self.slots.pop(session_id, None)
        if slot and slot.chat_task:
            slot.chat_task.cancel()
        await asyncio.to_thread(self.store.delete, session_id)
        LOGGER.info("Session %s torn down", session_id)

    # Intents ---------------------------------------------------------------

    def _dispatch(self, session: SessionState, message: Dict[str, Any]) -> Outcome:
        intent = message.get("intent")
        if intent == "deal":
            return session.start_round()
        if intent == "action":
            try:
                action = ActionType(message.get("action"))
            except ValueError:
                raise ValueError("Unknown action") from None
            amount = message.get("amount") or 0
            if not isinstance(amount, int) or isinstance(amount, bool):
                raise ValueError("amount must be an integer")
            return session.submit_action(action, amount)
        if intent == "discard":
            indices = message.get("indices") or []
            if not isinstance(indices, list):
                raise ValueError("indices must be a list")
            return session.submit_discard(indices)
        if intent == "showdown":
            return session.resolve_showdown()
        if intent == "esp_start":
            return session.start_esp()
        if intent == "esp_guess":
            index1, index2 = message.get("index1"), message.get("index2")
            if not isinstance(index1, int) or not isinstance(index2, int):
                raise ValueError("index1 and index2 must be integers")
            return session.guess_esp(index1, index2)
        if intent == "esp_exit":
            return session.exit_esp()
        if intent == "rebuy":
            return session.rebuy()
        if intent == "state":
            return session.fetch_state()
        raise ValueError(f"Unknown intent {intent!r}")

    async def _handle_intent(self, slot: SessionSlot, websocket: Any, message: Dict[str, Any]) -> None:
        session_id = slot.session.session_id
        if message.get("intent") == "teardown":
            await self.teardown(session_id)
            await self._send_json(websocket, "bye", {"session_id": session_id})
            await websocket.close()
            return

        slot.last_seen = self.clock()
        slot.idle_quipped = False
        outcome: Optional[Outcome] = None
        async with slot.lock:
            try:
                outcome = self._dispatch(slot.session, message)
            except ValueError as exc:
                await self._send_error(websocket, code="BAD_SCHEMA", msg=str(exc))
                return
            except ExhaustedDeck:
                LOGGER.exception("Deck ran dry in session %s; restoring last snapshot", session_id)
                slot.session = await self._restore(slot.session)
                await self._send_error(websocket, code="INTERNAL", msg="Something went wrong; state restored")
                return
            except GameError as exc:
                LOGGER.warning("Rejected intent session=%s intent=%s reason=%s", session_id, message.get("intent"), exc)
                # A lazy ESP timeout may have landed before the rejection; it is valid state.
                await self._persist(slot)
                await self._send_json(
                    websocket,
                    "error",
                    {"code": exc.code, "msg": exc.msg, "state": slot.session.snapshot()},
                )
                return
            except Exception:  # noqa: BLE001
                LOGGER.exception("Invariant violation in session %s; restoring last snapshot", session_id)
                slot.session = await self._restore(slot.session)
                await self._send_error(websocket, code="INTERNAL", msg="Something went wrong; state restored")
                return
            await self._persist(slot)

        LOGGER.debug("Applied intent session=%s intent=%s phase=%s", session_id, message.get("intent"), outcome.phase.value)
        await self._broadcast(slot, "state", outcome.to_payload())
        for situation in outcome.situations:
            self._enqueue_chat(slot, situation)

    async def _persist(self, slot: SessionSlot) -> None:
        # Store calls may block on disk; keep them off the event loop.
        await asyncio.to_thread(self.store.save, slot.session, self.clock())

    async def _restore(self, broken: SessionState) -> SessionState:
        data = await asyncio.to_thread(self.store.load, broken.session_id)
        if data is None:
            return SessionState(broken.session_id, config=self.config, clock=self.clock)
        return SessionState.from_dict(data, clock=self.clock)

    # Deadline sweep -------------------------------------------------------

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                await self.sweep_once()
            except Exception:  # noqa: BLE001
                LOGGER.exception("ESP sweep failed")

    async def sweep_once(self) -> List[str]:
        """Apply due ESP timeouts, nudge idle players and drop expired sessions. Returns timed-out ids."""
        now = self.clock()
        async with self.registry_lock:
            slots = list(self.slots.values())

        timed_out: List[str] = []
        for slot in slots:
            async with slot.lock:
                outcome = slot.session.sweep(now)
                if outcome is not None:
                    await self._persist(slot)
            if outcome is not None:
                timed_out.append(slot.session.session_id)
                await self._broadcast(slot, "state", outcome.to_payload())
                for situation in outcome.situations:
                    self._enqueue_chat(slot, situation)
            elif slot.sockets and not slot.idle_quipped and now - slot.last_seen >= self.idle_quip_seconds:
                slot.idle_quipped = True
                self._enqueue_chat(slot, "idle")

        await self._evict_idle(now)
        return timed_out

    async def _evict_idle(self, now: float) -> None:
        async with self.registry_lock:
            idle = [
                sid for sid, slot in self.slots.items() if not slot.sockets and now - slot.last_seen >= self.idle_ttl
            ]
            for sid in idle:
                slot = self.slots.pop(sid)
                if slot.chat_task:
                    slot.chat_task.cancel()
        stale = await asyncio.to_thread(self.store.stale_ids, now - self.session_ttl)
        for sid in stale:
            if sid not in self.slots:
                await asyncio.to_thread(self.store.delete, sid)
                LOGGER.info("Session %s expired", sid)

    # Chat -------------------------------------------------------------------

    def _enqueue_chat(self, slot: SessionSlot, situation: str) -> None:
        slot.chat.put_nowait(
            {"sender": "ancient_one", "text": quip(situation, self.chat_rng), "kind": "speech", "situation": situation}
        )

    async def _chat_worker(self, slot: SessionSlot) -> None:
        # Drains one session's chat in FIFO order, independent of the session lock.
        while True:
            message = await slot.chat.get()
            try:
                await self._broadcast(slot, "chat", message)
            finally:
                slot.chat.task_done()

    # Wire helpers -------------------------------------------------------------

    async def _broadcast(self, slot: SessionSlot, msg_type: str, payload: Dict[str, object]) -> None:
        targets = list(slot.sockets)
        if not targets:
            return
        message = self._envelope(msg_type, payload)
        await asyncio.gather(*(socket.send(message) for socket in targets), return_exceptions=True)

    async def _send_json(self, websocket: Any, msg_type: str, payload: Dict[str, object]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: Any, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body: Dict[str, object] = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    async def _read_message(self, websocket: Any) -> Optional[Dict[str, Any]]:
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=5)
        except (asyncio.TimeoutError, websockets.ConnectionClosed):
            return None
        return self._decode(raw)

    def _decode(self, raw: Any) -> Dict[str, Any]:
        try:
            message = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return {}
        return message if isinstance(message, dict) else {}
