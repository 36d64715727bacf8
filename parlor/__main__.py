import argparse
import asyncio
import logging
import os

from shoggoths.models import SessionConfig
from shoggoths.store import MemorySessionStore, SqliteSessionStore

from .server import HostServer

logging.basicConfig(level=logging.INFO)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logging.getLogger("shoggoths_host").warning("Ignoring %s=%r; expected a number", name, raw)
        return default


def main() -> None:
    defaults = SessionConfig()
    parser = argparse.ArgumentParser(description="Card Shoggoths parlor host")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument(
        "--db",
        default="data/game.db",
        help="SQLite path for session snapshots (empty string keeps sessions in memory)",
    )
    parser.add_argument("--sweep-interval", type=float, default=1.0, help="Seconds between ESP deadline sweeps")
    parser.add_argument("--idle-ttl", type=float, default=3600.0, help="Seconds before an abandoned session leaves memory")
    parser.add_argument(
        "--session-ttl",
        type=float,
        default=7 * 24 * 3600.0,
        help="Seconds before an untouched stored session is deleted",
    )
    parser.add_argument("--ante", type=int, default=defaults.ante)
    parser.add_argument("--starting-sanity", type=int, default=defaults.starting_sanity)
    parser.add_argument(
        "--esp-miss-penalty", type=int, default=defaults.esp_miss_penalty, help="Sanity lost per wrong ESP guess"
    )
    parser.add_argument("--esp-seconds", type=float, default=defaults.esp_seconds)
    parser.add_argument("--esp-hand-size", type=int, default=defaults.esp_hand_size)
    parser.add_argument(
        "--courage",
        type=float,
        default=_env_float("AI_COURAGE", defaults.courage),
        help="Opponent aggression multiplier (env AI_COURAGE)",
    )
    parser.add_argument(
        "--reveal-on-fold",
        action=argparse.BooleanOptionalAction,
        default=_env_flag("REVEAL_ON_FOLD", defaults.reveal_on_fold),
        help="Show the opponent's cards when a hand ends by fold (env REVEAL_ON_FOLD)",
    )
    parser.add_argument(
        "--opponent-regenerates",
        action=argparse.BooleanOptionalAction,
        default=defaults.opponent_regenerates,
    )
    args = parser.parse_args()

    config = SessionConfig(
        ante=args.ante,
        starting_sanity=args.starting_sanity,
        esp_miss_penalty=args.esp_miss_penalty,
        esp_seconds=args.esp_seconds,
        esp_hand_size=args.esp_hand_size,
        courage=args.courage,
        reveal_on_fold=args.reveal_on_fold,
        opponent_regenerates=args.opponent_regenerates,
    )
    store = SqliteSessionStore(args.db) if args.db else MemorySessionStore()

    server = HostServer(
        config,
        store=store,
        sweep_interval=args.sweep_interval,
        idle_ttl=args.idle_ttl,
        session_ttl=args.session_ttl,
    )
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
