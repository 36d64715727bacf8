"""Parlor host package: serves Card Shoggoths sessions over WebSocket."""

from .server import HostServer

__all__ = ["HostServer"]
