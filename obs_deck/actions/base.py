"""
actions/base.py — Shared plumbing for the scene / stream / source dispatchers.

Every dispatcher call follows the same path:

    idle → connectivity check ─ NotConnectedError
         → parameter checks   ─ InvalidParameterError
         → OBS request(s)     ─ TransportError (wrapped with operation context)
         → result

Dispatchers hold no state besides the ConnectionManager and a logger, and
never keep the transport between calls. Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Optional

from obs_deck.core.connection_manager import ConnectionManager
from obs_deck.core.errors import InvalidParameterError, NotConnectedError, TransportError

# obs-websocket volume range in dB; 0.0 is unity gain
VOLUME_DB_MIN = -100.0
VOLUME_DB_MAX = 26.0


def require_name(value: Any, what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidParameterError(f"{what} must be a non-empty string", detail=repr(value))
    return value


def require_bool(value: Any, what: str) -> bool:
    if not isinstance(value, bool):
        raise InvalidParameterError(f"{what} must be true or false", detail=repr(value))
    return value


def require_volume_db(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidParameterError("volume must be a finite number of dB", detail=repr(value))
    if not VOLUME_DB_MIN <= value <= VOLUME_DB_MAX:
        raise InvalidParameterError(
            f"volume must be between {VOLUME_DB_MIN} and {VOLUME_DB_MAX} dB", detail=repr(value)
        )
    return float(value)


def require_item_id(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidParameterError("scene item id must be a non-negative integer", detail=repr(value))
    return value


class Dispatcher:
    def __init__(self, manager: ConnectionManager, logger: Optional[logging.Logger] = None):
        self._manager = manager
        self.log = logger or logging.getLogger(type(self).__module__)

    async def _transport(self, operation: str) -> Any:
        transport = await self._manager.handle()
        if transport is None:
            raise NotConnectedError(operation)
        return transport

    async def _request(self, transport: Any, operation: str, request: str, **params: Any) -> dict:
        """Run one OBS request off the event loop, wrapping failures with `operation`."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, lambda: transport.call(request, **params))
        except TransportError as e:
            raise TransportError(f"failed to {operation}", detail=e.detail or e.message) from e

    async def _query(self, operation: str, request: str, **params: Any) -> dict:
        transport = await self._transport(operation)
        return await self._request(transport, operation, request, **params)

    async def _command(self, transport: Any, operation: str, request: str, **params: Any) -> dict:
        """Like _request, but logs the attempt and outcome of a state change."""
        self.log.info(f"Attempting to {operation}")
        try:
            data = await self._request(transport, operation, request, **params)
        except TransportError as e:
            self.log.error(f"Could not {operation}: {e.detail}")
            raise
        self.log.info(f"Done: {operation}")
        return data
