"""
core/connection_manager.py — Owns the single OBS session shared by all callers.

One ConnectionManager per process, passed explicitly to every dispatcher.
It holds the transport and the connected/disconnected status behind an
AsyncRWLock: handle reads share the lock, connect/disconnect take it alone
but only to swap the handle. The websocket handshake and close run outside it.
Remote requests are made outside the lock on a snapshot of the transport, so
a concurrent disconnect surfaces as a TransportError on the in-flight call.

Lifecycle notifications:
  on_connect(cb)        single slot, last registration wins, cb()
  on_error(cb)          single slot, last registration wins, cb(error)
  on_scene_changed(cb)  any number of subscribers, cb(scene_name)

All of them are delivered off the caller's stack (as tasks on the event
loop), never inline. Callbacks may be plain functions or coroutine functions.

When OBS exits (ExitStarted) or the websocket drops, on_error fires and the
session is released, so is_connected() goes false without a disconnect() call.

Nothing here retries. Reconnecting is up to the caller; `reconnect_interval`
from the settings is only a hint for it.
"""

from __future__ import annotations

import asyncio
import enum
import functools
import inspect
import logging
from typing import Any, Callable, Optional

from obs_deck.config.settings import OBSSettings

from .errors import AlreadyConnectedError, NotConnectedError, TransportError
from .rwlock import AsyncRWLock
from .transport import OBSTransport

log = logging.getLogger(__name__)

TransportFactory = Callable[[OBSSettings], Any]


def default_transport_factory(settings: OBSSettings) -> OBSTransport:
    return OBSTransport(settings.host, settings.port, settings.password)


class ConnectionStatus(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class ConnectionManager:
    def __init__(
        self,
        settings: Optional[OBSSettings] = None,
        transport_factory: TransportFactory = default_transport_factory,
    ):
        self._settings = settings or OBSSettings()
        self._transport_factory = transport_factory
        self._lock = AsyncRWLock()
        self._connect_lock = asyncio.Lock()
        self._transport: Optional[Any] = None
        self._status = ConnectionStatus.DISCONNECTED
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self._connect_callback: Optional[Callable] = None
        self._error_callback: Optional[Callable] = None
        self._scene_changed_listeners: list[Callable] = []
        self._pending: set[asyncio.Task] = set()

    @property
    def settings(self) -> OBSSettings:
        return self._settings

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    async def __aenter__(self) -> "ConnectionManager":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    # ── Connection ────────────────────────────────────────────────────

    async def connect(self) -> None:
        """
        Open a session. The handshake runs outside the RW lock, so handle()
        callers see "not connected" meanwhile instead of waiting on it.
        Concurrent connects queue on a separate lock; all but the first
        get AlreadyConnectedError.
        """
        self._loop = asyncio.get_running_loop()
        async with self._connect_lock:
            if self._status is ConnectionStatus.CONNECTED:
                raise AlreadyConnectedError()

            address = self._settings.address
            log.info(f"Connecting to OBS at {address}")
            transport = self._transport_factory(self._settings)
            transport.on_disconnect(self._on_connection_lost)
            try:
                await self._loop.run_in_executor(None, transport.connect)
                transport.register(self._on_scene_changed, "CurrentProgramSceneChanged")
                transport.register(functools.partial(self._on_exit_started, transport), "ExitStarted")
            except TransportError as e:
                log.error(f"Failed to connect to OBS: {e}")
                await self._loop.run_in_executor(None, transport.close)
                self._fire(self._error_callback, e)
                raise

            async with self._lock.write():
                self._transport = transport
                self._status = ConnectionStatus.CONNECTED
            log.info(f"Connected to OBS at {address}")

        self._fire(self._connect_callback)

    async def disconnect(self) -> None:
        async with self._lock.write():
            transport, self._transport = self._transport, None
            self._status = ConnectionStatus.DISCONNECTED
        if transport is None:
            return
        await asyncio.get_running_loop().run_in_executor(None, transport.close)
        log.info("Disconnected from OBS")

    async def _release(self, transport: Any) -> None:
        """Disconnect, but only if `transport` is still the live session."""
        async with self._lock.write():
            if self._transport is not transport:
                return
            self._transport = None
            self._status = ConnectionStatus.DISCONNECTED
        await asyncio.get_running_loop().run_in_executor(None, transport.close)
        log.info("Disconnected from OBS")

    def is_connected(self) -> bool:
        return self._status is ConnectionStatus.CONNECTED

    async def handle(self) -> Optional[Any]:
        """Snapshot of the live transport, or None. Do not keep it past one operation."""
        async with self._lock.read():
            return self._transport

    async def get_version(self) -> str:
        transport = await self.handle()
        if transport is None:
            raise NotConnectedError("get OBS version")
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, lambda: transport.call("GetVersion"))
        except TransportError as e:
            raise TransportError("failed to get OBS version", detail=e.detail or str(e)) from e
        return data.get("obsVersion", "")

    # ── Observers ─────────────────────────────────────────────────────

    def on_connect(self, callback: Optional[Callable[[], Any]]) -> None:
        self._connect_callback = callback

    def on_error(self, callback: Optional[Callable[[Exception], Any]]) -> None:
        self._error_callback = callback

    def on_scene_changed(self, callback: Callable[[str], Any]) -> None:
        """
        Subscribe to program scene changes made from anywhere (OBS UI,
        hotkeys, other websocket clients). Callback receives scene_name: str.
        """
        self._scene_changed_listeners.append(callback)

    def _fire(self, callback: Optional[Callable], *args: Any) -> None:
        if callback is None or self._loop is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._spawn(callback, *args)
        else:
            # obsws delivers events on its own receiver thread
            self._loop.call_soon_threadsafe(self._spawn, callback, *args)

    def _spawn(self, callback: Callable, *args: Any) -> None:
        task = self._loop.create_task(self._run_observer(callback, *args))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _run_observer(callback: Callable, *args: Any) -> None:
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            log.error(f"OBS observer {getattr(callback, '__name__', callback)!r} failed: {e}")

    # ── OBS event handlers ────────────────────────────────────────────

    def _on_scene_changed(self, event: Any) -> None:
        data = getattr(event, "datain", None) or {}
        scene_name = data.get("sceneName", "")
        log.debug(f"CurrentProgramSceneChanged: {scene_name}")
        for cb in list(self._scene_changed_listeners):
            self._fire(cb, scene_name)

    def _on_exit_started(self, transport: Any, _event: Any = None) -> None:
        log.warning("OBS is shutting down; dropping the session.")
        self._drop(transport, TransportError("OBS is shutting down"))

    def _on_connection_lost(self, transport: Any) -> None:
        log.warning("Connection to OBS lost; dropping the session.")
        error = TransportError("connection to OBS lost", detail=f"{self._settings.address} closed the websocket")
        self._drop(transport, error)

    def _drop(self, transport: Any, error: TransportError) -> None:
        self._fire(self._error_callback, error)
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._schedule_release, transport)

    def _schedule_release(self, transport: Any) -> None:
        task = self._loop.create_task(self._release(transport))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
