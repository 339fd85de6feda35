"""
core/transport.py — Thin wrapper over the obs-websocket-py client.

OBSTransport is the only place that touches `obswebsocket`. It turns a request
name + keyword params into an obs-websocket 5.x call and hands back the plain
response dict, so nothing above this module ever sees an obswebsocket type.
A refused request raises TransportError carrying OBS's own comment.

Request names written against the 4.x protocol (setCurrentScene, toggleMute,
StartStopStreaming, ...) are translated to their 5.x equivalents, so action
definitions saved by older clients keep working.

The obsws client is blocking; callers run `connect()`, `call()` and `close()`
in an executor.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Optional

from obswebsocket import obsws, events as obs_events, requests as obs_requests
from obswebsocket import exceptions as obs_exceptions
from obswebsocket.base_classes import Baserequests

from .errors import TransportError

log = logging.getLogger(__name__)

# 4.x request name → 5.x request name
REQUEST_ALIASES: dict[str, str] = {
    "SetCurrentScene": "SetCurrentProgramScene",
    "GetCurrentScene": "GetCurrentProgramScene",
    "SetPreviewScene": "SetCurrentPreviewScene",
    "GetPreviewScene": "GetCurrentPreviewScene",
    "SetMute": "SetInputMute",
    "GetMute": "GetInputMute",
    "ToggleMute": "ToggleInputMute",
    "SetVolume": "SetInputVolume",
    "GetVolume": "GetInputVolume",
    "GetSourcesList": "GetInputList",
    "GetSourceSettings": "GetInputSettings",
    "SetSourceSettings": "SetInputSettings",
    "SetSceneItemRender": "SetSceneItemEnabled",
    "SetSourceRender": "SetSceneItemEnabled",
    "StartStopStreaming": "ToggleStream",
    "StartStreaming": "StartStream",
    "StopStreaming": "StopStream",
    "GetStreamingStatus": "GetStreamStatus",
    "SendCaptions": "SendStreamCaption",
    "StartStopRecording": "ToggleRecord",
    "StartRecording": "StartRecord",
    "StopRecording": "StopRecord",
    "PauseRecording": "PauseRecord",
    "ResumeRecording": "ResumeRecord",
    "GetRecordingStatus": "GetRecordStatus",
}


def resolve_request_name(name: str) -> str:
    """Map a 4.x (or lower-camel) request name onto its 5.x name."""
    if not name:
        return name
    canonical = name[0].upper() + name[1:]
    return REQUEST_ALIASES.get(canonical, canonical)


class OBSSession(obsws):
    """
    obsws that keeps OBS's requestStatus on the answered request.

    obsws.call() only hands the request object the responseData and the
    result flag, so the peer's `code` and `comment` (the reason a request was
    refused, e.g. "No source was found by the name of `Gameplay`.") are lost.
    This call() reads the answer itself and sets `request.code` and
    `request.comment`. Legacy (4.x) sessions go through obsws unchanged.
    """

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._id_lock = threading.Lock()

    def call(self, obj: Baserequests) -> Baserequests:
        if self.legacy:
            return super().call(obj)
        if not isinstance(obj, Baserequests):
            raise obs_exceptions.ObjectError("Call parameter is not a request object")

        with self._id_lock:
            message_id = str(self.id)
            self.id += 1
        event = threading.Event()
        self.events[message_id] = event

        payload = {
            "op": 6,
            "d": {"requestId": message_id, "requestType": obj.name, "requestData": obj.data()},
        }
        log.debug(f"Sending request {message_id}: {obj.name}")
        try:
            self.ws.send(json.dumps(payload))
            event.wait(self.timeout)
        finally:
            self.events.pop(message_id, None)

        answer = self.answers.pop(message_id, None)
        if answer is None:
            raise obs_exceptions.MessageTimeout(f"No answer for message {message_id}")
        status = answer.get("requestStatus") or {}
        obj.input(answer.get("responseData") or {}, bool(status.get("result", False)))
        obj.code = status.get("code")
        obj.comment = status.get("comment")
        return obj


class OBSTransport:
    """
    A single obs-websocket session.

    Usage:
        transport = OBSTransport("localhost", 4455, password="")
        transport.on_disconnect(lambda t: print("OBS went away"))
        transport.connect()
        scenes = transport.call("GetSceneList")["scenes"]
        transport.close()
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 4455,
        password: str = "",
        ws_factory: Callable[..., Any] = OBSSession,
    ):
        self.host = host
        self.port = port
        self.password = password
        self._ws_factory = ws_factory
        self._ws: Optional[Any] = None
        self._closed = False
        self._lock = threading.Lock()
        self._lost_callback: Optional[Callable[["OBSTransport"], None]] = None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def closed(self) -> bool:
        return self._closed

    def on_disconnect(self, callback: Optional[Callable[["OBSTransport"], None]]) -> None:
        """
        Called with this transport when the websocket drops without close()
        (OBS crashed, network gone). Runs on obsws's receiver thread.
        """
        self._lost_callback = callback

    def connect(self) -> None:
        try:
            ws = self._ws_factory(self.host, self.port, self.password, on_disconnect=self._ws_disconnected)
            with self._lock:
                self._ws = ws
                self._closed = False
            ws.connect()
        except Exception as e:
            with self._lock:
                self._ws = None
                self._closed = True
            raise TransportError(f"failed to connect to OBS at {self.address}", detail=str(e)) from e

    def close(self) -> None:
        with self._lock:
            ws, self._ws = self._ws, None
            self._closed = True
        if ws is None:
            return
        try:
            ws.disconnect()
        except Exception as e:
            log.warning(f"Error while closing OBS websocket: {e}")

    def _ws_disconnected(self, ws: Any) -> None:
        # obsws fires this for our own close() too; only a drop counts
        with self._lock:
            if self._closed or ws is not self._ws:
                return
            self._ws = None
            self._closed = True
        log.warning(f"Lost connection to OBS at {self.address}")
        callback = self._lost_callback
        if callback is not None:
            try:
                callback(self)
            except Exception as e:
                log.error(f"OBS disconnect handler failed: {e}")

    def register(self, callback: Callable[[Any], None], event_name: str) -> None:
        """Subscribe `callback` to an obs-websocket event, e.g. CurrentProgramSceneChanged."""
        ws = self._require_ws(f"subscribe to {event_name}")
        try:
            ws.register(callback, getattr(obs_events, event_name))
        except Exception as e:
            raise TransportError(f"failed to subscribe to {event_name}", detail=str(e)) from e

    def call(self, name: str, **params: Any) -> dict:
        """
        Issue one request and return its response data.

        Raises TransportError when the session is closed, when the websocket
        fails mid-request, or when OBS answers with a failed request status.
        In the last case `detail` is OBS's own comment for the failure.
        """
        request_name = resolve_request_name(name)
        ws = self._require_ws(request_name)
        try:
            response = ws.call(getattr(obs_requests, request_name)(**params))
        except Exception as e:
            raise TransportError(f"{request_name} request failed", detail=str(e)) from e

        data = getattr(response, "datain", None) or {}
        if getattr(response, "status", True) is False:
            comment = getattr(response, "comment", None)
            if not comment:
                code = getattr(response, "code", None)
                comment = f"request failed with status code {code}" if code is not None else str(data)
            raise TransportError(f"OBS rejected {request_name}", detail=comment)
        return dict(data)

    def _require_ws(self, operation: str) -> Any:
        ws = self._ws
        if ws is None:
            raise TransportError(f"cannot {operation}", detail="OBS session is closed")
        return ws
