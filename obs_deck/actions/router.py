"""
actions/router.py — Button press → dispatcher call.

OPERATIONS is the fixed lookup table from (ActionType, operation id) to a
dispatcher method. The operation id is read from action.properties["operation"];
the remaining properties supply the method's arguments:

    {"operation": "switch_scene", "scene_name": "Live"}
    {"operation": "set_volume", "input_name": "Mic", "volume_db": -6.0}
    {"operation": "set_source_visibility", "source_name": "Webcam", "visible": false}

Operation ids saved by older clients (obs-websocket 4.x request names such as
"setCurrentScene" or "StartStopStreaming") are accepted as aliases.

FOLDER and COMBINE actions are navigation / grouping constructs handled by
the front end and never reach OBS.

Results come back as SuccessPayload; failures raise OBSDeckError, which
trigger_message() turns into an ERROR message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from obs_deck.core.connection_manager import ConnectionManager
from obs_deck.core.errors import InvalidParameterError, NotConnectedError, OBSDeckError
from obs_deck.schema import (
    Action,
    ActionTriggerPayload,
    ActionType,
    Message,
    MessageType,
    SuccessPayload,
)

from .scene import SceneDispatcher
from .source import SourceDispatcher
from .stream import StreamDispatcher

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Param:
    name: str
    kind: str = "str"  # "str" | "bool" | "float" | "mapping"
    required: bool = True
    default: Any = None


@dataclass(frozen=True)
class Operation:
    dispatcher: str  # "scene" | "stream" | "source"
    method: str
    params: tuple[Param, ...] = ()
    description: str = ""


_SCENE = (Param("scene_name"),)
_INPUT = (Param("input_name"),)

NORMAL_OPERATIONS: dict[str, Operation] = {
    "switch_scene": Operation("scene", "set_current_scene", _SCENE, "Switch the program scene"),
    "set_preview_scene": Operation("scene", "set_preview_scene", _SCENE, "Set the studio-mode preview scene"),
    "create_scene": Operation("scene", "create_scene", _SCENE, "Create a new scene"),
    "remove_scene": Operation("scene", "remove_scene", _SCENE, "Remove a scene"),
    "start_stream": Operation("stream", "start_streaming", description="Start streaming"),
    "stop_stream": Operation("stream", "stop_streaming", description="Stop streaming"),
    "toggle_stream": Operation("stream", "toggle_streaming", description="Start/stop streaming"),
    "send_caption": Operation("stream", "send_stream_caption", (Param("caption"),), "Send a stream caption"),
    "start_record": Operation("stream", "start_recording", description="Start recording"),
    "stop_record": Operation("stream", "stop_recording", description="Stop recording"),
    "toggle_record": Operation("stream", "toggle_recording", description="Start/stop recording"),
    "pause_record": Operation("stream", "pause_recording", description="Pause recording"),
    "resume_record": Operation("stream", "resume_recording", description="Resume recording"),
    "toggle_record_pause": Operation("stream", "toggle_record_pause", description="Pause/resume recording"),
    "set_mute": Operation("source", "set_mute", _INPUT + (Param("muted", "bool"),), "Mute or unmute an input"),
    "toggle_mute": Operation("source", "toggle_mute", _INPUT, "Toggle an input's mute"),
    "set_volume": Operation(
        "source", "set_volume", _INPUT + (Param("volume_db", "float"),), "Set an input's volume (dB)"
    ),
    "set_source_visibility": Operation(
        "source", "set_visibility_by_name", (Param("source_name"), Param("visible", "bool")),
        "Show/hide a source in the program scene",
    ),
    "toggle_source_visibility": Operation(
        "source", "toggle_visibility_by_name", (Param("source_name"),),
        "Toggle a source in the program scene",
    ),
    "set_input_settings": Operation(
        "source", "set_input_settings",
        _INPUT + (Param("settings", "mapping"), Param("overlay", "bool", required=False, default=True)),
        "Apply input settings",
    ),
}

GAUGE_OPERATIONS: dict[str, Operation] = {
    "set_volume": NORMAL_OPERATIONS["set_volume"],
}

OPERATIONS: dict[tuple[ActionType, str], Operation] = {
    **{(ActionType.NORMAL, op_id): op for op_id, op in NORMAL_OPERATIONS.items()},
    **{(ActionType.GAUGE, op_id): op for op_id, op in GAUGE_OPERATIONS.items()},
}

LEGACY_OPERATION_IDS: dict[str, str] = {
    "setcurrentscene": "switch_scene",
    "setcurrentprogramscene": "switch_scene",
    "setpreviewscene": "set_preview_scene",
    "setcurrentpreviewscene": "set_preview_scene",
    "createscene": "create_scene",
    "removescene": "remove_scene",
    "startstreaming": "start_stream",
    "startstream": "start_stream",
    "stopstreaming": "stop_stream",
    "stopstream": "stop_stream",
    "startstopstreaming": "toggle_stream",
    "togglestream": "toggle_stream",
    "sendcaptions": "send_caption",
    "sendstreamcaption": "send_caption",
    "startrecording": "start_record",
    "startrecord": "start_record",
    "stoprecording": "stop_record",
    "stoprecord": "stop_record",
    "startstoprecording": "toggle_record",
    "togglerecord": "toggle_record",
    "pauserecording": "pause_record",
    "pauserecord": "pause_record",
    "resumerecording": "resume_record",
    "resumerecord": "resume_record",
    "togglerecordpause": "toggle_record_pause",
    "setmute": "set_mute",
    "setinputmute": "set_mute",
    "togglemute": "toggle_mute",
    "toggleinputmute": "toggle_mute",
    "setvolume": "set_volume",
    "setinputvolume": "set_volume",
    "setsourcerender": "set_source_visibility",
    "setsceneitemrender": "set_source_visibility",
    "setsourcesettings": "set_input_settings",
    "setinputsettings": "set_input_settings",
}


def resolve_operation(action_type: ActionType, operation_id: Optional[str]) -> Operation:
    if action_type in (ActionType.FOLDER, ActionType.COMBINE):
        raise InvalidParameterError(f"{action_type.value} actions do not trigger OBS operations")
    if not operation_id:
        raise InvalidParameterError("action has no 'operation' property")
    op_id = operation_id if (action_type, operation_id) in OPERATIONS else LEGACY_OPERATION_IDS.get(
        operation_id.replace("_", "").lower(), operation_id
    )
    try:
        return OPERATIONS[(action_type, op_id)]
    except KeyError:
        raise InvalidParameterError(
            f"unknown operation {operation_id!r} for {action_type.value} action"
        ) from None


def _coerce(param: Param, value: Any) -> Any:
    # trigger-time overrides arrive as strings
    if param.kind == "bool" and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    elif param.kind == "float" and isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
    elif param.kind == "float" and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    elif param.kind != "str" or isinstance(value, str):
        return value
    raise InvalidParameterError(f"property {param.name!r} is not a valid {param.kind}", detail=repr(value))


def _normalize(result: Any) -> Optional[dict[str, Any]]:
    if result is None:
        return None
    if hasattr(result, "to_dict"):
        return result.to_dict()
    if isinstance(result, dict):
        return result
    if isinstance(result, list):
        return {"items": result}
    return {"result": result}


class ActionRouter:
    """
    Executes Action definitions against the dispatchers.

    Usage:
        router = ActionRouter.from_manager(manager)
        payload = await router.trigger(action)
    """

    def __init__(
        self,
        manager: ConnectionManager,
        scenes: SceneDispatcher,
        streams: StreamDispatcher,
        sources: SourceDispatcher,
    ):
        self._manager = manager
        self._dispatchers = {"scene": scenes, "stream": streams, "source": sources}

    @classmethod
    def from_manager(cls, manager: ConnectionManager, logger: Optional[logging.Logger] = None) -> "ActionRouter":
        return cls(
            manager,
            SceneDispatcher(manager, logger),
            StreamDispatcher(manager, logger),
            SourceDispatcher(manager, logger),
        )

    def bind(self, action: Action, overrides: Optional[Mapping[str, Any]] = None) -> tuple[str, Operation, dict]:
        """Resolve an action to (operation id, Operation, keyword args) without calling OBS."""
        props: dict[str, Any] = {**action.properties, **(overrides or {})}
        operation = resolve_operation(action.type, props.get("operation"))
        kwargs: dict[str, Any] = {}
        for param in operation.params:
            if param.name in props:
                kwargs[param.name] = _coerce(param, props[param.name])
            elif param.required:
                raise InvalidParameterError(
                    f"action {action.id!r} is missing property {param.name!r}"
                )
            else:
                kwargs[param.name] = param.default
        return props["operation"], operation, kwargs

    async def trigger(self, action: Action, overrides: Optional[Mapping[str, Any]] = None) -> SuccessPayload:
        if not self._manager.is_connected():
            raise NotConnectedError(f"run action {action.id!r}")
        op_id, operation, kwargs = self.bind(action, overrides)
        method = getattr(self._dispatchers[operation.dispatcher], operation.method)
        log.debug(f"Action {action.id} → {operation.dispatcher}.{operation.method}({kwargs})")
        result = await method(**kwargs)
        return SuccessPayload(message=f"{op_id} completed", data=_normalize(result))

    async def trigger_message(self, message: Message, actions: Mapping[str, Action]) -> Message:
        """
        Answer an ACTION_TRIGGER message with a SUCCESS or ERROR message.
        `actions` maps action ids to their definitions (the loaded profile).
        """
        try:
            if message.type is not MessageType.ACTION_TRIGGER:
                raise InvalidParameterError(f"expected {MessageType.ACTION_TRIGGER.value} message")
            try:
                payload = message.decode_payload(ActionTriggerPayload)
            except ValueError as e:
                raise InvalidParameterError("malformed action trigger payload", detail=str(e)) from e
            action = actions.get(payload.action_id)
            if action is None:
                raise InvalidParameterError(f"unknown action {payload.action_id!r}")
            result = await self.trigger(action, payload.properties)
        except OBSDeckError as e:
            log.warning(f"Action trigger failed: {e}")
            return Message.with_payload(MessageType.ERROR, e.to_payload(), header=message.header)
        return Message.with_payload(MessageType.SUCCESS, result, header=message.header)
