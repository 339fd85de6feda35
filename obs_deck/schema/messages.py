"""
schema/messages.py — Envelope exchanged between the front end and its clients.

obs_deck never routes these itself except for ACTION_TRIGGER; the models live
here so dispatcher results and errors have a fixed SUCCESS / ERROR shape.
"""

from __future__ import annotations

import enum
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, Field

from .action import Action, CamelModel
from .values import PropertyMap

M = TypeVar("M", bound=BaseModel)


class MessageType(str, enum.Enum):
    # client ↔ server
    CONNECT = "CONNECT"
    DISCONNECT = "DISCONNECT"
    HEARTBEAT = "HEARTBEAT"
    ACTION_TRIGGER = "ACTION_TRIGGER"

    # profiles
    PROFILE_LOAD = "PROFILE_LOAD"
    PROFILE_UPDATE = "PROFILE_UPDATE"
    PROFILE_SWITCH = "PROFILE_SWITCH"

    # configuration
    CONFIG_GET = "CONFIG_GET"
    CONFIG_UPDATE = "CONFIG_UPDATE"

    THEME_UPDATE = "THEME_UPDATE"

    # responses
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class ConnectPayload(CamelModel):
    client_id: str
    client_name: str
    client_version: str
    platform: str
    profile_id: Optional[str] = None


class ActionTriggerPayload(CamelModel):
    action_id: str
    profile_id: str
    properties: Optional[dict[str, str]] = None


class ProfilePayload(CamelModel):
    id: str
    name: str
    rows: int
    cols: int
    actions: list[Action] = Field(default_factory=list)
    orientation: str = "portrait"
    properties: Optional[PropertyMap] = None


class ErrorPayload(CamelModel):
    code: str
    message: str
    details: str = ""


class SuccessPayload(CamelModel):
    message: str
    data: Optional[dict[str, Any]] = None


class Message(CamelModel):
    type: MessageType
    header: Optional[str] = None
    body: Optional[str] = None
    payload: Optional[Any] = None

    @classmethod
    def with_payload(cls, type: MessageType, payload: BaseModel, **kwargs: Any) -> "Message":
        return cls(type=type, payload=payload.model_dump(by_alias=True, exclude_none=True, mode="json"), **kwargs)

    def decode_payload(self, model: Type[M]) -> M:
        return model.model_validate(self.payload or {})

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, data: str) -> "Message":
        return cls.model_validate_json(data)
