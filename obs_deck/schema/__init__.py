"""schema — Action definitions and front-end message envelope."""
from .action import Action, ActionType
from .messages import (
    ActionTriggerPayload,
    ConnectPayload,
    ErrorPayload,
    Message,
    MessageType,
    ProfilePayload,
    SuccessPayload,
)
from .values import PropertyMap, PropertyValue, validate_properties

__all__ = [
    "Action",
    "ActionTriggerPayload",
    "ActionType",
    "ConnectPayload",
    "ErrorPayload",
    "Message",
    "MessageType",
    "ProfilePayload",
    "PropertyMap",
    "PropertyValue",
    "SuccessPayload",
    "validate_properties",
]
