"""core — OBS session ownership and error taxonomy."""
from .errors import (
    AlreadyConnectedError,
    InvalidParameterError,
    NotConnectedError,
    OBSDeckError,
    TransportError,
)
from .transport import OBSSession, OBSTransport, resolve_request_name
from .connection_manager import ConnectionManager, ConnectionStatus

__all__ = [
    "AlreadyConnectedError",
    "ConnectionManager",
    "ConnectionStatus",
    "InvalidParameterError",
    "NotConnectedError",
    "OBSDeckError",
    "OBSSession",
    "OBSTransport",
    "TransportError",
    "resolve_request_name",
]
