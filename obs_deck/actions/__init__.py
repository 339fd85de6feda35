"""actions — Scene, stream/record and source dispatchers plus the button router."""
from .base import VOLUME_DB_MAX, VOLUME_DB_MIN, Dispatcher
from .scene import SceneDispatcher
from .stream import RecordStatus, StreamDispatcher, StreamStatus
from .source import SourceDispatcher
from .router import OPERATIONS, ActionRouter, Operation, Param, resolve_operation

__all__ = [
    "OPERATIONS",
    "VOLUME_DB_MAX",
    "VOLUME_DB_MIN",
    "ActionRouter",
    "Dispatcher",
    "Operation",
    "Param",
    "RecordStatus",
    "SceneDispatcher",
    "SourceDispatcher",
    "StreamDispatcher",
    "StreamStatus",
    "resolve_operation",
]
