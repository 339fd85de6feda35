"""
core/errors.py — Error taxonomy shared by the connection manager and dispatchers.

Every failure that leaves obs_deck is one of four kinds, each carrying a
stable `code` so the front end can map it onto an ERROR payload:

  NOT_CONNECTED      no live OBS session
  ALREADY_CONNECTED  connect() called on a live session
  TRANSPORT_FAILURE  OBS rejected the request, or the websocket failed
  INVALID_PARAMETER  validation failed before any request was sent

The raw OBS/websocket text is never dropped: it lives in `detail` and is
appended to str(err).
"""

from __future__ import annotations

from typing import Optional


class OBSDeckError(Exception):
    code = "OBS_DECK_ERROR"

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(f"{message}: {detail}" if detail else message)

    def to_payload(self):
        from obs_deck.schema import ErrorPayload
        return ErrorPayload(code=self.code, message=self.message, details=self.detail or "")


class NotConnectedError(OBSDeckError):
    code = "NOT_CONNECTED"

    def __init__(self, operation: str = ""):
        message = "not connected to OBS"
        super().__init__(f"cannot {operation}: {message}" if operation else message)


class AlreadyConnectedError(OBSDeckError):
    code = "ALREADY_CONNECTED"

    def __init__(self, message: str = "already connected to OBS"):
        super().__init__(message)


class TransportError(OBSDeckError):
    code = "TRANSPORT_FAILURE"


class InvalidParameterError(OBSDeckError):
    code = "INVALID_PARAMETER"
