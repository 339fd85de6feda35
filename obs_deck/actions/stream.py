"""
actions/stream.py — Streaming and recording outputs.

Toggle requests are single OBS calls (ToggleStream / ToggleRecord /
ToggleRecordPause) and return the state OBS reports afterwards.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional

from .base import Dispatcher, require_name


@dataclass(frozen=True)
class StreamStatus:
    active: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RecordStatus:
    active: bool
    paused: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class StreamDispatcher(Dispatcher):

    # ── Streaming ─────────────────────────────────────────────────────

    async def start_streaming(self) -> None:
        transport = await self._transport("start stream")
        await self._command(transport, "start stream", "StartStream")

    async def stop_streaming(self) -> None:
        transport = await self._transport("stop stream")
        await self._command(transport, "stop stream", "StopStream")

    async def toggle_streaming(self) -> bool:
        transport = await self._transport("toggle stream")
        data = await self._command(transport, "toggle stream", "ToggleStream")
        active = bool(data.get("outputActive", False))
        self.log.info(f"Stream toggled: active={active}")
        return active

    async def get_stream_status(self) -> StreamStatus:
        data = await self._query("get stream status", "GetStreamStatus")
        return StreamStatus(active=bool(data.get("outputActive", False)))

    async def send_stream_caption(self, caption: str) -> str:
        """Send a CEA-608 caption over the live stream. OBS rejects this when not streaming."""
        op = "send stream caption"
        transport = await self._transport(op)
        require_name(caption, "caption text")
        await self._request(transport, op, "SendStreamCaption", captionText=caption)
        return caption

    # ── Recording ─────────────────────────────────────────────────────

    async def start_recording(self) -> None:
        transport = await self._transport("start recording")
        await self._command(transport, "start recording", "StartRecord")

    async def stop_recording(self) -> str:
        """Stop recording; returns the path of the file OBS wrote (may be empty)."""
        transport = await self._transport("stop recording")
        data = await self._command(transport, "stop recording", "StopRecord")
        return data.get("outputPath", "")

    async def toggle_recording(self) -> bool:
        transport = await self._transport("toggle recording")
        data = await self._command(transport, "toggle recording", "ToggleRecord")
        active = bool(data.get("outputActive", False))
        self.log.info(f"Recording toggled: active={active}")
        return active

    async def pause_recording(self) -> None:
        transport = await self._transport("pause recording")
        await self._command(transport, "pause recording", "PauseRecord")

    async def resume_recording(self) -> None:
        transport = await self._transport("resume recording")
        await self._command(transport, "resume recording", "ResumeRecord")

    async def toggle_record_pause(self) -> Optional[bool]:
        """New paused state, or None when the OBS version does not report it."""
        transport = await self._transport("toggle recording pause")
        data = await self._command(transport, "toggle recording pause", "ToggleRecordPause")
        paused = data.get("outputPaused")
        self.log.info(f"Recording pause toggled: paused={paused}")
        return paused

    async def get_record_status(self) -> RecordStatus:
        data = await self._query("get record status", "GetRecordStatus")
        return RecordStatus(
            active=bool(data.get("outputActive", False)),
            paused=bool(data.get("outputPaused", False)),
        )
