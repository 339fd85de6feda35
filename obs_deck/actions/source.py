"""
actions/source.py — Inputs (audio mute/volume, settings) and scene item visibility.

Volume is in dB, -100.0 to +26.0, with 0.0 as unity gain. Values outside
that range are rejected before any request is sent.

Scene items are addressed by (scene_name, scene_item_id). The *_by_name
helpers resolve the id against whatever program scene is live at call time,
with no caching between calls.

Known races, accepted rather than locked against (OBS itself offers no
compare-and-set):
  - toggle_source_visibility reads the current state and writes the inverse
    in two requests; two concurrent toggles on the same item can cancel out
    or both apply.
  - the *_by_name helpers look up the program scene, then the item id, then
    act; if the program scene changes in between, the item in the previous
    scene is the one affected.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import ValidationError

from obs_deck.core.errors import InvalidParameterError, TransportError
from obs_deck.schema.values import validate_properties

from .base import Dispatcher, require_bool, require_item_id, require_name, require_volume_db


class SourceDispatcher(Dispatcher):

    # ── Audio ─────────────────────────────────────────────────────────

    async def get_mute(self, input_name: str) -> bool:
        op = f"get mute state for input {input_name!r}"
        transport = await self._transport(op)
        require_name(input_name, "input name")
        data = await self._request(transport, op, "GetInputMute", inputName=input_name)
        return bool(data.get("inputMuted", False))

    async def set_mute(self, input_name: str, muted: bool) -> bool:
        op = f"set mute for input {input_name!r} to {muted}"
        transport = await self._transport(op)
        require_name(input_name, "input name")
        require_bool(muted, "muted")
        await self._command(transport, op, "SetInputMute", inputName=input_name, inputMuted=muted)
        return muted

    async def toggle_mute(self, input_name: str) -> bool:
        op = f"toggle mute for input {input_name!r}"
        transport = await self._transport(op)
        require_name(input_name, "input name")
        data = await self._command(transport, op, "ToggleInputMute", inputName=input_name)
        muted = bool(data.get("inputMuted", False))
        self.log.info(f"Toggled mute for {input_name}: now muted={muted}")
        return muted

    async def get_volume(self, input_name: str) -> float:
        op = f"get volume for input {input_name!r}"
        transport = await self._transport(op)
        require_name(input_name, "input name")
        data = await self._request(transport, op, "GetInputVolume", inputName=input_name)
        return float(data.get("inputVolumeDb", 0.0))

    async def set_volume(self, input_name: str, volume_db: float) -> float:
        op = f"set volume for input {input_name!r} to {volume_db} dB"
        transport = await self._transport(op)
        require_name(input_name, "input name")
        volume_db = require_volume_db(volume_db)
        await self._command(transport, op, "SetInputVolume", inputName=input_name, inputVolumeDb=volume_db)
        return volume_db

    # ── Scene item visibility ─────────────────────────────────────────

    async def get_scene_item_id(self, scene_name: str, source_name: str) -> int:
        op = f"get scene item id for {source_name!r} in scene {scene_name!r}"
        transport = await self._transport(op)
        require_name(scene_name, "scene name")
        require_name(source_name, "source name")
        return await self._lookup_item_id(transport, scene_name, source_name)

    async def get_source_visibility(self, scene_name: str, scene_item_id: int) -> bool:
        op = f"get visibility of item {scene_item_id} in scene {scene_name!r}"
        transport = await self._transport(op)
        require_name(scene_name, "scene name")
        require_item_id(scene_item_id)
        return await self._item_enabled(transport, op, scene_name, scene_item_id)

    async def set_source_visibility(self, scene_name: str, scene_item_id: int, visible: bool) -> bool:
        op = f"set visibility of item {scene_item_id} in scene {scene_name!r} to {visible}"
        transport = await self._transport(op)
        require_name(scene_name, "scene name")
        require_item_id(scene_item_id)
        require_bool(visible, "visible")
        await self._set_item_enabled(transport, op, scene_name, scene_item_id, visible)
        return visible

    async def toggle_source_visibility(self, scene_name: str, scene_item_id: int) -> bool:
        op = f"toggle visibility of item {scene_item_id} in scene {scene_name!r}"
        transport = await self._transport(op)
        require_name(scene_name, "scene name")
        require_item_id(scene_item_id)
        visible = not await self._item_enabled(transport, op, scene_name, scene_item_id)
        await self._set_item_enabled(transport, op, scene_name, scene_item_id, visible)
        return visible

    async def set_visibility_by_name(self, source_name: str, visible: bool) -> dict:
        """Show or hide `source_name` in the program scene that is live right now."""
        op = f"set visibility of source {source_name!r} to {visible}"
        transport = await self._transport(op)
        require_name(source_name, "source name")
        require_bool(visible, "visible")
        scene_name, item_id = await self._resolve_in_program_scene(transport, op, source_name)
        await self._set_item_enabled(transport, op, scene_name, item_id, visible)
        return {"scene": scene_name, "source": source_name, "scene_item_id": item_id, "visible": visible}

    async def toggle_visibility_by_name(self, source_name: str) -> dict:
        """Flip `source_name` in the program scene that is live right now."""
        op = f"toggle visibility of source {source_name!r}"
        transport = await self._transport(op)
        require_name(source_name, "source name")
        scene_name, item_id = await self._resolve_in_program_scene(transport, op, source_name)
        visible = not await self._item_enabled(transport, op, scene_name, item_id)
        await self._set_item_enabled(transport, op, scene_name, item_id, visible)
        return {"scene": scene_name, "source": source_name, "scene_item_id": item_id, "visible": visible}

    async def _resolve_in_program_scene(self, transport: Any, op: str, source_name: str) -> tuple[str, int]:
        data = await self._request(transport, op, "GetCurrentProgramScene")
        scene_name = data.get("currentProgramSceneName") or data.get("sceneName", "")
        return scene_name, await self._lookup_item_id(transport, scene_name, source_name)

    async def _lookup_item_id(self, transport: Any, scene_name: str, source_name: str) -> int:
        op = f"get scene item id for {source_name!r} in scene {scene_name!r}"
        data = await self._request(
            transport, op, "GetSceneItemId", sceneName=scene_name, sourceName=source_name
        )
        item_id = data.get("sceneItemId")
        if item_id is None:
            raise TransportError(f"failed to {op}", detail="OBS returned no sceneItemId")
        return int(item_id)

    async def _item_enabled(self, transport: Any, op: str, scene_name: str, item_id: int) -> bool:
        data = await self._request(
            transport, op, "GetSceneItemEnabled", sceneName=scene_name, sceneItemId=item_id
        )
        return bool(data.get("sceneItemEnabled", False))

    async def _set_item_enabled(
        self, transport: Any, op: str, scene_name: str, item_id: int, visible: bool
    ) -> None:
        await self._command(
            transport, op, "SetSceneItemEnabled",
            sceneName=scene_name, sceneItemId=item_id, sceneItemEnabled=visible,
        )

    # ── Inputs ────────────────────────────────────────────────────────

    async def get_input_list(self) -> list[str]:
        data = await self._query("get input list", "GetInputList")
        return [i["inputName"] for i in data.get("inputs", [])]

    async def get_input_settings(self, input_name: str) -> dict:
        op = f"get settings for input {input_name!r}"
        transport = await self._transport(op)
        require_name(input_name, "input name")
        data = await self._request(transport, op, "GetInputSettings", inputName=input_name)
        return dict(data.get("inputSettings") or {})

    async def set_input_settings(
        self, input_name: str, settings: Mapping[str, Any], overlay: bool = True
    ) -> dict:
        """
        Apply `settings` to an input. With overlay=True (OBS default) the keys
        are merged into the existing settings; with overlay=False they replace
        them wholesale.
        """
        op = f"set settings for input {input_name!r}"
        transport = await self._transport(op)
        require_name(input_name, "input name")
        require_bool(overlay, "overlay")
        try:
            settings = validate_properties(settings)
        except ValidationError as e:
            raise InvalidParameterError("input settings must be a mapping of JSON values", detail=str(e)) from e
        await self._command(
            transport, op, "SetInputSettings",
            inputName=input_name, inputSettings=settings, overlay=overlay,
        )
        return settings
