"""
actions/scene.py — Program / preview scene control.

Scenes are addressed by name. The scene list is fetched fresh on every call;
OBS is the only source of truth and users change it behind our back.

Preview scenes only exist while studio mode is enabled. Without it OBS
rejects the request and its own error text is surfaced unchanged.
"""

from __future__ import annotations

from .base import Dispatcher, require_name


class SceneDispatcher(Dispatcher):

    async def set_current_scene(self, scene_name: str) -> str:
        op = f"set current scene to {scene_name!r}"
        transport = await self._transport(op)
        require_name(scene_name, "scene name")
        await self._command(transport, op, "SetCurrentProgramScene", sceneName=scene_name)
        return scene_name

    async def get_current_scene(self) -> str:
        data = await self._query("get current scene", "GetCurrentProgramScene")
        return data.get("currentProgramSceneName") or data.get("sceneName", "")

    async def set_preview_scene(self, scene_name: str) -> str:
        op = f"set preview scene to {scene_name!r}"
        transport = await self._transport(op)
        require_name(scene_name, "scene name")
        await self._command(transport, op, "SetCurrentPreviewScene", sceneName=scene_name)
        return scene_name

    async def get_preview_scene(self) -> str:
        data = await self._query("get preview scene", "GetCurrentPreviewScene")
        return data.get("currentPreviewSceneName") or data.get("sceneName", "")

    async def get_scene_list(self) -> list[str]:
        """Scene names in the order OBS reports them."""
        data = await self._query("get scene list", "GetSceneList")
        return [s["sceneName"] for s in data.get("scenes", [])]

    async def create_scene(self, scene_name: str) -> str:
        op = f"create scene {scene_name!r}"
        transport = await self._transport(op)
        require_name(scene_name, "scene name")
        await self._command(transport, op, "CreateScene", sceneName=scene_name)
        return scene_name

    async def remove_scene(self, scene_name: str) -> str:
        op = f"remove scene {scene_name!r}"
        transport = await self._transport(op)
        require_name(scene_name, "scene name")
        await self._command(transport, op, "RemoveScene", sceneName=scene_name)
        return scene_name
