"""
tests/conftest.py — In-memory OBS stand-in shared by the test modules.

FakeOBS speaks the same interface as OBSTransport (connect / close /
on_disconnect / register / call) and keeps just enough OBS state to answer
the requests the dispatchers issue. Failed requests raise TransportError
with OBS-style comments, like the real transport does.
"""

import asyncio
import time

import pytest

from obs_deck.config import OBSSettings
from obs_deck.core import ConnectionManager, TransportError, resolve_request_name


class FakeEvent:
    def __init__(self, datain):
        self.datain = datain


class FakeOBS:
    def __init__(self, scenes=("Starting Soon", "Live", "BRB"), fail_connect=None, connect_delay=0.0):
        self.scenes = list(scenes)
        self.program = self.scenes[0]
        self.preview = None
        self.studio_mode = False
        self.inputs = {
            "Mic/Aux": {"muted": False, "volume_db": 0.0, "settings": {"device_id": "default"}},
            "Desktop Audio": {"muted": False, "volume_db": -3.0, "settings": {}},
            "Webcam": {"muted": False, "volume_db": 0.0, "settings": {"resolution": "1280x720"}},
        }
        # scene → source → [scene item id, enabled]
        self.items = {
            "Starting Soon": {"Webcam": [3, False]},
            "Live": {"Webcam": [1, True], "Mic/Aux": [2, True]},
            "BRB": {"Webcam": [7, True]},
        }
        self.streaming = False
        self.recording = False
        self.record_paused = False
        self.captions = []
        self.fail_connect = fail_connect
        self.connect_delay = connect_delay

        self.connected = False
        self.closed = False
        self.calls = []
        self.handlers = {}
        self.lost_callback = None

    # ── OBSTransport interface ────────────────────────────────────────

    def connect(self):
        if self.connect_delay:
            time.sleep(self.connect_delay)
        if self.fail_connect:
            raise TransportError("failed to connect to OBS at localhost:4455", detail=self.fail_connect)
        self.connected = True

    def close(self):
        self.connected = False
        self.closed = True

    def on_disconnect(self, callback):
        self.lost_callback = callback

    def drop(self):
        """The websocket dies under us, as when OBS crashes."""
        self.connected = False
        self.closed = True
        if self.lost_callback is not None:
            self.lost_callback(self)

    def register(self, callback, event_name):
        self.handlers.setdefault(event_name, []).append(callback)

    def emit(self, event_name, **data):
        for cb in self.handlers.get(event_name, []):
            cb(FakeEvent(data))

    def call(self, name, **params):
        name = resolve_request_name(name)
        self.calls.append((name, params))
        if self.closed:
            raise TransportError(f"cannot {name}", detail="OBS session is closed")
        handler = getattr(self, "handle_" + name, None)
        if handler is None:
            self.reject(name, "Your request type is not valid.")
        return handler(**params) or {}

    def request_names(self):
        return [name for name, _ in self.calls]

    @staticmethod
    def reject(name, comment):
        raise TransportError(f"OBS rejected {name}", detail=comment)

    def _scene(self, name, request):
        if name not in self.scenes:
            self.reject(request, f"No source was found by the name of `{name}`.")
        return name

    def _input(self, name, request):
        if name not in self.inputs:
            self.reject(request, f"No source was found by the name of `{name}`.")
        return self.inputs[name]

    def _item(self, scene, item_id, request):
        self._scene(scene, request)
        for entry in self.items.get(scene, {}).values():
            if entry[0] == item_id:
                return entry
        self.reject(request, f"No scene items were found in scene `{scene}` with the ID `{item_id}`.")

    # ── Requests ──────────────────────────────────────────────────────

    def handle_GetVersion(self):
        return {"obsVersion": "30.1.2", "obsWebSocketVersion": "5.4.2", "platform": "linux"}

    def handle_GetSceneList(self):
        return {
            "currentProgramSceneName": self.program,
            "scenes": [{"sceneName": s, "sceneIndex": i} for i, s in enumerate(self.scenes)],
        }

    def handle_GetCurrentProgramScene(self):
        return {"currentProgramSceneName": self.program, "sceneName": self.program}

    def handle_SetCurrentProgramScene(self, sceneName):
        self.program = self._scene(sceneName, "SetCurrentProgramScene")

    def handle_GetCurrentPreviewScene(self):
        if not self.studio_mode:
            self.reject("GetCurrentPreviewScene", "Studio mode is not active.")
        return {"currentPreviewSceneName": self.preview}

    def handle_SetCurrentPreviewScene(self, sceneName):
        if not self.studio_mode:
            self.reject("SetCurrentPreviewScene", "Studio mode is not active.")
        self.preview = self._scene(sceneName, "SetCurrentPreviewScene")

    def handle_CreateScene(self, sceneName):
        if sceneName in self.scenes:
            self.reject("CreateScene", "A source already exists by that scene name.")
        self.scenes.append(sceneName)
        self.items[sceneName] = {}
        return {"sceneUuid": f"uuid-{sceneName}"}

    def handle_RemoveScene(self, sceneName):
        self.scenes.remove(self._scene(sceneName, "RemoveScene"))
        self.items.pop(sceneName, None)

    def handle_GetStreamStatus(self):
        return {"outputActive": self.streaming, "outputReconnecting": False}

    def handle_StartStream(self):
        if self.streaming:
            self.reject("StartStream", "The stream output is already active.")
        self.streaming = True

    def handle_StopStream(self):
        if not self.streaming:
            self.reject("StopStream", "The stream output is not active.")
        self.streaming = False

    def handle_ToggleStream(self):
        self.streaming = not self.streaming
        return {"outputActive": self.streaming}

    def handle_SendStreamCaption(self, captionText):
        if not self.streaming:
            self.reject("SendStreamCaption", "The stream output is not active.")
        self.captions.append(captionText)

    def handle_GetRecordStatus(self):
        return {"outputActive": self.recording, "outputPaused": self.record_paused}

    def handle_StartRecord(self):
        if self.recording:
            self.reject("StartRecord", "The record output is already active.")
        self.recording = True

    def handle_StopRecord(self):
        if not self.recording:
            self.reject("StopRecord", "The record output is not active.")
        self.recording = self.record_paused = False
        return {"outputPath": "/home/obs/Videos/2026-10-17 20-00-00.mkv"}

    def handle_ToggleRecord(self):
        self.recording = not self.recording
        self.record_paused = False
        return {"outputActive": self.recording}

    def handle_PauseRecord(self):
        if not self.recording or self.record_paused:
            self.reject("PauseRecord", "The record output is not active or already paused.")
        self.record_paused = True

    def handle_ResumeRecord(self):
        if not self.record_paused:
            self.reject("ResumeRecord", "The record output is not paused.")
        self.record_paused = False

    def handle_ToggleRecordPause(self):
        if not self.recording:
            self.reject("ToggleRecordPause", "The record output is not active.")
        self.record_paused = not self.record_paused
        return {"outputPaused": self.record_paused}

    def handle_GetInputMute(self, inputName):
        return {"inputMuted": self._input(inputName, "GetInputMute")["muted"]}

    def handle_SetInputMute(self, inputName, inputMuted):
        self._input(inputName, "SetInputMute")["muted"] = inputMuted

    def handle_ToggleInputMute(self, inputName):
        entry = self._input(inputName, "ToggleInputMute")
        entry["muted"] = not entry["muted"]
        return {"inputMuted": entry["muted"]}

    def handle_GetInputVolume(self, inputName):
        db = self._input(inputName, "GetInputVolume")["volume_db"]
        return {"inputVolumeDb": db, "inputVolumeMul": 10 ** (db / 20)}

    def handle_SetInputVolume(self, inputName, inputVolumeDb):
        self._input(inputName, "SetInputVolume")["volume_db"] = inputVolumeDb

    def handle_GetInputList(self):
        return {"inputs": [{"inputName": n, "inputKind": "test_input"} for n in self.inputs]}

    def handle_GetInputSettings(self, inputName):
        return {"inputSettings": dict(self._input(inputName, "GetInputSettings")["settings"])}

    def handle_SetInputSettings(self, inputName, inputSettings, overlay=True):
        entry = self._input(inputName, "SetInputSettings")
        entry["settings"] = {**entry["settings"], **inputSettings} if overlay else dict(inputSettings)

    def handle_GetSceneItemId(self, sceneName, sourceName):
        self._scene(sceneName, "GetSceneItemId")
        entry = self.items.get(sceneName, {}).get(sourceName)
        if entry is None:
            self.reject("GetSceneItemId", f"No scene items were found in scene `{sceneName}` with the name `{sourceName}`.")
        return {"sceneItemId": entry[0]}

    def handle_GetSceneItemEnabled(self, sceneName, sceneItemId):
        return {"sceneItemEnabled": self._item(sceneName, sceneItemId, "GetSceneItemEnabled")[1]}

    def handle_SetSceneItemEnabled(self, sceneName, sceneItemId, sceneItemEnabled):
        self._item(sceneName, sceneItemId, "SetSceneItemEnabled")[1] = sceneItemEnabled


class TransportFactory:
    """Hands out FakeOBS sessions and remembers each one it built."""

    def __init__(self, obs):
        self.obs = obs
        self.created = []

    def __call__(self, settings):
        self.created.append(settings)
        return self.obs


async def eventually(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def obs():
    return FakeOBS()


@pytest.fixture
def factory(obs):
    return TransportFactory(obs)


@pytest.fixture
def manager(factory):
    return ConnectionManager(OBSSettings(host="localhost", port=4455, password=""), transport_factory=factory)
