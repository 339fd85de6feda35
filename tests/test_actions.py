"""
tests/test_actions.py — Scene, stream/record and source dispatchers against FakeOBS.
"""

import asyncio

import pytest

from obs_deck.actions import (
    RecordStatus,
    SceneDispatcher,
    SourceDispatcher,
    StreamDispatcher,
    StreamStatus,
)
from obs_deck.core import InvalidParameterError, NotConnectedError, TransportError


@pytest.fixture
def scenes(manager):
    return SceneDispatcher(manager)


@pytest.fixture
def streams(manager):
    return StreamDispatcher(manager)


@pytest.fixture
def sources(manager):
    return SourceDispatcher(manager)


# ─── Not connected ───────────────────────────────────────────────────────────

DISPATCHER_CALLS = [
    (SceneDispatcher, "set_current_scene", ("Live",)),
    (SceneDispatcher, "get_current_scene", ()),
    (SceneDispatcher, "set_preview_scene", ("Live",)),
    (SceneDispatcher, "get_preview_scene", ()),
    (SceneDispatcher, "get_scene_list", ()),
    (SceneDispatcher, "create_scene", ("New",)),
    (SceneDispatcher, "remove_scene", ("BRB",)),
    (StreamDispatcher, "start_streaming", ()),
    (StreamDispatcher, "stop_streaming", ()),
    (StreamDispatcher, "toggle_streaming", ()),
    (StreamDispatcher, "get_stream_status", ()),
    (StreamDispatcher, "send_stream_caption", ("hello",)),
    (StreamDispatcher, "start_recording", ()),
    (StreamDispatcher, "stop_recording", ()),
    (StreamDispatcher, "toggle_recording", ()),
    (StreamDispatcher, "pause_recording", ()),
    (StreamDispatcher, "resume_recording", ()),
    (StreamDispatcher, "toggle_record_pause", ()),
    (StreamDispatcher, "get_record_status", ()),
    (SourceDispatcher, "get_mute", ("Mic/Aux",)),
    (SourceDispatcher, "set_mute", ("Mic/Aux", True)),
    (SourceDispatcher, "toggle_mute", ("Mic/Aux",)),
    (SourceDispatcher, "get_volume", ("Mic/Aux",)),
    (SourceDispatcher, "set_volume", ("Mic/Aux", -6.0)),
    (SourceDispatcher, "get_scene_item_id", ("Live", "Webcam")),
    (SourceDispatcher, "get_source_visibility", ("Live", 1)),
    (SourceDispatcher, "set_source_visibility", ("Live", 1, False)),
    (SourceDispatcher, "toggle_source_visibility", ("Live", 1)),
    (SourceDispatcher, "set_visibility_by_name", ("Webcam", False)),
    (SourceDispatcher, "toggle_visibility_by_name", ("Webcam",)),
    (SourceDispatcher, "get_input_list", ()),
    (SourceDispatcher, "get_input_settings", ("Webcam",)),
    (SourceDispatcher, "set_input_settings", ("Webcam", {"resolution": "1920x1080"})),
]


@pytest.mark.asyncio
@pytest.mark.parametrize("cls,method,args", DISPATCHER_CALLS)
async def test_not_connected_issues_no_requests(manager, obs, cls, method, args):
    dispatcher = cls(manager)
    with pytest.raises(NotConnectedError):
        await getattr(dispatcher, method)(*args)
    assert obs.calls == []
    assert not manager.is_connected()


@pytest.mark.asyncio
async def test_connectivity_checked_before_parameters(sources, obs):
    with pytest.raises(NotConnectedError):
        await sources.set_volume("", 999.0)
    assert obs.calls == []


@pytest.mark.asyncio
async def test_stream_status_while_disconnected(streams, manager):
    with pytest.raises(NotConnectedError) as exc:
        await streams.get_stream_status()
    assert exc.value.code == "NOT_CONNECTED"
    assert "get stream status" in str(exc.value)
    assert manager.status.value == "disconnected"


# ─── Scenes ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_end_to_end_scene_flow(manager, scenes, obs):
    await manager.connect()
    assert manager.is_connected()

    assert await scenes.get_scene_list() == ["Starting Soon", "Live", "BRB"]

    with pytest.raises(TransportError) as exc:
        await scenes.set_current_scene("Gameplay")
    assert exc.value.detail == "No source was found by the name of `Gameplay`."
    assert "Gameplay" in str(exc.value)
    assert manager.is_connected()
    assert obs.program == "Starting Soon"


@pytest.mark.asyncio
async def test_set_and_get_current_scene(manager, scenes, obs):
    await manager.connect()
    assert await scenes.set_current_scene("Live") == "Live"
    assert obs.program == "Live"
    assert await scenes.get_current_scene() == "Live"
    assert obs.request_names() == ["SetCurrentProgramScene", "GetCurrentProgramScene"]


@pytest.mark.asyncio
async def test_preview_scene_without_studio_mode(manager, scenes):
    await manager.connect()
    with pytest.raises(TransportError) as exc:
        await scenes.set_preview_scene("Live")
    assert exc.value.detail == "Studio mode is not active."


@pytest.mark.asyncio
async def test_preview_scene_in_studio_mode(manager, scenes, obs):
    obs.studio_mode = True
    await manager.connect()
    await scenes.set_preview_scene("BRB")
    assert await scenes.get_preview_scene() == "BRB"


@pytest.mark.asyncio
async def test_create_and_remove_scene(manager, scenes, obs):
    await manager.connect()
    await scenes.create_scene("Interview")
    assert "Interview" in await scenes.get_scene_list()
    await scenes.remove_scene("Interview")
    assert "Interview" not in obs.scenes


@pytest.mark.asyncio
@pytest.mark.parametrize("bad", ["", "   ", None, 42])
async def test_scene_name_validation(manager, scenes, obs, bad):
    await manager.connect()
    with pytest.raises(InvalidParameterError):
        await scenes.set_current_scene(bad)
    assert obs.calls == []


# ─── Streaming / recording ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_streaming_lifecycle(manager, streams, obs):
    await manager.connect()
    assert await streams.get_stream_status() == StreamStatus(active=False)
    await streams.start_streaming()
    assert (await streams.get_stream_status()).active
    await streams.send_stream_caption("Welcome back")
    assert obs.captions == ["Welcome back"]
    assert await streams.toggle_streaming() is False
    assert not obs.streaming


@pytest.mark.asyncio
async def test_stop_stream_when_not_streaming(manager, streams):
    await manager.connect()
    with pytest.raises(TransportError) as exc:
        await streams.stop_streaming()
    assert "stop stream" in exc.value.message
    assert exc.value.detail == "The stream output is not active."
    assert manager.is_connected()


@pytest.mark.asyncio
async def test_recording_lifecycle(manager, streams):
    await manager.connect()
    await streams.start_recording()
    await streams.pause_recording()
    assert await streams.get_record_status() == RecordStatus(active=True, paused=True)
    await streams.resume_recording()
    assert await streams.toggle_record_pause() is True
    assert await streams.toggle_record_pause() is False
    path = await streams.stop_recording()
    assert path.endswith(".mkv")
    assert await streams.toggle_recording() is True
    assert (await streams.get_record_status()).to_dict() == {"active": True, "paused": False}


# ─── Sources ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_volume_round_trip(manager, sources):
    await manager.connect()
    await sources.set_volume("Mic/Aux", -6.0)
    assert await sources.get_volume("Mic/Aux") == pytest.approx(-6.0)


@pytest.mark.asyncio
@pytest.mark.parametrize("bad", [-100.1, 26.5, float("nan"), float("inf"), "loud", True])
async def test_volume_validation(manager, sources, obs, bad):
    await manager.connect()
    with pytest.raises(InvalidParameterError):
        await sources.set_volume("Mic/Aux", bad)
    assert obs.calls == []


@pytest.mark.asyncio
async def test_volume_bounds_are_inclusive(manager, sources, obs):
    await manager.connect()
    await sources.set_volume("Mic/Aux", -100)
    await sources.set_volume("Desktop Audio", 26.0)
    assert obs.inputs["Mic/Aux"]["volume_db"] == -100.0


@pytest.mark.asyncio
async def test_set_volume_unknown_input_carries_context(manager, sources):
    await manager.connect()
    with pytest.raises(TransportError) as exc:
        await sources.set_volume("Guitar", -6.0)
    assert "set volume for input 'Guitar'" in exc.value.message
    assert "Guitar" in exc.value.detail


@pytest.mark.asyncio
async def test_toggle_mute_twice_is_identity(manager, sources):
    await manager.connect()
    assert await sources.get_mute("Mic/Aux") is False
    assert await sources.toggle_mute("Mic/Aux") is True
    assert await sources.toggle_mute("Mic/Aux") is False
    assert await sources.get_mute("Mic/Aux") is False


@pytest.mark.asyncio
async def test_set_mute_requires_bool(manager, sources, obs):
    await manager.connect()
    with pytest.raises(InvalidParameterError):
        await sources.set_mute("Mic/Aux", "yes")
    await sources.set_mute("Mic/Aux", True)
    assert obs.inputs["Mic/Aux"]["muted"] is True


@pytest.mark.asyncio
async def test_visibility_by_item_id(manager, sources, obs):
    await manager.connect()
    item_id = await sources.get_scene_item_id("Live", "Webcam")
    assert item_id == 1
    assert await sources.get_source_visibility("Live", item_id) is True
    await sources.set_source_visibility("Live", item_id, False)
    assert obs.items["Live"]["Webcam"][1] is False
    assert await sources.toggle_source_visibility("Live", item_id) is True
    assert obs.request_names()[-2:] == ["GetSceneItemEnabled", "SetSceneItemEnabled"]


@pytest.mark.asyncio
async def test_visibility_toggle_follows_the_live_scene(manager, sources, scenes, obs):
    await manager.connect()
    await scenes.set_current_scene("Live")
    first = await sources.toggle_visibility_by_name("Webcam")
    assert first == {"scene": "Live", "source": "Webcam", "scene_item_id": 1, "visible": False}

    # someone switches scenes in the OBS UI between presses
    obs.program = "BRB"
    second = await sources.toggle_visibility_by_name("Webcam")
    assert second["scene"] == "BRB"
    assert second["scene_item_id"] == 7

    assert obs.items["Live"]["Webcam"][1] is False
    assert obs.items["BRB"]["Webcam"][1] is False
    lookups = [p["sceneName"] for name, p in obs.calls if name == "GetSceneItemId"]
    assert lookups == ["Live", "BRB"]


@pytest.mark.asyncio
async def test_set_visibility_by_name_missing_source(manager, sources, obs):
    await manager.connect()
    with pytest.raises(TransportError) as exc:
        await sources.set_visibility_by_name("Guest Cam", True)
    assert "Guest Cam" in exc.value.detail
    assert "SetSceneItemEnabled" not in obs.request_names()


@pytest.mark.asyncio
async def test_negative_item_id_rejected(manager, sources, obs):
    await manager.connect()
    with pytest.raises(InvalidParameterError):
        await sources.set_source_visibility("Live", -1, True)
    assert obs.calls == []


@pytest.mark.asyncio
async def test_input_list_and_settings(manager, sources, obs):
    await manager.connect()
    assert await sources.get_input_list() == ["Mic/Aux", "Desktop Audio", "Webcam"]

    await sources.set_input_settings("Webcam", {"resolution": "1920x1080", "fps": 30})
    assert await sources.get_input_settings("Webcam") == {"resolution": "1920x1080", "fps": 30}

    await sources.set_input_settings("Webcam", {"fps": 60}, overlay=False)
    assert obs.inputs["Webcam"]["settings"] == {"fps": 60}


@pytest.mark.asyncio
async def test_input_settings_must_be_json_values(manager, sources, obs):
    await manager.connect()
    with pytest.raises(InvalidParameterError):
        await sources.set_input_settings("Webcam", {"callback": object()})
    assert obs.calls == []


@pytest.mark.asyncio
async def test_stale_handle_after_disconnect_surfaces_transport_error(manager, sources):
    await manager.connect()
    transport = await manager.handle()
    await manager.disconnect()
    with pytest.raises(TransportError):
        await sources._request(transport, "get input list", "GetInputList")


@pytest.mark.asyncio
async def test_concurrent_calls_share_the_session(manager, sources, scenes):
    await manager.connect()
    results = await asyncio.gather(
        sources.get_input_list(),
        scenes.get_scene_list(),
        sources.get_volume("Desktop Audio"),
    )
    assert results[2] == pytest.approx(-3.0)
    assert manager.is_connected()
