from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from projection_studio.api.app import app, get_gemini, get_runway, get_session
from projection_studio.errors import GenerationServiceError
from projection_studio.session import StudioSession
from projection_studio.storage import SavedInspirationStore

A = "data:image/png;base64,AAAA"


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def session(tmp_path, make_service):
    s = StudioSession(service=make_service(), store=SavedInspirationStore(root_dir=tmp_path))
    app.dependency_overrides[get_session] = lambda: s
    return s


def _upload(file, field):
    return (field, (file.filename, file.content, file.mime_type))


def test_design_endpoint_without_key(client):
    app.dependency_overrides[get_gemini] = lambda: None
    resp = client.post("/generateGeminiDesign", data={"params": '{"isFunMode": true, "prompt": "x"}'})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Server configuration error: Gemini API key is missing."}


def test_design_endpoint_fun_mode(client):
    gemini = SimpleNamespace(
        generate_design=AsyncMock(return_value=(A, {"type": 'Gemini "Have Fun" Image Generation'}))
    )
    app.dependency_overrides[get_gemini] = lambda: gemini

    resp = client.post("/generateGeminiDesign", data={"params": '{"isFunMode": true, "prompt": "a dreamy theme."}'})

    assert resp.status_code == 200
    assert resp.json()["imageUrl"] == A
    assert resp.json()["debugInfo"]["type"].startswith("Gemini")
    assert gemini.generate_design.call_args.kwargs["prompt"] == "a dreamy theme."


def test_design_endpoint_facade_needs_map(client):
    app.dependency_overrides[get_gemini] = lambda: SimpleNamespace(generate_design=AsyncMock())
    resp = client.post("/generateGeminiDesign", data={"params": '{"isFunMode": false, "prompt": "x"}'})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Internal Server Error: A map file is required."


def test_design_endpoint_no_image(client, house):
    app.dependency_overrides[get_gemini] = lambda: SimpleNamespace(generate_design=AsyncMock(return_value=(None, {})))
    resp = client.post(
        "/generateGeminiDesign",
        data={"params": '{"isFunMode": false, "prompt": "x"}'},
        files=[_upload(house, "mapFile")],
    )
    assert resp.json()["error"] == "Internal Server Error: AI did not return an image."


def test_design_endpoint_rejects_bad_params(client):
    app.dependency_overrides[get_gemini] = lambda: SimpleNamespace(generate_design=AsyncMock())
    resp = client.post("/generateGeminiDesign", data={"params": "[1, 2]"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal Server Error: params must be JSON object"}


def test_video_endpoint_rejects_malformed_params(client, house):
    runway = SimpleNamespace(generate_video=AsyncMock())
    app.dependency_overrides[get_runway] = lambda: runway
    resp = client.post(
        "/generateRunwayVideo",
        data={"params": "{not json"},
        files=[_upload(house, "startSceneFile")],
    )
    assert resp.status_code == 500
    assert resp.json()["error"].startswith("Internal Server Error: params must be JSON object")
    runway.generate_video.assert_not_awaited()


def test_enhance_endpoint_rejects_malformed_params(client):
    app.dependency_overrides[get_gemini] = lambda: SimpleNamespace(enhance_prompt=AsyncMock())
    resp = client.post("/enhanceTextPrompt", data={"params": "\"snow\""})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal Server Error: params must be JSON object"}


def test_video_endpoint(client, house):
    runway = SimpleNamespace(generate_video=AsyncMock(return_value=("https://cdn.test/v.mp4", {"type": "runway"})))
    app.dependency_overrides[get_runway] = lambda: runway

    resp = client.post(
        "/generateRunwayVideo",
        data={"params": '{"videoSubType": "life", "videoDuration": 10, "prompt": "p"}'},
        files=[_upload(house, "startSceneFile")],
    )

    assert resp.status_code == 200
    assert resp.json() == {"videoUrl": "https://cdn.test/v.mp4", "debugInfo": {"type": "runway"}}
    assert runway.generate_video.call_args.kwargs["duration"] == 10


def test_video_endpoint_transition_needs_end_scene(client, house):
    app.dependency_overrides[get_runway] = lambda: SimpleNamespace(generate_video=AsyncMock())
    resp = client.post(
        "/generateRunwayVideo",
        data={"params": '{"videoSubType": "transition", "prompt": "p"}'},
        files=[_upload(house, "startSceneFile")],
    )
    assert resp.status_code == 500
    assert "end scene" in resp.json()["error"]


def test_video_endpoint_provider_error(client, house):
    runway = SimpleNamespace(generate_video=AsyncMock(side_effect=GenerationServiceError("Runway task failed: nsfw")))
    app.dependency_overrides[get_runway] = lambda: runway
    resp = client.post("/generateRunwayVideo", data={"params": "{}"}, files=[_upload(house, "startSceneFile")])
    assert resp.json() == {"error": "Internal Server Error: Runway task failed: nsfw"}


def test_enhance_endpoint(client):
    app.dependency_overrides[get_gemini] = lambda: SimpleNamespace(enhance_prompt=AsyncMock(return_value="vivid snow"))
    resp = client.post("/enhanceTextPrompt", data={"params": '{"prompt": "snow"}'})
    assert resp.status_code == 200
    assert resp.json()["prompt"] == "vivid snow"


def test_studio_generate_preprocesses_and_fans_out(client, session, make_png):
    big = make_png(2560, 1920, name="house.png")
    resp = client.post(
        "/studio/generate",
        data={"generation_type": "image", "text_prompt": "snow", "num_outputs": "3"},
        files=[_upload(big, "map_file")],
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["error"] is None
    assert len(body["results"]) == 3
    assert body["results"][0]["kind"] == "image"

    sent_request, _ = session.service.design_calls[0]
    assert sent_request.map_file.filename == "processed-house.png"
    assert sent_request.num_outputs == 3


def test_studio_generate_missing_input(client, session):
    resp = client.post("/studio/generate", data={"generation_type": "video", "video_sub_type": "transition"})
    assert resp.status_code == 400
    assert "start_scene_file" in resp.json()["detail"]
    assert session.service.video_calls == []


def test_studio_generate_reports_total_failure(client, session, house):
    session.service.outcomes = [RuntimeError("first"), RuntimeError("second")]
    resp = client.post(
        "/studio/generate",
        data={"text_prompt": "x"},
        files=[_upload(house, "map_file")],
    )
    assert resp.status_code == 200
    assert resp.json()["results"] == []
    assert resp.json()["error"] == "first"


def test_studio_generate_rejects_unknown_theme(client, session):
    resp = client.post("/studio/generate", data={"surprise_theme": "easter"})
    assert resp.status_code == 400


def test_studio_preview(client, session, house):
    client.post("/studio/generate", data={"text_prompt": "x"}, files=[_upload(house, "map_file")])
    assert client.get("/studio/results/1").json()["index"] == 1
    assert client.get("/studio/results/5").status_code == 404


def test_studio_inspiration_flow(client, session):
    assert client.post("/studio/inspiration", data={"data_url": A}).json() == {"added": True, "count": 1}
    assert client.post("/studio/inspiration", data={"data_url": A}).json() == {"added": False, "count": 1}
    assert client.post("/studio/inspiration", data={"data_url": "https://x"}).status_code == 400

    assert client.post("/studio/inspiration/select", data={"data_url": A}).json() == {"selected": [A]}
    assert client.get("/studio/inspiration").json() == {"items": [A], "selected": [A]}

    assert client.post("/studio/inspiration/delete", data={"data_url": A}).json() == {"removed": True, "count": 0}
    assert client.get("/studio/inspiration").json() == {"items": [], "selected": []}


def test_studio_enhance_and_debug(client, session):
    assert client.post("/studio/enhance", data={"prompt": "snow"}).json() == {"prompt": "an enhanced prompt"}
    assert client.get("/studio/debug").json() == {"logs": []}


def test_studio_generate_returns_only_its_own_debug_logs(client, session, house):
    async def publishing_design(request, inspiration, debug=None):
        debug.publish({"type": "Request to Backend", "prompt": request.text_prompt})
        return A

    session.service.generate_design = publishing_design
    map_part = [_upload(house, "map_file")]
    first = client.post("/studio/generate", data={"text_prompt": "one", "num_outputs": "1"}, files=map_part)
    second = client.post("/studio/generate", data={"text_prompt": "two", "num_outputs": "1"}, files=map_part)

    assert [e["prompt"] for e in first.json()["debugLogs"]] == ["one"]
    assert [e["prompt"] for e in second.json()["debugLogs"]] == ["two"]
    assert [e["prompt"] for e in client.get("/studio/debug").json()["logs"]] == ["two"]


def test_studio_enhance_maps_service_error_to_502(client, session):
    session.service.enhance_prompt = AsyncMock(side_effect=GenerationServiceError("enhancer down"))
    resp = client.post("/studio/enhance", data={"prompt": "snow"})
    assert resp.status_code == 502
    assert resp.json()["detail"] == "enhancer down"
    assert session.last is None


def test_studio_generate_rejects_truncated_map(client, session, truncated_png):
    resp = client.post("/studio/generate", data={"text_prompt": "x"}, files=[_upload(truncated_png, "map_file")])
    assert resp.status_code == 400
    assert "could not decode" in resp.json()["detail"]
    assert session.service.design_calls == []
