from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from projection_studio.assembly.preprocess import preprocess_image
from projection_studio.config import settings
from projection_studio.errors import StudioError, parse_api_error
from projection_studio.models import (
    GenerationRequest,
    GenerationResult,
    GenerationType,
    ImageSubType,
    MediaFile,
    SurpriseTheme,
    ThemeTab,
    VideoSubType,
)
from projection_studio.providers.base import GenerationService, ServiceResponse
from projection_studio.providers.gemini_provider import GeminiProvider
from projection_studio.providers.local import LocalGenerationService
from projection_studio.providers.remote import RemoteGenerationService
from projection_studio.providers.runway_provider import RunwayProvider
from projection_studio.session import StudioSession

logger = logging.getLogger(__name__)

app = FastAPI(title="projection_studio")


def get_gemini() -> GeminiProvider | None:
    if not settings.gemini_api_key:
        return None
    return GeminiProvider(api_key=settings.gemini_api_key)


def get_runway() -> RunwayProvider | None:
    if not settings.runway_api_key:
        return None
    return RunwayProvider(api_key=settings.runway_api_key)


def _build_service() -> GenerationService:
    if settings.generation_service_url:
        return RemoteGenerationService(base_url=settings.generation_service_url)
    return LocalGenerationService()


@lru_cache(maxsize=1)
def get_session() -> StudioSession:
    return StudioSession(service=_build_service())


def _parse_params(raw: str) -> dict[str, Any]:
    try:
        params = json.loads(raw or "{}")
    except ValueError as exc:
        raise ValueError(f"params must be JSON object: {exc}") from exc
    if not isinstance(params, dict):
        raise ValueError("params must be JSON object")
    return params


def _parse_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


async def _read_upload(upload: UploadFile | None) -> MediaFile | None:
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    if not content:
        return None
    return MediaFile(filename=upload.filename, content=content, mime_type=upload.content_type or "image/png")


def _envelope(resp: ServiceResponse, media_key: str) -> JSONResponse:
    if resp.error is not None:
        return JSONResponse(status_code=500, content={"error": resp.error})
    return JSONResponse(content={media_key: resp.media_url, "debugInfo": resp.debug_info or {}})


def _internal_error(where: str, exc: Exception) -> ServiceResponse:
    logger.error("Error in %s: %s", where, exc)
    return ServiceResponse(media_url=None, error=f"Internal Server Error: {exc}")


# Generation backend. Request: multipart with file parts and one JSON `params`
# field. Response: {"imageUrl"|"videoUrl", "debugInfo"} or {"error"} with 500.


@app.post("/generateGeminiDesign")
async def generate_gemini_design(
    params: str = Form("{}"),
    mapFile: UploadFile | None = File(None),
    gemini: GeminiProvider | None = Depends(get_gemini),
):
    if gemini is None:
        logger.error("GEMINI_API_KEY not set.")
        return _envelope(
            ServiceResponse(media_url=None, error="Server configuration error: Gemini API key is missing."),
            "imageUrl",
        )

    try:
        parsed = _parse_params(params)
        map_file = await _read_upload(mapFile)
        if not parsed.get("isFunMode") and map_file is None:
            raise ValueError("A map file is required.")
        url, debug_info = await gemini.generate_design(
            prompt=str(parsed.get("prompt") or ""),
            is_fun_mode=bool(parsed.get("isFunMode")),
            map_file=map_file,
        )
        if not url:
            raise ValueError("AI did not return an image.")
        resp = ServiceResponse(media_url=url, debug_info=debug_info)
    except Exception as exc:
        resp = _internal_error("generateGeminiDesign", exc)
    return _envelope(resp, "imageUrl")


@app.post("/generateRunwayVideo")
async def generate_runway_video(
    params: str = Form("{}"),
    startSceneFile: UploadFile | None = File(None),
    endSceneFile: UploadFile | None = File(None),
    runway: RunwayProvider | None = Depends(get_runway),
):
    if runway is None:
        logger.error("RUNWAY_API_KEY not set.")
        return _envelope(
            ServiceResponse(media_url=None, error="Server configuration error: Runway API key is missing."),
            "videoUrl",
        )

    try:
        parsed = _parse_params(params)
        start_scene = await _read_upload(startSceneFile)
        end_scene = await _read_upload(endSceneFile)
        if start_scene is None:
            raise ValueError("A start scene file is required.")
        sub_type = VideoSubType(parsed.get("videoSubType") or VideoSubType.LIFE.value)
        if sub_type == VideoSubType.TRANSITION and end_scene is None:
            raise ValueError("An end scene file is required for transitions.")
        url, debug_info = await runway.generate_video(
            prompt=str(parsed.get("prompt") or ""),
            video_sub_type=sub_type,
            duration=_parse_int(str(parsed.get("videoDuration", "")), 5),
            start_scene=start_scene,
            end_scene=end_scene,
        )
        resp = ServiceResponse(media_url=url, debug_info=debug_info)
    except Exception as exc:
        resp = _internal_error("generateRunwayVideo", exc)
    return _envelope(resp, "videoUrl")


@app.post("/enhanceTextPrompt")
async def enhance_text_prompt(
    params: str = Form("{}"),
    gemini: GeminiProvider | None = Depends(get_gemini),
):
    if gemini is None:
        return JSONResponse(status_code=500, content={"error": "Server configuration error: Gemini API key is missing."})
    try:
        prompt = str(_parse_params(params).get("prompt") or "").strip()
    except ValueError as exc:
        return JSONResponse(status_code=500, content={"error": _internal_error("enhanceTextPrompt", exc).error})
    if not prompt:
        raise HTTPException(status_code=400, detail="prompt is required")
    try:
        enhanced = await gemini.enhance_prompt(prompt)
    except Exception as exc:
        return JSONResponse(status_code=500, content={"error": _internal_error("enhanceTextPrompt", exc).error})
    return {
        "prompt": enhanced,
        "debugInfo": {"type": "Gemini Prompt Enhancement", "request": {"model": settings.gemini_text_model}},
    }


# Studio: builds requests from form input, fans them out and keeps saved inspiration.


def _result_payload(result: GenerationResult) -> dict[str, str]:
    return {"mediaUrl": result.media_url, "kind": result.kind.value}


async def _preprocessed(upload: UploadFile | None) -> MediaFile | None:
    file = await _read_upload(upload)
    if file is None:
        return None
    try:
        return preprocess_image(file, settings.canvas_width, settings.canvas_height).file
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/studio/generate")
async def studio_generate(
    generation_type: GenerationType = Form(GenerationType.IMAGE),
    image_sub_type: ImageSubType = Form(ImageSubType.FACADE),
    video_sub_type: VideoSubType = Form(VideoSubType.LIFE),
    active_tab: ThemeTab = Form(ThemeTab.TEXT),
    text_prompt: str = Form(""),
    surprise_theme: str = Form(""),
    num_outputs: str = Form(""),
    video_duration: str = Form(""),
    map_file: UploadFile | None = File(None),
    start_scene_file: UploadFile | None = File(None),
    end_scene_file: UploadFile | None = File(None),
    inspiration_images: list[UploadFile] | None = File(None),
    session: StudioSession = Depends(get_session),
):
    try:
        theme = SurpriseTheme(surprise_theme) if surprise_theme else None
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"unknown surprise theme '{surprise_theme}'") from exc

    inspiration: list[MediaFile] = []
    for upload in inspiration_images or []:
        file = await _read_upload(upload)
        if file is not None:
            inspiration.append(file)

    fields: dict[str, Any] = {}
    outputs = _parse_int(num_outputs, 0)
    if outputs:
        if outputs < 1:
            raise HTTPException(status_code=400, detail="num_outputs must be >= 1")
        fields["num_outputs"] = outputs

    request = GenerationRequest.build(
        generation_type,
        image_sub_type=image_sub_type,
        video_sub_type=video_sub_type,
        map_file=await _preprocessed(map_file),
        start_scene_file=await _preprocessed(start_scene_file),
        end_scene_file=await _preprocessed(end_scene_file),
        active_tab=active_tab,
        text_prompt=text_prompt,
        inspiration_images=inspiration,
        surprise_theme=theme,
        video_duration=_parse_int(video_duration, 5),
        **fields,
    )

    missing = session.prepare(request).missing_inputs()
    if missing:
        raise HTTPException(status_code=400, detail=f"missing required input: {', '.join(missing)}")

    submission = await session.submit(request)
    return {
        "results": [_result_payload(r) for r in submission.results],
        "error": submission.error,
        "debugLogs": submission.debug.events,
    }


@app.post("/studio/enhance")
async def studio_enhance(prompt: str = Form(...), session: StudioSession = Depends(get_session)):
    try:
        enhanced = await session.enhance_prompt(prompt)
    except StudioError as exc:
        raise HTTPException(status_code=502, detail=parse_api_error(exc)) from exc
    if enhanced is None:
        raise HTTPException(status_code=400, detail="prompt is required")
    return {"prompt": enhanced}


@app.get("/studio/debug")
def studio_debug(session: StudioSession = Depends(get_session)):
    return {"logs": session.debug.events}


@app.get("/studio/results/{index}")
def studio_preview(index: int, session: StudioSession = Depends(get_session)):
    try:
        result = session.open_preview(index)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail="result not found") from exc
    return {"index": index, **_result_payload(result)}


@app.get("/studio/inspiration")
def list_inspiration(session: StudioSession = Depends(get_session)):
    return {"items": session.saved_inspiration, "selected": list(session.selected_inspiration)}


@app.post("/studio/inspiration")
def save_inspiration(data_url: str = Form(...), session: StudioSession = Depends(get_session)):
    if not data_url.startswith("data:"):
        raise HTTPException(status_code=400, detail="data_url must be a data URL")
    added = session.save_result(data_url)
    return {"added": added, "count": len(session.saved_inspiration)}


@app.post("/studio/inspiration/select")
def select_inspiration(data_url: str = Form(...), session: StudioSession = Depends(get_session)):
    if data_url not in session.saved_inspiration:
        raise HTTPException(status_code=404, detail="inspiration not found")
    session.toggle_selected(data_url)
    return {"selected": list(session.selected_inspiration)}


@app.post("/studio/inspiration/delete")
def delete_inspiration(data_url: str = Form(...), session: StudioSession = Depends(get_session)):
    removed = session.remove_saved(data_url)
    return {"removed": removed, "count": len(session.saved_inspiration)}
