"""
Client for the deployed generation backend.

Each call is one multipart POST: binary file parts plus a single JSON `params`
part. The backend answers with JSON carrying either a media reference or an
`error` string, and optionally a `debugInfo` object that is forwarded to the
debug log.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any

import httpx

from projection_studio.config import settings
from projection_studio.debug import DebugLog
from projection_studio.errors import GenerationServiceError, parse_api_error
from projection_studio.models import GenerationRequest, MediaFile, VideoSubType
from projection_studio.prompts import build_theme_prompt, video_model_for

logger = logging.getLogger(__name__)

DESIGN_PATH = "/generateGeminiDesign"
VIDEO_PATH = "/generateRunwayVideo"
ENHANCE_PATH = "/enhanceTextPrompt"

FileParts = list[tuple[str, tuple[str, bytes, str]]]


def _file_part(field: str, file: MediaFile) -> tuple[str, tuple[str, bytes, str]]:
    return field, (file.filename, file.content, file.mime_type)


class RemoteGenerationService:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.generation_service_url or "").rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def generate_design(
        self,
        request: GenerationRequest,
        inspiration: list[MediaFile],
        debug: DebugLog | None = None,
    ) -> str | None:
        files: FileParts = []
        if request.map_file is not None:
            files.append(_file_part("mapFile", request.map_file))
        for i, img in enumerate(inspiration):
            files.append(_file_part(f"inspirationImage_{i}", img))

        params = {
            "isFunMode": request.is_fun_mode,
            "prompt": build_theme_prompt(request.effective_tab, inspiration, request.text_prompt, request.surprise_theme),
        }
        if debug is not None:
            debug.publish({"type": "Request to Backend", "url": DESIGN_PATH, "params": dict(params)})

        result = await self._post(DESIGN_PATH, files, params, debug)
        image_url = result.get("imageUrl")
        if image_url:
            return image_url
        raise GenerationServiceError("Backend did not return an image URL.")

    async def generate_video(
        self,
        request: GenerationRequest,
        inspiration: list[MediaFile],
        debug: DebugLog | None = None,
    ) -> str | None:
        files: FileParts = []
        if request.start_scene_file is not None:
            files.append(_file_part("startSceneFile", request.start_scene_file))
        if request.end_scene_file is not None and request.video_sub_type == VideoSubType.TRANSITION:
            files.append(_file_part("endSceneFile", request.end_scene_file))
        for i, img in enumerate(inspiration):
            files.append(_file_part(f"inspirationImage_{i}", img))

        params = {
            "videoSubType": request.video_sub_type.value,
            "videoDuration": request.video_duration,
            "prompt": build_theme_prompt(request.effective_tab, inspiration, request.text_prompt, request.surprise_theme),
        }
        if debug is not None:
            debug.publish(
                {
                    "type": "Request to Backend",
                    "url": VIDEO_PATH,
                    "modelToUse": video_model_for(request.video_sub_type),
                    "params": {
                        **params,
                        "hasStartScene": request.start_scene_file is not None,
                        "hasEndScene": request.end_scene_file is not None,
                        "inspirationImageCount": len(inspiration),
                    },
                }
            )

        result = await self._post(VIDEO_PATH, files, params, debug)
        video_url = result.get("videoUrl")
        if not video_url:
            raise GenerationServiceError("Backend did not return a video URL.")
        if video_url.startswith("data:"):
            return video_url
        return await self._fetch_as_data_url(video_url)

    async def enhance_prompt(self, prompt: str, debug: DebugLog | None = None) -> str:
        if debug is not None:
            debug.publish({"type": "Request to Backend", "url": ENHANCE_PATH, "params": {"prompt": prompt}})
        result = await self._post(ENHANCE_PATH, [], {"prompt": prompt}, debug)
        enhanced = (result.get("prompt") or "").strip()
        if not enhanced:
            raise GenerationServiceError("The AI could not enhance the prompt. Please try again.")
        return enhanced

    async def _post(
        self,
        path: str,
        files: FileParts,
        params: dict[str, Any],
        debug: DebugLog | None,
    ) -> dict[str, Any]:
        try:
            async with self._client() as client:
                resp = await client.post(path, data={"params": json.dumps(params)}, files=files or None)
        except httpx.HTTPError as exc:
            raise GenerationServiceError(parse_api_error(exc) or f"Request to {path} failed.") from exc

        if not resp.is_success:
            logger.warning("backend %s answered %s", path, resp.status_code)
            raise GenerationServiceError(f"Backend request failed with status {resp.status_code}: {resp.text}")

        try:
            result = resp.json()
        except ValueError as exc:
            raise GenerationServiceError("Backend returned a malformed response.") from exc
        if not isinstance(result, dict):
            raise GenerationServiceError("Backend returned a malformed response.")

        if result.get("debugInfo") and debug is not None:
            debug.publish(result["debugInfo"])
        if isinstance(result.get("error"), str):
            raise GenerationServiceError(result["error"])
        return result

    async def _fetch_as_data_url(self, url: str) -> str:
        try:
            async with self._client() as client:
                resp = await client.get(url)
        except httpx.HTTPError as exc:
            raise GenerationServiceError("Failed to fetch the final video from the returned URL.") from exc
        if not resp.is_success:
            raise GenerationServiceError("Failed to fetch the final video from the returned URL.")
        mime = resp.headers.get("content-type", "video/mp4").split(";")[0].strip() or "video/mp4"
        return f"data:{mime};base64,{base64.b64encode(resp.content).decode('ascii')}"
