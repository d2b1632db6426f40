from __future__ import annotations

import asyncio
import logging

from projection_studio.config import settings
from projection_studio.debug import DebugLog
from projection_studio.errors import GenerationServiceError, parse_api_error
from projection_studio.models import GenerationRequest, MediaFile, ThemeTab
from projection_studio.prompts import build_theme_prompt, combine_inspiration_prompt, with_vibrant_colors
from projection_studio.providers.gemini_provider import GeminiProvider
from projection_studio.providers.runway_provider import RunwayProvider

logger = logging.getLogger(__name__)


class LocalGenerationService:
    """
    In-process generation boundary: calls the providers directly instead of going
    through the HTTP backend. Providers are created on first use so a missing key
    only fails the requests that need it.
    """

    def __init__(
        self,
        gemini: GeminiProvider | None = None,
        runway: RunwayProvider | None = None,
    ) -> None:
        self._gemini = gemini
        self._runway = runway
        # In-flight theme prompts, shared by the slots of one fan-out.
        self._theme_tasks: dict[tuple, asyncio.Future] = {}

    @property
    def gemini(self) -> GeminiProvider:
        if self._gemini is None:
            if not settings.gemini_api_key:
                raise GenerationServiceError("Server configuration error: Gemini API key is missing.")
            self._gemini = GeminiProvider(api_key=settings.gemini_api_key)
        return self._gemini

    @property
    def runway(self) -> RunwayProvider:
        if self._runway is None:
            if not settings.runway_api_key:
                raise GenerationServiceError("Server configuration error: Runway API key is missing.")
            self._runway = RunwayProvider(api_key=settings.runway_api_key)
        return self._runway

    async def theme_prompt(self, request: GenerationRequest, inspiration: list[MediaFile]) -> str:
        """
        Build the design prompt for a request. Concurrent calls for the same
        request and inspiration await one shared build, so an inspiration image
        is analyzed once per submission rather than once per output.
        """
        key = (request, tuple(inspiration))
        task = self._theme_tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(self._build_theme_prompt(request, inspiration))
            self._theme_tasks[key] = task
            task.add_done_callback(lambda _t: self._theme_tasks.pop(key, None))
        return await asyncio.shield(task)

    async def _build_theme_prompt(self, request: GenerationRequest, inspiration: list[MediaFile]) -> str:
        tab = request.effective_tab
        if tab == ThemeTab.IMAGE and inspiration:
            # Only the first inspiration image is analyzed.
            try:
                image_prompt = await self.gemini.describe_inspiration(inspiration[0])
            except Exception as exc:
                logger.error("Failed to generate prompt from image: %s", parse_api_error(exc))
                raise GenerationServiceError(f"Failed to analyze inspiration image: {parse_api_error(exc)}") from exc
            base = combine_inspiration_prompt(image_prompt, request.text_prompt)
        else:
            base = build_theme_prompt(tab, inspiration, request.text_prompt, request.surprise_theme)
        return with_vibrant_colors(base)

    async def generate_design(
        self,
        request: GenerationRequest,
        inspiration: list[MediaFile],
        debug: DebugLog | None = None,
    ) -> str | None:
        prompt = await self.theme_prompt(request, inspiration)
        url, debug_payload = await self.gemini.generate_design(
            prompt=prompt,
            is_fun_mode=request.is_fun_mode,
            map_file=request.map_file,
        )
        if debug is not None:
            debug.publish(debug_payload)
        return url

    async def generate_video(
        self,
        request: GenerationRequest,
        inspiration: list[MediaFile],
        debug: DebugLog | None = None,
    ) -> str | None:
        if request.start_scene_file is None:
            raise GenerationServiceError("A start scene is required for video generation.")
        prompt = build_theme_prompt(request.effective_tab, inspiration, request.text_prompt, request.surprise_theme)
        url, debug_payload = await self.runway.generate_video(
            prompt=prompt,
            video_sub_type=request.video_sub_type,
            duration=request.video_duration,
            start_scene=request.start_scene_file,
            end_scene=request.end_scene_file,
        )
        if debug is not None:
            debug.publish(debug_payload)
        return url

    async def enhance_prompt(self, prompt: str, debug: DebugLog | None = None) -> str:
        if debug is not None:
            debug.publish(
                {"type": "Gemini Prompt Enhancement", "request": {"model": settings.gemini_text_model, "prompt": prompt}}
            )
        return await self.gemini.enhance_prompt(prompt)
