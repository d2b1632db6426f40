from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from projection_studio.debug import DebugLog
from projection_studio.models import GenerationRequest, MediaFile


@dataclass(frozen=True)
class ServiceResponse:
    # Mirrors the backend JSON envelope: one media reference or an error, plus debugInfo.
    media_url: str | None
    error: str | None = None
    debug_info: dict | None = None


class GenerationService(Protocol):
    """
    The remote generation boundary. Each call produces at most one media data URL;
    `None` means the model answered without any media.
    """

    async def generate_design(
        self,
        request: GenerationRequest,
        inspiration: list[MediaFile],
        debug: DebugLog | None = None,
    ) -> str | None: ...

    async def generate_video(
        self,
        request: GenerationRequest,
        inspiration: list[MediaFile],
        debug: DebugLog | None = None,
    ) -> str | None: ...

    async def enhance_prompt(self, prompt: str, debug: DebugLog | None = None) -> str: ...
