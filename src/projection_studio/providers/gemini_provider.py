from __future__ import annotations

import base64
import logging
from io import BytesIO
from typing import Any

from PIL import Image

from projection_studio.config import settings
from projection_studio.errors import GenerationServiceError
from projection_studio.models import MediaFile
from projection_studio.prompts import (
    INSPIRATION_ANALYSIS_INSTRUCTIONS,
    INSPIRATION_FALLBACK,
    build_enhance_prompt,
    build_facade_prompt,
    build_fun_prompt,
)

logger = logging.getLogger(__name__)


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str) -> None:
        # Imported lazily so the app can start without the dependency installed.
        from google import genai  # type: ignore

        self._genai = genai
        self.client = genai.Client(api_key=api_key)

    async def generate_design(
        self,
        prompt: str,
        is_fun_mode: bool,
        map_file: MediaFile | None = None,
    ) -> tuple[str | None, dict[str, Any]]:
        """
        Two paths depending on the mode:
        - "Have Fun": Imagen text-to-image via `models.generate_images(...)`
        - "House Facade": image edit of the map via `models.generate_content(...)`

        Returns (data URL or None, debug payload describing the request).
        """
        from google.genai import types  # type: ignore

        if is_fun_mode:
            model = settings.gemini_fun_model
            full_prompt = build_fun_prompt(prompt)
            debug_payload: dict[str, Any] = {
                "type": 'Gemini "Have Fun" Image Generation',
                "request": {"model": model, "prompt": full_prompt, "aspectRatio": "16:9"},
            }
            try:
                resp = await self.client.aio.models.generate_images(
                    model=model,
                    prompt=full_prompt,
                    config=types.GenerateImagesConfig(
                        number_of_images=1,
                        output_mime_type="image/png",
                        aspect_ratio="16:9",
                    ),
                )
            except Exception as exc:
                logger.error("generate_images failed: %s", exc)
                raise GenerationServiceError("Failed to generate image using Gemini API.") from exc

            for gi in getattr(resp, "generated_images", []) or []:
                img_bytes = getattr(getattr(gi, "image", None), "image_bytes", None)
                if img_bytes:
                    return _to_data_url("image/png", img_bytes), debug_payload
            return None, debug_payload

        if map_file is None:
            raise GenerationServiceError("A map file is required for House Facade generation.")

        model = settings.gemini_image_model
        full_prompt = build_facade_prompt(prompt)
        debug_payload = {
            "type": 'Gemini "House Facade" Image Generation',
            "request": {"model": model, "prompt": full_prompt},
        }
        try:
            map_image = Image.open(BytesIO(map_file.content))
        except Exception as exc:
            raise GenerationServiceError("Failed to process the uploaded map file.") from exc

        try:
            resp = await self.client.aio.models.generate_content(
                model=model,
                contents=[map_image, full_prompt],
                config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
            )
        except Exception as exc:
            logger.error("generate_content failed: %s", exc)
            raise GenerationServiceError("Failed to generate content using Gemini API.") from exc

        extracted = _extract_images_from_generate_content(resp)
        if not extracted:
            return None, debug_payload
        mime, data = extracted[0]
        return _to_data_url(mime, data), debug_payload

    async def enhance_prompt(self, prompt: str) -> str:
        try:
            resp = await self.client.aio.models.generate_content(
                model=settings.gemini_text_model,
                contents=build_enhance_prompt(prompt),
            )
        except Exception as exc:
            logger.error("prompt enhancement failed: %s", exc)
            raise GenerationServiceError(f"Failed to enhance the prompt: {exc}") from exc
        text = (getattr(resp, "text", None) or "").strip()
        if not text:
            raise GenerationServiceError("The AI could not enhance the prompt. Please try again.")
        return text

    async def describe_inspiration(self, image: MediaFile) -> str:
        """
        Turn one inspiration image into a style description for the theme prompt.
        """
        resp = await self.client.aio.models.generate_content(
            model=settings.gemini_vision_model,
            contents=[INSPIRATION_ANALYSIS_INSTRUCTIONS, Image.open(BytesIO(image.content))],
        )
        text = (getattr(resp, "text", None) or "").strip()
        return text or INSPIRATION_FALLBACK


def _to_data_url(mime: str, data: bytes | str) -> str:
    if isinstance(data, bytes):
        data = base64.b64encode(data).decode("ascii")
    return f"data:{mime or 'image/png'};base64,{data}"


def _extract_images_from_generate_content(resp: Any) -> list[tuple[str, bytes]]:
    out: list[tuple[str, bytes]] = []
    for cand in getattr(resp, "candidates", []) or []:
        content = getattr(cand, "content", None)
        parts = getattr(content, "parts", None) or []
        for part in parts:
            inline = getattr(part, "inline_data", None)
            if not inline:
                continue
            mime = getattr(inline, "mime_type", None) or ""
            data = getattr(inline, "data", None)
            if not data:
                continue
            if mime and not mime.startswith("image/"):
                continue
            out.append((mime or "image/png", data))
    return out
