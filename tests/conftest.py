from __future__ import annotations

from io import BytesIO

import pytest
from PIL import Image

from projection_studio.models import MediaFile


def png_file(width: int, height: int, color=(200, 40, 40), name: str = "house.png") -> MediaFile:
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return MediaFile(filename=name, content=buf.getvalue(), mime_type="image/png")


class FakeService:
    """GenerationService double: returns or raises per call from a script."""

    def __init__(self, outcomes=None, enhanced: str = "an enhanced prompt"):
        self.outcomes = list(outcomes or [])
        self.enhanced = enhanced
        self.design_calls = []
        self.video_calls = []

    def _next(self):
        outcome = self.outcomes.pop(0) if self.outcomes else "data:image/png;base64,AAAA"
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def generate_design(self, request, inspiration, debug=None):
        self.design_calls.append((request, list(inspiration)))
        return self._next()

    async def generate_video(self, request, inspiration, debug=None):
        self.video_calls.append((request, list(inspiration)))
        return self._next()

    async def enhance_prompt(self, prompt, debug=None):
        return self.enhanced


@pytest.fixture
def house():
    return png_file(640, 360)


@pytest.fixture
def make_png():
    return png_file


@pytest.fixture
def make_service():
    return FakeService


@pytest.fixture
def truncated_png():
    buf = BytesIO()
    Image.effect_noise((400, 400), 64).convert("RGB").save(buf, format="PNG")
    data = buf.getvalue()
    return MediaFile(filename="damaged.png", content=data[: len(data) // 2], mime_type="image/png")
