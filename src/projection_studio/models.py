from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class GenerationType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class ImageSubType(str, Enum):
    FACADE = "facade"
    FUN = "fun"


class VideoSubType(str, Enum):
    LIFE = "life"
    TRANSITION = "transition"


class ThemeTab(str, Enum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    SURPRISE = "SURPRISE"


class SurpriseTheme(str, Enum):
    NONE = "none"
    CHRISTMAS = "christmas"
    HALLOWEEN = "halloween"
    CINEMATIC = "cinematic"
    DREAMY = "dreamy"
    VINTAGE = "vintage"
    NEON_PUNK = "neon punk"
    TRULY_RANDOM = "truly_random"


DEFAULT_NUM_OUTPUTS = {GenerationType.IMAGE: 2, GenerationType.VIDEO: 1}

_ENUM_FIELDS: dict[str, type[Enum]] = {
    "image_sub_type": ImageSubType,
    "video_sub_type": VideoSubType,
    "active_tab": ThemeTab,
    "surprise_theme": SurpriseTheme,
}


@dataclass(frozen=True)
class MediaFile:
    filename: str
    content: bytes = field(repr=False)
    mime_type: str = "image/png"


@dataclass(frozen=True)
class GenerationRequest:
    generation_type: GenerationType = GenerationType.IMAGE
    image_sub_type: ImageSubType = ImageSubType.FACADE
    video_sub_type: VideoSubType = VideoSubType.LIFE

    map_file: MediaFile | None = None
    start_scene_file: MediaFile | None = None
    end_scene_file: MediaFile | None = None

    active_tab: ThemeTab = ThemeTab.TEXT
    text_prompt: str = ""
    inspiration_images: tuple[MediaFile, ...] = ()
    saved_inspiration: tuple[str, ...] = ()
    surprise_theme: SurpriseTheme | None = None

    num_outputs: int = 2
    video_duration: int = 5

    @classmethod
    def build(cls, generation_type: GenerationType = GenerationType.IMAGE, **kwargs: Any) -> GenerationRequest:
        """Create a request, filling the per-kind default output count when none is given."""
        generation_type = GenerationType(generation_type)
        kwargs.setdefault("num_outputs", DEFAULT_NUM_OUTPUTS[generation_type])
        for key, enum_cls in _ENUM_FIELDS.items():
            if kwargs.get(key) is not None:
                kwargs[key] = enum_cls(kwargs[key])
        for key in ("inspiration_images", "saved_inspiration"):
            if key in kwargs:
                kwargs[key] = tuple(kwargs[key] or ())
        return cls(generation_type=generation_type, **kwargs)

    def replace(self, **changes: Any) -> GenerationRequest:
        return dataclasses.replace(self, **changes)

    @property
    def is_fun_mode(self) -> bool:
        return self.image_sub_type == ImageSubType.FUN

    @property
    def inspiration_count(self) -> int:
        return len(self.inspiration_images) + len(self.saved_inspiration)

    @property
    def effective_tab(self) -> ThemeTab:
        # Attached inspiration always wins over the selected tab.
        if self.inspiration_count > 0:
            return ThemeTab.IMAGE
        return self.active_tab

    @property
    def has_theme_input(self) -> bool:
        return (
            self.text_prompt.strip() != ""
            or self.inspiration_count > 0
            or (self.surprise_theme is not None and self.surprise_theme != SurpriseTheme.NONE)
        )

    def missing_inputs(self) -> list[str]:
        missing: list[str] = []
        if self.generation_type == GenerationType.IMAGE:
            if self.image_sub_type == ImageSubType.FACADE and self.map_file is None:
                missing.append("map_file")
            if not self.has_theme_input:
                missing.append("theme")
        else:
            if self.start_scene_file is None:
                missing.append("start_scene_file")
            if self.video_sub_type == VideoSubType.TRANSITION and self.end_scene_file is None:
                missing.append("end_scene_file")
        return missing

    @property
    def is_ready(self) -> bool:
        return not self.missing_inputs()


@dataclass(frozen=True)
class GenerationResult:
    media_url: str = field(repr=False)
    kind: GenerationType
