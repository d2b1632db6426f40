from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from projection_studio.models import SurpriseTheme, ThemeTab, VideoSubType

MANDATORY_RULES = """
- **MANDATORY:** Keep the house's structure exactly aligned with the provided map. Do not shift, straighten, or reframe anything.
- **MANDATORY:** Absolutely no camera movement (zoom, pan, tilt, rotation).
- **MANDATORY:** The camera and the primary subject (the house) must remain completely static.
- **MANDATORY:** Maintain the exact aspect ratio of the input image. If the output resolution is different, shrink the entire image to fit, maintaining the original aspect ratio, and keep the remaining space blank (e.g., black).
- **MANDATORY:** All decorations, effects, and details must respect and follow the architectural boundaries of the provided outline.
- **STYLE:** The overall style should be visually rich, immersive, and match the theme, but without altering the geometry or layout of the house.
- **ANIMATION:** For videos, all animations must be smooth, magical, and logical. Avoid any herky-jerky or weird animations.
"""

THREE_D_RULES = """
- **3D ILLUSION:** Render all characters and props as if they are solid, 3D objects with their own volume and form, not flat stickers.
- **REALISTIC SHADOWS:** Every character and prop MUST cast a realistic shadow onto the surface of the house. The shadow must accurately wrap around the house's architecture (e.g., bending over a windowsill or pillar). This is the most important technique for creating a 3D illusion.
"""

VIBRANT_SUFFIX = "The final output should have vibrant colors and high contrast."

DEFAULT_THEME = "a beautiful, creative style."
RANDOM_THEME = "a completely random and surprising theme."
INSPIRATION_FALLBACK = "a vibrant and magical theme"

INSPIRATION_ANALYSIS_INSTRUCTIONS = (
    "You are an expert art director. Analyze the following images and synthesize their visual style "
    "into a detailed, descriptive text prompt. Focus on color palette, mood, textures, lighting, and key "
    "thematic elements. Be as descriptive as possible to give another AI a rich set of creative instructions."
)


def build_theme_prompt(
    active_tab: ThemeTab,
    inspiration_images: Sequence[Any],
    text_prompt: str,
    surprise_theme: SurpriseTheme | None,
) -> str:
    """
    Short theme line sent along with a request. The backend does the real prompt engineering.
    """
    if active_tab == ThemeTab.IMAGE and len(inspiration_images) > 0:
        if text_prompt:
            return f'A style inspired by the uploaded images, with a focus on: "{text_prompt}"'
        return "A style inspired by the uploaded images."
    if active_tab == ThemeTab.SURPRISE:
        return surprise_prompt(surprise_theme)
    return text_prompt or DEFAULT_THEME


def surprise_prompt(theme: SurpriseTheme | None) -> str:
    if theme == SurpriseTheme.TRULY_RANDOM:
        return RANDOM_THEME
    value = theme.value if isinstance(theme, SurpriseTheme) else theme
    return f"a {value} theme."


def with_vibrant_colors(theme_prompt: str) -> str:
    return f"{theme_prompt} {VIBRANT_SUFFIX}"


def combine_inspiration_prompt(image_prompt: str, text_prompt: str) -> str:
    lines = [f'Style: "{image_prompt}"']
    if text_prompt:
        lines.append(f'Specific requests: "{text_prompt}"')
    return "\n".join(lines)


def build_fun_prompt(theme_prompt: str) -> str:
    return f"Generate a high-quality, visually stunning image {theme_prompt}"


def build_facade_prompt(theme_prompt: str, three_d: bool = False) -> str:
    rules = MANDATORY_RULES + (THREE_D_RULES if three_d else "")
    return (
        "Task: Decorate the input house image.\n"
        f"Theme: {theme_prompt}\n"
        "Output: A static image of the decorated house.\n"
        f"\n{rules}"
    )


def build_video_prompt(theme_prompt: str, video_sub_type: VideoSubType) -> str:
    if video_sub_type == VideoSubType.TRANSITION:
        action = "Smoothly transform the first scene of the house into the last scene."
    else:
        action = "Bring the decorated house to life with subtle, looping animation."
    return f"{action}\nTheme: {theme_prompt}\n{MANDATORY_RULES}"


def build_enhance_prompt(prompt: str) -> str:
    return f"""
You are an expert AI prompt engineer. Your task is to take a user's simple idea and expand it into a rich, detailed, and descriptive prompt for an AI image/video generator.

**Core Requirements:**
1.  **Preserve Intent:** You MUST NOT completely deviate from the user's original input. The core idea must be preserved and embellished.
2.  **Add Rich Detail:** Add details like character names (if applicable), theme ideas, weather elements, props, and artistic styles (e.g., ultra-realistic, cartoonish, painterly).
3.  **Incorporate Vibe:** Add descriptive words for the mood or vibe (e.g., fun, cheerful, horror, eerie, magical, futuristic).
4.  **Mandatory Style:** A core requirement for ALL enhanced prompts is that they should request **vibrant colors and high contrast**.

**User's Idea:** "{prompt}"

**Instructions:**
Rewrite the user's idea into a single, detailed paragraph. Do not add any conversational text, introductions, or labels. Output only the enhanced prompt text."""


def video_model_for(video_sub_type: VideoSubType | str) -> str:
    return "gen3a_turbo" if VideoSubType(video_sub_type) == VideoSubType.TRANSITION else "gen4_turbo"
