from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

from projection_studio.models import MediaFile

# Black is "no light" on a projector, so padding never shows up on the house.
PAD_COLOR = (0, 0, 0)


@dataclass(frozen=True)
class PreprocessedImage:
    file: MediaFile
    data_url: str


def file_to_data_url(file: MediaFile) -> str:
    encoded = base64.b64encode(file.content).decode("ascii")
    return f"data:{file.mime_type or 'application/octet-stream'};base64,{encoded}"


def parse_data_url(data_url: str) -> tuple[str, bytes]:
    """
    Split a `data:<mime>;base64,<payload>` URL into (mime_type, raw bytes).
    """
    if not data_url.startswith("data:") or "," not in data_url:
        raise ValueError("not a data URL")
    header, payload = data_url[5:].split(",", 1)
    params = header.split(";")
    mime_type = params[0] or "text/plain"
    try:
        if "base64" in params[1:]:
            content = base64.b64decode(payload, validate=True)
        else:
            content = unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid data URL payload: {exc}") from exc
    return mime_type, content


def data_url_to_file(data_url: str, filename: str) -> MediaFile:
    mime_type, content = parse_data_url(data_url)
    return MediaFile(filename=filename, content=content, mime_type=mime_type)


def preprocess_image(file: MediaFile, max_width: int, max_height: int) -> PreprocessedImage:
    """
    Fit an image into a fixed (max_width x max_height) projection canvas:
    - already within bounds: returned untouched (same bytes, no re-encode)
    - otherwise scaled down uniformly and centered on a black canvas of
      exactly the target size (letterbox / pillarbox), encoded as PNG
    """
    if max_width <= 0 or max_height <= 0:
        raise ValueError(f"target box must be positive, got {max_width}x{max_height}")

    # Pillow decodes lazily; load() here so truncated data fails before any resizing.
    try:
        img = Image.open(io.BytesIO(file.content))
        img.load()
        width, height = img.size
    except (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError) as exc:
        raise ValueError(f"could not decode image {file.filename!r}: {exc}") from exc

    if width <= 0 or height <= 0:
        raise ValueError(f"image {file.filename!r} has zero area ({width}x{height})")

    if width <= max_width and height <= max_height:
        return PreprocessedImage(file=file, data_url=file_to_data_url(file))

    canvas = letterbox(img, (max_width, max_height))
    buf = io.BytesIO()
    canvas.save(buf, format="PNG")
    processed = MediaFile(filename=f"processed-{file.filename}", content=buf.getvalue(), mime_type="image/png")
    return PreprocessedImage(file=processed, data_url=file_to_data_url(processed))


def letterbox(img: Image.Image, size: tuple[int, int]) -> Image.Image:
    """
    Resize to fit inside the canvas (no stretching, no cropping), then center on black.
    """
    tw, th = size
    iw, ih = img.size
    if iw <= 0 or ih <= 0:
        raise ValueError(f"cannot letterbox a zero-area image ({iw}x{ih})")

    scale = min(tw / iw, th / ih)
    # Floor like a canvas draw would, but never collapse a side to nothing.
    nw, nh = max(1, int(iw * scale)), max(1, int(ih * scale))
    resized = img.convert("RGB").resize((nw, nh), Image.Resampling.LANCZOS)

    canvas = Image.new("RGB", (tw, th), PAD_COLOR)
    canvas.paste(resized, ((tw - nw) // 2, (th - nh) // 2))
    return canvas
