from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from projection_studio.assembly.preprocess import data_url_to_file
from projection_studio.debug import DebugLog
from projection_studio.errors import GenerationError, MissingInputError, parse_api_error
from projection_studio.models import GenerationRequest, GenerationResult, GenerationType, MediaFile
from projection_studio.providers.base import GenerationService

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_SPECIFIC_ERROR = "All generation requests failed without a specific error."


async def fan_out(
    call: Callable[[int], Awaitable[T | None]],
    n: int,
    debug: DebugLog | None = None,
) -> list[T]:
    """
    Run `call(0) .. call(n - 1)` concurrently and wait for every one to settle.

    Failures never cancel siblings. Successful (truthy) results come back in slot
    order; failed slots are dropped. When nothing succeeded, the first failure's
    message becomes the error.
    """
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")

    settled = await asyncio.gather(*(call(i) for i in range(n)), return_exceptions=True)

    results: list[T] = []
    failures: list[BaseException] = []
    for slot, outcome in enumerate(settled):
        if isinstance(outcome, BaseException):
            if isinstance(outcome, (KeyboardInterrupt, SystemExit, asyncio.CancelledError)):
                raise outcome
            failures.append(outcome)
            message = parse_api_error(outcome)
            logger.warning("generation slot %d/%d failed: %s", slot + 1, n, message)
            if debug is not None:
                debug.publish({"type": "Generation Failed", "slot": slot, "error": message})
        elif outcome:
            results.append(outcome)

    if not results:
        if failures:
            raise GenerationError(parse_api_error(failures[0])) from failures[0]
        raise GenerationError(NO_SPECIFIC_ERROR)
    return results


def collect_inspiration(request: GenerationRequest) -> list[MediaFile]:
    """New uploads first, then the selected saved inspiration decoded back into files."""
    files = list(request.inspiration_images)
    for i, data_url in enumerate(request.saved_inspiration):
        files.append(data_url_to_file(data_url, f"saved-inspiration-{i}.png"))
    return files


async def generate(
    request: GenerationRequest,
    service: GenerationService,
    debug: DebugLog | None = None,
) -> list[GenerationResult]:
    missing = request.missing_inputs()
    if missing:
        raise MissingInputError(missing)

    inspiration = collect_inspiration(request)
    kind = request.generation_type

    async def _one(_slot: int) -> str | None:
        if kind == GenerationType.IMAGE:
            return await service.generate_design(request, inspiration, debug)
        return await service.generate_video(request, inspiration, debug)

    urls = await fan_out(_one, request.num_outputs, debug)
    return [GenerationResult(media_url=url, kind=kind) for url in urls]
