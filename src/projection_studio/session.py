from __future__ import annotations

import logging
from dataclasses import dataclass, field

from projection_studio.debug import DebugLog
from projection_studio.errors import StudioError, parse_api_error
from projection_studio.models import GenerationRequest, GenerationResult
from projection_studio.orchestrator import generate
from projection_studio.providers.base import GenerationService
from projection_studio.storage import SavedInspirationStore

logger = logging.getLogger(__name__)


@dataclass
class Submission:
    """One generate call: its request, its own debug log, and its results or error."""

    request: GenerationRequest
    debug: DebugLog = field(default_factory=DebugLog)
    results: list[GenerationResult] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class StudioSession:
    """
    Everything one user works with between submissions: saved and selected
    inspiration, the last finished submission and the preview cursor over it.

    Each `submit` writes only to its own `Submission`; the session just
    records the latest one once it has settled.
    """

    def __init__(self, service: GenerationService, store: SavedInspirationStore | None = None) -> None:
        self.service = service
        self.store = store or SavedInspirationStore()
        self.selected_inspiration: list[str] = []
        self.last: Submission | None = None
        self.preview_index: int | None = None

    @property
    def saved_inspiration(self) -> list[str]:
        return self.store.items

    @property
    def results(self) -> list[GenerationResult]:
        return list(self.last.results) if self.last else []

    @property
    def error(self) -> str | None:
        return self.last.error if self.last else None

    @property
    def debug(self) -> DebugLog:
        return self.last.debug if self.last else DebugLog()

    def prepare(self, request: GenerationRequest) -> GenerationRequest:
        """Attach the currently selected saved inspiration to a request."""
        if not self.selected_inspiration:
            return request
        return request.replace(saved_inspiration=tuple(request.saved_inspiration) + tuple(self.selected_inspiration))

    async def submit(self, request: GenerationRequest) -> Submission:
        submission = Submission(request=self.prepare(request))
        try:
            submission.results = await generate(submission.request, self.service, submission.debug)
        except (StudioError, ValueError) as exc:
            submission.error = parse_api_error(exc)
            logger.error("Generation failed: %s", submission.error)
        self.last = submission
        self.preview_index = None
        return submission

    async def enhance_prompt(self, prompt: str, debug: DebugLog | None = None) -> str | None:
        """Returns None for an empty prompt; service errors propagate."""
        if not prompt:
            return None
        return await self.service.enhance_prompt(prompt, debug)

    def save_result(self, data_url: str) -> bool:
        return self.store.save(data_url)

    def toggle_selected(self, data_url: str) -> None:
        if data_url in self.selected_inspiration:
            self.selected_inspiration.remove(data_url)
        else:
            self.selected_inspiration.append(data_url)

    def remove_saved(self, data_url: str) -> bool:
        self.selected_inspiration = [item for item in self.selected_inspiration if item != data_url]
        return self.store.remove(data_url)

    def open_preview(self, index: int) -> GenerationResult:
        results = self.results
        if not 0 <= index < len(results):
            raise IndexError(f"no result at index {index}")
        self.preview_index = index
        return results[index]

    def next_preview(self) -> GenerationResult | None:
        results = self.results
        if self.preview_index is None or not results:
            return None
        self.preview_index = (self.preview_index + 1) % len(results)
        return results[self.preview_index]

    def previous_preview(self) -> GenerationResult | None:
        results = self.results
        if self.preview_index is None or not results:
            return None
        self.preview_index = (self.preview_index - 1 + len(results)) % len(results)
        return results[self.preview_index]

    def close_preview(self) -> None:
        self.preview_index = None
