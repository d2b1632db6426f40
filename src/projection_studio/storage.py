from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from projection_studio.config import settings

logger = logging.getLogger(__name__)


def _safe_slot_name(name: str) -> str:
    # Prevent path traversal; the slot is a single file under the data dir.
    return os.path.basename(name).replace("..", "_") or "slot"


class SavedInspirationStore:
    """
    Saved inspiration: an ordered list of media data URLs in one named JSON slot.

    Newest first, de-duplicated by exact string equality, no eviction. The slot
    is read once on construction and rewritten after every mutation.
    """

    def __init__(self, root_dir: Path | None = None, slot: str | None = None) -> None:
        self.root_dir = Path(root_dir or settings.data_dir).resolve()
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.root_dir / f"{_safe_slot_name(slot or settings.saved_inspiration_slot)}.json"
        self._items: list[str] = self.load()

    @property
    def items(self) -> list[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def load(self) -> list[str]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text("utf-8"))
        except (OSError, ValueError) as exc:
            # A corrupted slot must not block startup.
            logger.warning("ignoring unreadable saved inspiration slot %s: %s", self.path, exc)
            return []
        if not isinstance(data, list):
            logger.warning("ignoring saved inspiration slot %s: expected a list", self.path)
            return []
        return [item for item in data if isinstance(item, str)]

    def save(self, data_url: str) -> bool:
        """Prepend `data_url` unless it is already saved. Returns True when the list changed."""
        if data_url in self._items:
            return False
        self._items.insert(0, data_url)
        self._write()
        return True

    def remove(self, data_url: str) -> bool:
        if data_url not in self._items:
            return False
        self._items = [item for item in self._items if item != data_url]
        self._write()
        return True

    def _write(self) -> None:
        self.path.write_text(json.dumps(self._items), encoding="utf-8")
