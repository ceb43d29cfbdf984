"""Most-recently-opened index of vaults and canvases.

Stored in <app-dir>/data/history.json. History is a convenience index, not
authoritative: paths recorded here may go stale when folders move.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .constants import DEFAULT_MAX_HISTORY
from .fsutil import read_model, write_model
from .models import AppHistory, CanvasHistoryEntry, VaultHistoryEntry
from .paths import AppPaths

logger = logging.getLogger(__name__)


class HistoryStore:
    """Load/modify/save wrapper around AppHistory."""

    def __init__(self, app_dir: Path, max_items: int | None = None):
        """
        Args:
            app_dir: Application config directory
            max_items: Cap on each list; overrides the persisted value when given
        """
        self.paths = AppPaths.from_root(app_dir)
        self.max_items = max_items

    def load(self) -> AppHistory:
        if self.paths.history_json.exists():
            history = read_model(self.paths.history_json, AppHistory)
        else:
            history = AppHistory(max_items=self.max_items or DEFAULT_MAX_HISTORY)

        if self.max_items is not None and history.max_items != self.max_items:
            history.max_items = self.max_items
            del history.vaults[self.max_items:]
            del history.canvases[self.max_items:]
        return history

    def save(self, history: AppHistory) -> None:
        write_model(self.paths.history_json, history)

    def track_vault(self, id: str, name: str, path: str) -> VaultHistoryEntry:
        history = self.load()
        entry = history.track_vault(id, name, path)
        self.save(history)
        logger.debug(f"Tracked vault {id} (opened {entry.open_count}x)")
        return entry

    def track_canvas(self, id: str, vault_id: str, name: str, path: str) -> CanvasHistoryEntry:
        history = self.load()
        entry = history.track_canvas(id, vault_id, name, path)
        self.save(history)
        logger.debug(f"Tracked canvas {id} (opened {entry.open_count}x)")
        return entry

    def remove_vault(self, vault_id: str) -> None:
        """Forget a vault and all of its canvases."""
        history = self.load()
        history.remove_vault(vault_id)
        self.save(history)

    def remove_canvas(self, canvas_id: str) -> None:
        history = self.load()
        history.remove_canvas(canvas_id)
        self.save(history)

    def recent_vaults(self, limit: int = DEFAULT_MAX_HISTORY) -> list[VaultHistoryEntry]:
        return self.load().recent_vaults(limit)

    def recent_canvases(
        self, vault_id: str | None = None, limit: int = DEFAULT_MAX_HISTORY
    ) -> list[CanvasHistoryEntry]:
        return self.load().recent_canvases(vault_id, limit)

    def find_vault(self, vault_id: str) -> VaultHistoryEntry | None:
        return self.load().find_vault(vault_id)

    def find_canvas(self, canvas_id: str) -> CanvasHistoryEntry | None:
        return self.load().find_canvas(canvas_id)
