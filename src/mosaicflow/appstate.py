"""App-level persisted records.

AppStateStore keeps the last-opened vault/canvas pointer in data/data.json
for session restore. ConfigStore keeps the older path-based config.json.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .constants import DEFAULT_RECENT_LIMIT
from .fsutil import read_model, write_model
from .models import AppConfig, AppState, RecentVault
from .paths import AppPaths
from .timeutil import now_iso

logger = logging.getLogger(__name__)


class AppStateStore:
    def __init__(self, app_dir: Path):
        self.paths = AppPaths.from_root(app_dir)

    def load(self) -> AppState:
        """Stored state, or a default record if none was saved yet."""
        if not self.paths.state_json.exists():
            return AppState()
        return read_model(self.paths.state_json, AppState)

    def save(self, state: AppState) -> AppState:
        state.touch()
        write_model(self.paths.state_json, state)
        return state

    def update_last_opened(
        self, vault_id: str | None = None, canvas_id: str | None = None
    ) -> AppState:
        """Overwrite only the ids that are given; the others keep their value."""
        state = self.load()
        state.set_last_opened(vault_id=vault_id, canvas_id=canvas_id)
        return self.save(state)

    def set_last_vault(self, vault_id: str | None) -> AppState:
        """Point at a vault; None clears both the vault and canvas pointers."""
        state = self.load()
        state.last_vault_id = vault_id
        if vault_id is None:
            state.last_canvas_id = None
        return self.save(state)

    def set_last_canvas(self, canvas_id: str | None) -> AppState:
        state = self.load()
        state.last_canvas_id = canvas_id
        return self.save(state)

    def get_last_vault_id(self) -> str | None:
        return self.load().last_vault_id

    def get_last_canvas_id(self) -> str | None:
        return self.load().last_canvas_id


class ConfigStore:
    """Path-based config.json: current vault/canvas paths and recent vaults."""

    def __init__(self, app_dir: Path, max_items: int = DEFAULT_RECENT_LIMIT):
        self.paths = AppPaths.from_root(app_dir)
        self.max_items = max_items

    def load(self) -> AppConfig:
        if not self.paths.config_json.exists():
            return AppConfig()
        return read_model(self.paths.config_json, AppConfig)

    def save(self, config: AppConfig) -> AppConfig:
        write_model(self.paths.config_json, config)
        return config

    def remember_vault(self, name: str, path: str) -> AppConfig:
        """Record a vault as current and move it to the front of the recent list."""
        config = self.load()
        config.recent_vaults = [v for v in config.recent_vaults if v.path != path]
        config.recent_vaults.insert(0, RecentVault(name=name, path=path, last_opened=now_iso()))
        del config.recent_vaults[self.max_items:]
        config.current_vault_path = path
        logger.debug(f"Remembered vault {path}")
        return self.save(config)

    def set_current_canvas(self, path: str | None) -> AppConfig:
        config = self.load()
        config.current_canvas_path = path
        return self.save(config)
