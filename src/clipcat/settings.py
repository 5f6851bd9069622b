"""Settings persistence.

Settings live in a YAML file at the vault root. Example .clipcat.yaml:
    source_property_name: source, url
    read_property_name: read
    include_frontmatter_tags: true
    ignored_directories:
      - templates
      - work/expenses

Missing keys take their defaults. Every change is written back immediately.
"""

import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config import SETTINGS_FILENAME, ConfigurationError
from .exclusions import add_rules, clear_rules, remove_rule
from .models import Settings

log = logging.getLogger(__name__)


class SettingsStore:
    """Loads and saves Settings for one vault."""

    def __init__(self, vault_root: Path, on_change: Callable[[Settings], None] | None = None):
        """Initialize the store.

        Args:
            vault_root: Vault directory holding the settings file.
            on_change: Called with the new settings after every save.
        """
        self._path = vault_root / SETTINGS_FILENAME
        self._settings: Settings | None = None
        self._on_change = on_change

    @property
    def path(self) -> Path:
        return self._path

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> Settings:
        """Read settings from disk, falling back to defaults for missing keys.

        Raises:
            ConfigurationError: If the file cannot be read, is not valid YAML,
                or holds values of the wrong type.
        """
        if not self._path.exists():
            self._settings = Settings()
            return self._settings

        try:
            data = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigurationError(f"Cannot read settings file {self._path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self._path}: {e}") from e

        # An empty file loads as None
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file {self._path} must hold a mapping, got {type(data).__name__}")

        try:
            self._settings = Settings.model_validate(data)
        except ValidationError as e:
            errors = []
            for error in e.errors():
                loc = ".".join(str(x) for x in error["loc"])
                errors.append(f"  - {loc}: {error['msg']}")
            raise ConfigurationError(f"Invalid settings in {self._path}:\n" + "\n".join(errors)) from e

        return self._settings

    def reload(self) -> bool:
        """Re-read the file after an outside edit and notify on_change if it differs.

        Returns:
            True if the settings changed.

        Raises:
            ConfigurationError: If the file is unreadable or invalid. The
                previously loaded settings stay in effect.
        """
        previous = self._settings
        current = self.load()
        if current == previous:
            return False
        log.info("Settings changed on disk: %s", self._path)
        if self._on_change is not None:
            self._on_change(current)
        return True

    def save(self, settings: Settings) -> None:
        content = yaml.safe_dump(settings.model_dump(), sort_keys=False, allow_unicode=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f"{SETTINGS_FILENAME}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self._settings = settings
        if self._on_change is not None:
            self._on_change(settings)

    def update(self, **changes: Any) -> Settings:
        """Apply changes, validate and persist.

        Raises:
            ValueError: For unknown setting names or invalid values.
        """
        unknown = set(changes) - set(Settings.model_fields)
        if unknown:
            raise ValueError(f"Unknown setting(s): {', '.join(sorted(unknown))}")

        data = self.settings.model_dump()
        data.update(changes)
        updated = Settings.model_validate(data)
        self.save(updated)
        return updated

    def add_ignored_directories(self, raw: str) -> Settings:
        """Add comma-separated directories (duplicates, in any case, are skipped)."""
        return self.update(ignored_directories=add_rules(self.settings.ignored_directories, raw))

    def remove_ignored_directory(self, directory: str) -> Settings:
        return self.update(ignored_directories=remove_rule(self.settings.ignored_directories, directory))

    def clear_ignored_directories(self) -> Settings:
        return self.update(ignored_directories=clear_rules())
