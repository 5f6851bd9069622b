"""Configuration management for clipcat.

This module contains the configurable constants for the catalog and the
discovery of the vault root directory. Magic numbers are documented here
rather than scattered throughout the codebase.
"""

import os
from pathlib import Path


class ConfigurationError(Exception):
    """Raised when required configuration is missing."""

    pass


# Settings file stored at the vault root (also marks a directory as a vault)
SETTINGS_FILENAME = ".clipcat.yaml"


def get_vault_root(start_dir: Path | None = None, max_depth: int = 10) -> Path:
    """Get the vault root directory.

    Discovery order:
    1. CLIPCAT_VAULT_ROOT environment variable (explicit override)
    2. Walk up from start_dir (default cwd) looking for .clipcat.yaml
    3. Error with helpful message

    Raises:
        ConfigurationError: If no vault can be found.
    """
    root = os.environ.get("CLIPCAT_VAULT_ROOT")
    if root:
        path = Path(root)
        if not path.is_dir():
            raise ConfigurationError(f"CLIPCAT_VAULT_ROOT is not a directory: {root}")
        return path

    current = Path(start_dir or os.getcwd()).resolve()
    for _ in range(max_depth):
        if (current / SETTINGS_FILENAME).exists():
            return current
        parent = current.parent
        if parent == current:  # Reached filesystem root
            break
        current = parent

    raise ConfigurationError(
        "No vault found. Options:\n"
        "  1. Run clipcat from inside a vault that has a .clipcat.yaml file\n"
        "  2. Pass --vault PATH\n"
        "  3. Set CLIPCAT_VAULT_ROOT to the vault directory"
    )


# =============================================================================
# Settings defaults
# =============================================================================

# Front-matter property holding the clipped URL. Comma-separated lists are
# accepted, e.g. "source, url, link".
DEFAULT_SOURCE_PROPERTY = "source"

# Front-matter property holding the read flag. Empty disables read tracking.
DEFAULT_READ_PROPERTY = ""


# =============================================================================
# Refresh
# =============================================================================

# Periodic refresh interval. Catches changes that the file watcher misses
# (network drives, editors that replace files in unusual ways).
REFRESH_INTERVAL_SECONDS = 60.0

# Window for batching file system events into one refresh request.
# Editors often emit several events per save.
WATCH_DEBOUNCE_SECONDS = 1.0

# Seconds to wait for the watchdog observer thread on shutdown.
WATCH_STOP_TIMEOUT = 5.0


# =============================================================================
# Documents
# =============================================================================

# File suffixes treated as catalog candidates.
MARKDOWN_SUFFIXES = (".md",)
