"""Core operations for clipcat.

This module wires the catalog engine to a vault on disk and exposes the
operations used by the CLI.

Design principles:
- All catalog operations are async
- Settings are handed to the engine as a CatalogConfig value; a watching
  session re-reads them when the settings file changes
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .catalog import RefreshController
from .config import (
    REFRESH_INTERVAL_SECONDS,
    SETTINGS_FILENAME,
    WATCH_DEBOUNCE_SECONDS,
    ConfigurationError,
    get_vault_root,
)
from .errors import CatalogLoadError
from .metadata_cache import VaultMetadataCache
from .models import CatalogQuery, CatalogRecord, CatalogSnapshot, CatalogState, RefreshTrigger, Settings
from .query import apply_query, record_domains, url_entries
from .read_state import ReadStateMutator
from .repository import VaultRepository
from .settings import SettingsStore
from .watcher import ChangeEvent

log = logging.getLogger(__name__)


@dataclass
class CatalogSession:
    """Everything needed to work with the catalog of one vault."""

    vault_root: Path
    settings_store: SettingsStore
    repository: VaultRepository
    metadata_cache: VaultMetadataCache
    controller: RefreshController
    read_state: ReadStateMutator


def open_session(
    vault_root: Path | None = None,
    *,
    interval_seconds: float | None = None,
    debounce_seconds: float = WATCH_DEBOUNCE_SECONDS,
) -> CatalogSession:
    """Create a session for a vault (discovered from config when not given).

    Raises:
        ConfigurationError: If no vault can be found or its settings are invalid.
    """
    root = vault_root or get_vault_root()

    def apply_settings(settings: Settings) -> None:
        controller.update_config(settings.to_catalog_config())

    store = SettingsStore(root, on_change=apply_settings)
    repository = VaultRepository(root, debounce_seconds=debounce_seconds, watched_files=(SETTINGS_FILENAME,))
    metadata_cache = VaultMetadataCache(root)
    controller = RefreshController(
        repository,
        metadata_cache,
        store.settings.to_catalog_config(),
        interval_seconds=interval_seconds,
    )
    return CatalogSession(
        vault_root=root,
        settings_store=store,
        repository=repository,
        metadata_cache=metadata_cache,
        controller=controller,
        read_state=ReadStateMutator(controller),
    )


def normalize_record_id(vault_root: Path, path: str) -> str:
    """Turn a user-supplied path (absolute, ./relative or Windows-style) into a record id."""
    candidate = Path(path.replace("\\", "/"))
    if candidate.is_absolute():
        try:
            candidate = candidate.resolve().relative_to(vault_root.resolve())
        except ValueError:
            return candidate.as_posix()
    return candidate.as_posix().removeprefix("./")


async def load_catalog(session: CatalogSession) -> CatalogSnapshot:
    """Run a refresh pass and return the snapshot.

    Raises:
        CatalogLoadError: If the documents could not be enumerated.
    """
    snapshot = await session.controller.refresh(RefreshTrigger.MANUAL)
    if session.controller.state == CatalogState.ERROR or snapshot is None:
        raise CatalogLoadError(session.controller.error or "Failed to load catalog")
    return snapshot


async def list_clippings(
    query: CatalogQuery | None = None,
    limit: int | None = None,
    vault_root: Path | None = None,
) -> list[CatalogRecord]:
    """List clippings matching a query.

    Args:
        query: Search term, read-state filter and sort order.
        limit: Maximum number of records to return.
        vault_root: Vault directory; discovered from config when None.

    Returns:
        Records in display order.
    """
    session = open_session(vault_root)
    snapshot = await load_catalog(session)
    records = apply_query(snapshot.records, query or CatalogQuery())
    return records[:limit] if limit else records


async def set_read_state(path: str, value: bool, vault_root: Path | None = None) -> CatalogRecord:
    """Mark a clipping as read or unread and persist it in its front-matter."""
    session = open_session(vault_root)
    await load_catalog(session)
    record_id = normalize_record_id(session.vault_root, path)
    await session.read_state.set_read(record_id, value)
    return session.controller.snapshot.get(record_id)


async def toggle_read_state(path: str, vault_root: Path | None = None) -> CatalogRecord:
    """Flip the read flag of a clipping."""
    session = open_session(vault_root)
    await load_catalog(session)
    record_id = normalize_record_id(session.vault_root, path)
    await session.read_state.toggle(record_id)
    return session.controller.snapshot.get(record_id)


async def watch_catalog(
    on_update: Callable[[RefreshController], None],
    vault_root: Path | None = None,
    interval_seconds: float = REFRESH_INTERVAL_SECONDS,
    debounce_seconds: float = WATCH_DEBOUNCE_SECONDS,
    stop: asyncio.Event | None = None,
) -> None:
    """Keep the catalog live until `stop` is set (or forever).

    on_update is called after every applied snapshot and every state change.
    Edits to the settings file (from any process) are picked up and trigger
    a settings refresh.
    """
    session = open_session(vault_root, interval_seconds=interval_seconds, debounce_seconds=debounce_seconds)
    session.controller.add_listener(on_update)

    def on_repository_change(changes: list[ChangeEvent]) -> None:
        if not any(SETTINGS_FILENAME in (change.path, change.dest_path) for change in changes):
            return
        try:
            session.settings_store.reload()
        except ConfigurationError as e:
            log.warning("Keeping previous settings: %s", e)

    unsubscribe = session.repository.subscribe(on_repository_change)
    stop = stop or asyncio.Event()

    log.info("Watching catalog of %s", session.vault_root)
    session.repository.start_watching()
    try:
        async with session.controller:
            await stop.wait()
    finally:
        session.repository.stop_watching()
        unsubscribe()


def record_to_dict(record: CatalogRecord) -> dict[str, Any]:
    """JSON-friendly view of a record, with URL validity flags."""
    return {
        "path": record.id,
        "title": record.display_title,
        "folder": record.folder,
        "created": datetime.fromtimestamp(record.created_at / 1000, UTC).isoformat(),
        "read": record.read,
        "urls": [entry.model_dump() for entry in url_entries(record)],
        "domains": record_domains(record),
        "frontmatter_tags": record.frontmatter_tags,
        "content_tags": record.content_tags,
        "tags": record.all_tags,
    }


def get_settings(vault_root: Path | None = None) -> Settings:
    return open_session(vault_root).settings_store.settings


def update_setting(key: str, value: Any, vault_root: Path | None = None) -> Settings:
    """Change one setting and persist it.

    Raises:
        ValueError: For unknown keys or invalid values.
    """
    return open_session(vault_root).settings_store.update(**{key: value})


def add_exclusions(directories: str, vault_root: Path | None = None) -> list[str]:
    """Exclude comma-separated directories. Returns the updated rule list."""
    store = open_session(vault_root).settings_store
    return store.add_ignored_directories(directories).ignored_directories


def remove_exclusion(directory: str, vault_root: Path | None = None) -> list[str]:
    store = open_session(vault_root).settings_store
    if directory not in store.settings.ignored_directories:
        raise ValueError(f"Not an excluded directory: {directory}")
    return store.remove_ignored_directory(directory).ignored_directories


def clear_exclusions(vault_root: Path | None = None) -> None:
    open_session(vault_root).settings_store.clear_ignored_directories()
