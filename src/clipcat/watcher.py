"""File watcher that turns vault changes into change notifications."""

import asyncio
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import MARKDOWN_SUFFIXES, WATCH_DEBOUNCE_SECONDS, WATCH_STOP_TIMEOUT

logger = logging.getLogger(__name__)

ChangeKind = Literal["create", "delete", "rename", "modify"]


@dataclass(frozen=True)
class ChangeEvent:
    """A change to one document, with vault-relative POSIX paths."""

    kind: ChangeKind
    path: str
    dest_path: str | None = None


def is_document_path(relative: Path) -> bool:
    """Markdown files outside hidden directories (.obsidian/, .trash/, ...)."""
    if relative.suffix.lower() not in MARKDOWN_SUFFIXES:
        return False
    return not any(part.startswith(".") for part in relative.parts)


class DebouncedHandler(FileSystemEventHandler):
    """File system event handler with debouncing.

    watchdog calls the on_* methods from its observer thread. Events are
    handed to the event loop with call_soon_threadsafe and batched there, so
    the callback always runs on the loop.
    """

    def __init__(
        self,
        vault_root: Path,
        callback: Callable[[list[ChangeEvent]], None],
        loop: asyncio.AbstractEventLoop,
        debounce_seconds: float = WATCH_DEBOUNCE_SECONDS,
        watched_files: tuple[str, ...] = (),
    ):
        """Initialize the debounced handler.

        Args:
            vault_root: Directory being watched; event paths are made relative to it.
            callback: Function called on the loop with the batched changes.
            loop: Event loop that owns the callback.
            debounce_seconds: Debounce window in seconds.
            watched_files: Vault-relative POSIX paths reported even though
                they are not documents.
        """
        super().__init__()
        self._vault_root = vault_root
        self._callback = callback
        self._loop = loop
        self._debounce_seconds = debounce_seconds
        self._watched_files = frozenset(watched_files)
        self._pending: list[ChangeEvent] = []
        self._timer: asyncio.TimerHandle | None = None

    def _relative(self, raw_path: str | bytes) -> Path | None:
        try:
            return Path(os.fsdecode(raw_path)).relative_to(self._vault_root)
        except ValueError:
            return None

    def _is_relevant(self, relative: Path | None) -> bool:
        if relative is None:
            return False
        return is_document_path(relative) or relative.as_posix() in self._watched_files

    def _record(self, change: ChangeEvent) -> None:
        """Queue a change and restart the debounce timer. Runs on the loop."""
        if change not in self._pending:
            self._pending.append(change)

        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(self._debounce_seconds, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if not self._pending:
            return
        changes = self._pending
        self._pending = []
        self._callback(changes)

    def _submit(self, change: ChangeEvent) -> None:
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._record, change)

    def _handle_event(self, event: FileSystemEvent, kind: ChangeKind) -> None:
        if event.is_directory:
            return

        relative = self._relative(event.src_path)
        if not self._is_relevant(relative):
            return

        self._submit(ChangeEvent(kind, relative.as_posix()))

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle file creation."""
        self._handle_event(event, "create")

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle file modification."""
        self._handle_event(event, "modify")

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Handle file deletion."""
        self._handle_event(event, "delete")

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle file move/rename."""
        if event.is_directory:
            return

        src = self._relative(event.src_path)
        dest_raw = getattr(event, "dest_path", None)
        dest = self._relative(dest_raw) if dest_raw else None

        src_is_doc = self._is_relevant(src)
        dest_is_doc = self._is_relevant(dest)

        if src_is_doc:
            self._submit(ChangeEvent("rename", src.as_posix(), dest.as_posix() if dest_is_doc else None))
        elif dest_is_doc:
            # Atomic saves write a temp file and move it over the document
            self._submit(ChangeEvent("modify", dest.as_posix()))


class FileWatcher:
    """Watch a vault directory and report document changes."""

    def __init__(
        self,
        vault_root: Path,
        callback: Callable[[list[ChangeEvent]], None],
        debounce_seconds: float = WATCH_DEBOUNCE_SECONDS,
        watched_files: tuple[str, ...] = (),
    ):
        """Initialize the file watcher.

        Args:
            vault_root: Vault root directory.
            callback: Called on the event loop with each debounced batch.
            debounce_seconds: Debounce window for batching changes.
            watched_files: Non-document files to report as well.
        """
        self._vault_root = vault_root.resolve()
        self._callback = callback
        self._debounce_seconds = debounce_seconds
        self._watched_files = watched_files
        self._observer: Observer | None = None
        self._running = False

    def start(self) -> None:
        """Start watching. Must be called from a running event loop."""
        if self._running:
            return

        if not self._vault_root.exists():
            logger.warning("Vault root does not exist: %s", self._vault_root)
            return

        handler = DebouncedHandler(
            vault_root=self._vault_root,
            callback=self._callback,
            loop=asyncio.get_running_loop(),
            debounce_seconds=self._debounce_seconds,
            watched_files=self._watched_files,
        )
        self._observer = Observer()
        self._observer.schedule(handler, str(self._vault_root), recursive=True)
        self._observer.start()
        self._running = True
        logger.info("Started watching: %s", self._vault_root)

    def stop(self) -> None:
        """Stop watching for file changes."""
        if not self._running or self._observer is None:
            return

        self._observer.stop()
        self._observer.join(timeout=WATCH_STOP_TIMEOUT)
        self._observer = None
        self._running = False
        logger.info("Stopped file watcher")

    @property
    def is_running(self) -> bool:
        """Check if watcher is running."""
        return self._running
