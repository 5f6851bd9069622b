"""Document repository: enumerate, read and write the notes of a vault.

The catalog engine talks to the Repository protocol only. VaultRepository is
the implementation for a directory of Markdown files on disk.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from .config import WATCH_DEBOUNCE_SECONDS
from .errors import CatalogLoadError
from .parser import set_frontmatter_property
from .watcher import ChangeEvent, FileWatcher, is_document_path

logger = logging.getLogger(__name__)

ChangeListener = Callable[[list[ChangeEvent]], None]


@dataclass(frozen=True)
class DocumentInfo:
    """A document as reported by enumeration."""

    id: str  # Vault-relative POSIX path
    basename: str  # File name without extension
    created_at: float  # Milliseconds since the epoch
    modified_at: float  # Milliseconds since the epoch


class Repository(Protocol):
    """Document store the catalog is derived from."""

    async def list_documents(self) -> list[DocumentInfo]: ...

    async def read(self, doc_id: str) -> str: ...

    async def write(self, doc_id: str, text: str) -> None: ...

    async def update_frontmatter(self, doc_id: str, name: str, value: Any) -> None: ...

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]: ...


def _write_in_place(path: Path, text: str) -> None:
    # Rewriting the same inode keeps the birth time that created_at reads
    path.write_text(text, encoding="utf-8", newline="")


def _read_exact(path: Path) -> str:
    # newline="" keeps \r\n intact so patches do not rewrite line endings
    with open(path, encoding="utf-8", newline="") as handle:
        return handle.read()


class VaultRepository:
    """Repository backed by a vault directory."""

    def __init__(
        self,
        vault_root: Path,
        debounce_seconds: float = WATCH_DEBOUNCE_SECONDS,
        watched_files: tuple[str, ...] = (),
    ):
        """Initialize the repository.

        Args:
            vault_root: Vault directory.
            debounce_seconds: Debounce window for change notifications.
            watched_files: Vault-relative non-document files whose changes are
                also reported to listeners (e.g. the settings file).
        """
        self._vault_root = vault_root
        self._debounce_seconds = debounce_seconds
        self._watched_files = watched_files
        self._listeners: list[ChangeListener] = []
        self._watcher: FileWatcher | None = None
        # First-seen creation time per document id, in milliseconds
        self._created_at: dict[str, float] = {}

    @property
    def vault_root(self) -> Path:
        return self._vault_root

    def resolve(self, doc_id: str) -> Path:
        """Absolute path of a document.

        Raises:
            ValueError: If the id points outside the vault.
        """
        root = self._vault_root.resolve()
        path = (root / doc_id).resolve()
        if not path.is_relative_to(root):
            raise ValueError(f"Path escapes the vault: {doc_id}")
        return path

    def _scan(self) -> list[DocumentInfo]:
        if not self._vault_root.is_dir():
            raise CatalogLoadError(
                f"Vault directory not found: {self._vault_root}",
                details={"vault_root": str(self._vault_root)},
            )

        documents = []
        created_at: dict[str, float] = {}
        for path in self._vault_root.rglob("*"):
            relative = path.relative_to(self._vault_root)
            if not is_document_path(relative) or not path.is_file():
                continue
            try:
                stat = path.stat()
            except OSError as e:
                logger.warning("Cannot stat %s: %s", relative, e)
                continue
            doc_id = relative.as_posix()
            # Without st_birthtime, ctime moves on every write; keep the first value seen
            created = self._created_at.get(doc_id)
            if created is None:
                created = (getattr(stat, "st_birthtime", None) or stat.st_ctime) * 1000
            created_at[doc_id] = created
            documents.append(
                DocumentInfo(
                    id=doc_id,
                    basename=path.stem,
                    created_at=created,
                    modified_at=stat.st_mtime * 1000,
                )
            )

        self._created_at = created_at
        documents.sort(key=lambda doc: doc.id)
        return documents

    async def list_documents(self) -> list[DocumentInfo]:
        try:
            return await asyncio.to_thread(self._scan)
        except CatalogLoadError:
            raise
        except OSError as e:
            raise CatalogLoadError(f"Failed to enumerate documents: {e}") from e

    async def read(self, doc_id: str) -> str:
        return await asyncio.to_thread(_read_exact, self.resolve(doc_id))

    async def write(self, doc_id: str, text: str) -> None:
        await asyncio.to_thread(_write_in_place, self.resolve(doc_id), text)

    def _patch_frontmatter(self, doc_id: str, name: str, value: Any) -> None:
        path = self.resolve(doc_id)
        text = _read_exact(path)
        updated = set_frontmatter_property(text, name, value)
        if updated != text:
            _write_in_place(path, updated)
            logger.debug("Set %s=%r in %s", name, value, doc_id)

    async def update_frontmatter(self, doc_id: str, name: str, value: Any) -> None:
        """Set one front-matter property, creating the block if the document has none."""
        await asyncio.to_thread(self._patch_frontmatter, doc_id, name, value)

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it.

        Notifications only flow while watching (see start_watching).
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _dispatch(self, changes: list[ChangeEvent]) -> None:
        logger.debug("%d document change(s) in vault", len(changes))
        for listener in list(self._listeners):
            try:
                listener(changes)
            except Exception as e:
                logger.warning("Change listener failed: %s", e)

    def start_watching(self) -> None:
        """Start file system notifications. Must be called from a running event loop."""
        if self._watcher is None:
            self._watcher = FileWatcher(
                self._vault_root,
                self._dispatch,
                self._debounce_seconds,
                watched_files=self._watched_files,
            )
        self._watcher.start()

    def stop_watching(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
