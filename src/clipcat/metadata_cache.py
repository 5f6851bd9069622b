"""Per-document metadata: parsed front-matter and inline tag occurrences."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import yaml

from .errors import DocumentError
from .parser import TagOccurrence, find_inline_tags, split_document


@dataclass(frozen=True)
class FileMetadata:
    """Indexed metadata for one document.

    `frontmatter` is None when the document has no front-matter block.
    """

    frontmatter: dict[str, Any] | None
    tags: list[TagOccurrence] = field(default_factory=list)


class MetadataCache(Protocol):
    def get_file_cache(self, doc_id: str) -> FileMetadata | None: ...


class VaultMetadataCache:
    """Metadata cache for a vault directory, invalidated by file mtime and size."""

    def __init__(self, vault_root: Path):
        self._vault_root = vault_root
        self._entries: dict[str, tuple[tuple[int, int], FileMetadata]] = {}

    def get_file_cache(self, doc_id: str) -> FileMetadata | None:
        """Metadata for a document, or None if it does not exist.

        Raises:
            DocumentError: If the front-matter is not valid YAML.
            OSError: If the file exists but cannot be read.
        """
        path = self._vault_root / doc_id
        try:
            stat = path.stat()
        except FileNotFoundError:
            self._entries.pop(doc_id, None)
            return None

        key = (stat.st_mtime_ns, stat.st_size)
        cached = self._entries.get(doc_id)
        if cached is not None and cached[0] == key:
            return cached[1]

        text = path.read_text(encoding="utf-8")
        try:
            frontmatter, body = split_document(text)
        except yaml.YAMLError as e:
            raise DocumentError(doc_id, f"Invalid front-matter: {e}") from e

        metadata = FileMetadata(frontmatter=frontmatter, tags=find_inline_tags(body))
        self._entries[doc_id] = (key, metadata)
        return metadata

    def invalidate(self, doc_id: str | None = None) -> None:
        """Drop one cached document, or everything."""
        if doc_id is None:
            self._entries.clear()
        else:
            self._entries.pop(doc_id, None)
