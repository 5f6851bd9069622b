"""Catalog building and refresh control.

build_catalog() turns the documents of a repository into an immutable
CatalogSnapshot. RefreshController keeps the current snapshot up to date:

- Refresh requests come from independent producers (an interval ticker,
  repository change notifications, settings changes, explicit requests) and
  all go through one queue consumed by a single runner. Requests that pile up
  while a pass is running are coalesced into one follow-up pass.
- refresh() can also be awaited directly, so passes may overlap. Every pass
  takes a sequence number and a result older than the last applied one is
  discarded. The state reads LOADING while any pass is still running.
- A failed enumeration puts the controller in the ERROR state and clears
  the snapshot. Failures of single documents only skip that document.
"""

import asyncio
import logging
from collections.abc import Callable

from .config import REFRESH_INTERVAL_SECONDS
from .errors import CatalogLoadError
from .exclusions import is_excluded
from .metadata_cache import MetadataCache
from .models import CatalogConfig, CatalogRecord, CatalogSnapshot, CatalogState, RefreshTrigger
from .parser import (
    display_title,
    extract_read_flag,
    extract_urls,
    merge_tags,
    normalize_content_tags,
    normalize_frontmatter_tags,
)
from .repository import DocumentInfo, Repository
from .watcher import ChangeEvent

log = logging.getLogger(__name__)

StateListener = Callable[["RefreshController"], None]


async def build_record(
    document: DocumentInfo,
    repository: Repository,
    metadata_cache: MetadataCache,
    config: CatalogConfig,
) -> CatalogRecord | None:
    """Build the catalog record for one document.

    Returns None when the document is not a clipping (no front-matter, or no
    usable value under any source property). The content is only read for
    documents that qualify.
    """
    metadata = metadata_cache.get_file_cache(document.id)
    if metadata is None or metadata.frontmatter is None:
        return None

    urls = extract_urls(metadata.frontmatter, config.source_property_names)
    if not urls:
        return None

    content = await repository.read(document.id)
    frontmatter_tags = normalize_frontmatter_tags(
        metadata.frontmatter.get("tags"), config.include_frontmatter_tags
    )
    content_tags = normalize_content_tags(metadata.tags)

    return CatalogRecord(
        id=document.id,
        display_title=display_title(document.basename, content),
        urls=urls,
        created_at=document.created_at,
        frontmatter_tags=frontmatter_tags,
        content_tags=content_tags,
        all_tags=merge_tags(frontmatter_tags, content_tags),
        raw_content=content,
        read=extract_read_flag(metadata.frontmatter, config.read_property_name),
    )


async def build_catalog(
    repository: Repository,
    metadata_cache: MetadataCache,
    config: CatalogConfig,
    sequence: int = 0,
) -> CatalogSnapshot:
    """Build a complete snapshot of the clippings in the repository.

    Raises:
        CatalogLoadError: If the documents cannot be enumerated.
    """
    try:
        documents = await repository.list_documents()
    except CatalogLoadError:
        raise
    except Exception as e:
        raise CatalogLoadError(f"Failed to enumerate documents: {e}") from e

    records: list[CatalogRecord] = []
    excluded = 0
    for document in documents:
        if is_excluded(document.id, config.ignored_directories):
            excluded += 1
            continue

        try:
            record = await build_record(document, repository, metadata_cache, config)
        except Exception as e:
            log.warning("Skipping %s: %s", document.id, e)
            continue

        if record is not None:
            records.append(record)

    log.debug(
        "Catalog #%d: %d clippings from %d documents (%d excluded)",
        sequence,
        len(records),
        len(documents),
        excluded,
    )
    return CatalogSnapshot(records=tuple(records), sequence=sequence)


class RefreshController:
    """Keeps the current catalog snapshot in sync with the repository."""

    def __init__(
        self,
        repository: Repository,
        metadata_cache: MetadataCache,
        config: CatalogConfig,
        *,
        interval_seconds: float | None = REFRESH_INTERVAL_SECONDS,
    ):
        """Initialize the controller.

        Args:
            repository: Document source.
            metadata_cache: Front-matter and tag index for the repository.
            config: Engine configuration.
            interval_seconds: Periodic refresh interval; None disables the ticker.
        """
        self._repository = repository
        self._metadata_cache = metadata_cache
        self._config = config
        self._interval_seconds = interval_seconds

        self._state = CatalogState.IDLE
        self._snapshot: CatalogSnapshot | None = None
        self._error: str | None = None
        self._next_sequence = 0
        self._applied_sequence = 0
        self._in_flight = 0
        self._settled_state = CatalogState.IDLE

        self._queue: asyncio.Queue[RefreshTrigger] = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []
        self._unsubscribe: Callable[[], None] | None = None
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> CatalogState:
        return self._state

    @property
    def snapshot(self) -> CatalogSnapshot | None:
        """The current snapshot; None before the first pass and in the ERROR state."""
        return self._snapshot

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def config(self) -> CatalogConfig:
        return self._config

    @property
    def repository(self) -> Repository:
        return self._repository

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Call listener after every state or snapshot change. Returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                log.warning("Catalog listener failed: %s", e)

    async def refresh(self, trigger: RefreshTrigger = RefreshTrigger.MANUAL) -> CatalogSnapshot | None:
        """Run one refresh pass.

        The state stays LOADING until every overlapping pass has finished.

        Returns:
            The new snapshot, or None if the pass failed or was superseded by
            a newer pass that finished first.
        """
        self._next_sequence += 1
        sequence = self._next_sequence
        config = self._config

        self._in_flight += 1
        self._state = CatalogState.LOADING
        self._notify()
        log.debug("Refresh #%d (%s)", sequence, trigger.value)

        try:
            return await self._run_pass(sequence, config)
        finally:
            self._in_flight -= 1
            if self._in_flight == 0 and self._state == CatalogState.LOADING:
                # Last pass out was superseded; settle on the applied outcome
                self._state = self._settled_state
                self._notify()

    async def _run_pass(self, sequence: int, config: CatalogConfig) -> CatalogSnapshot | None:
        try:
            snapshot = await build_catalog(self._repository, self._metadata_cache, config, sequence)
        except CatalogLoadError as e:
            if sequence < self._applied_sequence:
                log.debug("Ignoring failure of superseded refresh #%d", sequence)
                return None
            self._applied_sequence = sequence
            self._snapshot = None
            self._error = e.message
            log.error("Failed to load catalog: %s", e.message)
            self._settle(CatalogState.ERROR)
            return None

        if sequence < self._applied_sequence:
            log.debug("Discarding superseded refresh #%d", sequence)
            return None

        self._applied_sequence = sequence
        self._snapshot = snapshot
        self._error = None
        self._settle(CatalogState.IDLE)
        return snapshot

    def _settle(self, state: CatalogState) -> None:
        """Publish an applied outcome; the state only leaves LOADING with the last pass."""
        self._settled_state = state
        if self._in_flight == 1:
            self._state = state
        self._notify()

    def request_refresh(self, trigger: RefreshTrigger = RefreshTrigger.MANUAL) -> None:
        """Queue a refresh for the runner (see start)."""
        self._queue.put_nowait(trigger)

    def update_config(self, config: CatalogConfig) -> None:
        """Swap in a new configuration and queue a refresh with it."""
        self._config = config
        self.request_refresh(RefreshTrigger.SETTINGS)

    def replace_record(self, record: CatalogRecord) -> None:
        """Swap one record in the current snapshot (used for read-state updates)."""
        if self._snapshot is None:
            return
        self._snapshot = self._snapshot.replace_record(record)
        self._notify()

    def _on_repository_change(self, changes: list[ChangeEvent]) -> None:
        log.debug("Repository changed (%d events), refreshing", len(changes))
        self.request_refresh(RefreshTrigger.REPOSITORY)

    async def _run(self) -> None:
        while True:
            trigger = await self._queue.get()
            while not self._queue.empty():
                trigger = self._queue.get_nowait()
            await self.refresh(trigger)

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            self.request_refresh(RefreshTrigger.INTERVAL)

    async def start(self) -> None:
        """Subscribe to repository changes, start the runner and ticker, queue the first pass."""
        if self._tasks:
            return

        self._unsubscribe = self._repository.subscribe(self._on_repository_change)
        self._tasks.append(asyncio.create_task(self._run(), name="clipcat-refresh-runner"))
        if self._interval_seconds:
            self._tasks.append(asyncio.create_task(self._tick(), name="clipcat-refresh-ticker"))
        self.request_refresh(RefreshTrigger.MOUNT)

    async def stop(self) -> None:
        """Stop background refreshes and unsubscribe from the repository."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def __aenter__(self) -> "RefreshController":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()
