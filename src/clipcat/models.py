"""Pydantic models for the clipping catalog."""

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .config import DEFAULT_READ_PROPERTY, DEFAULT_SOURCE_PROPERTY
from .parser.frontmatter import parse_property_names

UrlValue = str | list[str]

SortKey = Literal["title", "date", "path", "read"]
SortDirection = Literal["asc", "desc"]


class CatalogRecord(BaseModel):
    """One clipped document in a catalog snapshot."""

    model_config = ConfigDict(frozen=True)

    id: str  # Vault-relative POSIX path, unique within a snapshot
    display_title: str
    urls: dict[str, UrlValue]  # Property name -> URL or list of URLs
    created_at: float  # Milliseconds since the epoch
    frontmatter_tags: list[str] = Field(default_factory=list)
    content_tags: list[str] = Field(default_factory=list)
    all_tags: list[str] = Field(default_factory=list)
    raw_content: str = ""
    read: bool = False

    @model_validator(mode="after")
    def _require_urls(self) -> "CatalogRecord":
        if not self.urls:
            raise ValueError(f"{self.id}: a catalog record needs at least one source URL")
        return self

    @property
    def folder(self) -> str:
        """Parent directory of the document, "/" for the vault root."""
        parent, _, _ = self.id.rpartition("/")
        return parent or "/"


class CatalogSnapshot(BaseModel):
    """An immutable, complete catalog produced by one refresh pass."""

    model_config = ConfigDict(frozen=True)

    records: tuple[CatalogRecord, ...] = ()
    sequence: int = 0  # Refresh pass that produced this snapshot
    built_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def __len__(self) -> int:
        return len(self.records)

    def get(self, record_id: str) -> CatalogRecord | None:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def replace_record(self, record: CatalogRecord) -> "CatalogSnapshot":
        """Return a new snapshot with the record of the same id swapped in.

        Unknown ids leave the snapshot unchanged.
        """
        records = tuple(record if r.id == record.id else r for r in self.records)
        return self.model_copy(update={"records": records})


class CatalogConfig(BaseModel):
    """Engine configuration, passed explicitly into every catalog operation."""

    model_config = ConfigDict(frozen=True)

    source_property_names: list[str] = Field(default_factory=lambda: [DEFAULT_SOURCE_PROPERTY])
    ignored_directories: list[str] = Field(default_factory=list)
    read_property_name: str = DEFAULT_READ_PROPERTY  # Empty disables read tracking
    include_frontmatter_tags: bool = True

    @property
    def read_tracking_enabled(self) -> bool:
        return bool(self.read_property_name.strip())


class Settings(BaseModel):
    """Persisted user settings (the .clipcat.yaml file)."""

    source_property_name: str = DEFAULT_SOURCE_PROPERTY  # Comma-separated
    ignored_directories: list[str] = Field(default_factory=list)
    read_property_name: str = DEFAULT_READ_PROPERTY
    include_frontmatter_tags: bool = True
    is_advanced_settings_expanded: bool = False  # UI only, not used by the engine

    def to_catalog_config(self) -> CatalogConfig:
        return CatalogConfig(
            source_property_names=parse_property_names(self.source_property_name),
            ignored_directories=list(self.ignored_directories),
            read_property_name=self.read_property_name.strip(),
            include_frontmatter_tags=self.include_frontmatter_tags,
        )


class CatalogState(str, Enum):
    """Refresh controller state."""

    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


class RefreshTrigger(str, Enum):
    """What asked for a refresh."""

    MOUNT = "mount"
    MANUAL = "manual"
    SETTINGS = "settings"
    REPOSITORY = "repository"
    INTERVAL = "interval"


class SortConfig(BaseModel):
    """Sort key and direction for the catalog view."""

    model_config = ConfigDict(frozen=True)

    key: SortKey = "date"
    direction: SortDirection = "desc"

    def toggled(self, key: SortKey) -> "SortConfig":
        """Sort config after selecting a column: re-selecting an ascending column flips it."""
        direction: SortDirection = "desc" if self.key == key and self.direction == "asc" else "asc"
        return SortConfig(key=key, direction=direction)


class ReadFilter(BaseModel):
    """Read-state filter. The two toggles are mutually exclusive."""

    model_config = ConfigDict(frozen=True)

    hide_read: bool = False
    show_only_read: bool = False

    @model_validator(mode="after")
    def _exclusive(self) -> "ReadFilter":
        if self.hide_read and self.show_only_read:
            raise ValueError("hide_read and show_only_read cannot both be enabled")
        return self

    def with_hide_read(self, enabled: bool) -> "ReadFilter":
        return ReadFilter(hide_read=enabled, show_only_read=self.show_only_read and not enabled)

    def with_show_only_read(self, enabled: bool) -> "ReadFilter":
        return ReadFilter(hide_read=self.hide_read and not enabled, show_only_read=enabled)


class CatalogQuery(BaseModel):
    """Everything the view derives from a snapshot: filter, search term, sort."""

    model_config = ConfigDict(frozen=True)

    search: str = ""
    sort: SortConfig = Field(default_factory=SortConfig)
    read_filter: ReadFilter = Field(default_factory=ReadFilter)


class UrlEntry(BaseModel):
    """One URL value of a record, flagged for display."""

    property_name: str
    url: str
    valid: bool
    domain: str = ""
