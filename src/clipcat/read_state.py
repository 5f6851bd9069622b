"""Read-state updates: optimistic in memory, then written to the document."""

import logging

from .catalog import RefreshController
from .errors import ErrorCode, ReadStateError, RecordNotFoundError

log = logging.getLogger(__name__)


class ReadStateMutator:
    """Sets the read flag of catalog records.

    The current snapshot is updated first so the view reacts immediately.
    If writing the front-matter fails, the record gets its previous value
    back and ReadStateError is raised.
    """

    def __init__(self, controller: RefreshController):
        self._controller = controller

    async def set_read(self, record_id: str, value: bool) -> None:
        """Set the read flag of one record and persist it.

        Raises:
            ReadStateError: If read tracking is disabled or the write failed.
            RecordNotFoundError: If the record is not in the current snapshot.
        """
        property_name = self._controller.config.read_property_name
        if not property_name:
            raise ReadStateError(
                "Read tracking is disabled (no read property configured)",
                code=ErrorCode.READ_STATE_DISABLED,
                details={"suggestion": "clipcat config set read_property_name read"},
            )

        snapshot = self._controller.snapshot
        record = snapshot.get(record_id) if snapshot is not None else None
        if record is None:
            raise RecordNotFoundError(f"Not in the catalog: {record_id}", details={"path": record_id})

        previous = record.read
        self._controller.replace_record(record.model_copy(update={"read": value}))

        try:
            await self._controller.repository.update_frontmatter(record_id, property_name, value)
        except Exception as e:
            self._rollback(record_id, previous)
            log.error("Failed to set %s=%s on %s: %s", property_name, value, record_id, e)
            raise ReadStateError(
                f"Failed to update read state of {record_id}: {e}",
                details={"path": record_id},
            ) from e

        log.debug("Marked %s as %s", record_id, "read" if value else "unread")

    async def toggle(self, record_id: str) -> bool:
        """Flip the read flag. Returns the new value."""
        snapshot = self._controller.snapshot
        record = snapshot.get(record_id) if snapshot is not None else None
        if record is None:
            raise RecordNotFoundError(f"Not in the catalog: {record_id}", details={"path": record_id})

        value = not record.read
        await self.set_read(record_id, value)
        return value

    def _rollback(self, record_id: str, previous: bool) -> None:
        # A refresh may have replaced the snapshot in the meantime
        snapshot = self._controller.snapshot
        current = snapshot.get(record_id) if snapshot is not None else None
        if current is not None:
            self._controller.replace_record(current.model_copy(update={"read": previous}))
