"""Host table access: the protocol the session consumes and a JSON file implementation."""

import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field

from attachrename.models.table import FieldMeta, HostRecord, RecordUpdate


class TableHost(Protocol):
    """Operations the rename session needs from the table storage."""

    async def list_record_ids(self) -> list[str]: ...

    async def list_view_record_ids(self, view: str | None = None) -> list[str]: ...

    async def get_field_meta_list(self) -> list[FieldMeta]: ...

    async def get_record(self, record_id: str) -> HostRecord: ...

    async def set_records(self, updates: list[RecordUpdate]) -> None: ...


class StoredRecord(BaseModel):
    """A record as stored in a JSON table file."""

    id: str
    fields: dict[str, Any] = Field(default_factory=dict)


class TableFile(BaseModel):
    """On-disk layout of a JSON table file."""

    fields: list[FieldMeta] = Field(default_factory=list)
    records: list[StoredRecord] = Field(default_factory=list)
    views: dict[str, list[str | None]] = Field(
        default_factory=dict,
        description="View name -> visible record ids, in display order",
    )


class JsonTableHost:
    """Table host backed by a JSON file on disk.

    Every successful `set_records` call rewrites the file atomically.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.table = TableFile.model_validate_json(self.path.read_text(encoding="utf-8"))

    def _find(self, record_id: str) -> StoredRecord:
        for record in self.table.records:
            if record.id == record_id:
                return record
        raise KeyError(f"Record not found: {record_id}")

    async def list_record_ids(self) -> list[str]:
        return [record.id for record in self.table.records]

    async def list_view_record_ids(self, view: str | None = None) -> list[str]:
        """Visible record ids of `view`, or of the first view when omitted.

        A table without views shows all of its records.

        Raises:
            KeyError: If the named view does not exist.
        """
        if view is None:
            if not self.table.views:
                return await self.list_record_ids()
            view = next(iter(self.table.views))
        if view not in self.table.views:
            raise KeyError(f"View not found: {view}")
        return [record_id for record_id in self.table.views[view] if record_id]

    async def get_field_meta_list(self) -> list[FieldMeta]:
        return list(self.table.fields)

    async def get_record(self, record_id: str) -> HostRecord:
        record = self._find(record_id)
        return HostRecord(record_id=record.id, fields=dict(record.fields))

    async def set_records(self, updates: list[RecordUpdate]) -> None:
        """Apply all updates or none of them.

        A failed save rolls the in-memory table back, so it never holds changes
        the file does not.

        Raises:
            KeyError: If any update targets an unknown record.
            OSError: If the file cannot be written.
        """
        targets = [(self._find(update.record_id), update) for update in updates]
        originals = [(record, dict(record.fields)) for record, _ in targets]

        for record, update in targets:
            record.fields[update.field_id] = [attachment.model_dump() for attachment in update.attachments]
        try:
            self.save()
        except BaseException:
            # Restore in reverse so a record updated twice gets its first copy back
            for record, fields in reversed(originals):
                record.fields = fields
            raise

    def save(self) -> None:
        """Write the table to a temp file next to the target, then move it into place."""
        fd, temp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(self.table.model_dump_json(indent=2))
            os.replace(temp_path, self.path)
        except BaseException:
            Path(temp_path).unlink(missing_ok=True)
            raise
