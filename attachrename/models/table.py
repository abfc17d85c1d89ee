"""Host table data models: records, field metadata, updates and undo snapshots."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from attachrename.models.rename import Attachment


ATTACHMENT_FIELD_TYPE = "attachment"


class Scope(str, Enum):
    """Which records an operation targets."""

    SELECTED = "selected"
    VIEW = "view"
    ALL = "all"


class FieldMeta(BaseModel):
    """Schema entry for one table field."""

    id: str
    name: str
    type: str = "text"

    @property
    def is_attachment(self) -> bool:
        return self.type == ATTACHMENT_FIELD_TYPE


class HostRecord(BaseModel):
    """A record as returned by the host: raw cell values keyed by field id."""

    record_id: str
    fields: dict[str, Any] = Field(default_factory=dict)

    def attachments(self, field_id: str) -> list[Attachment]:
        """Parse the attachment cell of `field_id`; an empty or missing cell yields []."""
        raw = self.fields.get(field_id) or []
        return [Attachment.model_validate(item) for item in raw]


class RecordUpdate(BaseModel):
    """New attachment list to write into one record's attachment field."""

    record_id: str
    field_id: str
    attachments: list[Attachment]

    def __str__(self) -> str:
        return f"RecordUpdate(record='{self.record_id}', field='{self.field_id}', attachments={len(self.attachments)})"


class UndoEntry(BaseModel):
    """Pre-change attachment list of a single record."""

    model_config = ConfigDict(frozen=True)

    record_id: str
    attachments: list[Attachment]


class UndoSnapshot(BaseModel):
    """Pre-change state of every record touched by one operation."""

    model_config = ConfigDict(frozen=True)

    field_id: str = Field(description="Attachment field the operation wrote to")
    records: list[UndoEntry] = Field(default_factory=list)
    description: str = Field(default="", description="Short label for the operation, e.g. 'rename'")

    def to_updates(self) -> list[RecordUpdate]:
        """Convert back into updates that restore the captured state."""
        return [
            RecordUpdate(record_id=entry.record_id, field_id=self.field_id, attachments=entry.attachments)
            for entry in self.records
        ]

    def __len__(self) -> int:
        return len(self.records)

    def __repr__(self) -> str:
        return f"UndoSnapshot({self.description!r}, {len(self.records)} records)"
