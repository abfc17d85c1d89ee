"""Rename rule and attachment data models."""

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_SEQUENCE_START = 1


class RenameMode(str, Enum):
    """How the rename rule builds the new base name."""

    REPLACE = "replace"
    APPEND = "append"


class AppendPosition(str, Enum):
    """Where append-mode text goes relative to the original base name."""

    PREPEND = "prepend"
    APPEND = "append"
    INSERT = "insert"


def _clamp_non_negative(value: Any, fallback: int) -> int:
    """Coerce a raw numeric input into a non-negative integer.

    Unparsable and non-finite values become `fallback`; floats are floored.
    """
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return max(0, math.floor(number))


class Attachment(BaseModel):
    """A file attachment stored in a record's attachment field.

    Only `name` takes part in renaming. The token and any other metadata the host
    sends along are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(description="File name including the extension")
    token: str = Field(default="", description="Opaque host identifier of the stored file")

    def __str__(self) -> str:
        return f"Attachment('{self.name}', token='{self.token}')"


class RenameConfig(BaseModel):
    """The active naming rule.

    Numeric fields are clamped to non-negative integers on construction, so the
    engine never has to validate them again.
    """

    model_config = ConfigDict(frozen=True)

    mode: RenameMode = Field(default=RenameMode.REPLACE, description="Replace the base name or add to it")
    template: str = Field(default="", description="Replacement template used in replace mode")
    position: AppendPosition = Field(
        default=AppendPosition.APPEND,
        description="Where the inserted text goes in append mode",
    )
    insert_index: int = Field(default=0, description="Character offset into the base name for insert position")
    front_template: str = Field(default="", description="Template rendered before the sequence number")
    back_template: str = Field(default="", description="Template rendered after the sequence number")
    sequence_start: int = Field(default=DEFAULT_SEQUENCE_START, description="Sequence value of the first attachment")
    sequence_pad: int = Field(default=0, description="Zero-pad sequence numbers to this width (0 disables)")

    @field_validator("sequence_start", mode="before")
    @classmethod
    def _clamp_sequence_start(cls, value: Any) -> int:
        return _clamp_non_negative(value, DEFAULT_SEQUENCE_START)

    @field_validator("sequence_pad", "insert_index", mode="before")
    @classmethod
    def _clamp_counts(cls, value: Any) -> int:
        return _clamp_non_negative(value, 0)


class RenameOutcome(BaseModel):
    """Result of renaming one record's attachment list."""

    updated: list[Attachment] = Field(default_factory=list)
    changed: bool = False

    def __len__(self) -> int:
        return len(self.updated)


class RenamePlanItem(BaseModel):
    """One row of a dry-run preview."""

    record_id: str = Field(description="Record holding the attachment")
    attachment_index: int = Field(description="Zero-based position of the attachment in the record")
    old_name: str = Field(description="Current attachment name")
    new_name: str = Field(description="Name the rule would produce")
    label: str = Field(default="", description="Human-readable position label")

    @property
    def changed(self) -> bool:
        return self.old_name != self.new_name

    def __str__(self) -> str:
        return f"RenamePlanItem('{self.old_name}' -> '{self.new_name}', record='{self.record_id}')"


class DiffParts(BaseModel):
    """Split of a new name into unchanged prefix, changed middle and unchanged suffix."""

    prefix: str = ""
    highlighted: str = ""
    suffix: str = ""

    def joined(self) -> str:
        return f"{self.prefix}{self.highlighted}{self.suffix}"
