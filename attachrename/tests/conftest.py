"""Shared fixtures."""

import json
from pathlib import Path

import pytest

from attachrename.models.table import FieldMeta, HostRecord, RecordUpdate


class InMemoryHost:
    """Minimal table host keeping records in a dict."""

    def __init__(self, fields: list[FieldMeta], records: dict[str, dict], views: dict[str, list[str]] | None = None):
        self.fields = fields
        self.records = records
        self.views = views or {}
        self.writes: list[list[RecordUpdate]] = []

    async def list_record_ids(self) -> list[str]:
        return list(self.records)

    async def list_view_record_ids(self, view: str | None = None) -> list[str]:
        if view is None:
            return list(self.records)
        return list(self.views[view])

    async def get_field_meta_list(self) -> list[FieldMeta]:
        return list(self.fields)

    async def get_record(self, record_id: str) -> HostRecord:
        return HostRecord(record_id=record_id, fields=dict(self.records[record_id]))

    async def set_records(self, updates: list[RecordUpdate]) -> None:
        self.writes.append(list(updates))
        for update in updates:
            self.records[update.record_id][update.field_id] = [a.model_dump() for a in update.attachments]


@pytest.fixture
def table_fields() -> list[FieldMeta]:
    return [
        FieldMeta(id="fldTitle", name="Title", type="text"),
        FieldMeta(id="fldCount", name="Count", type="number"),
        FieldMeta(id="fldFiles", name="Files", type="attachment"),
    ]


@pytest.fixture
def memory_host(table_fields) -> InMemoryHost:
    """Host with three records: two with attachments, one without."""
    records = {
        "rec1": {
            "fldTitle": "Report",
            "fldCount": 3,
            "fldFiles": [
                {"name": "scan.pdf", "token": "t1", "size": 100},
                {"name": "photo.jpg", "token": "t2", "size": 200},
            ],
        },
        "rec2": {
            "fldTitle": "Invoice",
            "fldFiles": [{"name": "draft.docx", "token": "t3"}],
        },
        "rec3": {"fldTitle": "Empty", "fldFiles": []},
    }
    return InMemoryHost(table_fields, records, views={"Grid": ["rec2", "rec1"]})


TABLE_DATA = {
    "fields": [
        {"id": "fldName", "name": "Name", "type": "text"},
        {"id": "fldDone", "name": "Done", "type": "checkbox"},
        {"id": "fldFiles", "name": "Files", "type": "attachment"},
    ],
    "records": [
        {
            "id": "recA",
            "fields": {
                "fldName": "Alpha",
                "fldDone": True,
                "fldFiles": [
                    {"name": "a.png", "token": "ta", "size": 10},
                    {"name": "b.png", "token": "tb", "size": 20},
                ],
            },
        },
        {"id": "recB", "fields": {"fldName": "Beta", "fldFiles": [{"name": "c.pdf", "token": "tc"}]}},
    ],
    "views": {"Grid": ["recB", "recA", None]},
}


@pytest.fixture
def table_file(tmp_path) -> Path:
    """JSON table file with two records and one view."""
    path = tmp_path / "table.json"
    path.write_text(json.dumps(TABLE_DATA, indent=2), encoding="utf-8")
    return path
