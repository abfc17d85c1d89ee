"""Batched rename pipeline with per-record failure isolation."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field

from rich.console import Console

from attachrename.models.rename import RenameConfig
from attachrename.models.table import HostRecord, RecordUpdate, UndoEntry, UndoSnapshot
from attachrename.processors.rename_engine import rename_attachments
from attachrename.processors.undo import UndoStack
from attachrename.templates import DEFAULT_BOOLEAN_LABELS, build_field_values


# Console for rich output
console = Console()

# Number of records fetched and written together. Batches run one after another.
DEFAULT_BATCH_SIZE = 50

RecordFetcher = Callable[[str], Awaitable[HostRecord]]
RecordWriter = Callable[[list[RecordUpdate]], Awaitable[None]]
ProgressCallback = Callable[[int, int], object]


@dataclass
class BatchResult:
    """Counters and captured undo state of one batch run."""

    total: int = 0
    success: int = 0
    failed: int = 0
    undo_entries: list[UndoEntry] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        """Records that needed no write (no attachments or no name change)."""
        return self.total - self.success - self.failed

    def summary(self) -> str:
        """Return a human-readable summary of the run."""
        lines = [
            "Rename Summary:",
            f"  Records in scope: {self.total}",
            f"  Renamed: {self.success}",
            f"  Failed: {self.failed}",
            f"  Unchanged: {self.skipped}",
        ]
        return "\n".join(lines)


async def _notify(callback: ProgressCallback | None, current: int, total: int) -> None:
    if callback is None:
        return
    outcome = callback(current, total)
    if inspect.isawaitable(outcome):
        await outcome


class BatchProcessor:
    """Runs the rename engine over many records in fixed-size batches."""

    def __init__(
        self,
        field_id: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        boolean_labels: tuple[str, str] = DEFAULT_BOOLEAN_LABELS,
    ) -> None:
        """Initialize the batch processor.

        Args:
            field_id: Attachment field to rename.
            batch_size: Records per fetch/write batch.
            boolean_labels: Yes/no tokens used when stringifying checkbox fields.
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.field_id = field_id
        self.batch_size = batch_size
        self.boolean_labels = boolean_labels

    def _batch_ids(self, record_ids: Sequence[str]) -> list[list[str]]:
        """Split record ids into consecutive, non-overlapping batches."""
        return [list(record_ids[i : i + self.batch_size]) for i in range(0, len(record_ids), self.batch_size)]

    async def _fetch_batch(
        self,
        batch_ids: list[str],
        fetch_record: RecordFetcher,
        result: BatchResult,
    ) -> list[HostRecord]:
        """Fetch a batch concurrently. Failed fetches are counted and dropped."""

        async def _fetch(record_id: str) -> HostRecord | None:
            try:
                return await fetch_record(record_id)
            except Exception as e:
                console.print(f"  [yellow]Could not read record {record_id}: {e}[/yellow]")
                result.failed += 1
                return None

        records = await asyncio.gather(*(_fetch(record_id) for record_id in batch_ids))
        return [record for record in records if record is not None]

    def _build_updates(
        self,
        records: list[HostRecord],
        config: RenameConfig,
        field_names: Mapping[str, str],
        result: BatchResult,
    ) -> list[RecordUpdate]:
        """Rename each fetched record and collect updates for the ones that changed."""
        updates: list[RecordUpdate] = []

        for record in records:
            try:
                attachments = record.attachments(self.field_id)
            except (TypeError, ValueError) as e:
                # pydantic.ValidationError is a ValueError
                console.print(f"  [yellow]Record {record.record_id} has an unreadable attachment cell: {e}[/yellow]")
                result.failed += 1
                continue

            if not attachments:
                continue

            field_values = build_field_values(record.fields, field_names, self.boolean_labels)
            outcome = rename_attachments(attachments, config, field_values)
            if not outcome.changed:
                continue

            result.undo_entries.append(UndoEntry(record_id=record.record_id, attachments=attachments))
            updates.append(
                RecordUpdate(record_id=record.record_id, field_id=self.field_id, attachments=outcome.updated)
            )

        return updates

    async def _write_batch(self, updates: list[RecordUpdate], write_records: RecordWriter, result: BatchResult) -> None:
        """Write all updates at once, falling back to one write per record."""
        try:
            await write_records(updates)
            result.success += len(updates)
            return
        except Exception as e:
            console.print(
                f"  [yellow]Batch write failed ({e}). Retrying {len(updates)} record(s) one by one...[/yellow]"
            )

        for update in updates:
            try:
                await write_records([update])
                result.success += 1
            except Exception as e:
                console.print(f"  [yellow]Could not write record {update.record_id}: {e}[/yellow]")
                result.failed += 1

    async def run(
        self,
        record_ids: Sequence[str],
        config: RenameConfig,
        fetch_record: RecordFetcher,
        write_records: RecordWriter,
        field_names: Mapping[str, str],
        on_progress: ProgressCallback | None = None,
        undo_stack: UndoStack | None = None,
    ) -> BatchResult:
        """Rename attachments across `record_ids`.

        Per-record fetch and write failures are counted in the result and never
        raised. When `undo_stack` is given, a single snapshot covering every
        changed record of the run is pushed once all batches have finished.

        Args:
            record_ids: Records in scope, in processing order.
            config: Active naming rule.
            fetch_record: Async callable returning a record's raw fields.
            write_records: Async callable persisting a list of updates.
            field_names: Snapshot of field id -> display name for template variables.
            on_progress: Called with (processed, total) after every batch.
            undo_stack: Receives the run's undo snapshot.

        Returns:
            BatchResult with total/success/failed counters and the captured undo entries.
        """
        result = BatchResult(total=len(record_ids))
        batches = self._batch_ids(record_ids)
        processed = 0

        console.print(f"[bold]Processing {result.total} record(s) in {len(batches)} batch(es)...[/bold]")

        try:
            for batch_idx, batch_ids in enumerate(batches):
                records = await self._fetch_batch(batch_ids, fetch_record, result)
                updates = self._build_updates(records, config, field_names, result)

                if updates:
                    await self._write_batch(updates, write_records, result)

                processed += len(batch_ids)
                console.print(
                    f"  [dim]Batch {batch_idx + 1}/{len(batches)}: {len(updates)} record(s) to update, "
                    f"{processed}/{result.total} processed[/dim]"
                )
                await _notify(on_progress, processed, result.total)
        finally:
            if undo_stack is not None and result.undo_entries:
                undo_stack.push(UndoSnapshot(field_id=self.field_id, records=result.undo_entries, description="rename"))

        console.print(
            f"[bold green]All batches processed.[/bold green] "
            f"Renamed {result.success}, failed {result.failed}, unchanged {result.skipped}."
        )
        return result
