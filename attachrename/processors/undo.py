"""Bounded undo history and snapshot restoration."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from rich.console import Console

from attachrename.models.table import RecordUpdate, UndoSnapshot


console = Console()

# Maximum number of snapshots to retain
MAX_UNDO_DEPTH = 5

# Records written per restore batch
UNDO_BATCH_SIZE = 50


@dataclass
class UndoResult:
    """Outcome of restoring one snapshot."""

    total: int = 0
    restored: int = 0
    failed: int = 0

    @property
    def ok(self) -> bool:
        return self.failed == 0


class UndoStack:
    """Most-recent-first stack of undo snapshots, capped at `max_depth`."""

    def __init__(self, max_depth: int = MAX_UNDO_DEPTH) -> None:
        self.max_depth = max_depth
        self._snapshots: list[UndoSnapshot] = []

    def push(self, snapshot: UndoSnapshot) -> None:
        """Add a snapshot on top, evicting the oldest beyond `max_depth`."""
        self._snapshots = [snapshot, *self._snapshots][: self.max_depth]

    def peek(self) -> UndoSnapshot | None:
        return self._snapshots[0] if self._snapshots else None

    def pop(self) -> UndoSnapshot | None:
        if not self._snapshots:
            return None
        return self._snapshots.pop(0)

    def clear(self) -> None:
        self._snapshots = []

    def __len__(self) -> int:
        return len(self._snapshots)

    def __iter__(self):
        return iter(list(self._snapshots))


async def restore_snapshot(
    snapshot: UndoSnapshot,
    write_records: Callable[[list[RecordUpdate]], Awaitable[None]],
    batch_size: int = UNDO_BATCH_SIZE,
) -> UndoResult:
    """Write a snapshot's captured attachment lists back, batch by batch.

    Every batch is issued even if an earlier one failed. Failed batches are not
    retried record by record; they are only counted.
    """
    updates = snapshot.to_updates()
    result = UndoResult(total=len(updates))

    for i in range(0, len(updates), batch_size):
        batch = updates[i : i + batch_size]
        try:
            await write_records(batch)
            result.restored += len(batch)
        except Exception as e:
            console.print(f"  [yellow]Undo write failed for {len(batch)} record(s): {e}[/yellow]")
            result.failed += len(batch)

    return result
