"""Rename session: owns the field snapshot and undo history and drives the core against a host."""

from collections.abc import Sequence

from rich.console import Console
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from attachrename.host import TableHost
from attachrename.models.rename import Attachment, RenameConfig, RenameMode, RenamePlanItem
from attachrename.models.table import FieldMeta, RecordUpdate, Scope, UndoEntry, UndoSnapshot
from attachrename.processors.batch_processor import DEFAULT_BATCH_SIZE, BatchProcessor, BatchResult, ProgressCallback
from attachrename.processors.preview import PREVIEW_LIMIT, PreviewBuilder
from attachrename.processors.rename_engine import reorder_attachments
from attachrename.processors.undo import MAX_UNDO_DEPTH, UndoResult, UndoStack, restore_snapshot
from attachrename.templates import DEFAULT_BOOLEAN_LABELS


console = Console()

# Attempts at enumerating the records of a scope before giving up
DEFAULT_SCOPE_ATTEMPTS = 3


class ScopeResolutionError(RuntimeError):
    """The records targeted by an operation could not be enumerated."""


class RenameSession:
    """Top-level coordinator between a table host and the rename core.

    Holds the point-in-time field id -> name snapshot, the selected attachment
    field and the undo history. The core functions receive these explicitly.
    """

    def __init__(
        self,
        host: TableHost,
        batch_size: int = DEFAULT_BATCH_SIZE,
        preview_limit: int = PREVIEW_LIMIT,
        undo_depth: int = MAX_UNDO_DEPTH,
        scope_attempts: int = DEFAULT_SCOPE_ATTEMPTS,
        scope_retry_wait: float = 1.0,
        boolean_labels: tuple[str, str] = DEFAULT_BOOLEAN_LABELS,
    ) -> None:
        """Initialize the session.

        Args:
            host: Table storage to read from and write to.
            batch_size: Records per fetch/write batch for apply and undo.
            preview_limit: Maximum records included in a preview.
            undo_depth: Number of undo snapshots retained.
            scope_attempts: Attempts at listing scope records before failing.
            scope_retry_wait: Multiplier for the exponential wait between those attempts.
            boolean_labels: Yes/no tokens for checkbox fields.
        """
        self.host = host
        self.batch_size = batch_size
        self.scope_attempts = scope_attempts
        self.scope_retry_wait = scope_retry_wait
        self.boolean_labels = boolean_labels
        self.undo_stack = UndoStack(max_depth=undo_depth)
        self.previews = PreviewBuilder(limit=preview_limit, boolean_labels=boolean_labels)

        self.attachment_fields: list[FieldMeta] = []
        self.field_names: dict[str, str] = {}
        self.attachment_field_id: str | None = None

    async def refresh_fields(self) -> None:
        """Rebuild the field snapshot from the host schema.

        Non-attachment fields become template variables. A selected attachment
        field that no longer exists is deselected.
        """
        metas = await self.host.get_field_meta_list()
        self.attachment_fields = [meta for meta in metas if meta.is_attachment]
        self.field_names = {meta.id: meta.name for meta in metas if not meta.is_attachment}

        if self.attachment_field_id and self.attachment_field_id not in {f.id for f in self.attachment_fields}:
            console.print(f"[yellow]Attachment field {self.attachment_field_id} no longer exists.[/yellow]")
            self.attachment_field_id = None

    # Hosts call this on field add/modify/delete notifications
    on_schema_change = refresh_fields

    def select_field(self, key: str) -> FieldMeta:
        """Select the attachment field to rename, by id or display name.

        Raises:
            ValueError: If no attachment field matches `key`.
        """
        for meta in self.attachment_fields:
            if key in (meta.id, meta.name):
                self.attachment_field_id = meta.id
                return meta
        available = ", ".join(meta.name for meta in self.attachment_fields) or "none"
        raise ValueError(f"No attachment field named '{key}'. Available: {available}")

    def _require_field(self) -> str:
        if not self.attachment_field_id:
            raise ValueError("Select an attachment field first.")
        return self.attachment_field_id

    async def _list_scope(self, scope: Scope, view: str | None, selected_ids: Sequence[str]) -> list[str]:
        if scope == Scope.SELECTED:
            return [record_id for record_id in selected_ids if record_id]
        if scope == Scope.VIEW:
            return await self.host.list_view_record_ids(view)
        return await self.host.list_record_ids()

    async def resolve_scope(
        self,
        scope: Scope,
        view: str | None = None,
        selected_ids: Sequence[str] = (),
    ) -> list[str]:
        """Enumerate the record ids targeted by `scope`.

        Transient host failures are retried. Lookup errors such as an unknown
        view are raised immediately.

        Raises:
            ScopeResolutionError: If the host keeps failing to list the records.
            KeyError: If the host does not know the requested view.
        """

        def _log_retry(retry_state) -> None:
            console.print(
                f"  [yellow]Listing {scope.value} records failed. Retrying "
                f"(attempt {retry_state.attempt_number}/{self.scope_attempts})...[/yellow]"
            )

        retrying = AsyncRetrying(
            retry=retry_if_not_exception_type(LookupError),
            stop=stop_after_attempt(self.scope_attempts),
            wait=wait_exponential(multiplier=self.scope_retry_wait, max=10),
            before_sleep=_log_retry,
        )
        try:
            return await retrying(self._list_scope, scope, view, selected_ids)
        except RetryError as e:
            cause = e.last_attempt.exception()
            raise ScopeResolutionError(f"Could not list {scope.value} records: {cause}") from cause

    async def count_scope(self, scope: Scope, view: str | None = None, selected_ids: Sequence[str] = ()) -> int:
        return len(await self.resolve_scope(scope, view, selected_ids))

    def can_start(self, config: RenameConfig) -> bool:
        """Whether `apply` would accept this rule: a field is selected and a replace template is given."""
        if not self.attachment_field_id:
            return False
        if config.mode == RenameMode.REPLACE and not config.template.strip():
            return False
        return True

    async def preview(
        self,
        config: RenameConfig,
        scope: Scope,
        view: str | None = None,
        selected_ids: Sequence[str] = (),
    ) -> list[RenamePlanItem] | None:
        """Dry-run the rule over the start of the scope.

        The request is numbered before the scope is listed, so a slow listing
        cannot outlive a newer preview. Any failure, scope listing included,
        yields an empty preview.

        Returns None when a newer preview was requested before this one finished.
        """
        if not self.attachment_field_id:
            return []
        generation = self.previews.begin()

        try:
            record_ids = await self.resolve_scope(scope, view, selected_ids)
        except Exception as e:
            console.print(f"[yellow]Preview failed: {e}[/yellow]")
            return self.previews.settle(generation, [])

        return await self.previews.build(
            record_ids,
            config,
            self.host.get_record,
            self.attachment_field_id,
            self.field_names,
            generation=generation,
        )

    async def apply(
        self,
        config: RenameConfig,
        scope: Scope,
        view: str | None = None,
        selected_ids: Sequence[str] = (),
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """Rename attachments across the scope and record one undo snapshot.

        Raises:
            ValueError: If no field is selected or the replace template is blank.
            ScopeResolutionError: If the scope cannot be enumerated. Nothing is written then.
        """
        field_id = self._require_field()
        if config.mode == RenameMode.REPLACE and not config.template.strip():
            raise ValueError("The replacement name cannot be empty in replace mode.")

        record_ids = await self.resolve_scope(scope, view, selected_ids)
        if not record_ids:
            console.print("[yellow]No records in scope.[/yellow]")
            return BatchResult(total=0)

        processor = BatchProcessor(field_id=field_id, batch_size=self.batch_size, boolean_labels=self.boolean_labels)
        return await processor.run(
            record_ids,
            config,
            self.host.get_record,
            self.host.set_records,
            self.field_names,
            on_progress=on_progress,
            undo_stack=self.undo_stack,
        )

    async def undo(self) -> UndoResult | None:
        """Restore the most recent snapshot.

        The snapshot is consumed once every batch has been issued, even when
        some of them failed; failures show up in the returned UndoResult.

        Returns:
            UndoResult, or None if there is nothing to undo.
        """
        snapshot = self.undo_stack.peek()
        if snapshot is None:
            return None

        label = snapshot.description or "last operation"
        console.print(f"[cyan]Undoing {label} on {len(snapshot)} record(s)...[/cyan]")
        result = await restore_snapshot(snapshot, self.host.set_records, self.batch_size)
        self.undo_stack.pop()
        return result

    async def reorder(self, record_id: str, from_index: int, to_index: int) -> list[Attachment]:
        """Move one attachment within a record and record the previous order for undo.

        A move onto the same position writes nothing. When the write fails the
        error propagates and no snapshot is recorded.

        Raises:
            ValueError: If no attachment field is selected.
            IndexError: If an index is outside the attachment list.
        """
        field_id = self._require_field()
        record = await self.host.get_record(record_id)
        previous = record.attachments(field_id)
        reordered = reorder_attachments(previous, from_index, to_index)
        if from_index == to_index:
            return previous

        await self.host.set_records([RecordUpdate(record_id=record_id, field_id=field_id, attachments=reordered)])
        self.undo_stack.push(
            UndoSnapshot(
                field_id=field_id,
                records=[UndoEntry(record_id=record_id, attachments=previous)],
                description="reorder",
            )
        )
        return reordered
