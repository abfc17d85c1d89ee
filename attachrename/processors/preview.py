"""Dry-run previews of a naming rule."""

from collections.abc import Mapping, Sequence

from rich.console import Console

from attachrename.models.rename import RenameConfig, RenamePlanItem
from attachrename.processors.batch_processor import RecordFetcher
from attachrename.processors.rename_engine import rename_attachments
from attachrename.templates import DEFAULT_BOOLEAN_LABELS, build_field_values


console = Console()

# Only the first records of a scope are previewed
PREVIEW_LIMIT = 50


class PreviewBuilder:
    """Builds rename previews, discarding results of superseded requests.

    Every request takes a new generation number, from `begin` or from `build`
    itself. When a newer request has started before an older one finishes, the
    older result is thrown away and `None` is returned in its place. Nothing is
    aborted.
    """

    def __init__(
        self,
        limit: int = PREVIEW_LIMIT,
        boolean_labels: tuple[str, str] = DEFAULT_BOOLEAN_LABELS,
    ) -> None:
        self.limit = limit
        self.boolean_labels = boolean_labels
        self.generation = 0

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def begin(self) -> int:
        """Start a new preview request and return its generation number."""
        self.generation += 1
        return self.generation

    def settle(self, generation: int, items: list[RenamePlanItem]) -> list[RenamePlanItem] | None:
        """Return `items`, or None when a newer request has started since `generation`."""
        if not self.is_current(generation):
            return None
        return items

    async def build(
        self,
        record_ids: Sequence[str],
        config: RenameConfig,
        fetch_record: RecordFetcher,
        field_id: str,
        field_names: Mapping[str, str],
        generation: int | None = None,
    ) -> list[RenamePlanItem] | None:
        """Preview the rule over the first `limit` records of the scope.

        Records are read one at a time; records without attachments are left
        out. Any failure yields an empty preview.

        Args:
            generation: Number from an earlier `begin()` when the request started
                before `record_ids` were known. A new one is taken when omitted.

        Returns:
            Plan items in record/attachment order, or None if a newer build started meanwhile.
        """
        if generation is None:
            generation = self.begin()

        try:
            items = await self._collect(record_ids[: self.limit], config, fetch_record, field_id, field_names)
        except Exception as e:
            console.print(f"[yellow]Preview failed: {e}[/yellow]")
            items = []

        return self.settle(generation, items)

    async def _collect(
        self,
        record_ids: Sequence[str],
        config: RenameConfig,
        fetch_record: RecordFetcher,
        field_id: str,
        field_names: Mapping[str, str],
    ) -> list[RenamePlanItem]:
        items: list[RenamePlanItem] = []

        for record_number, record_id in enumerate(record_ids, start=1):
            record = await fetch_record(record_id)
            attachments = record.attachments(field_id)
            if not attachments:
                continue

            field_values = build_field_values(record.fields, field_names, self.boolean_labels)
            outcome = rename_attachments(attachments, config, field_values)
            for index, (old, new) in enumerate(zip(attachments, outcome.updated)):
                items.append(
                    RenamePlanItem(
                        record_id=record_id,
                        attachment_index=index,
                        old_name=old.name,
                        new_name=new.name,
                        label=f"Record {record_number} · Attachment {index + 1}",
                    )
                )

        return items
