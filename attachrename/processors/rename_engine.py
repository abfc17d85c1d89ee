"""Rename engine: applies a naming rule to one record's attachment list."""

from collections.abc import Mapping, Sequence
from typing import TypeVar

from attachrename.models.rename import AppendPosition, Attachment, RenameConfig, RenameMode, RenameOutcome
from attachrename.processors.naming import CollisionResolver, clamp_index, sequence_for, split_file_name
from attachrename.templates import render_template


T = TypeVar("T")


def _new_base(base: str, sequence_text: str, config: RenameConfig, field_values: Mapping[str, str]) -> str:
    if config.mode == RenameMode.REPLACE:
        rendered = render_template(config.template, sequence_text, field_values)
        # Never produce an attachment with an empty base name
        return rendered if rendered.strip() else base

    front = render_template(config.front_template, sequence_text, field_values)
    back = render_template(config.back_template, sequence_text, field_values)
    insert_text = f"{front}{sequence_text}{back}"

    if config.position == AppendPosition.PREPEND:
        return f"{insert_text}{base}"
    if config.position == AppendPosition.APPEND:
        return f"{base}{insert_text}"

    offset = clamp_index(config.insert_index, len(base))
    return f"{base[:offset]}{insert_text}{base[offset:]}"


def rename_attachments(
    attachments: Sequence[Attachment],
    config: RenameConfig,
    field_values: Mapping[str, str],
) -> RenameOutcome:
    """Compute new names for a record's attachments.

    Pure and deterministic: the extension of every attachment is kept, the
    sequence restarts for each call, and name collisions inside the list are
    resolved with `_1`, `_2`, ... suffixes. Only `name` differs between an input
    attachment and its output copy.

    Args:
        attachments: The record's attachments, in display order.
        config: Active naming rule.
        field_values: Field display name -> text for template variables.

    Returns:
        RenameOutcome with the renamed copies (same order) and whether any name changed.
    """
    resolver = CollisionResolver()
    updated: list[Attachment] = []

    for index, attachment in enumerate(attachments):
        base, extension = split_file_name(attachment.name)
        sequence_text = sequence_for(config.sequence_start, index, config.sequence_pad)
        new_base = _new_base(base, sequence_text, config, field_values)
        unique_name = resolver.ensure_unique(new_base, extension)
        updated.append(attachment.model_copy(update={"name": unique_name}))

    changed = any(new.name != old.name for new, old in zip(updated, attachments))
    return RenameOutcome(updated=updated, changed=changed)


def reorder_attachments(items: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """Move the item at `from_index` to `to_index`, shifting the items in between.

    Raises:
        IndexError: If either index is outside the list.
    """
    if not (0 <= from_index < len(items)) or not (0 <= to_index < len(items)):
        raise IndexError(f"Cannot move item {from_index} to {to_index} in a list of {len(items)}")

    reordered = list(items)
    item = reordered.pop(from_index)
    reordered.insert(to_index, item)
    return reordered
