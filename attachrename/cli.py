"""CLI entrypoints."""

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import NoReturn

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from tqdm import tqdm

from attachrename.host import JsonTableHost
from attachrename.models.rename import AppendPosition, RenameConfig, RenameMode, RenamePlanItem
from attachrename.models.table import Scope
from attachrename.processors.diff import diff_names
from attachrename.processors.naming import file_tag, is_image_name, is_video_name
from attachrename.processors.session import RenameSession, ScopeResolutionError


console = Console()

# CLI option name -> RenameConfig field
RULE_OPTIONS = {
    "mode": "mode",
    "template": "template",
    "position": "position",
    "insert_index": "insert_index",
    "front": "front_template",
    "back": "back_template",
    "seq_start": "sequence_start",
    "seq_pad": "sequence_pad",
}


def rule_options(func: Callable) -> Callable:
    """Attach the naming rule and scope options shared by `preview` and `rename`."""
    options = [
        click.argument("table_file", type=click.Path(exists=True, dir_okay=False)),
        click.option("-f", "--field", "field_key", type=str, required=True, help="Attachment field id or name."),
        click.option(
            "--config",
            "config_file",
            type=click.Path(exists=True, dir_okay=False),
            default=None,
            help="JSON file with a naming rule. Options given on the command line override it.",
        ),
        click.option("--mode", type=click.Choice([m.value for m in RenameMode]), default=None, help="Rename mode."),
        click.option("-t", "--template", type=str, default=None, help="Replacement template, e.g. '{{Name}}_{{seq}}'."),
        click.option(
            "--position",
            type=click.Choice([p.value for p in AppendPosition]),
            default=None,
            help="Where append mode adds its text.",
        ),
        click.option("--insert-index", type=int, default=None, help="Character offset for --position insert."),
        click.option("--front", type=str, default=None, help="Append mode text before the sequence number."),
        click.option("--back", type=str, default=None, help="Append mode text after the sequence number."),
        click.option("--seq-start", type=int, default=None, help="First sequence number (default 1)."),
        click.option("--seq-pad", type=int, default=None, help="Zero-pad sequence numbers to this width."),
        click.option(
            "--scope",
            type=click.Choice([s.value for s in Scope]),
            default=Scope.VIEW.value,
            help="Records to process.",
        ),
        click.option("--view", type=str, default=None, help="View name for --scope view (default: first view)."),
        click.option(
            "-r",
            "--record",
            "record_ids",
            type=str,
            multiple=True,
            help="Record id for --scope selected. Repeat for several records.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_config(config_file: str | None, overrides: dict) -> RenameConfig:
    """Merge a JSON rule file with command-line overrides into a RenameConfig."""
    base: dict = {}
    if config_file is not None:
        base = RenameConfig.model_validate_json(Path(config_file).read_text(encoding="utf-8")).model_dump()
    for option, field_name in RULE_OPTIONS.items():
        value = overrides.get(option)
        if value is not None:
            base[field_name] = value
    return RenameConfig.model_validate(base)


async def _open_session(table_file: str, field_key: str | None = None) -> RenameSession:
    session = RenameSession(JsonTableHost(table_file))
    await session.refresh_fields()
    if field_key is not None:
        session.select_field(field_key)
    return session


def _highlight(item: RenamePlanItem) -> str:
    parts = diff_names(item.old_name, item.new_name)
    if not parts.highlighted:
        return escape(item.new_name)
    return f"{escape(parts.prefix)}[bold yellow]{escape(parts.highlighted)}[/bold yellow]{escape(parts.suffix)}"


def _type_cell(name: str) -> str:
    tag = escape(file_tag(name))
    if is_image_name(name):
        return f"[magenta]{tag}[/magenta]"
    if is_video_name(name):
        return f"[blue]{tag}[/blue]"
    return f"[dim]{tag}[/dim]"


def _print_preview(items: list[RenamePlanItem]) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Position", style="dim")
    table.add_column("Type", justify="center")
    table.add_column("Original", style="cyan")
    table.add_column("New Name", style="green")

    for item in items:
        original = escape(item.old_name)
        new_name = _highlight(item) if item.changed else f"[dim]{escape(item.new_name)}[/dim]"
        table.add_row(item.label, _type_cell(item.old_name), original, new_name)

    console.print(table)


def _fail(error: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    raise SystemExit(1) from error


@click.group(context_settings=dict(show_default=True))
def cli() -> None:
    """attachrename - Bulk-rename attachments stored in table records."""
    pass


@cli.command("fields")
@click.argument("table_file", type=click.Path(exists=True, dir_okay=False))
def fields(table_file: str) -> None:
    """List the fields of a table and whether they can be renamed or used as variables."""
    try:
        session = asyncio.run(_open_session(table_file))
    except (ValidationError, ValueError) as e:
        _fail(e)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Id", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Usage")

    for meta in session.attachment_fields:
        table.add_row(meta.id, escape(meta.name), "[green]attachment[/green]")
    for field_id, name in session.field_names.items():
        table.add_row(field_id, escape(name), escape(f"variable {{{{{name}}}}}"))

    console.print(table)


@cli.command("preview")
@rule_options
def preview(
    table_file: str,
    field_key: str,
    config_file: str | None,
    scope: str,
    view: str | None,
    record_ids: tuple[str, ...],
    **overrides,
) -> None:
    """Show what a naming rule would do, without writing anything."""
    try:
        config = _build_config(config_file, overrides)
        session = asyncio.run(_open_session(table_file, field_key))
        items = asyncio.run(session.preview(config, Scope(scope), view, record_ids))
    except (ValidationError, ValueError, KeyError, ScopeResolutionError) as e:
        _fail(e)

    if not items:
        console.print("[yellow]Nothing to preview: no attachments in scope.[/yellow]")
        return

    _print_preview(items)
    changed = sum(1 for item in items if item.changed)
    console.print(f"[bold]{changed}[/bold] of {len(items)} attachment(s) would be renamed.")


@cli.command("rename")
@rule_options
@click.option(
    "-y",
    "--yes",
    is_flag=True,
    default=False,
    help="Apply without asking for confirmation and skip the undo prompt.",
)
def rename(
    table_file: str,
    field_key: str,
    config_file: str | None,
    scope: str,
    view: str | None,
    record_ids: tuple[str, ...],
    yes: bool,
    **overrides,
) -> None:
    """Rename attachments across the selected records.

    Examples:

        attachrename rename table.json -f Files -t "{{Name}}_{{seq}}"

        attachrename rename table.json -f Files --mode append --position prepend --front "IMG_" --seq-pad 3
    """
    try:
        config = _build_config(config_file, overrides)
        session = asyncio.run(_open_session(table_file, field_key))
    except (ValidationError, ValueError, KeyError) as e:
        _fail(e)

    if not session.can_start(config):
        _fail(ValueError("The replacement name cannot be empty in replace mode."))

    async def _run() -> None:
        items = await session.preview(config, Scope(scope), view, record_ids)
        if items:
            console.print("[bold]Preview:[/bold]")
            _print_preview(items)

        total = await session.count_scope(Scope(scope), view, record_ids)
        if total == 0:
            console.print("[yellow]No records in scope.[/yellow]")
            return

        if not yes and not click.confirm(f"Rename attachments of {total} record(s)?", default=False):
            console.print("[yellow]Aborted. No attachments were renamed.[/yellow]")
            return

        with tqdm(total=total, desc="Renaming records", unit="record") as progress:

            def _on_progress(current: int, _total: int) -> None:
                progress.update(current - progress.n)

            result = await session.apply(config, Scope(scope), view, record_ids, on_progress=_on_progress)

        console.print(result.summary())
        if result.failed:
            console.print(f"[bold yellow]{result.failed} record(s) could not be renamed.[/bold yellow]")

        if yes or not session.undo_stack:
            return
        if not click.confirm("Undo this rename?", default=False):
            return

        undo_result = await session.undo()
        if undo_result is not None and not undo_result.ok:
            raise ValueError(f"Undo failed for {undo_result.failed} of {undo_result.total} record(s).")
        console.print("[bold green]Undo complete.[/bold green]")

    try:
        asyncio.run(_run())
    except (ValueError, KeyError, ScopeResolutionError) as e:
        _fail(e)


@cli.command("reorder")
@click.argument("table_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("record_id", type=str)
@click.argument("from_position", type=click.IntRange(min=1))
@click.argument("to_position", type=click.IntRange(min=1))
@click.option("-f", "--field", "field_key", type=str, required=True, help="Attachment field id or name.")
def reorder(table_file: str, record_id: str, from_position: int, to_position: int, field_key: str) -> None:
    """Move the attachment at FROM_POSITION to TO_POSITION (1-based) within one record."""

    async def _run():
        session = await _open_session(table_file, field_key)
        return await session.reorder(record_id, from_position - 1, to_position - 1)

    try:
        attachments = asyncio.run(_run())
    except (ValidationError, ValueError, KeyError, IndexError) as e:
        _fail(e)

    for position, attachment in enumerate(attachments, start=1):
        console.print(f"  {position}. [cyan]{escape(attachment.name)}[/cyan]")
    console.print("[bold green]Order updated.[/bold green]")
