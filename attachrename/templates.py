"""Naming template rendering and cell value stringification."""

import math
import re
from collections.abc import Mapping
from typing import Any


# Reserved variable name for the per-attachment sequence number
SEQUENCE_VARIABLE = "seq"
SEQUENCE_TOKEN = "{{" + SEQUENCE_VARIABLE + "}}"

# Generic `{{field name}}` placeholder. Names may not contain braces.
VARIABLE_PATTERN = re.compile(r"\{\{([^{}]+)\}\}")

DEFAULT_BOOLEAN_LABELS = ("Yes", "No")


def render_template(template: str, sequence_text: str, field_values: Mapping[str, str]) -> str:
    """Render a naming template into a literal string.

    The literal sequence token is substituted first. Any remaining `{{name}}`
    placeholder resolves to the sequence text for the reserved sequence name, to
    the matching field value, or to an empty string for unknown names.
    Substituted values are never scanned again.
    """
    result = sequence_text.join(template.split(SEQUENCE_TOKEN))

    def _substitute(match: re.Match) -> str:
        name = match.group(1).strip()
        if name == SEQUENCE_VARIABLE:
            return sequence_text
        return field_values.get(name, "")

    return VARIABLE_PATTERN.sub(_substitute, result)


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_object(obj: Mapping[str, Any]) -> str:
    value = obj.get("value")
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _format_number(value)
    if isinstance(obj.get("name"), str):
        return obj["name"]
    link = obj.get("link")
    text = obj.get("text")
    if isinstance(text, str) and (text or not isinstance(link, str)):
        return text
    if isinstance(obj.get("title"), str):
        return obj["title"]
    if isinstance(link, str):
        return link
    for key in ("location", "address"):
        if isinstance(obj.get(key), str):
            return obj[key]
    return ""


def format_cell_value(value: Any, boolean_labels: tuple[str, str] = DEFAULT_BOOLEAN_LABELS) -> str:
    """Stringify a raw host cell value for template substitution.

    Lossy on purpose and never raises. Unknown shapes become an empty string
    rather than a serialized dump. New field types are supported by adding
    another object heuristic in `_format_object`.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return boolean_labels[0] if value else boolean_labels[1]
    if isinstance(value, (int, float)):
        return _format_number(value)
    if isinstance(value, (list, tuple)):
        parts = (format_cell_value(item, boolean_labels) for item in value)
        return ",".join(part for part in parts if part)
    if isinstance(value, Mapping):
        return _format_object(value)
    return ""


def build_field_values(
    raw_fields: Mapping[str, Any],
    field_names: Mapping[str, str],
    boolean_labels: tuple[str, str] = DEFAULT_BOOLEAN_LABELS,
) -> dict[str, str]:
    """Build the field name -> text map for one record.

    Args:
        raw_fields: Raw cell values keyed by field id.
        field_names: Snapshot of field id -> display name for the fields usable as variables.
        boolean_labels: Yes/no tokens for checkbox fields.

    Returns:
        Mapping of display name to stringified value. Fields missing from the
        record map to an empty string.
    """
    return {
        name: format_cell_value(raw_fields.get(field_id), boolean_labels) for field_id, name in field_names.items()
    }
