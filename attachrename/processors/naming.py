"""File name primitives: extension splitting, sequence numbers and collision-free names."""

import math


IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".svg", ".heic", ".heif")
VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi", ".mkv", ".webm", ".m4v")


def split_file_name(name: str) -> tuple[str, str]:
    """Split a file name into (base, extension) at the last dot.

    A dot in first position does not start an extension, so hidden-file style
    names such as `.env` keep their whole name as the base.
    """
    last_dot = name.rfind(".")
    if last_dot <= 0:
        return name, ""
    return name[:last_dot], name[last_dot:]


def sequence_for(start: int, index: int, pad: int) -> str:
    """Sequence token for the attachment at `index` (zero-based) within its record."""
    raw = str(start + index)
    if pad <= 0:
        return raw
    return raw.rjust(pad, "0")


def clamp_index(value: int | float, upper: int) -> int:
    """Clamp a character offset into [0, upper]; NaN and infinities become 0."""
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    if value < 0:
        return 0
    if value > upper:
        return upper
    return int(value)


def file_tag(name: str) -> str:
    """Short upper-case label for a file's type, e.g. `PDF`, or `FILE` without extension."""
    _, extension = split_file_name(name)
    if not extension:
        return "FILE"
    return extension[1:].upper()


def is_image_name(name: str) -> bool:
    return name.lower().endswith(IMAGE_EXTENSIONS)


def is_video_name(name: str) -> bool:
    return name.lower().endswith(VIDEO_EXTENSIONS)


class CollisionResolver:
    """Hands out file names that are unique within one record.

    Create one resolver per record: names are never compared across records.
    """

    def __init__(self) -> None:
        self.used: set[str] = set()

    def ensure_unique(self, base: str, extension: str) -> str:
        """Return `base + extension`, or the first free `base_N + extension` (N = 1, 2, ...)."""
        name = f"{base}{extension}"
        if name not in self.used:
            self.used.add(name)
            return name

        index = 1
        while f"{base}_{index}{extension}" in self.used:
            index += 1

        name = f"{base}_{index}{extension}"
        self.used.add(name)
        return name
