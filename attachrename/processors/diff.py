"""Old/new name diffing for preview highlighting."""

from attachrename.models.rename import DiffParts


def diff_names(old_name: str, new_name: str) -> DiffParts:
    """Locate the changed span of `new_name` relative to `old_name`.

    The common prefix is found first; the common suffix is then searched only
    in what remains after it, so the two regions never overlap. Equal names give
    an empty highlighted span, disjoint names highlight the whole new name.
    """
    start = 0
    max_start = min(len(old_name), len(new_name))
    while start < max_start and old_name[start] == new_name[start]:
        start += 1

    end_old = len(old_name)
    end_new = len(new_name)
    while end_old > start and end_new > start and old_name[end_old - 1] == new_name[end_new - 1]:
        end_old -= 1
        end_new -= 1

    return DiffParts(
        prefix=new_name[:start],
        highlighted=new_name[start:end_new],
        suffix=new_name[end_new:],
    )
