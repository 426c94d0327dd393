"""Relative path arithmetic for the site tree.

All paths handled here are POSIX-style paths relative to a root (input or
output), so hrefs computed from them stay portable whatever base URL the
generated site is eventually served from.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Union

from site_errors import PathError

PathLike = Union[str, PurePosixPath]

# a document that links to itself gets this instead of an empty href
CURRENT_DIR = PurePosixPath(".")


def _is_prefix(anchor: PurePosixPath, target: PurePosixPath) -> bool:
    return target.parts[: len(anchor.parts)] == anchor.parts


def relativize(base: PathLike, target: PathLike) -> PurePosixPath:
    """Return the relative path leading from the file ``base`` to ``target``.

    Both paths live in the same tree. ``base`` is a file location, so the
    first step up from it lands in its own directory and does not produce a
    ``..`` segment; every further step does.
    """
    base = PurePosixPath(base)
    target = PurePosixPath(target)
    if base == target:
        return CURRENT_DIR

    anchor = base
    steps = 0
    while not _is_prefix(anchor, target):
        parent = anchor.parent
        if parent == anchor:
            break
        anchor = parent
        steps += 1

    if not _is_prefix(anchor, target):
        raise PathError(f"cannot express {target} relative to {base}")

    remainder = target.parts[len(anchor.parts):]
    ups = [".."] * max(steps - 1, 0)
    return PurePosixPath(*ups, *remainder)


def path_endswith(path: PathLike, suffix: PathLike) -> bool:
    """Component-wise suffix test: ``notes/todo`` ends with ``todo`` but not with ``do``."""
    tail = PurePosixPath(suffix).parts
    if not tail:
        return False
    parts = PurePosixPath(path).parts
    return len(parts) >= len(tail) and parts[-len(tail):] == tail


def relative_to_root(path: Path, root: Path) -> PurePosixPath:
    """Path of ``path`` below ``root`` in POSIX form, ``.`` for the root itself."""
    try:
        rel = path.relative_to(root)
    except ValueError as exc:
        raise PathError(f"{path} does not fall under {root}") from exc
    return PurePosixPath(rel.as_posix())
