"""
Frontmatter extraction.

Only flat ``key: value`` lines are understood. Digit-only values become
ints; nothing nests. A block that never closes is treated as absent so the
rest of the file still scans normally.
"""

import re
from typing import Dict, List, Tuple, Union

from todosmd.models.parsed import Frontmatter

_DELIMITER = "---"
_INT_RE = re.compile(r"[0-9]+")


def parse_frontmatter(content: str) -> Tuple[Frontmatter, str, int]:
    """
    Strip a leading ``---`` frontmatter block from file content.

    Args:
        content: Full file content

    Returns:
        (frontmatter, body, consumed_lines). ``consumed_lines`` is the number
        of source lines removed from the top, so callers can keep line
        numbers pointing at the original file.
    """
    lines = content.split("\n")
    if not lines or lines[0].rstrip("\r") != _DELIMITER:
        return Frontmatter(), content, 0

    closing = None
    for i in range(1, len(lines)):
        if lines[i].rstrip("\r") == _DELIMITER:
            closing = i
            break

    # Never closed, or closed immediately with nothing inside
    if closing is None or closing == 1:
        return Frontmatter(), content, 0

    raw = _parse_flat_yaml(lines[1:closing])

    # Blank lines straight after the block are dropped with it
    body_start = closing + 1
    while body_start < len(lines) and not lines[body_start].strip():
        body_start += 1

    return Frontmatter(raw=raw), "\n".join(lines[body_start:]), body_start


def _parse_flat_yaml(lines: List[str]) -> Dict[str, Union[str, int]]:
    raw: Dict[str, Union[str, int]] = {}
    for line in lines:
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()
        if not key:
            continue
        raw[key] = int(value) if _INT_RE.fullmatch(value) else value
    return raw
