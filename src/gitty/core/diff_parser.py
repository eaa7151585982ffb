"""Unified diff text to structured hunks.

Body lines are classified by their first character: ``+`` add, ``-``
remove, a space for context. The ``\\ No newline at end of file`` marker is
skipped. Any other leading character ends the current hunk body, so file
headers between hunks of a multi-file diff never leak into a hunk.

Old/new line numbers are assigned while parsing: context and remove lines
advance the old side, context and add lines advance the new side.
"""

import re
from typing import List, NamedTuple, Optional, Set

from gitty.models.diff import DiffLine, Hunk, LineType

_HUNK_HEADER_RE = re.compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_lines>\d+))?"
    r" \+(?P<new_start>\d+)(?:,(?P<new_lines>\d+))? @@"
)
_LINE_TYPES = {"+": LineType.ADD, "-": LineType.REMOVE, " ": LineType.CONTEXT}
_NO_NEWLINE_MARKER = "\\"


class ChangedLines(NamedTuple):
    """Line numbers touched by a diff on each side of the full-file view."""

    removed: Set[int]
    added: Set[int]


def parse_hunk_header(line: str) -> Optional[Hunk]:
    """Return an empty Hunk for a ``@@`` header line, or None."""
    match = _HUNK_HEADER_RE.match(line)
    if not match:
        return None
    old_lines = match.group("old_lines")
    new_lines = match.group("new_lines")
    return Hunk(
        old_start=int(match.group("old_start")),
        old_lines=int(old_lines) if old_lines is not None else 1,
        new_start=int(match.group("new_start")),
        new_lines=int(new_lines) if new_lines is not None else 1,
        raw_header=line.rstrip("\r"),
    )


def parse_hunks(diff_text: str) -> List[Hunk]:
    """Parse every hunk in ``diff_text``; text outside hunks is ignored."""
    hunks: List[Hunk] = []
    current: Optional[Hunk] = None
    old_no = new_no = 0

    for line in diff_text.split("\n"):
        header = parse_hunk_header(line)
        if header is not None:
            current = header
            hunks.append(current)
            old_no, new_no = current.old_start, current.new_start
            continue

        if current is None:
            continue

        if line.startswith(_NO_NEWLINE_MARKER):
            continue

        line_type = _LINE_TYPES.get(line[:1])
        if line_type is None:
            current = None
            continue

        diff_line = DiffLine(type=line_type, content=line[1:])
        if line_type is not LineType.ADD:
            diff_line.old_line = old_no
            old_no += 1
        if line_type is not LineType.REMOVE:
            diff_line.new_line = new_no
            new_no += 1
        current.lines.append(diff_line)

    return hunks


def changed_lines(hunks: List[Hunk]) -> ChangedLines:
    """Collect removed (old side) and added (new side) line numbers."""
    removed: Set[int] = set()
    added: Set[int] = set()
    for hunk in hunks:
        for line in hunk.lines:
            if line.type is LineType.REMOVE and line.old_line is not None:
                removed.add(line.old_line)
            elif line.type is LineType.ADD and line.new_line is not None:
                added.add(line.new_line)
    return ChangedLines(removed=removed, added=added)


def render_hunks(hunks: List[Hunk]) -> str:
    """Render hunks back to unified diff text (headers and bodies)."""
    parts = []
    for hunk in hunks:
        parts.append(hunk.header)
        if hunk.lines:
            parts.append(hunk.body())
    return "\n".join(parts)
