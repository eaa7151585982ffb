"""Structured unified-diff records."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class LineType(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    CONTEXT = "context"


_PREFIXES = {LineType.ADD: "+", LineType.REMOVE: "-", LineType.CONTEXT: " "}


class DiffLine(BaseModel):
    """A single classified hunk body line.

    ``old_line`` is set for context and remove lines, ``new_line`` for
    context and add lines.
    """

    type: LineType
    content: str
    old_line: Optional[int] = None
    new_line: Optional[int] = None

    @property
    def prefix(self) -> str:
        return _PREFIXES[self.type]

    def render(self) -> str:
        """Return the line as it appears in the diff body."""
        return f"{self.prefix}{self.content}"


class Hunk(BaseModel):
    """One @@ block. ``raw_header`` keeps the parsed header line verbatim."""

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: List[DiffLine] = Field(default_factory=list)
    raw_header: Optional[str] = None

    @property
    def header(self) -> str:
        if self.raw_header is not None:
            return self.raw_header
        return (
            f"@@ -{self.old_start},{self.old_lines} "
            f"+{self.new_start},{self.new_lines} @@"
        )

    def body(self) -> str:
        """Rebuild the hunk body from its lines."""
        return "\n".join(line.render() for line in self.lines)


class DiffResult(BaseModel):
    """Old/new content of one file in a commit plus its hunks."""

    filepath: str
    old_content: str
    new_content: str
    hunks: List[Hunk] = Field(default_factory=list)
