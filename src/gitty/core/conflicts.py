"""Whole-file conflict resolution for a halted rebase."""

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Union

from gitty.core.errors import GittyError, IncompleteResolution, InvalidTransition
from gitty.models.result import Conflict, Err, Ok
from gitty.models.workflow import ConflictEntry

if TYPE_CHECKING:
    from gitty.core.rewrite_engine import HistoryRewriteEngine

logger = logging.getLogger(__name__)


class ConflictResolver:
    """Collects one resolution per conflicted file, then continues or aborts.

    A manual edit is kept as a draft until ``save`` is called. Drafts survive
    moving between files but are never submitted on their own.
    """

    def __init__(self, engine: "HistoryRewriteEngine", conflicts: List[ConflictEntry]):
        self._engine = engine
        self.conflicts = list(conflicts)
        self.resolutions: Dict[str, str] = {}
        self.drafts: Dict[str, str] = {}
        self.current_index = 0

    @property
    def filepaths(self) -> List[str]:
        return [entry.filepath for entry in self.conflicts]

    @property
    def current(self) -> Optional[ConflictEntry]:
        if not self.conflicts:
            return None
        return self.conflicts[self.current_index]

    @property
    def is_complete(self) -> bool:
        return bool(self.conflicts) and set(self.resolutions) == set(self.filepaths)

    @property
    def unresolved(self) -> List[str]:
        return [path for path in self.filepaths if path not in self.resolutions]

    def _entry(self, filepath: Optional[str] = None) -> ConflictEntry:
        if filepath is None:
            if self.current is None:
                raise InvalidTransition("There are no conflicts to resolve")
            return self.current
        for entry in self.conflicts:
            if entry.filepath == filepath:
                return entry
        raise InvalidTransition(f"{filepath} is not in the conflict set")

    # Navigation

    def go_to(self, index: int) -> ConflictEntry:
        if not 0 <= index < len(self.conflicts):
            raise InvalidTransition(f"No conflict at position {index + 1}")
        self.current_index = index
        return self.conflicts[index]

    def next(self) -> ConflictEntry:
        return self.go_to(min(self.current_index + 1, len(self.conflicts) - 1))

    def previous(self) -> ConflictEntry:
        return self.go_to(max(self.current_index - 1, 0))

    def content_for(self, filepath: Optional[str] = None) -> str:
        """What the editor should show: a draft, else the saved resolution."""
        path = self._entry(filepath).filepath
        return self.drafts.get(path, self.resolutions.get(path, ""))

    # Resolutions

    def _resolve(self, entry: ConflictEntry, content: str) -> str:
        self.resolutions[entry.filepath] = content
        self.drafts[entry.filepath] = content
        return content

    def use_ours(self, filepath: Optional[str] = None) -> str:
        entry = self._entry(filepath)
        logger.info("Using ours for %s", entry.filepath)
        return self._resolve(entry, entry.ours_content)

    def use_theirs(self, filepath: Optional[str] = None) -> str:
        entry = self._entry(filepath)
        logger.info("Using theirs for %s", entry.filepath)
        return self._resolve(entry, entry.theirs_content)

    def edit(self, content: str, filepath: Optional[str] = None) -> None:
        self.drafts[self._entry(filepath).filepath] = content

    def save(self, filepath: Optional[str] = None, content: Optional[str] = None) -> str:
        """Store the draft (or ``content``) as this file's resolution."""
        entry = self._entry(filepath)
        if content is None:
            if entry.filepath not in self.drafts:
                raise InvalidTransition(f"No edit to save for {entry.filepath}")
            content = self.drafts[entry.filepath]
        return self._resolve(entry, content)

    # Hand-off

    def _failed(self, result: Err) -> Err:
        self._engine.state.error = result.message
        logger.warning("Submitting resolutions failed: %s", result.message)
        return result

    def submit(self) -> Union[Ok, Conflict, Err]:
        """Write every resolution, stage them all, then continue the rebase once.

        A failed write or stage stops the submission; saved resolutions are kept.
        """
        with self._engine.lock:
            if self._engine.resolver is not self:
                return InvalidTransition("This conflict set is no longer active").to_result()
            if not self.is_complete:
                return self._failed(IncompleteResolution(
                    f"Resolve every conflict first; unresolved: {', '.join(self.unresolved)}"
                ).to_result())

            try:
                repository = self._engine.repository
            except GittyError as exc:
                return self._failed(exc.to_result())

            for filepath, content in self.resolutions.items():
                written = repository.write_file(filepath, content)
                if isinstance(written, Err):
                    return self._failed(written)

            staged = repository.stage_files(list(self.resolutions))
            if isinstance(staged, Err):
                return self._failed(staged)

            return self._engine.continue_after_resolution()

    def abort(self) -> Union[Ok, Err]:
        return self._engine.abort()
