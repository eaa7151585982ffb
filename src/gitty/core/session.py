"""The single opened repository of a Gitty process."""

import logging
from pathlib import Path
from typing import Optional, Union

from gitty.core.errors import NoRepositoryOpen
from gitty.core.repository import GitRepository
from gitty.models.commit import RepoInfo

logger = logging.getLogger(__name__)


class RepositorySession:
    """An opened repository: its path and the capability handle.

    Sessions are never mutated; opening another path creates a new one.
    """

    __slots__ = ("path", "repository")

    def __init__(self, repository: GitRepository):
        self.path = repository.path
        self.repository = repository

    def __repr__(self) -> str:
        return f"RepositorySession({str(self.path)!r})"


class Workspace:
    """Owns the current RepositorySession and hands it to the engine."""

    def __init__(self):
        self._session: Optional[RepositorySession] = None

    @property
    def is_open(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> RepositorySession:
        if self._session is None:
            raise NoRepositoryOpen()
        return self._session

    @property
    def repository(self) -> GitRepository:
        return self.session.repository

    def open(self, path: Union[str, Path]) -> RepoInfo:
        """Open ``path``, replacing any previously opened repository."""
        repository = GitRepository.open(path)
        previous = self._session
        self._session = RepositorySession(repository)
        if previous is not None and previous.path != repository.path:
            logger.info("Switched repository from %s to %s", previous.path, repository.path)
        return repository.info()

    def close(self) -> None:
        self._session = None
