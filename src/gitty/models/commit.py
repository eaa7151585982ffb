"""Commit and repository records produced by the git capability."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FileStatus(str, Enum):
    """How a file was touched by a commit."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"


class Commit(BaseModel):
    """A commit in the opened repository. Identity is the full hash."""

    model_config = ConfigDict(frozen=True)

    hash: str
    abbreviated_hash: str
    message: str
    author_name: str
    author_email: str
    date: datetime
    parent_hashes: List[str] = Field(default_factory=list)
    refs: List[str] = Field(default_factory=list)

    def __hash__(self) -> int:
        return hash(self.hash)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Commit):
            return NotImplemented
        return self.hash == other.hash


class FileChange(BaseModel):
    """One file's change within a single commit."""

    filepath: str
    status: FileStatus
    old_path: Optional[str] = None
    insertions: Optional[int] = None
    deletions: Optional[int] = None


class RemoteInfo(BaseModel):
    name: str
    fetch_url: str
    push_url: str


class RepoInfo(BaseModel):
    """Snapshot of the opened repository."""

    path: str
    current_branch: str
    is_detached: bool
    remotes: List[RemoteInfo] = Field(default_factory=list)
    has_uncommitted_changes: bool = False


class BranchInfo(BaseModel):
    name: str
    current: bool
    commit_hash: str
    tracking: Optional[str] = None


class FileContent(BaseModel):
    filepath: str
    content: str
    encoding: str = "utf-8"


class WorkingTreeStatus(BaseModel):
    """Porcelain view of the working tree and index."""

    staged: List[str] = Field(default_factory=list)
    modified: List[str] = Field(default_factory=list)
    untracked: List[str] = Field(default_factory=list)
    conflicted: List[str] = Field(default_factory=list)
    rebase_in_progress: bool = False

    @property
    def is_clean(self) -> bool:
        return not (self.staged or self.modified or self.untracked or self.conflicted)
