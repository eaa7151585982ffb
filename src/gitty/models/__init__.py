"""Data models for Gitty."""

from .commit import (
    BranchInfo,
    Commit,
    FileChange,
    FileContent,
    FileStatus,
    RemoteInfo,
    RepoInfo,
    WorkingTreeStatus,
)
from .diff import DiffLine, DiffResult, Hunk, LineType
from .refactor import RefactorCommit, RefactorPlan
from .result import Conflict, Err, ErrorKind, Ok, OperationResult
from .workflow import ConflictEntry, RewriteWorkflowState, WorkflowStep

__all__ = [
    "BranchInfo",
    "Commit",
    "Conflict",
    "ConflictEntry",
    "DiffLine",
    "DiffResult",
    "Err",
    "ErrorKind",
    "FileChange",
    "FileContent",
    "FileStatus",
    "Hunk",
    "LineType",
    "Ok",
    "OperationResult",
    "RefactorCommit",
    "RefactorPlan",
    "RemoteInfo",
    "RepoInfo",
    "RewriteWorkflowState",
    "WorkflowStep",
    "WorkingTreeStatus",
]
