"""Discriminated operation results.

Every mutating operation returns exactly one of ``Ok``, ``Conflict`` or
``Err``. A caller can never observe a success that also carries conflicts.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from gitty.models.workflow import ConflictEntry


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers."""

    NO_REPOSITORY_OPEN = "no_repository_open"
    NOT_A_DIRECTORY = "not_a_directory"
    NOT_A_GIT_REPO = "not_a_git_repo"
    UNKNOWN_COMMIT = "unknown_commit"
    ALREADY_REWRITING = "already_rewriting"
    DETACHED_HEAD_EDIT_ATTEMPT = "detached_head_edit_attempt"
    INVALID_TRANSITION = "invalid_transition"
    NOTHING_TO_CONTINUE = "nothing_to_continue"
    INCOMPLETE_RESOLUTION = "incomplete_resolution"
    CONFIRMATION_REQUIRED = "confirmation_required"
    IO_ERROR = "io_error"
    GIT_ERROR = "git_error"
    REFACTOR_STEP_FAILED = "refactor_step_failed"


class Ok(BaseModel):
    status: Literal["ok"] = "ok"
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def success(self) -> bool:
        return True


class Conflict(BaseModel):
    """A rebase halted on unmerged paths. Not an error."""

    status: Literal["conflict"] = "conflict"
    message: str
    conflicts: List[ConflictEntry]

    @property
    def success(self) -> bool:
        return False


class Err(BaseModel):
    status: Literal["error"] = "error"
    kind: ErrorKind
    message: str
    failed_step: Optional[int] = None

    @property
    def success(self) -> bool:
        return False


OperationResult = Annotated[Union[Ok, Conflict, Err], Field(discriminator="status")]
