"""History rewrite workflow state."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class WorkflowStep(str, Enum):
    IDLE = "idle"
    CHECKOUT = "checkout"
    EDITING = "editing"
    REBASING = "rebasing"
    COMPLETE = "complete"


class ConflictEntry(BaseModel):
    """Both sides of one conflicted file. Resolution is whole-file."""

    filepath: str
    ours_content: str
    theirs_content: str
    base_content: Optional[str] = None


class RewriteWorkflowState(BaseModel):
    """The single active rewrite of a repository session."""

    step: WorkflowStep = WorkflowStep.IDLE
    repo_path: Optional[str] = None
    target_commit: Optional[str] = None
    original_branch: Optional[str] = None
    new_commit_hash: Optional[str] = None
    pending_conflicts: List[ConflictEntry] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.step not in (WorkflowStep.IDLE, WorkflowStep.COMPLETE)
