"""Multi-commit refactor plans."""

from typing import List

from pydantic import BaseModel, Field


class RefactorCommit(BaseModel):
    id: str
    message: str
    changes: str  # full file content after this step


class RefactorPlan(BaseModel):
    """Ordered steps whose last snapshot equals the requested target."""

    filepath: str
    commits: List[RefactorCommit] = Field(default_factory=list)

    @property
    def final_content(self) -> str:
        return self.commits[-1].changes if self.commits else ""
