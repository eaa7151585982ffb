"""History rewrite workflow: checkout, amend, rebase --onto, conflicts.

The engine walks one rewrite at a time through
``idle -> checkout -> editing -> rebasing -> complete``. Any active step can
go back to ``idle`` through ``cancel`` (before a rebase) or ``abort`` (during
one). A failed action records ``state.error`` and leaves the step where it
was, so the user can retry or back out.
"""

import functools
import logging
import threading
from pathlib import Path
from typing import Optional, Union

from gitty.core.conflicts import ConflictResolver
from gitty.core.errors import (
    AlreadyRewriting,
    ConfirmationRequired,
    DetachedHeadEditAttempt,
    GittyError,
    IncompleteResolution,
    InvalidTransition,
    NothingToContinue,
)
from gitty.core.repository import GitRepository
from gitty.core.session import RepositorySession, Workspace
from gitty.models.refactor import RefactorPlan
from gitty.models.result import Conflict, Err, ErrorKind, Ok
from gitty.models.workflow import RewriteWorkflowState, WorkflowStep

logger = logging.getLogger(__name__)


def _transition(func):
    """Serialize a workflow operation and record its failure on the state."""

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            try:
                result = func(self, *args, **kwargs)
            except GittyError as exc:
                result = exc.to_result()

            if isinstance(result, Err):
                self.state.error = result.message
                logger.warning("%s failed: %s", func.__name__, result.message)
            else:
                self.state.error = None
            return result

    return wrapper


class HistoryRewriteEngine:
    """Edits a historical commit and replays its descendants onto the edit."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace
        self.state = RewriteWorkflowState()
        self.resolver: Optional[ConflictResolver] = None
        self.lock = threading.RLock()
        self._session: Optional[RepositorySession] = None

    def snapshot(self) -> RewriteWorkflowState:
        with self.lock:
            return self.state.model_copy(deep=True)

    @property
    def repository(self) -> GitRepository:
        """The repository of the active workflow, re-validated on every call."""
        session = self.workspace.session
        if self.state.is_active and self._session is not session:
            logger.warning(
                "Repository switched to %s during a rewrite of %s; discarding workflow",
                session.path,
                self.state.repo_path,
            )
            self._reset()
            raise InvalidTransition(
                "The repository changed while a rewrite was in progress; "
                "the rewrite was discarded"
            )
        return session.repository

    def _require(self, action: str, *steps: WorkflowStep) -> None:
        if self.state.step not in steps:
            raise InvalidTransition(
                f"Cannot {action} while the workflow is {self.state.step.value}"
            )

    def _reset(self) -> None:
        self.state = RewriteWorkflowState()
        self.resolver = None
        self._session = None

    @_transition
    def start_edit(self, commit_hash: str) -> Union[Ok, Err]:
        """Detach HEAD at ``commit_hash`` and remember the branch we came from."""
        repository = self.repository
        if self.state.is_active:
            raise AlreadyRewriting(
                f"A rewrite of {self.state.target_commit[:7]} is already {self.state.step.value}"
            )

        info = repository.info()
        if info.is_detached:
            raise DetachedHeadEditAttempt(
                "HEAD is detached; check out a branch before editing a commit"
            )

        target = repository.resolve_commit(commit_hash)
        self.state = RewriteWorkflowState(
            step=WorkflowStep.CHECKOUT,
            repo_path=str(repository.path),
            target_commit=target,
            original_branch=info.current_branch,
        )
        self.resolver = None
        self._session = self.workspace.session

        result = repository.checkout_commit(target)
        if isinstance(result, Err):
            self._reset()
            return result

        self.state.step = WorkflowStep.EDITING
        logger.info("Editing %s from branch %s", target[:7], info.current_branch)
        return Ok(
            message=f"Editing commit {target[:7]}",
            data={"hash": target, "original_branch": info.current_branch},
        )

    def _save(self, repository: GitRepository, filepath: str, content: str,
              message: Optional[str]) -> Union[Ok, Err]:
        # Writes, stages and amends in that order; the first failure stops it.
        expected = self.state.new_commit_hash or self.state.target_commit
        head = repository.head_hash()
        if head != expected:
            raise InvalidTransition(
                f"HEAD moved to {head[:7]} outside the rewrite; expected {expected[:7]}"
            )
        written = repository.write_file(filepath, content)
        if isinstance(written, Err):
            return written
        staged = repository.stage_files([filepath])
        if isinstance(staged, Err):
            return staged
        amended = repository.amend_commit(message)
        if isinstance(amended, Ok):
            self.state.new_commit_hash = amended.data["new_hash"]
        return amended

    @_transition
    def save_amend(self, filepath: str, content: str, message: Optional[str] = None) -> Union[Ok, Err]:
        """Write ``content`` to ``filepath`` and amend the checked-out commit."""
        repository = self.repository
        self._require("save", WorkflowStep.EDITING)
        return self._save(repository, filepath, content, message)

    @_transition
    def apply_refactor(self, plan: RefactorPlan) -> Union[Ok, Err]:
        """Replay a refactor plan as consecutive amends, stopping at the first failure.

        Steps already applied stay applied; the failing step index is reported.
        """
        repository = self.repository
        self._require("apply a refactor", WorkflowStep.EDITING)

        total = len(plan.commits)
        for index, step in enumerate(plan.commits):
            logger.info("Refactor step %d/%d: %s", index + 1, total, step.message)
            result = self._save(repository, plan.filepath, step.changes, step.message)
            if isinstance(result, Err):
                return Err(
                    kind=ErrorKind.REFACTOR_STEP_FAILED,
                    message=f"Step {index + 1} ({step.message}) failed: {result.message}",
                    failed_step=index,
                )

        return Ok(
            message=f"Applied {total} refactor step(s)",
            data={"applied": total, "new_hash": self.state.new_commit_hash},
        )

    def _after_rebase(self, result: Union[Ok, Conflict, Err]) -> Union[Ok, Conflict, Err]:
        if isinstance(result, Ok):
            self.state.step = WorkflowStep.COMPLETE
            self.state.pending_conflicts = []
            self.resolver = None
            head = self.repository.head_hash()
            logger.info("Rewrite of %s complete, %s now at %s",
                        (self.state.target_commit or "")[:7],
                        self.state.original_branch, head[:7])
            result.data.setdefault("new_head", head)
        elif isinstance(result, Conflict):
            self.state.pending_conflicts = result.conflicts
            self.resolver = ConflictResolver(self, result.conflicts)
        return result

    @_transition
    def rebase(self) -> Union[Ok, Conflict, Err]:
        """Replay the original branch's descendants of the edited commit.

        The old base is the commit hash captured at ``start_edit``, never the
        live HEAD, which an amend has already moved.
        """
        repository = self.repository
        self._require("rebase", WorkflowStep.EDITING, WorkflowStep.REBASING)
        if self.state.step is WorkflowStep.REBASING and repository.rebase_in_progress():
            raise InvalidTransition(
                "A rebase is already halted; resolve and continue, or abort it"
            )

        new_base = self.state.new_commit_hash or self.state.target_commit
        self.state.step = WorkflowStep.REBASING
        logger.info("Rebasing %s onto %s", self.state.original_branch, new_base[:7])
        result = repository.rebase_onto(
            new_base, self.state.target_commit, self.state.original_branch
        )
        return self._after_rebase(result)

    @_transition
    def continue_after_resolution(self) -> Union[Ok, Conflict, Err]:
        """Continue a halted rebase; may halt again on a later commit."""
        repository = self.repository
        self._require("continue", WorkflowStep.REBASING)
        if not self.state.pending_conflicts:
            raise NothingToContinue("No conflicts are pending; there is nothing to continue")

        remaining = repository.conflicted_paths()
        if remaining:
            raise IncompleteResolution(
                f"Unresolved conflicts remain: {', '.join(remaining)}"
            )

        return self._after_rebase(repository.continue_rebase())

    @_transition
    def abort(self) -> Union[Ok, Err]:
        """Abort the rebase and return to the original branch."""
        repository = self.repository
        self._require("abort", WorkflowStep.REBASING)

        if repository.rebase_in_progress():
            aborted = repository.abort_rebase()
            if isinstance(aborted, Err):
                return aborted

        # rebase --abort can leave HEAD detached depending on where it started.
        branch = self.state.original_branch
        if branch:
            checked_out = repository.checkout_branch(branch)
            if isinstance(checked_out, Err):
                return checked_out

        self._reset()
        logger.info("Rewrite aborted, back on %s", branch)
        return Ok(message=f"Rebase aborted, back on {branch}", data={"branch": branch})

    @_transition
    def cancel(self) -> Union[Ok, Err]:
        """Leave an edit that was never rebased; the branch is untouched."""
        repository = self.repository
        self._require("cancel", WorkflowStep.CHECKOUT, WorkflowStep.EDITING)

        branch = self.state.original_branch
        checked_out = repository.checkout_branch(branch)
        if isinstance(checked_out, Err):
            return checked_out

        self._reset()
        logger.info("Edit cancelled, back on %s", branch)
        return Ok(message=f"Edit cancelled, back on {branch}", data={"branch": branch})

    @_transition
    def finish(self) -> Ok:
        """Acknowledge a completed rewrite."""
        self._require("finish", WorkflowStep.COMPLETE, WorkflowStep.IDLE)
        self._reset()
        return Ok(message="Workflow reset")

    @_transition
    def force_push(self, remote: str, branch: str, confirmed: bool = False) -> Union[Ok, Err]:
        """Force push ``branch``. Destructive, so it requires confirmation."""
        repository = self.repository
        if not confirmed:
            raise ConfirmationRequired(
                f"Force pushing {branch} overwrites {remote}/{branch}; confirm to proceed"
            )
        return repository.force_push(remote, branch)

    @_transition
    def adopt_interrupted_rebase(self) -> Union[Ok, Err]:
        """Pick up a rebase left halted by a previous run so it can be finished."""
        repository = self.repository
        self._require("adopt a rebase", WorkflowStep.IDLE, WorkflowStep.COMPLETE)
        if not repository.rebase_in_progress():
            raise InvalidTransition("No rebase is in progress")

        git_dir = Path(repository.repo.git_dir)
        head_name = ""
        for state_dir in ("rebase-merge", "rebase-apply"):
            head_file = git_dir / state_dir / "head-name"
            if head_file.exists():
                head_name = head_file.read_text(encoding="utf-8").strip()
                break
        branch = head_name[len("refs/heads/"):] if head_name.startswith("refs/heads/") else head_name

        conflicts = repository.conflict_entries()
        self.state = RewriteWorkflowState(
            step=WorkflowStep.REBASING,
            repo_path=str(repository.path),
            original_branch=branch or None,
            pending_conflicts=conflicts,
        )
        self._session = self.workspace.session
        self.resolver = ConflictResolver(self, conflicts) if conflicts else None
        logger.info("Adopted interrupted rebase of %s with %d conflict(s)", branch, len(conflicts))
        return Ok(
            message=f"Resumed interrupted rebase of {branch or 'HEAD'}",
            data={"branch": branch, "conflicts": len(conflicts)},
        )
