"""Repository routes.

Thin HTTP mapping of the git capability:
  POST /git/open                      open a repository
  POST /git/browse                    list folders to pick one
  GET  /git/info, /git/commits, /git/branches, /git/status
  GET  /git/commits/{hash}/files      files changed by a commit
  GET  /git/commits/{hash}/diff/{p}   old/new content and hunks
  POST /git/checkout/{hash} ...       low-level mutations returning results

The low-level mutations do not go through the rewrite workflow and are
refused with 409 while a rewrite is active; front ends driving an edit use
the /workflow routes.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from gitty.api.dependencies import get_engine, get_planner, get_repository, get_workspace
from gitty.core.errors import AlreadyRewriting
from gitty.core.files import FolderListing, browse_folders
from gitty.core.refactor import RefactorPlanner
from gitty.core.repository import GitRepository
from gitty.core.rewrite_engine import HistoryRewriteEngine
from gitty.core.session import Workspace
from gitty.models import (
    BranchInfo,
    Commit,
    DiffResult,
    FileChange,
    FileContent,
    OperationResult,
    RefactorCommit,
    RefactorPlan,
    RepoInfo,
    WorkingTreeStatus,
)

router = APIRouter(prefix="/git")


class OpenRequest(BaseModel):
    path: str


class BrowseRequest(BaseModel):
    path: str = "."


class BranchRequest(BaseModel):
    branch: str


class WriteFileRequest(BaseModel):
    filepath: str
    content: str


class StageRequest(BaseModel):
    files: List[str]


class AmendRequest(BaseModel):
    message: Optional[str] = None


class RebaseOntoRequest(BaseModel):
    new_base: str
    old_base: str
    branch: str


class ForcePushRequest(BaseModel):
    remote: str
    branch: str
    confirm: bool = False


class AnalyzeRefactorRequest(BaseModel):
    filepath: str
    targetContent: str
    repoPath: Optional[str] = None


class ApplyRefactorRequest(BaseModel):
    filepath: str
    commits: List[RefactorCommit]


@router.post("/open", response_model=RepoInfo)
def open_repository(request: OpenRequest, workspace: Workspace = Depends(get_workspace)):
    return workspace.open(request.path)


@router.post("/browse", response_model=FolderListing)
def browse(request: BrowseRequest):
    return browse_folders(request.path)


@router.get("/info", response_model=RepoInfo)
def repo_info(repository: GitRepository = Depends(get_repository)):
    return repository.info()


@router.get("/commits", response_model=List[Commit])
def commit_history(
    request: Request,
    limit: Optional[int] = Query(None, ge=1),
    repository: GitRepository = Depends(get_repository),
):
    return repository.history(limit or request.app.state.settings.history_limit)


@router.get("/branches", response_model=List[BranchInfo])
def branches(repository: GitRepository = Depends(get_repository)):
    return repository.branches()


@router.get("/commits/{commit_hash}/files", response_model=List[FileChange])
def commit_files(commit_hash: str, repository: GitRepository = Depends(get_repository)):
    return repository.commit_files(commit_hash)


@router.get("/commits/{commit_hash}/diff/{filepath:path}", response_model=DiffResult)
def file_diff(commit_hash: str, filepath: str, repository: GitRepository = Depends(get_repository)):
    return repository.file_diff(commit_hash, filepath)


@router.get("/file/{commit_hash}/{filepath:path}", response_model=FileContent)
def file_content(commit_hash: str, filepath: str, repository: GitRepository = Depends(get_repository)):
    return repository.file_content(commit_hash, filepath)


@router.get("/working-file/{filepath:path}", response_model=FileContent)
def working_file(filepath: str, repository: GitRepository = Depends(get_repository)):
    return repository.working_file_content(filepath)


@router.get("/status", response_model=WorkingTreeStatus)
def status(repository: GitRepository = Depends(get_repository)):
    return repository.status()


@contextmanager
def outside_rewrite(engine: HistoryRewriteEngine) -> Iterator[GitRepository]:
    """Hold the engine lock and refuse raw mutations while a rewrite is active."""
    with engine.lock:
        if engine.state.is_active:
            raise AlreadyRewriting(
                f"A rewrite is {engine.state.step.value}; use the workflow routes "
                "or abort it first"
            )
        yield engine.repository


@router.post("/checkout/{commit_hash}", response_model=OperationResult)
def checkout_commit(commit_hash: str, engine: HistoryRewriteEngine = Depends(get_engine)):
    with outside_rewrite(engine) as repository:
        return repository.checkout_commit(commit_hash)


@router.post("/checkout-branch", response_model=OperationResult)
def checkout_branch(request: BranchRequest, engine: HistoryRewriteEngine = Depends(get_engine)):
    with outside_rewrite(engine) as repository:
        return repository.checkout_branch(request.branch)


@router.post("/write-file", response_model=OperationResult)
def write_file(request: WriteFileRequest, engine: HistoryRewriteEngine = Depends(get_engine)):
    with outside_rewrite(engine) as repository:
        return repository.write_file(request.filepath, request.content)


@router.post("/stage", response_model=OperationResult)
def stage(request: StageRequest, engine: HistoryRewriteEngine = Depends(get_engine)):
    with outside_rewrite(engine) as repository:
        return repository.stage_files(request.files)


@router.post("/amend", response_model=OperationResult)
def amend(request: AmendRequest, engine: HistoryRewriteEngine = Depends(get_engine)):
    with outside_rewrite(engine) as repository:
        return repository.amend_commit(request.message)


@router.post("/rebase-onto", response_model=OperationResult)
def rebase_onto(request: RebaseOntoRequest, engine: HistoryRewriteEngine = Depends(get_engine)):
    with outside_rewrite(engine) as repository:
        return repository.rebase_onto(request.new_base, request.old_base, request.branch)


@router.post("/rebase-abort", response_model=OperationResult)
def rebase_abort(engine: HistoryRewriteEngine = Depends(get_engine)):
    with outside_rewrite(engine) as repository:
        return repository.abort_rebase()


@router.post("/rebase-continue", response_model=OperationResult)
def rebase_continue(engine: HistoryRewriteEngine = Depends(get_engine)):
    with outside_rewrite(engine) as repository:
        return repository.continue_rebase()


@router.post("/force-push", response_model=OperationResult)
def force_push(request: ForcePushRequest, engine: HistoryRewriteEngine = Depends(get_engine)):
    return engine.force_push(request.remote, request.branch, confirmed=request.confirm)


@router.post("/move-branch", response_model=OperationResult)
def move_branch(request: BranchRequest, engine: HistoryRewriteEngine = Depends(get_engine)):
    with outside_rewrite(engine) as repository:
        return repository.move_branch_to_head(request.branch)


@router.post("/analyze-refactor", response_model=RefactorPlan)
def analyze_refactor(
    request: AnalyzeRefactorRequest,
    workspace: Workspace = Depends(get_workspace),
    planner: RefactorPlanner = Depends(get_planner),
):
    repository = workspace.repository if workspace.is_open else None
    return planner.analyze(
        request.filepath, request.targetContent, repository=repository, repo_path=request.repoPath
    )


@router.post("/apply-refactor", response_model=OperationResult)
def apply_refactor(request: ApplyRefactorRequest, engine: HistoryRewriteEngine = Depends(get_engine)):
    plan = RefactorPlan(filepath=request.filepath, commits=request.commits)
    return engine.apply_refactor(plan)
