"""Rewrite workflow routes.

The front end drives one rewrite through these endpoints; the engine state is
returned by ``GET /workflow`` after every step so the UI can render it.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from gitty.api.dependencies import get_engine
from gitty.core.conflicts import ConflictResolver
from gitty.core.errors import InvalidTransition
from gitty.core.rewrite_engine import HistoryRewriteEngine
from gitty.models import ConflictEntry, OperationResult, RefactorPlan, RewriteWorkflowState

router = APIRouter(prefix="/workflow")


class StartRequest(BaseModel):
    commit_hash: str


class SaveRequest(BaseModel):
    filepath: str
    content: str
    message: Optional[str] = None


class RefactorRequest(BaseModel):
    plan: RefactorPlan


class ConflictFileRequest(BaseModel):
    filepath: str


class DraftRequest(BaseModel):
    filepath: str
    content: str


class ResolutionSaveRequest(BaseModel):
    filepath: str
    content: Optional[str] = None


class ConflictView(BaseModel):
    conflicts: List[ConflictEntry]
    resolved: Dict[str, str]
    drafts: Dict[str, str]
    current_index: int
    complete: bool


def _resolver(engine: HistoryRewriteEngine) -> ConflictResolver:
    if engine.resolver is None:
        raise InvalidTransition("No conflicts are pending")
    return engine.resolver


def _conflict_view(resolver: ConflictResolver) -> ConflictView:
    return ConflictView(
        conflicts=resolver.conflicts,
        resolved=dict(resolver.resolutions),
        drafts=dict(resolver.drafts),
        current_index=resolver.current_index,
        complete=resolver.is_complete,
    )


@router.get("", response_model=RewriteWorkflowState)
def workflow_state(engine: HistoryRewriteEngine = Depends(get_engine)):
    return engine.snapshot()


@router.post("/start", response_model=OperationResult)
def start(request: StartRequest, engine: HistoryRewriteEngine = Depends(get_engine)):
    return engine.start_edit(request.commit_hash)


@router.post("/save", response_model=OperationResult)
def save(request: SaveRequest, engine: HistoryRewriteEngine = Depends(get_engine)):
    return engine.save_amend(request.filepath, request.content, request.message)


@router.post("/refactor", response_model=OperationResult)
def refactor(request: RefactorRequest, engine: HistoryRewriteEngine = Depends(get_engine)):
    return engine.apply_refactor(request.plan)


@router.post("/rebase", response_model=OperationResult)
def rebase(engine: HistoryRewriteEngine = Depends(get_engine)):
    return engine.rebase()


@router.post("/continue", response_model=OperationResult)
def continue_rebase(engine: HistoryRewriteEngine = Depends(get_engine)):
    return engine.continue_after_resolution()


@router.post("/abort", response_model=OperationResult)
def abort(engine: HistoryRewriteEngine = Depends(get_engine)):
    return engine.abort()


@router.post("/cancel", response_model=OperationResult)
def cancel(engine: HistoryRewriteEngine = Depends(get_engine)):
    return engine.cancel()


@router.post("/finish", response_model=OperationResult)
def finish(engine: HistoryRewriteEngine = Depends(get_engine)):
    return engine.finish()


@router.post("/adopt", response_model=OperationResult)
def adopt(engine: HistoryRewriteEngine = Depends(get_engine)):
    return engine.adopt_interrupted_rebase()


# Conflict resolution


@router.get("/conflicts", response_model=ConflictView)
def conflicts(engine: HistoryRewriteEngine = Depends(get_engine)):
    with engine.lock:
        return _conflict_view(_resolver(engine))


@router.post("/conflicts/ours")
def use_ours(request: ConflictFileRequest, engine: HistoryRewriteEngine = Depends(get_engine)) -> Dict[str, Any]:
    with engine.lock:
        content = _resolver(engine).use_ours(request.filepath)
    return {"filepath": request.filepath, "content": content}


@router.post("/conflicts/theirs")
def use_theirs(request: ConflictFileRequest, engine: HistoryRewriteEngine = Depends(get_engine)) -> Dict[str, Any]:
    with engine.lock:
        content = _resolver(engine).use_theirs(request.filepath)
    return {"filepath": request.filepath, "content": content}


@router.put("/conflicts/draft")
def edit_draft(request: DraftRequest, engine: HistoryRewriteEngine = Depends(get_engine)) -> Dict[str, Any]:
    with engine.lock:
        _resolver(engine).edit(request.content, request.filepath)
    return {"filepath": request.filepath, "saved": False}


@router.post("/conflicts/save")
def save_resolution(
    request: ResolutionSaveRequest, engine: HistoryRewriteEngine = Depends(get_engine)
) -> Dict[str, Any]:
    with engine.lock:
        content = _resolver(engine).save(request.filepath, request.content)
    return {"filepath": request.filepath, "content": content, "saved": True}


@router.post("/conflicts/submit", response_model=OperationResult)
def submit(engine: HistoryRewriteEngine = Depends(get_engine)):
    return _resolver(engine).submit()


@router.post("/conflicts/abort", response_model=OperationResult)
def abort_resolution(engine: HistoryRewriteEngine = Depends(get_engine)):
    return _resolver(engine).abort()
