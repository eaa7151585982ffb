"""Health check endpoint."""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from gitty import __version__
from gitty.api.dependencies import get_planner, get_workspace
from gitty.core.refactor import RefactorPlanner
from gitty.core.session import Workspace

router = APIRouter()


@router.get("/health")
def health_check(
    planner: RefactorPlanner = Depends(get_planner),
    workspace: Workspace = Depends(get_workspace),
) -> Dict[str, Any]:
    return {
        "status": "ok",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "repository_open": workspace.is_open,
        "ai_planner": "configured" if planner.is_configured else "fallback",
    }
