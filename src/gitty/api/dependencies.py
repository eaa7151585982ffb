"""FastAPI dependencies handing out the per-process Gitty objects."""

from fastapi import Depends, Request

from gitty.core.refactor import RefactorPlanner
from gitty.core.repository import GitRepository
from gitty.core.rewrite_engine import HistoryRewriteEngine
from gitty.core.session import Workspace
from gitty.core.settings_store import SettingsStore


def get_workspace(request: Request) -> Workspace:
    return request.app.state.workspace


def get_repository(workspace: Workspace = Depends(get_workspace)) -> GitRepository:
    """The opened repository; NoRepositoryOpen is turned into a 409."""
    return workspace.repository


def get_engine(request: Request) -> HistoryRewriteEngine:
    return request.app.state.engine


def get_planner(request: Request) -> RefactorPlanner:
    return request.app.state.planner


def get_settings_store(request: Request) -> SettingsStore:
    return request.app.state.settings_store
