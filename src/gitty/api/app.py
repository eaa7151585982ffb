"""
Gitty API

FastAPI application exposing the repository, the rewrite workflow and the
refactor planner to the desktop front end.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gitty import __version__
from gitty.api.routes import files, git, health, settings as settings_routes, workflow
from gitty.config import Settings, get_settings
from gitty.core.errors import GittyError
from gitty.core.refactor import RefactorPlanner
from gitty.core.rewrite_engine import HistoryRewriteEngine
from gitty.core.session import Workspace
from gitty.core.settings_store import SettingsStore
from gitty.models.result import ErrorKind

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    ErrorKind.NO_REPOSITORY_OPEN: 409,
    ErrorKind.ALREADY_REWRITING: 409,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.NOTHING_TO_CONTINUE: 409,
    ErrorKind.UNKNOWN_COMMIT: 404,
}


async def gitty_error_handler(_request: Request, exc: GittyError) -> JSONResponse:
    return JSONResponse(
        status_code=_STATUS_CODES.get(exc.kind, 400),
        content={"error": str(exc), "kind": exc.kind.value},
    )


def create_app(settings: Optional[Settings] = None, workspace: Optional[Workspace] = None) -> FastAPI:
    """Build the API with its own workspace, engine, planner and settings store."""
    settings = settings or get_settings()
    workspace = workspace or Workspace()
    store = SettingsStore(settings.data_dir)
    planner = RefactorPlanner(settings, store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting %s v%s on %s:%s", settings.app_name, __version__,
                    settings.host, settings.port)
        if not planner.is_configured:
            logger.warning(
                "GEMINI_API_KEY is not set. AI-assisted refactoring will use fallback heuristics."
            )
        yield
        logger.info("Shutting down...")
        planner.close()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Visually rewrite Git history.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.workspace = workspace
    app.state.engine = HistoryRewriteEngine(workspace)
    app.state.planner = planner
    app.state.settings_store = store

    app.add_exception_handler(GittyError, gitty_error_handler)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(git.router, prefix="/api", tags=["git"])
    app.include_router(workflow.router, prefix="/api", tags=["workflow"])
    app.include_router(settings_routes.router, prefix="/api", tags=["settings"])
    app.include_router(files.router, prefix="/api", tags=["files"])
    return app
