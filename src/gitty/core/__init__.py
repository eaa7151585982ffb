"""Core functionality for Gitty."""

from .conflicts import ConflictResolver
from .repository import GitRepository
from .rewrite_engine import HistoryRewriteEngine
from .session import RepositorySession, Workspace

__all__ = [
    "ConflictResolver",
    "GitRepository",
    "HistoryRewriteEngine",
    "RepositorySession",
    "Workspace",
]
