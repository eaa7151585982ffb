"""Filesystem browsing used to pick a repository and look at files."""

import logging
import os
import string
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel

from gitty.core.errors import NotADirectory, WorkingTreeIOError

logger = logging.getLogger(__name__)

_SKIPPED_DIRS = {"node_modules", "dist", "out", "__pycache__"}


class FolderEntry(BaseModel):
    name: str
    path: str
    is_repo: bool


class FolderListing(BaseModel):
    current_path: str
    parent_path: Optional[str] = None
    folders: List[FolderEntry]
    drives: List[str] = []


class FileNode(BaseModel):
    name: str
    path: str
    type: str  # "file" or "directory"


def _windows_drives() -> List[str]:
    if os.name != "nt":
        return []
    return [f"{letter}:" for letter in string.ascii_uppercase if Path(f"{letter}:\\").exists()]


def browse_folders(target: Union[str, Path] = ".") -> FolderListing:
    """List visible subdirectories of ``target``, flagging git repositories."""
    absolute = Path(target).expanduser().resolve()
    if not absolute.is_dir():
        raise NotADirectory(f"Directory does not exist: {absolute}")

    parent = absolute.parent
    folders = []
    try:
        for entry in absolute.iterdir():
            if entry.is_dir() and not entry.name.startswith("."):
                folders.append(
                    FolderEntry(
                        name=entry.name,
                        path=str(entry),
                        is_repo=(entry / ".git").exists(),
                    )
                )
    except OSError as exc:
        raise WorkingTreeIOError(f"Failed to browse path {absolute}: {exc}") from exc

    return FolderListing(
        current_path=str(absolute),
        parent_path=None if parent == absolute else str(parent),
        folders=sorted(folders, key=lambda folder: folder.name.lower()),
        drives=_windows_drives(),
    )


def list_tree(directory: Union[str, Path]) -> List[FileNode]:
    """One level of ``directory``: directories first, then files, by name."""
    path = Path(directory)
    if not path.is_dir():
        raise NotADirectory(f"Path is not a directory: {path}")

    nodes = []
    for entry in path.iterdir():
        if entry.name.startswith(".") or entry.name in _SKIPPED_DIRS:
            continue
        nodes.append(
            FileNode(
                name=entry.name,
                path=str(entry),
                type="directory" if entry.is_dir() else "file",
            )
        )
    return sorted(nodes, key=lambda node: (node.type != "directory", node.name.lower()))


def read_file(file_path: Union[str, Path]) -> str:
    path = Path(file_path)
    if not path.is_file():
        raise WorkingTreeIOError(f"File does not exist: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise WorkingTreeIOError(f"Could not read {path}: {exc}") from exc
