"""Filesystem tree endpoints."""

import os
from typing import Any, Dict, Optional

from fastapi import APIRouter, Query

from gitty.core.files import list_tree, read_file

router = APIRouter(prefix="/files")


@router.get("/tree")
def get_tree(path: Optional[str] = None) -> Dict[str, Any]:
    directory = path or os.getcwd()
    return {"path": directory, "items": list_tree(directory)}


@router.get("/content")
def get_content(path: str = Query(...)) -> Dict[str, str]:
    return {"content": read_file(path)}
