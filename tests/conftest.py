"""Shared fixtures: small real repositories built with GitPython."""

from pathlib import Path

import pytest
from git import Repo

from gitty.config import Settings
from gitty.core.rewrite_engine import HistoryRewriteEngine
from gitty.core.session import Workspace


def _configure(repo: Repo) -> None:
    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")
        config.set_value("commit", "gpgsign", "false")


def _commit(repo: Repo, files, message: str):
    root = Path(repo.working_tree_dir)
    for relpath, content in files.items():
        path = root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8"))
    repo.index.add(list(files))
    return repo.index.commit(message)


@pytest.fixture
def commit_file():
    """Write files into a repo and commit them; returns the new commit."""
    return _commit


@pytest.fixture
def git_repo(tmp_path):
    """A repository on ``main`` with three commits.

    c1 adds README.md and a.txt, c2 rewrites a.txt, c3 adds b.txt. Editing
    a.txt in c1 therefore conflicts when c2 is replayed; editing README.md
    does not.
    """
    repo_path = tmp_path / "project"
    repo_path.mkdir()
    repo = Repo.init(repo_path)
    _configure(repo)

    _commit(repo, {"README.md": "# Project\n", "a.txt": "line1\n"}, "Add readme and a")
    repo.git.branch("-M", "main")
    _commit(repo, {"a.txt": "line1 changed by c2\n"}, "Update a")
    _commit(repo, {"b.txt": "bee\n"}, "Add b")

    yield repo
    repo.close()


@pytest.fixture
def bare_remote(tmp_path, git_repo):
    """A bare clone registered as ``origin`` with ``main`` pushed."""
    remote_path = tmp_path / "remote.git"
    remote = Repo.init(remote_path, bare=True)
    git_repo.create_remote("origin", str(remote_path))
    git_repo.git.push("origin", "main")
    yield remote
    remote.close()


@pytest.fixture
def workspace(git_repo):
    workspace = Workspace()
    workspace.open(git_repo.working_tree_dir)
    yield workspace
    workspace.close()


@pytest.fixture
def engine(workspace):
    return HistoryRewriteEngine(workspace)


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings isolated from the caller's environment and home directory."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GITTY_GEMINI_API_KEY", raising=False)
    return Settings(_env_file=None, data_dir=tmp_path / "data", gemini_api_key=None)


def read_at(repo: Repo, ref: str, relpath: str) -> str:
    blob = repo.commit(ref).tree / relpath
    return blob.data_stream.read().decode("utf-8")


@pytest.fixture
def read_file_at():
    """Read ``relpath`` as stored in commit ``ref``."""
    return read_at


@pytest.fixture
def commits(git_repo):
    """Hashes of c1, c2, c3 in creation order."""
    return [commit.hexsha for commit in reversed(list(git_repo.iter_commits("main")))]
