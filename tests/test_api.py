"""Tests for the HTTP API."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from gitty.api import create_app


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as client:
        yield client


@pytest.fixture
def opened(client, git_repo):
    response = client.post("/api/git/open", json={"path": git_repo.working_tree_dir})
    assert response.status_code == 200
    return client


def test_health(client):
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["repository_open"] is False
    assert body["ai_planner"] == "fallback"


def test_requires_an_open_repository(client):
    response = client.get("/api/git/info")
    assert response.status_code == 409
    assert response.json()["kind"] == "no_repository_open"


def test_open_rejects_plain_directory(client, tmp_path):
    response = client.post("/api/git/open", json={"path": str(tmp_path)})
    assert response.status_code == 400
    assert response.json()["kind"] == "not_a_git_repo"


def test_browse_flags_repositories(client, git_repo):
    parent = Path(git_repo.working_tree_dir).parent
    body = client.post("/api/git/browse", json={"path": str(parent)}).json()
    folders = {folder["name"]: folder for folder in body["folders"]}
    assert folders["project"]["is_repo"] is True


def test_history_and_files(opened, commits):
    history = opened.get("/api/git/commits").json()
    assert [commit["hash"] for commit in history] == list(reversed(commits))
    assert len(opened.get("/api/git/commits", params={"limit": 1}).json()) == 1

    files = opened.get(f"/api/git/commits/{commits[1]}/files").json()
    assert files == [
        {"filepath": "a.txt", "status": "modified", "old_path": None, "insertions": 1, "deletions": 1}
    ]

    diff = opened.get(f"/api/git/commits/{commits[1]}/diff/a.txt").json()
    assert diff["new_content"] == "line1 changed by c2\n"
    assert [line["type"] for line in diff["hunks"][0]["lines"]] == ["remove", "add"]

    content = opened.get(f"/api/git/file/{commits[0]}/a.txt").json()
    assert content["content"] == "line1\n"


def test_unknown_commit_is_404(opened):
    response = opened.get("/api/git/commits/deadbeef/files")
    assert response.status_code == 404


def test_rewrite_through_the_workflow(opened, git_repo, commits, read_file_at):
    started = opened.post("/api/workflow/start", json={"commit_hash": commits[0]}).json()
    assert started["status"] == "ok"
    assert opened.get("/api/workflow").json()["step"] == "editing"

    saved = opened.post(
        "/api/workflow/save", json={"filepath": "a.txt", "content": "edited\n"}
    ).json()
    assert saved["status"] == "ok"

    rebased = opened.post("/api/workflow/rebase").json()
    assert rebased["status"] == "conflict"
    assert rebased["conflicts"][0]["theirs_content"] == "line1 changed by c2\n"

    view = opened.get("/api/workflow/conflicts").json()
    assert view["complete"] is False

    opened.put("/api/workflow/conflicts/draft", json={"filepath": "a.txt", "content": "both\n"})
    assert opened.get("/api/workflow/conflicts").json()["complete"] is False
    opened.post("/api/workflow/conflicts/save", json={"filepath": "a.txt"})
    assert opened.get("/api/workflow/conflicts").json()["resolved"] == {"a.txt": "both\n"}

    submitted = opened.post("/api/workflow/conflicts/submit").json()
    assert submitted["status"] == "ok"
    assert opened.get("/api/workflow").json()["step"] == "complete"
    assert read_file_at(git_repo, "main", "a.txt") == "both\n"

    assert opened.post("/api/workflow/finish").json()["status"] == "ok"


def test_workflow_errors_are_results(opened):
    body = opened.post("/api/workflow/rebase").json()
    assert body["status"] == "error"
    assert body["kind"] == "invalid_transition"
    assert opened.get("/api/workflow").json()["error"] == body["message"]


def test_conflicts_without_a_rebase(opened):
    response = opened.get("/api/workflow/conflicts")
    assert response.status_code == 409


def test_force_push_needs_confirmation(opened, bare_remote):
    body = opened.post(
        "/api/git/force-push", json={"remote": "origin", "branch": "main"}
    ).json()
    assert body["kind"] == "confirmation_required"

    body = opened.post(
        "/api/git/force-push", json={"remote": "origin", "branch": "main", "confirm": True}
    ).json()
    assert body["status"] == "ok"


def test_analyze_refactor_without_key(opened):
    body = opened.post(
        "/api/git/analyze-refactor", json={"filepath": "a.txt", "targetContent": "new\n"}
    ).json()
    assert body["commits"][0]["id"] == "heuristic-final"
    assert body["commits"][-1]["changes"] == "new\n"


def test_apply_refactor_endpoint(opened, git_repo, commits):
    opened.post("/api/workflow/start", json={"commit_hash": commits[2]})
    body = opened.post(
        "/api/git/apply-refactor",
        json={
            "filepath": "b.txt",
            "commits": [
                {"id": "s0", "message": "Bee one", "changes": "bee 1\n"},
                {"id": "s1", "message": "Bee two", "changes": "bee 2\n"},
            ],
        },
    ).json()
    assert body["status"] == "ok"
    assert body["data"]["applied"] == 2
    assert git_repo.head.commit.message.strip() == "Bee two"


def test_settings_round_trip(client):
    response = client.post("/api/settings", json={"key": "gemini_api_key", "value": "k"})
    assert response.json()["success"] is True
    assert client.get("/api/settings").json() == {"gemini_api_key": "k"}
    assert client.get("/api/health").json()["ai_planner"] == "configured"


def test_file_tree(client, git_repo):
    body = client.get("/api/files/tree", params={"path": git_repo.working_tree_dir}).json()
    names = [item["name"] for item in body["items"]]
    assert names == ["a.txt", "b.txt", "README.md"]

    readme = str(Path(git_repo.working_tree_dir) / "README.md")
    assert client.get("/api/files/content", params={"path": readme}).json() == {"content": "# Project\n"}


def test_raw_mutations_are_refused_during_a_rewrite(opened, git_repo, commits, read_file_at):
    opened.post("/api/workflow/start", json={"commit_hash": commits[0]})

    response = opened.post(f"/api/git/checkout/{commits[2]}")
    assert response.status_code == 409
    assert response.json()["kind"] == "already_rewriting"
    assert git_repo.head.commit.hexsha == commits[0]

    for path, body in [
        ("/api/git/write-file", {"filepath": "a.txt", "content": "x\n"}),
        ("/api/git/amend", {}),
        ("/api/git/rebase-onto", {"new_base": commits[1], "old_base": commits[0], "branch": "main"}),
    ]:
        assert opened.post(path, json=body).status_code == 409

    opened.post("/api/workflow/save", json={"filepath": "README.md", "content": "# Edited\n"})
    assert opened.post("/api/workflow/rebase").json()["status"] == "ok"
    assert read_file_at(git_repo, "main~2", "README.md") == "# Edited\n"
    assert read_file_at(git_repo, "main", "README.md") == "# Edited\n"

    opened.post("/api/workflow/finish")
    assert opened.post("/api/git/checkout-branch", json={"branch": "main"}).json()["status"] == "ok"
