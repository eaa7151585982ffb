"""Tests for the refactor planner and its fallback heuristic."""

import json

import httpx
import pytest

from gitty.core.refactor import RefactorPlanner, build_prompt, fallback_plan, parse_plan_response
from gitty.core.repository import GitRepository
from gitty.core.settings_store import GEMINI_API_KEY, REPO_RULES_PREFIX, SettingsStore

MARKDOWN_TARGET = "# Title\n\nIntro\n\n## Usage\n\nRun it\n\n## License\n\nMIT\n"


def gemini_reply(payload):
    """Wrap ``payload`` the way generateContent returns text."""
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def planner_with(settings, handler, store=None):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return RefactorPlanner(settings, store, client=client)


class TestFallback:
    def test_markdown_is_split_into_cumulative_sections(self):
        plan = fallback_plan("docs/guide.md", "# Title\n", MARKDOWN_TARGET)

        assert [commit.id for commit in plan.commits] == ["heuristic-0", "heuristic-1", "heuristic-2"]
        assert plan.commits[1].message == "Refactor section: Usage (Heuristic Split)"
        assert plan.commits[0].changes == "# Title\n\nIntro\n"
        assert plan.commits[1].changes.startswith(plan.commits[0].changes)
        assert plan.final_content == MARKDOWN_TARGET

    def test_asciidoc_sections(self):
        target = "= Doc\n\nIntro\n\n== Part one\n\nA\n"
        plan = fallback_plan("book.adoc", "", target)
        assert len(plan.commits) == 2
        assert plan.commits[-1].message == "Refactor section: Part one (Heuristic Split)"
        assert plan.final_content == target

    def test_other_files_get_a_single_commit(self):
        plan = fallback_plan("src/app.py", "a = 1\n", "a = 2\n")
        (commit,) = plan.commits
        assert commit.id == "heuristic-final"
        assert commit.message == "Refactor src/app.py (Single Commit)"
        assert commit.changes == "a = 2\n"

    def test_unchanged_document_is_a_single_commit(self):
        plan = fallback_plan("README.md", MARKDOWN_TARGET, MARKDOWN_TARGET)
        assert len(plan.commits) == 1
        assert plan.final_content == MARKDOWN_TARGET

    def test_document_without_sections(self):
        plan = fallback_plan("notes.md", "", "just text\n")
        assert [commit.id for commit in plan.commits] == ["heuristic-final"]


class TestParseResponse:
    def test_tolerates_prose_and_fences(self):
        text = 'Here you go:\n```json\n{"commits": [{"message": "Step", "changes": "x\\n"}]}\n```'
        plan = parse_plan_response("f.txt", text, "x\n")
        assert [commit.id for commit in plan.commits] == ["ai-commit-0"]
        assert plan.final_content == "x\n"

    def test_last_step_is_forced_to_target(self):
        payload = {"commits": [{"message": "One", "changes": "a"}, {"message": "Two", "changes": "almost"}]}
        plan = parse_plan_response("f.txt", json.dumps(payload), "target")
        assert plan.commits[0].changes == "a"
        assert plan.final_content == "target"

    def test_empty_plan_is_rejected(self):
        with pytest.raises(ValueError):
            parse_plan_response("f.txt", '{"commits": []}', "target")


def test_build_prompt_includes_rules():
    prompt = build_prompt("f.py", "old", "new", rules="Use conventional commits")
    assert "Use conventional commits" in prompt
    assert '"f.py"' in prompt
    assert "old" in prompt and "new" in prompt
    assert "Repository rules" not in build_prompt("f.py", "old", "new")


class TestPlanner:
    def test_no_key_uses_heuristic(self, settings):
        def handler(request):
            raise AssertionError("the model must not be called without a key")

        planner = planner_with(settings, handler)
        assert not planner.is_configured
        plan = planner.suggest_commits("a.py", "x", "y")
        assert plan.commits[0].id == "heuristic-final"

    def test_model_plan(self, settings):
        settings.gemini_api_key = "env-key"
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_reply({
                "commits": [
                    {"message": "Rename variable", "changes": "b = 1\n"},
                    {"message": "Change value", "changes": "b = 2\n"},
                ]
            }))

        planner = planner_with(settings, handler)
        plan = planner.suggest_commits("a.py", "a = 1\n", "b = 2\n", rules="Keep it small")

        assert [commit.message for commit in plan.commits] == ["Rename variable", "Change value"]
        assert "gemini-1.5-flash:generateContent" in seen["url"]
        assert "key=env-key" in seen["url"]
        prompt = seen["body"]["contents"][0]["parts"][0]["text"]
        assert "Keep it small" in prompt

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, json={"error": "boom"}),
            httpx.Response(200, json=gemini_reply("not json at all")),
            httpx.Response(200, json={"candidates": []}),
            httpx.Response(200, json=gemini_reply({"commits": []})),
        ],
    )
    def test_model_failures_fall_back(self, settings, response):
        settings.gemini_api_key = "env-key"
        planner = planner_with(settings, lambda request: response)

        plan = planner.suggest_commits("a.py", "a = 1\n", "a = 2\n")

        assert [commit.id for commit in plan.commits] == ["heuristic-final"]
        assert plan.final_content == "a = 2\n"

    def test_network_error_falls_back(self, settings):
        settings.gemini_api_key = "env-key"

        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        plan = planner_with(settings, handler).suggest_commits("a.py", "", "a = 2\n")
        assert plan.final_content == "a = 2\n"

    def test_stored_key_wins(self, settings, tmp_path):
        settings.gemini_api_key = "env-key"
        store = SettingsStore(tmp_path / "store")
        store.set(GEMINI_API_KEY, "stored-key")
        seen = []

        def handler(request):
            seen.append(request.url.params["key"])
            return httpx.Response(200, json=gemini_reply({"commits": [{"message": "m", "changes": "t"}]}))

        planner_with(settings, handler, store).suggest_commits("a.py", "", "t")
        assert seen == ["stored-key"]

    def test_analyze_reads_working_tree_and_repo_rules(self, settings, tmp_path, git_repo):
        settings.gemini_api_key = "env-key"
        repository = GitRepository.open(git_repo.working_tree_dir)
        store = SettingsStore(tmp_path / "store")
        store.set(f"{REPO_RULES_PREFIX}{repository.path}", "No emoji")
        prompts = []

        def handler(request):
            prompts.append(json.loads(request.content)["contents"][0]["parts"][0]["text"])
            return httpx.Response(200, json=gemini_reply({"commits": [{"message": "m", "changes": "new\n"}]}))

        plan = planner_with(settings, handler, store).analyze("a.txt", "new\n", repository=repository)

        assert plan.final_content == "new\n"
        assert "line1 changed by c2" in prompts[0]
        assert "No emoji" in prompts[0]

    def test_analyze_missing_file_plans_from_empty(self, settings, git_repo):
        repository = GitRepository.open(git_repo.working_tree_dir)
        plan = planner_with(settings, lambda request: None).analyze(
            "new.md", MARKDOWN_TARGET, repository=repository
        )
        assert len(plan.commits) == 3
