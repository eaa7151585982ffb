"""Refactor planner: split one file change into a sequence of commits.

With a Gemini API key configured the plan comes from the model; otherwise,
or whenever the model call or its output fails, a deterministic heuristic is
used. Either way the last step's content is exactly the target content.
"""

import json
import logging
import re
from pathlib import Path
from typing import List, Optional

import httpx

from gitty.config import Settings
from gitty.core.errors import GittyError
from gitty.core.repository import GitRepository
from gitty.core.settings_store import SettingsStore
from gitty.models.refactor import RefactorCommit, RefactorPlan

logger = logging.getLogger(__name__)

REFACTOR_PROMPT = """You are an expert software engineer specializing in clean Git history.
The file "{filepath}" has been refactored.

CURRENT CONTENT:
file_content_start
{current_content}
file_content_end

TARGET CONTENT (the final state after refactoring):
file_content_start
{target_content}
file_content_end

Split the changes into a sequence of logical, atomic Git commits.
For each commit provide:
1. A clear commit message in the imperative mood, e.g. "Extract helper function".
2. The FULL content of the file as it should look AFTER that commit.

The final commit MUST leave the file exactly equal to the TARGET CONTENT.
{rules}
Respond ONLY with a JSON object of this shape:
{{"commits": [{{"message": "Commit message 1", "changes": "FULL file content after commit 1"}}]}}
Do not add prose or markdown fences around the JSON."""

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

# (section split, heading) per document type
_SECTION_PATTERNS = {
    ".adoc": (re.compile(r"(?=\n==? )"), re.compile(r"==? (.*)")),
    ".asciidoc": (re.compile(r"(?=\n==? )"), re.compile(r"==? (.*)")),
    ".md": (re.compile(r"(?=\n#{1,2} )"), re.compile(r"#{1,2} (.*)")),
    ".markdown": (re.compile(r"(?=\n#{1,2} )"), re.compile(r"#{1,2} (.*)")),
}


def build_prompt(filepath: str, current_content: str, target_content: str,
                 rules: Optional[str] = None) -> str:
    rules_text = f"\nRepository rules to follow:\n{rules}\n" if rules else ""
    return REFACTOR_PROMPT.format(
        filepath=filepath,
        current_content=current_content,
        target_content=target_content,
        rules=rules_text,
    )


def _finalize(plan: RefactorPlan, target_content: str) -> RefactorPlan:
    last = plan.commits[-1]
    if last.changes != target_content:
        logger.warning("Plan for %s did not end on the target content; fixing last step", plan.filepath)
        last.changes = target_content
    return plan


def parse_plan_response(filepath: str, text: str, target_content: str) -> RefactorPlan:
    """Parse the model's JSON answer, tolerating prose around the object."""
    match = _JSON_OBJECT_RE.search(text)
    parsed = json.loads(match.group(0) if match else text)
    raw_commits = parsed["commits"]
    if not isinstance(raw_commits, list) or not raw_commits:
        raise ValueError("model returned no commits")

    commits = [
        RefactorCommit(
            id=f"ai-commit-{index}",
            message=str(raw["message"]),
            changes=str(raw["changes"]),
        )
        for index, raw in enumerate(raw_commits)
    ]
    return _finalize(RefactorPlan(filepath=filepath, commits=commits), target_content)


def fallback_plan(filepath: str, current_content: str, target_content: str) -> RefactorPlan:
    """Content-based split: one step per document section, else a single step."""
    commits: List[RefactorCommit] = []
    patterns = _SECTION_PATTERNS.get(Path(filepath).suffix.lower())

    if patterns is not None and current_content != target_content:
        splitter, heading = patterns
        sections = [section for section in splitter.split(target_content) if section]
        snapshot = ""
        for index, section in enumerate(sections):
            snapshot += section
            match = heading.search(section)
            title = match.group(1).strip() if match else f"Section {index + 1}"
            commits.append(
                RefactorCommit(
                    id=f"heuristic-{index}",
                    message=f"Refactor section: {title} (Heuristic Split)",
                    changes=snapshot,
                )
            )

    if len(commits) < 2:
        commits = [
            RefactorCommit(
                id="heuristic-final",
                message=f"Refactor {filepath} (Single Commit)",
                changes=target_content,
            )
        ]

    return _finalize(RefactorPlan(filepath=filepath, commits=commits), target_content)


class RefactorPlanner:
    """Proposes ordered (message, full snapshot) steps for one file."""

    def __init__(self, settings: Settings, store: Optional[SettingsStore] = None,
                 client: Optional[httpx.Client] = None):
        self.settings = settings
        self.store = store
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.settings.planner_timeout)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def api_key(self) -> Optional[str]:
        stored = self.store.get_gemini_key() if self.store is not None else None
        return stored or self.settings.gemini_api_key or None

    @property
    def is_configured(self) -> bool:
        return self.api_key() is not None

    def suggest_commits(self, filepath: str, current_content: str, target_content: str,
                        rules: Optional[str] = None) -> RefactorPlan:
        """Never raises for planner problems; falls back to the heuristic."""
        api_key = self.api_key()
        if not api_key:
            logger.info("No Gemini API key configured; using heuristic split for %s", filepath)
            return fallback_plan(filepath, current_content, target_content)

        try:
            return self._ask_model(api_key, filepath, current_content, target_content, rules)
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning("AI analysis failed for %s, using fallback: %s", filepath, exc)
            return fallback_plan(filepath, current_content, target_content)

    def _ask_model(self, api_key: str, filepath: str, current_content: str,
                   target_content: str, rules: Optional[str]) -> RefactorPlan:
        url = f"{self.settings.gemini_base_url}/models/{self.settings.gemini_model}:generateContent"
        prompt = build_prompt(filepath, current_content, target_content, rules)
        response = self.client.post(
            url,
            params={"key": api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
        )
        response.raise_for_status()
        text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
        plan = parse_plan_response(filepath, text, target_content)
        logger.info("Model proposed %d commit(s) for %s", len(plan.commits), filepath)
        return plan

    def analyze(self, filepath: str, target_content: str,
                repository: Optional[GitRepository] = None,
                repo_path: Optional[str] = None) -> RefactorPlan:
        """Plan from the working-tree content of ``filepath`` to ``target_content``."""
        current_content = ""
        if repository is not None:
            try:
                current_content = repository.working_file_content(filepath).content
            except GittyError as exc:
                logger.info("No current content for %s (%s); planning from empty", filepath, exc)
            repo_path = repo_path or str(repository.path)

        rules = None
        if repo_path and self.store is not None:
            rules = self.store.get_repo_rules(repo_path)
        return self.suggest_commits(filepath, current_content, target_content, rules)
