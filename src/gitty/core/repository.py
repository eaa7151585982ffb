"""Git capability for an opened repository, backed by GitPython."""

import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Union

import git
from git import Repo

from gitty.core.diff_parser import parse_hunks
from gitty.core.errors import (
    GitOperationError,
    GittyError,
    NotADirectory,
    NotAGitRepo,
    UnknownCommit,
    WorkingTreeIOError,
)
from gitty.models.commit import (
    BranchInfo,
    Commit,
    FileChange,
    FileContent,
    FileStatus,
    RemoteInfo,
    RepoInfo,
    WorkingTreeStatus,
)
from gitty.models.diff import DiffResult
from gitty.models.result import Conflict, Err, Ok
from gitty.models.workflow import ConflictEntry

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    "A": FileStatus.ADDED,
    "M": FileStatus.MODIFIED,
    "D": FileStatus.DELETED,
    "R": FileStatus.RENAMED,
    "C": FileStatus.COPIED,
}
_UNMERGED_CODES = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}

# Index stages of an unmerged path.
_BASE_STAGE, _OURS_STAGE, _THEIRS_STAGE = 1, 2, 3


def _error_message(exc: git.exc.GitCommandError) -> str:
    """Pull git's own stderr text out of a GitCommandError."""
    text = str(exc.stderr or "").strip()
    prefix = "stderr: '"
    if text.startswith(prefix):
        text = text[len(prefix):].rstrip("'").strip()
    return text or str(exc)


def _text(value: Union[str, bytes]) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class GitRepository:
    """Blocking git operations scoped to one working tree.

    Read queries raise ``GittyError`` subclasses. Mutating operations return
    an ``Ok``/``Conflict``/``Err`` result and never raise for git failures.
    """

    def __init__(self, repo: Repo):
        self.repo = repo
        self.path = Path(repo.working_tree_dir).resolve()

    @classmethod
    def open(cls, path: Union[str, Path]) -> "GitRepository":
        """Open the repository whose working tree contains ``path``."""
        absolute = Path(path).expanduser().resolve()
        if not absolute.is_dir():
            raise NotADirectory(f"Directory does not exist: {absolute}")

        try:
            repo = Repo(absolute, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as exc:
            raise NotAGitRepo(f"Not a Git repository: {absolute}") from exc

        if repo.bare or repo.working_tree_dir is None:
            raise NotAGitRepo(f"Repository has no working tree: {absolute}")

        logger.info("Opened repository %s", repo.working_tree_dir)
        return cls(repo)

    def _run(self, command: str, *args: str, **kwargs) -> str:
        """Run a git subcommand, translating failures into GitOperationError."""
        logger.debug("git %s %s", command, " ".join(args))
        try:
            return getattr(self.repo.git, command)(*args, **kwargs)
        except git.exc.GitCommandError as exc:
            logger.debug("git %s failed: %s", command, exc.stderr)
            raise GitOperationError(_error_message(exc)) from exc

    # Queries

    def info(self) -> RepoInfo:
        detached = self.repo.head.is_detached
        remotes = []
        for remote in self.repo.remotes:
            fetch_url = self._run("remote", "get-url", remote.name)
            push_url = self._run("remote", "get-url", "--push", remote.name)
            remotes.append(
                RemoteInfo(name=remote.name, fetch_url=fetch_url, push_url=push_url)
            )

        return RepoInfo(
            path=str(self.path),
            current_branch="HEAD" if detached else self.repo.active_branch.name,
            is_detached=detached,
            remotes=remotes,
            has_uncommitted_changes=self.repo.is_dirty(untracked_files=True),
        )

    def head_hash(self) -> str:
        return self.repo.head.commit.hexsha

    def resolve_commit(self, ref: str) -> str:
        """Return the full hash for ``ref`` or raise UnknownCommit."""
        try:
            return self.repo.commit(ref).hexsha
        except (git.exc.BadName, git.exc.BadObject, ValueError) as exc:
            raise UnknownCommit(f"Unknown commit: {ref}") from exc

    def _decorations(self) -> Dict[str, List[str]]:
        """Map commit hashes to ref names the way ``git log %D`` shows them."""
        decorations: Dict[str, List[str]] = defaultdict(list)
        head = self.repo.head
        active = None if head.is_detached else self.repo.active_branch

        if head.is_detached:
            decorations[head.commit.hexsha].append("HEAD")

        for ref in self.repo.references:
            try:
                sha = ref.commit.hexsha
            except ValueError:
                continue
            if isinstance(ref, git.TagReference):
                decorations[sha].append(f"tag: {ref.name}")
            elif active is not None and ref.path == active.path:
                decorations[sha].insert(0, f"HEAD -> {ref.name}")
            else:
                decorations[sha].append(ref.name)
        return decorations

    def history(self, limit: int = 100) -> List[Commit]:
        """Commits reachable from HEAD, newest first, children before parents."""
        if not self.repo.head.is_valid():
            return []

        decorations = self._decorations()
        commits = []
        for commit in self.repo.iter_commits("HEAD", max_count=limit, date_order=True):
            commits.append(
                Commit(
                    hash=commit.hexsha,
                    abbreviated_hash=commit.hexsha[:7],
                    message=_text(commit.summary),
                    author_name=commit.author.name or "",
                    author_email=commit.author.email or "",
                    date=commit.authored_datetime,
                    parent_hashes=[parent.hexsha for parent in commit.parents],
                    refs=decorations.get(commit.hexsha, []),
                )
            )
        return commits

    def branches(self) -> List[BranchInfo]:
        head = self.repo.head
        active = None if head.is_detached else self.repo.active_branch
        branches = []

        for branch in self.repo.heads:
            if not branch.is_valid():
                continue
            tracking = branch.tracking_branch()
            branches.append(
                BranchInfo(
                    name=branch.name,
                    current=active is not None and branch.path == active.path,
                    commit_hash=branch.commit.hexsha,
                    tracking=tracking.name if tracking is not None else None,
                )
            )

        for remote in self.repo.remotes:
            for ref in remote.refs:
                branches.append(
                    BranchInfo(
                        name=f"remotes/{ref.name}",
                        current=False,
                        commit_hash=ref.commit.hexsha,
                    )
                )
        return branches

    def commit_files(self, commit_hash: str) -> List[FileChange]:
        full_hash = self.resolve_commit(commit_hash)
        name_status = self._run("show", full_hash, "--name-status", "--format=", "-M")
        numstat = self._run("show", full_hash, "--numstat", "--format=", "-M")

        files = []
        for line in name_status.splitlines():
            parts = line.split("\t")
            if len(parts) < 2:
                continue
            code = parts[0][:1]
            status = _STATUS_CODES.get(code, FileStatus.MODIFIED)
            files.append(
                FileChange(
                    filepath=parts[-1],
                    status=status,
                    old_path=parts[1] if code in ("R", "C") else None,
                )
            )

        # Both listings come from the same diff queue, so they share ordering.
        counts = [line.split("\t") for line in numstat.splitlines() if line.strip()]
        if len(counts) == len(files):
            for change, row in zip(files, counts):
                if row[0].isdigit() and row[1].isdigit():
                    change.insertions = int(row[0])
                    change.deletions = int(row[1])
        return files

    def _blob_text(self, commit: git.Commit, filepath: str) -> Optional[str]:
        try:
            blob = commit.tree / filepath
        except KeyError:
            return None
        return blob.data_stream.read().decode("utf-8", errors="replace")

    def file_diff(self, commit_hash: str, filepath: str) -> DiffResult:
        """Parent and commit content of ``filepath`` with the commit's hunks."""
        commit = self.repo.commit(self.resolve_commit(commit_hash))
        old_content = ""
        if commit.parents:
            old_content = self._blob_text(commit.parents[0], filepath) or ""
        new_content = self._blob_text(commit, filepath) or ""

        try:
            raw_diff = self._run(
                "show", commit.hexsha, "--format=", "--", filepath,
                strip_newline_in_stdout=False,
            )
        except GitOperationError as exc:
            logger.warning("Failed to get diff output for %s: %s", filepath, exc)
            raw_diff = ""

        return DiffResult(
            filepath=filepath,
            old_content=old_content,
            new_content=new_content,
            hunks=parse_hunks(raw_diff),
        )

    def file_content(self, commit_hash: str, filepath: str) -> FileContent:
        commit = self.repo.commit(self.resolve_commit(commit_hash))
        content = self._blob_text(commit, filepath)
        if content is None:
            raise GitOperationError(
                f"Could not get file content: {filepath} does not exist in {commit.hexsha[:7]}"
            )
        return FileContent(filepath=filepath, content=content)

    def _worktree_path(self, filepath: str) -> Path:
        """Resolve a repo-relative path, refusing anything outside the tree."""
        full_path = (self.path / filepath).resolve()
        try:
            full_path.relative_to(self.path)
        except ValueError as exc:
            raise WorkingTreeIOError(
                f"Path escapes the working tree: {filepath}"
            ) from exc
        return full_path

    def working_file_content(self, filepath: str) -> FileContent:
        full_path = self._worktree_path(filepath)
        try:
            with open(full_path, encoding="utf-8", newline="") as f:
                content = f.read()
        except OSError as exc:
            raise WorkingTreeIOError(f"Could not read file: {exc}") from exc
        return FileContent(filepath=filepath, content=content)

    def rebase_in_progress(self) -> bool:
        git_dir = Path(self.repo.git_dir)
        return (git_dir / "rebase-merge").exists() or (git_dir / "rebase-apply").exists()

    def status(self) -> WorkingTreeStatus:
        status = WorkingTreeStatus(rebase_in_progress=self.rebase_in_progress())
        for line in self._run("status", "--porcelain").splitlines():
            if len(line) < 4:
                continue
            code, path = line[:2], line[3:]
            if " -> " in path:
                path = path.split(" -> ", 1)[1]
            path = path.strip('"')

            if code == "??":
                status.untracked.append(path)
            elif code in _UNMERGED_CODES:
                status.conflicted.append(path)
            else:
                if code[0] != " ":
                    status.staged.append(path)
                if code[1] != " ":
                    status.modified.append(path)
        return status

    def conflicted_paths(self) -> List[str]:
        output = self._run("diff", "--name-only", "--diff-filter=U")
        return sorted({line for line in output.splitlines() if line.strip()})

    def _stage_content(self, stage: int, filepath: str) -> Optional[str]:
        try:
            return self.repo.git.show(
                f":{stage}:{filepath}", strip_newline_in_stdout=False
            )
        except git.exc.GitCommandError:
            return None

    def conflict_entries(self, paths: Optional[List[str]] = None) -> List[ConflictEntry]:
        """Full ours/theirs/base content for each unmerged path."""
        if paths is None:
            paths = self.conflicted_paths()
        return [
            ConflictEntry(
                filepath=path,
                ours_content=self._stage_content(_OURS_STAGE, path) or "",
                theirs_content=self._stage_content(_THEIRS_STAGE, path) or "",
                base_content=self._stage_content(_BASE_STAGE, path),
            )
            for path in paths
        ]

    # Mutations

    def checkout_commit(self, commit_hash: str) -> Union[Ok, Err]:
        """Detach HEAD at ``commit_hash``."""
        try:
            full_hash = self.resolve_commit(commit_hash)
            self._run("checkout", full_hash)
        except GittyError as exc:
            return exc.to_result()
        return Ok(
            message=f"Checked out commit {full_hash[:7]}",
            data={"hash": full_hash},
        )

    def checkout_branch(self, branch: str) -> Union[Ok, Err]:
        try:
            self._run("checkout", branch)
        except GittyError as exc:
            return exc.to_result()
        return Ok(message=f"Checked out branch {branch}")

    def write_file(self, filepath: str, content: str) -> Union[Ok, Err]:
        try:
            full_path = self._worktree_path(filepath)
            full_path.parent.mkdir(parents=True, exist_ok=True)
            with open(full_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except GittyError as exc:
            return exc.to_result()
        except OSError as exc:
            return WorkingTreeIOError(str(exc)).to_result()
        return Ok(message=f"File written: {filepath}")

    def stage_files(self, files: List[str]) -> Union[Ok, Err]:
        try:
            self._run("add", "--", *files)
        except GittyError as exc:
            return exc.to_result()
        return Ok(message=f"Staged {len(files)} file(s)")

    def amend_commit(self, message: Optional[str] = None) -> Union[Ok, Err]:
        """Amend HEAD, keeping its message unless a new one is given."""
        args = ["--amend"]
        if message:
            args.extend(["-m", message])
        else:
            args.append("--no-edit")

        try:
            self._run("commit", *args)
        except GittyError as exc:
            return exc.to_result()

        new_hash = self.head_hash()
        logger.info("Amended HEAD, new commit %s", new_hash[:7])
        return Ok(message="Commit amended successfully", data={"new_hash": new_hash})

    def _rebase(self, *args: str) -> None:
        with self.repo.git.custom_environment(GIT_EDITOR="true"):
            self._run("rebase", *args)

    def _rebase_failure(self, exc: GittyError) -> Union[Conflict, Err]:
        paths = self.conflicted_paths()
        if paths:
            logger.info("Rebase stopped on %d conflicted path(s)", len(paths))
            return Conflict(
                message="Rebase stopped due to conflicts",
                conflicts=self.conflict_entries(paths),
            )
        return exc.to_result()

    def rebase_onto(self, new_base: str, old_base: str, branch: str) -> Union[Ok, Conflict, Err]:
        """Replay ``old_base..branch`` onto ``new_base``."""
        try:
            self._rebase("--onto", new_base, old_base, branch)
        except GittyError as exc:
            return self._rebase_failure(exc)
        return Ok(message=f"Successfully rebased {branch} onto {new_base[:7]}")

    def abort_rebase(self) -> Union[Ok, Err]:
        try:
            self._rebase("--abort")
        except GittyError as exc:
            return exc.to_result()
        return Ok(message="Rebase aborted")

    def continue_rebase(self) -> Union[Ok, Conflict, Err]:
        try:
            self._rebase("--continue")
        except GittyError as exc:
            return self._rebase_failure(exc)
        return Ok(message="Rebase continued")

    def force_push(self, remote: str, branch: str) -> Union[Ok, Err]:
        try:
            self._run("push", "--force", remote, branch)
        except GittyError as exc:
            return exc.to_result()
        logger.warning("Force pushed %s to %s", branch, remote)
        return Ok(message=f"Force pushed {branch} to {remote}")

    def move_branch_to_head(self, branch: str) -> Union[Ok, Err]:
        try:
            self._run("branch", "-f", branch, "HEAD")
        except GittyError as exc:
            return exc.to_result()
        return Ok(message=f"Moved {branch} to HEAD")
