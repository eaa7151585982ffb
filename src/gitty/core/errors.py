"""Exception types raised by the Gitty core."""

from gitty.models.result import Err, ErrorKind


class GittyError(Exception):
    """Base class for all Gitty errors."""

    kind = ErrorKind.GIT_ERROR

    def to_result(self) -> Err:
        return Err(kind=self.kind, message=str(self))


class NoRepositoryOpen(GittyError):
    kind = ErrorKind.NO_REPOSITORY_OPEN

    def __init__(self, message: str = "No repository opened. Open a repository first."):
        super().__init__(message)


class NotADirectory(GittyError):
    kind = ErrorKind.NOT_A_DIRECTORY


class NotAGitRepo(GittyError):
    kind = ErrorKind.NOT_A_GIT_REPO


class UnknownCommit(GittyError):
    kind = ErrorKind.UNKNOWN_COMMIT


class AlreadyRewriting(GittyError):
    kind = ErrorKind.ALREADY_REWRITING


class DetachedHeadEditAttempt(GittyError):
    kind = ErrorKind.DETACHED_HEAD_EDIT_ATTEMPT


class InvalidTransition(GittyError):
    kind = ErrorKind.INVALID_TRANSITION


class NothingToContinue(GittyError):
    kind = ErrorKind.NOTHING_TO_CONTINUE


class IncompleteResolution(GittyError):
    kind = ErrorKind.INCOMPLETE_RESOLUTION


class ConfirmationRequired(GittyError):
    kind = ErrorKind.CONFIRMATION_REQUIRED


class GitOperationError(GittyError):
    """A git command failed for a reason other than merge conflicts."""

    kind = ErrorKind.GIT_ERROR


class WorkingTreeIOError(GittyError):
    kind = ErrorKind.IO_ERROR
