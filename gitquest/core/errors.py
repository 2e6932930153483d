"""Shared exception types for gitquest.

Every error raised by the engine carries a message written for the learner
typing commands; the interpreter returns ``str(exc)`` as the command output.
"""


class GitQuestError(Exception):
    """Base exception for all gitquest errors."""


class CommandParseError(GitQuestError):
    """The command line, subcommand or one of its flags is not recognised."""


class PreconditionError(GitQuestError):
    """The repository is not in a state where the operation is allowed."""


class NotARepositoryError(PreconditionError):
    """The state has not been initialised with ``git init`` or ``git clone``."""


class NothingToCommitError(PreconditionError):
    """A commit was requested with an empty staging area."""


class BranchExistsError(PreconditionError):
    """A branch with the requested name already exists."""


class BranchNotFoundError(PreconditionError):
    """The named branch does not exist."""


class UnknownRevisionError(PreconditionError):
    """A ref, branch or commit hash could not be resolved."""


class PathspecError(PreconditionError):
    """A path argument did not match any file."""


class CheckoutConflictError(PreconditionError):
    """Switching would overwrite uncommitted local changes."""


class MergeInProgressError(PreconditionError):
    """The operation is not allowed while a merge is unresolved."""


class RemoteError(PreconditionError):
    """A simulated remote operation was rejected."""


class InvalidContentError(GitQuestError):
    """File content is not valid UTF-8 text."""


class CriteriaError(GitQuestError):
    """A validation criterion is malformed or names an unknown validator."""


class InvariantViolationError(GitQuestError):
    """A repository invariant was broken; this indicates an engine bug."""
