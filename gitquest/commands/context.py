"""Execution context shared by command handlers."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from gitquest.core.errors import NotARepositoryError
from gitquest.core.state import DEFAULT_AUTHOR, DEFAULT_BRANCH, RepositoryState


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RemoteHost:
    """
    Read-only catalogue of simulated remote repositories, keyed by URL.

    ``clone`` and ``fetch`` copy commit data out of it; nothing ever
    writes back, so one host can be shared by any number of sessions.
    """

    def __init__(self, repositories: Optional[Mapping[str, RepositoryState]] = None):
        self._repositories = dict(repositories or {})

    def get(self, url: str) -> Optional[RepositoryState]:
        return self._repositories.get(url)

    def __contains__(self, url: str) -> bool:
        return url in self._repositories

    def __len__(self) -> int:
        return len(self._repositories)


@dataclass
class CommandContext:
    """Everything a handler needs besides its arguments."""
    state: RepositoryState
    author: str = DEFAULT_AUTHOR
    default_branch: str = DEFAULT_BRANCH
    clock: Callable[[], datetime] = utc_now
    remote_host: RemoteHost = field(default_factory=RemoteHost)

    def now(self) -> datetime:
        return self.clock()

    def require_repository(self) -> RepositoryState:
        """Return the state, failing when ``git init`` has not been run."""
        if not self.state.is_initialized():
            raise NotARepositoryError(
                'fatal: not a git repository (or any of the parent directories): .git'
            )
        return self.state
