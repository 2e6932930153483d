"""Command interpreter: turns ``git ...`` lines into state transitions."""

from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import structlog

from gitquest.commands.add import add_cmd
from gitquest.commands.branch import branch_cmd
from gitquest.commands.checkout import checkout_cmd
from gitquest.commands.commit import commit_cmd
from gitquest.commands.context import CommandContext, RemoteHost, utc_now
from gitquest.commands.diff import diff_cmd
from gitquest.commands.init import init_cmd
from gitquest.commands.log import log_cmd
from gitquest.commands.merge import merge_cmd
from gitquest.commands.parser import parse
from gitquest.commands.remote import clone_cmd, fetch_cmd, pull_cmd, push_cmd, remote_cmd
from gitquest.commands.reset import reset_cmd
from gitquest.commands.revert import revert_cmd
from gitquest.commands.status import status_cmd
from gitquest.core.config import Config
from gitquest.core.errors import CommandParseError, GitQuestError, InvariantViolationError
from gitquest.core.state import DEFAULT_AUTHOR, DEFAULT_BRANCH, RepositoryState

logger = structlog.get_logger()

Handler = Callable[[CommandContext, List[str]], Tuple[RepositoryState, str]]


def help_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    lines = ['usage: git <command> [<args>]', '', 'Supported commands:']
    lines.extend(f"   {name:<10}{summary}" for name, summary in SUMMARIES.items())
    return ctx.state, '\n'.join(lines)


COMMANDS: Dict[str, Handler] = {
    'init': init_cmd,
    'status': status_cmd,
    'add': add_cmd,
    'commit': commit_cmd,
    'log': log_cmd,
    'diff': diff_cmd,
    'branch': branch_cmd,
    'checkout': checkout_cmd,
    'merge': merge_cmd,
    'reset': reset_cmd,
    'revert': revert_cmd,
    'remote': remote_cmd,
    'fetch': fetch_cmd,
    'push': push_cmd,
    'pull': pull_cmd,
    'clone': clone_cmd,
    'help': help_cmd,
    '--help': help_cmd,
}

SUMMARIES = {
    'init': 'Create an empty repository',
    'status': 'Show the working tree status',
    'add': 'Add file contents to the index',
    'commit': 'Record changes to the repository',
    'log': 'Show commit logs',
    'diff': 'Show changes between commits, commit and working tree, etc',
    'branch': 'List, create, or delete branches',
    'checkout': 'Switch branches or restore working tree files',
    'merge': 'Join two development histories together',
    'reset': 'Reset current HEAD to the specified state',
    'revert': 'Revert an existing commit',
    'remote': 'Manage set of tracked repositories',
    'fetch': 'Download objects and refs from another repository',
    'push': 'Update remote refs along with associated objects',
    'pull': 'Fetch from and integrate with another repository',
    'clone': 'Clone a repository',
}

# Commands that work before ``git init``
NO_REPOSITORY = frozenset({'init', 'clone', 'help', '--help'})


@dataclass
class ExecutionResult:
    """Outcome of one command: output text, resulting state and error, if any."""
    output: str
    new_state: RepositoryState
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'success': self.success,
            'output': self.output,
            'newState': self.new_state.to_dict(),
        }
        if self.error is not None:
            data['error'] = self.error
        return data


class ResultCache:
    """
    Least-recently-used cache of replayed command sequences.

    Keys are (repository id, command sequence); values are the results
    of replaying that sequence.
    """

    def __init__(self, maxsize: int = 128):
        self.maxsize = maxsize
        self._entries: 'OrderedDict[Tuple[str, Tuple[str, ...]], List[ExecutionResult]]' = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, repo_id: str, commands: Iterable[str]) -> Optional[List[ExecutionResult]]:
        key = (repo_id, tuple(commands))
        results = self._entries.get(key)
        if results is None:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return list(results)

    def put(self, repo_id: str, commands: Iterable[str], results: List[ExecutionResult]) -> None:
        key = (repo_id, tuple(commands))
        self._entries[key] = list(results)
        self._entries.move_to_end(key)
        while len(self._entries) > self.maxsize:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class Engine:
    """
    Executes git command lines against immutable repository states.

    The engine holds configuration only (author, default branch, clock,
    remote host); every call takes the state to operate on and returns a
    new one, so one engine can serve any number of sessions.
    """

    def __init__(
        self,
        author: str = DEFAULT_AUTHOR,
        default_branch: str = DEFAULT_BRANCH,
        clock: Callable[[], datetime] = utc_now,
        remote_host: Optional[RemoteHost] = None,
    ):
        self.author = author
        self.default_branch = default_branch
        self.clock = clock
        self.remote_host = remote_host or RemoteHost()

    @classmethod
    def from_config(cls, config: Config, **kwargs: Any) -> 'Engine':
        """Build an engine using the author and default branch from ``config``."""
        return cls(author=config.author, default_branch=config.default_branch, **kwargs)

    def execute(self, state: RepositoryState, command: str) -> ExecutionResult:
        """
        Run one command line.

        Args:
            state: State to run against; never modified
            command: Full command line, e.g. ``git commit -m "msg"``

        Returns:
            ExecutionResult; on failure ``new_state`` is ``state`` itself

        Raises:
            InvariantViolationError: The command produced a broken state
        """
        log = logger.bind(repo=state.id, command=command)
        try:
            parsed = parse(command)
            handler = COMMANDS.get(parsed.name)
            if handler is None:
                raise CommandParseError(
                    f"git: '{parsed.name}' is not a git command. See 'git --help'."
                )
            ctx = CommandContext(
                state=state,
                author=self.author,
                default_branch=self.default_branch,
                clock=self.clock,
                remote_host=self.remote_host,
            )
            if parsed.name not in NO_REPOSITORY:
                ctx.require_repository()
            new_state, output = handler(ctx, parsed.tokens)
            new_state.check_invariants()
        except InvariantViolationError as exc:
            log.critical('invariant_violation', error=str(exc))
            raise
        except GitQuestError as exc:
            log.info('command_rejected', error=str(exc), error_type=type(exc).__name__)
            return ExecutionResult(output='', new_state=state, error=str(exc))

        log.debug(
            'command_executed',
            head=new_state.head,
            commits=len(new_state.commits),
            changed=new_state is not state,
        )
        return ExecutionResult(output=output, new_state=new_state)

    def replay(
        self,
        state: RepositoryState,
        commands: Iterable[str],
        cache: Optional[ResultCache] = None,
    ) -> List[ExecutionResult]:
        """
        Run a sequence of commands, each against the previous result's state.

        Failed commands leave the state unchanged and the sequence goes on,
        as in an interactive session.

        Args:
            state: Starting state
            commands: Command lines in order
            cache: Optional cache keyed on (state id, command sequence)

        Returns:
            One ExecutionResult per command
        """
        commands = list(commands)
        if cache is not None:
            cached = cache.get(state.id, commands)
            if cached is not None:
                logger.debug('replay_cache_hit', repo=state.id, commands=len(commands))
                return cached

        results = []
        current = state
        for command in commands:
            result = self.execute(current, command)
            results.append(result)
            current = result.new_state

        if cache is not None:
            cache.put(state.id, commands, results)
        return results


def execute(state: RepositoryState, command: str, **engine_options: Any) -> ExecutionResult:
    """Execute one command with a default-configured ``Engine``."""
    return Engine(**engine_options).execute(state, command)
