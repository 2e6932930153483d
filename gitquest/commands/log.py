"""Log command - show commit history."""

import heapq
from typing import Dict, List, Optional, Tuple

from gitquest.commands.context import CommandContext
from gitquest.commands.parser import parse_arguments
from gitquest.core.errors import CommandParseError, PreconditionError, UnknownRevisionError
from gitquest.core.state import Commit, RepositoryState


def log_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Show commit history, newest first.

    Accepts ``--oneline``, ``-n N``, ``-N``, ``--all`` and an optional
    starting revision.
    """
    args = parse_arguments(
        tokens,
        switches={'--oneline', '--all'},
        options={'-n', '--max-count'},
    )
    state = ctx.state
    limit = _parse_limit(args.value('-n', '--max-count'))

    revisions = []
    for positional in args.positionals:
        if positional.startswith('-') and positional[1:].isdigit():
            limit = int(positional[1:])
        else:
            revisions.append(positional)

    starts: List[str] = []
    if args.has('--all'):
        starts.extend(b.commit_hash for b in state.branches if b.commit_hash)
        starts.extend(
            b.commit_hash for r in state.remotes for b in r.branches if b.commit_hash
        )
    for revision in revisions:
        commit_hash = state.resolve_ref(revision)
        if commit_hash is None:
            raise UnknownRevisionError(
                f"fatal: ambiguous argument '{revision}': unknown revision or path not in the working tree."
            )
        starts.append(commit_hash)
    if not starts and not args.has('--all'):
        head = state.head_hash()
        if head is None:
            raise PreconditionError(
                f"fatal: your current branch '{state.head}' does not have any commits yet"
            )
        starts.append(head)

    history = walk_history(state, starts)
    if limit is not None:
        history = history[:limit]

    decorations = ref_decorations(state)
    oneline = args.has('--oneline')
    entries = [
        commit.format(oneline=oneline, decoration=decorations.get(commit.hash, ''))
        for commit in history
    ]
    if oneline:
        return state, '\n'.join(entries)
    return state, '\n'.join(entries).rstrip('\n')


def _parse_limit(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    if not value.isdigit():
        raise CommandParseError(f"fatal: '{value}': not an integer")
    return int(value)


def walk_history(state: RepositoryState, starts: List[str]) -> List[Commit]:
    """
    Commits reachable from ``starts``, newest first.

    Commits with equal timestamps are ordered by recording order, so a
    child is always listed before its parents.
    """
    order = {commit.hash: i for i, commit in enumerate(state.commits)}
    heap: List[Tuple[float, int, str]] = []
    seen = set()

    def push(commit_hash: str):
        commit = state.get_commit(commit_hash)
        if commit is None or commit_hash in seen:
            return
        seen.add(commit_hash)
        heapq.heappush(heap, (-commit.timestamp.timestamp(), -order[commit_hash], commit_hash))

    for start in starts:
        push(start)

    history = []
    while heap:
        _, _, commit_hash = heapq.heappop(heap)
        commit = state.get_commit(commit_hash)
        history.append(commit)
        for parent in commit.get_parents():
            push(parent)
    return history


def ref_decorations(state: RepositoryState) -> Dict[str, str]:
    """Map commit hash to its ``HEAD -> main, feature`` decoration."""
    names: Dict[str, List[str]] = {}
    current = state.current_branch()
    head_hash = state.head_hash()

    if head_hash and current is None:
        names.setdefault(head_hash, []).append('HEAD')

    for branch in sorted(state.branches, key=lambda b: b.name):
        if not branch.commit_hash:
            continue
        if current is not None and branch.name == current.name:
            names.setdefault(branch.commit_hash, []).insert(0, f"HEAD -> {branch.name}")
        else:
            names.setdefault(branch.commit_hash, []).append(branch.name)

    for remote in state.remotes:
        for branch in remote.branches:
            if branch.commit_hash:
                names.setdefault(branch.commit_hash, []).append(f"{remote.name}/{branch.name}")

    return {commit_hash: ', '.join(refs) for commit_hash, refs in names.items()}
