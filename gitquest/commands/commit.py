"""Commit command - record changes to the repository."""

from typing import List, Tuple

from gitquest.commands.context import CommandContext
from gitquest.commands.parser import parse_arguments
from gitquest.core.errors import CommandParseError, PreconditionError
from gitquest.core.state import RepositoryState


def commit_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Create a commit from the staging area.

    ``-a`` first stages every modified or deleted tracked file. While a
    merge is in progress the message defaults to the merge message.
    """
    args = parse_arguments(tokens, switches={'-a', '--all'}, options={'-m', '--message'})
    if args.positionals or args.paths:
        raise CommandParseError(
            f"error: pathspec '{(args.positionals + args.paths)[0]}' did not match any file(s) known to git"
        )

    state = ctx.state
    message = args.value('-m', '--message')
    if message is None:
        if not state.is_merging():
            raise PreconditionError(
                'Aborting commit due to empty commit message.\n'
                'Use \'git commit -m "message"\' to provide a commit message.'
            )
        message = merge_message(state.merge_branch, state.head)

    if args.has('-a', '--all'):
        state = stage_tracked(state)

    previous = state.head_hash()
    new_state = state.commit(message, ctx.author, ctx.now())
    return new_state, commit_summary(new_state, previous)


def merge_message(branch: str, into: str) -> str:
    return f"Merge branch '{branch}' into {into}"


def stage_tracked(state: RepositoryState) -> RepositoryState:
    """Stage modifications and deletions of tracked files (``commit -a``)."""
    index = state.index_tree()
    for path in sorted(index):
        entry = state.working_directory.get(path)
        if entry is None or entry.content != index[path] or path in state.conflicts:
            state = state.stage_file(path)
    return state


def commit_summary(state: RepositoryState, previous: str) -> str:
    """The ``[branch hash] subject`` line printed after a commit."""
    commit = state.head_commit()
    branch = state.current_branch()
    label = branch.name if branch is not None else 'detached HEAD'
    if previous is None:
        label += ' (root-commit)'

    parent = state.get_commit(commit.parent)
    before = parent.files() if parent else {}
    after = commit.files()
    changed = sum(
        1 for path in set(before) | set(after) if before.get(path) != after.get(path)
    )
    noun = 'file' if changed == 1 else 'files'
    return f"[{label} {commit.short_hash}] {commit.subject}\n {changed} {noun} changed"
