"""Revert command - undo a commit by recording its inverse."""

from typing import List, Tuple

from gitquest.commands.checkout import carry_local_changes
from gitquest.commands.commit import commit_summary
from gitquest.commands.context import CommandContext
from gitquest.commands.parser import parse_arguments
from gitquest.core.errors import (
    CommandParseError,
    MergeInProgressError,
    NothingToCommitError,
    PreconditionError,
    UnknownRevisionError,
)
from gitquest.core.state import FileEntry, RepositoryState
from gitquest.operations.merge import merge_trees


def revert_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Create a new commit that undoes the changes of an earlier one.

    The inverse change is computed with a three-way merge (base: the
    reverted commit, ours: HEAD, theirs: its parent). Conflicts abort the
    revert and leave the repository untouched.
    """
    args = parse_arguments(tokens, switches={'--no-edit'})
    state = ctx.state

    if len(args.positionals) != 1:
        raise CommandParseError('usage: git revert <commit>')
    if state.is_merging():
        raise MergeInProgressError('error: revert is not possible because you have unmerged files.')
    if state.staging_area:
        raise PreconditionError(
            'error: your local changes would be overwritten by revert.\n'
            'hint: commit your changes or stash them to proceed.\n'
            'fatal: revert failed'
        )

    name = args.positionals[0]
    commit_hash = state.resolve_ref(name)
    if commit_hash is None:
        raise UnknownRevisionError(f"fatal: bad revision '{name}'")

    commit = state.get_commit(commit_hash)
    if commit.is_merge_commit:
        raise PreconditionError(
            f"error: commit {commit_hash} is a merge but no -m option was given.\n"
            'fatal: revert failed'
        )

    parent = state.get_commit(commit.parent)
    head_files = state.head_tree()
    result = merge_trees(
        commit.files(),
        head_files,
        parent.files() if parent else {},
        f"parent of {commit.short_hash} ({commit.subject})",
    )
    if not result.success:
        paths = ''.join(f"\t{path}\n" for path in result.conflicted_paths)
        raise PreconditionError(
            f"error: could not revert {commit.short_hash}... {commit.subject}\n"
            f"CONFLICT in:\n{paths}"
            'hint: the changes cannot be undone automatically; resolve them by hand and commit.'
        )

    staged = {}
    for path in sorted(set(head_files) | set(result.merged_files)):
        if path not in result.merged_files:
            staged[path] = FileEntry('', deleted=True)
        elif result.merged_files[path] != head_files.get(path):
            staged[path] = FileEntry(result.merged_files[path])
    if not staged:
        raise NothingToCommitError(
            f"On branch {state.head}\nnothing to commit, working tree clean"
        )

    working, _, _ = carry_local_changes(state, result.merged_files, 'revert')
    message = f'Revert "{commit.subject}"\n\nThis reverts commit {commit.hash}.'
    previous = state.head_hash()
    new_state = state.evolve(working_directory=working, staging_area=staged).commit(
        message, ctx.author, ctx.now()
    )
    return new_state, commit_summary(new_state, previous)
