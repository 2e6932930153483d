"""Merge command - join two development histories together."""

from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from gitquest.commands.checkout import carry_local_changes
from gitquest.commands.commit import commit_summary, merge_message
from gitquest.commands.context import CommandContext
from gitquest.commands.parser import parse_arguments
from gitquest.core.errors import (
    CommandParseError,
    MergeInProgressError,
    PreconditionError,
    UnknownRevisionError,
)
from gitquest.core.state import FileEntry, RepositoryState
from gitquest.operations.merge import MergeEngine, MergeResult

logger = structlog.get_logger()


def merge_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Merge a branch into the current branch.

    Examples:
        git merge feature           # Merge feature into the current branch
        git merge --no-ff feature   # Always create a merge commit
        git merge --ff-only feature # Refuse anything but a fast-forward
        git merge --abort           # Abandon a conflicted merge
    """
    args = parse_arguments(
        tokens,
        switches={'--abort', '--no-ff', '--ff-only', '--continue'},
        options={'-m', '--message'},
    )
    state = ctx.state

    if args.has('--abort'):
        return abort_merge(state)

    if args.has('--continue'):
        if not state.is_merging():
            raise PreconditionError('fatal: There is no merge in progress (MERGE_HEAD missing).')
        previous = state.head_hash()
        new_state = state.commit(merge_message(state.merge_branch, state.head), ctx.author, ctx.now())
        return new_state, commit_summary(new_state, previous)

    if not args.positionals:
        raise CommandParseError(
            'You must specify which branch to merge.\nUsage: git merge <branch>'
        )
    if len(args.positionals) > 1:
        raise CommandParseError('fatal: octopus merges are not supported')
    if args.has('--no-ff') and args.has('--ff-only'):
        raise CommandParseError("fatal: options '--ff-only' and '--no-ff' cannot be used together")

    name = args.positionals[0]
    target_hash = state.resolve_ref(name)
    if target_hash is None:
        raise UnknownRevisionError(f"merge: {name} - not something we can merge")

    return merge_into(
        ctx,
        state,
        target_hash,
        name,
        message=args.value('-m', '--message'),
        no_ff=args.has('--no-ff'),
        ff_only=args.has('--ff-only'),
    )


def merge_into(
    ctx: CommandContext,
    state: RepositoryState,
    target_hash: str,
    label: str,
    message: Optional[str] = None,
    no_ff: bool = False,
    ff_only: bool = False,
) -> Tuple[RepositoryState, str]:
    """
    Merge ``target_hash`` into the current branch and apply the result.

    Shared by ``merge`` and ``pull``. A conflicted merge is not an error:
    the returned state is in the merge-in-progress sub-state.

    Args:
        ctx: Command context (author, clock)
        state: State to merge into
        target_hash: Commit being merged
        label: Name shown in messages and in the closing conflict marker
        message: Merge commit message override
        no_ff: Create a merge commit even when fast-forward is possible
        ff_only: Refuse unless the merge is a fast-forward
    """
    if state.is_merging():
        if state.conflicts:
            raise MergeInProgressError(
                'error: Merging is not possible because you have unmerged files.\n'
                "hint: Fix them up in the work tree, and then use 'git add <file>'\n"
                'hint: as appropriate to mark resolution and make a commit.\n'
                'fatal: Exiting because of an unresolved conflict.'
            )
        raise MergeInProgressError(
            'fatal: You have not concluded your merge (MERGE_HEAD exists).\n'
            'Please, commit your changes before you merge.'
        )

    branch = state.current_branch()
    if branch is None:
        raise PreconditionError('fatal: You are not currently on a branch.')

    ours_hash = state.head_hash()
    engine = MergeEngine(state)
    result = engine.merge(ours_hash, target_hash, label)

    if result.up_to_date:
        return state, 'Already up to date.'

    if result.is_fast_forward and not no_ff:
        return _fast_forward(state, branch.name, ours_hash, target_hash, result)

    if ff_only:
        raise PreconditionError('fatal: Not possible to fast-forward, aborting.')

    if result.is_fast_forward:
        # --no-ff: merge against ourselves as the base
        result = engine.three_way_merge(ours_hash, ours_hash, target_hash, label)

    _refuse_staged(state)
    ours_files = state.head_tree()
    working, _, _ = carry_local_changes(state, result.merged_files, 'merge')

    if result.success:
        merge_state = state.evolve(
            working_directory=working,
            staging_area=_staging_for(ours_files, result.merged_files, ()),
            merge_head=target_hash,
            merge_branch=label,
        )
        new_state = merge_state.commit(
            message or merge_message(label, branch.name), ctx.author, ctx.now()
        )
        logger.info('merge_committed', branch=branch.name, merged=label)
        return new_state, "Merge made by the 'recursive' strategy.\n" + _stat_line(
            ours_files, result.merged_files
        )

    new_state = state.evolve(
        working_directory=working,
        staging_area=_staging_for(ours_files, result.merged_files, result.conflicted_paths),
    ).begin_merge(target_hash, label, result.conflicted_paths)

    logger.info('merge_conflicted', branch=branch.name, merged=label, paths=result.conflicted_paths)
    lines = []
    for conflict in result.conflicts:
        if conflict.kind == 'content' or conflict.kind == 'add/add':
            lines.append(f"Auto-merging {conflict.path}")
            lines.append(f"CONFLICT ({conflict.kind}): Merge conflict in {conflict.path}")
        else:
            deleted_in = 'HEAD' if conflict.ours_content is None else label
            lines.append(
                f"CONFLICT (modify/delete): {conflict.path} deleted in {deleted_in} "
                f"and modified in {label if deleted_in == 'HEAD' else 'HEAD'}."
            )
    lines.append('Automatic merge failed; fix conflicts and then commit the result.')
    return new_state, '\n'.join(lines)


def abort_merge(state: RepositoryState) -> Tuple[RepositoryState, str]:
    """Restore HEAD's tree and leave the merge sub-state."""
    if not state.is_merging():
        raise PreconditionError('fatal: There is no merge to abort (MERGE_HEAD missing).')
    index = state.index_tree()
    working = {path: FileEntry(content) for path, content in state.head_tree().items()}
    for path, entry in state.working_directory.items():
        if path not in index and path not in state.conflicts:
            working.setdefault(path, entry)
    new_state = state.evolve(
        working_directory=working,
        staging_area={},
        merge_head=None,
        merge_branch=None,
        conflicts=(),
    )
    return new_state, ''


def _fast_forward(
    state: RepositoryState,
    branch: str,
    ours_hash: Optional[str],
    target_hash: str,
    result: MergeResult,
) -> Tuple[RepositoryState, str]:
    working, staged, _ = carry_local_changes(state, result.merged_files, 'merge')
    before = state.head_tree()
    new_state = state.set_branch_pointer(branch, target_hash).evolve(
        working_directory=working, staging_area=staged
    )
    start = ours_hash[:7] if ours_hash else '0000000'
    return new_state, (
        f"Updating {start}..{target_hash[:7]}\nFast-forward\n"
        + _stat_line(before, result.merged_files)
    )


def _refuse_staged(state: RepositoryState) -> None:
    if state.staging_area:
        raise PreconditionError(
            'error: Your local changes to the following files would be overwritten by merge:\n'
            + ''.join(f"\t{path}\n" for path in sorted(state.staging_area))
            + 'Please commit your changes or stash them before you merge.\nAborting'
        )


def _staging_for(
    ours_files: Dict[str, str],
    merged_files: Dict[str, str],
    conflicted: Sequence[str],
) -> Dict[str, FileEntry]:
    staged: Dict[str, FileEntry] = {}
    for path in sorted(set(ours_files) | set(merged_files)):
        if path in conflicted:
            continue
        if path not in merged_files:
            staged[path] = FileEntry('', deleted=True)
        elif merged_files[path] != ours_files.get(path):
            staged[path] = FileEntry(merged_files[path])
    return staged


def _stat_line(before: Dict[str, str], after: Dict[str, str]) -> str:
    changed = sum(1 for path in set(before) | set(after) if before.get(path) != after.get(path))
    noun = 'file' if changed == 1 else 'files'
    return f" {changed} {noun} changed"

