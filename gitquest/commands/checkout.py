"""Checkout command - switch branches or restore working tree files."""

from typing import Dict, List, Optional, Set, Tuple

from gitquest.commands.context import CommandContext
from gitquest.commands.parser import parse_arguments
from gitquest.core.errors import (
    BranchExistsError,
    CheckoutConflictError,
    CommandParseError,
    MergeInProgressError,
    PathspecError,
    UnknownRevisionError,
)
from gitquest.core.state import Branch, FileEntry, RepositoryState, validate_branch_name


def checkout_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Switch branches or restore files.

    Examples:
        git checkout feature        # Switch to branch
        git checkout -b feature     # Create and switch
        git checkout abc1234        # Detached HEAD at a commit
        git checkout -- story.txt   # Discard working changes
        git checkout main -- a.txt  # Restore a file from a revision
    """
    args = parse_arguments(tokens, switches={'-b', '-B', '-f', '--force'})
    state = ctx.state

    if args.separator:
        if len(args.positionals) > 1:
            raise CommandParseError('usage: git checkout [<tree-ish>] -- <pathspec>...')
        source = args.positionals[0] if args.positionals else None
        return restore_paths(state, args.paths, source)

    if not args.positionals:
        raise CommandParseError(
            'You must specify a branch name or commit hash.\n'
            'Usage: git checkout <branch> or git checkout -b <new-branch>'
        )

    if state.conflicts:
        raise MergeInProgressError(
            'error: you need to resolve your current index first\n'
            + '\n'.join(f"{path}: needs merge" for path in state.conflicts)
        )
    if state.is_merging():
        raise MergeInProgressError(
            "error: You are in the middle of a merge. "
            "Finish it with 'git commit' or abort it with 'git merge --abort'."
        )

    force = args.has('-f', '--force')

    if args.has('-b', '-B'):
        if len(args.positionals) > 2:
            raise CommandParseError('usage: git checkout -b <new-branch> [<start-point>]')
        name = args.positionals[0]
        start = args.positionals[1] if len(args.positionals) > 1 else None
        return create_and_switch(state, name, start, reset=args.has('-B'), force=force)

    if len(args.positionals) > 1:
        # ``git checkout a.txt b.txt`` restores several files
        return restore_paths(state, args.positionals, None)

    target = args.positionals[0]
    return checkout_target(state, target, force=force)


def checkout_target(state: RepositoryState, target: str, force: bool = False) -> Tuple[RepositoryState, str]:
    branch = state.get_branch(target)
    if branch is not None:
        if target == state.head:
            return state, f"Already on '{target}'"
        new_state, carried = switch_to(state, target, branch.commit_hash or None, force)
        return new_state, _carried_lines(state, carried) + f"Switched to branch '{target}'"

    commit_hash = state.resolve_ref(target)
    if commit_hash is not None:
        new_state, carried = switch_to(state, commit_hash, commit_hash, force)
        commit = new_state.get_commit(commit_hash)
        return new_state, _carried_lines(state, carried) + (
            f"Note: switching to '{target}'.\n"
            '\n'
            "You are in 'detached HEAD' state. You can look around, make experimental\n"
            'changes and commit them, and you can discard any commits you make in this\n'
            'state without impacting any branches by switching back to a branch.\n'
            '\n'
            f"HEAD is now at {commit.short_hash} {commit.subject}"
        )

    if target in state.working_directory or target in state.index_tree():
        return restore_paths(state, [target], None)

    tracking = _find_tracking(state, target)
    if tracking is not None:
        remote_name, commit_hash = tracking
        new_state = state.evolve(branches=state.branches + (Branch(target, commit_hash),))
        new_state, carried = switch_to(new_state, target, commit_hash, force)
        return new_state, _carried_lines(state, carried) + (
            f"branch '{target}' set up to track '{remote_name}/{target}'.\n"
            f"Switched to a new branch '{target}'"
        )

    raise UnknownRevisionError(
        f"error: pathspec '{target}' did not match any file(s) known to git"
    )


def create_and_switch(
    state: RepositoryState,
    name: str,
    start: Optional[str] = None,
    reset: bool = False,
    force: bool = False,
) -> Tuple[RepositoryState, str]:
    """``checkout -b``: create a branch and switch to it in one step."""
    validate_branch_name(name)

    if reset and state.get_branch(name) is not None:
        if name == state.head:
            raise CheckoutConflictError('fatal: cannot force update the current branch.')
        state = state.evolve(branches=tuple(b for b in state.branches if b.name != name))

    if start is None and state.head_hash() is None:
        # On an unborn branch the new branch is unborn too
        if state.get_branch(name) is not None:
            raise BranchExistsError(f"fatal: A branch named '{name}' already exists.")
        new_state = state.evolve(
            branches=tuple(b for b in state.branches if b.name != state.head) + (Branch(name, ''),),
            head=name,
        )
        return new_state, f"Switched to a new branch '{name}'"

    state = state.create_branch(name, start)
    target_hash = state.get_branch(name).commit_hash
    new_state, carried = switch_to(state, name, target_hash, force)
    return new_state, _carried_lines(state, carried) + f"Switched to a new branch '{name}'"


def switch_to(
    state: RepositoryState,
    new_head: str,
    target_hash: Optional[str],
    force: bool = False,
) -> Tuple[RepositoryState, List[str]]:
    """
    Point HEAD at ``new_head`` and update the working directory.

    Local changes (staged, unstaged and untracked) are carried over when
    the path is identical in the current and target trees; otherwise the
    switch is refused. ``force`` discards local changes instead.

    Returns:
        Tuple of (new state, sorted list of carried-over paths)

    Raises:
        CheckoutConflictError: A local change would be overwritten
    """
    target_commit = state.get_commit(target_hash)
    target_files = target_commit.files() if target_commit else {}

    if force:
        working = {path: FileEntry(content) for path, content in target_files.items()}
        new_state = state.evolve(head=new_head, working_directory=working, staging_area={})
        return new_state, []

    working, staged, carried = carry_local_changes(state, target_files, 'checkout')
    new_state = state.evolve(head=new_head, working_directory=working, staging_area=staged)
    return new_state, carried


def carry_local_changes(
    state: RepositoryState,
    target_files: Dict[str, str],
    operation: str,
) -> Tuple[Dict[str, FileEntry], Dict[str, FileEntry], List[str]]:
    """
    Compute the working directory and staging area after moving to a tree.

    Args:
        state: Current state
        target_files: Files of the tree being moved to
        operation: Command name used in the refusal message

    Returns:
        Tuple of (working directory, staging area, carried-over paths)

    Raises:
        CheckoutConflictError: A locally changed path differs between the
            current and target trees
    """
    current = state.head_tree()
    index = state.index_tree()
    working = state.working_files()

    changed = local_changes(state)
    blocking = []
    for path in sorted(changed):
        if current.get(path) == target_files.get(path):
            continue
        # The local change already matches the target
        if working.get(path) == target_files.get(path) and index.get(path) in (
            current.get(path), target_files.get(path)
        ):
            continue
        blocking.append(path)

    if blocking:
        untracked = [p for p in blocking if p not in index and p not in current]
        tracked = [p for p in blocking if p not in untracked]
        messages = []
        if tracked:
            messages.append(
                f"error: Your local changes to the following files would be overwritten by {operation}:\n"
                + ''.join(f"\t{p}\n" for p in tracked)
                + f"Please commit your changes or stash them before you {_verb(operation)}."
            )
        if untracked:
            messages.append(
                f"error: The following untracked working tree files would be overwritten by {operation}:\n"
                + ''.join(f"\t{p}\n" for p in untracked)
                + f"Please move or remove them before you {_verb(operation)}."
            )
        raise CheckoutConflictError('\n'.join(messages) + '\nAborting')

    new_working = {path: FileEntry(content) for path, content in target_files.items()}
    carried = []
    for path in sorted(changed):
        if current.get(path) != target_files.get(path):
            continue
        carried.append(path)
        if path in working:
            new_working[path] = FileEntry(working[path])
        else:
            new_working.pop(path, None)

    staged = {}
    for path, entry in state.staging_area.items():
        if entry.deleted:
            if path in target_files:
                staged[path] = entry
        elif target_files.get(path) != entry.content:
            staged[path] = entry

    return new_working, staged, carried


def local_changes(state: RepositoryState) -> Set[str]:
    """Paths whose index or working copy differs from HEAD or the index."""
    current = state.head_tree()
    index = state.index_tree()
    working = state.working_files()

    changed = {p for p in set(current) | set(index) if current.get(p) != index.get(p)}
    changed |= {p for p in set(index) | set(working) if index.get(p) != working.get(p)}
    return changed


def restore_paths(
    state: RepositoryState,
    paths: List[str],
    source: Optional[str],
) -> Tuple[RepositoryState, str]:
    """
    Overwrite working files from the index, or from ``source`` when given.

    Restoring from a revision also stages the restored content.
    """
    if not paths:
        raise CommandParseError('usage: git checkout [<tree-ish>] -- <pathspec>...')

    if source is None:
        for path in paths:
            state = state.discard_working_changes(path)
        return state, f"Updated {len(paths)} path{'s' if len(paths) != 1 else ''} from the index"

    commit_hash = state.resolve_ref(source)
    if commit_hash is None:
        raise UnknownRevisionError(
            f"fatal: invalid reference: {source}"
        )
    files = state.get_commit(commit_hash).files()
    working = dict(state.working_directory)
    for path in paths:
        if path not in files:
            raise PathspecError(
                f"error: pathspec '{path}' did not match any file(s) known to git"
            )
        working[path] = FileEntry(files[path])
    state = state.evolve(working_directory=working)
    for path in paths:
        state = state.stage_file(path)
    return state, f"Updated {len(paths)} path{'s' if len(paths) != 1 else ''} from {commit_hash[:7]}"


def _find_tracking(state: RepositoryState, name: str) -> Optional[Tuple[str, str]]:
    matches = []
    for remote in state.remotes:
        branch = remote.get_branch(name)
        if branch is not None and branch.commit_hash:
            matches.append((remote.name, branch.commit_hash))
    return matches[0] if len(matches) == 1 else None


def _carried_lines(state: RepositoryState, paths: List[str]) -> str:
    head = state.head_tree()
    lines = []
    for path in paths:
        if path not in state.working_directory:
            code = 'D'
        elif path not in head:
            code = 'A'
        else:
            code = 'M'
        lines.append(f"{code}\t{path}\n")
    return ''.join(lines)


def _verb(operation: str) -> str:
    return 'switch branches' if operation == 'checkout' else operation
