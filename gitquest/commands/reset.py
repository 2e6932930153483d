"""Reset command - move HEAD and reset the index or working tree."""

from typing import Dict, List, Tuple

from gitquest.commands.context import CommandContext
from gitquest.commands.parser import parse_arguments
from gitquest.core.errors import (
    CommandParseError,
    MergeInProgressError,
    PathspecError,
    UnknownRevisionError,
)
from gitquest.core.state import FileEntry, RepositoryState

MODES = ('--soft', '--mixed', '--hard')


def reset_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Reset current HEAD to the specified state.

    Modes:
        --soft: Move HEAD only; index and working tree untouched
        --mixed: Move HEAD and reset the index (default)
        --hard: Move HEAD, reset the index and the working tree

    ``git reset [<commit>] [--] <path>...`` unstages paths instead.
    """
    args = parse_arguments(tokens, switches=set(MODES) | {'-q', '--quiet'})
    state = ctx.state

    modes = [mode for mode in MODES if args.has(mode)]
    if len(modes) > 1:
        raise CommandParseError(
            f"fatal: options '{modes[0]}' and '{modes[1]}' cannot be used together"
        )
    mode = modes[0][2:] if modes else 'mixed'

    revision, paths = _split_arguments(state, args.positionals)
    paths.extend(args.paths)

    if paths:
        if modes and mode != 'mixed':
            raise CommandParseError(f"fatal: Cannot do {mode} reset with paths.")
        return reset_paths(state, revision or 'HEAD', paths)

    target = resolve_target(state, revision or 'HEAD')
    if target is None:
        # ``git reset`` on an unborn branch just empties the index
        return state.evolve(staging_area={}), ''

    if mode == 'soft':
        return soft_reset(state, target), ''
    if mode == 'hard':
        new_state = hard_reset(state, target)
        commit = new_state.head_commit()
        return new_state, f"HEAD is now at {commit.short_hash} {commit.subject}"

    new_state = mixed_reset(state, target)
    return new_state, _unstaged_report(new_state)


def _split_arguments(state: RepositoryState, positionals: List[str]) -> Tuple[str, List[str]]:
    if not positionals:
        return '', []
    first, rest = positionals[0], list(positionals[1:])
    if state.resolve_ref(first) is not None or (first in ('HEAD', '@') and not rest):
        return first, rest
    known = set(state.working_directory) | set(state.index_tree()) | set(state.staging_area)
    if first in known:
        return '', positionals[:]
    if rest:
        raise UnknownRevisionError(
            f"fatal: ambiguous argument '{first}': unknown revision or path not in the working tree."
        )
    raise UnknownRevisionError(
        f"fatal: ambiguous argument '{first}': unknown revision or path not in the working tree.\n"
        "Use '--' to separate paths from revisions, like this:\n"
        "'git <command> [<revision>...] -- [<file>...]'"
    )


def resolve_target(state: RepositoryState, revision: str) -> str:
    """Resolve the reset target; None only for HEAD on an unborn branch."""
    target = state.resolve_ref(revision)
    if target is None and not (revision in ('HEAD', '@') and state.head_hash() is None):
        raise UnknownRevisionError(
            f"fatal: ambiguous argument '{revision}': unknown revision or path not in the working tree."
        )
    return target


def soft_reset(state: RepositoryState, target: str) -> RepositoryState:
    """
    Move HEAD, keeping the previous index as staged changes.

    Existing staged entries are kept byte-identical; differences between
    the old index and the new HEAD tree are staged on top of them.
    """
    if state.is_merging():
        raise MergeInProgressError('fatal: Cannot do a soft reset in the middle of a merge.')

    old_index = state.index_tree()
    target_files = state.get_commit(target).files()
    staged: Dict[str, FileEntry] = {}
    for path in sorted(set(old_index) | set(target_files)):
        if old_index.get(path) == target_files.get(path):
            continue
        if path in old_index:
            staged[path] = FileEntry(old_index[path])
        else:
            staged[path] = FileEntry('', deleted=True)
    for path, entry in state.staging_area.items():
        if entry.deleted and path not in target_files:
            continue
        staged[path] = entry

    return state.move_head(target).evolve(staging_area=staged)


def mixed_reset(state: RepositoryState, target: str) -> RepositoryState:
    """Move HEAD and empty the staging area; the working tree is untouched."""
    return state.move_head(target).evolve(
        staging_area={}, merge_head=None, merge_branch=None, conflicts=()
    )


def hard_reset(state: RepositoryState, target: str) -> RepositoryState:
    """Move HEAD and make the index and working tree match the target tree."""
    files = state.get_commit(target).files()
    working = {path: FileEntry(content) for path, content in files.items()}
    return state.move_head(target).evolve(
        working_directory=working,
        staging_area={},
        merge_head=None,
        merge_branch=None,
        conflicts=(),
    )


def reset_paths(state: RepositoryState, revision: str, paths: List[str]) -> Tuple[RepositoryState, str]:
    """
    Reset index entries for ``paths`` to their content at ``revision``.

    With HEAD this simply unstages the paths (``git reset HEAD <file>``).
    """
    target = resolve_target(state, revision)
    source = state.get_commit(target).files() if target else {}
    head = state.head_tree()
    known = set(state.working_directory) | set(state.index_tree()) | set(head) | set(source)

    staged = dict(state.staging_area)
    for path in paths:
        clean = path[2:] if path.startswith('./') else path
        if clean not in known:
            raise PathspecError(
                f"error: pathspec '{path}' did not match any file(s) known to git"
            )
        if source.get(clean) == head.get(clean):
            staged.pop(clean, None)
        elif clean in source:
            staged[clean] = FileEntry(source[clean])
        else:
            staged[clean] = FileEntry('', deleted=True)

    new_state = state.evolve(staging_area=staged)
    return new_state, _unstaged_report(new_state)


def _unstaged_report(state: RepositoryState) -> str:
    index = state.index_tree()
    lines = []
    for path in sorted(index):
        entry = state.working_directory.get(path)
        if entry is None:
            lines.append(f"D\t{path}")
        elif entry.content != index[path]:
            lines.append(f"M\t{path}")
    if not lines:
        return ''
    return 'Unstaged changes after reset:\n' + '\n'.join(lines)
