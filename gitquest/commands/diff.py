"""Diff command - show changes between snapshots."""

from typing import Dict, List, Tuple

from gitquest.commands.context import CommandContext
from gitquest.commands.parser import parse_arguments
from gitquest.core.errors import CommandParseError, UnknownRevisionError
from gitquest.core.state import RepositoryState
from gitquest.operations.diff import DiffEngine, FileDiff


def diff_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Show changes.

    Forms:
        git diff                  working directory vs index
        git diff --staged         index vs HEAD (``--cached`` is an alias)
        git diff <commit>         working directory vs commit
        git diff <a> <b>          commit vs commit
        git diff ... -- <path>    limit output to paths
        git diff --color          colour added and removed lines
    """
    args = parse_arguments(tokens, switches={'--staged', '--cached', '--stat', '--name-only', '--color'})
    state = ctx.state
    engine = DiffEngine(state)
    staged = args.has('--staged', '--cached')

    revisions, paths = _split_revisions(state, args.positionals)
    paths.extend(args.paths)

    if len(revisions) > 2 or (staged and len(revisions) > 1):
        raise CommandParseError('usage: git diff [--staged] [<commit> [<commit>]] [-- <path>...]')

    if len(revisions) == 2:
        diffs = engine.diff_commits(revisions[0], revisions[1])
    elif staged:
        base = _commit_files(state, revisions[0]) if revisions else state.head_tree()
        diffs = engine.diff_trees(base, state.index_tree())
    elif revisions:
        diffs = engine.diff_trees(_commit_files(state, revisions[0]), _tracked_working(state))
    else:
        diffs = engine.diff_working_to_index()

    if paths:
        diffs = [d for d in diffs if any(_matches(d.path, p) for p in paths)]

    if args.has('--name-only'):
        return state, '\n'.join(d.path for d in diffs)
    if args.has('--stat'):
        return state, format_stat(diffs)
    return state, engine.format_diff(diffs, color=args.has('--color'))


def _split_revisions(state: RepositoryState, positionals: List[str]) -> Tuple[List[str], List[str]]:
    revisions: List[str] = []
    paths: List[str] = []
    known = set(state.working_directory) | set(state.index_tree())
    for positional in positionals:
        if paths or positional in known:
            paths.append(positional)
            continue
        if '..' in positional:
            left, _, right = positional.partition('..')
            revisions.extend(_resolve(state, name or 'HEAD') for name in (left, right))
            continue
        revisions.append(_resolve(state, positional))
    return revisions, paths


def _resolve(state: RepositoryState, name: str) -> str:
    commit_hash = state.resolve_ref(name)
    if commit_hash is None:
        raise UnknownRevisionError(
            f"fatal: ambiguous argument '{name}': unknown revision or path not in the working tree."
        )
    return commit_hash


def _commit_files(state: RepositoryState, commit_hash: str) -> Dict[str, str]:
    return state.get_commit(commit_hash).files()


def _tracked_working(state: RepositoryState) -> Dict[str, str]:
    index = state.index_tree()
    return {path: content for path, content in state.working_files().items() if path in index}


def _matches(path: str, pattern: str) -> bool:
    pattern = pattern.rstrip('/')
    return pattern in ('', '.') or path == pattern or path.startswith(pattern + '/')


def format_stat(diffs: List[FileDiff]) -> str:
    """Summarise diffs as `` path | N +-`` lines."""
    if not diffs:
        return ''
    width = max(len(d.path) for d in diffs)
    lines = []
    insertions = deletions = 0
    for d in diffs:
        added = sum(1 for h in d.hunks for line in h.lines if line.startswith('+'))
        removed = sum(1 for h in d.hunks for line in h.lines if line.startswith('-'))
        insertions += added
        deletions += removed
        lines.append(f" {d.path:<{width}} | {added + removed} {'+' * added}{'-' * removed}")
    noun = 'file' if len(diffs) == 1 else 'files'
    lines.append(
        f" {len(diffs)} {noun} changed, {insertions} insertions(+), {deletions} deletions(-)"
    )
    return '\n'.join(lines)
