"""Status command - show the working tree status."""

from typing import List, Tuple

from gitquest.commands.context import CommandContext
from gitquest.commands.parser import parse_arguments
from gitquest.core.state import RepositoryState


def status_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """Describe staged, unstaged and untracked changes."""
    args = parse_arguments(tokens, switches={'-s', '--short'})
    state = ctx.state
    changes = collect_changes(state)

    if args.has('-s', '--short'):
        return state, format_short(changes)
    return state, format_long(state, changes)


class StatusChanges:
    """Paths grouped the way ``git status`` reports them."""

    def __init__(self):
        self.staged: List[Tuple[str, str]] = []
        self.unstaged: List[Tuple[str, str]] = []
        self.untracked: List[str] = []
        self.unmerged: List[str] = []

    @property
    def clean(self) -> bool:
        return not (self.staged or self.unstaged or self.untracked or self.unmerged)


def collect_changes(state: RepositoryState) -> StatusChanges:
    """
    Compare HEAD, the index and the working directory.

    Returns:
        StatusChanges with (label, path) pairs for staged and unstaged
        changes, where the label is 'new file', 'modified' or 'deleted'
    """
    changes = StatusChanges()
    head = state.head_tree()
    index = state.index_tree()
    working = state.working_files()
    conflicted = set(state.conflicts)
    changes.unmerged = sorted(conflicted)

    for path in sorted(set(head) | set(index)):
        if path in conflicted or head.get(path) == index.get(path):
            continue
        if path not in head:
            changes.staged.append(('new file', path))
        elif path not in index:
            changes.staged.append(('deleted', path))
        else:
            changes.staged.append(('modified', path))

    for path in sorted(index):
        if path in conflicted:
            continue
        if path not in working:
            changes.unstaged.append(('deleted', path))
        elif working[path] != index[path]:
            changes.unstaged.append(('modified', path))

    changes.untracked = sorted(
        path for path in working if path not in index and path not in conflicted
    )
    return changes


def format_long(state: RepositoryState, changes: StatusChanges) -> str:
    lines: List[str] = []

    branch = state.current_branch()
    if branch is not None:
        lines.append(f"On branch {branch.name}")
    else:
        lines.append(f"HEAD detached at {state.head[:7]}")

    if state.head_commit() is None:
        lines.extend(['', 'No commits yet'])

    if state.is_merging():
        lines.append('')
        if state.conflicts:
            lines.append('You have unmerged paths.')
            lines.append('  (fix conflicts and run "git commit")')
            lines.append('  (use "git merge --abort" to abort the merge)')
        else:
            lines.append('All conflicts fixed but you are still merging.')
            lines.append('  (use "git commit" to conclude merge)')

    if changes.staged:
        lines.extend(['', 'Changes to be committed:'])
        lines.append('  (use "git reset HEAD <file>..." to unstage)')
        for label, path in changes.staged:
            lines.append(f"\t{label + ':':<12}{path}")

    if changes.unmerged:
        lines.extend(['', 'Unmerged paths:'])
        lines.append('  (use "git add <file>..." to mark resolution)')
        for path in changes.unmerged:
            lines.append(f"\tboth modified:   {path}")

    if changes.unstaged:
        lines.extend(['', 'Changes not staged for commit:'])
        lines.append('  (use "git add <file>..." to update what will be committed)')
        lines.append('  (use "git checkout -- <file>..." to discard changes in working directory)')
        for label, path in changes.unstaged:
            lines.append(f"\t{label + ':':<12}{path}")

    if changes.untracked:
        lines.extend(['', 'Untracked files:'])
        lines.append('  (use "git add <file>..." to include in what will be committed)')
        for path in changes.untracked:
            lines.append(f"\t{path}")

    lines.append('')
    if changes.clean and not state.is_merging():
        if state.head_commit() is None:
            lines.append('nothing to commit (create/copy files and use "git add" to track)')
        else:
            lines.append('nothing to commit, working tree clean')
    elif not changes.staged and not changes.unmerged and not state.is_merging():
        if changes.unstaged:
            lines.append('no changes added to commit (use "git add" and/or "git commit -a")')
        else:
            lines.append(
                'nothing added to commit but untracked files present (use "git add" to track)'
            )
    else:
        lines.pop()

    return '\n'.join(lines)


def format_short(changes: StatusChanges) -> str:
    codes = {'new file': 'A', 'modified': 'M', 'deleted': 'D'}
    entries = {}
    for label, path in changes.staged:
        entries[path] = [codes[label], ' ']
    for label, path in changes.unstaged:
        entries.setdefault(path, [' ', ' '])[1] = codes[label]

    lines = [f"UU {path}" for path in changes.unmerged]
    lines.extend(f"{''.join(code)} {path}" for path, code in sorted(entries.items()))
    lines.extend(f"?? {path}" for path in changes.untracked)
    return '\n'.join(lines)
