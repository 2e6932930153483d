"""Branch command - list, create or delete branches."""

from typing import List, Tuple

from gitquest.commands.context import CommandContext
from gitquest.commands.parser import parse_arguments
from gitquest.core.errors import CommandParseError
from gitquest.core.state import RepositoryState


def branch_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Manage branches.

    Examples:
        git branch                 # List local branches
        git branch -a              # Include remote-tracking branches
        git branch feature         # Create 'feature' at HEAD
        git branch feature abc1234 # Create 'feature' at a commit
        git branch -d feature      # Delete a merged branch
        git branch -D feature      # Force delete
    """
    args = parse_arguments(
        tokens,
        switches={'-d', '-D', '--delete', '-a', '--all', '-r', '--remotes', '-v', '--verbose', '-f', '--force'},
    )
    state = ctx.state
    names = args.positionals

    if args.has('-d', '-D', '--delete'):
        if not names:
            raise CommandParseError('fatal: branch name required')
        force = args.has('-D', '-f', '--force')
        lines = []
        for name in names:
            branch = state.get_branch(name)
            state = state.delete_branch(name, force=force)
            short = branch.commit_hash[:7] if branch.commit_hash else 'nothing'
            lines.append(f"Deleted branch {name} (was {short}).")
        return state, '\n'.join(lines)

    if not names:
        return state, list_branches(
            state,
            local=not args.has('-r', '--remotes'),
            remote=args.has('-a', '--all', '-r', '--remotes'),
            verbose=args.has('-v', '--verbose'),
        )

    if len(names) > 2:
        raise CommandParseError('usage: git branch [<options>] <branch-name> [<start-point>]')

    start = names[1] if len(names) > 1 else None
    return state.create_branch(names[0], start), ''


def list_branches(state: RepositoryState, local: bool = True, remote: bool = False, verbose: bool = False) -> str:
    """Render the branch listing, marking the current branch with ``*``."""
    rows: List[Tuple[str, str, str]] = []

    if local:
        if state.is_detached():
            rows.append(('*', f"(HEAD detached at {state.head[:7]})", state.head))
        for branch in sorted(state.branches, key=lambda b: b.name):
            marker = '*' if branch.name == state.head else ' '
            rows.append((marker, branch.name, branch.commit_hash))

    if remote:
        prefix = 'remotes/' if local else ''
        for r in state.remotes:
            for branch in r.branches:
                rows.append((' ', f"{prefix}{r.name}/{branch.name}", branch.commit_hash))

    if not verbose:
        return '\n'.join(f"{marker} {name}" for marker, name, _ in rows)

    width = max((len(name) for _, name, _ in rows), default=0)
    lines = []
    for marker, name, commit_hash in rows:
        commit = state.get_commit(commit_hash)
        detail = f"{commit.short_hash} {commit.subject}" if commit else ''
        lines.append(f"{marker} {name:<{width}} {detail}".rstrip())
    return '\n'.join(lines)
