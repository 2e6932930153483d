"""Add command - stage file contents."""

from typing import List, Tuple

from gitquest.commands.context import CommandContext
from gitquest.commands.parser import parse_arguments
from gitquest.core.errors import CommandParseError, PathspecError
from gitquest.core.state import RepositoryState


def add_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Stage files for commit.

    ``.``, ``-A`` and ``--all`` stage everything; a directory name stages
    every file below it.
    """
    args = parse_arguments(tokens, switches={'-A', '--all'})
    paths = args.positionals + args.paths
    state = ctx.state

    if args.has('-A', '--all'):
        return state.stage_all(), ''

    if not paths:
        raise CommandParseError(
            "Nothing specified, nothing added.\n"
            "Maybe you wanted to say 'git add .'?"
        )

    for path in paths:
        if path in ('.', '*', ':/'):
            state = state.stage_all()
        else:
            state = _stage_path(state, path)

    return state, ''


def _stage_path(state: RepositoryState, path: str) -> RepositoryState:
    known = set(state.working_directory) | set(state.index_tree()) | set(state.staging_area)
    clean = path[2:] if path.startswith('./') else path
    if clean in known:
        return state.stage_file(path)

    prefix = path.rstrip('/') + '/'
    matches = sorted(p for p in known if p.startswith(prefix))
    if not matches:
        raise PathspecError(f"fatal: pathspec '{path}' did not match any files")

    index = state.index_tree()
    for match in matches:
        in_work = match in state.working_directory
        if in_work and index.get(match) == state.working_directory[match].content:
            if match not in state.conflicts:
                continue
        state = state.stage_file(match)
    return state
