"""Init command - create an empty repository."""

from typing import List, Tuple

from gitquest.commands.context import CommandContext
from gitquest.commands.parser import parse_arguments
from gitquest.core.errors import CommandParseError
from gitquest.core.state import Branch, RepositoryState, validate_branch_name


def init_cmd(ctx: CommandContext, tokens: List[str]) -> Tuple[RepositoryState, str]:
    """
    Initialize a repository with one unborn branch.

    Running it again on an initialised state changes nothing.
    """
    args = parse_arguments(tokens, switches={'-q', '--quiet'}, options={'-b', '--initial-branch'})
    if args.positionals or args.paths:
        raise CommandParseError('usage: git init [-q] [-b <branch-name>]')

    state = ctx.state
    if state.is_initialized():
        return state, 'Reinitialized existing Git repository in .git/'

    branch = args.value('-b', '--initial-branch') or ctx.default_branch
    validate_branch_name(branch)
    new_state = state.evolve(branches=(Branch(branch, ''),), head=branch)

    if args.has('-q', '--quiet'):
        return new_state, ''
    return new_state, 'Initialized empty Git repository in .git/'
