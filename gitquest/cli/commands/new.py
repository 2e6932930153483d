"""New command - create an empty repository state file."""

from pathlib import Path

import click

from gitquest.cli.commands.state_file import save_state
from gitquest.cli.output import error, info, success
from gitquest.core.state import RepositoryState


@click.command('new')
@click.argument('state_file', type=click.Path(dir_okay=False, path_type=Path))
@click.option('--force', is_flag=True, help='Overwrite an existing state file')
def new_cmd(state_file, force):
    """
    Create an uninitialised repository state.

    Examples:
        gitquest new quest.json
        gitquest run quest.json git init
    """
    if state_file.exists() and not force:
        click.echo(error(f"{state_file} already exists (use --force to overwrite)"))
        raise click.Abort()

    state = RepositoryState.empty()
    save_state(state_file, state)
    click.echo(success(f"Created empty repository state {state_file}"))
    click.echo(info("Run 'gitquest run <file> git init' to begin"))
