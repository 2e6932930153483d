"""Run command - execute one git command against a state file."""

import shlex
from pathlib import Path

import click

from gitquest.cli.commands.state_file import load_remote_host, load_state, save_state
from gitquest.cli.output import error
from gitquest.commands.engine import Engine, ExecutionResult
from gitquest.core.config import get_config


def build_engine(remotes) -> Engine:
    return Engine.from_config(get_config(), remote_host=load_remote_host(remotes))


def echo_result(result: ExecutionResult) -> None:
    """Print a command's output, or its error in red on stderr."""
    if result.success:
        if result.output:
            click.echo(result.output)
    else:
        click.echo(error(result.error), err=True)


@click.command('run', context_settings={'ignore_unknown_options': True})
@click.argument('state_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('command', nargs=-1, type=click.UNPROCESSED, required=True)
@click.option('--remote', 'remotes', multiple=True, metavar='URL=STATE_FILE',
              help='Make a state file available as a remote repository')
def run_cmd(state_file, command, remotes):
    """
    Execute a git command and save the resulting state.

    Examples:
        gitquest run quest.json git init
        gitquest run quest.json git commit -m "First spell"
        gitquest run quest.json --remote https://example.com/lost.git=lost.json \\
            git clone https://example.com/lost.git
    """
    engine = build_engine(remotes)
    state = load_state(state_file)

    words = list(command)
    if words[0] != 'git':
        words.insert(0, 'git')
    result = engine.execute(state, ' '.join(shlex.quote(word) for word in words))

    echo_result(result)
    if not result.success:
        raise click.Abort()
    save_state(state_file, result.new_state)