"""Shell command - interactive session against a state file."""

from pathlib import Path

import click

from gitquest.cli.commands.run import build_engine, echo_result
from gitquest.cli.commands.state_file import load_state, save_state
from gitquest.cli.output import info

EXIT_WORDS = ('exit', 'quit')


@click.command('shell')
@click.argument('state_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--remote', 'remotes', multiple=True, metavar='URL=STATE_FILE',
              help='Make a state file available as a remote repository')
def shell_cmd(state_file, remotes):
    """
    Type git commands interactively; the state is saved after each one.

    Enter 'exit' or press Ctrl+D to leave.
    """
    engine = build_engine(remotes)
    state = load_state(state_file)
    click.echo(info("Type git commands, 'exit' to leave"))

    while True:
        try:
            line = click.prompt('$', prompt_suffix=' ', default='', show_default=False)
        except (EOFError, click.Abort):
            break

        line = line.strip()
        if not line:
            continue
        if line in EXIT_WORDS:
            break

        result = engine.execute(state, line)
        echo_result(result)
        if result.success and result.new_state is not state:
            state = result.new_state
            save_state(state_file, state)

    click.echo()
