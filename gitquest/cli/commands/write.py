"""Write command - edit files in the simulated working directory."""

from pathlib import Path

import click

from gitquest.cli.commands.state_file import load_state, save_state
from gitquest.cli.output import error, success
from gitquest.core.errors import GitQuestError


@click.command('write')
@click.argument('state_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('path')
@click.option('--content', '-c', default=None, help='New file content (read from stdin if omitted)')
@click.option('--delete', is_flag=True, help='Remove the file instead')
def write_cmd(state_file, path, content, delete):
    """
    Create, overwrite or delete a working-directory file.

    Examples:
        gitquest write quest.json README.md -c "# The Lost Project"
        echo "chapter one" | gitquest write quest.json story.txt
        gitquest write quest.json notes.txt --delete
    """
    state = load_state(state_file)
    try:
        if delete:
            new_state = state.remove_file(path)
        else:
            if content is None:
                content = click.get_text_stream('stdin').read()
            new_state = state.write_file(path, content)
    except GitQuestError as exc:
        click.echo(error(str(exc)))
        raise click.Abort()

    save_state(state_file, new_state)
    action = 'Deleted' if delete else 'Wrote'
    click.echo(success(f"{action} {path}"))
