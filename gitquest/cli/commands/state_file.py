"""Loading and saving repository states as JSON files."""

import json
from pathlib import Path
from typing import Iterable

import click

from gitquest.cli.output import error
from gitquest.commands.context import RemoteHost
from gitquest.core.errors import GitQuestError
from gitquest.core.state import RepositoryState


def load_state(path: Path) -> RepositoryState:
    """Read a state file, aborting with a readable error if it is unusable."""
    path = Path(path)
    if not path.exists():
        click.echo(error(f"State file not found: {path}"))
        click.echo("Create one with 'gitquest new <file>'", err=True)
        raise click.Abort()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return RepositoryState.from_dict(data)
    except (ValueError, KeyError, TypeError, GitQuestError) as exc:
        click.echo(error(f"Invalid state file {path}: {exc}"))
        raise click.Abort()


def save_state(path: Path, state: RepositoryState) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(state.to_dict(), f, indent=2)
        f.write('\n')


def load_remote_host(entries: Iterable[str]) -> RemoteHost:
    """
    Build a remote host from ``URL=STATE_FILE`` pairs.

    Args:
        entries: Values of repeated ``--remote`` options
    """
    repositories = {}
    for entry in entries:
        url, sep, file_name = entry.partition('=')
        if not sep or not url or not file_name:
            click.echo(error(f"Invalid --remote value '{entry}', expected URL=STATE_FILE"))
            raise click.Abort()
        repositories[url] = load_state(Path(file_name))
    return RemoteHost(repositories)
