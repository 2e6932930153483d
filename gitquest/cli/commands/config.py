"""Config command - read and write gitquest settings."""

from pathlib import Path

import click

from gitquest.cli.output import error, success
from gitquest.core.config import Config


@click.group('config')
def config_cmd():
    """Get and set gitquest options (engine.author, engine.default_branch, log.level)."""
    pass


@config_cmd.command('get')
@click.argument('key')
@click.option('--file', 'config_file', type=click.Path(dir_okay=False, path_type=Path),
              default=None, help='Read from this file as well as the global config')
def config_get(key, config_file):
    """
    Print a config value.

    Examples:
        gitquest config get engine.author
    """
    section, option = _split_key(key)
    value = Config(config_file).get(section, option)
    if value is None:
        click.echo(error(f"No value for {key}"))
        raise click.Abort()
    click.echo(value)


@config_cmd.command('set')
@click.argument('key')
@click.argument('value')
@click.option('--file', 'config_file', type=click.Path(dir_okay=False, path_type=Path),
              default=None, help='Config file to write (defaults to ~/.gitquestconfig)')
def config_set(key, value, config_file):
    """
    Set a config value.

    Examples:
        gitquest config set engine.author "Ada"
        gitquest config set log.level DEBUG --file ./gitquest.ini
    """
    section, option = _split_key(key)
    config = Config(config_file or Config.GLOBAL_CONFIG_PATH)
    config.set(section, option, value)
    click.echo(success(f"Set {key} = {value}"))


def _split_key(key: str):
    if '.' not in key:
        click.echo(error(f"Config keys look like section.name, got '{key}'"))
        raise click.Abort()
    section, option = key.split('.', 1)
    return section, option
