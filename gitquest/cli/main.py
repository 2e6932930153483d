"""Main CLI entry point for gitquest."""

import click
from colorama import init

from gitquest import __version__
from gitquest.cli.commands import config_cmd, new_cmd, run_cmd, shell_cmd, validate_cmd, write_cmd
from gitquest.cli.output import BANNER
from gitquest.core.config import get_config
from gitquest.logs import configure_logging

# Initialize colorama for cross-platform colored output
init(autoreset=True)


class GitQuestGroup(click.Group):
    """Custom Group class to display banner before help."""

    def format_help(self, ctx, formatter):
        """Override to add banner before help text."""
        click.echo(BANNER)
        super().format_help(ctx, formatter)


@click.group(cls=GitQuestGroup)
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Log engine events to stderr')
def cli(verbose):
    configure_logging('DEBUG' if verbose else get_config().log_level)


cli.add_command(new_cmd)
cli.add_command(run_cmd)
cli.add_command(write_cmd)
cli.add_command(validate_cmd)
cli.add_command(shell_cmd)
cli.add_command(config_cmd)


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
