"""CLI commands for gitquest."""

from gitquest.cli.commands.config import config_cmd
from gitquest.cli.commands.new import new_cmd
from gitquest.cli.commands.run import run_cmd
from gitquest.cli.commands.shell import shell_cmd
from gitquest.cli.commands.validate import validate_cmd
from gitquest.cli.commands.write import write_cmd

__all__ = ['new_cmd', 'run_cmd', 'write_cmd', 'validate_cmd', 'shell_cmd', 'config_cmd']
