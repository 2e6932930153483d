"""Git command handlers and the interpreter that dispatches to them."""

from gitquest.commands.add import add_cmd
from gitquest.commands.branch import branch_cmd
from gitquest.commands.checkout import checkout_cmd
from gitquest.commands.commit import commit_cmd
from gitquest.commands.context import CommandContext, RemoteHost
from gitquest.commands.diff import diff_cmd
from gitquest.commands.engine import COMMANDS, Engine, ExecutionResult, ResultCache, execute
from gitquest.commands.init import init_cmd
from gitquest.commands.log import log_cmd
from gitquest.commands.merge import merge_cmd
from gitquest.commands.remote import clone_cmd, fetch_cmd, pull_cmd, push_cmd, remote_cmd
from gitquest.commands.reset import reset_cmd
from gitquest.commands.revert import revert_cmd
from gitquest.commands.status import status_cmd

__all__ = ['Engine', 'ExecutionResult', 'ResultCache', 'execute', 'COMMANDS',
           'CommandContext', 'RemoteHost',
           'init_cmd', 'add_cmd', 'commit_cmd', 'status_cmd', 'log_cmd', 'diff_cmd',
           'branch_cmd', 'checkout_cmd', 'merge_cmd', 'reset_cmd', 'revert_cmd',
           'remote_cmd', 'fetch_cmd', 'push_cmd', 'pull_cmd', 'clone_cmd']
