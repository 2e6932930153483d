"""gitquest - a simulated git engine for learning games."""

__version__ = '0.1.0'

from gitquest.core.state import Branch, Commit, FileEntry, Remote, RepositoryState
from gitquest.commands.engine import Engine, ExecutionResult, ResultCache, execute
from gitquest.commands.context import RemoteHost
from gitquest.validation import ValidationResult, evaluate, validate

__all__ = [
    'RepositoryState',
    'Commit',
    'Branch',
    'Remote',
    'FileEntry',
    'Engine',
    'ExecutionResult',
    'ResultCache',
    'RemoteHost',
    'execute',
    'evaluate',
    'validate',
    'ValidationResult',
]
