"""Core functionality for gitquest.

This module contains the core data structures:
- Content-addressed objects (Blob, Tree) and hashing
- Repository state (commits, branches, remotes, staging area)
- Configuration management
- Error types

For merge, diff and conflict handling, see gitquest.operations
For the command interpreter, see gitquest.commands
"""

from gitquest.core.config import Config, get_config
from gitquest.core.hash import hash_object, hash_text
from gitquest.core.objects import Blob, GitObject, Tree, TreeEntry, blob_from_content, tree_from_files
from gitquest.core.state import Branch, Commit, FileEntry, Remote, RepositoryState

__all__ = [
    'GitObject',
    'Blob',
    'Tree',
    'TreeEntry',
    'blob_from_content',
    'tree_from_files',
    'Commit',
    'Branch',
    'Remote',
    'FileEntry',
    'RepositoryState',
    'Config',
    'get_config',
    'hash_object',
    'hash_text',
]
