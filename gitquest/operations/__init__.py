"""Operations module for gitquest.

This module contains the algorithms the commands are built on:
- Diff computation
- Merge base finding and three-way merges
- Conflict marker parsing and resolution
"""

from gitquest.operations.conflicts import (
    ConflictMarkers,
    ConflictRegion,
    accept_current,
    accept_incoming,
    format_conflict,
    has_conflict_markers,
    parse_conflicts,
    validate_resolution,
)
from gitquest.operations.diff import DiffEngine, DiffHunk, FileDiff
from gitquest.operations.merge import MergeConflict, MergeEngine, MergeResult, merge_text, merge_trees

__all__ = [
    'DiffEngine', 'FileDiff', 'DiffHunk',
    'MergeEngine', 'MergeResult', 'MergeConflict', 'merge_trees', 'merge_text',
    'ConflictMarkers', 'ConflictRegion', 'format_conflict', 'has_conflict_markers',
    'parse_conflicts', 'accept_current', 'accept_incoming', 'validate_resolution',
]
