"""Conflict marker utilities.

These helpers work on plain text only. The learner (or an automated checker)
uses them to inspect and repair a conflicted file; they know nothing about
how the merge engine produced the markers.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

START_MARKER = '<<<<<<<'
SEPARATOR_MARKER = '======='
END_MARKER = '>>>>>>>'


@dataclass
class ConflictRegion:
    """One ``<<<<<<< ... >>>>>>>`` block, with 0-based line numbers."""
    start_line: int
    separator_line: int
    end_line: int
    current_content: str
    incoming_content: str
    incoming_label: str = ''


@dataclass
class ConflictMarkers:
    """Result of parsing a file for conflict blocks."""
    has_conflicts: bool
    conflicts: List[ConflictRegion]


def format_conflict(current: str, incoming: str, branch: str) -> str:
    """
    Wrap two versions of a region in conflict markers.

    Produces exactly ``<<<<<<< HEAD\\n<current>\\n=======\\n<incoming>\\n>>>>>>> <branch>\\n``.
    A trailing newline on either side is not doubled, and an empty side
    contributes no lines.

    Args:
        current: Content from the current branch (HEAD)
        incoming: Content from the branch being merged
        branch: Name of the branch being merged

    Returns:
        Conflict block text
    """
    parts = [f"{START_MARKER} HEAD\n"]
    if current:
        parts.append(current if current.endswith('\n') else current + '\n')
    parts.append(f"{SEPARATOR_MARKER}\n")
    if incoming:
        parts.append(incoming if incoming.endswith('\n') else incoming + '\n')
    parts.append(f"{END_MARKER} {branch}\n")
    return ''.join(parts)


def has_conflict_markers(content: str) -> bool:
    """
    Detect whether content still carries conflict markers.

    Any line opening with one of the three markers counts, so a block that
    was only partly cleaned up is still reported.
    """
    markers = (START_MARKER, SEPARATOR_MARKER, END_MARKER)
    return any(line.startswith(markers) for line in content.split('\n'))


def _find_region(lines: List[str], start: int) -> Optional[Tuple[int, int]]:
    separator = None
    for j in range(start + 1, len(lines)):
        if lines[j].startswith(SEPARATOR_MARKER):
            separator = j
            break
    if separator is None:
        return None
    for j in range(separator + 1, len(lines)):
        if lines[j].startswith(END_MARKER):
            return separator, j
    return None


def parse_conflicts(content: str) -> ConflictMarkers:
    """
    Parse conflict regions out of content.

    Incomplete blocks (a start marker without separator or end marker) are
    not reported as regions.
    """
    lines = content.split('\n')
    conflicts = []
    i = 0

    while i < len(lines):
        if lines[i].startswith(START_MARKER):
            found = _find_region(lines, i)
            if found is not None:
                separator, end = found
                conflicts.append(ConflictRegion(
                    start_line=i,
                    separator_line=separator,
                    end_line=end,
                    current_content='\n'.join(lines[i + 1:separator]),
                    incoming_content='\n'.join(lines[separator + 1:end]),
                    incoming_label=lines[end][len(END_MARKER):].strip(),
                ))
                i = end + 1
                continue
        i += 1

    return ConflictMarkers(has_conflicts=bool(conflicts), conflicts=conflicts)


def _resolve(content: str, keep_current: bool) -> str:
    lines = content.split('\n')
    result = []
    i = 0

    while i < len(lines):
        if lines[i].startswith(START_MARKER):
            found = _find_region(lines, i)
            if found is not None:
                separator, end = found
                if keep_current:
                    result.extend(lines[i + 1:separator])
                else:
                    result.extend(lines[separator + 1:end])
                i = end + 1
                continue
        result.append(lines[i])
        i += 1

    return '\n'.join(result)


def accept_current(content: str) -> str:
    """Resolve every conflict by keeping the current (HEAD) side."""
    return _resolve(content, keep_current=True)


def accept_incoming(content: str) -> str:
    """Resolve every conflict by keeping the incoming side."""
    return _resolve(content, keep_current=False)


def validate_resolution(content: str) -> Tuple[bool, int]:
    """
    Check that no conflict regions remain.

    Returns:
        Tuple of (is_resolved, remaining_conflicts)
    """
    remaining = len(parse_conflicts(content).conflicts)
    return remaining == 0, remaining
