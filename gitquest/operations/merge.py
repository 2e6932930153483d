"""Merge operations for gitquest."""

from collections import deque
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Dict, List, Optional, Tuple

import structlog

from gitquest.core.state import RepositoryState
from gitquest.operations.conflicts import format_conflict

logger = structlog.get_logger()

Hunk = Tuple[int, int, List[str], str]


@dataclass
class MergeConflict:
    """Represents a merge conflict in a file."""
    path: str
    base_content: Optional[str]
    ours_content: Optional[str]
    theirs_content: Optional[str]
    kind: str = 'content'

    def __repr__(self) -> str:
        """String representation."""
        return f"MergeConflict({self.path}, {self.kind})"


@dataclass
class MergeResult:
    """Result of a merge computation."""
    merged_files: Dict[str, str] = field(default_factory=dict)
    conflicts: List[MergeConflict] = field(default_factory=list)
    base_hash: Optional[str] = None
    is_fast_forward: bool = False
    up_to_date: bool = False

    @property
    def success(self) -> bool:
        return not self.conflicts

    @property
    def conflicted_paths(self) -> List[str]:
        return [conflict.path for conflict in self.conflicts]

    def __repr__(self) -> str:
        """String representation."""
        if self.is_fast_forward:
            return "MergeResult(fast-forward, conflicts=0)"
        if self.success:
            return f"MergeResult(success, files={len(self.merged_files)})"
        return f"MergeResult(failed, conflicts={len(self.conflicts)})"


class MergeEngine:
    """
    Merge computations over a repository state.

    Supports:
    - Merge base finding (nearest common ancestor)
    - Fast-forward detection
    - Three-way merges with line-level hunks and conflict markers

    The engine never changes the state it reads; applying a result is the
    interpreter's job.
    """

    def __init__(self, state: RepositoryState):
        """
        Initialize merge engine.

        Args:
            state: Repository state to read commits from
        """
        self.state = state

    def find_merge_base(self, commit1_hash: str, commit2_hash: str) -> Optional[str]:
        """
        Find the common ancestor (merge base) of two commits.

        Among all common ancestors, the one with the smallest summed
        distance to both commits wins; ties go to the most recently
        recorded commit.

        Args:
            commit1_hash: First commit hash
            commit2_hash: Second commit hash

        Returns:
            Hash of merge base commit, or None if no common ancestor
        """
        if commit1_hash == commit2_hash:
            return commit1_hash

        distances1 = self._distances(commit1_hash)
        distances2 = self._distances(commit2_hash)
        common = set(distances1) & set(distances2)
        if not common:
            return None

        order = {commit.hash: i for i, commit in enumerate(self.state.commits)}
        return min(
            common,
            key=lambda h: (distances1[h] + distances2[h], -order.get(h, 0)),
        )

    def _distances(self, commit_hash: str) -> Dict[str, int]:
        """Breadth-first distance from ``commit_hash`` to each of its ancestors."""
        distances: Dict[str, int] = {}
        queue = deque([(commit_hash, 0)])

        while queue:
            current, distance = queue.popleft()
            if current in distances:
                continue
            commit = self.state.get_commit(current)
            if commit is None:
                continue
            distances[current] = distance
            for parent in commit.get_parents():
                if parent not in distances:
                    queue.append((parent, distance + 1))

        return distances

    def can_fast_forward(self, current_hash: Optional[str], target_hash: str) -> bool:
        """
        Check if we can fast-forward from current to target.

        A fast-forward is possible when current is an ancestor of target.
        An unborn branch can always fast-forward.
        """
        if not current_hash:
            return True
        return current_hash in self.state.ancestors(target_hash)

    def is_up_to_date(self, current_hash: Optional[str], target_hash: str) -> bool:
        """True when target is already contained in current's history."""
        return bool(current_hash) and target_hash in self.state.ancestors(current_hash)

    def merge(self, ours_hash: Optional[str], theirs_hash: str, theirs_branch: str) -> MergeResult:
        """
        Compute the merge of ``theirs_hash`` into ``ours_hash``.

        Returns:
            MergeResult flagged up-to-date or fast-forward, or a three-way
            result with merged files and any conflicts
        """
        if self.is_up_to_date(ours_hash, theirs_hash):
            return MergeResult(up_to_date=True)

        if self.can_fast_forward(ours_hash, theirs_hash):
            target = self.state.get_commit(theirs_hash)
            return MergeResult(
                merged_files=target.files() if target else {},
                base_hash=ours_hash,
                is_fast_forward=True,
            )

        base_hash = self.find_merge_base(ours_hash, theirs_hash)
        return self.three_way_merge(base_hash, ours_hash, theirs_hash, theirs_branch)

    def three_way_merge(
        self,
        base_hash: Optional[str],
        ours_hash: str,
        theirs_hash: str,
        theirs_branch: str,
    ) -> MergeResult:
        """
        Perform a three-way merge of two commits.

        Args:
            base_hash: Common ancestor (None for unrelated histories)
            ours_hash: Our current commit hash
            theirs_hash: Their commit hash to merge in
            theirs_branch: Name used in the closing conflict marker

        Returns:
            MergeResult with merged files and any conflicts
        """
        base = self.state.get_commit(base_hash)
        ours = self.state.get_commit(ours_hash)
        theirs = self.state.get_commit(theirs_hash)

        result = merge_trees(
            base.files() if base else {},
            ours.files() if ours else {},
            theirs.files() if theirs else {},
            theirs_branch,
        )
        result.base_hash = base_hash
        logger.debug(
            'three_way_merge',
            base=base_hash[:7] if base_hash else None,
            ours=ours_hash[:7],
            theirs=theirs_hash[:7],
            conflicts=result.conflicted_paths,
        )
        return result


def merge_trees(
    base_files: Dict[str, str],
    ours_files: Dict[str, str],
    theirs_files: Dict[str, str],
    theirs_branch: str,
) -> MergeResult:
    """
    Merge file dictionaries using three-way merge logic.

    Conflicted files are included in ``merged_files`` with their marker
    text, and listed in ``conflicts``.

    Args:
        base_files: Files in base (common ancestor)
        ours_files: Files in our branch
        theirs_files: Files in their branch
        theirs_branch: Name of the branch being merged in

    Returns:
        MergeResult
    """
    merged: Dict[str, str] = {}
    conflicts: List[MergeConflict] = []

    all_paths = set(base_files) | set(ours_files) | set(theirs_files)

    for path in sorted(all_paths):
        base = base_files.get(path)
        ours = ours_files.get(path)
        theirs = theirs_files.get(path)

        # Unchanged in both, or the same change on both sides
        if ours == theirs:
            if ours is not None:
                merged[path] = ours
            continue

        # Only changed in ours
        if base == theirs:
            if ours is not None:
                merged[path] = ours
            continue

        # Only changed in theirs
        if base == ours:
            if theirs is not None:
                merged[path] = theirs
            continue

        if ours is None or theirs is None:
            merged[path] = format_conflict(ours or '', theirs or '', theirs_branch)
            conflicts.append(MergeConflict(path, base, ours, theirs, kind='modify/delete'))
            continue

        content, conflicted = merge_text(base or '', ours, theirs, theirs_branch)
        merged[path] = content
        if conflicted:
            kind = 'add/add' if base is None else 'content'
            conflicts.append(MergeConflict(path, base, ours, theirs, kind=kind))

    return MergeResult(merged_files=merged, conflicts=conflicts)


def _changes(base: List[str], other: List[str], side: str) -> List[Hunk]:
    matcher = SequenceMatcher(None, base, other, autojunk=False)
    return [
        (i1, i2, other[j1:j2], side)
        for tag, i1, i2, j1, j2 in matcher.get_opcodes()
        if tag != 'equal'
    ]


def _apply(base: List[str], start: int, end: int, hunks: List[Hunk]) -> List[str]:
    out: List[str] = []
    position = start
    for i1, i2, lines, _ in hunks:
        out.extend(base[position:i1])
        out.extend(lines)
        position = i2
    out.extend(base[position:end])
    return out


def merge_text(base: str, ours: str, theirs: str, theirs_branch: str) -> Tuple[str, bool]:
    """
    Line-level three-way merge of one file.

    Changes from both sides are grouped into regions of the base; a region
    touched by only one side, or changed identically by both, merges
    cleanly. Any other region becomes a conflict block.

    Returns:
        Tuple of (merged content, whether conflicts were written)
    """
    base_lines = base.splitlines(keepends=True)
    ours_lines = ours.splitlines(keepends=True)
    theirs_lines = theirs.splitlines(keepends=True)

    hunks = sorted(
        _changes(base_lines, ours_lines, 'ours') + _changes(base_lines, theirs_lines, 'theirs'),
        key=lambda h: (h[0], h[1]),
    )

    result: List[str] = []
    conflicted = False
    position = 0
    i = 0

    while i < len(hunks):
        start, end = hunks[i][0], hunks[i][1]
        group = [hunks[i]]
        i += 1
        while i < len(hunks) and (hunks[i][0] < end or hunks[i][0] == start):
            group.append(hunks[i])
            end = max(end, hunks[i][1])
            i += 1

        result.extend(base_lines[position:start])
        position = end

        ours_group = [h for h in group if h[3] == 'ours']
        theirs_group = [h for h in group if h[3] == 'theirs']
        ours_version = _apply(base_lines, start, end, ours_group)
        theirs_version = _apply(base_lines, start, end, theirs_group)

        if not theirs_group or ours_version == theirs_version:
            result.extend(ours_version)
        elif not ours_group:
            result.extend(theirs_version)
        else:
            conflicted = True
            if result and not result[-1].endswith('\n'):
                result[-1] += '\n'
            result.append(format_conflict(
                ''.join(ours_version), ''.join(theirs_version), theirs_branch
            ))

    result.extend(base_lines[position:])
    return ''.join(result), conflicted
