"""Diff engine for comparing file snapshots."""

from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Dict, List, Optional

from colorama import Fore, Style

from gitquest.core.state import RepositoryState

CONTEXT_LINES = 3


@dataclass
class DiffHunk:
    """Represents a single hunk (continuous block of changes) in a diff."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: List[str] = field(default_factory=list)

    def __str__(self):
        return f"@@ -{self.old_start},{self.old_count} +{self.new_start},{self.new_count} @@"


@dataclass
class FileDiff:
    """Represents the diff for a single file; a None side means absent."""
    path: str
    old_content: Optional[str]
    new_content: Optional[str]
    hunks: List[DiffHunk] = field(default_factory=list)

    @property
    def is_new(self) -> bool:
        return self.old_content is None

    @property
    def is_deleted(self) -> bool:
        return self.new_content is None

    @property
    def is_modified(self) -> bool:
        return not (self.is_new or self.is_deleted)


def compute_hunks(old_lines: List[str], new_lines: List[str], context: int = CONTEXT_LINES) -> List[DiffHunk]:
    """
    Group line changes into unified-diff hunks.

    Starts are 1-based; an empty side starts at the line before it, so a
    new file's hunk reads ``-0,0``.
    """
    matcher = SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    hunks = []
    for group in matcher.get_grouped_opcodes(context):
        if all(tag == 'equal' for tag, _, _, _, _ in group):
            continue
        i1, i2 = group[0][1], group[-1][2]
        j1, j2 = group[0][3], group[-1][4]
        hunk = DiffHunk(
            i1 + 1 if i2 > i1 else i1,
            i2 - i1,
            j1 + 1 if j2 > j1 else j1,
            j2 - j1,
        )
        for tag, a1, a2, b1, b2 in group:
            if tag == 'equal':
                hunk.lines.extend(f" {line}" for line in old_lines[a1:a2])
                continue
            hunk.lines.extend(f"-{line}" for line in old_lines[a1:a2])
            hunk.lines.extend(f"+{line}" for line in new_lines[b1:b2])
        hunks.append(hunk)
    return hunks


class DiffEngine:
    """
    Computes diffs between snapshots of a repository state.

    Supports:
    - Working directory vs index (``git diff``)
    - Index vs HEAD (``git diff --staged``)
    - Commit vs commit
    - Unified diff format output
    """

    def __init__(self, state: RepositoryState):
        self.state = state

    def diff_blobs(self, path: str, old_content: Optional[str], new_content: Optional[str]) -> FileDiff:
        """
        Compute diff between two file contents.

        Args:
            path: File path
            old_content: Old file content (None for new files)
            new_content: New file content (None for deleted files)
        """
        hunks = compute_hunks(
            (old_content or '').splitlines(),
            (new_content or '').splitlines(),
        )
        return FileDiff(path, old_content, new_content, hunks)

    def diff_trees(self, old_files: Dict[str, str], new_files: Dict[str, str]) -> List[FileDiff]:
        """Compute per-file diffs between two path -> content mappings."""
        diffs = []
        for path in sorted(set(old_files) | set(new_files)):
            old_content = old_files.get(path)
            new_content = new_files.get(path)
            if old_content == new_content:
                continue
            diffs.append(self.diff_blobs(path, old_content, new_content))
        return diffs

    def diff_commits(self, old_hash: Optional[str], new_hash: str) -> List[FileDiff]:
        """Diff two commits; ``old_hash`` None means the empty tree."""
        old_commit = self.state.get_commit(old_hash)
        new_commit = self.state.get_commit(new_hash)
        old_files = old_commit.files() if old_commit else {}
        new_files = new_commit.files() if new_commit else {}
        return self.diff_trees(old_files, new_files)

    def diff_working_to_index(self) -> List[FileDiff]:
        """
        Diff tracked working-directory files against the index.

        Untracked files are not shown, as with ``git diff``.
        """
        index = self.state.index_tree()
        working = self.state.working_files()
        tracked = {path: content for path, content in working.items() if path in index}
        return self.diff_trees(index, tracked)

    def diff_index_to_head(self) -> List[FileDiff]:
        """Diff the index against HEAD (staged changes)."""
        return self.diff_trees(self.state.head_tree(), self.state.index_tree())

    def format_diff(self, diffs: List[FileDiff], color: bool = False) -> str:
        """
        Format diffs as unified diff output.

        Args:
            diffs: List of FileDiff objects
            color: Whether to use color output

        Returns:
            Formatted diff string
        """
        output = []

        for diff in diffs:
            output.append(f"diff --git a/{diff.path} b/{diff.path}")
            if diff.is_new:
                output.append('new file mode 100644')
                output.append('--- /dev/null')
                output.append(f"+++ b/{diff.path}")
            elif diff.is_deleted:
                output.append('deleted file mode 100644')
                output.append(f"--- a/{diff.path}")
                output.append('+++ /dev/null')
            else:
                output.append(f"--- a/{diff.path}")
                output.append(f"+++ b/{diff.path}")

            for hunk in diff.hunks:
                if color:
                    output.append(f"{Fore.CYAN}{hunk}{Style.RESET_ALL}")
                else:
                    output.append(str(hunk))

                for line in hunk.lines:
                    if color and line.startswith('+'):
                        output.append(f"{Fore.GREEN}{line}{Style.RESET_ALL}")
                    elif color and line.startswith('-'):
                        output.append(f"{Fore.RED}{line}{Style.RESET_ALL}")
                    else:
                        output.append(line)

        return '\n'.join(output)
