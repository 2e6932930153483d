"""Repository state for gitquest.

A ``RepositoryState`` is an immutable value: every mutator validates its
preconditions and returns a brand-new state, leaving the receiver untouched.
Mappings are exposed through read-only proxies and sequences are tuples, so
sharing a state between callers cannot leak changes.
"""

import dataclasses
import re
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from functools import cached_property
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .errors import (
    BranchExistsError,
    BranchNotFoundError,
    InvariantViolationError,
    MergeInProgressError,
    NothingToCommitError,
    PathspecError,
    PreconditionError,
    RemoteError,
    UnknownRevisionError,
)
from .hash import hash_text
from .objects import blob_from_content, tree_from_files

DEFAULT_BRANCH = 'main'
DEFAULT_AUTHOR = 'Chrono-Coder'

_BRANCH_NAME_RE = re.compile(r"^(?!-)(?!.*\.\.)(?!.*//)[A-Za-z0-9._/\-]+(?<![./])$")
_REVISION_SUFFIX_RE = re.compile(r"([~^])(\d*)")
_MIN_ABBREV = 4


@dataclass(frozen=True)
class FileEntry:
    """
    A file in the working directory or staging area.

    ``modified`` marks a working-directory entry that differs from its
    staged/committed counterpart. ``deleted`` only appears in the staging
    area, where it records a staged removal.
    """
    content: str
    modified: bool = False
    deleted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'content': self.content, 'modified': self.modified}
        if self.deleted:
            data['deleted'] = True
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'FileEntry':
        return cls(
            content=data.get('content', ''),
            modified=bool(data.get('modified', False)),
            deleted=bool(data.get('deleted', False)),
        )


FileTree = Mapping[str, FileEntry]


def freeze_files(files: Mapping[str, FileEntry]) -> FileTree:
    """Return a read-only, path-sorted copy of a file mapping."""
    return MappingProxyType({path: files[path] for path in sorted(files)})


def _files_to_dict(files: FileTree) -> Dict[str, Any]:
    return {path: entry.to_dict() for path, entry in files.items()}


def _files_from_dict(data: Optional[Mapping[str, Any]]) -> Dict[str, FileEntry]:
    return {path: FileEntry.from_dict(entry) for path, entry in (data or {}).items()}


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware UTC datetime."""
    if isinstance(value, datetime):
        stamp = value
    else:
        text = str(value)
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        stamp = datetime.fromisoformat(text)
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp.astimezone(timezone.utc)


@dataclass(frozen=True)
class Commit:
    """
    An immutable, hash-identified snapshot.

    A commit captures:
    - Snapshot of every tracked file (``tree``)
    - Parent commit(s) for history: none for a root commit, one for a
      normal commit, two for a merge commit
    - Author, timestamp and message
    """
    hash: str
    message: str
    author: str
    timestamp: datetime
    parent: Optional[str]
    tree: FileTree
    parents: Tuple[str, ...] = ()

    def __post_init__(self):
        snapshot = {
            path: FileEntry(entry.content) for path, entry in self.tree.items()
        }
        object.__setattr__(self, 'tree', freeze_files(snapshot))
        parents = tuple(self.parents)
        if not parents and self.parent:
            parents = (self.parent,)
        object.__setattr__(self, 'parents', parents)
        object.__setattr__(self, 'parent', parents[0] if parents else None)
        object.__setattr__(self, 'timestamp', parse_timestamp(self.timestamp))

    @property
    def is_merge_commit(self) -> bool:
        """Check if this is a merge commit."""
        return len(self.parents) > 1

    def get_parents(self) -> Tuple[str, ...]:
        """Get all parent commit hashes, first parent first."""
        return self.parents

    @property
    def short_hash(self) -> str:
        """First 7 characters of the commit hash."""
        return self.hash[:7]

    @cached_property
    def tree_hash(self) -> str:
        """Hash of the snapshot's root tree."""
        return tree_from_files(self.tree).hash

    def files(self) -> Dict[str, str]:
        """Snapshot as a plain path -> content dict."""
        return {path: entry.content for path, entry in self.tree.items()}

    @classmethod
    def create(
        cls,
        message: str,
        author: str,
        tree: Mapping[str, FileEntry],
        parents: Iterable[str] = (),
        timestamp: Optional[datetime] = None,
    ) -> 'Commit':
        """
        Create a new commit and compute its hash.

        Args:
            message: Commit message
            author: Author name
            tree: Snapshot of files
            parents: Parent commit hashes, first parent first
            timestamp: Commit time (defaults to now, UTC)

        Returns:
            Commit: New commit object
        """
        parents = tuple(parents)
        if timestamp is None:
            timestamp = datetime.now(timezone.utc)
        timestamp = parse_timestamp(timestamp)
        tree_hash = tree_from_files(tree).hash
        parent_info = ','.join(parents) if parents else 'root'

        content = (
            f"commit\n"
            f"tree {tree_hash}\n"
            f"parent {parent_info}\n"
            f"author {author}\n"
            f"date {timestamp.isoformat()}\n"
            f"\n"
            f"{message}"
        )
        return cls(
            hash=hash_text(content),
            message=message,
            author=author,
            timestamp=timestamp,
            parent=parents[0] if parents else None,
            tree=tree,
            parents=parents,
        )

    @property
    def subject(self) -> str:
        """First line of the commit message."""
        return self.message.split('\n', 1)[0]

    def format(self, oneline: bool = False, decoration: str = '') -> str:
        """
        Format commit for display, like ``git log``.

        Args:
            oneline: Short hash and subject only
            decoration: Ref names pointing here, e.g. ``HEAD -> main``
        """
        refs = f" ({decoration})" if decoration else ''
        if oneline:
            return f"{self.short_hash}{refs} {self.subject}"

        lines = [f"commit {self.hash}{refs}"]
        if self.is_merge_commit:
            lines.append('Merge: ' + ' '.join(p[:7] for p in self.parents))
        lines.append(f"Author: {self.author}")
        lines.append(f"Date:   {format_datetime(self.timestamp, usegmt=True)}")
        lines.append('')
        lines.extend(f"    {line}" for line in self.message.split('\n'))
        return '\n'.join(lines) + '\n'

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'hash': self.hash,
            'message': self.message,
            'author': self.author,
            'timestamp': self.timestamp.isoformat(),
            'parent': self.parent,
            'tree': _files_to_dict(self.tree),
        }
        if self.is_merge_commit:
            data['parents'] = list(self.parents)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Commit':
        return cls(
            hash=data['hash'],
            message=data.get('message', ''),
            author=data.get('author', DEFAULT_AUTHOR),
            timestamp=data['timestamp'],
            parent=data.get('parent'),
            tree=_files_from_dict(data.get('tree')),
            parents=tuple(data.get('parents') or ()),
        )


@dataclass(frozen=True)
class Branch:
    """A movable named pointer into the commit DAG."""
    name: str
    commit_hash: str = ''

    @property
    def is_unborn(self) -> bool:
        return not self.commit_hash

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'commitHash': self.commit_hash}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Branch':
        return cls(name=data['name'], commit_hash=data.get('commitHash') or '')


@dataclass(frozen=True)
class Remote:
    """A locally simulated view of another repository's branch pointers."""
    name: str
    url: str
    branches: Tuple[Branch, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'branches', tuple(self.branches))

    def get_branch(self, name: str) -> Optional[Branch]:
        for branch in self.branches:
            if branch.name == name:
                return branch
        return None

    def with_branch(self, name: str, commit_hash: str) -> 'Remote':
        branches = [b for b in self.branches if b.name != name]
        branches.append(Branch(name, commit_hash))
        branches.sort(key=lambda b: b.name)
        return dataclasses.replace(self, branches=tuple(branches))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'url': self.url,
            'branches': [b.to_dict() for b in self.branches],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Remote':
        return cls(
            name=data['name'],
            url=data.get('url', ''),
            branches=tuple(Branch.from_dict(b) for b in data.get('branches') or ()),
        )


def validate_branch_name(name: str) -> None:
    """Raise ``PreconditionError`` unless ``name`` is a legal branch name."""
    if not name or not _BRANCH_NAME_RE.match(name) or name == 'HEAD':
        raise PreconditionError(f"fatal: '{name}' is not a valid branch name.")


@dataclass(frozen=True)
class RepositoryState:
    """
    The full simulated repository.

    ``head`` is a branch name in normal mode; in detached mode it holds a
    commit hash directly. The merge fields are only set while a conflicted
    merge waits to be committed.
    """
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    working_directory: FileTree = field(default_factory=dict)
    staging_area: FileTree = field(default_factory=dict)
    commits: Tuple[Commit, ...] = ()
    branches: Tuple[Branch, ...] = ()
    head: str = DEFAULT_BRANCH
    remotes: Tuple[Remote, ...] = ()
    merge_head: Optional[str] = None
    merge_branch: Optional[str] = None
    conflicts: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'working_directory', freeze_files(self.working_directory))
        object.__setattr__(self, 'staging_area', freeze_files(self.staging_area))
        object.__setattr__(self, 'commits', tuple(self.commits))
        object.__setattr__(self, 'branches', tuple(self.branches))
        object.__setattr__(self, 'remotes', tuple(self.remotes))
        object.__setattr__(self, 'conflicts', tuple(sorted(set(self.conflicts))))

    @classmethod
    def empty(cls, repo_id: Optional[str] = None) -> 'RepositoryState':
        """Create an uninitialised repository (no branches, no commits)."""
        if repo_id is None:
            return cls()
        return cls(id=repo_id)

    # Queries

    @cached_property
    def _commit_index(self) -> Dict[str, Commit]:
        return {commit.hash: commit for commit in self.commits}

    def is_initialized(self) -> bool:
        return bool(self.branches or self.commits)

    def get_commit(self, commit_hash: Optional[str]) -> Optional[Commit]:
        if not commit_hash:
            return None
        return self._commit_index.get(commit_hash)

    def get_branch(self, name: str) -> Optional[Branch]:
        for branch in self.branches:
            if branch.name == name:
                return branch
        return None

    def get_remote(self, name: str) -> Optional[Remote]:
        for remote in self.remotes:
            if remote.name == name:
                return remote
        return None

    def current_branch(self) -> Optional[Branch]:
        """Branch HEAD points at, or None when detached."""
        return self.get_branch(self.head)

    def is_detached(self) -> bool:
        return self.current_branch() is None and self.get_commit(self.head) is not None

    def head_hash(self) -> Optional[str]:
        """Commit hash HEAD resolves to, or None on an unborn branch."""
        branch = self.current_branch()
        if branch is not None:
            return branch.commit_hash or None
        if self.get_commit(self.head) is not None:
            return self.head
        return None

    def head_commit(self) -> Optional[Commit]:
        return self.get_commit(self.head_hash())

    def head_tree(self) -> Dict[str, str]:
        """Files of the HEAD commit as path -> content."""
        commit = self.head_commit()
        return commit.files() if commit else {}

    def index_tree(self) -> Dict[str, str]:
        """Files that the next commit would contain: HEAD plus staged changes."""
        files = self.head_tree()
        for path, entry in self.staging_area.items():
            if entry.deleted:
                files.pop(path, None)
            else:
                files[path] = entry.content
        return dict(sorted(files.items()))

    def working_files(self) -> Dict[str, str]:
        return {path: entry.content for path, entry in self.working_directory.items()}

    def is_merging(self) -> bool:
        return self.merge_head is not None

    def ancestors(self, commit_hash: Optional[str]) -> Set[str]:
        """All commits reachable from ``commit_hash``, including itself."""
        seen: Set[str] = set()
        queue = deque([commit_hash] if commit_hash else [])
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            commit = self.get_commit(current)
            if commit is None:
                continue
            seen.add(current)
            queue.extend(p for p in commit.get_parents() if p not in seen)
        return seen

    def resolve_ref(self, name: str) -> Optional[str]:
        """
        Resolve a revision to a commit hash.

        Understands ``HEAD``, branch names, remote-tracking names such as
        ``origin/main``, full or abbreviated (4+ characters) commit hashes,
        and ``~N`` / ``^N`` suffixes.

        Args:
            name: Revision to resolve

        Returns:
            Commit hash, or None if unknown, ambiguous or unborn
        """
        if not name:
            return None

        base = name
        suffixes: List[Tuple[str, int]] = []
        match = re.search(r"(?:[~^]\d*)+$", name)
        if match and match.start() > 0:
            base = name[:match.start()]
            for op, count in _REVISION_SUFFIX_RE.findall(match.group(0)):
                suffixes.append((op, int(count) if count else 1))

        commit_hash = self._resolve_base(base)
        for op, count in suffixes:
            if commit_hash is None:
                return None
            commit_hash = self._walk(commit_hash, op, count)
        return commit_hash

    def _resolve_base(self, name: str) -> Optional[str]:
        if name in ('HEAD', '@'):
            return self.head_hash()

        branch = self.get_branch(name)
        if branch is not None:
            return branch.commit_hash or None

        remote_name, sep, branch_name = name.partition('/')
        if sep:
            remote = self.get_remote(remote_name)
            if remote is not None:
                tracking = remote.get_branch(branch_name)
                if tracking is not None:
                    return tracking.commit_hash or None

        if name in self._commit_index:
            return name

        if len(name) >= _MIN_ABBREV:
            lowered = name.lower()
            matches = [h for h in self._commit_index if h.startswith(lowered)]
            if len(matches) == 1:
                return matches[0]
        return None

    def _walk(self, commit_hash: str, op: str, count: int) -> Optional[str]:
        commit = self.get_commit(commit_hash)
        if op == '^':
            # ^N selects the Nth parent; ^0 is the commit itself
            if count == 0:
                return commit_hash
            parents = commit.get_parents() if commit else ()
            return parents[count - 1] if len(parents) >= count else None

        for _ in range(count):
            if commit is None or not commit.get_parents():
                return None
            commit = self.get_commit(commit.get_parents()[0])
        return commit.hash if commit else None

    # Mutators

    def evolve(self, **changes: Any) -> 'RepositoryState':
        """
        Return a copy with the given fields replaced.

        Working-directory ``modified`` flags are recomputed against the new
        index, so callers only supply file contents.
        """
        updated = dataclasses.replace(self, **changes)
        return updated._with_modified_flags()

    def _with_modified_flags(self) -> 'RepositoryState':
        index = self.index_tree()
        refreshed = {
            path: FileEntry(entry.content, modified=index.get(path) != entry.content)
            for path, entry in self.working_directory.items()
        }
        staged = {
            path: FileEntry(entry.content, deleted=entry.deleted)
            for path, entry in self.staging_area.items()
        }
        object.__setattr__(self, 'working_directory', freeze_files(refreshed))
        object.__setattr__(self, 'staging_area', freeze_files(staged))
        return self

    def write_file(self, path: str, content: str) -> 'RepositoryState':
        """
        Create or overwrite a file in the working directory.

        Raises:
            PathspecError: A file already sits where a directory of ``path``
                would go, or ``path`` is already a directory
        """
        path = _normalize_path(path)
        blob_from_content(content)
        files = dict(self.working_directory)
        clash = _find_path_clash(path, files)
        if clash is not None:
            raise PathspecError(f"fatal: '{path}' conflicts with existing path '{clash}'")
        files[path] = FileEntry(content)
        return self.evolve(working_directory=files)

    def remove_file(self, path: str) -> 'RepositoryState':
        """Delete a file from the working directory."""
        path = _normalize_path(path)
        if path not in self.working_directory:
            raise PathspecError(f"fatal: pathspec '{path}' did not match any files")
        files = dict(self.working_directory)
        del files[path]
        return self.evolve(working_directory=files)

    def stage_file(self, path: str) -> 'RepositoryState':
        """
        Copy a working-directory file into the staging area.

        A path missing from the working directory but tracked in HEAD is
        staged as a deletion. A conflicted path that is gone everywhere is
        resolved by accepting the deletion. Staging a conflicted file that
        no longer contains markers marks that conflict as resolved.

        Raises:
            PathspecError: If the path is unknown everywhere
        """
        from gitquest.operations.conflicts import has_conflict_markers

        path = _normalize_path(path)
        head_files = self.head_tree()
        staged = dict(self.staging_area)
        conflicts = set(self.conflicts)

        if path in self.working_directory:
            content = self.working_directory[path].content
            if head_files.get(path) == content and path not in conflicts:
                staged.pop(path, None)
            else:
                staged[path] = FileEntry(content)
            if path in conflicts and not has_conflict_markers(content):
                conflicts.discard(path)
                if head_files.get(path) == content:
                    staged[path] = FileEntry(content)
        elif path in head_files:
            staged[path] = FileEntry('', deleted=True)
            conflicts.discard(path)
        elif path in conflicts:
            # deleted on our side and now removed from the working tree too
            staged.pop(path, None)
            conflicts.discard(path)
        elif path in staged:
            del staged[path]
        else:
            raise PathspecError(f"fatal: pathspec '{path}' did not match any files")

        return self.evolve(staging_area=staged, conflicts=tuple(conflicts))

    def stage_all(self) -> 'RepositoryState':
        """Stage every new, modified and deleted file (``git add .``)."""
        state = self
        paths = (
            set(self.working_directory) | set(self.head_tree())
            | set(self.staging_area) | set(self.conflicts)
        )
        index = self.index_tree()
        for path in sorted(paths):
            in_work = path in self.working_directory
            if in_work and index.get(path) == self.working_directory[path].content:
                if path not in self.conflicts:
                    continue
            if not in_work and path not in index and path not in self.conflicts:
                continue
            state = state.stage_file(path)
        return state

    def unstage_file(self, path: str) -> 'RepositoryState':
        """Remove a path from the staging area, keeping the working copy."""
        path = _normalize_path(path)
        if path not in self.staging_area:
            raise PathspecError(f"fatal: pathspec '{path}' did not match any staged files")
        staged = dict(self.staging_area)
        del staged[path]
        return self.evolve(staging_area=staged)

    def discard_working_changes(self, path: str) -> 'RepositoryState':
        """Restore a working-directory file from the index (``checkout -- <path>``)."""
        path = _normalize_path(path)
        index = self.index_tree()
        if path not in index:
            raise PathspecError(
                f"error: pathspec '{path}' did not match any file(s) known to git"
            )
        files = dict(self.working_directory)
        files[path] = FileEntry(index[path])
        return self.evolve(working_directory=files)

    def commit(
        self,
        message: str,
        author: str = DEFAULT_AUTHOR,
        timestamp: Optional[datetime] = None,
    ) -> 'RepositoryState':
        """
        Record the index as a new commit and advance HEAD.

        While a merge is in progress the new commit gets the merge head as
        its second parent, and it is refused until every conflict is staged
        without markers.

        Raises:
            PreconditionError: Empty message
            MergeInProgressError: Unresolved conflicts remain
            NothingToCommitError: Nothing staged outside of a merge
        """
        if not message or not message.strip():
            raise PreconditionError('Aborting commit due to empty commit message.')
        if self.conflicts:
            listing = '\n'.join(f"\t{path}" for path in self.conflicts)
            raise MergeInProgressError(
                'error: Committing is not possible because you have unmerged files.\n'
                f"{listing}\n"
                "hint: Fix them up in the work tree, and then use 'git add <file>'\n"
                'hint: as appropriate to mark resolution and make a commit.'
            )
        if not self.staging_area and not self.is_merging():
            if any(entry.modified for entry in self.working_directory.values()):
                raise NothingToCommitError(
                    'no changes added to commit (use "git add" and/or "git commit -a")'
                )
            raise NothingToCommitError('nothing to commit, working tree clean')

        parents: List[str] = []
        head_hash = self.head_hash()
        if head_hash:
            parents.append(head_hash)
        if self.is_merging() and self.merge_head not in parents:
            parents.append(self.merge_head)

        tree = {path: FileEntry(content) for path, content in self.index_tree().items()}
        new_commit = Commit.create(message, author, tree, parents, timestamp)
        commits = self.commits
        # identical content, parents and time hash to an existing commit
        if self.get_commit(new_commit.hash) is None:
            commits = commits + (new_commit,)

        state = self._move_head_to(new_commit.hash, commits=commits)
        return state.evolve(staging_area={}, merge_head=None, merge_branch=None, conflicts=())

    def _move_head_to(self, commit_hash: str, **changes: Any) -> 'RepositoryState':
        branch = self.current_branch()
        if branch is not None:
            branches = tuple(
                Branch(b.name, commit_hash) if b.name == branch.name else b
                for b in self.branches
            )
            return self.evolve(branches=branches, **changes)
        return self.evolve(head=commit_hash, **changes)

    def move_head(self, commit_hash: str) -> 'RepositoryState':
        """Point the current branch (or detached HEAD) at ``commit_hash``."""
        if self.get_commit(commit_hash) is None:
            raise UnknownRevisionError(f"fatal: bad object {commit_hash}")
        return self._move_head_to(commit_hash)

    def create_branch(self, name: str, start: Optional[str] = None) -> 'RepositoryState':
        """
        Create a branch at ``start`` (defaults to HEAD).

        Raises:
            BranchExistsError: Duplicate branch name
            UnknownRevisionError: Start point does not resolve
        """
        validate_branch_name(name)
        if self.get_branch(name) is not None:
            raise BranchExistsError(f"fatal: A branch named '{name}' already exists.")

        start_ref = start or 'HEAD'
        commit_hash = self.resolve_ref(start_ref)
        if commit_hash is None:
            shown = self.head if start is None and not self.is_detached() else start_ref
            raise UnknownRevisionError(f"fatal: Not a valid object name: '{shown}'.")

        return self.evolve(branches=self.branches + (Branch(name, commit_hash),))

    def delete_branch(self, name: str, force: bool = False) -> 'RepositoryState':
        """
        Delete a branch.

        Raises:
            BranchNotFoundError: Unknown branch
            PreconditionError: Branch is checked out, or unmerged without ``force``
        """
        branch = self.get_branch(name)
        if branch is None:
            raise BranchNotFoundError(f"error: branch '{name}' not found.")
        if name == self.head:
            raise PreconditionError(
                f"error: Cannot delete branch '{name}' checked out"
            )
        if not force and branch.commit_hash:
            if branch.commit_hash not in self.ancestors(self.head_hash()):
                raise PreconditionError(
                    f"error: The branch '{name}' is not fully merged.\n"
                    f"If you are sure you want to delete it, run 'git branch -D {name}'."
                )
        return self.evolve(branches=tuple(b for b in self.branches if b.name != name))

    def set_head(self, ref: str) -> 'RepositoryState':
        """
        Point HEAD at a branch (symbolic) or a commit (detached).

        Only HEAD moves; callers update the working directory.
        """
        if self.get_branch(ref) is not None:
            return self.evolve(head=ref)
        commit_hash = self.resolve_ref(ref)
        if commit_hash is None:
            raise UnknownRevisionError(
                f"error: pathspec '{ref}' did not match any file(s) known to git"
            )
        return self.evolve(head=commit_hash)

    def set_branch_pointer(self, name: str, commit_hash: str) -> 'RepositoryState':
        """Move an existing branch to ``commit_hash`` (empty for unborn)."""
        if self.get_branch(name) is None:
            raise BranchNotFoundError(f"error: branch '{name}' not found.")
        if commit_hash and self.get_commit(commit_hash) is None:
            raise UnknownRevisionError(f"fatal: bad object {commit_hash}")
        branches = tuple(
            Branch(b.name, commit_hash) if b.name == name else b for b in self.branches
        )
        return self.evolve(branches=branches)

    def add_remote(self, name: str, url: str) -> 'RepositoryState':
        validate_branch_name(name)
        if self.get_remote(name) is not None:
            raise RemoteError(f"error: remote {name} already exists.")
        return self.evolve(remotes=self.remotes + (Remote(name, url),))

    def remove_remote(self, name: str) -> 'RepositoryState':
        if self.get_remote(name) is None:
            raise RemoteError(f"error: No such remote: '{name}'")
        return self.evolve(remotes=tuple(r for r in self.remotes if r.name != name))

    def set_remote_branch(self, remote_name: str, branch: str, commit_hash: str) -> 'RepositoryState':
        """Update a remote-tracking pointer such as ``origin/main``."""
        remote = self.get_remote(remote_name)
        if remote is None:
            raise RemoteError(f"fatal: '{remote_name}' does not appear to be a git repository")
        if commit_hash and self.get_commit(commit_hash) is None:
            raise UnknownRevisionError(f"fatal: bad object {commit_hash}")
        remotes = tuple(
            r.with_branch(branch, commit_hash) if r.name == remote_name else r
            for r in self.remotes
        )
        return self.evolve(remotes=remotes)

    def with_commits(self, commits: Iterable[Commit]) -> 'RepositoryState':
        """Append commits that are not already present, keeping order."""
        known = set(self._commit_index)
        extra = []
        for commit in commits:
            if commit.hash not in known:
                known.add(commit.hash)
                extra.append(commit)
        if not extra:
            return self
        return self.evolve(commits=self.commits + tuple(extra))

    def begin_merge(self, merge_head: str, branch: str, conflicts: Iterable[str]) -> 'RepositoryState':
        return self.evolve(merge_head=merge_head, merge_branch=branch, conflicts=tuple(conflicts))

    def clear_merge(self) -> 'RepositoryState':
        return self.evolve(merge_head=None, merge_branch=None, conflicts=())

    # Invariants

    def check_invariants(self) -> None:
        """
        Verify structural invariants.

        Raises:
            InvariantViolationError: On the first broken invariant
        """
        if len(self._commit_index) != len(self.commits):
            raise InvariantViolationError('duplicate commit hashes in history')

        for commit in self.commits:
            for parent in commit.get_parents():
                if parent not in self._commit_index:
                    raise InvariantViolationError(
                        f"commit {commit.short_hash} references missing parent {parent[:7]}"
                    )
            if commit.parent != (commit.parents[0] if commit.parents else None):
                raise InvariantViolationError(
                    f"commit {commit.short_hash} has inconsistent parent links"
                )

        for branch in self.branches:
            if branch.commit_hash and branch.commit_hash not in self._commit_index:
                raise InvariantViolationError(
                    f"branch '{branch.name}' points at missing commit {branch.commit_hash[:7]}"
                )
        if len({b.name for b in self.branches}) != len(self.branches):
            raise InvariantViolationError('duplicate branch names')

        for remote in self.remotes:
            for branch in remote.branches:
                if branch.commit_hash and branch.commit_hash not in self._commit_index:
                    raise InvariantViolationError(
                        f"remote branch '{remote.name}/{branch.name}' points at missing commit"
                    )

        if self.is_initialized():
            if self.get_branch(self.head) is None and self.get_commit(self.head) is None:
                raise InvariantViolationError(f"HEAD references unknown ref '{self.head}'")

        head_files = self.head_tree()
        for path, entry in self.staging_area.items():
            if entry.deleted and path not in head_files:
                raise InvariantViolationError(f"staged deletion of untracked path '{path}'")

        if self.merge_head is None and (self.conflicts or self.merge_branch):
            raise InvariantViolationError('conflicts recorded without a merge in progress')
        if self.merge_head is not None and self.merge_head not in self._commit_index:
            raise InvariantViolationError('merge head references missing commit')

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        data: Dict[str, Any] = {
            'id': self.id,
            'workingDirectory': _files_to_dict(self.working_directory),
            'stagingArea': _files_to_dict(self.staging_area),
            'commits': [commit.to_dict() for commit in self.commits],
            'branches': [branch.to_dict() for branch in self.branches],
            'head': self.head,
            'remotes': [remote.to_dict() for remote in self.remotes],
        }
        if self.is_merging():
            data['mergeHead'] = self.merge_head
            data['mergeBranch'] = self.merge_branch
            data['conflicts'] = list(self.conflicts)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'RepositoryState':
        """Create from a dictionary produced by ``to_dict`` or persisted quest data."""
        state = cls(
            id=data.get('id') or uuid.uuid4().hex,
            working_directory=_files_from_dict(data.get('workingDirectory')),
            staging_area=_files_from_dict(data.get('stagingArea')),
            commits=tuple(Commit.from_dict(c) for c in data.get('commits') or ()),
            branches=tuple(Branch.from_dict(b) for b in data.get('branches') or ()),
            head=data.get('head') or DEFAULT_BRANCH,
            remotes=tuple(Remote.from_dict(r) for r in data.get('remotes') or ()),
            merge_head=data.get('mergeHead'),
            merge_branch=data.get('mergeBranch'),
            conflicts=tuple(data.get('conflicts') or ()),
        )
        return state

    def __repr__(self) -> str:
        return (
            f"RepositoryState(id={self.id}, head={self.head}, "
            f"commits={len(self.commits)}, branches={len(self.branches)})"
        )


def _normalize_path(path: str) -> str:
    cleaned = path.strip()
    while cleaned.startswith('./'):
        cleaned = cleaned[2:]
    if not cleaned or cleaned in ('.', '..') or cleaned.startswith('/'):
        raise PathspecError(f"fatal: invalid path '{path}'")
    return cleaned


def _find_path_clash(path: str, existing: Mapping[str, Any]) -> Optional[str]:
    parts = path.split('/')
    for depth in range(1, len(parts)):
        parent = '/'.join(parts[:depth])
        if parent in existing:
            return parent
    prefix = path + '/'
    return next((other for other in sorted(existing) if other.startswith(prefix)), None)
