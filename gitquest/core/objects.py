"""Content-addressed objects for gitquest.

Blobs and trees are built purely from in-memory content; nothing here
touches the filesystem or keeps a store of its own.
"""

from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional, Union

from .errors import InvalidContentError
from .hash import hash_object

BLOB_MODE = '100644'
TREE_MODE = '040000'


class GitObject(ABC):
    """Base class for all content-addressed objects."""

    def __init__(self):
        self._hash: Optional[str] = None

    @abstractmethod
    def serialize(self) -> bytes:
        """
        Serialize object to bytes.

        Returns:
            bytes: Serialized object data
        """
        pass

    @property
    def type(self) -> str:
        """
        Return object type name.

        Returns:
            str: Object type (blob, tree)
        """
        return self.__class__.__name__.lower()

    def compute_hash(self) -> str:
        """
        Compute and cache object hash.

        Objects are hashed with a fixed type prefix followed by content.
        Format: <type> <content>

        Returns:
            str: 40-character SHA-1 hash
        """
        if self._hash is None:
            header = f"{self.type} ".encode()
            self._hash = hash_object(header + self.serialize())
        return self._hash

    @property
    def hash(self) -> str:
        """
        Get object hash.

        Returns:
            str: 40-character SHA-1 hash
        """
        return self.compute_hash()


class Blob(GitObject):
    """
    Represents file content.

    A blob stores the text content of a file without any metadata
    like filename or permissions. Content must be valid UTF-8.
    """

    def __init__(self, data: bytes = b''):
        """
        Initialize a blob.

        Args:
            data: File content as UTF-8 bytes

        Raises:
            InvalidContentError: If data is not valid UTF-8
        """
        super().__init__()
        try:
            data.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise InvalidContentError(
                f"error: file content is not valid UTF-8 text ({exc.reason})"
            ) from exc
        self.data = data

    @property
    def text(self) -> str:
        """Blob content decoded as text."""
        return self.data.decode('utf-8')

    def serialize(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        """String representation of blob."""
        return f"Blob(hash={self.hash[:7]}, size={len(self.data)})"


class TreeEntry:
    """
    Represents a single entry in a tree.

    Each entry contains:
    - name: Filename or directory name
    - kind: Object type ('blob' or 'tree')
    - hash: SHA-1 hash of the object
    - mode: '100644' for files, '040000' for directories
    """

    def __init__(self, name: str, kind: str, obj_hash: str, mode: str):
        self.name = name
        self.kind = kind
        self.hash = obj_hash
        self.mode = mode

    def __repr__(self) -> str:
        """String representation."""
        return f"TreeEntry({self.mode} {self.kind} {self.hash[:7]} {self.name})"

    def __lt__(self, other: 'TreeEntry') -> bool:
        """Sort entries by name for consistent ordering."""
        return self.name < other.name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TreeEntry):
            return NotImplemented
        return (self.name, self.kind, self.hash, self.mode) == (
            other.name, other.kind, other.hash, other.mode
        )


class Tree(GitObject):
    """
    Represents a directory snapshot.

    A tree maps entry names to blobs (files) and other trees
    (subdirectories). The hash only depends on the sorted entries, so the
    order in which entries were added never changes it.
    """

    def __init__(self):
        """Initialize empty tree."""
        super().__init__()
        self.entries: Dict[str, TreeEntry] = {}

    def add_entry(self, name: str, kind: str, obj_hash: str, mode: Optional[str] = None) -> None:
        """
        Add or replace an entry.

        Args:
            name: Entry name
            kind: Object type ('blob' or 'tree')
            obj_hash: Object hash
            mode: File mode, derived from kind when omitted
        """
        if mode is None:
            mode = TREE_MODE if kind == 'tree' else BLOB_MODE
        self.entries[name] = TreeEntry(name, kind, obj_hash, mode)
        self._hash = None

    def serialize(self) -> bytes:
        """
        Serialize tree entries in canonical order.

        Format per entry: <mode> <kind> <hash>\\t<name>\\n, sorted by name.

        Returns:
            bytes: Serialized tree data
        """
        lines = [
            f"{entry.mode} {entry.kind} {entry.hash}\t{entry.name}\n"
            for entry in sorted(self.entries.values())
        ]
        return ''.join(lines).encode('utf-8')

    def __repr__(self) -> str:
        """String representation."""
        return f"Tree(hash={self.hash[:7]}, entries={len(self.entries)})"


def blob_from_content(content: Union[str, bytes]) -> Blob:
    """
    Create a blob from file content.

    Args:
        content: Text or UTF-8 bytes

    Returns:
        Blob: New blob

    Raises:
        InvalidContentError: If content cannot be represented as UTF-8
    """
    if isinstance(content, str):
        try:
            data = content.encode('utf-8')
        except UnicodeEncodeError as exc:
            raise InvalidContentError(
                f"error: file content is not valid UTF-8 text ({exc.reason})"
            ) from exc
    else:
        data = bytes(content)
    return Blob(data)


def tree_from_files(files: Mapping[str, object]) -> Tree:
    """
    Build a tree from a flat path -> file mapping.

    Values may be plain strings or any object with a ``content`` attribute
    (such as ``FileEntry``). Entries marked ``deleted`` are skipped. Paths
    containing ``/`` become nested subtrees. A name used both as a file and
    as a directory is rejected.

    Args:
        files: Mapping of path to file content or file entry

    Returns:
        Tree: Root tree of the snapshot

    Raises:
        InvalidContentError: If a path is both a file and a directory
    """
    root = Tree()
    subdirs: Dict[str, Dict[str, object]] = {}

    for path in sorted(files):
        value = files[path]
        if getattr(value, 'deleted', False):
            continue
        content = getattr(value, 'content', value)

        head, sep, rest = path.partition('/')
        if sep and rest:
            subdirs.setdefault(head, {})[rest] = content
        else:
            root.add_entry(path, 'blob', blob_from_content(content).hash)

    for name, subfiles in subdirs.items():
        if name in root.entries:
            raise InvalidContentError(f"error: '{name}' cannot be both a file and a directory")
        root.add_entry(name, 'tree', tree_from_files(subfiles).hash)

    return root
