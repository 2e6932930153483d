"""Object model tests."""

import pytest

from gitquest.core.errors import InvalidContentError
from gitquest.core.hash import hash_object
from gitquest.core.objects import Blob, Tree, blob_from_content, tree_from_files
from gitquest.core.state import FileEntry


class TestBlob:
    """Tests for Blob objects."""

    def test_blob_hash_uses_type_prefix(self):
        blob = Blob(b'Hello, World!\n')
        assert blob.hash == hash_object(b'blob Hello, World!\n')
        assert blob.type == 'blob'

    def test_blob_text(self):
        assert Blob('café'.encode('utf-8')).text == 'café'

    def test_blob_rejects_invalid_utf8(self):
        with pytest.raises(InvalidContentError):
            Blob(b'\xff\xfe\x00')

    def test_blob_from_str_and_bytes_agree(self):
        assert blob_from_content('spell').hash == blob_from_content(b'spell').hash


class TestTree:
    """Tests for Tree objects."""

    def test_entry_order_does_not_change_hash(self):
        first = Tree()
        first.add_entry('b.txt', 'blob', 'b' * 40)
        first.add_entry('a.txt', 'blob', 'a' * 40)

        second = Tree()
        second.add_entry('a.txt', 'blob', 'a' * 40)
        second.add_entry('b.txt', 'blob', 'b' * 40)

        assert first.hash == second.hash

    def test_serialize_format(self):
        tree = Tree()
        tree.add_entry('lib', 'tree', 'c' * 40)
        tree.add_entry('a.txt', 'blob', 'a' * 40)

        assert tree.serialize() == (
            f"100644 blob {'a' * 40}\ta.txt\n"
            f"040000 tree {'c' * 40}\tlib\n"
        ).encode('utf-8')

    def test_add_entry_invalidates_hash(self):
        tree = Tree()
        empty_hash = tree.hash
        tree.add_entry('a.txt', 'blob', 'a' * 40)
        assert tree.hash != empty_hash


class TestTreeFromFiles:
    """Tests for building trees from flat file maps."""

    def test_nested_paths_become_subtrees(self):
        tree = tree_from_files({'src/main.py': 'print()\n', 'README.md': '# hi\n'})

        assert set(tree.entries) == {'src', 'README.md'}
        assert tree.entries['src'].kind == 'tree'
        assert tree.entries['src'].hash == tree_from_files({'main.py': 'print()\n'}).hash

    def test_accepts_file_entries(self):
        plain = tree_from_files({'a.txt': 'one'})
        entries = tree_from_files({'a.txt': FileEntry('one', modified=True)})
        assert plain.hash == entries.hash

    def test_skips_deleted_entries(self):
        tree = tree_from_files({'a.txt': 'one', 'gone.txt': FileEntry('', deleted=True)})
        assert set(tree.entries) == {'a.txt'}

    def test_content_changes_hash(self):
        assert tree_from_files({'a.txt': 'one'}).hash != tree_from_files({'a.txt': 'two'}).hash

    def test_file_and_directory_with_same_name(self):
        with pytest.raises(InvalidContentError, match="'a' cannot be both a file and a directory"):
            tree_from_files({'a': 'x\n', 'a/b': 'y\n'})

    def test_nested_file_and_directory_with_same_name(self):
        with pytest.raises(InvalidContentError):
            tree_from_files({'src/lib': 'x\n', 'src/lib/util.py': 'y\n'})
