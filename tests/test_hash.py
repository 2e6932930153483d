"""Hash utilities tests."""

import hashlib

from gitquest.core.hash import hash_object, hash_text


def test_hash_object_empty():
    """Test hashing empty bytes."""
    result = hash_object(b'')
    assert len(result) == 40
    assert result == 'da39a3ee5e6b4b0d3255bfef95601890afd80709'


def test_hash_object_deterministic():
    """Test hash consistency for same input."""
    assert hash_object(b'hello world') == hash_object(b'hello world')


def test_hash_object_different_data():
    """Test different data produces different hashes."""
    assert hash_object(b'hello') != hash_object(b'world')


def test_hash_text_is_sha1_of_utf8():
    text = 'Chrono-Coder écrit'
    assert hash_text(text) == hashlib.sha1(text.encode('utf-8')).hexdigest()
