"""Hash utilities for gitquest."""

import hashlib


def hash_object(data: bytes) -> str:
    """
    Compute SHA-1 hash of data.
    
    Args:
        data: Bytes to hash
        
    Returns:
        40-character hex string
    """
    return hashlib.sha1(data).hexdigest()


def hash_text(text: str) -> str:
    """
    Compute SHA-1 hash of a UTF-8 encoded string.
    
    Args:
        text: String to hash
        
    Returns:
        40-character hex string
    """
    return hash_object(text.encode('utf-8'))
