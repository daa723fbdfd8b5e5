"""
Integrity digests for documents before and after signing.

Both digests use SHA-256 over the exact byte sequence, so a third party can
recompute either one from stored bytes and compare it with the audit trail.
"""
import hashlib

# Bytes read per chunk when hashing files
FILE_CHUNK_SIZE = 8192


def compute_bytes_hash(data: bytes) -> str:
    """Compute SHA-256 hash of bytes (64-char lowercase hex)."""
    return hashlib.sha256(data).hexdigest()


def compute_file_hash(file_path: str) -> str:
    """
    Compute SHA-256 hash of a file.
    Reads file in chunks for memory efficiency.
    Same digest as compute_bytes_hash() over the file's contents.
    """
    sha256 = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(FILE_CHUNK_SIZE), b""):
            sha256.update(chunk)
    return sha256.hexdigest()
