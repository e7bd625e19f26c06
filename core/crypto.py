"""
HOLLY Cryptographic Utilities
SHA-256 hashing and hash-prefix proof of work.
"""

import hashlib


# ============================================================================
# HASHING FUNCTIONS
# ============================================================================

def sha256(data: bytes) -> bytes:
    """Single SHA-256 hash."""
    return hashlib.sha256(data).digest()


def sha256_hex(data: bytes) -> str:
    """SHA-256 hash as a lower-case hex string."""
    return hashlib.sha256(data).hexdigest()


# ============================================================================
# PROOF OF WORK
# ============================================================================

def difficulty_to_target(difficulty: int) -> str:
    """
    Convert a difficulty to its hash prefix.

    Args:
        difficulty: Number of leading hex zeros

    Returns:
        Target prefix, e.g. "0000" for difficulty 4
    """
    if difficulty < 0:
        raise ValueError(f"difficulty must be >= 0 (got {difficulty})")
    return '0' * difficulty


def nonce_preimage(header: bytes, nonce: int) -> bytes:
    """Header bytes followed by the decimal nonce."""
    return header + str(nonce).encode('ascii')


def hash_with_nonce(header: bytes, nonce: int) -> str:
    """Block hash for a header/nonce pair."""
    return sha256_hex(nonce_preimage(header, nonce))


def check_proof_of_work(block_hash: str, target: str) -> bool:
    """
    Check if block hash meets the target prefix.

    Args:
        block_hash: Hex block hash
        target: Required hex prefix

    Returns:
        True if hash starts with target
    """
    return block_hash[:len(target)] == target
