"""
Tests for HOLLY crypto utilities.
"""

import pytest
import sys
import os
import hashlib

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.crypto import (
    sha256,
    sha256_hex,
    difficulty_to_target,
    nonce_preimage,
    hash_with_nonce,
    check_proof_of_work,
)


class TestHashing:
    """Test hashing functions."""

    def test_sha256(self):
        """Test SHA-256 hashing."""
        result = sha256(b"HOLLY")

        assert isinstance(result, bytes)
        assert len(result) == 32

    def test_sha256_hex(self):
        result = sha256_hex(b"HOLLY")

        assert len(result) == 64
        assert result == result.lower()
        assert bytes.fromhex(result) == sha256(b"HOLLY")

    def test_known_vector(self):
        assert sha256_hex(b"abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_hash_consistency(self):
        """Test that hashing is deterministic."""
        assert sha256_hex(b"test data") == sha256_hex(b"test data")
        assert sha256_hex(b"test data") != sha256_hex(b"test datb")


class TestNonceHashing:
    """Test header/nonce hashing."""

    def test_preimage_is_decimal_nonce(self):
        assert nonce_preimage(b'{"a":1}', 42) == b'{"a":1}42'
        assert nonce_preimage(b'', 0) == b'0'

    def test_hash_with_nonce(self):
        header = b'{"minerAddress":"abc123"}'
        expected = hashlib.sha256(header + b"1000001").hexdigest()

        assert hash_with_nonce(header, 1_000_001) == expected

    def test_nonce_changes_hash(self):
        header = b"header"
        assert hash_with_nonce(header, 1) != hash_with_nonce(header, 2)


class TestProofOfWork:
    """Test prefix difficulty."""

    @pytest.mark.parametrize("difficulty,target", [(0, ""), (1, "0"), (4, "0000")])
    def test_target(self, difficulty, target):
        assert difficulty_to_target(difficulty) == target

    def test_negative_difficulty(self):
        with pytest.raises(ValueError):
            difficulty_to_target(-1)

    def test_check(self):
        assert check_proof_of_work("000abc", "000")
        assert not check_proof_of_work("00abc0", "000")
        assert check_proof_of_work("f" * 64, "")

    def test_target_longer_than_hash(self):
        assert not check_proof_of_work("00", "000")
