"""
HOLLY Core Module
Contains block assembly, proof-of-work search and hashing primitives.
"""

from .block import (
    BlockHeader,
    MiningResult,
    MinedBlock,
    assemble,
    build_reward_tx,
)
from .pow import ParallelMiner, MiningFailed, worker_starts
from .crypto import (
    sha256_hex,
    hash_with_nonce,
    check_proof_of_work,
    difficulty_to_target,
)

__all__ = [
    'BlockHeader',
    'MiningResult',
    'MinedBlock',
    'assemble',
    'build_reward_tx',
    'ParallelMiner',
    'MiningFailed',
    'worker_starts',
    'sha256_hex',
    'hash_with_nonce',
    'check_proof_of_work',
    'difficulty_to_target',
]
