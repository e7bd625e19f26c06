"""
HOLLY Block Assembly
Candidate block headers, reward transactions and mining results.
"""

import json
from typing import List, Dict, Optional, Any, Tuple
from dataclasses import dataclass

from .crypto import difficulty_to_target, hash_with_nonce, check_proof_of_work
import config


def build_reward_tx(miner_address: str, amount: int = config.BLOCK_REWARD) -> Dict[str, Any]:
    """
    Create the reward (coinbase) transaction for an empty block.

    Key order is part of the ledger contract and feeds the header bytes.
    """
    return {
        config.COIN_TICKER: amount,
        'Transmitter': config.REWARD_TRANSMITTER,
        'Target': miner_address,
        'BlockReward': True,
    }


def is_reward_tx(tx: Dict[str, Any]) -> bool:
    """Check if a transaction is a block reward."""
    return isinstance(tx, dict) and tx.get('BlockReward') is True


def canonical_json(obj: Any) -> bytes:
    """Compact JSON, insertion key order, UTF-8."""
    return json.dumps(obj, separators=(',', ':'), ensure_ascii=False).encode('utf-8')


@dataclass(frozen=True)
class BlockHeader:
    """Immutable candidate block header."""

    miner_address: str
    transactions: Tuple[Dict[str, Any], ...]
    difficulty: int

    def __post_init__(self):
        if self.difficulty < 0:
            raise ValueError(f"difficulty must be >= 0 (got {self.difficulty})")

    @property
    def target(self) -> str:
        """Required hash prefix."""
        return difficulty_to_target(self.difficulty)

    def serialize(self) -> bytes:
        """
        Serialize header for hashing.

        Field order: minerAddress, transactions, difficulty. Matches the
        ledger service's JSON.stringify output.
        """
        return canonical_json({
            'minerAddress': self.miner_address,
            'transactions': list(self.transactions),
            'difficulty': self.difficulty,
        })

    def hash_with_nonce(self, nonce: int) -> str:
        return hash_with_nonce(self.serialize(), nonce)


@dataclass(frozen=True)
class MiningResult:
    """Winning nonce and hash from one search worker."""

    nonce: int
    hash: str
    worker_id: int = 0

    def is_valid_for(self, header: BlockHeader) -> bool:
        """Recompute the hash and check it against the header's target."""
        if self.nonce < 0:
            return False
        if header.hash_with_nonce(self.nonce) != self.hash:
            return False
        return check_proof_of_work(self.hash, header.target)


@dataclass
class MinedBlock:
    """A solved block, ready for submission."""

    miner_address: str
    transactions: List[Dict[str, Any]]
    nonce: int
    hash: str
    difficulty: int = config.DIFFICULTY
    worker_id: Optional[int] = None

    @property
    def has_reward(self) -> bool:
        return any(is_reward_tx(tx) for tx in self.transactions)

    def to_payload(self) -> Dict[str, Any]:
        """Body for the ledger's block submission endpoint."""
        return {
            'minerAddress': self.miner_address,
            'transactions': self.transactions,
            'nonce': self.nonce,
            'hash': self.hash,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = self.to_payload()
        data['difficulty'] = self.difficulty
        data['tx_count'] = len(self.transactions)
        return data

    @classmethod
    def from_result(cls, header: BlockHeader, result: MiningResult) -> 'MinedBlock':
        return cls(
            miner_address=header.miner_address,
            transactions=list(header.transactions),
            nonce=result.nonce,
            hash=result.hash,
            difficulty=header.difficulty,
            worker_id=result.worker_id,
        )


def assemble(miner_address: str, transactions: List[Dict[str, Any]], difficulty: int,
             reward: int = config.BLOCK_REWARD) -> BlockHeader:
    """
    Assemble a candidate block header.

    An empty transaction set gets exactly one reward transaction for
    ``miner_address``. The caller's list is never modified.

    Args:
        miner_address: Address credited by the reward
        transactions: Pending transactions
        difficulty: Number of leading hex zeros required

    Returns:
        BlockHeader
    """
    txs = list(transactions or [])
    if not txs:
        txs.append(build_reward_tx(miner_address, reward))
    return BlockHeader(
        miner_address=miner_address,
        transactions=tuple(txs),
        difficulty=difficulty,
    )
