#!/usr/bin/env python3
"""
HOLLY Block Submitter
Posts mined blocks to the ledger and retries failed submissions.
"""

import time
import logging
from typing import Any, Callable, Dict, Optional

import config
from core.block import MinedBlock
from ledger import LedgerClient, SubmissionFailure

logger = logging.getLogger(__name__)


class TerminalFailure(Exception):
    """Every submission attempt for a block failed."""

    def __init__(self, attempts: int, last_error: Optional[Exception] = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"All {attempts} retry attempts failed: {last_error}")


class BlockSubmitter:
    """
    Submission & retry controller.

    One primary attempt with the full block, then up to ``max_retries``
    retry attempts separated by a fixed ``retry_delay``. With the default
    ``retry_payload="minimal"`` a retry only sends ``{minerAddress}``.
    ``"full"`` resends the whole block.
    """

    def __init__(self, ledger: LedgerClient, miner_address: str,
                 max_retries: int = config.MAX_RETRIES,
                 retry_delay: float = config.RETRY_DELAY_MS / 1000,
                 retry_payload: str = config.RETRY_PAYLOAD,
                 sleep: Callable[[float], None] = time.sleep):
        if retry_payload not in config.RETRY_PAYLOADS:
            raise ValueError(f"Unknown retry payload: {retry_payload!r}")
        self.ledger = ledger
        self.miner_address = miner_address
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.retry_payload = retry_payload
        self.sleep = sleep

        # Retry attempts made by the last submit_and_retry() call
        self.attempts = 0

    @classmethod
    def from_config(cls, ledger: LedgerClient, miner_address: str, cfg: config.MinerConfig,
                    sleep: Callable[[float], None] = time.sleep) -> 'BlockSubmitter':
        return cls(
            ledger,
            miner_address,
            max_retries=cfg.max_retries,
            retry_delay=cfg.retry_delay,
            retry_payload=cfg.retry_payload,
            sleep=sleep,
        )

    def retry_body(self, block: MinedBlock) -> Dict[str, Any]:
        """Payload sent on retry attempts."""
        if self.retry_payload == 'full':
            return block.to_payload()
        return {'minerAddress': self.miner_address}

    def submit_and_retry(self, block: MinedBlock) -> str:
        """
        Submit a mined block, retrying on failure.

        Returns:
            Block hash confirmed by the ledger

        Raises:
            TerminalFailure: primary attempt and all retries failed
        """
        self.attempts = 0
        try:
            block_hash = self.ledger.submit_block(block.to_payload())
            logger.info(f"✅ Block mined and added to the blockchain. Block hash: {block_hash}")
            return block_hash
        except SubmissionFailure as e:
            logger.error(f"❌ Error mining block: {e}")
            last_error = e

        if self.max_retries > 0:
            logger.info("⏳ Retrying mining...")

        for attempt in range(1, self.max_retries + 1):
            self.attempts = attempt
            logger.info(f"🌀 Retrying mining, attempt #{attempt}...")
            try:
                block_hash = self.ledger.submit_block(self.retry_body(block))
                logger.info(f"✅ Block successfully mined after {attempt} attempts! Block hash: {block_hash}")
                return block_hash
            except SubmissionFailure as e:
                last_error = e
                logger.error(f"❌ Attempt {attempt} failed: {e}")

            if attempt < self.max_retries:
                logger.info(f"⏳ Retrying in {self.retry_delay:g} seconds...")
                self.sleep(self.retry_delay)

        logger.error("🚫 All retry attempts failed. Aborting mining process.")
        raise TerminalFailure(self.attempts, last_error)
