#!/usr/bin/env python3
"""
HOLLY Miner
Mine blocks for the HOLLY ledger and submit them to the ledger service.

Usage:
    hollyminer <miner_address>                       Mine every 10 seconds
    hollyminer <miner_address> --difficulty 5        Override difficulty
    hollyminer <miner_address> --rounds 1            Mine a single round
"""

import sys
import time
import logging
import argparse
import threading
from typing import Optional

import config
from core.pow import ParallelMiner, MiningFailed
from ledger import LedgerClient
from submitter import BlockSubmitter, TerminalFailure

logger = logging.getLogger(__name__)


def setup_logging(level: str = config.LOG_LEVEL):
    """Configure console logging."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S'
    )


class MiningSession:
    """
    Drives mining rounds: fetch, mine, submit.

    Rounds never overlap. A round started while another is still mining or
    retrying its submission is skipped.
    """

    def __init__(self, miner_address: str, cfg: config.MinerConfig = None,
                 ledger: LedgerClient = None, miner: ParallelMiner = None,
                 submitter: BlockSubmitter = None):
        self.miner_address = miner_address
        self.config = cfg or config.MinerConfig()
        self.ledger = ledger or LedgerClient.from_config(self.config)
        self.miner = miner or ParallelMiner(self.config, miner_address)
        self.submitter = submitter or BlockSubmitter.from_config(self.ledger, miner_address, self.config)

        self._round_lock = threading.Lock()
        self._stop = threading.Event()

        # Stats
        self.rounds = 0
        self.blocks_accepted = 0
        self.failures = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    def run_round(self) -> Optional[str]:
        """
        Run one mining round.

        Returns:
            Confirmed block hash, or None if the round was skipped or abandoned
        """
        if not self._round_lock.acquire(blocking=False):
            self.skipped += 1
            logger.warning("⏭️ Previous mining round still in progress, skipping this one")
            return None

        try:
            self.rounds += 1
            logger.info("🚀 Starting the mining process...")

            transactions = self.ledger.fetch_pending_transactions()
            if transactions:
                logger.info(f"💡 Mining block with {len(transactions)} pending transactions...")
            else:
                logger.info("🛑 No pending transactions to mine. Mining an empty block with block reward...")

            logger.info("⛏️ Requesting to mine a new block...")
            try:
                block = self.miner.mine(transactions, self.miner_address)
            except MiningFailed as e:
                self.failures += 1
                logger.error(f"❌ Mining failed: {e}")
                return None

            try:
                block_hash = self.submitter.submit_and_retry(block)
            except TerminalFailure as e:
                self.failures += 1
                logger.error(f"🚫 Round abandoned: {e}")
                return None

            self.blocks_accepted += 1
            logger.info("✅ Mining process complete. Block successfully mined!")
            return block_hash
        finally:
            self._round_lock.release()

    def run_forever(self, max_rounds: Optional[int] = None):
        """
        Mine every ``poll_interval`` seconds until stopped.

        The next round starts only after the previous one (including any
        submission retries) has finished. Ticks missed while a round overran
        the interval are dropped.
        """
        interval = self.config.poll_interval
        completed = 0

        while self.running:
            started = time.monotonic()
            try:
                self.run_round()
            except Exception as e:
                self.failures += 1
                logger.exception(f"⚠ Mining round error: {e}")

            completed += 1
            if max_rounds is not None and completed >= max_rounds:
                break

            remaining = interval - (time.monotonic() - started)
            if remaining > 0:
                self._stop.wait(remaining)

    def stop(self):
        """Stop the loop and cancel any search in progress."""
        self._stop.set()
        self.miner.stop()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='HOLLY Miner',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('address', help='Miner address credited with block rewards')
    parser.add_argument('--config', '-c', help='Config file (default: ~/.hollyminer/hollyminer.conf)')
    parser.add_argument('--url', '-u', dest='ledger_url', help=f'Ledger service URL (default: {config.LEDGER_URL})')
    parser.add_argument('--difficulty', '-d', type=int, help=f'Leading hex zeros (default: {config.DIFFICULTY})')
    parser.add_argument('--threads', '-t', type=int, dest='parallel_threads',
                        help=f'Parallel search workers (default: {config.PARALLEL_THREADS})')
    parser.add_argument('--interval', type=int, dest='poll_interval_ms',
                        help=f'Milliseconds between rounds (default: {config.POLL_INTERVAL_MS})')
    parser.add_argument('--retries', type=int, dest='max_retries',
                        help=f'Submission retries (default: {config.MAX_RETRIES})')
    parser.add_argument('--retry-delay', type=int, dest='retry_delay_ms',
                        help=f'Milliseconds between retries (default: {config.RETRY_DELAY_MS})')
    parser.add_argument('--retry-payload', choices=config.RETRY_PAYLOADS,
                        help='What a retry resends (default: minimal)')
    parser.add_argument('--rounds', '-r', type=int, help='Number of rounds to run (default: forever)')
    parser.add_argument('--verbose', '-v', action='store_const', const='DEBUG', dest='log_level',
                        help='Debug logging')
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = config.load_config(
            args.config,
            ledger_url=args.ledger_url,
            difficulty=args.difficulty,
            parallel_threads=args.parallel_threads,
            poll_interval_ms=args.poll_interval_ms,
            max_retries=args.max_retries,
            retry_delay_ms=args.retry_delay_ms,
            retry_payload=args.retry_payload,
            log_level=args.log_level,
        )
    except ValueError as e:
        parser.error(str(e))

    setup_logging(cfg.log_level)

    logger.info(f"Mining Address: {args.address}")
    logger.info(f"Ledger: {cfg.ledger_url} | Difficulty: {cfg.difficulty} | Workers: {cfg.parallel_threads}")

    session = MiningSession(args.address, cfg)
    try:
        session.run_forever(max_rounds=args.rounds or None)
    except KeyboardInterrupt:
        logger.info("Mining stopped!")
        session.stop()
    finally:
        session.ledger.close()

    logger.info(f"📊 Rounds: {session.rounds} | Blocks accepted: {session.blocks_accepted} | Failures: {session.failures}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
