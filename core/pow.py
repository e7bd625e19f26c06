"""
HOLLY Parallel Proof of Work
Fans a nonce search out across worker processes and keeps the first winner.
"""

import queue
import time
import threading
import multiprocessing
import logging
from typing import List, Dict, Any

from .block import BlockHeader, MiningResult, MinedBlock, assemble
import mining_worker
import config

logger = logging.getLogger(__name__)

# found_flag value written when the search is cancelled from outside
CANCELLED = -1

# Seconds between liveness checks while waiting for a result
POLL_SECONDS = 0.1


class MiningFailed(Exception):
    """No worker produced a valid result."""
    pass


def worker_starts(threads: int, stride: int = config.NONCE_STRIDE) -> List[int]:
    """Starting nonce for each worker, increasing with worker index."""
    return [index * stride for index in range(threads)]


class ParallelMiner:
    """
    Parallel nonce search coordinator.

    Starts ``parallel_threads`` worker processes over disjoint starting
    offsets. The first worker to find a hash meeting the target claims a
    shared flag; the others see it and stop. Every worker is joined before
    ``mine()`` returns.
    """

    def __init__(self, cfg: config.MinerConfig, miner_address: str = None):
        self.config = cfg
        self.miner_address = miner_address
        self.join_timeout = config.WORKER_JOIN_TIMEOUT
        self._ctx = multiprocessing.get_context(cfg.start_method)
        self._lock = threading.Lock()
        self._found_flag = None

        # Stats
        self.rounds = 0
        self.last_elapsed = 0.0

    @property
    def starts(self) -> List[int]:
        return worker_starts(self.config.parallel_threads, self.config.nonce_stride)

    def mine(self, transactions: List[Dict[str, Any]], miner_address: str = None) -> MinedBlock:
        """
        Mine a block over the given transactions.

        Args:
            transactions: Pending transactions (empty = reward-only block)
            miner_address: Overrides the address given at construction

        Returns:
            MinedBlock

        Raises:
            MiningFailed: No worker produced a valid result
        """
        address = miner_address or self.miner_address
        if not address:
            raise ValueError("A miner address is required")

        header = assemble(address, transactions, self.config.difficulty, self.config.block_reward)
        if not transactions:
            logger.info("🏅 Adding block reward transaction...")

        result = self.search(header)
        return MinedBlock.from_result(header, result)

    def search(self, header: BlockHeader) -> MiningResult:
        """Run the parallel search for one header."""
        header_bytes = header.serialize()
        target = header.target
        threads = self.config.parallel_threads

        found_flag = self._ctx.Value('i', 0)
        result_queue = self._ctx.Queue()
        workers = [
            self._ctx.Process(
                target=mining_worker.mining_worker,
                args=(index, header_bytes, target, start, found_flag, result_queue,
                      self.config.max_nonces_per_worker),
                name=f"holly-worker-{index}",
                daemon=True,
            )
            for index, start in enumerate(self.starts)
        ]

        logger.info(f"⛏️ Starting parallel Proof of Work ({threads} workers, difficulty {header.difficulty})...")
        logger.debug(f"Worker start nonces: {self.starts}")

        with self._lock:
            self._found_flag = found_flag

        start_time = time.time()
        try:
            for worker in workers:
                worker.start()
            worker_id, nonce, block_hash = self._wait_for_result(workers, found_flag, result_queue)
        finally:
            self._cancel(found_flag)
            self._join(workers)
            with self._lock:
                self._found_flag = None
            result_queue.close()

        self.rounds += 1
        self.last_elapsed = time.time() - start_time

        result = MiningResult(nonce=nonce, hash=block_hash, worker_id=worker_id)
        if not result.is_valid_for(header):
            logger.error(f"❌ Worker #{worker_id} returned an invalid result: nonce={nonce} hash={block_hash}")
            raise MiningFailed(f"Worker #{worker_id} result failed validation")

        searched = max(nonce - self.starts[worker_id], 1) * threads
        hashrate = searched / self.last_elapsed if self.last_elapsed > 0 else 0
        logger.info(f"✅ Block mined successfully with nonce: {nonce}, hash: {block_hash}")
        logger.info(f"   Worker #{worker_id} | Time: {self.last_elapsed:.2f}s | ~{hashrate/1000:.2f} KH/s")
        return result

    def stop(self):
        """Cancel an in-flight search. mine() then raises MiningFailed."""
        with self._lock:
            found_flag = self._found_flag
        if found_flag is not None:
            self._cancel(found_flag)

    def _wait_for_result(self, workers, found_flag, result_queue):
        """Block until a worker publishes a result or all workers are gone."""
        while True:
            try:
                return result_queue.get(timeout=POLL_SECONDS)
            except queue.Empty:
                pass

            if found_flag.value == CANCELLED:
                raise MiningFailed("Search cancelled before a nonce was found")

            if not any(worker.is_alive() for worker in workers):
                # A winner may have exited right after publishing
                try:
                    return result_queue.get(timeout=POLL_SECONDS)
                except queue.Empty:
                    raise MiningFailed(
                        f"Failed to mine block after all {len(workers)} parallel workers"
                    ) from None

    @staticmethod
    def _cancel(found_flag):
        with found_flag.get_lock():
            if found_flag.value == 0:
                found_flag.value = CANCELLED

    def _join(self, workers):
        for worker in workers:
            if worker.pid is None:
                continue
            worker.join(timeout=self.join_timeout)
            if worker.is_alive():
                logger.warning(f"Worker {worker.name} did not stop, terminating")
                worker.terminate()
                worker.join()
