#!/usr/bin/env python3
"""
HOLLY Miner - Mining Worker Module
This module contains the worker function that can be pickled for multiprocessing.
"""

import hashlib
import logging
from typing import Callable, Optional

from core.block import MiningResult

logger = logging.getLogger(__name__)

# Hashes between progress log lines
PROGRESS_INTERVAL = 500_000


def search(header: bytes, target: str, start_nonce: int,
           should_stop: Optional[Callable[[], bool]] = None,
           max_nonces: Optional[int] = None, worker_id: int = 0) -> Optional[MiningResult]:
    """
    Sequential nonce search.

    Increments the nonce before each trial, so the first nonce hashed is
    ``start_nonce + 1``.

    Args:
        header: Serialized block header
        target: Required hex prefix
        start_nonce: Counter starting value
        should_stop: Polled every iteration; returning True abandons the search
        max_nonces: Give up after this many trials (None = unbounded)
        worker_id: Recorded on the result

    Returns:
        MiningResult, or None if stopped or exhausted
    """
    prefix_len = len(target)
    nonce = start_nonce
    count = 0

    while should_stop is None or not should_stop():
        if max_nonces is not None and count >= max_nonces:
            logger.debug(f"Worker #{worker_id} exhausted {count:,} nonces from {start_nonce:,}")
            return None

        nonce += 1
        count += 1
        block_hash = hashlib.sha256(header + str(nonce).encode('ascii')).hexdigest()

        if block_hash[:prefix_len] == target:
            return MiningResult(nonce=nonce, hash=block_hash, worker_id=worker_id)

        if count % PROGRESS_INTERVAL == 0:
            logger.debug(f"Worker #{worker_id}: {count:,} hashes (nonce {nonce:,})")

    return None


def mining_worker(worker_id, header, target, start_nonce, found_flag, result_queue, max_nonces=None):
    """
    Worker process for mining.
    Must be at module level for Windows multiprocessing compatibility.

    ``found_flag`` is a shared int: 0 while searching, ``winner + 1`` once a
    worker has claimed the round, -1 when cancelled by the coordinator. Only
    the worker that flips it from 0 may publish a result.
    """
    result = search(
        header,
        target,
        start_nonce,
        should_stop=lambda: found_flag.value != 0,
        max_nonces=max_nonces,
        worker_id=worker_id,
    )
    if result is None:
        return

    with found_flag.get_lock():
        if found_flag.value != 0:
            return
        found_flag.value = worker_id + 1

    result_queue.put((result.worker_id, result.nonce, result.hash))
