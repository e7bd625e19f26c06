#!/usr/bin/env python3
"""
HOLLY Ledger Client
Talks to the ledger service: pending transactions and block submission.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

import config

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Ledger service error."""
    pass


class FetchFailure(LedgerError):
    """Pending transactions could not be fetched or were malformed."""
    pass


class SubmissionFailure(LedgerError):
    """A block submission attempt failed or was rejected."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)


class LedgerClient:
    """HTTP client for the ledger service."""

    def __init__(self, base_url: str = config.LEDGER_URL, timeout: float = config.REQUEST_TIMEOUT,
                 session: requests.Session = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, cfg: config.MinerConfig) -> 'LedgerClient':
        return cls(base_url=cfg.ledger_url, timeout=cfg.request_timeout)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def get_pending_transactions(self) -> List[Dict[str, Any]]:
        """
        Fetch the ledger's pending transactions.

        Raises:
            FetchFailure: transport error, bad status or malformed body
        """
        url = self._url(config.PENDING_TRANSACTIONS_PATH)
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchFailure(f"Error fetching pending transactions: {e}") from e

        if resp.status_code != 200:
            raise FetchFailure(f"Ledger returned HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            data = resp.json()
        except ValueError as e:
            raise FetchFailure(f"Pending transactions response is not JSON: {e}") from e

        txs = data.get('pendingTransactions') if isinstance(data, dict) else None
        if not isinstance(txs, list):
            raise FetchFailure("No pending transactions found in the response.")
        return txs

    def fetch_pending_transactions(self) -> List[Dict[str, Any]]:
        """Pending transactions, or an empty list if the fetch fails."""
        logger.info("🔍 Fetching pending transactions...")
        try:
            txs = self.get_pending_transactions()
        except FetchFailure as e:
            logger.error(f"❌ {e}")
            return []
        logger.info(f"📈 Found {len(txs)} pending transactions.")
        return txs

    def submit_block(self, payload: Dict[str, Any]) -> str:
        """
        Post a block (or retry body) to the mining endpoint.

        Returns:
            Block hash confirmed by the service

        Raises:
            SubmissionFailure: transport error, rejection or malformed reply
        """
        url = self._url(config.MINE_PATH)
        try:
            resp = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise SubmissionFailure(str(e)) from e

        if not 200 <= resp.status_code < 300:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
            raise SubmissionFailure(
                f"HTTP {resp.status_code}: {body}",
                status_code=resp.status_code,
                payload=body,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise SubmissionFailure(f"Submission response is not JSON: {e}",
                                    status_code=resp.status_code) from e

        block_hash = data.get('blockHash') if isinstance(data, dict) else None
        if not block_hash:
            raise SubmissionFailure("Submission response has no blockHash",
                                    status_code=resp.status_code, payload=data)
        return block_hash

    def close(self):
        self.session.close()
