"""
Tests for the HOLLY ledger client.
"""

import pytest
import sys
import os
import json

import requests

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ledger import LedgerClient, FetchFailure, SubmissionFailure
import config


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, data=None, text=None):
        self.status_code = status_code
        self._data = data
        self.text = text if text is not None else json.dumps(data)

    def json(self):
        if self._data is None:
            raise ValueError("No JSON object could be decoded")
        return self._data


class FakeSession:
    """Records requests and replays canned responses (or raises)."""

    def __init__(self, get=None, post=None):
        self.get_response = get
        self.post_response = post
        self.calls = []
        self.closed = False

    def _reply(self, response):
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(self.calls[-1])
        return response

    def get(self, url, timeout=None):
        self.calls.append(('GET', url, None, timeout))
        return self._reply(self.get_response)

    def post(self, url, json=None, timeout=None):
        self.calls.append(('POST', url, json, timeout))
        return self._reply(self.post_response)

    def close(self):
        self.closed = True


def make_client(**kwargs) -> LedgerClient:
    session = FakeSession(**kwargs)
    return LedgerClient("http://ledger.test:3000/", timeout=5, session=session)


class TestPendingTransactions:
    """Test pending transaction fetch."""

    def test_fetch(self):
        txs = [{'from': 'a', 'to': 'b', 'amount': 1}]
        client = make_client(get=FakeResponse(data={'pendingTransactions': txs}))

        assert client.fetch_pending_transactions() == txs
        method, url, _, timeout = client.session.calls[0]
        assert method == 'GET'
        assert url == "http://ledger.test:3000/pending-transactions"
        assert timeout == 5

    def test_empty_list(self):
        client = make_client(get=FakeResponse(data={'pendingTransactions': []}))
        assert client.fetch_pending_transactions() == []

    def test_missing_field(self):
        """Missing pendingTransactions is treated as no transactions."""
        client = make_client(get=FakeResponse(data={'transactions': [{'a': 1}]}))

        with pytest.raises(FetchFailure):
            client.get_pending_transactions()
        assert client.fetch_pending_transactions() == []

    def test_field_not_a_list(self):
        client = make_client(get=FakeResponse(data={'pendingTransactions': "oops"}))
        assert client.fetch_pending_transactions() == []

    def test_body_not_an_object(self):
        client = make_client(get=FakeResponse(data=[1, 2, 3]))
        assert client.fetch_pending_transactions() == []

    def test_not_json(self):
        client = make_client(get=FakeResponse(text="<html>down</html>"))
        assert client.fetch_pending_transactions() == []

    def test_http_error(self):
        client = make_client(get=FakeResponse(status_code=503, data={'error': 'busy'}))

        with pytest.raises(FetchFailure, match="503"):
            client.get_pending_transactions()
        assert client.fetch_pending_transactions() == []

    def test_transport_error(self):
        client = make_client(get=requests.ConnectionError("connection refused"))

        with pytest.raises(FetchFailure, match="connection refused"):
            client.get_pending_transactions()
        assert client.fetch_pending_transactions() == []


class TestSubmitBlock:
    """Test block submission."""

    PAYLOAD = {'minerAddress': 'abc123', 'transactions': [], 'nonce': 1, 'hash': '0abc'}

    def test_submit(self):
        client = make_client(post=FakeResponse(data={'blockHash': '0abc'}))

        assert client.submit_block(self.PAYLOAD) == '0abc'
        method, url, body, timeout = client.session.calls[0]
        assert method == 'POST'
        assert url == "http://ledger.test:3000/mine"
        assert body == self.PAYLOAD
        assert timeout == 5

    def test_created_status_accepted(self):
        client = make_client(post=FakeResponse(status_code=201, data={'blockHash': 'ff'}))
        assert client.submit_block(self.PAYLOAD) == 'ff'

    def test_rejected(self):
        """Rejections carry the service's response payload."""
        client = make_client(post=FakeResponse(status_code=400, data={'error': 'Invalid proof of work'}))

        with pytest.raises(SubmissionFailure) as exc:
            client.submit_block(self.PAYLOAD)

        assert exc.value.status_code == 400
        assert exc.value.payload == {'error': 'Invalid proof of work'}
        assert "Invalid proof of work" in str(exc.value)

    def test_rejected_plain_text(self):
        client = make_client(post=FakeResponse(status_code=500, text="Internal Server Error"))

        with pytest.raises(SubmissionFailure) as exc:
            client.submit_block(self.PAYLOAD)
        assert exc.value.payload == "Internal Server Error"

    def test_transport_error(self):
        client = make_client(post=requests.Timeout("read timed out"))

        with pytest.raises(SubmissionFailure, match="read timed out"):
            client.submit_block(self.PAYLOAD)

    def test_missing_block_hash(self):
        client = make_client(post=FakeResponse(data={'ok': True}))

        with pytest.raises(SubmissionFailure):
            client.submit_block(self.PAYLOAD)

    def test_reply_not_json(self):
        client = make_client(post=FakeResponse(text="ok"))

        with pytest.raises(SubmissionFailure):
            client.submit_block(self.PAYLOAD)


class TestClientConfig:
    """Test client construction."""

    def test_from_config(self):
        cfg = config.MinerConfig(ledger_url="http://example.org:8080/", request_timeout=7)
        client = LedgerClient.from_config(cfg)

        assert client.base_url == "http://example.org:8080"
        assert client.timeout == 7
        assert isinstance(client.session, requests.Session)
        client.close()

    def test_close(self):
        client = make_client()
        client.close()
        assert client.session.closed
