import json
import unittest
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlsplit

import requests

from stock_monitor.errors import NetworkError, RelayError
from stock_monitor.integrations.relay_client import RelayQuoteClient


def _session_returning(envelope):
    session = MagicMock()
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = envelope
    session.get.return_value = response
    return session


class TestRelayQuoteClient(unittest.TestCase):
    def test_request_url_wraps_encoded_chart_url(self):
        client = RelayQuoteClient(
            relay_url="https://relay.test/get",
            chart_url="https://chart.test/v8/finance/chart/",
        )

        url = client.request_url("AAPL")

        parts = urlsplit(url)
        self.assertEqual(f"{parts.scheme}://{parts.netloc}{parts.path}", "https://relay.test/get")
        self.assertEqual(
            parse_qs(parts.query)["url"],
            ["https://chart.test/v8/finance/chart/AAPL?interval=1d&range=1d"],
        )
        self.assertNotIn("&range", parts.query)

    def test_fetch_returns_envelope_contents(self):
        body = json.dumps({"chart": {"result": []}})
        session = _session_returning({"contents": body, "status": {"http_code": 200}})
        client = RelayQuoteClient(relay_url="https://relay.test/get", session=session, timeout=3)

        raw = client.fetch("TSLA")

        self.assertEqual(raw, body)
        session.get.assert_called_once_with(client.request_url("TSLA"), timeout=3)

    def test_transport_failure_raises_network_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("connection refused")
        client = RelayQuoteClient(session=session)

        with self.assertRaises(NetworkError) as ctx:
            client.fetch("AAPL")

        self.assertIsNone(ctx.exception.status_code)
        self.assertIsInstance(ctx.exception.__cause__, requests.ConnectionError)

    def test_non_success_status_raises_network_error_with_code(self):
        session = MagicMock()
        response = MagicMock()
        error_response = MagicMock()
        error_response.status_code = 502
        response.raise_for_status.side_effect = requests.HTTPError("bad gateway", response=error_response)
        session.get.return_value = response
        client = RelayQuoteClient(session=session)

        with self.assertRaises(NetworkError) as ctx:
            client.fetch("AAPL")

        self.assertEqual(ctx.exception.status_code, 502)
        self.assertEqual(ctx.exception.kind, "NETWORK_ERROR")

    def test_missing_contents_raises_relay_error(self):
        for envelope in ({}, {"contents": None}, {"contents": ""}, ["not", "an", "object"]):
            with self.subTest(envelope=envelope):
                client = RelayQuoteClient(session=_session_returning(envelope))
                with self.assertRaises(RelayError):
                    client.fetch("AAPL")

    def test_non_string_contents_raises_relay_error(self):
        for contents in ({"chart": {"result": []}}, ["chart"], 42, True):
            with self.subTest(contents=contents):
                client = RelayQuoteClient(session=_session_returning({"contents": contents}))
                with self.assertRaises(RelayError):
                    client.fetch("AAPL")

    def test_undecodable_envelope_raises_relay_error(self):
        session = MagicMock()
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError("Expecting value")
        session.get.return_value = response
        client = RelayQuoteClient(session=session)

        with self.assertRaises(RelayError):
            client.fetch("AAPL")


if __name__ == "__main__":
    unittest.main()
