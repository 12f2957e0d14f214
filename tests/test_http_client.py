import asyncio
import json

import aiohttp
import pytest

from errors import InvalidResponseError, ProviderUnreachableError
from http_client import RetryingClient


class FlakyTransport:
    def __init__(self, failures, payload=None, error=None):
        self.failures = failures
        self.payload = payload if payload is not None else {"code": 200, "data": "ok"}
        self.error = error or aiohttp.ClientConnectionError("connection reset")
        self.calls = []

    async def __call__(self, url, params):
        self.calls.append((url, params))
        if len(self.calls) <= self.failures:
            raise self.error
        return self.payload


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def test_succeeds_after_two_failures():
    transport, sleep = FlakyTransport(failures=2), RecordingSleep()
    client = RetryingClient(transport=transport, sleep=sleep)

    data = asyncio.run(client.get_json("https://example.test/x", {"year": 1447}))

    assert data == {"code": 200, "data": "ok"}
    assert len(transport.calls) == 3
    assert sleep.delays == [1.0, 1.0]


def test_params_are_sent_as_strings():
    transport = FlakyTransport(failures=0)
    client = RetryingClient(transport=transport, sleep=RecordingSleep())

    asyncio.run(client.get_json("https://example.test/x", {"month": 9, "annual": "false"}))

    assert transport.calls[0][1] == {"month": "9", "annual": "false"}


def test_gives_up_after_three_attempts():
    transport, sleep = FlakyTransport(failures=99), RecordingSleep()
    client = RetryingClient(transport=transport, sleep=sleep)

    with pytest.raises(ProviderUnreachableError) as exc_info:
        asyncio.run(client.get_json("https://example.test/x"))

    assert len(transport.calls) == 3
    assert len(sleep.delays) == 2
    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.last_error, aiohttp.ClientConnectionError)


def test_malformed_body_is_reported_as_invalid_data():
    bad_json = json.JSONDecodeError("Expecting value", "<html>", 0)
    transport = FlakyTransport(failures=99, error=bad_json)
    client = RetryingClient(transport=transport, sleep=RecordingSleep())

    with pytest.raises(InvalidResponseError):
        asyncio.run(client.get_json("https://example.test/x"))
    assert len(transport.calls) == 3


def test_undecodable_body_is_reported_as_invalid_data():
    bad_bytes = UnicodeDecodeError("utf-8", b"\xff\xfe", 0, 1, "invalid start byte")
    transport = FlakyTransport(failures=99, error=bad_bytes)
    client = RetryingClient(transport=transport, sleep=RecordingSleep())

    with pytest.raises(InvalidResponseError):
        asyncio.run(client.get_json("https://example.test/x"))
    assert len(transport.calls) == 3


def test_non_retryable_error_is_raised_immediately():
    transport = FlakyTransport(failures=99, error=KeyError("boom"))
    client = RetryingClient(transport=transport, sleep=RecordingSleep())

    with pytest.raises(KeyError):
        asyncio.run(client.get_json("https://example.test/x"))
    assert len(transport.calls) == 1


def test_custom_retry_classifier():
    transport = FlakyTransport(failures=99)
    client = RetryingClient(transport=transport, sleep=RecordingSleep(), is_retryable=lambda e: False)

    with pytest.raises(aiohttp.ClientConnectionError):
        asyncio.run(client.get_json("https://example.test/x"))
    assert len(transport.calls) == 1


def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        RetryingClient(max_attempts=0)
