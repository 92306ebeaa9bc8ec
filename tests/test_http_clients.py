"""Tests for HTTP-based adapters."""

import asyncio
import base64
import json

import httpx
import pytest

from spa_operations.adapters.printnode_client import HttpxPrintNodeClient


def _client(handler) -> HttpxPrintNodeClient:  # type: ignore[no-untyped-def]
    transport = httpx.MockTransport(handler)
    return HttpxPrintNodeClient(
        api_key="printnode-key",
        printer_id=73001,
        base_url="https://api.printnode.com",
        http_client=httpx.AsyncClient(transport=transport),
    )


def test_printnode_submit_job_sends_raw_text() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json=5521)

    client = _client(handler)

    job_id = asyncio.run(client.submit_job("Receipt", "TOTAL 800 THB\n", copies=2))

    assert job_id == 5521
    request = seen[0]
    assert request.url.path == "/printjobs"
    expected_auth = base64.b64encode(b"printnode-key:").decode()
    assert request.headers["Authorization"] == f"Basic {expected_auth}"
    payload = json.loads(request.content.decode())
    assert payload["printerId"] == 73001
    assert payload["contentType"] == "raw_base64"
    assert payload["qty"] == 2
    assert base64.b64decode(payload["content"]).decode() == "TOTAL 800 THB\n"


def test_printnode_errors_raise_status_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "bad key"})

    client = _client(handler)

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.submit_job("Receipt", "x"))


def test_printnode_close() -> None:
    client = _client(lambda request: httpx.Response(200, json=1))

    asyncio.run(client.close())

    assert client.http_client.is_closed
