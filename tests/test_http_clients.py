"""Tests for HTTP-based adapters."""

import asyncio
import io

import httpx
import pytest

from ipfs_backup.adapters.irys_client import (
    ChunkedUploaderConfig,
    HttpxChunkedUploader,
    HttpxIrysClient,
)
from ipfs_backup.adapters.pinata_client import HttpxPinataClient
from ipfs_backup.domain.uploads import (
    ChunkFailed,
    ChunkUploaded,
    UploadEvent,
    UploadFinished,
)
from ipfs_backup.errors import TransportError, UploadError


def _drain(events: "asyncio.Queue[UploadEvent | None]") -> list[UploadEvent | None]:
    drained: list[UploadEvent | None] = []
    while not events.empty():
        drained.append(events.get_nowait())
    return drained


def _uploader(handler, **config):  # type: ignore[no-untyped-def]
    transport = httpx.MockTransport(handler)
    return HttpxChunkedUploader(
        node_url="https://bundler.test",
        token="usdc-eth",
        config=ChunkedUploaderConfig(**config),
        http_client=httpx.AsyncClient(transport=transport),
    )


def test_pinata_client_requests_pinned_page() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "count": 2,
                "rows": [
                    {"ipfs_pin_hash": "bafy1", "size": 10},
                    {"ipfs_pin_hash": "bafy2", "size": 20},
                ],
            },
        )

    client = HttpxPinataClient(
        jwt="jwt-token",
        base_url="https://pinata.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    page = asyncio.run(client.list_pins(status="pinned", limit=1000, offset=2000))

    assert page.cids() == ["bafy1", "bafy2"]
    request = seen[0]
    assert request.url.path == "/data/pinList"
    assert request.url.params["status"] == "pinned"
    assert request.url.params["pageLimit"] == "1000"
    assert request.url.params["pageOffset"] == "2000"
    assert request.headers["Authorization"] == "Bearer jwt-token"


def test_pinata_client_tolerates_missing_count() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"rows": []})

    client = HttpxPinataClient(
        jwt="jwt-token",
        base_url="https://pinata.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    page = asyncio.run(client.list_pins(status="pinned", limit=10, offset=0))

    assert page.count is None
    assert page.rows == []


def test_pinata_client_raises_transport_error_with_status_and_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text='{"error":"Invalid JWT"}')

    client = HttpxPinataClient(
        jwt="bad",
        base_url="https://pinata.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(client.list_pins(status="pinned", limit=10, offset=0))

    assert excinfo.value.status_code == 401
    assert excinfo.value.body == '{"error":"Invalid JWT"}'


def test_pinata_client_wraps_connection_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = HttpxPinataClient(
        jwt="jwt-token",
        base_url="https://pinata.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(client.list_pins(status="pinned", limit=10, offset=0))

    assert excinfo.value.status_code is None


def test_irys_client_price_and_balance() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/price/usdc-eth/5000000":
            return httpx.Response(200, json=150)
        if request.url.path == "/account/balance/usdc-eth":
            assert request.url.params["address"] == "0xabc"
            return httpx.Response(200, json={"balance": "100"})
        return httpx.Response(404)

    client = HttpxIrysClient(
        node_url="https://bundler.test",
        token="usdc-eth",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    assert asyncio.run(client.get_price(5_000_000)) == 150
    assert asyncio.run(client.get_balance("0xabc")) == 100


def test_irys_client_rejects_unexpected_amount() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"balance": "1.5"})

    client = HttpxIrysClient(
        node_url="https://bundler.test",
        token="usdc-eth",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(TransportError):
        asyncio.run(client.get_balance("0xabc"))


def test_chunked_uploader_posts_every_chunk_and_finishes() -> None:
    received: dict[int, bytes] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "GET" and path == "/chunks/usdc-eth/-1/-1":
            return httpx.Response(200, json={"id": "up-1", "min": 1, "max": 100})
        if request.method == "POST" and path == "/chunks/usdc-eth/up-1/-1":
            return httpx.Response(200, json={"id": "tx-9"})
        if request.method == "POST" and path.startswith("/chunks/usdc-eth/up-1/"):
            assert request.headers["Content-Type"] == "application/octet-stream"
            received[int(path.rsplit("/", 1)[1])] = request.content
            return httpx.Response(200)
        return httpx.Response(404)

    uploader = _uploader(handler, chunk_size=10, batch_size=2)
    source = bytes(range(25))
    events: asyncio.Queue[UploadEvent | None] = asyncio.Queue()

    transaction_id = asyncio.run(uploader.upload(io.BytesIO(source), 25, events))

    assert transaction_id == "tx-9"
    assert sorted(received) == [0, 10, 20]
    assert b"".join(received[offset] for offset in sorted(received)) == source
    drained = _drain(events)
    uploaded = [event for event in drained if isinstance(event, ChunkUploaded)]
    assert [event.total_uploaded for event in uploaded][-1] == 25
    assert sorted(event.chunk.size for event in uploaded) == [5, 10, 10]
    assert drained[-1] == UploadFinished(transaction_id="tx-9")


def test_chunked_uploader_retries_failed_chunk() -> None:
    attempts: dict[str, int] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "GET":
            return httpx.Response(200, json={"id": "up-1"})
        if path.endswith("/-1"):
            return httpx.Response(200, json={"id": "tx-9"})
        attempts[path] = attempts.get(path, 0) + 1
        if path.endswith("/10") and attempts[path] == 1:
            return httpx.Response(502)
        return httpx.Response(200)

    uploader = _uploader(handler, chunk_size=10, batch_size=5, retry_delay_seconds=0)
    events: asyncio.Queue[UploadEvent | None] = asyncio.Queue()

    transaction_id = asyncio.run(uploader.upload(io.BytesIO(b"x" * 30), 30, events))

    assert transaction_id == "tx-9"
    assert attempts["/chunks/usdc-eth/up-1/10"] == 2
    failures = [event for event in _drain(events) if isinstance(event, ChunkFailed)]
    assert len(failures) == 1
    assert failures[0].chunk.offset == 10
    assert failures[0].detail == "502 Bad Gateway"


def test_chunked_uploader_gives_up_after_retry_budget() -> None:
    finished: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "GET":
            return httpx.Response(200, json={"id": "up-1"})
        if path.endswith("/-1"):
            finished.append(path)
            return httpx.Response(200, json={"id": "tx-9"})
        return httpx.Response(500)

    uploader = _uploader(
        handler, chunk_size=10, batch_size=1, retry_attempts=2, retry_delay_seconds=0
    )
    events: asyncio.Queue[UploadEvent | None] = asyncio.Queue()

    with pytest.raises(UploadError, match="after 3 attempts"):
        asyncio.run(uploader.upload(io.BytesIO(b"x" * 30), 30, events))

    assert finished == []
    failures = [event for event in _drain(events) if isinstance(event, ChunkFailed)]
    assert len(failures) == 2


def test_chunked_uploader_bounds_concurrency() -> None:
    in_flight = 0
    peak = 0

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, peak
        path = request.url.path
        if request.method == "GET":
            return httpx.Response(200, json={"id": "up-1"})
        if path.endswith("/-1"):
            return httpx.Response(200, json={"id": "tx-9"})
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return httpx.Response(200)

    uploader = _uploader(handler, chunk_size=4, batch_size=2)
    events: asyncio.Queue[UploadEvent | None] = asyncio.Queue()

    asyncio.run(uploader.upload(io.BytesIO(b"y" * 40), 40, events))

    assert 1 <= peak <= 2


def test_chunked_uploader_detects_short_source() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"id": "up-1"})
        return httpx.Response(200, json={"id": "tx-9"})

    uploader = _uploader(handler, chunk_size=10, batch_size=2)
    events: asyncio.Queue[UploadEvent | None] = asyncio.Queue()

    with pytest.raises(UploadError, match="ended early"):
        asyncio.run(uploader.upload(io.BytesIO(b"x" * 15), 30, events))


def test_uploader_config_rejects_non_positive_values() -> None:
    with pytest.raises(ValueError):
        ChunkedUploaderConfig(chunk_size=0)
    with pytest.raises(ValueError):
        ChunkedUploaderConfig(batch_size=0)


def test_pinata_client_rejects_malformed_rows() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"rows": [{"size": 10}]})

    client = HttpxPinataClient(
        jwt="jwt-token",
        base_url="https://pinata.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(client.list_pins(status="pinned", limit=10, offset=0))

    assert excinfo.value.status_code == 200
    assert excinfo.value.reason == "Unexpected payload"


def test_irys_client_rejects_non_json_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    client = HttpxIrysClient(
        node_url="https://bundler.test",
        token="usdc-eth",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(client.get_price(10))

    assert excinfo.value.body == "<html>maintenance</html>"


def test_chunked_uploader_rejects_non_json_start() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="not json")

    uploader = _uploader(handler, chunk_size=10, batch_size=2)
    events: asyncio.Queue[UploadEvent | None] = asyncio.Queue()

    with pytest.raises(TransportError, match="Unexpected payload"):
        asyncio.run(uploader.upload(io.BytesIO(b"x" * 10), 10, events))
