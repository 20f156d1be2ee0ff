"""Tests for middleware — security headers, request IDs, body size ceiling."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from docshelf.middleware.body_limit import BodySizeLimitMiddleware


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    """Health endpoint returns security headers."""
    r = await client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


@pytest.mark.asyncio
async def test_no_store_on_authenticated_requests(client):
    r = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer x"})
    assert r.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/api/v1/health")
    r2 = await client.get("/api/v1/health")
    assert "X-Request-ID" in r1.headers
    assert "X-Request-ID" in r2.headers
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID is propagated through the response."""
    custom_id = "test-trace-12345"
    r = await client.get("/api/v1/health", headers={"X-Request-ID": custom_id})
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    """HSTS header is NOT set on HTTP connections (only HTTPS)."""
    r = await client.get("/api/v1/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_body_limit_rejects_large_payload():
    app = FastAPI()
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=32)

    @app.post("/echo")
    async def echo(body: dict):
        return body

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        small = await c.post("/echo", json={"x": "y"})
        assert small.status_code == 200

        big = await c.post("/echo", json={"big": "x" * 100})
        assert big.status_code == 413
        assert big.json()["detail"] == "Request body exceeds allowed size"


@pytest.mark.asyncio
async def test_body_limit_counts_chunked_body():
    """A body without Content-Length is still cut off at the limit."""
    app = FastAPI()
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=32)

    @app.post("/echo")
    async def echo(body: dict):
        return body

    async def chunks():
        yield b'{"big": "'
        for _ in range(10):
            yield b"x" * 16
        yield b'"}'

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        r = await c.post(
            "/echo", content=chunks(), headers={"Content-Type": "application/json"}
        )
        assert "content-length" not in r.request.headers
        assert r.status_code == 413
        assert r.json()["detail"] == "Request body exceeds allowed size"
