"""Tests for repo_host.server.middleware."""

from __future__ import annotations

import gzip

import pytest

pytest.importorskip("fastapi")
from fastapi import FastAPI, Request
from fastapi.responses import Response
from fastapi.testclient import TestClient

from repo_host.server.middleware import GzipRequestMiddleware

GZIP_HEADERS = {"Content-Encoding": "gzip"}


@pytest.fixture()
def echo_client() -> TestClient:
    echo = FastAPI()

    @echo.post("/echo")
    async def echo_body(request: Request) -> Response:
        body = await request.body()
        return Response(
            content=body,
            headers={"x-seen-encoding": request.headers.get("content-encoding", "")},
        )

    echo.add_middleware(GzipRequestMiddleware, max_size=64)
    return TestClient(echo)


class TestGzipRequestMiddleware:
    def test_plain_body_passes_through(self, echo_client: TestClient) -> None:
        response = echo_client.post("/echo", content=b"plain")
        assert response.content == b"plain"

    def test_body_at_the_cap_is_inflated(self, echo_client: TestClient) -> None:
        payload = b"a" * 64

        response = echo_client.post("/echo", content=gzip.compress(payload), headers=GZIP_HEADERS)

        assert response.status_code == 200
        assert response.content == payload
        assert response.headers["x-seen-encoding"] == ""

    def test_body_one_byte_past_the_cap_is_413(self, echo_client: TestClient) -> None:
        response = echo_client.post(
            "/echo", content=gzip.compress(b"a" * 65), headers=GZIP_HEADERS
        )
        assert response.status_code == 413

    def test_highly_compressible_body_is_413(self, echo_client: TestClient) -> None:
        body = gzip.compress(b"0" * (1024 * 1024))

        response = echo_client.post("/echo", content=body, headers=GZIP_HEADERS)

        assert response.status_code == 413
        assert response.text == "request body too large"

    def test_truncated_body_is_400(self, echo_client: TestClient) -> None:
        response = echo_client.post(
            "/echo", content=gzip.compress(b"hello")[:-4], headers=GZIP_HEADERS
        )
        assert response.status_code == 400
