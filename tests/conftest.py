"""Shared fixtures: deterministic payloads and an in-memory HTTP server."""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import httpx
import pytest


def make_payload(size: int, seed: int = 7) -> bytes:
    return random.Random(seed).randbytes(size)


@dataclass
class FakeServer:
    """Serves one resource with optional range support, thread-safe."""

    content: bytes
    accept_ranges: bool = True
    known_length: bool = True
    ignore_ranges: bool = False
    before_response: Optional[Callable[[httpx.Request], Optional[httpx.Response]]] = None
    requests: List[httpx.Request] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        if self.before_response is not None:
            response = self.before_response(request)
            if response is not None:
                return response

        range_header = request.headers.get("Range")
        if range_header and not self.ignore_ranges:
            start, end = range_header.removeprefix("bytes=").split("-")
            body = self.content[int(start) : int(end) + 1]
            return httpx.Response(
                206,
                headers={"Content-Range": f"bytes {start}-{end}/{len(self.content)}"},
                content=body,
            )

        headers = {"Accept-Ranges": "bytes"} if self.accept_ranges else {}
        if self.known_length:
            return httpx.Response(200, headers=headers, content=self.content)
        return httpx.Response(200, headers=headers, content=iter([self.content]))

    @property
    def range_requests(self) -> List[str]:
        return [r.headers["Range"] for r in self.requests if "Range" in r.headers]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def payload() -> bytes:
    return make_payload(10_000)


@pytest.fixture
def server(payload: bytes) -> FakeServer:
    return FakeServer(payload)
