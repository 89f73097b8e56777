import asyncio
import json

import httpx
import pytest

from davinci.client import ChatClient
from davinci.session import ChatSession

BASE_URL = "http://davinci.test"


# ---------------------------------------------------------------------------
# Wire helpers
# ---------------------------------------------------------------------------

def sse(*payloads) -> bytes:
    """Encode payloads as the chat service frames them.

    Dicts are JSON-encoded, strings (``"[DONE]"``, raw garbage) are
    written verbatim. Each record is followed by a blank line.
    """
    records = []
    for p in payloads:
        data = json.dumps(p) if isinstance(p, dict) else p
        records.append(f"data: {data}\n\n")
    return "".join(records).encode("utf-8")


def split_every(data: bytes, size: int) -> list[bytes]:
    """Cut *data* into chunks of *size* bytes."""
    return [data[i:i + size] for i in range(0, len(data), size)]


class GatedBody:
    """Async byte stream that stalls after ``gate_after`` chunks.

    The stream blocks until ``release`` is set, which lets tests act
    while the reader is suspended waiting for the next chunk.
    """

    def __init__(self, chunks: list[bytes], gate_after: int):
        self.chunks = chunks
        self.gate_after = gate_after
        self.release = asyncio.Event()
        self.sent = 0

    async def __aiter__(self):
        for i, chunk in enumerate(self.chunks):
            if i == self.gate_after:
                await self.release.wait()
            self.sent += 1
            yield chunk


async def stream_of(chunks: list[bytes]):
    for chunk in chunks:
        yield chunk


# ---------------------------------------------------------------------------
# Session fixtures
# ---------------------------------------------------------------------------

class RecordingHandler:
    """MockTransport handler that records requests and replays a response."""

    def __init__(self, respond):
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return self.respond(request)


@pytest.fixture
def make_session():
    """Factory fixture building a ChatSession over a mock transport.

    *respond* receives the ``httpx.Request`` and returns an
    ``httpx.Response`` (or raises an ``httpx`` exception).
    """
    def _make(respond):
        handler = RecordingHandler(respond)
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
        )
        client = ChatClient(base_url=BASE_URL, http_client=http_client)
        session = ChatSession(client=client, session_id="test-session")
        session.handler = handler
        return session
    return _make


@pytest.fixture
def streaming_session(make_session):
    """Session whose server streams the given chunks with status 200."""
    def _make(chunks: list[bytes]):
        return make_session(
            lambda request: httpx.Response(
                200,
                headers={"Content-Type": "text/event-stream"},
                content=stream_of(chunks),
            )
        )
    return _make
