import json

import httpx
import pytest

from davinci.client import DEFAULT_BASE_URL, ChatClient


def test_defaults(monkeypatch):
    monkeypatch.delenv("DAVINCI_API_URL", raising=False)
    monkeypatch.delenv("DAVINCI_TIMEOUT", raising=False)
    c = ChatClient()
    assert c.base_url == DEFAULT_BASE_URL
    assert c.stream_url == "http://localhost:8094/api/chats/stream"
    assert c.timeout == 60.0


def test_reads_env(monkeypatch):
    monkeypatch.setenv("DAVINCI_API_URL", "https://chat.example.com/")
    monkeypatch.setenv("DAVINCI_TIMEOUT", "5")
    c = ChatClient()
    assert c.stream_url == "https://chat.example.com/api/chats/stream"
    assert c.timeout == 5.0


def test_explicit_arguments_win(monkeypatch):
    monkeypatch.setenv("DAVINCI_API_URL", "https://ignored.example.com")
    c = ChatClient(base_url="http://local:1", timeout=2.5)
    assert c.base_url == "http://local:1"
    assert c.timeout == 2.5


class TestOpenStream:
    @pytest.mark.asyncio
    async def test_posts_user_message_as_json(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"data: [DONE]\n\n")

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        c = ChatClient(base_url="http://svc", http_client=http_client)

        response = await c.open_stream("hello")
        await response.aclose()

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "http://svc/api/chats/stream"
        assert request.headers["accept"] == "text/event-stream"
        assert json.loads(request.content) == {"role": "user", "content": "hello"}

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        c = ChatClient(base_url="http://svc", http_client=http_client)

        with pytest.raises(httpx.ConnectError):
            await c.open_stream("hello")

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self):
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(200))
        )
        async with ChatClient(base_url="http://svc", http_client=http_client):
            pass
        assert not http_client.is_closed
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self):
        c = ChatClient(base_url="http://svc")
        await c.aclose()
        assert c.client.is_closed
