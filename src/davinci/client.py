import logging
import os

import httpx

from davinci.message import Message, MessageRole

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8094"
DEFAULT_TIMEOUT = 60.0
STREAM_PATH = "/api/chats/stream"


class ChatClient:
    """HTTP transport for the chat service.

    Wraps an ``httpx.AsyncClient``. Configuration falls back to the
    environment when not given explicitly:

    - ``DAVINCI_API_URL``: service base URL (default
      ``http://localhost:8094``).
    - ``DAVINCI_TIMEOUT``: connect/read timeout in seconds (default 60).

    Args:
        base_url: Base URL of the chat service.
        timeout: Timeout in seconds applied to connect, read and write.
            Read timeouts bound the idle time between streamed chunks.
        http_client: Pre-built client to use instead of creating one.
            An injected client is not closed by :meth:`aclose`.
    """

    def __init__(
            self,
            base_url: str | None = None,
            timeout: float | None = None,
            http_client: httpx.AsyncClient | None = None,
    ):
        if not base_url:
            base_url = os.getenv("DAVINCI_API_URL", DEFAULT_BASE_URL)
        if timeout is None:
            timeout = float(os.getenv("DAVINCI_TIMEOUT", DEFAULT_TIMEOUT))
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
        )

    @property
    def stream_url(self) -> str:
        return f"{self.base_url}{STREAM_PATH}"

    async def open_stream(self, content: str) -> httpx.Response:
        """Send a user message and return the unread streaming response.

        The caller owns the response and must close it. Raises
        ``httpx.TransportError`` if the request could not be sent.
        """
        body = Message(role=MessageRole.USER, content=content).model_dump()
        request = self.client.build_request(
            "POST",
            self.stream_url,
            json=body,
            headers={"Accept": "text/event-stream"},
        )
        logger.debug(f"POST {self.stream_url}")
        return await self.client.send(request, stream=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
