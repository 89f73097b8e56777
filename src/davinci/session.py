import asyncio
import logging
import uuid
from collections.abc import Callable

import httpx

from davinci.client import ChatClient
from davinci.errors import ChatStreamError
from davinci.events import (
    ContentDeltaEvent,
    DeltaMetadataEvent,
    StreamDoneEvent,
    StreamErrorEvent,
    StreamEvent,
)
from davinci.instrumentation import (
    record_error,
    record_response,
    record_stream_stats,
    stream_span,
)
from davinci.sse import interpret_line
from davinci.state import SessionState
from davinci.streaming import FrameDecoder
from davinci.transcript import Transcript

logger = logging.getLogger(__name__)

UNREACHABLE_MESSAGE = "Error: Could not reach the server."

SessionCallback = Callable[["ChatSession"], None]


class StreamCancellation:
    """Handle that stops the read loop of one in-flight turn."""

    def __init__(self, reader: asyncio.Future):
        self._reader = reader
        self.requested = False

    def cancel(self) -> None:
        self.requested = True
        self._reader.cancel()


class ChatSession:
    """Drives one streamed turn at a time against the chat service.

    ``send()`` appends the user's message and an empty assistant
    placeholder to the transcript, posts the message and folds the
    streamed reply into the placeholder as it arrives. ``stop()`` aborts
    the read from another task. Whatever way the turn ends, the session
    returns to ``IDLE`` with no cancellation handle left behind.

    Presentation code observes ``transcript`` (via
    ``Transcript.subscribe``) and ``is_streaming`` (via ``subscribe``).

    Args:
        client: Transport to the chat service, or a default ChatClient.
        transcript: Existing transcript to continue, or a new one.
        session_id: Identifier used in logs and spans.
    """

    def __init__(
        self,
        client: ChatClient | None = None,
        transcript: Transcript | None = None,
        session_id: str | None = None,
    ):
        self.client = client if client is not None else ChatClient()
        self.transcript = transcript if transcript is not None else Transcript()
        self.session_id = session_id or str(uuid.uuid4())
        self.state = SessionState.IDLE
        self.finish_reason: str | None = None
        self.last_error: str | None = None
        self._cancellation: StreamCancellation | None = None
        self._subscribers: list[SessionCallback] = []
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def is_streaming(self) -> bool:
        return self.state is SessionState.STREAMING

    def subscribe(self, callback: SessionCallback) -> Callable[[], None]:
        """Call *callback* with this session whenever its state changes."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def send(self, user_text: str) -> None:
        """Submit a user turn and stream the reply into the transcript.

        Does nothing for blank input or while another turn is streaming.
        Returns normally on completion, server errors, unreachable
        server and cancellation. Raises :class:`ChatStreamError` if the
        connection fails after the reply started streaming.
        """
        content = user_text.strip()
        if not content or self.is_streaming:
            return

        self.transcript.append_turn(content)
        self.finish_reason = None
        self.last_error = None
        try:
            self._set_state(SessionState.STREAMING)
            logger.info(f"[{self.session_id}] Sending turn ({len(content)} chars)")
            async with stream_span(self.client.stream_url, self.session_id) as span:
                await self._run_turn(content, span)
        finally:
            self._cancellation = None
            self._set_state(SessionState.IDLE)

    def stop(self) -> None:
        """Cancel the in-progress turn, if any."""
        if self._cancellation is None:
            return
        logger.info(f"[{self.session_id}] Stop requested")
        self._cancellation.cancel()

    async def aclose(self) -> None:
        """Stop any in-progress turn, wait for its cleanup, close the client.

        Must not be awaited from inside the turn being closed (for example
        from a transcript subscriber), since it waits for that turn to end.
        """
        self.stop()
        await self._idle.wait()
        await self.client.aclose()

    # ------------------------------------------------------------------
    # Turn execution
    # ------------------------------------------------------------------

    async def _run_turn(self, content: str, span) -> None:
        try:
            response = await self.client.open_stream(content)
        except httpx.TransportError as e:
            logger.error(f"[{self.session_id}] Could not reach {self.client.stream_url}: {e}")
            record_error(span, e)
            self.transcript.replace_last(UNREACHABLE_MESSAGE)
            return

        try:
            record_response(span, response.status_code)
            if not response.is_success:
                logger.warning(
                    f"[{self.session_id}] Chat service returned "
                    f"{response.status_code} {response.reason_phrase}"
                )
                self.transcript.replace_last(
                    f"Error: {response.status_code} {response.reason_phrase}"
                )
                return

            reader = asyncio.ensure_future(self._read(response, span))
            cancellation = StreamCancellation(reader)
            self._cancellation = cancellation
            try:
                await reader
            except asyncio.CancelledError:
                if not cancellation.requested:
                    raise
                logger.info(f"[{self.session_id}] Turn cancelled")
        finally:
            await response.aclose()

    async def _read(self, response: httpx.Response, span) -> None:
        decoder = FrameDecoder(response.encoding)
        chunks = 0
        fragments = 0
        try:
            async for chunk in response.aiter_bytes():
                chunks += 1
                for line in decoder.feed(chunk):
                    event = interpret_line(line)
                    if event is None:
                        continue
                    if isinstance(event, StreamDoneEvent):
                        logger.info(f"[{self.session_id}] Turn complete")
                        return
                    if self._apply(event):
                        fragments += 1
            logger.info(f"[{self.session_id}] Stream ended without terminator")
        except httpx.TransportError as e:
            logger.error(f"[{self.session_id}] Stream interrupted: {e}")
            record_error(span, e)
            raise ChatStreamError(f"Stream from {self.client.stream_url} interrupted: {e}") from e
        finally:
            leftover = decoder.finalize()
            if leftover:
                logger.warning(f"[{self.session_id}] Discarding unterminated line {leftover!r}")
            record_stream_stats(span, chunks, fragments, self.finish_reason)

    def _apply(self, event: StreamEvent) -> bool:
        """Fold one event into the session. Returns True if content was appended."""
        if isinstance(event, StreamErrorEvent):
            logger.warning(f"[{self.session_id}] Server reported: {event.message}")
            self.last_error = event.message
            return False

        if isinstance(event, (ContentDeltaEvent, DeltaMetadataEvent)):
            if event.finish_reason:
                self.finish_reason = event.finish_reason
            if event.done:
                # Only the [DONE] sentinel ends the read.
                logger.debug(f"[{self.session_id}] Delta marked done")

        if isinstance(event, ContentDeltaEvent):
            self.transcript.append_to_last(event.content)
            return True
        return False

    def _set_state(self, state: SessionState) -> None:
        if state is self.state:
            return
        self.state = state
        if state is SessionState.IDLE:
            self._idle.set()
        else:
            self._idle.clear()
        for callback in list(self._subscribers):
            callback(self)
