"""Interpretation of Server-Sent Events lines from the chat stream."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from davinci.events import (
    ContentDeltaEvent,
    DeltaMetadataEvent,
    StreamDoneEvent,
    StreamErrorEvent,
    StreamEvent,
)
from davinci.message import ChatStreamDelta

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def interpret_line(line: str) -> StreamEvent | None:
    """Classify one complete line of the stream.

    Returns ``None`` for anything that is not a usable ``data:`` record:
    blank separators, ``:`` comments, other SSE fields and payloads that
    fail to parse. Malformed payloads are dropped, never raised.
    """
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):].strip()
    if payload == DONE_SENTINEL:
        return StreamDoneEvent()

    try:
        delta = ChatStreamDelta.model_validate_json(payload)
    except ValidationError as e:
        logger.debug(f"Discarding malformed delta {payload!r}: {e}")
        return None

    if delta.error:
        return StreamErrorEvent(message=delta.error)
    if delta.content:
        return ContentDeltaEvent(
            content=delta.content,
            done=delta.done,
            finish_reason=delta.finish_reason,
        )
    if delta.done or delta.finish_reason:
        return DeltaMetadataEvent(
            done=delta.done, finish_reason=delta.finish_reason,
        )
    return None
