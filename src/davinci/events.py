"""Events produced by interpreting lines of the chat stream."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class StreamEvent:
    """Base for all interpreted stream events."""


@dataclass
class ContentDeltaEvent(StreamEvent):
    """A content fragment to append to the active assistant message."""

    content: str = ""
    done: bool = False
    finish_reason: str | None = None


@dataclass
class DeltaMetadataEvent(StreamEvent):
    """A delta without content that still carries stream-control fields."""

    done: bool = False
    finish_reason: str | None = None


@dataclass
class StreamErrorEvent(StreamEvent):
    """An error the server reported in-band."""

    message: str = ""


@dataclass
class StreamDoneEvent(StreamEvent):
    """The ``[DONE]`` sentinel. Nothing after it belongs to the turn."""
