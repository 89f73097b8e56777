"""The ordered, observable conversation history."""

from __future__ import annotations

from collections.abc import Callable, Iterator

from davinci.errors import TranscriptError
from davinci.message import Message, MessageRole

TranscriptCallback = Callable[["Transcript"], None]


class Transcript:
    """Ordered list of messages with append-only streaming semantics.

    The transcript is mutated through three operations only.
    ``append_turn`` adds a user message together with an empty assistant
    placeholder, ``append_to_last`` grows that placeholder as fragments
    arrive, and ``replace_last`` overwrites it when the turn fails before
    anything streamed. Messages other than the last are never touched.

    Subscribers are called with the transcript after every mutation so a
    presentation layer can re-render without the core knowing how.

    Args:
        messages: Optional initial history.
    """

    def __init__(self, messages: list[Message] | None = None) -> None:
        self._messages: list[Message] = list(messages or [])
        self._subscribers: list[TranscriptCallback] = []

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    def subscribe(self, callback: TranscriptCallback) -> Callable[[], None]:
        """Register *callback* and return a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def append_turn(self, user_text: str) -> None:
        """Append a user message and its assistant placeholder as one update."""
        self._messages.extend([
            Message(role=MessageRole.USER, content=user_text),
            Message(role=MessageRole.ASSISTANT, content=""),
        ])
        self._notify()

    def append_to_last(self, fragment: str) -> None:
        """Append *fragment* to the active assistant message."""
        active = self._active_assistant()
        self._messages[-1] = active.model_copy(
            update={"content": active.content + fragment}
        )
        self._notify()

    def replace_last(self, content: str) -> None:
        """Overwrite the active assistant message's content."""
        active = self._active_assistant()
        self._messages[-1] = active.model_copy(update={"content": content})
        self._notify()

    def _active_assistant(self) -> Message:
        if not self._messages:
            raise TranscriptError("Transcript is empty; no assistant message to update")
        last = self._messages[-1]
        if last.role != MessageRole.ASSISTANT:
            raise TranscriptError(
                f"Last message has role '{last.role.value}', expected 'assistant'"
            )
        return last

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            callback(self)
