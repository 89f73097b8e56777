from enum import Enum


class SessionState(Enum):
    """Lifecycle of a :class:`~davinci.session.ChatSession`.

    A session is ``STREAMING`` from the moment a turn is accepted until
    its read loop exits, by whatever path. Everything else is ``IDLE``.
    """

    IDLE = "idle"
    STREAMING = "streaming"
