from davinci.client import ChatClient
from davinci.errors import ChatStreamError, DavinciError, TranscriptError
from davinci.instrumentation import instrument, uninstrument
from davinci.message import ChatStreamDelta, Message, MessageRole
from davinci.session import ChatSession
from davinci.state import SessionState
from davinci.transcript import Transcript

__all__ = [
    "ChatClient",
    "ChatSession",
    "ChatStreamDelta",
    "ChatStreamError",
    "DavinciError",
    "Message",
    "MessageRole",
    "SessionState",
    "Transcript",
    "TranscriptError",
    "instrument",
    "uninstrument",
]
