class DavinciError(Exception):
    """Base class for errors raised by davinci."""


class TranscriptError(DavinciError):
    """Raised when the transcript is mutated in a way the protocol forbids.

    This is a programming error: streamed fragments may only be folded
    into an assistant message sitting at the end of the transcript.
    """


class ChatStreamError(DavinciError):
    """The transport failed after the response stream had started.

    Whatever streamed before the failure stays in the transcript. The
    underlying ``httpx`` exception is available as ``__cause__``.
    """
