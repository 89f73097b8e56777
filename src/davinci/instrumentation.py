"""Optional OpenTelemetry instrumentation for davinci.

Call ``davinci.instrument()`` once at startup to enable tracing.
Requires ``opentelemetry-api`` to be installed; the client
works identically without it.
"""

import importlib.util
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

_tracer = None


def instrument(*, tracer_name: str = "davinci") -> None:
    """Enable OpenTelemetry tracing for every chat turn.

    Call once at startup, after configuring your TracerProvider.
    Requires ``opentelemetry-api``: ``pip install davinci[otel]``

    Example::

        from opentelemetry import trace
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import (
            ConsoleSpanExporter, SimpleSpanProcessor,
        )

        provider = TracerProvider()
        provider.add_span_processor(
            SimpleSpanProcessor(ConsoleSpanExporter())
        )
        trace.set_tracer_provider(provider)

        import davinci
        davinci.instrument()

    Args:
        tracer_name: Name passed to ``trace.get_tracer()``.

    Raises:
        ImportError: If ``opentelemetry-api`` is not installed.
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError(
            "opentelemetry-api is required for instrumentation. "
            "Install it with: pip install davinci[otel]"
        )
    from opentelemetry import trace
    _tracer = trace.get_tracer(tracer_name)
    if isinstance(_tracer, trace.NoOpTracer):
        logger.info(
            "No TracerProvider configured, spans will be "
            "discarded. Set up a TracerProvider to export "
            "traces."
        )
    else:
        logger.info("davinci instrumentation enabled")


def uninstrument() -> None:
    """Disable OpenTelemetry tracing.

    Subsequent turns will not emit spans.
    """
    global _tracer
    _tracer = None


@asynccontextmanager
async def stream_span(url: str, session_id: str):
    """Wrap one streamed chat turn in a ``chat_stream`` client span."""
    if _tracer is None:
        yield None
        return
    from opentelemetry.trace import SpanKind

    with _tracer.start_as_current_span(
        "chat_stream",
        kind=SpanKind.CLIENT,
        attributes={
            "url.full": url,
            "session.id": session_id,
        },
    ) as span:
        yield span


def record_response(span, status_code: int) -> None:
    """Set the HTTP status of the stream request on a span."""
    if span is None:
        return
    span.set_attribute("http.response.status_code", status_code)


def record_stream_stats(
    span, chunks: int, fragments: int, finish_reason: str | None = None
):
    """Set chunk/fragment counts and the finish reason on a span."""
    if span is None:
        return
    span.set_attribute("davinci.stream.chunks", chunks)
    span.set_attribute("davinci.stream.fragments", fragments)
    if finish_reason:
        span.set_attribute("davinci.stream.finish_reason", finish_reason)


def record_error(span, exception: BaseException) -> None:
    """Record an exception and set ERROR status on a span.

    No-ops when *span* is ``None`` (tracing disabled).
    """
    if span is None:
        return
    from opentelemetry.trace import StatusCode

    span.set_status(StatusCode.ERROR, str(exception))
    span.record_exception(exception)
    span.set_attribute(
        "error.type", type(exception).__qualname__
    )
