"""Terminal chat against a DaVinci chat service.

Demonstrates:
- Observing the transcript to print the reply as it streams in
- Cancelling a turn mid-stream with Ctrl-C
- Optional OpenTelemetry tracing of each turn

Usage:
    uv run examples/chat_example.py --url http://localhost:8094
    uv run examples/chat_example.py --trace
"""

import argparse
import asyncio
import logging
import signal

from davinci.client import ChatClient
from davinci.errors import ChatStreamError
from davinci.message import MessageRole
from davinci.session import ChatSession
from davinci.transcript import Transcript


def setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s:%(name)s:%(levelname)s:%(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[
            logging.FileHandler('davinci.log'),
            logging.StreamHandler()
        ]
    )


def setup_tracing(service_name: str):
    from opentelemetry import trace
    from opentelemetry.sdk.resources import SERVICE_NAME, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import (
        SimpleSpanProcessor, ConsoleSpanExporter,
    )
    from davinci.instrumentation import instrument

    provider = TracerProvider(
        resource=Resource({SERVICE_NAME: service_name})
    )
    provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    instrument()


class StreamPrinter:
    """Prints only the part of the assistant reply not yet shown."""

    def __init__(self):
        self.printed = 0

    def reset(self):
        self.printed = 0

    def __call__(self, transcript: Transcript):
        last = transcript.last
        if last is None or last.role != MessageRole.ASSISTANT:
            return
        print(last.content[self.printed:], end="", flush=True)
        self.printed = len(last.content)


async def main():
    parser = argparse.ArgumentParser(description="DaVinci chat")
    parser.add_argument("--url", default=None)
    parser.add_argument("--timeout", type=float, default=None)
    parser.add_argument("--trace", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(args.verbose)
    if args.trace:
        setup_tracing("davinci-chat")

    session = ChatSession(client=ChatClient(base_url=args.url, timeout=args.timeout))
    printer = StreamPrinter()
    session.transcript.subscribe(printer)
    loop = asyncio.get_running_loop()

    print("DaVinci (Ctrl-C stops a reply, Ctrl-D exits)\n")

    try:
        while True:
            try:
                user_input = await asyncio.to_thread(input, "You: ")
            except (KeyboardInterrupt, EOFError):
                print("\nGoodbye!")
                break
            if not user_input.strip():
                continue

            printer.reset()
            print("DaVinci: ", end="", flush=True)
            loop.add_signal_handler(signal.SIGINT, session.stop)
            try:
                await session.send(user_input)
            except ChatStreamError as e:
                print(f"\n[connection lost: {e}]", end="")
            finally:
                loop.remove_signal_handler(signal.SIGINT)
            print("\n")
    finally:
        await session.aclose()


if __name__ == "__main__":
    asyncio.run(main())
