"""Decoder for server-sent event streams produced by streaming execution.

The service answers ``stream-code`` requests with newline-delimited lines,
each either blank or of the form ``data: <JSON>``. Every JSON object carries a
``type`` of ``start``, ``output``, ``error`` or ``end``. The transport may cut
the body anywhere, so the decoder keeps the unfinished tail of one chunk and
prepends it to the next before splitting.

Usage:
    callbacks = StreamCallbacks(on_output=print)
    decoder = StreamDecoder(callbacks)
    for chunk in chunks:
        decoder.feed(chunk)
    decoder.close()
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterable, Callable, Iterable, Optional

from .exceptions import StreamClosedError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "


class StreamEventKind(str, Enum):
    """Kinds of events emitted during a streamed execution."""
    START = "start"
    OUTPUT = "output"
    ERROR = "error"
    END = "end"


_KINDS = {kind.value: kind for kind in StreamEventKind}


@dataclass
class StreamEvent:
    """One event decoded from a ``data:`` frame."""
    kind: StreamEventKind
    payload: dict[str, Any]

    @property
    def data(self) -> Any:
        """Output chunk of an ``output`` event."""
        return self.payload.get("data")

    @property
    def error(self) -> Any:
        """Failure description of an ``error`` event."""
        return self.payload.get("error")

    @property
    def execution_time(self) -> Optional[float]:
        """Elapsed execution time reported by an ``end`` event."""
        return self.payload.get("executionTime")


@dataclass
class StreamCallbacks:
    """Handlers for streamed execution events.

    Any handler left as None discards its events. ``on_output`` receives the
    output chunk and ``on_error`` the error description; ``on_start`` and
    ``on_end`` receive the whole event payload.
    """
    on_start: Optional[Callable[[dict[str, Any]], Any]] = None
    on_output: Optional[Callable[[Any], Any]] = None
    on_error: Optional[Callable[[Any], Any]] = None
    on_end: Optional[Callable[[dict[str, Any]], Any]] = None

    def dispatch(self, event: StreamEvent) -> None:
        """Invoke the handler registered for the event's kind, if any."""
        if event.kind is StreamEventKind.START:
            if self.on_start:
                self.on_start(event.payload)
        elif event.kind is StreamEventKind.OUTPUT:
            if self.on_output:
                self.on_output(event.data)
        elif event.kind is StreamEventKind.ERROR:
            if self.on_error:
                self.on_error(event.error)
        elif event.kind is StreamEventKind.END:
            if self.on_end:
                self.on_end(event.payload)


def parse_frame(line: str) -> Optional[StreamEvent]:
    """Decode a single line into an event.

    Returns None for blank lines, lines without the ``data: `` prefix and
    payloads that are not a JSON object with a known ``type``. Broken payloads
    are logged and never raised.
    """
    if line.endswith("\r"):
        line = line[:-1]
    if not line.startswith(DATA_PREFIX):
        return None

    try:
        payload = json.loads(line[len(DATA_PREFIX):])
    except ValueError as e:
        logger.warning(f"Failed to parse stream frame: {e}")
        return None

    if not isinstance(payload, dict):
        logger.warning(f"Ignoring stream frame that is not a JSON object: {line!r}")
        return None

    kind = payload.get("type")
    if not isinstance(kind, str) or kind not in _KINDS:
        logger.debug(f"Ignoring stream event of unknown type: {kind!r}")
        return None

    return StreamEvent(kind=_KINDS[kind], payload=payload)


class StreamDecoder:
    """Incremental decoder that turns text chunks into dispatched events.

    The decoder is either reading or closed. Once closed it can't be reused;
    a new streaming call gets a new decoder.
    """

    def __init__(self, callbacks: Optional[StreamCallbacks] = None):
        self._callbacks = callbacks or StreamCallbacks()
        self._buffer = ""
        self._closed = False

    @property
    def closed(self) -> bool:
        """True once the stream has ended or was abandoned."""
        return self._closed

    def feed(self, chunk: str) -> list[StreamEvent]:
        """Decode a chunk and dispatch every complete frame it finishes.

        Args:
            chunk: Next piece of the response body, of any length.

        Returns:
            The events dispatched for this chunk, in stream order.

        Raises:
            StreamClosedError: If the decoder was already closed.
        """
        if self._closed:
            raise StreamClosedError("Cannot feed a closed stream decoder")

        lines = (self._buffer + chunk).split("\n")
        # The last piece has no newline yet; keep it for the next chunk
        self._buffer = lines.pop()

        events = []
        for line in lines:
            event = parse_frame(line)
            if event is None:
                continue
            self._callbacks.dispatch(event)
            events.append(event)
        return events

    def close(self) -> None:
        """End the stream, discarding any unterminated trailing line."""
        if self._buffer:
            logger.debug(f"Discarding incomplete stream frame: {self._buffer!r}")
        self._buffer = ""
        self._closed = True


def decode_stream(chunks: Iterable[str], callbacks: Optional[StreamCallbacks] = None) -> int:
    """Feed every chunk of a synchronous iterable through a fresh decoder.

    Returns:
        Number of events dispatched.
    """
    decoder = StreamDecoder(callbacks)
    count = 0
    try:
        for chunk in chunks:
            count += len(decoder.feed(chunk))
    finally:
        decoder.close()
    return count


async def adecode_stream(
    chunks: AsyncIterable[str],
    callbacks: Optional[StreamCallbacks] = None,
) -> int:
    """Feed every chunk of an async iterable through a fresh decoder.

    The only suspension point is waiting for the next chunk; callbacks run
    inline, so a slow callback slows down reading.

    Returns:
        Number of events dispatched.
    """
    decoder = StreamDecoder(callbacks)
    count = 0
    try:
        async for chunk in chunks:
            count += len(decoder.feed(chunk))
    finally:
        decoder.close()
    return count
