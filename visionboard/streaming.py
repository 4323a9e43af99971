"""Incremental delivery of run events to a caller."""

import json
import logging
import queue
import threading
from typing import TYPE_CHECKING, Iterator

from .schemas import ErrorEvent, GenerationRequest, StreamEvent

if TYPE_CHECKING:
    from .pipeline import RetryOrchestrator

logger = logging.getLogger(__name__)

_CLOSED = object()

# How long a finished stream waits for its worker thread to exit.
JOIN_TIMEOUT_SECONDS = 1.0


class ProgressStreamer:
    """Thread-safe event channel for one run.

    Events are handed to the consumer in the order they were emitted, as
    soon as they are emitted. Only the first terminal event is delivered;
    anything emitted after it is dropped.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._terminated = False
        self._closed = False
        self._attempts_started = 0

    @property
    def terminated(self) -> bool:
        return self._terminated

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def attempts_started(self) -> int:
        """Highest attempt number announced so far."""
        return self._attempts_started

    def emit(self, event: StreamEvent) -> None:
        with self._lock:
            if self._closed or self._terminated:
                logger.debug("Dropping %s event emitted after the run ended", event.type)
                return
            if event.type == "attempt":
                self._attempts_started = max(self._attempts_started, event.attempt_number)
            if event.is_terminal:
                self._terminated = True
            self._queue.put(event)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[StreamEvent]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item


def stream_run(
    orchestrator: "RetryOrchestrator",
    request: GenerationRequest,
) -> Iterator[StreamEvent]:
    """Run a request on a worker thread and yield its events as they happen.

    The stream always ends with exactly one terminal event. If the consumer
    stops iterating early, the run is cancelled at its next phase boundary.
    """
    streamer = ProgressStreamer()
    cancel = threading.Event()

    def worker() -> None:
        try:
            orchestrator.run(request, streamer.emit, cancel=cancel)
        except Exception as e:
            logger.exception("[%s] Vision board generation crashed", request.request_id)
            streamer.emit(ErrorEvent(
                message=str(e) or "Vision board generation failed",
                attempts_used=streamer.attempts_started,
            ))
        finally:
            if not streamer.terminated:
                streamer.emit(ErrorEvent(
                    message="Vision board generation ended without a result",
                    attempts_used=streamer.attempts_started,
                ))
            streamer.close()

    thread = threading.Thread(
        target=worker,
        name=f"visionboard-{request.request_id}",
        daemon=True,
    )
    thread.start()

    try:
        yield from streamer
    finally:
        if not streamer.closed:
            logger.info("[%s] Stream consumer went away; cancelling run", request.request_id)
        cancel.set()
        thread.join(timeout=JOIN_TIMEOUT_SECONDS)
        if thread.is_alive():
            logger.info("[%s] Run still winding down after the stream ended", request.request_id)


def encode_sse(event: StreamEvent) -> str:
    """Render an event as one server-sent-events ``data:`` frame."""
    return f"data: {json.dumps(event.to_wire())}\n\n"


def encode_json_line(event: StreamEvent) -> str:
    """Render an event as one line of newline-delimited JSON."""
    return json.dumps(event.to_wire()) + "\n"
