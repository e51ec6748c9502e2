"""
Typed event stream for pipeline observers.

The orchestrator and its collaborators publish three kinds of events:
- LogEvent: a narrated line with a severity
- ProgressEvent: percentage reported by an external stage
- StateEvent: batch started / finished (is_processing)

Any number of subscribers can consume them, either as an asyncio queue
(UI bridges, `stream()`) or as a synchronous listener callback (CLI,
tests). Log events are mirrored to the standard logging module.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Callable, List, Union

logger = logging.getLogger(__name__)


class Severity(Enum):
    """Log event severities"""
    DEBUG = "debug"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


LOG_LEVELS = {
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class LogEvent:
    message: str
    severity: Severity = Severity.INFO


@dataclass(frozen=True)
class ProgressEvent:
    operation: str
    percent: float


@dataclass(frozen=True)
class StateEvent:
    is_processing: bool


PipelineEvent = Union[LogEvent, ProgressEvent, StateEvent]
Listener = Callable[[PipelineEvent], None]


class EventBus:
    """Fan-out channel for pipeline events."""

    def __init__(self, logger_name: str = "core.pipeline"):
        self._queues: List[asyncio.Queue] = []
        self._listeners: List[Listener] = []
        self._log = logging.getLogger(logger_name)

    def subscribe(self) -> asyncio.Queue:
        """Register a new queue that receives every future event."""
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, event: PipelineEvent) -> None:
        for queue in list(self._queues):
            queue.put_nowait(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Event listener {listener!r} failed on {event!r}")

    def log(self, message: str, severity: Severity = Severity.INFO) -> None:
        """Narrate a line to subscribers and the logging module."""
        if not message:
            logger.error("log called with empty message")
            return
        self._log.log(LOG_LEVELS[severity], message)
        self.publish(LogEvent(message=message, severity=severity))

    def progress(self, operation: str, percent: float) -> None:
        self.publish(ProgressEvent(operation=operation, percent=max(0.0, min(100.0, percent))))

    def state(self, is_processing: bool) -> None:
        self.publish(StateEvent(is_processing=is_processing))

    async def stream(self) -> AsyncIterator[PipelineEvent]:
        """
        Iterate over events until a batch reports it is no longer processing.

        The terminal StateEvent is yielded before the iterator ends.
        """
        queue = self.subscribe()
        try:
            while True:
                event = await queue.get()
                yield event
                if isinstance(event, StateEvent) and not event.is_processing:
                    return
        finally:
            self.unsubscribe(queue)
