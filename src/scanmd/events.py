"""Progress events and the channel that carries them to the caller.

The pipeline worker only ever talks to its caller through an
:class:`EventChannel`: a bounded FIFO of events.  A run emits any number of
:class:`OverallProgress`, :class:`ChunkProgress` and :class:`StatusMessage`
events and ends with exactly one terminal event, :class:`Finished` or
:class:`Failed`.
"""

from __future__ import annotations

import queue
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Union


@dataclass(frozen=True)
class OverallProgress:
    fraction: float


@dataclass(frozen=True)
class ChunkProgress:
    fraction: float


@dataclass(frozen=True)
class StatusMessage:
    text: str


@dataclass(frozen=True)
class Finished:
    output_dirs: List[Path] = field(default_factory=list)


@dataclass(frozen=True)
class Failed:
    error: str


Event = Union[OverallProgress, ChunkProgress, StatusMessage, Finished, Failed]

TERMINAL_EVENTS = (Finished, Failed)


def is_terminal(event: Event) -> bool:
    return isinstance(event, TERMINAL_EVENTS)


class EventChannel:
    """Bounded, ordered, one‑directional event queue.

    The producer calls :meth:`emit`; it blocks only while the buffer is
    full.  The consumer either polls with :meth:`drain` or iterates with
    :meth:`events` until the terminal event.
    """

    def __init__(self, maxsize: int = 100) -> None:
        # maxsize <= 0 means unbounded
        self._queue: "queue.Queue[Event]" = queue.Queue(maxsize=maxsize)

    def emit(self, event: Event) -> None:
        self._queue.put(event)

    def drain(self) -> List[Event]:
        """Return every event buffered right now, in emission order."""
        out: List[Event] = []
        while True:
            try:
                out.append(self._queue.get_nowait())
            except queue.Empty:
                return out

    def events(self, timeout: Optional[float] = None) -> Iterator[Event]:
        """Yield events in order, stopping after the terminal one.

        Raises ``queue.Empty`` if no event arrives within ``timeout``.
        """
        while True:
            event = self._queue.get(timeout=timeout)
            yield event
            if is_terminal(event):
                return
