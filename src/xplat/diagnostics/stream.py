"""Broadcast stream of diagnostic events.

Every subscriber owns a bounded buffer. Publishing never blocks: when a
subscriber's buffer is full its oldest event is discarded to make room.
Each event carries a stream-wide sequence number, so a subscriber that
fell behind can see exactly where its gaps are. There is no replay, and a
subscriber only receives events published after it subscribed.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from types import TracebackType

from xplat.config.constants import STREAM_BUFFER_CAPACITY
from xplat.diagnostics.events import (
    AnalysisProgress,
    DiagnosticAdded,
    DiagnosticDismissed,
    DiagnosticEvent,
    DiagnosticResolution,
    DiagnosticResolved,
    FileCleared,
    ProgressUpdated,
    ResolutionMethod,
)
from xplat.diagnostics.models import Diagnostic, DiagnosticFix


@dataclass(frozen=True)
class Envelope:
    """An event with its position in the stream."""

    sequence: int
    event: DiagnosticEvent


class Subscription:
    """One consumer's view of the stream."""

    def __init__(self, stream: DiagnosticStream, capacity: int) -> None:
        self._stream = stream
        self._buffer: deque[Envelope] = deque(maxlen=capacity)
        self._cond = threading.Condition()
        self._dropped = 0
        self._closed = False

    @property
    def dropped_count(self) -> int:
        """Number of events discarded because this subscriber fell behind."""
        return self._dropped

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, envelope: Envelope) -> None:
        with self._cond:
            if self._closed:
                return
            if len(self._buffer) == self._buffer.maxlen:
                self._dropped += 1
            self._buffer.append(envelope)
            self._cond.notify()

    def get(self, timeout: float | None = None) -> Envelope | None:
        """Next buffered event, waiting up to timeout. None on timeout or close."""
        with self._cond:
            if not self._cond.wait_for(lambda: self._buffer or self._closed, timeout=timeout):
                return None
            if self._buffer:
                return self._buffer.popleft()
            return None

    def drain(self) -> list[Envelope]:
        """All buffered events, oldest first, without waiting."""
        with self._cond:
            items = list(self._buffer)
            self._buffer.clear()
            return items

    def close(self) -> None:
        """Stop receiving events. Buffered events stay drainable."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._stream._unsubscribe(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


class DiagnosticStream:
    """Multi-producer, multi-consumer broadcast channel for diagnostic events.

    Usage::

        stream = DiagnosticStream()
        with stream.subscribe() as sub:
            engine.run(repo)
            for envelope in sub.drain():
                handle(envelope.event)
    """

    def __init__(self, capacity: int = STREAM_BUFFER_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive: {capacity}")
        self._capacity = capacity
        self._lock = threading.Lock()
        self._subscribers: list[Subscription] = []
        self._sequence = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscription:
        sub = Subscription(self, self._capacity)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

    def publish(self, event: DiagnosticEvent) -> int:
        """Deliver event to every current subscriber. Returns its sequence number."""
        with self._lock:
            self._sequence += 1
            envelope = Envelope(self._sequence, event)
            # Offer under the lock so every subscriber sees sequence order
            for sub in self._subscribers:
                sub._offer(envelope)
        return envelope.sequence

    def emit(self, diagnostic: Diagnostic) -> int:
        return self.publish(DiagnosticAdded(diagnostic))

    def emit_batch(self, diagnostics: Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self.emit(diagnostic)

    def emit_resolved(
        self,
        diagnostic_id: str,
        method: ResolutionMethod,
        fix: DiagnosticFix | None = None,
    ) -> int:
        return self.publish(DiagnosticResolved(diagnostic_id, DiagnosticResolution(method, fix)))

    def emit_dismissed(self, diagnostic_id: str, reason: str | None = None) -> int:
        return self.publish(DiagnosticDismissed(diagnostic_id, reason))

    def emit_file_clear(self, file_path: str) -> int:
        return self.publish(FileCleared(file_path))

    def emit_progress(
        self,
        phase: str,
        *,
        current_file: str | None = None,
        files_processed: int = 0,
        total_files: int = 0,
        diagnostics_found: int = 0,
    ) -> int:
        return self.publish(
            ProgressUpdated(
                AnalysisProgress(
                    phase=phase,
                    current_file=current_file,
                    files_processed=files_processed,
                    total_files=total_files,
                    diagnostics_found=diagnostics_found,
                )
            )
        )
