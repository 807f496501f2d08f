# -*- coding: utf-8 -*-
"""
Progress Channel - StockRisk Ingestion

The only channel between a running pipeline and its caller. Events are
emitted from the worker thread and delivered on the caller's event loop,
either to a callback or to an async iterator. Phases must advance in order
(reading, parsing, validating, processing, complete) and the percentage
never goes backwards.

Example:
    >>> channel = ProgressChannel(loop=asyncio.get_running_loop())
    >>> channel.emit(ProcessingPhase.READING, 10, "Reading Excel file...")
    >>> async for event in channel:
    ...     print(event.phase, event.progress)

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import AsyncIterator, Callable, List, Optional

from stockrisk.models import ProcessingPhase, ProgressEvent

logger = logging.getLogger(__name__)

__all__ = ["ProgressChannel", "ProgressCallback"]

ProgressCallback = Callable[[ProgressEvent], None]

_CLOSED = object()


class ProgressChannel:
    """Ordered, monotonic progress events from a worker to the caller.

    Without a loop, events are delivered synchronously on the emitting
    thread (used by the synchronous pipeline entry point and tests).

    Attributes:
        history: Every event emitted so far, in order.
    """

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        callback: Optional[ProgressCallback] = None,
    ) -> None:
        self._loop = loop
        self._callback = callback
        self._queue: Optional[asyncio.Queue] = asyncio.Queue() if loop is not None else None
        self._lock = threading.Lock()
        self._last: Optional[ProgressEvent] = None
        self._closed = False
        self.history: List[ProgressEvent] = []

    @property
    def last(self) -> Optional[ProgressEvent]:
        return self._last

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(
        self,
        phase: ProcessingPhase,
        progress: float,
        message: str = "",
        **extra,
    ) -> Optional[ProgressEvent]:
        """Emit an event.

        Args:
            phase: Phase of the event; may not precede the previous phase.
            progress: Percent complete; clamped to [previous, 100].
            message: Status message.
            **extra: ``current_sheet``, ``total_sheets``, ``processed_sheets``.

        Returns:
            The emitted event, or None once the channel is closed.

        Raises:
            ValueError: If ``phase`` goes backwards.
        """
        with self._lock:
            if self._closed:
                return None
            floor = 0.0
            if self._last is not None:
                if phase.order < self._last.phase.order:
                    raise ValueError(
                        f"progress phase cannot go back from "
                        f"{self._last.phase.value} to {phase.value}"
                    )
                floor = self._last.progress
            event = ProgressEvent(
                phase=phase,
                progress=round(min(100.0, max(floor, float(progress))), 2),
                message=message,
                **extra,
            )
            self._last = event
            self.history.append(event)

        logger.debug("Progress %s %.1f%% %s", event.phase.value, event.progress, message)
        self._deliver(event)
        return event

    def close(self) -> None:
        """Stop accepting events and end any async iteration."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._deliver(_CLOSED)

    def _deliver(self, item: object) -> None:
        if self._loop is None:
            if item is not _CLOSED and self._callback is not None:
                self._safe_callback(item)
            return
        try:
            self._loop.call_soon_threadsafe(self._dispatch, item)
        except RuntimeError:
            # Loop already closed; the caller is gone
            logger.debug("Dropping progress event: event loop closed")

    def _dispatch(self, item: object) -> None:
        if item is not _CLOSED and self._callback is not None:
            self._safe_callback(item)
        self._queue.put_nowait(item)

    def _safe_callback(self, event: ProgressEvent) -> None:
        try:
            self._callback(event)
        except Exception as exc:
            logger.warning("Progress callback failed: %s", exc)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        if self._queue is None:
            for event in list(self.history):
                yield event
            return
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item
