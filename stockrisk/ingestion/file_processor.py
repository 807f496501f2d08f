# -*- coding: utf-8 -*-
"""
File Processor - StockRisk Ingestion

Asynchronous entry point for processing an uploaded workbook. Each run is
gated on size and extension, dispatched to a single worker thread so the
caller's event loop is never blocked, bounded by a timeout, and reported
through a ``ProgressChannel``. The outcome is always a ``ProcessingResult``;
failures never leak stack traces or library messages to the caller.

Concurrency:
    - One run at a time per processor. Overlapping dispatches wait their
      turn (``queue``) or are refused with ``ProcessorBusyError``
      (``reject``).
    - On timeout the run's cancel flag is set and the processor stays busy
      until the worker has abandoned the run; nothing partial is returned.
    - Runs are never retried automatically.

Example:
    >>> processor = FileProcessor()
    >>> result = await processor.process_file(content, "stock.xlsx", "inventory")
    >>> result.success, result.stats.total_rows
    (True, 10)

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from stockrisk.config import StockRiskConfig, get_config
from stockrisk.exceptions import (
    PROCESSING_FAILED,
    FileSizeExceededError,
    IngestionError,
    ProcessingCancelledError,
    ProcessingTimeoutError,
    ProcessorBusyError,
    UnsupportedFileTypeError,
)
from stockrisk.ingestion.pipeline import IngestionPipeline
from stockrisk.ingestion.progress import ProgressCallback, ProgressChannel
from stockrisk.ingestion.schema_registry import SchemaRegistry, get_registry
from stockrisk.metrics import (
    record_error,
    record_file_processed,
    record_processing_duration,
    record_rows_normalized,
    record_cell_warnings,
    update_active_jobs,
    update_queue_size,
)
from stockrisk.models import (
    ErrorKind,
    FileCategory,
    ProcessingError,
    ProcessingOptions,
    ProcessingResult,
    ProgressEvent,
    SchemaConfig,
)

logger = logging.getLogger(__name__)

__all__ = ["FileProcessor"]


class FileProcessor:
    """Async facade over the ingestion pipeline.

    Attributes:
        config: Service configuration.
        registry: Schema registry shared read-only by all runs.
        _pipeline: Synchronous staged pipeline.
        _executor: Single-thread executor the pipeline runs on.
        _run_lock: Serialises runs on this processor.
        _current_cancel: Cancel flag of the in-flight run.
    """

    def __init__(
        self,
        config: Optional[StockRiskConfig] = None,
        registry: Optional[SchemaRegistry] = None,
        pipeline: Optional[IngestionPipeline] = None,
    ) -> None:
        self.config = config or get_config()
        self.registry = registry or get_registry()
        self._pipeline = pipeline or IngestionPipeline()
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="stockrisk-worker",
        )
        self._run_lock = asyncio.Lock()
        self._current_cancel: Optional[threading.Event] = None
        self._waiting = 0
        self._closed = False
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {
            "runs_dispatched": 0,
            "runs_succeeded": 0,
            "runs_failed": 0,
            "runs_rejected": 0,
            "runs_timed_out": 0,
        }
        logger.info(
            "FileProcessor initialised: timeout=%.0fs, dispatch=%s",
            self.config.processing_timeout_seconds, self.config.concurrent_dispatch,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def is_busy(self) -> bool:
        return self._run_lock.locked()

    def expected_sheet_names(self, category: Union[str, FileCategory]) -> List[str]:
        return self.registry.expected_sheet_names(category)

    def expected_columns(self, category: Union[str, FileCategory]) -> List[str]:
        return self.registry.expected_columns(category)

    def schema_for(self, category: Union[str, FileCategory]) -> SchemaConfig:
        """Category schema with the configured file limits applied."""
        schema = self.registry.get(category)
        overrides: Dict[str, Any] = {}
        if self.config.max_file_size_bytes != schema.max_file_size:
            overrides["max_file_size"] = self.config.max_file_size_bytes
        if self.config.extensions != schema.allowed_extensions:
            overrides["allowed_extensions"] = self.config.extensions
        if self.config.processing_timeout_seconds != schema.processing_timeout:
            overrides["processing_timeout"] = self.config.processing_timeout_seconds
        if overrides:
            return self.registry.with_overrides(category, **overrides)
        return schema

    # ------------------------------------------------------------------
    # Gate
    # ------------------------------------------------------------------

    def validate_file(
        self,
        file_name: str,
        file_size: int,
        schema: SchemaConfig,
    ) -> None:
        """Check size, then extension.

        Raises:
            FileSizeExceededError: If ``file_size`` exceeds the limit.
            UnsupportedFileTypeError: If the extension is not allowed.
        """
        if file_size > schema.max_file_size:
            raise FileSizeExceededError(file_size, schema.max_file_size)
        _, dot, suffix = file_name.rpartition(".")
        extension = f".{suffix.lower()}" if dot else ""
        if extension not in schema.allowed_extensions:
            raise UnsupportedFileTypeError(file_name, schema.allowed_extensions)

    def validate_file_only(
        self,
        file_name: str,
        file_size: int,
        category: Union[str, FileCategory],
    ) -> Optional[ProcessingError]:
        """Run the size/extension gate without processing.

        Returns:
            None when the file passes, else the ProcessingError.
        """
        try:
            self.validate_file(file_name, file_size, self.schema_for(category))
        except IngestionError as exc:
            return exc.to_processing_error()
        return None

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_file(
        self,
        content: bytes,
        file_name: str,
        category: Union[str, FileCategory],
        options: Optional[ProcessingOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        file_size: Optional[int] = None,
    ) -> ProcessingResult:
        """Process one uploaded workbook.

        Args:
            content: Raw workbook bytes.
            file_name: Original file name (extension is checked).
            category: ``inventory`` or ``osr``.
            options: Pipeline switches; defaults come from the config.
            on_progress: Callback receiving ProgressEvents on the loop.
            file_size: Declared size; ``len(content)`` when omitted.

        Returns:
            ProcessingResult (never raises for processing failures).

        Raises:
            ProcessorBusyError: With ``reject`` dispatch while a run is active.
            ConfigurationError: If the category has no schema.
        """
        loop = asyncio.get_running_loop()
        channel = ProgressChannel(loop=loop, callback=on_progress)
        try:
            return await self._dispatch(
                content, file_name, category, options, channel, file_size,
            )
        finally:
            channel.close()

    async def process_stream(
        self,
        content: bytes,
        file_name: str,
        category: Union[str, FileCategory],
        options: Optional[ProcessingOptions] = None,
        file_size: Optional[int] = None,
    ) -> AsyncIterator[Union[ProgressEvent, ProcessingResult]]:
        """Run as a stream: progress events, then the terminal result."""
        loop = asyncio.get_running_loop()
        channel = ProgressChannel(loop=loop)
        task = asyncio.ensure_future(
            self._dispatch(content, file_name, category, options, channel, file_size)
        )
        task.add_done_callback(lambda _: channel.close())
        try:
            async for event in channel:
                yield event
            yield await task
        finally:
            if not task.done():
                task.cancel()

    async def _dispatch(
        self,
        content: bytes,
        file_name: str,
        category: Union[str, FileCategory],
        options: Optional[ProcessingOptions],
        channel: ProgressChannel,
        file_size: Optional[int],
    ) -> ProcessingResult:
        if self._closed:
            raise RuntimeError("FileProcessor has been shut down")
        if self.config.concurrent_dispatch == "reject" and self._run_lock.locked():
            with self._lock:
                self._stats["runs_rejected"] += 1
            raise ProcessorBusyError(
                "Another file is already being processed",
                context={"file_name": file_name},
            )

        schema = self.schema_for(category)
        options = options or ProcessingOptions.from_config(self.config)
        size = len(content) if file_size is None else file_size

        self._set_waiting(1)
        try:
            await self._run_lock.acquire()
        finally:
            self._set_waiting(-1)
        try:
            with self._lock:
                self._stats["runs_dispatched"] += 1
            result = await self._run(content, file_name, schema, options, channel, size)
        finally:
            self._run_lock.release()

        with self._lock:
            self._stats["runs_succeeded" if result.success else "runs_failed"] += 1
        return result

    def _set_waiting(self, delta: int) -> None:
        self._waiting += delta
        if self.config.enable_metrics:
            update_queue_size(self._waiting)

    async def _run(
        self,
        content: bytes,
        file_name: str,
        schema: SchemaConfig,
        options: ProcessingOptions,
        channel: ProgressChannel,
        size: int,
    ) -> ProcessingResult:
        start = time.monotonic()
        category = schema.category.value
        metrics_on = self.config.enable_metrics

        # Step 1: size / extension gate
        try:
            self.validate_file(file_name, size, schema)
        except IngestionError as exc:
            logger.warning("Rejected '%s': %s", file_name, exc.message)
            if metrics_on:
                record_error(exc.kind)
                record_file_processed(category, "rejected")
            return ProcessingResult.failure(exc.to_processing_error())

        # Step 2: dispatch to the worker thread
        cancel_event = threading.Event()
        self._current_cancel = cancel_event
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(
            self._executor,
            self._pipeline.run,
            content,
            file_name,
            schema,
            options,
            channel,
            cancel_event,
        )
        if metrics_on:
            update_active_jobs(1)
        try:
            result = await asyncio.wait_for(
                asyncio.shield(future), timeout=schema.processing_timeout,
            )
        except asyncio.TimeoutError:
            cancel_event.set()
            with self._lock:
                self._stats["runs_timed_out"] += 1
            logger.error(
                "Processing '%s' timed out after %.1fs",
                file_name, time.monotonic() - start,
            )
            await self._drain(future, file_name)
            result = ProcessingResult.failure(
                ProcessingTimeoutError(schema.processing_timeout).to_processing_error()
            )
        except asyncio.CancelledError:
            cancel_event.set()
            logger.warning("Processing '%s' was cancelled", file_name)
            await self._drain(future, file_name)
            raise
        except IngestionError as exc:
            logger.warning(
                "Processing '%s' failed (%s): %s", file_name, exc.kind, exc.message,
            )
            result = ProcessingResult.failure(exc.to_processing_error())
        except Exception as exc:
            logger.error(
                "Unexpected failure processing '%s': %s", file_name, exc, exc_info=True,
            )
            result = ProcessingResult.failure(
                ProcessingError(kind=ErrorKind.PARSING, message=PROCESSING_FAILED)
            )
        finally:
            self._current_cancel = None
            if metrics_on:
                update_active_jobs(-1)

        if metrics_on:
            record_processing_duration(time.monotonic() - start)
            if result.success:
                record_file_processed(category, "success")
                record_rows_normalized(result.stats.total_rows)
                record_cell_warnings(result.stats.validation_errors)
            else:
                record_file_processed(category, "failed")
                record_error(result.error.kind.value)
        return result

    async def _drain(self, future: "asyncio.Future[ProcessingResult]", file_name: str) -> None:
        """Wait for an abandoned run to leave the worker thread.

        The run lock stays held meanwhile, so the next run's timeout only
        starts once the worker is free. Whatever the abandoned run produced
        is discarded.
        """
        start = time.monotonic()
        try:
            await future
        except ProcessingCancelledError:
            logger.debug("Abandoned run for '%s' acknowledged cancellation", file_name)
        except Exception as exc:
            logger.warning(
                "Abandoned run for '%s' ended with %s: %s",
                file_name, type(exc).__name__, exc,
            )
        logger.info(
            "Worker released by abandoned run for '%s' after %.1f ms",
            file_name, (time.monotonic() - start) * 1000,
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Run counters plus pipeline statistics."""
        with self._lock:
            stats: Dict[str, Any] = dict(self._stats)
        stats["waiting"] = self._waiting
        stats["busy"] = self.is_busy
        stats["pipeline"] = self._pipeline.get_statistics()
        return stats

    def cancel(self) -> bool:
        """Ask the in-flight run to stop. Returns True if one was running."""
        cancel_event = self._current_cancel
        if cancel_event is None:
            return False
        cancel_event.set()
        return True

    def shutdown(self) -> None:
        """Cancel any in-flight run and release the worker thread."""
        self.cancel()
        self._closed = True
        self._executor.shutdown(wait=False)
        logger.info("FileProcessor shut down")
