# -*- coding: utf-8 -*-
"""Tests for the asynchronous FileProcessor."""

import asyncio
import threading
import time

import pytest

from conftest import FG_HEADER, build_workbook, fg_rows
from stockrisk.config import StockRiskConfig
from stockrisk.exceptions import (
    FILE_PROCESSING_TIMEOUT,
    FILE_SIZE_EXCEEDED,
    INVALID_FILE_TYPE,
    PROCESSING_FAILED,
    ProcessingCancelledError,
    ProcessorBusyError,
)
from stockrisk.ingestion.file_processor import FileProcessor
from stockrisk.ingestion.pipeline import IngestionPipeline
from stockrisk.models import (
    ErrorKind,
    ProcessingOptions,
    ProcessingPhase,
    ProcessingResult,
    ProgressEvent,
)


class _SlowPipeline:
    """Pipeline stand-in that blocks until cancelled or ``delay`` elapses."""

    def __init__(self, delay: float = 5.0):
        self.delay = delay
        self.cancel_events = []
        self.started = threading.Event()

    def run(self, content, file_name, schema, options, channel, cancel_event):
        self.cancel_events.append(cancel_event)
        self.started.set()
        channel.emit(ProcessingPhase.READING, 10, "Reading Excel file...")
        if cancel_event.wait(self.delay):
            raise ProcessingCancelledError()
        raise RuntimeError("slow pipeline finished without cancellation")

    def get_statistics(self):
        return {}


class _UninterruptiblePipeline(IngestionPipeline):
    """First run blocks the worker for ``delay`` and ignores cancellation."""

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay
        self.calls = 0
        self.first_run_done = threading.Event()

    def run(self, content, file_name, schema, options=None, channel=None, cancel_event=None):
        self.calls += 1
        if self.calls == 1:
            time.sleep(self.delay)
            self.first_run_done.set()
            raise ProcessingCancelledError()
        return super().run(content, file_name, schema, options, channel, cancel_event)


@pytest.fixture
def processor(config, registry):
    processor = FileProcessor(config=config, registry=registry)
    yield processor
    processor.shutdown()


def _slow_processor(registry, pipeline, **config_kwargs):
    config = StockRiskConfig(enable_metrics=False, **config_kwargs)
    return FileProcessor(config=config, registry=registry, pipeline=pipeline)


class TestGate:
    """Size and extension checks before any decoding."""

    @pytest.mark.asyncio
    async def test_size_checked_first(self, processor):
        result = await processor.process_file(
            b"x", "notes.csv", "inventory", file_size=101 * 1024 * 1024,
        )

        assert not result.success
        assert result.error.kind == ErrorKind.SIZE
        assert result.error.message == FILE_SIZE_EXCEEDED

    @pytest.mark.asyncio
    async def test_extension_rejected(self, processor, inventory_workbook):
        result = await processor.process_file(inventory_workbook, "stock.csv", "inventory")

        assert result.error.kind == ErrorKind.FORMAT
        assert result.error.message == INVALID_FILE_TYPE

    @pytest.mark.asyncio
    async def test_extension_is_case_insensitive(self, processor, inventory_workbook):
        result = await processor.process_file(inventory_workbook, "STOCK.XLSX", "inventory")
        assert result.success

    def test_validate_file_only(self, processor):
        assert processor.validate_file_only("stock.xls", 1024, "osr") is None
        assert processor.validate_file_only(".xlsx", 1024, "osr") is None
        assert processor.validate_file_only("archive.tar.XLSX", 1024, "osr") is None
        assert processor.validate_file_only("xlsx", 1024, "osr").kind == ErrorKind.FORMAT
        error = processor.validate_file_only("stock.xlsm", 1024, "osr")
        assert error.kind == ErrorKind.FORMAT

    def test_config_limits_applied(self, registry):
        config = StockRiskConfig(
            max_file_size_mb=1, allowed_extensions=".xlsx", processing_timeout_seconds=30,
        )
        processor = FileProcessor(config=config, registry=registry)
        try:
            schema = processor.schema_for("inventory")
            assert schema.max_file_size == 1024 * 1024
            assert schema.allowed_extensions == [".xlsx"]
            assert schema.processing_timeout == 30
            assert processor.validate_file_only("a.xls", 10, "inventory").kind == ErrorKind.FORMAT
        finally:
            processor.shutdown()


class TestProcessFile:
    """Successful and failed runs."""

    @pytest.mark.asyncio
    async def test_success_with_progress(self, processor, inventory_workbook):
        events = []
        result = await processor.process_file(
            inventory_workbook, "stock.xlsx", "inventory", on_progress=events.append,
        )

        assert result.success
        assert result.data.sheets[0].name == "FG value"
        assert result.data.sheets[0].row_count == 10
        assert events[0].phase == ProcessingPhase.READING
        assert events[-1].phase == ProcessingPhase.COMPLETE
        assert events[-1].progress == 100
        assert [e.progress for e in events] == sorted(e.progress for e in events)

    @pytest.mark.asyncio
    async def test_missing_sheet(self, processor, osr_workbook):
        result = await processor.process_file(osr_workbook, "osr.xlsx", "inventory")

        assert result.error.kind == ErrorKind.SHEETS
        assert result.error.message == (
            'Required sheet "FG value" not found. '
            "Available sheets: OSR Main Sheet HC, OSR Summary"
        )
        assert result.data is None

    @pytest.mark.asyncio
    async def test_missing_column(self, processor):
        content = build_workbook({"FG value": [FG_HEADER[1:]] + [r[1:] for r in fg_rows(1)]})
        result = await processor.process_file(content, "stock.xlsx", "inventory")

        assert result.error.kind == ErrorKind.COLUMNS
        assert "Pack Size(m.d.)" in result.error.message

    @pytest.mark.asyncio
    async def test_missing_column_tolerated_by_options(self, processor):
        content = build_workbook({"FG value": [FG_HEADER[1:]] + [r[1:] for r in fg_rows(1)]})
        result = await processor.process_file(
            content, "stock.xlsx", "inventory",
            options=ProcessingOptions(validate_columns=False),
        )
        assert result.success

    @pytest.mark.asyncio
    async def test_corrupt_file(self, processor):
        result = await processor.process_file(b"PK\x03\x04broken", "stock.xlsx", "osr")

        assert result.error.kind == ErrorKind.PARSING
        assert result.error.message == PROCESSING_FAILED

    @pytest.mark.asyncio
    async def test_statistics(self, processor, inventory_workbook):
        await processor.process_file(inventory_workbook, "stock.xlsx", "inventory")
        await processor.process_file(inventory_workbook, "stock.txt", "inventory")
        stats = processor.get_statistics()

        assert stats["runs_dispatched"] == 2
        assert stats["runs_succeeded"] == 1
        assert stats["runs_failed"] == 1
        assert stats["busy"] is False
        assert stats["pipeline"]["runs_completed"] == 1

    @pytest.mark.asyncio
    async def test_process_stream(self, processor, osr_workbook):
        items = [item async for item in processor.process_stream(osr_workbook, "osr.xlsx", "osr")]

        assert isinstance(items[-1], ProcessingResult)
        assert items[-1].success
        events = items[:-1]
        assert events and all(isinstance(e, ProgressEvent) for e in events)
        assert events[-1].phase == ProcessingPhase.COMPLETE

    def test_expected_names(self, processor):
        assert processor.expected_sheet_names("inventory") == ["FG value", "RPM"]
        assert "Total OSR Value PKR" in processor.expected_columns("osr")


class TestConcurrency:
    """Timeout, queueing and rejection of overlapping runs."""

    @pytest.mark.asyncio
    async def test_timeout(self, registry, inventory_workbook):
        pipeline = _SlowPipeline(delay=5.0)
        processor = _slow_processor(registry, pipeline, processing_timeout_seconds=0.2)
        try:
            result = await processor.process_file(inventory_workbook, "stock.xlsx", "inventory")
        finally:
            processor.shutdown()

        assert not result.success
        assert result.error.kind == ErrorKind.PARSING
        assert result.error.message == FILE_PROCESSING_TIMEOUT
        assert result.data is None
        assert pipeline.cancel_events[0].is_set()
        assert processor.get_statistics()["runs_timed_out"] == 1

    @pytest.mark.asyncio
    async def test_timed_out_run_releases_worker_before_next_run(
        self, registry, inventory_workbook,
    ):
        """A queued run only starts its clock once the abandoned run has left the worker."""
        pipeline = _UninterruptiblePipeline(delay=1.0)
        processor = _slow_processor(registry, pipeline, processing_timeout_seconds=0.5)
        try:
            first = asyncio.ensure_future(
                processor.process_file(inventory_workbook, "a.xlsx", "inventory")
            )
            second = asyncio.ensure_future(
                processor.process_file(inventory_workbook, "b.xlsx", "inventory")
            )

            first_result = await first
            assert pipeline.first_run_done.is_set()
            second_result = await second
        finally:
            processor.shutdown()

        assert first_result.error.message == FILE_PROCESSING_TIMEOUT
        assert second_result.success
        assert second_result.data.sheets[0].row_count == 10
        assert processor.get_statistics()["runs_timed_out"] == 1

    @pytest.mark.asyncio
    async def test_reject_policy(self, registry, inventory_workbook):
        pipeline = _SlowPipeline(delay=5.0)
        processor = _slow_processor(registry, pipeline, concurrent_dispatch="reject")
        try:
            first = asyncio.ensure_future(
                processor.process_file(inventory_workbook, "a.xlsx", "inventory")
            )
            while not pipeline.started.is_set():
                await asyncio.sleep(0.01)
            assert processor.is_busy

            with pytest.raises(ProcessorBusyError):
                await processor.process_file(inventory_workbook, "b.xlsx", "inventory")

            assert processor.cancel() is True
            result = await first
        finally:
            processor.shutdown()

        assert result.error.kind == ErrorKind.PARSING
        assert processor.get_statistics()["runs_rejected"] == 1

    @pytest.mark.asyncio
    async def test_queue_policy_runs_in_turn(self, processor, inventory_workbook, osr_workbook):
        results = await asyncio.gather(
            processor.process_file(inventory_workbook, "stock.xlsx", "inventory"),
            processor.process_file(osr_workbook, "osr.xlsx", "osr"),
        )

        assert [r.success for r in results] == [True, True]
        assert results[1].data.sheets[0].name == "OSR Main Sheet HC"
        assert processor.get_statistics()["runs_dispatched"] == 2
        assert processor.get_statistics()["waiting"] == 0

    @pytest.mark.asyncio
    async def test_shutdown_refuses_new_runs(self, processor, inventory_workbook):
        processor.shutdown()
        with pytest.raises(RuntimeError):
            await processor.process_file(inventory_workbook, "stock.xlsx", "inventory")
