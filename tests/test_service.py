# -*- coding: utf-8 -*-
"""Tests for the StockRiskService facade."""

import pytest

from stockrisk.analytics.combined_calculator import (
    INVENTORY_ONLY_DISCLOSURE,
    NO_DATA_MESSAGE,
)
from stockrisk.models import ErrorKind, FileCategory, ProcessingOptions
from stockrisk.service import StockRiskService, get_service, reset_service
from stockrisk.storage import InMemoryDataStore


@pytest.fixture
def service(config):
    service = StockRiskService(config=config)
    yield service
    service.processor.shutdown()


class TestUploads:
    """process_upload and persistence."""

    @pytest.mark.asyncio
    async def test_upload_is_stored(self, service, inventory_workbook):
        result = await service.process_upload(inventory_workbook, "stock.xlsx", "inventory")

        assert result.success
        assert service.get_active("inventory") == result.data
        (record,) = service.list_history("inventory")
        entries = service.get_provenance().entries(record.record_id)
        assert [e["action"] for e in entries] == ["upload"]
        assert service.get_statistics()["uploads_succeeded"] == 1
        assert service.get_statistics()["rows_stored"] == 10

    @pytest.mark.asyncio
    async def test_duplicate_upload(self, service, inventory_workbook):
        await service.process_upload(inventory_workbook, "stock.xlsx", "inventory")
        await service.process_upload(inventory_workbook, "stock.xlsx", "inventory")
        assert len(service.list_history(FileCategory.INVENTORY)) == 1

    @pytest.mark.asyncio
    async def test_failed_upload_not_stored(self, service, osr_workbook):
        result = await service.process_upload(osr_workbook, "osr.xlsx", "inventory")

        assert result.error.kind == ErrorKind.SHEETS
        assert service.get_active("inventory") is None
        assert service.get_statistics()["uploads_failed"] == 1

    @pytest.mark.asyncio
    async def test_persist_false(self, service, osr_workbook):
        result = await service.process_upload(osr_workbook, "osr.xlsx", "osr", persist=False)

        assert result.success
        assert service.get_active("osr") is None

    @pytest.mark.asyncio
    async def test_progress_and_options_forwarded(self, service, osr_workbook):
        events = []
        result = await service.process_upload(
            osr_workbook, "osr.xlsx", "osr",
            options=ProcessingOptions(validate_columns=False),
            on_progress=events.append,
        )
        assert result.success
        assert events[-1].progress == 100

    def test_validate(self, service):
        assert service.validate("osr.xlsx", 100, "osr") is None
        assert service.validate("osr.csv", 100, "osr").kind == ErrorKind.FORMAT

    def test_expected_names(self, service):
        assert service.expected_sheet_names("osr") == ["OSR Main Sheet HC", "OSR Summary"]
        assert "Closing Stock Value" in service.expected_columns("inventory")


class TestComputeMetrics:
    def test_no_uploads(self, service):
        metrics = service.compute_metrics()
        assert metrics.combined.recommended_actions == [NO_DATA_MESSAGE]

    @pytest.mark.asyncio
    async def test_inventory_only(self, service, inventory_workbook):
        await service.process_upload(inventory_workbook, "stock.xlsx", "inventory")
        metrics = service.compute_metrics()

        assert metrics.detected_categories == [FileCategory.INVENTORY]
        assert metrics.combined.recommended_actions[0] == INVENTORY_ONLY_DISCLOSURE

    @pytest.mark.asyncio
    async def test_both_sources(self, service, inventory_workbook, osr_workbook):
        await service.process_upload(inventory_workbook, "stock.xlsx", "inventory")
        await service.process_upload(osr_workbook, "osr.xlsx", "osr")

        first = service.compute_metrics()
        second = service.compute_metrics()

        assert first.detected_categories == [FileCategory.INVENTORY, FileCategory.OSR]
        assert first.inventory is not None and first.osr is not None

        entries = service.get_provenance().entries("inventory+osr")
        assert len(entries) == 2
        assert entries[0]["data_hash"] == entries[1]["data_hash"]
        assert second.combined == first.combined
        assert service.get_statistics()["metrics_computed"] == 2

    @pytest.mark.asyncio
    async def test_explicit_data(self, service, osr_workbook):
        result = await service.process_upload(osr_workbook, "osr.xlsx", "osr", persist=False)
        metrics = service.compute_metrics(osr=result.data)
        assert metrics.detected_categories == [FileCategory.OSR]


class TestActiveSwitching:
    @pytest.mark.asyncio
    async def test_switch_between_uploads(self, service, inventory_workbook, combined_workbook):
        await service.process_upload(inventory_workbook, "first.xlsx", "inventory")
        await service.process_upload(combined_workbook, "second.xlsx", "inventory")
        assert service.get_active("inventory").file_name == "second.xlsx"

        older = service.list_history("inventory")[-1]
        record = service.switch_active(older.record_id)

        assert record.file_name == "first.xlsx"
        assert service.get_active("inventory").file_name == "first.xlsx"
        actions = [e["action"] for e in service.get_provenance().entries(older.record_id)]
        assert actions == ["upload", "activate"]

    def test_switch_unknown(self, service):
        with pytest.raises(ValueError):
            service.switch_active("missing")

    def test_custom_store(self, config):
        store = InMemoryDataStore()
        service = StockRiskService(config=config, store=store)
        try:
            assert service.store is store
        finally:
            service.processor.shutdown()


class TestSingleton:
    def test_get_service_is_singleton(self):
        first = get_service()
        assert get_service() is first
        assert first.get_statistics()["started"] is True

        reset_service()
        assert get_service() is not first

    def test_lifecycle(self, service):
        service.startup()
        service.startup()
        assert service.get_statistics()["started"] is True
        service.shutdown()
        assert service.get_statistics()["started"] is False
