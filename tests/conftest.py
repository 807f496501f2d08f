# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

import io
from typing import Any, Dict, List

import pytest
from openpyxl import Workbook

from stockrisk.config import StockRiskConfig, reset_config
from stockrisk.ingestion.schema_registry import SchemaRegistry, reset_registry
from stockrisk.models import FileCategory, NormalizedSheet
from stockrisk.service import reset_service


FG_HEADER = [
    "Pack Size(m.d.)",
    "Plant",
    "location",
    "Material",
    "Description",
    "Closing Stock Quantity",
    "Closing Stock Value",
    "Per Unit Value Moti",
    "Total Value",
]

OSR_MAIN_HEADER = [
    "Material",
    "Material Description",
    "Status",
    "Avg Unit Price (Rs)",
    "Total OSR (Qty)",
    "Total OSR Value PKR",
    "Residual (Qnty) >26 weeks",
]

OSR_SUMMARY_HEADER = ["Total Book Stock", "Over Stock", "Excess Stock %"]


def build_workbook(sheets: Dict[str, List[List[Any]]]) -> bytes:
    """Serialise ``{sheet name: rows}`` to .xlsx bytes."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def fg_rows(count: int = 10, base_value: float = 1000.0) -> List[List[Any]]:
    """Valid finished-goods rows spread over a few plants and locations."""
    plants = ["P100", "P200", "P300"]
    locations = ["Lahore", "Karachi", "Islamabad", "Multan"]
    rows = []
    for i in range(count):
        quantity = 10 * (i + 1)
        value = base_value * (i + 1)
        rows.append([
            "1kg",
            plants[i % len(plants)],
            locations[i % len(locations)],
            f"MAT-{i + 1:03d}",
            f"Finished good {i + 1}",
            quantity,
            value,
            value / quantity,
            value,
        ])
    return rows


def osr_main_rows(count: int = 5) -> List[List[Any]]:
    return [
        [
            f"MAT-{i + 1:03d}",
            f"Slow mover {i + 1}",
            "Active" if i % 2 == 0 else "Blocked",
            12.5 * (i + 1),
            100 * (i + 1),
            1250.0 * (i + 1) ** 2,
            20 * i,
        ]
        for i in range(count)
    ]


def make_sheet(
    rows: List[Dict[str, Any]],
    category: FileCategory = FileCategory.INVENTORY,
    name: str = "Test",
) -> NormalizedSheet:
    """NormalizedSheet around hand-written records."""
    return NormalizedSheet(
        name=name,
        source_name=name,
        category=category,
        row_count=len(rows),
        column_count=len({key for row in rows for key in row}),
        columns=sorted({key for row in rows for key in row}),
        rows=rows,
    )


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Every test starts from fresh config, registry and service singletons."""
    reset_config()
    reset_registry()
    yield
    reset_service()
    reset_registry()
    reset_config()


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def config():
    """Default configuration with Prometheus recording disabled."""
    return StockRiskConfig(enable_metrics=False)


@pytest.fixture
def registry():
    """Registry holding the built-in schemas."""
    return SchemaRegistry()


# ---------------------------------------------------------------------------
# Workbooks
# ---------------------------------------------------------------------------


@pytest.fixture
def inventory_workbook():
    """Inventory workbook: "FG Value" tab with 10 valid rows, no RPM tab."""
    return build_workbook({"FG Value": [FG_HEADER] + fg_rows(10)})


@pytest.fixture
def osr_workbook():
    """OSR workbook with both required sheets."""
    return build_workbook({
        "OSR Main Sheet HC": [OSR_MAIN_HEADER] + osr_main_rows(5),
        "OSR Summary": [OSR_SUMMARY_HEADER, [5_000_000, 750_000, 15]],
    })


@pytest.fixture
def combined_workbook():
    """One workbook carrying inventory and OSR tabs side by side."""
    return build_workbook({
        "FG value": [FG_HEADER] + fg_rows(4),
        "OSR Main Sheet": [OSR_MAIN_HEADER] + osr_main_rows(3),
        "Summary": [OSR_SUMMARY_HEADER, [1_000_000, 100_000, 10]],
    })
