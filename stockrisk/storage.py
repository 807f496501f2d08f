# -*- coding: utf-8 -*-
"""
Data Store - StockRisk Workbook Analytics

Persistence collaborator for processed uploads. The service depends only
on the ``DataStore`` protocol (save / get_active / list_history); the
``InMemoryDataStore`` reference implementation keeps one active upload per
category and a history of every distinct upload.

Deduplication:
    Uploads are keyed by the SHA-256 of their raw bytes per category.
    Saving the same bytes again re-activates the existing record instead
    of creating a new one.

Example:
    >>> store = InMemoryDataStore()
    >>> record_id = store.save(content, result.data, "inventory")
    >>> store.get_active("inventory").file_name
    'stock.xlsx'

Author: StockRisk Platform Team
Status: Production Ready
"""

from __future__ import annotations

import hashlib
import logging
import threading
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, Field

from stockrisk.models import FileCategory, ProcessedFileData, _utcnow

logger = logging.getLogger(__name__)

__all__ = ["FileRecord", "DataStore", "InMemoryDataStore"]


class FileRecord(BaseModel):
    """History metadata for one stored upload.

    Attributes:
        record_id: Unique identifier.
        category: Category the upload was processed as.
        file_name: Original file name.
        file_size: Size of the raw bytes.
        file_hash: SHA-256 of the raw bytes.
        sheet_count: Normalized sheets stored.
        row_count: Total normalized rows.
        is_active: True for the category's active upload.
        uploaded_at: First save time.
        processed_at: Processing timestamp of the stored data.
    """

    record_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    category: FileCategory
    file_name: str
    file_size: int = Field(default=0, ge=0)
    file_hash: str
    sheet_count: int = Field(default=0, ge=0)
    row_count: int = Field(default=0, ge=0)
    is_active: bool = False
    uploaded_at: datetime = Field(default_factory=_utcnow)
    processed_at: Optional[datetime] = None

    model_config = {"extra": "forbid"}


@runtime_checkable
class DataStore(Protocol):
    """Key-value persistence for processed uploads."""

    def save(
        self,
        raw: bytes,
        data: ProcessedFileData,
        category: Union[str, FileCategory],
    ) -> str:
        ...

    def get_active(self, category: Union[str, FileCategory]) -> Optional[ProcessedFileData]:
        ...

    def list_history(self, category: Union[str, FileCategory]) -> List[FileRecord]:
        ...


class InMemoryDataStore:
    """Thread-safe in-process DataStore.

    Attributes:
        _records: FileRecord by record id.
        _data: ProcessedFileData by record id.
        _active: Active record id by category.
    """

    def __init__(self) -> None:
        self._records: Dict[str, FileRecord] = {}
        self._data: Dict[str, ProcessedFileData] = {}
        self._active: Dict[FileCategory, str] = {}
        self._lock = threading.Lock()

    def save(
        self,
        raw: bytes,
        data: ProcessedFileData,
        category: Union[str, FileCategory],
    ) -> str:
        """Store an upload and make it the category's active one.

        Returns:
            The record id (the existing one for a duplicate upload).
        """
        category = FileCategory(category)
        file_hash = hashlib.sha256(raw).hexdigest()
        with self._lock:
            existing = next(
                (
                    r for r in self._records.values()
                    if r.category == category and r.file_hash == file_hash
                ),
                None,
            )
            if existing is not None:
                self._activate(existing.record_id)
                logger.info(
                    "Upload '%s' already stored as %s; re-activated",
                    data.file_name, existing.record_id,
                )
                return existing.record_id

            record = FileRecord(
                category=category,
                file_name=data.file_name,
                file_size=len(raw),
                file_hash=file_hash,
                sheet_count=len(data.sheets),
                row_count=sum(sheet.row_count for sheet in data.sheets),
                processed_at=data.processed_at,
            )
            self._records[record.record_id] = record
            self._data[record.record_id] = data
            self._activate(record.record_id)

        logger.info(
            "Stored upload '%s' (%s) as %s",
            record.file_name, category.value, record.record_id,
        )
        return record.record_id

    def get_active(self, category: Union[str, FileCategory]) -> Optional[ProcessedFileData]:
        with self._lock:
            record_id = self._active.get(FileCategory(category))
            return self._data.get(record_id) if record_id else None

    def get(self, record_id: str) -> Optional[ProcessedFileData]:
        with self._lock:
            return self._data.get(record_id)

    def list_history(self, category: Union[str, FileCategory]) -> List[FileRecord]:
        """Records of ``category``, newest first."""
        category = FileCategory(category)
        with self._lock:
            return [
                r.model_copy()
                for r in reversed(list(self._records.values()))
                if r.category == category
            ]

    def switch_active(self, record_id: str) -> FileRecord:
        """Make a stored upload its category's active one.

        Raises:
            ValueError: If ``record_id`` is unknown.
        """
        with self._lock:
            if record_id not in self._records:
                raise ValueError(f"Record {record_id} not found")
            self._activate(record_id)
            return self._records[record_id].model_copy()

    def delete(self, record_id: str) -> bool:
        """Remove a stored upload. Returns False if it did not exist.

        Deleting the active upload leaves the category without one.
        """
        with self._lock:
            record = self._records.pop(record_id, None)
            if record is None:
                return False
            self._data.pop(record_id, None)
            if self._active.get(record.category) == record_id:
                del self._active[record.category]
        logger.info("Deleted upload %s", record_id)
        return True

    def _activate(self, record_id: str) -> None:
        category = self._records[record_id].category
        previous = self._active.get(category)
        if previous is not None and previous in self._records:
            self._records[previous].is_active = False
        self._records[record_id].is_active = True
        self._active[category] = record_id
