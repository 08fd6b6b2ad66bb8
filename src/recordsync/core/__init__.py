"""
Core types: serialized records, collections, exceptions and logging.
"""

from .collection import RecordCollection
from .exceptions import (
    ExportValidationError,
    InvalidInputError,
    RecordNotFoundError,
    RecordStoreError,
    RecordSyncError,
)
from .models import FILE_RECORD_TYPE, SerializedRecord, SyncStatus

__all__ = [
    "ExportValidationError",
    "FILE_RECORD_TYPE",
    "InvalidInputError",
    "RecordCollection",
    "RecordNotFoundError",
    "RecordStoreError",
    "RecordSyncError",
    "SerializedRecord",
    "SyncStatus",
]
