"""
Custom exceptions for the recordsync package.
"""

from typing import List, Optional


class RecordSyncError(Exception):
    """Base exception for all recordsync errors."""
    pass


class ExportValidationError(RecordSyncError):
    """
    A serialized record is missing required metadata.

    Raised when:
    - _meta.uuid, entity_type, bundle, path or default_langcode is empty
    - The record type is not known to the live store

    Fatal to the import batch the record belongs to.
    """

    def __init__(
        self,
        message: str,
        uuid: Optional[str] = None,
        path: Optional[str] = None,
        missing: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.uuid = uuid
        self.path = path
        self.missing = missing or []


class RecordNotFoundError(RecordSyncError):
    """
    A record or source could not be found.

    Raised when:
    - A referenced uuid cannot be resolved to a live record during import
    - A requested record is neither in the store nor in any source
    - A source id is unknown
    """

    def __init__(self, message: str, uuid: Optional[str] = None, record_type: Optional[str] = None):
        super().__init__(message)
        self.uuid = uuid
        self.record_type = record_type


class InvalidInputError(RecordSyncError, ValueError):
    """
    Malformed input to a model or collection.

    Raised when:
    - Something other than a SerializedRecord is added to a RecordCollection
    - A record would depend on itself
    - A translation is keyed by the record's default langcode
    - An identity is changed after it has been set
    """
    pass


class RecordStoreError(RecordSyncError):
    """
    Error reading from or writing to a live record store.

    Raised when:
    - The store connection cannot be established
    - A save or delete fails at the database layer
    """
    pass
