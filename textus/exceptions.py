"""Error types raised by the text store and its services."""

from typing import Optional


class TextusError(Exception):
    """Base class for all text store errors."""


class StoreError(TextusError):
    """A document store backend failed. The backend exception is chained."""


class RecordNotFoundError(StoreError):
    def __init__(self, index_name: str, record_id: str):
        super().__init__(f"No record '{record_id}' in index '{index_name}'")
        self.index_name = index_name
        self.record_id = record_id


class PartialWriteError(TextusError):
    """An indexing pipeline write failed; earlier writes stay persisted."""

    def __init__(self, record_type: str, written: int, cause: Optional[BaseException] = None):
        super().__init__(f"Error while indexing {record_type}")
        self.record_type = record_type
        self.written = written
        self.cause = cause


class ContiguityError(TextusError):
    """Retrieved chunks do not form one contiguous run of text."""


class UnknownRecordTypeError(TextusError):
    def __init__(self, record_type: str):
        super().__init__(f"Unknown result type! '{record_type}'.")
        self.record_type = record_type
