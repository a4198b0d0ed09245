"""
Error types raised by the quotation system.
"""

from typing import Optional


class QuotationError(Exception):
    """Base class for quotation system errors."""
    pass


class ValidationError(QuotationError, ValueError):
    """Raised when input handed to a service violates its contract."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(QuotationError, LookupError):
    """Raised when a record does not exist in its collection."""

    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection}: no record with id {record_id!r}")
        self.collection = collection
        self.record_id = record_id


class LogoDecodeError(QuotationError):
    """Raised when logo image data cannot be decoded."""

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        full_message = f"Logo could not be decoded: {message}"
        if original_exception:
            full_message += f" (original error: {original_exception})"
        super().__init__(full_message)
        self.original_exception = original_exception


class NumberExhaustedError(QuotationError):
    """Raised when every quotation number for a date is already in use."""

    def __init__(self, issue_date):
        super().__init__(f"No free quotation number left for {issue_date.isoformat()}")
        self.issue_date = issue_date
