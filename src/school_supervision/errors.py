"""Exception hierarchy for supervision operations."""

from typing import Optional


class SupervisionError(Exception):
    """Base exception for supervision toolkit errors."""
    pass


class PermissionDeniedError(SupervisionError):
    """Raised when the session user lacks a required permission."""

    def __init__(self, permission: str, user_id: Optional[str] = None):
        self.permission = permission
        self.user_id = user_id
        super().__init__(f"Permission '{permission}' required")


class RecordNotFoundError(SupervisionError):
    """Raised when a record id does not exist in its collection."""

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"No record '{record_id}' in {collection}")


class ProtectedRecordError(SupervisionError):
    """Raised when deleting a record that must never be removed."""
    pass


class DeleteRestrictedError(SupervisionError):
    """Raised when dependents block a delete under a restrict policy."""

    def __init__(self, collection: str, record_id: str, dependents: int):
        self.collection = collection
        self.record_id = record_id
        self.dependents = dependents
        super().__init__(
            f"Cannot delete '{record_id}' from {collection}: {dependents} dependent record(s)"
        )


class BackupFormatError(SupervisionError):
    """Raised when a backup file cannot be parsed. Nothing is written."""
    pass


class ExtractionError(SupervisionError):
    """Raised when AI-assisted extraction fails.

    ``user_message`` is safe to show directly to the person who uploaded the
    document.
    """

    DEFAULT_MESSAGE = "فشل استخراج البيانات. تأكد من جودة النص المحمل."

    def __init__(self, detail: str, user_message: Optional[str] = None):
        self.detail = detail
        self.user_message = user_message or self.DEFAULT_MESSAGE
        super().__init__(detail)
