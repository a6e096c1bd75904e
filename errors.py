"""
Exceptions raised by the record layer.

Every error carries a machine readable code and a message meant for the
person filling the form; the API turns them into JSON with `to_dict()`.
Not-found is never an exception below the HTTP layer: lookups return None.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class FieldError(BaseModel):
    """A problem with one form field"""
    field: str
    message: str


class RecordsError(Exception):
    """Base exception for the record layer"""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class RecordValidationError(RecordsError):
    """Missing required field or empty required collection"""

    def __init__(self, errors: List[FieldError], kind: str = "record"):
        self.errors = errors
        super().__init__(
            f"The {kind} form has {len(errors)} invalid field(s)",
            code="VALIDATION_FAILED",
            details={"errors": [e.model_dump() for e in errors]}
        )


class UploadCardinalityError(RecordsError):
    """Wrong number of images for a photograph category"""

    def __init__(self, message: str, category: Optional[str] = None, count: Optional[int] = None):
        details = {}
        if category is not None:
            details["category"] = category
        if count is not None:
            details["count"] = count
        super().__init__(message, code="UPLOAD_CARDINALITY", details=details)


class PhotoCategoryLockedError(UploadCardinalityError):
    """Images submitted for a category that already holds photographs"""

    def __init__(self, categories: List[str]):
        super().__init__(
            f"Photographs already uploaded for: {', '.join(categories)}"
        )
        self.code = "CATEGORY_LOCKED"
        self.details = {"categories": list(categories)}


class UploadTransportError(RecordsError):
    """Compression or object storage failure while uploading images"""

    def __init__(self, message: str = "Image upload failed", path: Optional[str] = None):
        super().__init__(message, code="UPLOAD_FAILED", details={"path": path} if path else None)


class StoreTransportError(RecordsError):
    """The document store rejected or failed an operation"""

    def __init__(self, operation: str, collection: str):
        super().__init__(
            f"Document store failed to {operation} in '{collection}'",
            code="STORE_UNAVAILABLE",
            details={"operation": operation, "collection": collection}
        )


class MalformedDocumentError(RecordsError):
    """A stored document does not match its collection schema"""

    def __init__(self, collection: str, document_id: str, reason: str):
        super().__init__(
            f"Document {document_id} in '{collection}' is malformed",
            code="MALFORMED_DOCUMENT",
            details={"collection": collection, "id": document_id, "reason": reason}
        )


class ExportError(RecordsError):
    """A record could not be turned into a document"""

    def __init__(self, message: str):
        super().__init__(message, code="EXPORT_FAILED")
