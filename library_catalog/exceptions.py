from typing import Any, Dict, List, Optional


class LibraryError(Exception):
    """Base class for errors the catalog and ledger report to callers.

    Each subclass carries the HTTP status code the API layer answers with
    and a short machine-readable kind.
    """

    status_code = 500
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "detail": self.message}


class NotFoundError(LibraryError):
    status_code = 404
    kind = "not_found"

    def __init__(self, entity: str, entity_id: int):
        super().__init__(f"{entity} with id {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(LibraryError):
    status_code = 400
    kind = "validation_error"

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.errors:
            data["errors"] = self.errors
        return data


class ConflictError(LibraryError):
    """Raised when a book cannot be deleted while copies are still on loan."""

    status_code = 409
    kind = "conflict"

    def __init__(self, book_id: int, title: str, borrowed_copies: int):
        super().__init__(
            f"Cannot delete book '{title}' because it has {borrowed_copies} borrowed copies. "
            "All copies must be returned before deletion."
        )
        self.book_id = book_id
        self.title = title
        self.borrowed_copies = borrowed_copies

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "bookId": self.book_id,
            "title": self.title,
            "borrowedCopies": self.borrowed_copies,
        })
        return data


class UnexpectedError(LibraryError):
    status_code = 500
    kind = "unexpected"

    def __init__(self, operation: str):
        super().__init__(f"Unexpected storage failure during {operation}")
        self.operation = operation
