"""
Exception hierarchy for the search subsystem.

Store errors raised by the document-store client are not wrapped: they reach
the caller unchanged. The classes here cover the failures this package
detects itself.
"""

from typing import Any, Dict, List, Optional


class EstateSearchError(Exception):
    """Base class for errors raised by this package"""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class QueryValidationError(EstateSearchError):
    """A request was rejected before it reached the document store"""

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        super().__init__(f"Invalid query: {summary}", details={"errors": errors})

    @classmethod
    def single(cls, field: str, message: str) -> "QueryValidationError":
        return cls([{"field": field, "message": message}])


class UserNotFoundError(EstateSearchError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}", details={"user_id": user_id})


class RebuildError(EstateSearchError):
    """A bulk batch failed during a full rebuild; the index needs another rebuild"""

    def __init__(self, batch_number: int, total_batches: int, indexed: int):
        self.batch_number = batch_number
        self.total_batches = total_batches
        self.indexed = indexed
        super().__init__(
            f"Rebuild aborted at batch {batch_number} of {total_batches} "
            f"after {indexed} documents were indexed",
            details={"batch_number": batch_number, "total_batches": total_batches, "indexed": indexed},
        )
