"""
Document Repository Interface

Abstract persistent-store contract consumed by the entity caches and the
HTTP controllers. The persistent store is the source of truth: its errors
are the only ones allowed to propagate to the HTTP layer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .query import DocumentQuery, Filter


class StoreQueryError(Exception):
    """Raised when the persistent store itself fails.

    Never absorbed by the cache layer; surfaces as a 500 to HTTP clients.
    """

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.error_code = "STORE_QUERY_ERROR"
        self.details: Dict[str, Any] = {}
        if collection:
            self.details["collection"] = collection
        if operation:
            self.details["operation"] = operation
        if original_error:
            self.details["original_error"] = str(original_error)
            self.details["original_error_type"] = type(original_error).__name__
        super().__init__(self.message)
        if original_error:
            self.__cause__ = original_error


class DuplicateDocumentError(StoreQueryError):
    """Raised when a write collides with a unique field of another document."""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, collection, operation, original_error)
        self.error_code = "DUPLICATE_DOCUMENT"


class DocumentRepository(ABC):
    """Document-store primitives for one collection."""

    collection: str

    @abstractmethod
    async def find(self, query: DocumentQuery) -> List[Dict[str, Any]]:
        """Find documents matching the query."""
        pass

    @abstractmethod
    async def find_by_id(self, document_id: str) -> Optional[Dict[str, Any]]:
        """Find a document by id."""
        pass

    @abstractmethod
    async def find_one(self, filters: Sequence[Filter]) -> Optional[Dict[str, Any]]:
        """Find the first document matching every filter."""
        pass

    @abstractmethod
    async def count(self, filters: Sequence[Filter] = ()) -> int:
        """Count documents matching every filter."""
        pass

    @abstractmethod
    async def distinct(self, field_name: str) -> List[Any]:
        """Sorted distinct non-empty values of a field."""
        pass

    @abstractmethod
    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a document and return it with its id."""
        pass

    @abstractmethod
    async def update(
        self, document_id: str, changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Apply changes and return the updated document, or None if absent."""
        pass

    @abstractmethod
    async def delete(self, document_id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def delete_all(self) -> int:
        """Delete every document in the collection."""
        pass

    @abstractmethod
    async def increment(self, document_id: str, field_name: str, amount: int = 1) -> bool:
        """Atomically increment a numeric field."""
        pass


@dataclass
class Repositories:
    """The four collections backing the site."""

    news: DocumentRepository
    leagues: DocumentRepository
    matches: DocumentRepository
    users: DocumentRepository
