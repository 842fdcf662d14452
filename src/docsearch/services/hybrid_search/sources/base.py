"""
Document source interface for hybrid search.

The document store owns documents; the engine reads them in bulk at
startup and keeps its index current through change notifications.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Protocol

from ..models import Document


class DocumentChangeListener(Protocol):
    """Receiver of document change notifications."""

    async def on_document_created(self, document: Document) -> None: ...

    async def on_document_updated(self, document: Document) -> None: ...

    async def on_document_deleted(self, doc_id: str) -> None: ...


class DocumentSource(ABC):
    """
    Abstract base class for document sources.
    """

    def __init__(self):
        self._listeners: List[DocumentChangeListener] = []

    @abstractmethod
    async def list_visible_documents(self, limit: Optional[int] = None) -> List[Document]:
        """
        Read documents for a full index build.

        Args:
            limit: Maximum number of documents to return

        Returns:
            Documents, most recent first

        Raises:
            RepositoryError: If the store is unreachable
        """
        pass

    def subscribe(self, listener: DocumentChangeListener) -> None:
        """Register a listener for create, update and delete notifications."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: DocumentChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _notify_created(self, document: Document) -> None:
        for listener in list(self._listeners):
            await listener.on_document_created(document)

    async def _notify_updated(self, document: Document) -> None:
        for listener in list(self._listeners):
            await listener.on_document_updated(document)

    async def _notify_deleted(self, doc_id: str) -> None:
        for listener in list(self._listeners):
            await listener.on_document_deleted(doc_id)
