"""
In-memory document source.

Used by the command-line tool and tests; stores documents in a dict and
notifies subscribers on every change.
"""

import threading
from typing import Dict, Iterable, List, Optional

from ....shared import RepositoryError, get_logger
from ..models import Document
from .base import DocumentSource


class InMemoryDocumentSource(DocumentSource):
    """
    Dict-backed DocumentSource.

    Set `available = False` to simulate an unreachable store.
    """

    def __init__(self, documents: Optional[Iterable[Document]] = None, available: bool = True):
        super().__init__()
        self.logger = get_logger(__name__)
        self.available = available
        self._documents: Dict[str, Document] = {}
        self._lock = threading.Lock()

        for document in documents or ():
            self._documents[document.id] = document

    def _check_available(self) -> None:
        if not self.available:
            raise RepositoryError("Document source is unavailable")

    async def list_visible_documents(self, limit: Optional[int] = None) -> List[Document]:
        self._check_available()
        with self._lock:
            documents = sorted(self._documents.values(), key=lambda d: d.created_at, reverse=True)
        return documents[:limit] if limit is not None else documents

    def get(self, doc_id: str) -> Optional[Document]:
        return self._documents.get(doc_id)

    def __len__(self) -> int:
        return len(self._documents)

    async def create(self, document: Document) -> Document:
        self._check_available()
        with self._lock:
            if document.id in self._documents:
                raise RepositoryError(f"Document {document.id} already exists")
            self._documents[document.id] = document
        await self._notify_created(document)
        return document

    async def update(self, document: Document) -> Document:
        self._check_available()
        with self._lock:
            if document.id not in self._documents:
                raise RepositoryError(f"Document {document.id} not found")
            self._documents[document.id] = document
        await self._notify_updated(document)
        return document

    async def delete(self, doc_id: str) -> bool:
        self._check_available()
        with self._lock:
            removed = self._documents.pop(doc_id, None)
        if removed is None:
            return False
        await self._notify_deleted(doc_id)
        return True
