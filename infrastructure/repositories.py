"""Document repository implementations"""
import logging
from typing import List, Optional, Tuple

from core.interfaces import IDocumentRepository
from core.domain import Document
from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

class InMemoryDocumentRepository(IDocumentRepository):
    """
    Process-local document store.

    The whole collection is an immutable tuple that is replaced in a single
    assignment on add/delete, so readers always see a complete snapshot.
    """

    def __init__(self):
        self._snapshot: Tuple[Document, ...] = ()

    async def add(self, document: Document) -> Document:
        self._snapshot = self._snapshot + (document,)
        logger.info(f"Stored document {document.id} ('{document.name}', {len(document.chunks)} chunks)")
        return document

    async def get_by_id(self, document_id: str) -> Optional[Document]:
        for doc in self._snapshot:
            if doc.id == document_id:
                return doc
        return None

    async def list_all(self) -> List[Document]:
        """List all documents in ingestion order"""
        return list(self._snapshot)

    async def delete(self, document_id: str) -> bool:
        current = self._snapshot
        remaining = tuple(doc for doc in current if doc.id != document_id)
        if len(remaining) == len(current):
            return False
        self._snapshot = remaining
        logger.info(f"Deleted document {document_id}")
        return True

    async def count(self) -> int:
        return len(self._snapshot)
