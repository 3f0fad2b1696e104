"""JSON-file document store backing the local collaborator adapters."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

Collections = Dict[str, List[Dict[str, Any]]]


class JsonDocumentStore:
    """Read/write named document collections to a single JSON file.

    The asyncio lock only guards local file access and is never held while
    awaiting another collaborator.
    """

    def __init__(self, file_path: str, *, logger: Optional[Any] = None) -> None:
        self._path = Path(file_path)
        self._logger = logger or logging.getLogger('DocumentStore')
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Collections:
        if not self._path.exists():
            self._logger.debug("Document file %s does not exist; starting empty", self._path)
            return {}
        with self._path.open('r', encoding='utf-8') as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict):
            raise ValueError(
                f"Invalid document file format in {self._path}; expected object, "
                f"received {type(payload).__name__}"
            )
        return payload

    def _save(self, collections: Collections) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open('w', encoding='utf-8') as handle:
            json.dump(collections, handle, indent=2, ensure_ascii=False)
        self._logger.debug("Documents saved to %s", self._path)

    async def read(self, collection: str) -> List[Dict[str, Any]]:
        """Return a snapshot copy of every document in ``collection``."""

        async with self._lock:
            documents = self._load().get(collection, [])
        return [dict(document) for document in documents]

    async def find(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        for document in await self.read(collection):
            if str(document.get('id')) == doc_id:
                return document
        return None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Collections]:
        """Yield the mutable collections; they are written back on clean exit."""

        async with self._lock:
            collections = self._load()
            yield collections
            self._save(collections)

    async def upsert(self, collection: str, document: Dict[str, Any]) -> None:
        doc_id = str(document['id'])
        async with self.transaction() as collections:
            documents = [
                existing
                for existing in collections.get(collection, [])
                if str(existing.get('id')) != doc_id
            ]
            documents.append(dict(document))
            collections[collection] = documents
