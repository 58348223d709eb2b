"""In-process record store.

Mirrors the Postgres store's semantics (filters, updates, ordering, unique
fields and result shapes) without a database. Used by the test-suite and for
running the API locally with ``DELIGHT_STORE=memory``.
"""
import copy
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .exceptions import DuplicateKeyError
from .lib.schema_manager import latest_schema, unique_indexes
from .query import apply_update, matches, new_object_id, sort_documents, update_result

logger = logging.getLogger(__name__)


class MemoryCollection:
    """A named set of documents held in insertion order."""

    def __init__(self, name: str, unique_fields: Iterable[str] = ()) -> None:
        self.name = name
        self.unique_fields = tuple(unique_fields)
        self._documents: Dict[str, Dict[str, Any]] = {}

    def _check_unique(self, doc: Dict[str, Any], exclude_id: Optional[str] = None) -> None:
        for field in self.unique_fields:
            value = doc.get(field)
            if not isinstance(value, str) or value == '':
                continue
            for doc_id, other in self._documents.items():
                if doc_id != exclude_id and other.get(field) == value:
                    raise DuplicateKeyError(self.name, field, value)

    def _matching(self, filter: Optional[Dict[str, Any]]) -> List[Tuple[str, Dict[str, Any]]]:
        return [
            (doc_id, doc) for doc_id, doc in self._documents.items()
            if matches(doc, filter)
        ]

    async def find_one(self, filter: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        found = self._matching(filter)
        return copy.deepcopy(found[0][1]) if found else None

    async def find(
        self,
        filter: Optional[Dict[str, Any]] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        skip: int = 0,
        limit: int = 0
    ) -> List[Dict[str, Any]]:
        docs = sort_documents([doc for _, doc in self._matching(filter)], sort)
        docs = docs[skip:]
        if limit:
            docs = docs[:limit]
        return copy.deepcopy(docs)

    async def count_documents(self, filter: Optional[Dict[str, Any]] = None) -> int:
        return len(self._matching(filter))

    async def insert_one(self, document: Dict[str, Any]) -> Dict[str, Any]:
        doc = copy.deepcopy(document)
        doc_id = str(doc.get('_id') or new_object_id())
        doc['_id'] = doc_id
        if doc_id in self._documents:
            raise DuplicateKeyError(self.name, '_id', doc_id)
        self._check_unique(doc)
        self._documents[doc_id] = doc
        return {'acknowledged': True, 'insertedId': doc_id}

    async def update_one(self, filter: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        found = self._matching(filter)
        result = update_result()
        if not found:
            return result

        doc_id, doc = found[0]
        result['matchedCount'] = 1
        updated = apply_update(doc, update)
        if updated != doc:
            self._check_unique(updated, exclude_id=doc_id)
            self._documents[doc_id] = updated
            result['modifiedCount'] = 1
        return result

    async def delete_one(self, filter: Dict[str, Any]) -> Dict[str, Any]:
        found = self._matching(filter)
        if found:
            del self._documents[found[0][0]]
        return {'acknowledged': True, 'deletedCount': len(found[:1])}

    async def delete_many(self, filter: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        found = self._matching(filter)
        for doc_id, _ in found:
            del self._documents[doc_id]
        return {'acknowledged': True, 'deletedCount': len(found)}


class MemoryStore:
    """Record store keeping every collection in process memory."""

    def __init__(self, schema: Optional[Dict[str, Any]] = None) -> None:
        schema = schema or latest_schema()
        self._collections: Dict[str, MemoryCollection] = {
            table['name']: MemoryCollection(table['name'], unique_indexes(table).values())
            for table in schema.get('tables', [])
        }

    def collection(self, name: str) -> MemoryCollection:
        if name not in self._collections:
            logger.debug(f"Creating unindexed collection {name}")
            self._collections[name] = MemoryCollection(name)
        return self._collections[name]

    async def close(self) -> None:
        self._collections.clear()
