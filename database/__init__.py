"""Database module for the document record store.

This module handles:
- Database connection pool initialization
- Schema management
- Document collections on top of JSONB tables
- Connection lifecycle

Callers get a store object from ``init_db`` and pass it on explicitly; the
module keeps no global pool.
"""

import json
import logging
import re
import ssl
from typing import Optional, Dict, Any, List, Sequence, Tuple
from urllib.parse import urlparse, parse_qs

import asyncpg
import backoff

from .exceptions import DatabaseError, DatabaseSchemaError, DuplicateKeyError, InvalidQueryError
from .lib.schema_manager import SchemaManager, unique_indexes
from .memory import MemoryStore, MemoryCollection
from .query import (
    ASCENDING, DESCENDING, apply_update, build_order_by, build_where, new_object_id,
    update_result, utc_now
)

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r'^[a-z_][a-z0-9_]*$')


def _get_connection_kwargs(db_url: str) -> Dict[str, Any]:
    """Get connection kwargs from database URL.

    Args:
        db_url: Database connection URL

    Returns:
        Dict of connection parameters
    """
    params = parse_qs(urlparse(db_url).query)
    sslmode = params.get('sslmode', ['prefer'])[0]

    kwargs: Dict[str, Any] = {}
    if sslmode in ('require', 'verify-ca', 'verify-full'):
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = sslmode == 'verify-full'
        ssl_context.verify_mode = ssl.CERT_REQUIRED if sslmode != 'require' else ssl.CERT_NONE
        kwargs['ssl'] = ssl_context
    return kwargs


async def _init_connection(conn: asyncpg.Connection) -> None:
    await conn.set_type_codec(
        'jsonb',
        encoder=json.dumps,
        decoder=json.loads,
        schema='pg_catalog'
    )


def _to_document(row) -> Dict[str, Any]:
    doc = dict(row['doc'])
    doc['_id'] = row['id']
    return doc


class PostgresCollection:
    """Document collection stored as (id, doc JSONB) rows of one table."""

    def __init__(self, pool: asyncpg.Pool, name: str, unique: Optional[Dict[str, str]] = None) -> None:
        if not _IDENTIFIER.match(name):
            raise InvalidQueryError(f"Invalid collection name: {name!r}")
        self.pool = pool
        self.name = name
        self._unique = unique or {}

    def _duplicate(self, error: asyncpg.exceptions.UniqueViolationError, doc: Dict[str, Any]) -> DuplicateKeyError:
        field = self._unique.get(getattr(error, 'constraint_name', None) or '', '_id')
        return DuplicateKeyError(self.name, field, doc.get(field))

    async def find_one(self, filter: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        where, params = build_where(filter)
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f'SELECT id, doc FROM {self.name} WHERE {where} ORDER BY created_at, id LIMIT 1',
                *params
            )
        return _to_document(row) if row else None

    async def find(
        self,
        filter: Optional[Dict[str, Any]] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        skip: int = 0,
        limit: int = 0
    ) -> List[Dict[str, Any]]:
        where, params = build_where(filter)
        order_by, order_params = build_order_by(sort, start=len(params) + 1)
        params.extend(order_params)

        query = f'SELECT id, doc FROM {self.name} WHERE {where} {order_by}'
        params.append(max(skip, 0))
        query += f' OFFSET ${len(params)}'
        if limit:
            params.append(limit)
            query += f' LIMIT ${len(params)}'

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
        return [_to_document(row) for row in rows]

    async def count_documents(self, filter: Optional[Dict[str, Any]] = None) -> int:
        where, params = build_where(filter)
        async with self.pool.acquire() as conn:
            return await conn.fetchval(f'SELECT count(*) FROM {self.name} WHERE {where}', *params)

    async def insert_one(self, document: Dict[str, Any]) -> Dict[str, Any]:
        doc = dict(document)
        doc_id = str(doc.pop('_id', None) or new_object_id())
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    f'INSERT INTO {self.name} (id, doc) VALUES ($1, $2)',
                    doc_id, doc
                )
        except asyncpg.exceptions.UniqueViolationError as e:
            raise self._duplicate(e, {**doc, '_id': doc_id})
        return {'acknowledged': True, 'insertedId': doc_id}

    async def update_one(self, filter: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        where, params = build_where(filter)
        result = update_result()
        updated: Dict[str, Any] = {}
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        f'SELECT id, doc FROM {self.name} WHERE {where} '
                        f'ORDER BY created_at, id LIMIT 1 FOR UPDATE',
                        *params
                    )
                    if not row:
                        return result

                    result['matchedCount'] = 1
                    current = dict(row['doc'])
                    updated = apply_update(current, update)
                    if updated != current:
                        await conn.execute(
                            f'UPDATE {self.name} SET doc = $2, updated_at = now() WHERE id = $1',
                            row['id'], updated
                        )
                        result['modifiedCount'] = 1
        except asyncpg.exceptions.UniqueViolationError as e:
            raise self._duplicate(e, updated)
        return result

    async def delete_one(self, filter: Dict[str, Any]) -> Dict[str, Any]:
        where, params = build_where(filter)
        async with self.pool.acquire() as conn:
            deleted = await conn.fetch(
                f'DELETE FROM {self.name} WHERE id = ('
                f'SELECT id FROM {self.name} WHERE {where} ORDER BY created_at, id LIMIT 1'
                f') RETURNING id',
                *params
            )
        return {'acknowledged': True, 'deletedCount': len(deleted)}

    async def delete_many(self, filter: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        where, params = build_where(filter)
        async with self.pool.acquire() as conn:
            deleted = await conn.fetch(
                f'DELETE FROM {self.name} WHERE {where} RETURNING id',
                *params
            )
        return {'acknowledged': True, 'deletedCount': len(deleted)}


class PostgresStore:
    """Record store backed by an asyncpg connection pool."""

    def __init__(self, pool: asyncpg.Pool, schema: Optional[Dict[str, Any]] = None) -> None:
        self.pool = pool
        self._unique = {
            table['name']: unique_indexes(table)
            for table in (schema or {}).get('tables', [])
        }
        self._collections: Dict[str, PostgresCollection] = {}

    def collection(self, name: str) -> PostgresCollection:
        if name not in self._collections:
            self._collections[name] = PostgresCollection(self.pool, name, self._unique.get(name))
        return self._collections[name]

    async def close(self) -> None:
        await self.pool.close()


@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError, OSError),
    max_tries=5
)
async def init_db(db_url: Optional[str] = None, settings: Optional[Dict[str, Any]] = None) -> PostgresStore:
    """Create the connection pool, apply the schema and return a store.

    Args:
        db_url: Optional database URL. If not provided, will use settings.
        settings: Optional settings mapping. Defaults to the loaded settings.conf

    Returns:
        A ready PostgresStore

    Raises:
        ValueError: If database URL is not provided
        DatabaseSchemaError: If the schema cannot be applied
    """
    if settings is None:
        from config import settings_conf
        settings = settings_conf

    url = db_url or settings.get('db_url')
    if not url:
        raise ValueError("Database URL not provided")

    logger.info(f"Connecting to {urlparse(url).hostname}")
    pool = await asyncpg.create_pool(
        url,
        min_size=settings.get('db_pool_min_size', 2),
        max_size=settings.get('db_pool_max_size', 20),
        max_inactive_connection_lifetime=300.0,
        command_timeout=settings.get('db_command_timeout', 60.0),
        init=_init_connection,
        **_get_connection_kwargs(url)
    )

    try:
        schema_manager = SchemaManager(pool)
        await schema_manager.initialize()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        await pool.close()
        raise

    return PostgresStore(pool, schema_manager.schema)


async def close(store) -> None:
    """Close a record store and release its connections."""
    if store is not None:
        await store.close()


# Export public interface
__all__ = [
    'init_db', 'close', 'PostgresStore', 'PostgresCollection', 'MemoryStore', 'MemoryCollection',
    'DatabaseError', 'DatabaseSchemaError', 'DuplicateKeyError', 'InvalidQueryError',
    'ASCENDING', 'DESCENDING', 'new_object_id', 'update_result', 'utc_now'
]
