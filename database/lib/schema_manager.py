"""Database schema management module.

This module handles database schema versioning, validation, and migrations.
Each collection is a document table; its indexes are expression indexes over
document fields, and unique indexes double as the store's duplicate key rules.
"""
import importlib
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

from ..exceptions import DatabaseSchemaError

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent.parent / 'schema'


def load_schema_files(schema_dir: Optional[Path] = None) -> Dict[int, Dict[str, Any]]:
    """Load all schema version files.

    Args:
        schema_dir: Directory containing vN.py schema files

    Returns:
        Dict mapping version numbers to schema definitions, sorted by version

    Raises:
        DatabaseSchemaError: If a schema file is malformed
    """
    schema_dir = Path(schema_dir or SCHEMA_DIR)
    schema_files = {}

    if not schema_dir.exists():
        return schema_files

    for file in schema_dir.glob('v*.py'):
        try:
            version = int(file.stem[1:])
        except ValueError:
            logger.warning(f"Invalid schema filename: {file}")
            continue

        try:
            module = importlib.import_module(f"database.schema.{file.stem}")
        except ImportError as e:
            logger.error(f"Failed to import schema {file}: {e}")
            raise DatabaseSchemaError(f"Failed to import schema {file}: {e}")

        if not hasattr(module, 'schema'):
            raise DatabaseSchemaError(f"Schema file {file} missing 'schema' definition")

        schema = module.schema
        if schema['version'] != version:
            raise DatabaseSchemaError(
                f"Schema version mismatch in {file}: "
                f"Expected v{version}, got v{schema['version']}"
            )

        schema_files[version] = schema

    return dict(sorted(schema_files.items()))


def latest_schema(schema_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Return the newest schema definition."""
    schema_files = load_schema_files(schema_dir)
    if not schema_files:
        raise DatabaseSchemaError("No valid schema files found in schema directory")
    return schema_files[max(schema_files)]


def unique_indexes(table: Dict[str, Any]) -> Dict[str, str]:
    """Map unique index names of a table to the document field they cover."""
    return {
        idx['name']: idx['field']
        for idx in table.get('indexes', [])
        if idx.get('unique') and 'field' in idx
    }


class SchemaManager:
    """Manages database schema versioning and migrations."""

    def __init__(self, pool, schema_dir: Optional[Path] = None) -> None:
        """Initialize schema manager.

        Args:
            pool: Database connection pool
            schema_dir: Directory containing schema version files
        """
        self.pool = pool
        self._schema_dir = Path(schema_dir or SCHEMA_DIR)
        self.current_version = 0
        self._schema_files: Dict[int, Dict[str, Any]] = {}

    @property
    def schema(self) -> Dict[str, Any]:
        """Latest loaded schema definition."""
        if not self._schema_files:
            self._schema_files = load_schema_files(self._schema_dir)
        return self._schema_files[max(self._schema_files)]

    async def initialize(self) -> None:
        """Initialize schema management.

        Creates schema version table if it doesn't exist and runs any pending migrations.

        Raises:
            DatabaseSchemaError: If schema initialization fails or no valid schema files are found
        """
        try:
            async with self.pool.acquire() as conn:
                await conn.execute('''
                    CREATE TABLE IF NOT EXISTS schema_version (
                        version INT8 PRIMARY KEY,
                        applied_at TIMESTAMP NOT NULL DEFAULT now()
                    )
                ''')

                row = await conn.fetchrow(
                    'SELECT version FROM schema_version ORDER BY version DESC LIMIT 1'
                )
                self.current_version = row['version'] if row else 0

            self._schema_files = load_schema_files(self._schema_dir)
            if not self._schema_files:
                logger.error("No valid schema files found in schema directory")
                raise DatabaseSchemaError("No valid schema files found in schema directory")

            await self._apply_migrations(self._schema_files)

        except DatabaseSchemaError:
            raise
        except Exception as e:
            logger.error(f"Schema initialization failed: {e}")
            raise DatabaseSchemaError(f"Failed to initialize schema: {e}")

    async def _apply_migrations(self, schema_files: Dict[int, Dict[str, Any]]) -> None:
        """Apply any pending schema migrations.

        Args:
            schema_files: Dict mapping version numbers to schema definitions
        """
        latest_version = max(schema_files.keys())
        if self.current_version >= latest_version:
            logger.info("Schema is up to date")
            return

        logger.info(
            f"Updating schema from version {self.current_version} to {latest_version}"
        )

        try:
            async with self.pool.acquire() as conn:
                if self.current_version == 0:
                    await self._create_fresh_schema(conn, schema_files[latest_version])
                else:
                    for version in range(self.current_version + 1, latest_version + 1):
                        if version not in schema_files:
                            continue
                        async with conn.transaction():
                            await self._apply_version_migrations(conn, schema_files[version])
                            await conn.execute(
                                'INSERT INTO schema_version (version) VALUES ($1)',
                                version
                            )
                        logger.info(f"Successfully migrated to version {version}")
            self.current_version = latest_version

        except Exception as e:
            logger.error(f"Schema migration failed: {e}")
            raise DatabaseSchemaError(f"Failed to apply schema migrations: {e}")

    async def _create_fresh_schema(self, conn, schema: Dict[str, Any]) -> None:
        """Create a fresh schema installation.

        Args:
            conn: Database connection
            schema: Latest schema definition
        """
        for table in schema.get('tables', []):
            await self._create_table(conn, table)
            await self._create_indexes(conn, table)

        await conn.execute(
            'INSERT INTO schema_version (version) VALUES ($1)',
            schema['version']
        )
        logger.info(f"Successfully created fresh schema version {schema['version']}")

    async def _apply_version_migrations(self, conn, schema: Dict[str, Any]) -> None:
        """Apply the raw SQL migrations listed by a schema version."""
        for migration in schema.get('migrations', []):
            await conn.execute(migration)

    async def _create_table(self, conn, table: Dict[str, Any]) -> None:
        """Create a single collection table.

        Args:
            conn: Database connection
            table: Table definition dictionary
        """
        columns: List[str] = []
        constraints: List[str] = []

        for col in table['columns']:
            col_def = f"{col['name']} {col['type']}"

            if col.get('primary_key'):
                constraints.append(f"PRIMARY KEY ({col['name']})")

            if 'default' in col:
                col_def += f" DEFAULT {col['default']}"

            if col.get('nullable') is False:
                col_def += " NOT NULL"

            columns.append(col_def)

        table_def = ', '.join(columns + constraints)

        await conn.execute(f'''
            CREATE TABLE IF NOT EXISTS {table['name']} (
                {table_def}
            )
        ''')
        logger.info(f"Created table {table['name']}")

    async def _create_indexes(self, conn, table: Dict[str, Any]) -> None:
        """Create the expression indexes of a table.

        Args:
            conn: Database connection
            table: Table definition dictionary
        """
        for idx in table.get('indexes', []):
            unique = 'UNIQUE ' if idx.get('unique') else ''
            where = f" WHERE {idx['where']}" if 'where' in idx else ''
            await conn.execute(f'''
                CREATE {unique}INDEX IF NOT EXISTS {idx['name']}
                ON {table['name']} ({', '.join(idx['columns'])})
                {where}
            ''')
            logger.info(f"Created index {idx['name']} on {table['name']}")
