"""Database exceptions."""


class DatabaseError(Exception):
    """Base exception for record store failures."""
    pass


class DatabaseSchemaError(DatabaseError):
    """Raised when the schema cannot be loaded or applied."""
    pass


class DuplicateKeyError(DatabaseError):
    """Raised when a write would violate a unique field constraint."""

    def __init__(self, collection: str, field: str, value):
        self.collection = collection
        self.field = field
        self.value = value
        super().__init__(f"Duplicate {field} {value!r} in {collection}")


class InvalidQueryError(DatabaseError):
    """Raised for filters or updates the store does not understand."""
    pass
