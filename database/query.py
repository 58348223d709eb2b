"""Document filter, update and sort semantics shared by the store backends.

Filters map a field to a plain value (equality) or to a single operator:

    {'userId': 'abc'}                      equality
    {'offerId': {'$in': ['a', 'b']}}       membership
    {'userId': {'$ieq': 'ABC'}}            case-insensitive string equality

The special field '_id' addresses the store-assigned identifier.

Updates support '$set' and '$unset'. A key may use one level of dotted path
('usefulAddresses.myContract') to address an entry of an embedded mapping.
"""
import copy
import secrets
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .exceptions import InvalidQueryError

FILTER_OPERATORS = {'$in', '$ieq'}
UPDATE_OPERATORS = {'$set', '$unset'}

ASCENDING = 1
DESCENDING = -1

_MISSING = object()


def new_object_id() -> str:
    """Generate a 24-character hex id: 4-byte timestamp then 8 random bytes."""
    return f"{int(time.time()) & 0xffffffff:08x}{secrets.token_hex(8)}"


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string; sorts chronologically as text."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def update_result(matched: int = 0, modified: int = 0) -> Dict[str, Any]:
    """Result document of a single-document update."""
    return {
        'acknowledged': True,
        'modifiedCount': modified,
        'upsertedId': None,
        'upsertedCount': 0,
        'matchedCount': matched
    }


def _split_path(field: str) -> List[str]:
    parts = field.split('.')
    if len(parts) > 2 or not all(parts):
        raise InvalidQueryError(f"Unsupported field path: {field!r}")
    return parts


def _get_path(doc: Dict[str, Any], field: str) -> Any:
    value: Any = doc
    for part in _split_path(field):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def split_condition(field: str, condition: Any) -> Tuple[Optional[str], Any]:
    """Return (operator, operand) for a filter entry; operator is None for equality."""
    if isinstance(condition, dict) and any(key.startswith('$') for key in condition):
        if len(condition) != 1:
            raise InvalidQueryError(f"Only one operator allowed for {field!r}")
        (operator, operand), = condition.items()
        if operator not in FILTER_OPERATORS:
            raise InvalidQueryError(f"Unsupported operator {operator!r} for {field!r}")
        if operator == '$in' and not isinstance(operand, (list, tuple, set)):
            raise InvalidQueryError(f"$in for {field!r} expects a sequence")
        if operator == '$ieq' and not isinstance(operand, str):
            raise InvalidQueryError(f"$ieq for {field!r} expects a string")
        return operator, operand
    return None, condition


def _equal(left: Any, right: Any) -> bool:
    # JSON booleans never equal numbers
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    return left == right


def matches(doc: Dict[str, Any], filter: Optional[Dict[str, Any]]) -> bool:
    """Check whether a document satisfies a filter."""
    for field, condition in (filter or {}).items():
        operator, operand = split_condition(field, condition)
        value = _get_path(doc, field)
        if value is _MISSING:
            return False
        if operator is None:
            if not _equal(value, operand):
                return False
        elif operator == '$in':
            if not any(_equal(value, candidate) for candidate in operand):
                return False
        elif operator == '$ieq':
            if not isinstance(value, str) or value.lower() != operand.lower():
                return False
    return True


def apply_update(doc: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of doc with a $set/$unset update applied.

    Raises:
        InvalidQueryError: For unknown operators, deep paths or writes to '_id'
    """
    if not update or set(update) - UPDATE_OPERATORS:
        raise InvalidQueryError(f"Unsupported update: {update!r}")

    result = copy.deepcopy(doc)

    for field, value in update.get('$set', {}).items():
        parts = _split_path(field)
        if parts[0] == '_id':
            raise InvalidQueryError("'_id' is immutable")
        if len(parts) == 1:
            result[field] = copy.deepcopy(value)
            continue
        container = result.setdefault(parts[0], {})
        if not isinstance(container, dict):
            raise InvalidQueryError(f"Cannot set {field!r}: {parts[0]!r} is not a mapping")
        container[parts[1]] = copy.deepcopy(value)

    for field in update.get('$unset', {}):
        parts = _split_path(field)
        if parts[0] == '_id':
            raise InvalidQueryError("'_id' is immutable")
        if len(parts) == 1:
            result.pop(field, None)
            continue
        container = result.get(parts[0])
        if isinstance(container, dict):
            container.pop(parts[1], None)

    return result


def _sort_key(value: Any) -> Tuple:
    if value is _MISSING or value is None:
        return (0,)
    if isinstance(value, bool):
        return (3, value)
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (4, str(value))


def sort_documents(
    docs: List[Dict[str, Any]],
    sort: Optional[Sequence[Tuple[str, int]]]
) -> List[Dict[str, Any]]:
    """Sort documents by (field, direction) pairs; missing values sort lowest."""
    result = list(docs)
    # Stable sort applied from the least significant key
    for field, direction in reversed(list(sort or [])):
        result.sort(
            key=lambda doc: _sort_key(_get_path(doc, field)),
            reverse=direction == DESCENDING
        )
    return result


def build_where(filter: Optional[Dict[str, Any]], start: int = 1) -> Tuple[str, List[Any]]:
    """Translate a filter into a SQL predicate over (id TEXT, doc JSONB) rows.

    Args:
        filter: Document filter
        start: Number of the first positional parameter

    Returns:
        Tuple of (predicate, parameters)
    """
    clauses: List[str] = []
    params: List[Any] = []

    def param(value: Any) -> str:
        params.append(value)
        return f"${start + len(params) - 1}"

    for field, condition in (filter or {}).items():
        operator, operand = split_condition(field, condition)

        if field == '_id':
            if operator is None:
                clauses.append(f"id = {param(operand)}::text")
            elif operator == '$in':
                clauses.append(f"id = ANY({param([str(v) for v in operand])}::text[])")
            else:
                raise InvalidQueryError("'_id' only supports equality and $in")
            continue

        path = param(_split_path(field))
        if operator is None:
            clauses.append(f"doc #> {path}::text[] = {param(operand)}::jsonb")
        elif operator == '$in':
            if not all(isinstance(v, str) for v in operand):
                raise InvalidQueryError(f"$in for {field!r} only supports strings")
            clauses.append(
                f"(jsonb_typeof(doc #> {path}::text[]) = 'string' "
                f"AND doc #>> {path}::text[] = ANY({param(list(operand))}::text[]))"
            )
        elif operator == '$ieq':
            clauses.append(f"lower(doc #>> {path}::text[]) = lower({param(operand)}::text)")

    return (' AND '.join(clauses) if clauses else 'TRUE'), params


def build_order_by(sort: Optional[Sequence[Tuple[str, int]]], start: int = 1) -> Tuple[str, List[Any]]:
    """Translate (field, direction) pairs into an ORDER BY clause on text values."""
    if not sort:
        return 'ORDER BY created_at, id', []

    terms: List[str] = []
    params: List[Any] = []
    for field, direction in sort:
        params.append(_split_path(field))
        order = 'DESC' if direction == DESCENDING else 'ASC'
        nulls = 'NULLS LAST' if direction == DESCENDING else 'NULLS FIRST'
        terms.append(f"doc #>> ${start + len(params) - 1}::text[] {order} {nulls}")
    terms.append('created_at')
    terms.append('id')
    return 'ORDER BY ' + ', '.join(terms), params
