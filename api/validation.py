"""Request validation dependency for the API routes."""
import json
from decimal import Decimal
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from fastapi import Request

from validators import EndpointRules, ValidationError, as_boolean

logger = logging.getLogger(__name__)

class RequestValidationFailure(Exception):
    """Raised when a request breaks one or more rules of its endpoint."""
    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        super().__init__(f"{len(errors)} validation error(s)")

@dataclass
class RequestData:
    """The validated sections of a request."""
    body: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)

async def read_body(request: Request) -> Dict[str, Any]:
    """JSON object body of a request; anything else reads as empty."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        logger.warning(f"Unparseable body on {request.url.path}")
        return {}
    return body if isinstance(body, dict) else {}

def validated(rules: EndpointRules) -> Callable:
    """Build a dependency that evaluates ``rules`` against the request.

    The dependency returns the request sections as ``RequestData`` and raises
    ``RequestValidationFailure`` carrying every error when any rule fails.
    """
    async def dependency(request: Request) -> RequestData:
        data = RequestData(
            body=await read_body(request),
            query=dict(request.query_params),
            params=dict(request.path_params)
        )
        errors = rules.evaluate(data.body, data.query, data.params)
        if errors:
            raise RequestValidationFailure(errors)
        return data

    return dependency

def page_value(query: Dict[str, Any], key: str) -> int:
    """Offset or limit from the query string; absent means 0."""
    value = query.get(key)
    if value in (None, ''):
        return 0
    return max(int(Decimal(str(value))), 0)

def with_booleans(body: Dict[str, Any], fields) -> Dict[str, Any]:
    """Copy of body with the given boolean-ish fields stored as real bools."""
    return {
        key: as_boolean(value) if key in fields else value
        for key, value in body.items()
    }

__all__ = [
    'RequestValidationFailure', 'RequestData', 'validated', 'page_value', 'read_body', 'with_booleans'
]
