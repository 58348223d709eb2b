"""Declarative request validation.

Endpoints declare an ``EndpointRules`` value: an ordered tuple of
``ValidationRule``s plus, per request section, the keys that section may
carry. Evaluating it never raises; it returns every failure as a
``ValidationError`` with rule failures first (declaration order) followed by
one allow-list error per offending section (body, query, params).
"""
import logging
import math
import re
from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Annotated, Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pydantic
from pydantic import AnyUrl, BaseModel, TypeAdapter, UrlConstraints

logger = logging.getLogger(__name__)


class Section(str, Enum):
    """Request section a rule reads from."""
    BODY = 'body'
    QUERY = 'query'
    PARAMS = 'params'


class RuleKind(str, Enum):
    """Supported field checks."""
    IS_STRING = 'isString'
    IS_NUMERIC = 'isNumeric'
    IS_BOOLEAN = 'isBoolean'
    IS_ARRAY = 'isArray'
    IS_ARRAY_OF_URL = 'isArrayOfUrl'
    IS_URL = 'isUrl'
    IS_CAIP_ID = 'isCaipId'
    IS_MONGO_ID = 'isMongoId'
    MATCHES_PATTERN = 'matchesPattern'
    NOT_EMPTY = 'notEmpty'


DEFAULT_MESSAGES: Dict[RuleKind, str] = {
    RuleKind.IS_STRING: 'must be string value',
    RuleKind.IS_NUMERIC: 'must be numeric value',
    RuleKind.IS_BOOLEAN: 'must be boolean value',
    RuleKind.IS_ARRAY: 'must be an array',
    RuleKind.IS_ARRAY_OF_URL: 'must be an array of URL',
    RuleKind.IS_URL: 'must be a valid URL',
    RuleKind.IS_CAIP_ID: 'must be a valid CAIP id',
    RuleKind.IS_MONGO_ID: 'must be mongodb id',
    RuleKind.MATCHES_PATTERN: 'must match the pattern',
    RuleKind.NOT_EMPTY: 'must not be empty',
}

CAIP_ID_PATTERN = re.compile(r'^[-a-z0-9]+:[-a-zA-Z0-9]+$')
MONGO_ID_PATTERN = re.compile(r'^[0-9a-fA-F]{24}$')
NUMERIC_PATTERN = re.compile(r'^[+-]?([0-9]*[.])?[0-9]+$')
BOOLEAN_STRINGS = frozenset({'true', 'false', '1', '0'})

_URL_ADAPTER = TypeAdapter(
    Annotated[AnyUrl, UrlConstraints(allowed_schemes=['http', 'https', 'ws', 'wss'], host_required=True)]
)

_MISSING = object()


class ValidationError(BaseModel):
    """One validation failure as returned to the caller."""
    location: str
    param: str
    msg: str


@dataclass(frozen=True)
class ValidationRule:
    """A single constraint on one field of one request section.

    Attributes:
        field: Key of the field within its section
        section: Section the field is read from
        kind: Check to apply
        message: Failure message; defaults to the kind's standard message
        pattern: Regular expression for ``matchesPattern`` (full match)
        optional: Skip the rule entirely when the field is absent
    """
    field: str
    section: Section
    kind: RuleKind
    message: Optional[str] = None
    pattern: Optional[str] = None
    optional: bool = False

    def __post_init__(self):
        if self.message is None:
            object.__setattr__(self, 'message', DEFAULT_MESSAGES[self.kind])
        if self.kind == RuleKind.MATCHES_PATTERN and not self.pattern:
            raise ValueError(f"Rule for {self.field!r} needs a pattern")


def _is_string(value: Any, rule: ValidationRule) -> bool:
    return isinstance(value, str)


def _is_numeric(value: Any, rule: ValidationRule) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, str) and NUMERIC_PATTERN.match(value) is not None


def _is_boolean(value: Any, rule: ValidationRule) -> bool:
    if isinstance(value, bool):
        return True
    return isinstance(value, (str, int)) and str(value) in BOOLEAN_STRINGS


def as_boolean(value: Any) -> bool:
    """Coerce a value accepted by ``isBoolean`` to a bool."""
    if isinstance(value, bool):
        return value
    return str(value) in ('true', '1')


def _is_array(value: Any, rule: ValidationRule) -> bool:
    return isinstance(value, list)


def is_url(value: Any) -> bool:
    """Check that value is an absolute http(s)/ws(s) URL with a host."""
    if not isinstance(value, str):
        return False
    try:
        _URL_ADAPTER.validate_python(value)
    except pydantic.ValidationError:
        return False
    return True


def _is_url(value: Any, rule: ValidationRule) -> bool:
    return is_url(value)


def _is_array_of_url(value: Any, rule: ValidationRule) -> bool:
    return isinstance(value, list) and all(is_url(item) for item in value)


def _is_caip_id(value: Any, rule: ValidationRule) -> bool:
    return isinstance(value, str) and CAIP_ID_PATTERN.match(value) is not None


def _is_mongo_id(value: Any, rule: ValidationRule) -> bool:
    return isinstance(value, str) and MONGO_ID_PATTERN.match(value) is not None


def _matches_pattern(value: Any, rule: ValidationRule) -> bool:
    return isinstance(value, str) and re.fullmatch(rule.pattern, value) is not None


def _not_empty(value: Any, rule: ValidationRule) -> bool:
    return value is not _MISSING and value is not None and value != '' and value != []


_CHECKS: Dict[RuleKind, Callable[[Any, ValidationRule], bool]] = {
    RuleKind.IS_STRING: _is_string,
    RuleKind.IS_NUMERIC: _is_numeric,
    RuleKind.IS_BOOLEAN: _is_boolean,
    RuleKind.IS_ARRAY: _is_array,
    RuleKind.IS_ARRAY_OF_URL: _is_array_of_url,
    RuleKind.IS_URL: _is_url,
    RuleKind.IS_CAIP_ID: _is_caip_id,
    RuleKind.IS_MONGO_ID: _is_mongo_id,
    RuleKind.MATCHES_PATTERN: _matches_pattern,
    RuleKind.NOT_EMPTY: _not_empty,
}


def check_rule(rule: ValidationRule, data: Mapping[str, Any]) -> Optional[ValidationError]:
    """Apply one rule to the data of its section."""
    value = data.get(rule.field, _MISSING) if isinstance(data, Mapping) else _MISSING
    if value is _MISSING and rule.optional:
        return None
    if _CHECKS[rule.kind](value, rule):
        return None
    return ValidationError(location=rule.section.value, param=rule.field, msg=rule.message)


def check_allowed(section: Section, data: Mapping[str, Any], allowed: Sequence[str]) -> Optional[ValidationError]:
    """Report every key of a section that is not in its allow-list, as one error."""
    extra = [key for key in data if key not in allowed]
    if not extra:
        return None
    keys = ', '.join(extra)
    return ValidationError(
        location=section.value,
        param=keys,
        msg=f"The following fields are not allowed in {section.value}: {keys}"
    )


@dataclass(frozen=True)
class EndpointRules:
    """Rule set of one endpoint.

    ``allowed`` maps a section to its permitted keys; sections left out of
    the mapping are not allow-list checked.
    """
    rules: Tuple[ValidationRule, ...] = ()
    allowed: Mapping[Section, Tuple[str, ...]] = dataclass_field(default_factory=dict)

    def evaluate(
        self,
        body: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None
    ) -> List[ValidationError]:
        sections = {
            Section.BODY: body if isinstance(body, Mapping) else {},
            Section.QUERY: query or {},
            Section.PARAMS: params or {},
        }

        errors = []
        for validation_rule in self.rules:
            error = check_rule(validation_rule, sections[validation_rule.section])
            if error is not None:
                errors.append(error)

        for section in Section:
            if section not in self.allowed:
                continue
            error = check_allowed(section, sections[section], self.allowed[section])
            if error is not None:
                errors.append(error)

        return errors


def rule(section: Section, field: str, kind: RuleKind, message: Optional[str] = None,
         pattern: Optional[str] = None, optional: bool = False) -> ValidationRule:
    return ValidationRule(field, section, kind, message, pattern, optional)


def required(section: Section, field: str, kind: RuleKind = RuleKind.IS_STRING,
             empty_message: Optional[str] = None, message: Optional[str] = None) -> Tuple[ValidationRule, ...]:
    """A type check followed by a not-empty check on the same field."""
    return (
        ValidationRule(field, section, kind, message),
        ValidationRule(field, section, RuleKind.NOT_EMPTY, empty_message),
    )


def optional(section: Section, field: str, kind: RuleKind = RuleKind.IS_STRING,
             empty_message: Optional[str] = None, message: Optional[str] = None) -> Tuple[ValidationRule, ...]:
    """Like ``required`` but skipped when the field is absent."""
    return (
        ValidationRule(field, section, kind, message, optional=True),
        ValidationRule(field, section, RuleKind.NOT_EMPTY, empty_message, optional=True),
    )


__all__ = [
    'Section', 'RuleKind', 'DEFAULT_MESSAGES', 'ValidationError', 'ValidationRule',
    'EndpointRules', 'check_rule', 'check_allowed', 'is_url', 'as_boolean', 'rule', 'required', 'optional'
]
