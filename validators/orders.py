"""Rule sets for the order endpoints."""
from . import EndpointRules, RuleKind, Section, required, rule

B, Q, P = Section.BODY, Section.QUERY, Section.PARAMS

ORDER_FIELDS = (
    'status',
    'orderId',
    'amountTokenDeposit',
    'addressTokenDeposit',
    'chainIdTokenDeposit',
    'destAddr',
    'amountTokenOffer',
    'offerId',
    'hash',
)

CREATE_ORDER = EndpointRules(
    rules=(
        rule(B, 'status', RuleKind.MATCHES_PATTERN,
             message='must be one of "pending", "success" or "failure"',
             pattern=r'^(pending|success|failure)$', optional=True),
        rule(B, 'orderId', RuleKind.IS_STRING, optional=True),
        *required(B, 'amountTokenDeposit'),
        *required(B, 'addressTokenDeposit'),
        *required(B, 'chainIdTokenDeposit'),
        *required(B, 'destAddr'),
        *required(B, 'amountTokenOffer'),
        *required(B, 'offerId'),
        *required(B, 'hash'),
    ),
    allowed={B: ORDER_FIELDS, Q: (), P: ()}
)

PAGINATION = (
    rule(Q, 'offset', RuleKind.IS_NUMERIC, optional=True),
    rule(Q, 'limit', RuleKind.IS_NUMERIC, optional=True),
)

GET_ORDERS_BY_USER = EndpointRules(
    rules=PAGINATION,
    allowed={B: (), Q: ('offset', 'limit'), P: ()}
)

GET_ORDERS_BY_LIQUIDITY_PROVIDER = EndpointRules(
    rules=(
        *PAGINATION,
        rule(Q, 'isActiveOffers', RuleKind.IS_BOOLEAN, optional=True),
    ),
    allowed={B: (), Q: ('offset', 'limit', 'isActiveOffers'), P: ()}
)

GET_ORDER_BY_ORDER_ID = EndpointRules(
    rules=required(Q, 'orderId'),
    allowed={Q: ('orderId',)}
)

GET_ORDER_BY_ID = EndpointRules(
    rules=required(Q, 'id', RuleKind.IS_MONGO_ID),
    allowed={Q: ('id',)}
)

SET_ORDER_STATUS = EndpointRules(
    rules=(
        *required(B, 'orderId'),
        rule(B, 'status', RuleKind.MATCHES_PATTERN,
             message='must be "failure" or "completionFailure"',
             pattern=r'^(failure|completionFailure)$'),
    ),
    allowed={B: ('orderId', 'status'), Q: (), P: ()}
)

COMPLETE_ORDER = EndpointRules(
    rules=(
        *required(B, 'orderId'),
        *required(B, 'completionHash'),
    ),
    allowed={B: ('orderId', 'completionHash'), Q: (), P: ()}
)

DELETE_ORDER = EndpointRules(
    rules=required(P, 'orderId'),
    allowed={Q: ()}
)
