"""Rule sets for the offer endpoints."""
from . import EndpointRules, RuleKind, Section, optional, required, rule

B, Q, P = Section.BODY, Section.QUERY, Section.PARAMS

OFFER_FIELDS = (
    'offerId',
    'chainId',
    'min',
    'max',
    'tokenId',
    'token',
    'tokenAddress',
    'hash',
    'isActive',
    'exchangeRate',
    'exchangeToken',
    'exchangeChainId',
    'estimatedTime',
    'provider',
    'title',
    'image',
    'amount',
)

CREATE_OFFER = EndpointRules(
    rules=(
        *required(B, 'chainId'),
        *required(B, 'min'),
        *required(B, 'max'),
        *required(B, 'tokenId'),
        *required(B, 'token'),
        *required(B, 'tokenAddress'),
        *required(B, 'hash'),
        *required(B, 'isActive', RuleKind.IS_BOOLEAN),
        *required(B, 'exchangeRate'),
        *required(B, 'exchangeToken'),
        *required(B, 'exchangeChainId'),
        *required(B, 'estimatedTime'),
        rule(B, 'offerId', RuleKind.IS_STRING, optional=True),
        rule(B, 'provider', RuleKind.IS_STRING, optional=True),
        rule(B, 'title', RuleKind.IS_STRING, optional=True),
        rule(B, 'image', RuleKind.IS_STRING, optional=True),
        rule(B, 'amount', RuleKind.IS_STRING, optional=True),
    ),
    allowed={B: OFFER_FIELDS, Q: (), P: ()}
)

SEARCH_OFFERS = EndpointRules(
    rules=(
        rule(Q, 'offset', RuleKind.IS_NUMERIC, optional=True),
        rule(Q, 'limit', RuleKind.IS_NUMERIC, optional=True),
        *optional(Q, 'chainId'),
        *optional(Q, 'exchangeChainId'),
        *optional(Q, 'token'),
        *optional(Q, 'exchangeToken'),
    ),
    allowed={B: (), Q: ('offset', 'limit', 'chainId', 'exchangeChainId', 'token', 'exchangeToken'), P: ()}
)

GET_OFFERS_BY_USER = EndpointRules(
    rules=(
        rule(Q, 'offset', RuleKind.IS_NUMERIC, optional=True),
        rule(Q, 'limit', RuleKind.IS_NUMERIC, optional=True),
    ),
    allowed={B: (), Q: ('offset', 'limit'), P: ()}
)

GET_OFFER_BY_OFFER_ID = EndpointRules(
    rules=required(Q, 'offerId'),
    allowed={Q: ('offerId',)}
)

GET_OFFER_BY_ID = EndpointRules(
    rules=required(Q, 'id', RuleKind.IS_MONGO_ID, message='must be a valid mongodb id'),
    allowed={Q: ('id',)}
)

DELETE_OFFER = EndpointRules(
    rules=required(P, 'offerId'),
    allowed={Q: ()}
)
