"""Rule sets for the liquidity wallet endpoints."""
from . import EndpointRules, RuleKind, Section, required, rule

B, Q, P = Section.BODY, Section.QUERY, Section.PARAMS

SHOULD_NOT_BE_EMPTY = 'should not be empty'


def _required(section, field, kind=RuleKind.IS_STRING):
    return required(section, field, kind, empty_message=SHOULD_NOT_BE_EMPTY)


CREATE_WALLET = EndpointRules(
    rules=(
        *_required(B, 'walletAddress'),
        *_required(B, 'chainId'),
    ),
    allowed={B: ('walletAddress', 'chainId'), Q: (), P: ()}
)

UPDATE_WALLET = EndpointRules(
    rules=(
        *_required(B, 'walletAddress'),
        *_required(B, 'chainId'),
        *_required(B, 'tokenId'),
        rule(B, 'tokenId', RuleKind.MATCHES_PATTERN, message='must not contain "." or "$"',
             pattern=r'[^.$]+', optional=True),
        *_required(B, 'amount'),
    ),
    allowed={B: ('walletAddress', 'chainId', 'tokenId', 'amount'), Q: (), P: ()}
)

GET_WALLETS_BY_USER = EndpointRules(
    rules=(
        rule(Q, 'chainId', RuleKind.NOT_EMPTY, message=SHOULD_NOT_BE_EMPTY),
    ),
    allowed={B: (), Q: ('chainId',)}
)

GET_WALLET = EndpointRules(
    rules=(
        *_required(Q, 'walletAddress'),
        *_required(Q, 'chainId'),
    ),
    allowed={B: (), Q: ('walletAddress', 'chainId')}
)

GET_WALLET_BY_ID = EndpointRules(
    rules=required(Q, 'id', RuleKind.IS_MONGO_ID),
    allowed={B: (), Q: ('id',)}
)

DELETE_WALLET = EndpointRules(
    rules=(
        rule(Q, 'walletAddress', RuleKind.NOT_EMPTY, message=SHOULD_NOT_BE_EMPTY),
        rule(Q, 'chainId', RuleKind.NOT_EMPTY, message=SHOULD_NOT_BE_EMPTY),
    ),
    allowed={B: (), Q: ('walletAddress', 'chainId')}
)
