"""Rule sets for the blockchain endpoints."""
from . import EndpointRules, RuleKind, Section, optional, required, rule

B, Q, P = Section.BODY, Section.QUERY, Section.PARAMS

BLOCKCHAIN_FIELDS = (
    'caipId',
    'chainId',
    'label',
    'icon',
    'rpc',
    'nativeTokenSymbol',
    'isEvm',
    'isTestnet',
    'isActive',
    'transactionExplorerUrl',
    'addressExplorerUrl',
)

# Contract names become keys of the usefulAddresses mapping
KEY_PATTERN = r'[^.$]+'
KEY_MESSAGE = 'must not contain "." or "$"'

BLOCKCHAIN_ID = required(P, 'blockchainId', RuleKind.IS_MONGO_ID)


def _blockchain_rules(is_optional):
    build = optional if is_optional else required
    return (
        *build(B, 'caipId', RuleKind.IS_CAIP_ID),
        *build(B, 'chainId'),
        *build(B, 'label'),
        *build(B, 'icon'),
        *build(B, 'rpc', RuleKind.IS_ARRAY),
        rule(B, 'rpc', RuleKind.IS_ARRAY_OF_URL, optional=is_optional),
        *build(B, 'nativeTokenSymbol'),
        *build(B, 'isEvm', RuleKind.IS_BOOLEAN),
        *build(B, 'isTestnet', RuleKind.IS_BOOLEAN),
        *build(B, 'isActive', RuleKind.IS_BOOLEAN),
        *build(B, 'transactionExplorerUrl', RuleKind.IS_URL),
        *build(B, 'addressExplorerUrl', RuleKind.IS_URL),
    )


CREATE_BLOCKCHAIN = EndpointRules(
    rules=_blockchain_rules(False),
    allowed={B: BLOCKCHAIN_FIELDS, Q: (), P: ()}
)

UPDATE_BLOCKCHAIN = EndpointRules(
    rules=(*BLOCKCHAIN_ID, *_blockchain_rules(True)),
    allowed={B: BLOCKCHAIN_FIELDS, Q: ()}
)

GET_ACTIVE_BLOCKCHAINS = EndpointRules(allowed={B: (), Q: (), P: ()})

GET_BLOCKCHAIN = EndpointRules(
    rules=BLOCKCHAIN_ID,
    allowed={Q: ()}
)

DELETE_BLOCKCHAIN = EndpointRules(
    rules=BLOCKCHAIN_ID,
    allowed={B: (), Q: ()}
)

UPSERT_USEFUL_ADDRESS = EndpointRules(
    rules=(
        *BLOCKCHAIN_ID,
        *required(B, 'contract'),
        rule(B, 'contract', RuleKind.MATCHES_PATTERN, message=KEY_MESSAGE, pattern=KEY_PATTERN, optional=True),
        *required(B, 'address'),
    ),
    allowed={B: ('contract', 'address')}
)

DELETE_USEFUL_ADDRESS = EndpointRules(
    rules=(
        *BLOCKCHAIN_ID,
        *required(Q, 'contract'),
        rule(Q, 'contract', RuleKind.MATCHES_PATTERN, message=KEY_MESSAGE, pattern=KEY_PATTERN, optional=True),
    ),
    allowed={B: (), Q: ('contract',)}
)
