"""Rule sets for the settlement webhooks.

Offer field updates carry the offer id plus an optional new value; a missing
value leaves the stored one unchanged.
"""
from . import EndpointRules, RuleKind, Section, required, rule

B, Q, P = Section.BODY, Section.QUERY, Section.PARAMS


def _offer_update(field, kind=RuleKind.IS_STRING):
    return EndpointRules(
        rules=(
            *required(B, '_idOffer'),
            rule(B, field, kind, optional=True),
        ),
        allowed={B: ('_idOffer', field), Q: (), P: ()}
    )


UPDATE_OFFER_MAX_PRICE = _offer_update('_upperMaxFn')
UPDATE_OFFER_MIN_PRICE = _offer_update('_lowerLimitFn')
UPDATE_OFFER_TOKEN = _offer_update('_token')
UPDATE_OFFER_CHAIN = _offer_update('_chainId')
UPDATE_OFFER_ACTIVATION = _offer_update('_isActive', RuleKind.IS_BOOLEAN)

UPDATE_OFFER = EndpointRules(
    rules=(
        *required(B, '_grinderyTransactionHash'),
        *required(B, '_idOffer'),
    ),
    allowed={B: ('_grinderyTransactionHash', '_idOffer'), Q: (), P: ()}
)

UPDATE_ORDER = EndpointRules(
    rules=(
        *required(B, '_grinderyTransactionHash'),
        *required(B, '_idTrade'),
    ),
    allowed={B: ('_grinderyTransactionHash', '_idTrade'), Q: (), P: ()}
)
