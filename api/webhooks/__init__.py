"""Settlement webhook endpoints.

Called by the settlement workflow with the ``x-api-key`` header. Each call
updates one order or offer and, when something changed, notifies the
connected WebSocket clients.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Security, status

from auth import require_api_key
from offers import OfferError, OfferManager
from orders import OrderError, OrderManager
from validators import as_boolean
from validators.webhooks import (
    UPDATE_OFFER,
    UPDATE_OFFER_ACTIVATION,
    UPDATE_OFFER_CHAIN,
    UPDATE_OFFER_MAX_PRICE,
    UPDATE_OFFER_MIN_PRICE,
    UPDATE_OFFER_TOKEN,
    UPDATE_ORDER,
)
from ..validation import RequestData, validated

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/webhook",
    tags=["Webhooks"],
    dependencies=[Security(require_api_key)]
)

def _offers(request: Request) -> OfferManager:
    return OfferManager(request.app.state.store, request.app.state.notifier)

def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error handling {action} webhook: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(e)
    )

@router.put("/offer/max-price")
async def update_offer_max_price(request: Request, data: RequestData = Depends(validated(UPDATE_OFFER_MAX_PRICE))):
    try:
        return await _offers(request).update_max_price(data.body['_idOffer'], data.body.get('_upperMaxFn'))
    except OfferError:
        raise
    except Exception as e:
        raise _server_error("max price", e)

@router.put("/offer/min-price")
async def update_offer_min_price(request: Request, data: RequestData = Depends(validated(UPDATE_OFFER_MIN_PRICE))):
    try:
        return await _offers(request).update_min_price(data.body['_idOffer'], data.body.get('_lowerLimitFn'))
    except OfferError:
        raise
    except Exception as e:
        raise _server_error("min price", e)

@router.put("/offer/token")
async def update_offer_token(request: Request, data: RequestData = Depends(validated(UPDATE_OFFER_TOKEN))):
    try:
        return await _offers(request).update_token(data.body['_idOffer'], data.body.get('_token'))
    except OfferError:
        raise
    except Exception as e:
        raise _server_error("token", e)

@router.put("/offer/chain")
async def update_offer_chain(request: Request, data: RequestData = Depends(validated(UPDATE_OFFER_CHAIN))):
    try:
        return await _offers(request).update_chain(data.body['_idOffer'], data.body.get('_chainId'))
    except OfferError:
        raise
    except Exception as e:
        raise _server_error("chain", e)

@router.put("/offer/activation-deactivation")
async def update_offer_activation(request: Request, data: RequestData = Depends(validated(UPDATE_OFFER_ACTIVATION))):
    is_active = data.body.get('_isActive')
    try:
        return await _offers(request).update_activation(
            data.body['_idOffer'],
            None if is_active is None else as_boolean(is_active)
        )
    except OfferError:
        raise
    except Exception as e:
        raise _server_error("activation", e)

@router.put("/offer")
async def update_offer(request: Request, data: RequestData = Depends(validated(UPDATE_OFFER))):
    """Assign the on-chain offer id to the offer created by a transaction."""
    try:
        return await _offers(request).mark_offer_success(
            data.body['_grinderyTransactionHash'],
            data.body['_idOffer']
        )
    except OfferError:
        raise
    except Exception as e:
        raise _server_error("offer", e)

@router.put("/order")
async def update_order(request: Request, data: RequestData = Depends(validated(UPDATE_ORDER))):
    """Record that the order created by a transaction was accepted on chain."""
    try:
        return await OrderManager(request.app.state.store, request.app.state.notifier).mark_order_success(
            data.body['_grinderyTransactionHash'],
            data.body['_idTrade']
        )
    except OrderError:
        raise
    except Exception as e:
        raise _server_error("order", e)

__all__ = ['router']
