"""Offers API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Security, status

from auth import get_current_user
from offers import OfferError, OfferManager
from validators.offers import (
    CREATE_OFFER,
    DELETE_OFFER,
    GET_OFFER_BY_ID,
    GET_OFFER_BY_OFFER_ID,
    GET_OFFERS_BY_USER,
    SEARCH_OFFERS,
)
from ..validation import RequestData, page_value, validated, with_booleans

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/offers",
    tags=["Offers"]
)

def _manager(request: Request) -> OfferManager:
    return OfferManager(request.app.state.store, request.app.state.notifier)

def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(e)
    )

@router.post("")
async def create_offer(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(CREATE_OFFER))
):
    """Publish a pending offer for the caller."""
    try:
        return await _manager(request).create_offer(current_user, with_booleans(data.body, ('isActive',)))
    except OfferError:
        raise
    except Exception as e:
        raise _server_error("creating offer", e)

@router.get("/search")
async def search_offers(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(SEARCH_OFFERS))
):
    """Active offers, optionally narrowed by chain and token."""
    try:
        return await _manager(request).search_offers(
            data.query,
            offset=page_value(data.query, 'offset'),
            limit=page_value(data.query, 'limit')
        )
    except Exception as e:
        raise _server_error("searching offers", e)

@router.get("/user")
async def get_offers_by_user(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(GET_OFFERS_BY_USER))
):
    try:
        return await _manager(request).get_offers_by_user(
            current_user,
            offset=page_value(data.query, 'offset'),
            limit=page_value(data.query, 'limit')
        )
    except Exception as e:
        raise _server_error("listing offers", e)

@router.get("/offerId")
async def get_offer_by_offer_id(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(GET_OFFER_BY_OFFER_ID))
):
    try:
        return await _manager(request).get_offer_by_offer_id(data.query['offerId'])
    except Exception as e:
        raise _server_error("getting offer", e)

@router.get("/id")
async def get_offer_by_id(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(GET_OFFER_BY_ID))
):
    try:
        return await _manager(request).get_offer_by_id(data.query['id'])
    except Exception as e:
        raise _server_error("getting offer", e)

@router.delete("/{offerId}")
async def delete_offer(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(DELETE_OFFER))
):
    try:
        return await _manager(request).delete_offer(current_user, data.params['offerId'])
    except OfferError:
        raise
    except Exception as e:
        raise _server_error("deleting offer", e)

__all__ = ['router']
