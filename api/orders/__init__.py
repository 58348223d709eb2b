"""Orders API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Security, status

from auth import get_current_user
from orders import OrderError, OrderManager
from validators import as_boolean
from validators.orders import (
    COMPLETE_ORDER,
    CREATE_ORDER,
    DELETE_ORDER,
    GET_ORDER_BY_ID,
    GET_ORDER_BY_ORDER_ID,
    GET_ORDERS_BY_LIQUIDITY_PROVIDER,
    GET_ORDERS_BY_USER,
    SET_ORDER_STATUS,
)
from ..validation import RequestData, page_value, validated

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/orders",
    tags=["Orders"]
)

def _manager(request: Request) -> OrderManager:
    return OrderManager(request.app.state.store, request.app.state.notifier)

def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(e)
    )

@router.post("")
async def create_order(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(CREATE_ORDER))
):
    """Create a pending order for the caller."""
    try:
        return await _manager(request).create_order(current_user, data.body)
    except OrderError:
        raise
    except Exception as e:
        raise _server_error("creating order", e)

@router.get("/user")
async def get_orders_by_user(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(GET_ORDERS_BY_USER))
):
    """Caller's orders, newest first."""
    try:
        return await _manager(request).get_orders_by_user(
            current_user,
            offset=page_value(data.query, 'offset'),
            limit=page_value(data.query, 'limit')
        )
    except Exception as e:
        raise _server_error("listing orders", e)

@router.get("/orderId")
async def get_order_by_order_id(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(GET_ORDER_BY_ORDER_ID))
):
    try:
        return await _manager(request).get_order_by_order_id(current_user, data.query['orderId'])
    except Exception as e:
        raise _server_error("getting order", e)

@router.get("/id")
async def get_order_by_id(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(GET_ORDER_BY_ID))
):
    try:
        return await _manager(request).get_order_by_id(current_user, data.query['id'])
    except Exception as e:
        raise _server_error("getting order", e)

@router.get("/liquidity-provider")
async def get_orders_by_liquidity_provider(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(GET_ORDERS_BY_LIQUIDITY_PROVIDER))
):
    """Orders placed against the caller's offers."""
    is_active_offers = data.query.get('isActiveOffers')
    try:
        return await _manager(request).get_orders_by_liquidity_provider(
            current_user,
            is_active_offers=None if is_active_offers is None else as_boolean(is_active_offers),
            offset=page_value(data.query, 'offset'),
            limit=page_value(data.query, 'limit')
        )
    except Exception as e:
        raise _server_error("listing liquidity provider orders", e)

@router.put("/complete")
async def complete_order(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(COMPLETE_ORDER))
):
    """Mark a successful order as completed."""
    try:
        return await _manager(request).complete_order(
            current_user,
            data.body['orderId'],
            data.body['completionHash']
        )
    except OrderError:
        raise
    except Exception as e:
        raise _server_error("completing order", e)

@router.put("/status")
async def set_order_status(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(SET_ORDER_STATUS))
):
    try:
        return await _manager(request).set_order_status(
            current_user,
            data.body['orderId'],
            data.body['status']
        )
    except OrderError:
        raise
    except Exception as e:
        raise _server_error("updating order status", e)

@router.delete("/{orderId}")
async def delete_order(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(DELETE_ORDER))
):
    try:
        return await _manager(request).delete_order(current_user, data.params['orderId'])
    except OrderError:
        raise
    except Exception as e:
        raise _server_error("deleting order", e)

__all__ = ['router']
