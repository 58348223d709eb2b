"""Liquidity wallets API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Security, status

from auth import get_current_user
from liquidity_wallets import LiquidityWalletError, LiquidityWalletManager
from validators.liquidity_wallets import (
    CREATE_WALLET,
    DELETE_WALLET,
    GET_WALLET,
    GET_WALLET_BY_ID,
    GET_WALLETS_BY_USER,
    UPDATE_WALLET,
)
from ..validation import RequestData, validated

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/liquidity-wallets",
    tags=["Liquidity Wallets"]
)

def _manager(request: Request) -> LiquidityWalletManager:
    return LiquidityWalletManager(request.app.state.store)

def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(e)
    )

@router.post("")
async def create_wallet(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(CREATE_WALLET))
):
    """Register a liquidity wallet for the caller on a chain."""
    try:
        return await _manager(request).create_wallet(
            current_user,
            data.body['walletAddress'],
            data.body['chainId']
        )
    except LiquidityWalletError:
        raise
    except Exception as e:
        raise _server_error("creating liquidity wallet", e)

@router.put("")
async def update_wallet(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(UPDATE_WALLET))
):
    """Set the amount a wallet holds for one token."""
    try:
        return await _manager(request).update_wallet_token(
            current_user,
            data.body['walletAddress'],
            data.body['chainId'],
            data.body['tokenId'],
            data.body['amount']
        )
    except LiquidityWalletError:
        raise
    except Exception as e:
        raise _server_error("updating liquidity wallet", e)

@router.get("/user")
async def get_wallets_by_user(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(GET_WALLETS_BY_USER))
):
    try:
        return await _manager(request).get_wallets_by_user(current_user, data.query['chainId'])
    except Exception as e:
        raise _server_error("listing liquidity wallets", e)

@router.get("/single")
async def get_wallet(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(GET_WALLET))
):
    try:
        return await _manager(request).get_wallet(
            current_user,
            data.query['walletAddress'],
            data.query['chainId']
        )
    except Exception as e:
        raise _server_error("getting liquidity wallet", e)

@router.get("/id")
async def get_wallet_by_id(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(GET_WALLET_BY_ID))
):
    try:
        return await _manager(request).get_wallet_by_id(current_user, data.query['id'])
    except Exception as e:
        raise _server_error("getting liquidity wallet", e)

@router.delete("")
async def delete_wallet(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(DELETE_WALLET))
):
    try:
        return await _manager(request).delete_wallet(
            current_user,
            data.query['walletAddress'],
            data.query['chainId']
        )
    except LiquidityWalletError:
        raise
    except Exception as e:
        raise _server_error("deleting liquidity wallet", e)

__all__ = ['router']
