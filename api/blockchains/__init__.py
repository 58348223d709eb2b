"""Blockchains API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Security, status

from auth import get_current_user
from blockchains import BlockchainError, BlockchainManager
from validators.blockchains import (
    CREATE_BLOCKCHAIN,
    DELETE_BLOCKCHAIN,
    DELETE_USEFUL_ADDRESS,
    GET_ACTIVE_BLOCKCHAINS,
    GET_BLOCKCHAIN,
    UPDATE_BLOCKCHAIN,
    UPSERT_USEFUL_ADDRESS,
)
from ..validation import RequestData, validated, with_booleans

logger = logging.getLogger(__name__)

BOOLEAN_FIELDS = ('isEvm', 'isTestnet', 'isActive')

# Create router
router = APIRouter(
    prefix="/blockchains",
    tags=["Blockchains"]
)

def _manager(request: Request) -> BlockchainManager:
    return BlockchainManager(request.app.state.store)

def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(e)
    )

@router.post("")
async def create_blockchain(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(CREATE_BLOCKCHAIN))
):
    try:
        return await _manager(request).create_blockchain(with_booleans(data.body, BOOLEAN_FIELDS))
    except BlockchainError:
        raise
    except Exception as e:
        raise _server_error("creating blockchain", e)

# Fixed paths are registered before /{blockchainId}
@router.get("/active")
async def get_active_blockchains(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(GET_ACTIVE_BLOCKCHAINS))
):
    try:
        return await _manager(request).get_active_blockchains()
    except Exception as e:
        raise _server_error("listing blockchains", e)

@router.post("/useful-address/{blockchainId}")
async def upsert_useful_address(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(UPSERT_USEFUL_ADDRESS))
):
    """Set the address of a named contract on a blockchain."""
    try:
        return await _manager(request).upsert_useful_address(
            data.params['blockchainId'],
            data.body['contract'],
            data.body['address']
        )
    except BlockchainError:
        raise
    except Exception as e:
        raise _server_error("updating useful address", e)

@router.delete("/useful-address/{blockchainId}")
async def delete_useful_address(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(DELETE_USEFUL_ADDRESS))
):
    try:
        return await _manager(request).delete_useful_address(
            data.params['blockchainId'],
            data.query['contract']
        )
    except BlockchainError:
        raise
    except Exception as e:
        raise _server_error("deleting useful address", e)

@router.get("/{blockchainId}")
async def get_blockchain(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(GET_BLOCKCHAIN))
):
    try:
        return await _manager(request).get_blockchain(data.params['blockchainId'])
    except Exception as e:
        raise _server_error("getting blockchain", e)

@router.put("/{blockchainId}")
async def update_blockchain(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(UPDATE_BLOCKCHAIN))
):
    """Overwrite the supplied fields of a blockchain."""
    try:
        return await _manager(request).update_blockchain(
            data.params['blockchainId'],
            with_booleans(data.body, BOOLEAN_FIELDS)
        )
    except BlockchainError:
        raise
    except Exception as e:
        raise _server_error("updating blockchain", e)

@router.delete("/{blockchainId}")
async def delete_blockchain(
    request: Request,
    current_user: str = Security(get_current_user),
    data: RequestData = Depends(validated(DELETE_BLOCKCHAIN))
):
    """Delete a blockchain; unknown ids answer deletedCount 0."""
    try:
        return await _manager(request).delete_blockchain(data.params['blockchainId'])
    except Exception as e:
        raise _server_error("deleting blockchain", e)

__all__ = ['router']
