"""Liquidity wallets module.

A liquidity provider keeps at most one wallet per chain. ``tokens`` maps a
token id to the amount (as a string) the wallet holds for it.
"""
import logging
from typing import Any, Dict, List

from database import utc_now
from orders import owner_filter

logger = logging.getLogger(__name__)

class LiquidityWalletError(Exception):
    """Base class for liquidity wallet errors."""
    pass

class LiquidityWalletNotFoundError(LiquidityWalletError, LookupError):
    """Raised when the caller has no matching wallet."""
    def __init__(self, message: str = 'No liquidity wallet found'):
        super().__init__(message)

class LiquidityWalletExistsError(LiquidityWalletError):
    """Raised when the caller already has a wallet on the chain."""
    def __init__(self, message: str = 'This wallet already exists.'):
        super().__init__(message)

class LiquidityWalletManager:
    """Manages the caller-owned liquidity wallets."""

    def __init__(self, store) -> None:
        self.store = store
        self.wallets = store.collection('liquidity_wallets')

    async def create_wallet(self, user_id: str, wallet_address: str, chain_id: str) -> Dict[str, Any]:
        """Register a wallet for the caller on a chain.

        Raises:
            LiquidityWalletExistsError: If the caller has a wallet on that chain
        """
        if await self.wallets.find_one({**owner_filter(user_id), 'chainId': chain_id}):
            raise LiquidityWalletExistsError()

        result = await self.wallets.insert_one({
            'walletAddress': wallet_address,
            'chainId': chain_id,
            'userId': user_id,
            'tokens': {},
            'date': utc_now()
        })
        logger.info(f"Created liquidity wallet {wallet_address} on chain {chain_id}")
        return result

    async def update_wallet_token(
        self,
        user_id: str,
        wallet_address: str,
        chain_id: str,
        token_id: str,
        amount: str
    ) -> Dict[str, Any]:
        """Set the amount held for one token.

        Raises:
            LiquidityWalletNotFoundError: If the caller has no such wallet
        """
        filter = {**owner_filter(user_id), 'walletAddress': wallet_address, 'chainId': chain_id}
        wallet = await self.wallets.find_one(filter)
        if not wallet:
            raise LiquidityWalletNotFoundError()
        return await self.wallets.update_one(
            {'_id': wallet['_id']},
            {'$set': {f'tokens.{token_id}': amount}}
        )

    async def get_wallets_by_user(self, user_id: str, chain_id: str) -> List[Dict[str, Any]]:
        return await self.wallets.find({**owner_filter(user_id), 'chainId': chain_id})

    async def get_wallet(self, user_id: str, wallet_address: str, chain_id: str) -> Dict[str, Any]:
        return await self.wallets.find_one({
            **owner_filter(user_id),
            'walletAddress': wallet_address,
            'chainId': chain_id
        }) or {}

    async def get_wallet_by_id(self, user_id: str, id: str) -> Dict[str, Any]:
        return await self.wallets.find_one({**owner_filter(user_id), '_id': id}) or {}

    async def delete_wallet(self, user_id: str, wallet_address: str, chain_id: str) -> Dict[str, Any]:
        """Delete one of the caller's wallets.

        Raises:
            LiquidityWalletNotFoundError: If the caller has no such wallet
        """
        wallet = await self.wallets.find_one({
            **owner_filter(user_id),
            'walletAddress': wallet_address,
            'chainId': chain_id
        })
        if not wallet:
            raise LiquidityWalletNotFoundError()
        result = await self.wallets.delete_one({'_id': wallet['_id']})
        logger.info(f"Deleted liquidity wallet {wallet_address} on chain {chain_id}")
        return result

# Export public interface
__all__ = [
    'LiquidityWalletManager',
    'LiquidityWalletError',
    'LiquidityWalletNotFoundError',
    'LiquidityWalletExistsError'
]
