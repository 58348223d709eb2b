"""Blockchains module for the supported networks catalogue.

Blockchains are identified by store id and keyed uniquely by their CAIP id.
``usefulAddresses`` maps a contract name to its deployed address and is edited
one entry at a time.
"""
import logging
from typing import Any, Dict, List

from database import DuplicateKeyError, update_result

logger = logging.getLogger(__name__)

class BlockchainError(Exception):
    """Base class for blockchain-related errors."""
    pass

class BlockchainNotFoundError(BlockchainError, LookupError):
    """Raised when no blockchain matches."""
    def __init__(self, message: str = 'No blockchain found'):
        super().__init__(message)

class UsefulAddressNotFoundError(BlockchainNotFoundError):
    """Raised when the blockchain or its named contract address is missing."""
    def __init__(self, message: str = 'No blockchain or usefull address found.'):
        super().__init__(message)

class BlockchainExistsError(BlockchainError):
    """Raised when a blockchain with the same caipId already exists."""
    def __init__(self, message: str = 'This blockchain already exists.'):
        super().__init__(message)

class BlockchainManager:
    """Manages blockchain records."""

    def __init__(self, store) -> None:
        self.store = store
        self.blockchains = store.collection('blockchains')

    async def create_blockchain(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create a blockchain.

        Raises:
            BlockchainExistsError: If the caipId is already registered
        """
        if await self.blockchains.find_one({'caipId': body.get('caipId')}):
            raise BlockchainExistsError()

        document = {'usefulAddresses': {}, **body}
        try:
            result = await self.blockchains.insert_one(document)
        except DuplicateKeyError:
            raise BlockchainExistsError()

        logger.info(f"Created blockchain {body.get('caipId')}")
        return result

    async def get_active_blockchains(self) -> List[Dict[str, Any]]:
        return await self.blockchains.find({'isActive': True})

    async def get_blockchain(self, blockchain_id: str) -> Dict[str, Any]:
        return await self.blockchains.find_one({'_id': blockchain_id}) or {}

    async def update_blockchain(self, blockchain_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Overwrite the given top-level fields of a blockchain.

        Raises:
            BlockchainNotFoundError: If the blockchain does not exist
            BlockchainExistsError: If a new caipId belongs to another blockchain
        """
        blockchain = await self.blockchains.find_one({'_id': blockchain_id})
        if not blockchain:
            raise BlockchainNotFoundError()
        if not fields:
            return update_result(matched=1)

        caip_id = fields.get('caipId')
        if caip_id and caip_id != blockchain.get('caipId') and await self.blockchains.find_one({'caipId': caip_id}):
            raise BlockchainExistsError()

        try:
            result = await self.blockchains.update_one({'_id': blockchain_id}, {'$set': fields})
        except DuplicateKeyError:
            raise BlockchainExistsError()

        logger.info(f"Updated blockchain {blockchain_id}: {', '.join(fields)}")
        return result

    async def delete_blockchain(self, blockchain_id: str) -> Dict[str, Any]:
        result = await self.blockchains.delete_one({'_id': blockchain_id})
        if result['deletedCount']:
            logger.info(f"Deleted blockchain {blockchain_id}")
        return result

    async def upsert_useful_address(self, blockchain_id: str, contract: str, address: str) -> Dict[str, Any]:
        """Set the address of a named contract.

        Raises:
            BlockchainNotFoundError: If the blockchain does not exist
        """
        if not await self.blockchains.find_one({'_id': blockchain_id}):
            raise BlockchainNotFoundError()
        return await self.blockchains.update_one(
            {'_id': blockchain_id},
            {'$set': {f'usefulAddresses.{contract}': address}}
        )

    async def delete_useful_address(self, blockchain_id: str, contract: str) -> Dict[str, Any]:
        """Remove a named contract address.

        Raises:
            UsefulAddressNotFoundError: If the blockchain or the contract entry is missing
        """
        blockchain = await self.blockchains.find_one({'_id': blockchain_id})
        if not blockchain or contract not in (blockchain.get('usefulAddresses') or {}):
            raise UsefulAddressNotFoundError()
        return await self.blockchains.update_one(
            {'_id': blockchain_id},
            {'$unset': {f'usefulAddresses.{contract}': ''}}
        )

# Export public interface
__all__ = [
    'BlockchainManager',
    'BlockchainError',
    'BlockchainNotFoundError',
    'BlockchainExistsError',
    'UsefulAddressNotFoundError'
]
