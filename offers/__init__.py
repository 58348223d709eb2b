"""Offers module for liquidity provider offers.

Offers are created by their provider and then driven by settlement webhooks:
single-field updates keyed by ``offerId`` and the final ``offerId`` assignment
keyed by the creating transaction ``hash``.
"""
import logging
from typing import Any, Dict, Optional

from database import DESCENDING, DuplicateKeyError, utc_now
from orders import owner_filter

logger = logging.getLogger(__name__)

class OfferError(Exception):
    """Base class for offer-related errors."""
    pass

class OfferNotFoundError(OfferError, LookupError):
    """Raised when no offer matches, or the caller does not own it."""
    def __init__(self, message: str = 'No offer found'):
        super().__init__(message)

class OfferExistsError(OfferError):
    """Raised when an offer with the same offerId already exists."""
    def __init__(self, message: str = 'This offer already exists.'):
        super().__init__(message)

# Webhook-managed offer field -> notification method
OFFER_FIELD_UPDATES = {
    'max': 'maxPrice',
    'min': 'minPrice',
    'tokenAddress': 'token',
    'chainId': 'chain',
    'isActive': 'status',
}

SEARCH_FILTERS = ('chainId', 'exchangeChainId', 'token', 'exchangeToken')

class OfferManager:
    """Manages offer operations and webhook-driven updates."""

    def __init__(self, store, notifier=None) -> None:
        """Initialize offer manager.

        Args:
            store: Record store holding the offers collection
            notifier: Optional object with a ``dispatch(event)`` method
        """
        self.store = store
        self.notifier = notifier
        self.offers = store.collection('offers')

    def _notify(self, method: str, offer_id: str) -> None:
        if self.notifier is not None:
            self.notifier.dispatch({
                'method': method,
                'params': {'type': 'offer', 'id': offer_id}
            })

    async def create_offer(self, user_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create a pending offer owned by the caller.

        Raises:
            OfferExistsError: If a supplied non-empty offerId is already taken
        """
        offer_id = body.get('offerId')
        if offer_id and await self.offers.find_one({'offerId': offer_id}):
            raise OfferExistsError()

        document = {
            **body,
            'date': utc_now(),
            'userId': user_id,
            'status': 'pending'
        }

        try:
            result = await self.offers.insert_one(document)
        except DuplicateKeyError as e:
            logger.warning(f"Offer insert lost a race: {e}")
            raise OfferExistsError()

        logger.info(f"Created offer {result['insertedId']} for user {user_id}")
        return result

    async def get_offer_by_offer_id(self, offer_id: str) -> Dict[str, Any]:
        return await self.offers.find_one({'offerId': offer_id}) or {}

    async def get_offer_by_id(self, id: str) -> Dict[str, Any]:
        return await self.offers.find_one({'_id': id}) or {}

    async def get_offers_by_user(self, user_id: str, offset: int = 0, limit: int = 0) -> Dict[str, Any]:
        filter = owner_filter(user_id)
        return {
            'offers': await self.offers.find(filter, sort=[('date', DESCENDING)], skip=offset, limit=limit),
            'totalCount': await self.offers.count_documents(filter)
        }

    async def search_offers(self, filters: Dict[str, Any], offset: int = 0, limit: int = 0) -> Dict[str, Any]:
        """Active offers matching the given exact-value filters."""
        filter: Dict[str, Any] = {'isActive': True}
        filter.update({key: filters[key] for key in SEARCH_FILTERS if filters.get(key)})
        return {
            'offers': await self.offers.find(filter, sort=[('date', DESCENDING)], skip=offset, limit=limit),
            'totalCount': await self.offers.count_documents(filter)
        }

    async def delete_offer(self, user_id: str, offer_id: str) -> Dict[str, Any]:
        """Delete an offer owned by the caller.

        Raises:
            OfferNotFoundError: If the caller has no offer with that id
        """
        offer = await self.offers.find_one({**owner_filter(user_id), 'offerId': offer_id})
        if not offer:
            raise OfferNotFoundError()
        result = await self.offers.delete_one({'_id': offer['_id']})
        logger.info(f"Deleted offer {offer_id}")
        return result

    async def update_offer_field(self, offer_id: str, field: str, value: Optional[Any]) -> Dict[str, Any]:
        """Set one webhook-managed field of an offer.

        A value of None keeps the stored one.

        Raises:
            OfferNotFoundError: If no offer has the given offerId
        """
        method = OFFER_FIELD_UPDATES[field]
        offer = await self.offers.find_one({'offerId': offer_id})
        if not offer:
            logger.warning(f"Webhook {method} for unknown offer {offer_id}")
            raise OfferNotFoundError()

        new_value = offer.get(field) if value is None else value
        result = await self.offers.update_one(
            {'_id': offer['_id']},
            {'$set': {field: new_value}}
        )
        if result['modifiedCount'] > 0:
            logger.info(f"Offer {offer_id} {field} set to {new_value!r}")
            self._notify(method, offer_id)
        return result

    async def update_max_price(self, offer_id: str, value: Optional[str]) -> Dict[str, Any]:
        return await self.update_offer_field(offer_id, 'max', value)

    async def update_min_price(self, offer_id: str, value: Optional[str]) -> Dict[str, Any]:
        return await self.update_offer_field(offer_id, 'min', value)

    async def update_token(self, offer_id: str, value: Optional[str]) -> Dict[str, Any]:
        return await self.update_offer_field(offer_id, 'tokenAddress', value)

    async def update_chain(self, offer_id: str, value: Optional[str]) -> Dict[str, Any]:
        return await self.update_offer_field(offer_id, 'chainId', value)

    async def update_activation(self, offer_id: str, value: Optional[bool]) -> Dict[str, Any]:
        return await self.update_offer_field(offer_id, 'isActive', value)

    async def mark_offer_success(self, tx_hash: str, offer_id: str) -> Dict[str, Any]:
        """Assign the on-chain offerId to the offer created by a transaction.

        Raises:
            OfferNotFoundError: If no offer carries the transaction hash
            OfferExistsError: If the offerId belongs to another offer
        """
        offer = await self.offers.find_one({'hash': tx_hash})
        if not offer:
            logger.warning(f"Webhook for unknown offer transaction {tx_hash}")
            raise OfferNotFoundError()

        try:
            result = await self.offers.update_one(
                {'_id': offer['_id']},
                {'$set': {'offerId': offer_id, 'status': 'success'}}
            )
        except DuplicateKeyError:
            raise OfferExistsError()

        if result['modifiedCount'] > 0:
            logger.info(f"Offer {offer_id} settled by {tx_hash}")
            self._notify('success', offer_id)
        return result

# Export public interface
__all__ = [
    'OfferManager',
    'OfferError',
    'OfferNotFoundError',
    'OfferExistsError',
    'OFFER_FIELD_UPDATES'
]
