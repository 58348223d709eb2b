"""Orders module for managing exchange orders.

This module handles order creation, owner-scoped lookups and the order status
lifecycle:

    pending -> success -> completion
    pending -> failure
    success -> completionFailure

Orders reference offers by their external ``offerId``; point lookups and
listings embed the referenced offer under ``offer``.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from database import DESCENDING, DuplicateKeyError, update_result, utc_now

logger = logging.getLogger(__name__)

class OrderStatus(str, Enum):
    """Order status values as stored on the wire."""
    PENDING = 'pending'
    SUCCESS = 'success'
    FAILURE = 'failure'
    COMPLETION = 'completion'
    COMPLETION_FAILURE = 'completionFailure'

VALID_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.SUCCESS, OrderStatus.FAILURE},
    OrderStatus.SUCCESS: {OrderStatus.COMPLETION, OrderStatus.COMPLETION_FAILURE},
    OrderStatus.FAILURE: set(),
    OrderStatus.COMPLETION: set(),
    OrderStatus.COMPLETION_FAILURE: set(),
}

# Settlement and completion have their own endpoints
OWNER_STATUS_TARGETS: Set[OrderStatus] = {OrderStatus.FAILURE, OrderStatus.COMPLETION_FAILURE}

class OrderError(Exception):
    """Base class for order-related errors."""
    pass

class OrderNotFoundError(OrderError, LookupError):
    """Raised when no order matches, or the caller does not own it."""
    def __init__(self, message: str = 'No order found'):
        super().__init__(message)

class OrderExistsError(OrderError):
    """Raised when an order with the same orderId already exists."""
    def __init__(self, message: str = 'This order already exists.'):
        super().__init__(message)

class InvalidStatusTransitionError(OrderError):
    """Raised when a status change is not allowed by the lifecycle."""
    def __init__(self, current: Any, target: Any):
        self.current = getattr(current, 'value', current)
        self.target = getattr(target, 'value', target)
        super().__init__(
            f"Cannot change order status from {self.current} to {self.target}"
        )

def validate_transition(current: Any, target: Any) -> OrderStatus:
    """Check that an order may move from current to target status.

    Returns:
        The target status

    Raises:
        InvalidStatusTransitionError: For unknown statuses or illegal moves
    """
    try:
        current_status = OrderStatus(current)
        target_status = OrderStatus(target)
    except ValueError:
        raise InvalidStatusTransitionError(current, target)

    if target_status not in VALID_TRANSITIONS[current_status]:
        raise InvalidStatusTransitionError(current_status, target_status)
    return target_status

def owner_filter(user_id: str) -> Dict[str, Any]:
    """Filter matching records owned by a user, ignoring case."""
    return {'userId': {'$ieq': user_id}}

class OrderManager:
    """Manages order operations and state transitions."""

    def __init__(self, store, notifier=None) -> None:
        """Initialize order manager.

        Args:
            store: Record store holding the orders and offers collections
            notifier: Optional object with a ``dispatch(event)`` method
        """
        self.store = store
        self.notifier = notifier
        self.orders = store.collection('orders')
        self.offers = store.collection('offers')

    def _notify(self, method: str, order_id: str) -> None:
        if self.notifier is not None:
            self.notifier.dispatch({
                'method': method,
                'params': {'type': 'order', 'id': order_id}
            })

    async def _with_offer(self, order: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not order:
            return {}
        order['offer'] = await self.offers.find_one({'offerId': order.get('offerId')})
        return order

    async def _with_offers(self, orders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        offer_ids = list({
            order['offerId'] for order in orders if isinstance(order.get('offerId'), str)
        })
        offers = {}
        if offer_ids:
            for offer in await self.offers.find({'offerId': {'$in': offer_ids}}):
                offers.setdefault(offer['offerId'], offer)
        for order in orders:
            order['offer'] = offers.get(order.get('offerId'))
        return orders

    async def _page(self, filter: Dict[str, Any], offset: int, limit: int) -> Dict[str, Any]:
        orders = await self.orders.find(
            filter,
            sort=[('date', DESCENDING)],
            skip=offset,
            limit=limit
        )
        return {
            'orders': await self._with_offers(orders),
            'totalCount': await self.orders.count_documents(filter)
        }

    async def create_order(self, user_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create a pending order owned by the caller.

        Raises:
            OrderExistsError: If a non-empty orderId is already taken
        """
        order_id = body.get('orderId')
        if order_id and await self.orders.find_one({'orderId': order_id}):
            logger.warning(f"Order {order_id} already exists")
            raise OrderExistsError()

        document = {
            **body,
            'date': utc_now(),
            'userId': user_id,
            'isComplete': False,
            'status': OrderStatus.PENDING.value
        }

        try:
            result = await self.orders.insert_one(document)
        except DuplicateKeyError as e:
            logger.warning(f"Order insert lost a race: {e}")
            raise OrderExistsError()

        logger.info(f"Created order {result['insertedId']} for user {user_id}")
        return result

    async def get_order_by_order_id(self, user_id: str, order_id: str) -> Dict[str, Any]:
        return await self._with_offer(
            await self.orders.find_one({**owner_filter(user_id), 'orderId': order_id})
        )

    async def get_order_by_id(self, user_id: str, id: str) -> Dict[str, Any]:
        return await self._with_offer(
            await self.orders.find_one({**owner_filter(user_id), '_id': id})
        )

    async def get_orders_by_user(self, user_id: str, offset: int = 0, limit: int = 0) -> Dict[str, Any]:
        """Caller's orders, newest first, with their offers embedded."""
        return await self._page(owner_filter(user_id), offset, limit)

    async def get_orders_by_liquidity_provider(
        self,
        user_id: str,
        is_active_offers: Optional[bool] = None,
        offset: int = 0,
        limit: int = 0
    ) -> Dict[str, Any]:
        """Orders placed against the caller's offers.

        The offer lookup and the order lookup are separate reads; an offer
        created or removed in between may or may not be reflected.
        """
        offer_filter = owner_filter(user_id)
        if is_active_offers is not None:
            offer_filter['isActive'] = is_active_offers

        offers = await self.offers.find(offer_filter)
        offer_ids = [offer['offerId'] for offer in offers if isinstance(offer.get('offerId'), str)]

        return await self._page({'offerId': {'$in': offer_ids}}, offset, limit)

    async def complete_order(self, user_id: str, order_id: str, completion_hash: str) -> Dict[str, Any]:
        """Move a successful order owned by the caller to completion.

        Raises:
            OrderNotFoundError: If the caller has no successful order with that id
        """
        order = await self.orders.find_one({
            **owner_filter(user_id),
            'orderId': order_id,
            'status': OrderStatus.SUCCESS.value
        })
        if not order:
            logger.warning(f"No successful order {order_id} for user {user_id}")
            raise OrderNotFoundError()

        validate_transition(order['status'], OrderStatus.COMPLETION)
        result = await self.orders.update_one(
            {'_id': order['_id'], 'status': OrderStatus.SUCCESS.value},
            {'$set': {
                'status': OrderStatus.COMPLETION.value,
                'completionHash': completion_hash,
                'isComplete': True
            }}
        )
        logger.info(f"Order {order_id} completed")
        return result

    async def set_order_status(self, user_id: str, order_id: str, status: str) -> Dict[str, Any]:
        """Mark an order owned by the caller as failed.

        Only `failure` and `completionFailure` may be set here.

        Raises:
            OrderNotFoundError: If the caller has no order with that id
            InvalidStatusTransitionError: If the change is not allowed
        """
        order = await self.orders.find_one({**owner_filter(user_id), 'orderId': order_id})
        if not order:
            raise OrderNotFoundError()

        if status not in OWNER_STATUS_TARGETS:
            raise InvalidStatusTransitionError(order.get('status'), status)
        target = validate_transition(order.get('status'), status)

        result = await self.orders.update_one(
            {'_id': order['_id'], 'status': order['status']},
            {'$set': {'status': target.value}}
        )
        logger.info(f"Order {order_id} moved from {order['status']} to {target.value}")
        return result

    async def delete_order(self, user_id: str, order_id: str) -> Dict[str, Any]:
        """Delete an order owned by the caller.

        Raises:
            OrderNotFoundError: If the caller has no order with that id
        """
        order = await self.orders.find_one({**owner_filter(user_id), 'orderId': order_id})
        if not order:
            raise OrderNotFoundError()
        result = await self.orders.delete_one({'_id': order['_id']})
        logger.info(f"Deleted order {order_id}")
        return result

    async def mark_order_success(self, tx_hash: str, order_id: str) -> Dict[str, Any]:
        """Record settlement of the order created by a transaction.

        A repeated call for an order already settled under the same orderId is
        a no-op and does not notify.

        Raises:
            OrderNotFoundError: If no order carries the transaction hash
            InvalidStatusTransitionError: If the order cannot become successful
            OrderExistsError: If the orderId belongs to another order
        """
        order = await self.orders.find_one({'hash': tx_hash})
        if not order:
            logger.warning(f"Webhook for unknown order transaction {tx_hash}")
            raise OrderNotFoundError()

        current = order.get('status', OrderStatus.PENDING.value)
        if current == OrderStatus.SUCCESS.value and order.get('orderId') == order_id:
            logger.info(f"Order {order_id} already successful")
            return update_result(matched=1)

        validate_transition(current, OrderStatus.SUCCESS)
        try:
            result = await self.orders.update_one(
                {'_id': order['_id'], 'status': current},
                {'$set': {'orderId': order_id, 'status': OrderStatus.SUCCESS.value}}
            )
        except DuplicateKeyError:
            raise OrderExistsError()

        if result['modifiedCount'] > 0:
            logger.info(f"Order {order_id} settled by {tx_hash}")
            self._notify('success', order_id)
        return result

# Export public interface
__all__ = [
    'OrderStatus',
    'VALID_TRANSITIONS',
    'validate_transition',
    'owner_filter',
    'OrderManager',
    'OrderError',
    'OrderNotFoundError',
    'OrderExistsError',
    'InvalidStatusTransitionError'
]
