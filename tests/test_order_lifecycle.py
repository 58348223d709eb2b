"""Tests for the order manager and the order status lifecycle."""

import pytest
import pytest_asyncio

from orders import (
    InvalidStatusTransitionError,
    OrderExistsError,
    OrderManager,
    OrderNotFoundError,
    OrderStatus,
    validate_transition,
)
from offers import OfferManager

USER_ID = "0xBuyer"
PROVIDER_ID = "0xProvider"

SAMPLE_ORDER = {
    "amountTokenDeposit": "10",
    "addressTokenDeposit": "0xToken",
    "chainIdTokenDeposit": "97",
    "destAddr": "0xDest",
    "amountTokenOffer": "5",
    "offerId": "offer-1",
    "hash": "0xorderhash",
}

SAMPLE_OFFER = {
    "offerId": "offer-1",
    "chainId": "97",
    "min": "1",
    "max": "100",
    "tokenId": "1",
    "token": "USDT",
    "tokenAddress": "0xUsdt",
    "hash": "0xofferhash",
    "isActive": True,
    "exchangeRate": "1",
    "exchangeToken": "ETH",
    "exchangeChainId": "5",
    "estimatedTime": "60",
}

@pytest_asyncio.fixture
async def order_manager(memory_store, notifier):
    return OrderManager(memory_store, notifier)

@pytest_asyncio.fixture
async def offer_manager(memory_store):
    return OfferManager(memory_store)

@pytest_asyncio.fixture
async def sample_order(order_manager):
    result = await order_manager.create_order(USER_ID, SAMPLE_ORDER)
    return await order_manager.get_order_by_id(USER_ID, result["insertedId"])

def test_validate_transition():
    assert validate_transition("pending", "success") == OrderStatus.SUCCESS
    assert validate_transition("success", "completionFailure") == OrderStatus.COMPLETION_FAILURE

    with pytest.raises(InvalidStatusTransitionError) as exc_info:
        validate_transition("failure", "success")
    assert str(exc_info.value) == "Cannot change order status from failure to success"

    with pytest.raises(InvalidStatusTransitionError):
        validate_transition("unknown", "success")

@pytest.mark.asyncio
async def test_create_order(order_manager, sample_order):
    """New orders are pending, incomplete and owned by the caller."""
    assert sample_order["status"] == "pending"
    assert sample_order["isComplete"] is False
    assert sample_order["userId"] == USER_ID
    assert sample_order["date"].endswith("Z")
    assert sample_order["offer"] is None

@pytest.mark.asyncio
async def test_create_order_embeds_offer(order_manager, offer_manager, sample_order):
    await offer_manager.create_offer(PROVIDER_ID, SAMPLE_OFFER)

    order = await order_manager.get_order_by_id(USER_ID, sample_order["_id"])

    assert order["offer"]["offerId"] == "offer-1"
    assert order["offer"]["userId"] == PROVIDER_ID

@pytest.mark.asyncio
async def test_duplicate_order_id_rejected(order_manager):
    await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "orderId": "trade-1"})

    with pytest.raises(OrderExistsError):
        await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "orderId": "trade-1", "hash": "0xother"})

    assert (await order_manager.get_orders_by_user(USER_ID))["totalCount"] == 1

@pytest.mark.asyncio
async def test_empty_order_ids_do_not_collide(order_manager):
    await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "orderId": ""})
    await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "orderId": "", "hash": "0xother"})

    assert (await order_manager.get_orders_by_user(USER_ID))["totalCount"] == 2

@pytest.mark.asyncio
async def test_lookups_are_owner_scoped(order_manager, sample_order):
    assert await order_manager.get_order_by_id("0xSomeoneElse", sample_order["_id"]) == {}
    assert (await order_manager.get_order_by_id(USER_ID.upper(), sample_order["_id"]))["_id"] == sample_order["_id"]

@pytest.mark.asyncio
async def test_orders_by_user_paginated_newest_first(order_manager):
    for i in range(3):
        await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "hash": f"0x{i}"})

    page = await order_manager.get_orders_by_user(USER_ID, offset=1, limit=1)

    assert page["totalCount"] == 3
    assert len(page["orders"]) == 1

    everything = await order_manager.get_orders_by_user(USER_ID)
    dates = [order["date"] for order in everything["orders"]]
    assert dates == sorted(dates, reverse=True)

@pytest.mark.asyncio
async def test_webhook_success_is_idempotent(order_manager, sample_order):
    """pending -> success notifies once; a repeated delivery changes nothing."""
    first = await order_manager.mark_order_success(SAMPLE_ORDER["hash"], "trade-7")

    assert first["matchedCount"] == 1
    assert first["modifiedCount"] == 1
    order = await order_manager.get_order_by_order_id(USER_ID, "trade-7")
    assert order["status"] == "success"
    assert order_manager.notifier.events == [
        {"method": "success", "params": {"type": "order", "id": "trade-7"}}
    ]

    second = await order_manager.mark_order_success(SAMPLE_ORDER["hash"], "trade-7")

    assert second["modifiedCount"] == 0
    assert len(order_manager.notifier.events) == 1

@pytest.mark.asyncio
async def test_webhook_for_unknown_hash(order_manager):
    with pytest.raises(OrderNotFoundError):
        await order_manager.mark_order_success("0xmissing", "trade-1")

    assert order_manager.notifier.events == []

@pytest.mark.asyncio
async def test_webhook_cannot_revive_failed_order(order_manager, sample_order):
    await order_manager.orders.update_one({"_id": sample_order["_id"]}, {"$set": {"status": "failure"}})

    with pytest.raises(InvalidStatusTransitionError):
        await order_manager.mark_order_success(SAMPLE_ORDER["hash"], "trade-1")

    assert order_manager.notifier.events == []

@pytest.mark.asyncio
async def test_complete_order(order_manager, sample_order):
    await order_manager.mark_order_success(SAMPLE_ORDER["hash"], "trade-1")

    result = await order_manager.complete_order(USER_ID, "trade-1", "0xcompletion")

    assert result["modifiedCount"] == 1
    order = await order_manager.get_order_by_order_id(USER_ID, "trade-1")
    assert order["status"] == "completion"
    assert order["completionHash"] == "0xcompletion"
    assert order["isComplete"] is True

@pytest.mark.asyncio
async def test_complete_requires_successful_order(order_manager):
    await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "orderId": "trade-2"})

    with pytest.raises(OrderNotFoundError) as exc_info:
        await order_manager.complete_order(USER_ID, "trade-2", "0xcompletion")
    assert str(exc_info.value) == "No order found"

@pytest.mark.asyncio
async def test_complete_requires_owner(order_manager, sample_order):
    await order_manager.mark_order_success(SAMPLE_ORDER["hash"], "trade-1")

    with pytest.raises(OrderNotFoundError):
        await order_manager.complete_order("0xSomeoneElse", "trade-1", "0xcompletion")

@pytest.mark.asyncio
async def test_set_order_status(order_manager):
    await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "orderId": "trade-3"})

    await order_manager.set_order_status(USER_ID, "trade-3", "failure")
    assert (await order_manager.get_order_by_order_id(USER_ID, "trade-3"))["status"] == "failure"

    with pytest.raises(InvalidStatusTransitionError):
        await order_manager.set_order_status(USER_ID, "trade-3", "success")

@pytest.mark.asyncio
async def test_set_order_status_completion_failure(order_manager):
    await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "hash": "0xsettled"})
    await order_manager.mark_order_success("0xsettled", "trade-4")

    await order_manager.set_order_status(USER_ID, "trade-4", "completionFailure")

    order = await order_manager.get_order_by_order_id(USER_ID, "trade-4")
    assert order["status"] == "completionFailure"
    assert order["isComplete"] is False

@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["success", "completion"])
async def test_set_order_status_rejects_settlement_targets(order_manager, notifier, status):
    await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "hash": "0xsettled"})
    await order_manager.mark_order_success("0xsettled", "trade-5")
    await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "hash": "0xpending", "orderId": "trade-6"})
    events = len(notifier.events)

    for order_id in ("trade-5", "trade-6"):
        with pytest.raises(InvalidStatusTransitionError):
            await order_manager.set_order_status(USER_ID, order_id, status)

    assert (await order_manager.get_order_by_order_id(USER_ID, "trade-5"))["status"] == "success"
    assert (await order_manager.get_order_by_order_id(USER_ID, "trade-6"))["status"] == "pending"
    assert len(notifier.events) == events

@pytest.mark.asyncio
async def test_delete_order(order_manager):
    await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "orderId": "trade-5"})

    with pytest.raises(OrderNotFoundError):
        await order_manager.delete_order("0xSomeoneElse", "trade-5")

    result = await order_manager.delete_order(USER_ID, "trade-5")
    assert result["deletedCount"] == 1
    assert await order_manager.get_order_by_order_id(USER_ID, "trade-5") == {}

@pytest.mark.asyncio
async def test_liquidity_provider_orders(order_manager, offer_manager):
    """Only orders against the caller's offers are returned."""
    await offer_manager.create_offer(PROVIDER_ID, SAMPLE_OFFER)
    await offer_manager.create_offer(PROVIDER_ID, {**SAMPLE_OFFER, "offerId": "offer-2", "hash": "0x2", "isActive": False})
    await offer_manager.create_offer("0xOtherProvider", {**SAMPLE_OFFER, "offerId": "offer-3", "hash": "0x3"})

    await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "offerId": "offer-1", "hash": "0xa"})
    await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "offerId": "offer-2", "hash": "0xb"})
    await order_manager.create_order(USER_ID, {**SAMPLE_ORDER, "offerId": "offer-3", "hash": "0xc"})

    everything = await order_manager.get_orders_by_liquidity_provider(PROVIDER_ID)
    assert everything["totalCount"] == 2
    assert {order["offerId"] for order in everything["orders"]} == {"offer-1", "offer-2"}
    assert all(order["offer"]["userId"] == PROVIDER_ID for order in everything["orders"])

    active = await order_manager.get_orders_by_liquidity_provider(PROVIDER_ID, is_active_offers=True)
    assert [order["offerId"] for order in active["orders"]] == ["offer-1"]

    inactive = await order_manager.get_orders_by_liquidity_provider(PROVIDER_ID, is_active_offers=False)
    assert [order["offerId"] for order in inactive["orders"]] == ["offer-2"]

@pytest.mark.asyncio
async def test_liquidity_provider_without_offers(order_manager, sample_order):
    result = await order_manager.get_orders_by_liquidity_provider("0xNobody")

    assert result == {"orders": [], "totalCount": 0}
