"""Tests for offers: the manager and its API endpoints."""

import pytest
import pytest_asyncio

from offers import OfferExistsError, OfferManager, OfferNotFoundError

PROVIDER_ID = "0xProvider"

SAMPLE_OFFER = {
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
async def offer_manager(memory_store, notifier):
    return OfferManager(memory_store, notifier)

@pytest.mark.asyncio
async def test_create_offer(offer_manager):
    result = await offer_manager.create_offer(PROVIDER_ID, {**SAMPLE_OFFER, "offerId": "offer-1"})

    offer = await offer_manager.get_offer_by_id(result["insertedId"])
    assert offer["status"] == "pending"
    assert offer["userId"] == PROVIDER_ID
    assert offer["offerId"] == "offer-1"
    assert "date" in offer

@pytest.mark.asyncio
async def test_duplicate_offer_id(offer_manager):
    await offer_manager.create_offer(PROVIDER_ID, {**SAMPLE_OFFER, "offerId": "offer-1"})

    with pytest.raises(OfferExistsError) as exc_info:
        await offer_manager.create_offer(PROVIDER_ID, {**SAMPLE_OFFER, "offerId": "offer-1", "hash": "0x2"})
    assert str(exc_info.value) == "This offer already exists."

@pytest.mark.asyncio
async def test_missing_offer_lookups_are_empty(offer_manager):
    assert await offer_manager.get_offer_by_offer_id("nope") == {}
    assert await offer_manager.get_offer_by_id("507f1f77bcf86cd799439011") == {}

@pytest.mark.asyncio
async def test_search_offers_only_active(offer_manager):
    await offer_manager.create_offer(PROVIDER_ID, {**SAMPLE_OFFER, "offerId": "a"})
    await offer_manager.create_offer(PROVIDER_ID, {**SAMPLE_OFFER, "offerId": "b", "hash": "0xb", "isActive": False})
    await offer_manager.create_offer(PROVIDER_ID, {**SAMPLE_OFFER, "offerId": "c", "hash": "0xc", "chainId": "1"})

    result = await offer_manager.search_offers({})
    assert result["totalCount"] == 2

    on_chain = await offer_manager.search_offers({"chainId": "97", "token": "USDT"})
    assert [offer["offerId"] for offer in on_chain["offers"]] == ["a"]

@pytest.mark.asyncio
async def test_delete_offer_owner_scoped(offer_manager):
    await offer_manager.create_offer(PROVIDER_ID, {**SAMPLE_OFFER, "offerId": "offer-1"})

    with pytest.raises(OfferNotFoundError):
        await offer_manager.delete_offer("0xSomeoneElse", "offer-1")

    result = await offer_manager.delete_offer(PROVIDER_ID.lower(), "offer-1")
    assert result["deletedCount"] == 1

@pytest.mark.asyncio
async def test_field_updates_notify(offer_manager):
    await offer_manager.create_offer(PROVIDER_ID, {**SAMPLE_OFFER, "offerId": "offer-1"})

    await offer_manager.update_max_price("offer-1", "250")
    await offer_manager.update_min_price("offer-1", "2")
    await offer_manager.update_token("offer-1", "0xNewToken")
    await offer_manager.update_chain("offer-1", "56")
    await offer_manager.update_activation("offer-1", False)

    offer = await offer_manager.get_offer_by_offer_id("offer-1")
    assert (offer["max"], offer["min"], offer["tokenAddress"], offer["chainId"], offer["isActive"]) == \
        ("250", "2", "0xNewToken", "56", False)
    assert [event["method"] for event in offer_manager.notifier.events] == [
        "maxPrice", "minPrice", "token", "chain", "status"
    ]
    assert offer_manager.notifier.events[0]["params"] == {"type": "offer", "id": "offer-1"}

@pytest.mark.asyncio
async def test_field_update_without_value_keeps_current(offer_manager):
    await offer_manager.create_offer(PROVIDER_ID, {**SAMPLE_OFFER, "offerId": "offer-1"})

    result = await offer_manager.update_max_price("offer-1", None)

    assert result["matchedCount"] == 1
    assert result["modifiedCount"] == 0
    assert (await offer_manager.get_offer_by_offer_id("offer-1"))["max"] == "100"
    assert offer_manager.notifier.events == []

@pytest.mark.asyncio
async def test_field_update_unknown_offer(offer_manager):
    with pytest.raises(OfferNotFoundError):
        await offer_manager.update_chain("missing", "1")

    assert offer_manager.notifier.events == []

@pytest.mark.asyncio
async def test_mark_offer_success(offer_manager):
    await offer_manager.create_offer(PROVIDER_ID, SAMPLE_OFFER)

    result = await offer_manager.mark_offer_success("0xofferhash", "offer-77")

    assert result["modifiedCount"] == 1
    offer = await offer_manager.get_offer_by_offer_id("offer-77")
    assert offer["status"] == "success"
    assert offer_manager.notifier.events == [
        {"method": "success", "params": {"type": "offer", "id": "offer-77"}}
    ]

@pytest.mark.asyncio
async def test_mark_offer_success_with_taken_id(offer_manager):
    await offer_manager.create_offer(PROVIDER_ID, {**SAMPLE_OFFER, "offerId": "offer-1", "hash": "0x1"})
    await offer_manager.create_offer(PROVIDER_ID, {**SAMPLE_OFFER, "hash": "0x2"})

    with pytest.raises(OfferExistsError):
        await offer_manager.mark_offer_success("0x2", "offer-1")

def test_create_offer_endpoint(client, auth_headers, user_id):
    response = client.post("/offers", json={**SAMPLE_OFFER, "isActive": "true"}, headers=auth_headers)

    assert response.status_code == 200
    offer = client.get("/offers/id", params={"id": response.json()["insertedId"]}, headers=auth_headers).json()
    assert offer["isActive"] is True
    assert offer["userId"] == user_id

def test_create_offer_validation(client, auth_headers):
    body = {**SAMPLE_OFFER, "isActive": "maybe"}
    del body["min"]

    response = client.post("/offers", json=body, headers=auth_headers)

    assert response.status_code == 400
    assert [(error["param"], error["msg"]) for error in response.json()] == [
        ("min", "must be string value"),
        ("min", "must not be empty"),
        ("isActive", "must be boolean value"),
    ]

def test_duplicate_offer_endpoint(client, auth_headers):
    client.post("/offers", json={**SAMPLE_OFFER, "offerId": "offer-1"}, headers=auth_headers)

    response = client.post("/offers", json={**SAMPLE_OFFER, "offerId": "offer-1"}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"msg": "This offer already exists."}

def test_search_and_user_offers(client, auth_headers, other_auth_headers):
    client.post("/offers", json={**SAMPLE_OFFER, "offerId": "a"}, headers=auth_headers)
    client.post("/offers", json={**SAMPLE_OFFER, "offerId": "b", "hash": "0xb"}, headers=other_auth_headers)

    search = client.get("/offers/search", params={"exchangeToken": "ETH"}, headers=auth_headers).json()
    mine = client.get("/offers/user", headers=auth_headers).json()

    assert search["totalCount"] == 2
    assert [offer["offerId"] for offer in mine["offers"]] == ["a"]

def test_search_rejects_unknown_filters(client, auth_headers):
    response = client.get("/offers/search", params={"userId": "0x1"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()[0]["location"] == "query"

def test_get_offer_by_offer_id_endpoint(client, auth_headers):
    client.post("/offers", json={**SAMPLE_OFFER, "offerId": "a"}, headers=auth_headers)

    found = client.get("/offers/offerId", params={"offerId": "a"}, headers=auth_headers)
    missing = client.get("/offers/offerId", params={"offerId": "zzz"}, headers=auth_headers)

    assert found.json()["offerId"] == "a"
    assert missing.status_code == 200
    assert missing.json() == {}

def test_get_offer_by_id_message(client, auth_headers):
    response = client.get("/offers/id", params={"id": "nope"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()[0] == {"location": "query", "param": "id", "msg": "must be a valid mongodb id"}

def test_delete_offer_endpoint(client, auth_headers, other_auth_headers):
    client.post("/offers", json={**SAMPLE_OFFER, "offerId": "a"}, headers=auth_headers)

    foreign = client.delete("/offers/a", headers=other_auth_headers)
    own = client.delete("/offers/a", headers=auth_headers)

    assert foreign.status_code == 404
    assert foreign.json() == {"msg": "No offer found"}
    assert own.json()["deletedCount"] == 1
