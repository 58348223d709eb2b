"""Tests for the blockchains catalogue."""

import pytest
import pytest_asyncio

from blockchains import (
    BlockchainExistsError,
    BlockchainManager,
    BlockchainNotFoundError,
    UsefulAddressNotFoundError,
)

UNKNOWN_ID = "507f1f77bcf86cd799439011"

SAMPLE_BLOCKCHAIN = {
    "caipId": "eip155:97",
    "chainId": "97",
    "label": "BSC Testnet",
    "icon": "https://example.com/bsc.png",
    "rpc": ["https://bsc-testnet.example.com"],
    "nativeTokenSymbol": "tBNB",
    "isEvm": True,
    "isTestnet": True,
    "isActive": True,
    "transactionExplorerUrl": "https://testnet.bscscan.com/tx",
    "addressExplorerUrl": "https://testnet.bscscan.com/address",
}

@pytest_asyncio.fixture
async def blockchain_manager(memory_store):
    return BlockchainManager(memory_store)

@pytest_asyncio.fixture
async def blockchain_id(blockchain_manager):
    return (await blockchain_manager.create_blockchain(SAMPLE_BLOCKCHAIN))["insertedId"]

@pytest.mark.asyncio
async def test_create_blockchain(blockchain_manager, blockchain_id):
    blockchain = await blockchain_manager.get_blockchain(blockchain_id)

    assert blockchain["caipId"] == "eip155:97"
    assert blockchain["usefulAddresses"] == {}

@pytest.mark.asyncio
async def test_duplicate_caip_id(blockchain_manager, blockchain_id):
    with pytest.raises(BlockchainExistsError):
        await blockchain_manager.create_blockchain(SAMPLE_BLOCKCHAIN)

@pytest.mark.asyncio
async def test_active_blockchains(blockchain_manager, blockchain_id):
    await blockchain_manager.create_blockchain({**SAMPLE_BLOCKCHAIN, "caipId": "eip155:1", "isActive": False})

    active = await blockchain_manager.get_active_blockchains()

    assert [blockchain["caipId"] for blockchain in active] == ["eip155:97"]

@pytest.mark.asyncio
async def test_update_blockchain(blockchain_manager, blockchain_id):
    result = await blockchain_manager.update_blockchain(blockchain_id, {"label": "BNB Testnet"})

    assert result["modifiedCount"] == 1
    assert (await blockchain_manager.get_blockchain(blockchain_id))["label"] == "BNB Testnet"

@pytest.mark.asyncio
async def test_update_blockchain_with_no_fields(blockchain_manager, blockchain_id):
    result = await blockchain_manager.update_blockchain(blockchain_id, {})

    assert result["matchedCount"] == 1
    assert result["modifiedCount"] == 0

@pytest.mark.asyncio
async def test_update_to_taken_caip_id(blockchain_manager, blockchain_id):
    await blockchain_manager.create_blockchain({**SAMPLE_BLOCKCHAIN, "caipId": "eip155:1"})

    with pytest.raises(BlockchainExistsError):
        await blockchain_manager.update_blockchain(blockchain_id, {"caipId": "eip155:1"})

@pytest.mark.asyncio
async def test_update_unknown_blockchain(blockchain_manager):
    with pytest.raises(BlockchainNotFoundError) as exc_info:
        await blockchain_manager.update_blockchain(UNKNOWN_ID, {"label": "x"})
    assert str(exc_info.value) == "No blockchain found"

@pytest.mark.asyncio
async def test_useful_addresses(blockchain_manager, blockchain_id):
    await blockchain_manager.upsert_useful_address(blockchain_id, "router", "0xRouter")
    await blockchain_manager.upsert_useful_address(blockchain_id, "pool", "0xPool")

    result = await blockchain_manager.delete_useful_address(blockchain_id, "router")

    assert result["modifiedCount"] == 1
    blockchain = await blockchain_manager.get_blockchain(blockchain_id)
    assert blockchain["usefulAddresses"] == {"pool": "0xPool"}

@pytest.mark.asyncio
async def test_delete_missing_useful_address(blockchain_manager, blockchain_id):
    with pytest.raises(UsefulAddressNotFoundError) as exc_info:
        await blockchain_manager.delete_useful_address(blockchain_id, "router")
    assert str(exc_info.value) == "No blockchain or usefull address found."

@pytest.mark.asyncio
async def test_delete_blockchain(blockchain_manager, blockchain_id):
    assert (await blockchain_manager.delete_blockchain(blockchain_id))["deletedCount"] == 1
    assert (await blockchain_manager.delete_blockchain(blockchain_id))["deletedCount"] == 0

def _create(client, headers, **overrides):
    response = client.post("/blockchains", json={**SAMPLE_BLOCKCHAIN, **overrides}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["insertedId"]

def test_create_and_get_endpoint(client, auth_headers):
    blockchain_id = _create(client, auth_headers, isTestnet="1")

    response = client.get(f"/blockchains/{blockchain_id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["isTestnet"] is True

def test_get_unknown_blockchain_is_empty(client, auth_headers):
    response = client.get(f"/blockchains/{UNKNOWN_ID}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {}

def test_active_route_is_not_an_id(client, auth_headers):
    _create(client, auth_headers)

    response = client.get("/blockchains/active", headers=auth_headers)

    assert response.status_code == 200
    assert len(response.json()) == 1

def test_create_blockchain_validation(client, auth_headers):
    body = {**SAMPLE_BLOCKCHAIN, "caipId": "eip155", "rpc": ["notAnURL", 123]}

    response = client.post("/blockchains", json=body, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == [
        {"location": "body", "param": "caipId", "msg": "must be a valid CAIP id"},
        {"location": "body", "param": "rpc", "msg": "must be an array of URL"},
    ]

def test_duplicate_blockchain_endpoint(client, auth_headers):
    _create(client, auth_headers)

    response = client.post("/blockchains", json=SAMPLE_BLOCKCHAIN, headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"msg": "This blockchain already exists."}

def test_update_endpoint(client, auth_headers):
    blockchain_id = _create(client, auth_headers)

    response = client.put(f"/blockchains/{blockchain_id}", json={"isActive": "false"}, headers=auth_headers)

    assert response.status_code == 200
    assert client.get("/blockchains/active", headers=auth_headers).json() == []

def test_update_unknown_endpoint(client, auth_headers):
    response = client.put(f"/blockchains/{UNKNOWN_ID}", json={"label": "x"}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"msg": "No blockchain found"}

def test_delete_unknown_blockchain(client, auth_headers):
    response = client.delete(f"/blockchains/{UNKNOWN_ID}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"acknowledged": True, "deletedCount": 0}

def test_delete_malformed_id(client, auth_headers):
    response = client.delete("/blockchains/not-an-id", headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == [{"location": "params", "param": "blockchainId", "msg": "must be mongodb id"}]

def test_useful_address_endpoints(client, auth_headers):
    blockchain_id = _create(client, auth_headers)

    upsert = client.post(
        f"/blockchains/useful-address/{blockchain_id}",
        json={"contract": "router", "address": "0xRouter"},
        headers=auth_headers
    )
    removed = client.delete(
        f"/blockchains/useful-address/{blockchain_id}",
        params={"contract": "router"},
        headers=auth_headers
    )
    again = client.delete(
        f"/blockchains/useful-address/{blockchain_id}",
        params={"contract": "router"},
        headers=auth_headers
    )

    assert upsert.json()["modifiedCount"] == 1
    assert removed.json()["modifiedCount"] == 1
    assert again.status_code == 404
    assert again.json() == {"msg": "No blockchain or usefull address found."}

def test_useful_address_rejects_dotted_contract(client, auth_headers):
    blockchain_id = _create(client, auth_headers)

    response = client.post(
        f"/blockchains/useful-address/{blockchain_id}",
        json={"contract": "a.b", "address": "0x1"},
        headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json() == [{"location": "body", "param": "contract", "msg": 'must not contain "." or "$"'}]
