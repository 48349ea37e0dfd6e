"""Tests for wallet API endpoints."""
import hashlib
import hmac
import json
import pytest
from uuid import uuid4

from httpx import AsyncClient, ASGITransport

from tests.helpers import ADMIN_HEADERS

API_BASE_URL = "http://test"
WEBHOOK_SECRET = "test-webhook-secret"


def _user_headers(user_id=None):
    return {"X-User-Id": str(user_id or uuid4())}


def _signed(payload: dict, secret: str = WEBHOOK_SECRET) -> tuple[bytes, dict]:
    body = json.dumps(payload).encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return body, {"Content-Type": "application/json", "X-Webhook-Signature": signature}


async def _create_wallet(client, headers):
    suffix = uuid4().hex[:6]
    response = await client.post(
        "/wallet",
        json={"user_name": f"player_{suffix}", "user_email": f"player_{suffix}@example.com"},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_and_get_wallet(test_app):
    """Test POST /wallet creates an empty wallet for the caller."""
    headers = _user_headers()

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        created = await _create_wallet(client, headers)
        response = await client.get("/wallet", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["wallet_id"] == created["wallet_id"]
    assert data["user_id"] == headers["X-User-Id"]
    assert data["balance"] == 0
    assert data["status"] == "active"


@pytest.mark.asyncio
async def test_second_wallet_conflicts(test_app):
    headers = _user_headers()

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        await _create_wallet(client, headers)
        response = await client.post(
            "/wallet",
            json={"user_name": "again", "user_email": "again@example.com"},
            headers=headers,
        )

    assert response.status_code == 409
    assert response.json()["error"] == "wallet_already_exists"


@pytest.mark.asyncio
async def test_balance_without_wallet(test_app):
    """Users without a wallet see zero and a create hint."""
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        response = await client.get("/wallet/balance", headers=_user_headers())

    assert response.status_code == 200
    assert response.json() == {"balance": 0, "can_create_wallet": True, "wallet_id": None}


@pytest.mark.asyncio
async def test_missing_wallet_is_404(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        response = await client.get("/wallet", headers=_user_headers())

    assert response.status_code == 404
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "wallet_not_found"


@pytest.mark.asyncio
async def test_authentication_required(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        missing = await client.get("/wallet")
        malformed = await client.get("/wallet", headers={"X-User-Id": "not-a-uuid"})

    assert missing.status_code == 401
    assert malformed.status_code == 401


@pytest.mark.asyncio
async def test_deposit_settled_by_webhook(test_app):
    """Deposit stays pending until the signed gateway callback reports PAID."""
    headers = _user_headers()

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        await _create_wallet(client, headers)

        deposit = await client.post("/wallet/deposits", json={"amount": 750}, headers=headers)
        assert deposit.status_code == 201
        order_id = deposit.json()["order_id"]
        assert deposit.json()["status"] == "pending"
        assert order_id in deposit.json()["payment_url"]

        balance = await client.get("/wallet/balance", headers=headers)
        assert balance.json()["balance"] == 0

        body, webhook_headers = _signed({"order_id": order_id, "order_amount": 750, "order_status": "PAID"})
        webhook = await client.post("/wallet/webhook", content=body, headers=webhook_headers)
        assert webhook.status_code == 200
        assert webhook.json() == {"success": True, "order_id": order_id, "status": "success"}

        # Redelivery is harmless
        webhook = await client.post("/wallet/webhook", content=body, headers=webhook_headers)
        assert webhook.status_code == 200

        balance = await client.get("/wallet/balance", headers=headers)
        status = await client.get(f"/wallet/deposits/{order_id}", headers=headers)
        transactions = await client.get("/wallet/transactions", headers=headers)
        audit = await client.get("/wallet/audit", headers=headers)

    assert balance.json()["balance"] == 750
    assert status.json()["status"] == "success"
    assert transactions.json()["pagination"]["total"] == 1
    assert transactions.json()["transactions"][0]["balance_after"] == 750
    assert audit.json()["is_consistent"] is True


@pytest.mark.asyncio
async def test_webhook_rejects_bad_signature(test_app):
    headers = _user_headers()

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        await _create_wallet(client, headers)
        deposit = await client.post("/wallet/deposits", json={"amount": 100}, headers=headers)
        order_id = deposit.json()["order_id"]

        body, webhook_headers = _signed(
            {"order_id": order_id, "order_status": "PAID"}, secret="wrong-secret",
        )
        forged = await client.post("/wallet/webhook", content=body, headers=webhook_headers)
        unsigned = await client.post(
            "/wallet/webhook", content=body, headers={"Content-Type": "application/json"},
        )
        balance = await client.get("/wallet/balance", headers=headers)

    assert forged.status_code == 401
    assert unsigned.status_code == 401
    assert balance.json()["balance"] == 0


@pytest.mark.asyncio
async def test_webhook_amount_mismatch(test_app):
    headers = _user_headers()

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        await _create_wallet(client, headers)
        deposit = await client.post("/wallet/deposits", json={"amount": 100}, headers=headers)
        order_id = deposit.json()["order_id"]

        body, webhook_headers = _signed({"order_id": order_id, "order_amount": 10000, "order_status": "PAID"})
        response = await client.post("/wallet/webhook", content=body, headers=webhook_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "payment_amount_mismatch"


@pytest.mark.asyncio
async def test_deposit_limits(test_app):
    headers = _user_headers()

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        await _create_wallet(client, headers)
        too_large = await client.post("/wallet/deposits", json={"amount": 1_000_000}, headers=headers)
        zero = await client.post("/wallet/deposits", json={"amount": 0}, headers=headers)

    assert too_large.status_code == 400
    assert too_large.json()["error"] == "validation_error"
    assert zero.status_code == 422


@pytest.mark.asyncio
async def test_other_users_deposit_hidden(test_app):
    owner = _user_headers()
    other = _user_headers()

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        await _create_wallet(client, owner)
        await _create_wallet(client, other)
        deposit = await client.post("/wallet/deposits", json={"amount": 100}, headers=owner)
        response = await client.get(f"/wallet/deposits/{deposit.json()['order_id']}", headers=other)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_wallet_moderation(test_app):
    headers = _user_headers()

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        wallet = await _create_wallet(client, headers)
        wallet_id = wallet["wallet_id"]

        forbidden = await client.patch(f"/admin/wallets/{wallet_id}/status", json={"status": "suspended"})
        suspended = await client.patch(
            f"/admin/wallets/{wallet_id}/status", json={"status": "suspended"}, headers=ADMIN_HEADERS,
        )
        deposit = await client.post("/wallet/deposits", json={"amount": 100}, headers=headers)
        audit = await client.get(f"/admin/wallets/{wallet_id}/audit", headers=ADMIN_HEADERS)

    assert forbidden.status_code == 403
    assert suspended.status_code == 200
    assert suspended.json()["status"] == "suspended"
    assert deposit.status_code == 409
    assert deposit.json()["error"] == "wallet_inactive"
    assert audit.json()["is_consistent"] is True
