"""Tests for virtual gifts and the coin wallet."""

from __future__ import annotations

from decimal import Decimal


async def test_catalog(api_client):
    resp = await api_client.get("/api/virtual-gifts/catalog")
    gifts = {g["gift_id"]: g["value"] for g in resp.json()["gifts"]}
    assert gifts["heart"] == 10
    assert gifts["diamond"] == 1000
    assert len(gifts) == 8


async def test_add_funds(api_client, client_account, admin_account):
    resp = await api_client.post("/api/wallet/add-funds", headers=client_account.headers, json={"amount": "12.50"})
    assert resp.status_code == 200
    wallet = resp.json()
    assert wallet["coin_balance"] == 1250
    assert wallet["transaction_id"] is not None

    resp = await api_client.get("/api/wallet", headers=client_account.headers)
    assert resp.json()["coin_balance"] == 1250

    resp = await api_client.get("/api/admin/finance/transactions", headers=admin_account.headers,
                                params={"type": "ADD_FUNDS"})
    [tx] = resp.json()["transactions"]
    assert Decimal(tx["amount"]) == Decimal("12.50")
    assert tx["platform_revenue"] is None


async def test_add_funds_limits(api_client, client_account):
    for amount in ("4.99", "1000.01"):
        resp = await api_client.post("/api/wallet/add-funds", headers=client_account.headers,
                                     json={"amount": amount})
        assert resp.status_code == 422


async def test_send_gift(api_client, make_user, reader_account, admin_account):
    fan = await make_user("Big Fan", coins=100)

    resp = await api_client.post("/api/virtual-gifts/send", headers=fan.headers, json={
        "gift_id": "Star", "recipient_id": reader_account.id, "quantity": 2, "message": "Thank you!",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["balance"] == 50
    assert body["gift"]["total_value"] == 50
    assert body["gift"]["receiver_earnings"] == 35

    resp = await api_client.get("/api/virtual-gifts/balance", headers=reader_account.headers)
    assert resp.json() == {"user_id": reader_account.id, "coin_balance": 35, "coins_sent": 0, "coins_earned": 35}

    resp = await api_client.get("/api/notifications", headers=reader_account.headers,
                                params={"type": "GIFT_RECEIVED"})
    [note] = resp.json()["notifications"]
    assert note["message"].endswith("Thank you!")

    resp = await api_client.get("/api/admin/finance/transactions", headers=admin_account.headers,
                                params={"type": "GIFT_PURCHASE"})
    [tx] = resp.json()["transactions"]
    assert Decimal(tx["amount"]) == Decimal("0.50")
    assert Decimal(tx["reader_earnings"]) == Decimal("0.35")


async def test_gift_rules(api_client, make_user, reader_account):
    fan = await make_user("Big Fan", coins=20)

    resp = await api_client.post("/api/virtual-gifts/send", headers=fan.headers,
                                 json={"gift_id": "unicorn", "recipient_id": reader_account.id})
    assert resp.status_code == 400

    resp = await api_client.post("/api/virtual-gifts/send", headers=fan.headers,
                                 json={"gift_id": "heart", "recipient_id": fan.id})
    assert resp.status_code == 400

    resp = await api_client.post("/api/virtual-gifts/send", headers=fan.headers,
                                 json={"gift_id": "heart", "recipient_id": 9999})
    assert resp.status_code == 404

    # 30 coins needed, 20 held: nothing moves
    resp = await api_client.post("/api/virtual-gifts/send", headers=fan.headers,
                                 json={"gift_id": "heart", "recipient_id": reader_account.id, "quantity": 3})
    assert resp.status_code == 400

    resp = await api_client.get("/api/virtual-gifts/balance", headers=fan.headers)
    assert resp.json()["coin_balance"] == 20
    resp = await api_client.get("/api/virtual-gifts/history", headers=reader_account.headers)
    assert resp.json()["gifts"] == []


async def test_gift_history(api_client, make_user, reader_account):
    fan = await make_user("Big Fan", coins=100)
    for gift in ("heart", "star"):
        await api_client.post("/api/virtual-gifts/send", headers=fan.headers,
                              json={"gift_id": gift, "recipient_id": reader_account.id})

    resp = await api_client.get("/api/virtual-gifts/history", headers=fan.headers,
                                params={"direction": "sent"})
    assert [g["gift_type"] for g in resp.json()["gifts"]] == ["star", "heart"]

    resp = await api_client.get("/api/virtual-gifts/history", headers=fan.headers,
                                params={"direction": "received"})
    assert resp.json()["pagination"]["total"] == 0

    resp = await api_client.get("/api/virtual-gifts/history", headers=reader_account.headers)
    assert resp.json()["pagination"]["total"] == 2
