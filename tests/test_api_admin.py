"""Tests for reader moderation, analytics, refunds and payouts."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from soulseer.database import get_async_session_context
from soulseer.models.session import SessionStatus
from soulseer.models.transaction import Transaction, TransactionStatus, TransactionType
from soulseer.models.user import ReaderStatus
from soulseer.repositories.reader_repository import ReaderRepository
from soulseer.repositories.transaction_repository import TransactionRepository
from soulseer.utils.datetime import utc_now_naive


async def charge(client, reader, session, amount="25.00"):
    """Record a completed session charge the way ending a session does"""
    amount = Decimal(amount)
    earnings = (amount * Decimal("0.70")).quantize(Decimal("0.01"))
    async with get_async_session_context() as s:
        tx = await TransactionRepository().create(s, Transaction(
            user_id=client.id,
            reader_id=reader.id,
            session_id=session.session_id,
            type=TransactionType.SESSION_CHARGE,
            status=TransactionStatus.COMPLETED,
            amount=amount,
            currency="USD",
            reader_earnings=earnings,
            platform_revenue=amount - earnings,
        ))
        profile = await ReaderRepository().get_by_user_id(s, reader.id)
        profile.total_sessions += 1
        profile.total_earnings = profile.total_earnings + earnings
        await s.commit()
    return tx


@pytest.fixture
async def charged(client_account, reader_account, make_session):
    session = await make_session(client_account, reader_account, ended_at=utc_now_naive())
    return await charge(client_account, reader_account, session)


APPLICATION = {
    "first_name": "Luna",
    "last_name": "Client",
    "bio": "Reading cards for friends for ten years.",
    "specialties": ["Tarot"],
    "session_types": ["CHAT", "CALL"],
}


# ----------------------------------------------------------------------
# readers
# ----------------------------------------------------------------------
async def test_approve_application(api_client, admin_account, client_account):
    resp = await api_client.post("/api/readers/apply", headers=client_account.headers, json=APPLICATION)
    application_id = resp.json()["application_id"]

    resp = await api_client.get("/api/admin/readers/applications", headers=admin_account.headers,
                                params={"status": "PENDING"})
    assert [a["application_id"] for a in resp.json()["applications"]] == [application_id]

    resp = await api_client.post(f"/api/admin/readers/applications/{application_id}/approve",
                                 headers=admin_account.headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "APPROVED"
    assert resp.json()["reviewed_by"] == admin_account.id

    resp = await api_client.get(f"/api/readers/{client_account.id}")
    reader = resp.json()["reader"]
    assert reader["rates"] == {"CHAT": 1.99, "CALL": 1.99}
    assert reader["is_verified"] is True

    resp = await api_client.get("/api/auth/me", headers=client_account.headers)
    assert resp.json()["role"] == "READER"

    resp = await api_client.post(f"/api/admin/readers/applications/{application_id}/approve",
                                 headers=admin_account.headers)
    assert resp.status_code == 409


async def test_reject_application_needs_a_note(api_client, admin_account, client_account):
    resp = await api_client.post("/api/readers/apply", headers=client_account.headers, json=APPLICATION)
    application_id = resp.json()["application_id"]

    resp = await api_client.post(f"/api/admin/readers/applications/{application_id}/reject",
                                 headers=admin_account.headers, json={"note": "  "})
    assert resp.status_code == 400

    resp = await api_client.post(f"/api/admin/readers/applications/{application_id}/reject",
                                 headers=admin_account.headers, json={"note": "Please add more experience."})
    assert resp.json()["status"] == "REJECTED"

    resp = await api_client.get("/api/notifications", headers=client_account.headers)
    assert "Please add more experience." in resp.json()["notifications"][0]["message"]

    resp = await api_client.get("/api/auth/me", headers=client_account.headers)
    assert resp.json()["role"] == "CLIENT"


async def test_suspend_and_activate_reader(api_client, admin_account, client_account, reader_account,
                                           make_session):
    upcoming = await make_session(client_account, reader_account, status=SessionStatus.SCHEDULED,
                                  scheduled_at=utc_now_naive() + timedelta(days=2))
    url = f"/api/admin/readers/{reader_account.id}"

    resp = await api_client.post(f"{url}/suspend", headers=admin_account.headers, json={"reason": ""})
    assert resp.status_code == 400

    resp = await api_client.post(f"{url}/suspend", headers=admin_account.headers,
                                 json={"reason": "Policy violation"})
    assert resp.status_code == 200
    assert resp.json()["account_status"] == "SUSPENDED"
    assert resp.json()["status"] == "OFFLINE"

    resp = await api_client.get(f"/api/sessions/{upcoming.session_id}", headers=client_account.headers)
    assert resp.json()["status"] == "CANCELLED"
    assert resp.json()["cancelled_by"] == admin_account.id

    resp = await api_client.get("/api/notifications", headers=client_account.headers,
                                params={"type": "SESSION_CANCELLED"})
    assert resp.json()["pagination"]["total"] == 1

    assert (await api_client.get("/api/readers/me", headers=reader_account.headers)).status_code == 403
    resp = await api_client.get("/api/readers")
    assert resp.json()["readers"] == []

    resp = await api_client.post(f"{url}/activate", headers=admin_account.headers)
    assert resp.json()["account_status"] == "ACTIVE"
    assert (await api_client.get("/api/readers/me", headers=reader_account.headers)).status_code == 200


async def test_reader_listing_and_stats(api_client, admin_account, make_reader):
    await make_reader("Ada Moon", is_verified=True)
    await make_reader("Bo Star", status=ReaderStatus.OFFLINE)

    resp = await api_client.get("/api/admin/readers", headers=admin_account.headers, params={"verified": True})
    [item] = resp.json()["readers"]
    assert item["email"] == "ada.moon@example.com"

    resp = await api_client.get("/api/admin/readers", headers=admin_account.headers, params={"q": "star"})
    assert [r["full_name"] for r in resp.json()["readers"]] == ["Bo Star"]

    resp = await api_client.get("/api/admin/readers/stats", headers=admin_account.headers)
    body = resp.json()
    assert body["total"] == 2
    assert body["by_status"]["ONLINE"] == 1
    assert body["by_status"]["OFFLINE"] == 1
    assert body["verified"] == 1
    assert body["pending_applications"] == 0


async def test_reader_details_and_performance(api_client, admin_account, reader_account, charged):
    resp = await api_client.get(f"/api/admin/readers/{reader_account.id}/details", headers=admin_account.headers)
    body = resp.json()
    assert Decimal(body["lifetime_earnings"]) == Decimal("17.50")
    assert Decimal(body["payouts_committed"]) == Decimal("0")
    assert body["sessions_by_status"] == {"COMPLETED": 1}

    resp = await api_client.get("/api/admin/readers/performance", headers=admin_account.headers,
                                params={"sort_by": "sessions"})
    [top] = resp.json()["readers"]
    assert top["reader_id"] == reader_account.id
    assert top["total_sessions"] == 1

    resp = await api_client.get("/api/admin/readers/999/details", headers=admin_account.headers)
    assert resp.status_code == 404


# ----------------------------------------------------------------------
# analytics
# ----------------------------------------------------------------------
async def test_analytics_stats(api_client, admin_account, charged):
    resp = await api_client.get("/api/admin/analytics/stats", headers=admin_account.headers,
                                params={"period": "7d"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["period"] == "7d"
    assert body["total_users"] == 3
    assert body["new_users"] == 3
    assert body["user_growth_rate"] == 100.0
    assert body["sessions"] == 1
    assert body["completed_sessions"] == 1
    assert Decimal(body["revenue"]) == Decimal("25.00")
    assert Decimal(body["platform_revenue"]) == Decimal("7.50")
    assert body["online_readers"] == 1

    resp = await api_client.get("/api/admin/analytics/stats", headers=admin_account.headers,
                                params={"period": "2w"})
    assert resp.status_code == 422


async def test_chart_data_covers_every_day(api_client, admin_account, charged):
    resp = await api_client.get("/api/admin/analytics/chart-data", headers=admin_account.headers,
                                params={"period": "7d"})
    points = resp.json()["points"]
    assert len(points) == 7
    assert points[-1]["date"] == utc_now_naive().date().isoformat()
    assert points[-1]["revenue"] == 25.0
    assert points[-1]["sessions"] == 1.0
    assert all(p["revenue"] == 0 for p in points[:-1])


async def test_top_readers_and_user_metrics(api_client, admin_account, reader_account, charged):
    resp = await api_client.get("/api/admin/analytics/top-readers", headers=admin_account.headers)
    assert Decimal(resp.json()["readers"][0]["total_earnings"]) == Decimal("17.50")

    resp = await api_client.get("/api/admin/analytics/user-metrics", headers=admin_account.headers)
    body = resp.json()
    assert body["total"] == 3
    assert body["by_role"] == {"CLIENT": 1, "READER": 1, "ADMIN": 1}
    assert body["by_status"]["ACTIVE"] == 3
    assert body["new_last_7_days"] == 3


# ----------------------------------------------------------------------
# finance
# ----------------------------------------------------------------------
async def test_refund_session_charge(api_client, admin_account, client_account, reader_account, charged):
    url = f"/api/admin/finance/transactions/{charged.transaction_id}/refund"

    resp = await api_client.post(url, headers=admin_account.headers, json={"reason": "Connection dropped"})
    assert resp.status_code == 201
    refund = resp.json()
    assert refund["type"] == "REFUND"
    assert refund["refunded_transaction_id"] == charged.transaction_id
    assert Decimal(refund["amount"]) == Decimal("25.00")

    resp = await api_client.post(url, headers=admin_account.headers)
    assert resp.status_code == 409

    resp = await api_client.get(f"/api/sessions/{charged.session_id}", headers=client_account.headers)
    assert resp.json()["status"] == "CANCELLED"

    resp = await api_client.get(f"/api/admin/readers/{reader_account.id}/details", headers=admin_account.headers)
    assert Decimal(resp.json()["reader"]["total_earnings"]) == Decimal("0.00")
    assert Decimal(resp.json()["lifetime_earnings"]) == Decimal("0")

    resp = await api_client.get("/api/admin/finance/stats", headers=admin_account.headers)
    stats = resp.json()
    assert Decimal(stats["refunds"]) == Decimal("25.00")
    assert Decimal(stats["gross_revenue"]) == Decimal("0")
    assert stats["count_by_type"]["REFUND"] == 1


async def test_refund_rules(api_client, admin_account, client_account):
    resp = await api_client.post("/api/wallet/add-funds", headers=client_account.headers, json={"amount": "10"})
    deposit_id = resp.json()["transaction_id"]

    resp = await api_client.post(f"/api/admin/finance/transactions/{deposit_id}/refund",
                                 headers=admin_account.headers)
    assert resp.status_code == 400

    resp = await api_client.post("/api/admin/finance/transactions/999/refund", headers=admin_account.headers)
    assert resp.status_code == 404


async def test_payout_flow(api_client, admin_account, client_account, reader_account, charged):
    resp = await api_client.post("/api/payouts", headers=reader_account.headers, json={"amount": "20.00"})
    assert resp.status_code == 400

    first = (await api_client.post("/api/payouts", headers=reader_account.headers,
                                   json={"amount": "10.00"})).json()
    second = (await api_client.post("/api/payouts", headers=reader_account.headers,
                                    json={"amount": "7.50"})).json()
    assert first["status"] == "PENDING"

    # everything is committed now
    resp = await api_client.post("/api/payouts", headers=reader_account.headers, json={"amount": "0.01"})
    assert resp.status_code == 400

    resp = await api_client.post(f"/api/admin/finance/payouts/{first['payout_id']}/process",
                                 headers=admin_account.headers)
    assert resp.json()["status"] == "COMPLETED"
    assert resp.json()["processed_by"] == admin_account.id

    resp = await api_client.post(f"/api/admin/finance/payouts/{first['payout_id']}/process",
                                 headers=admin_account.headers)
    assert resp.status_code == 409

    resp = await api_client.post(f"/api/admin/finance/payouts/{second['payout_id']}/cancel",
                                 headers=admin_account.headers, json={"note": "Bank details missing"})
    assert resp.json()["status"] == "CANCELLED"

    resp = await api_client.get("/api/notifications", headers=reader_account.headers,
                                params={"type": "PAYMENT_FAILED"})
    assert resp.json()["pagination"]["total"] == 1

    # the cancelled amount is available again
    resp = await api_client.post("/api/payouts", headers=reader_account.headers, json={"amount": "7.50"})
    assert resp.status_code == 201

    resp = await api_client.get("/api/payouts", headers=reader_account.headers)
    assert resp.json()["pagination"]["total"] == 3

    resp = await api_client.get("/api/admin/finance/transactions", headers=admin_account.headers,
                                params={"type": "PAYOUT"})
    [payout_tx] = resp.json()["transactions"]
    assert Decimal(payout_tx["amount"]) == Decimal("10.00")

    resp = await api_client.get("/api/admin/finance/payouts", headers=admin_account.headers,
                                params={"status": "PENDING"})
    assert resp.json()["pagination"]["total"] == 1

    resp = await api_client.post("/api/payouts", headers=client_account.headers, json={"amount": "1.00"})
    assert resp.status_code == 403
