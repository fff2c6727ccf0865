import uuid
from datetime import datetime, timedelta, timezone


def make_coupon(client, headers, **overrides):
    body = {"code": "welcome50", "type": "FLAT", "amount": 50, **overrides}
    return client.post("/admin/coupons", json=body, headers=headers)


def test_empty_wallet(client, user_headers):
    assert client.get("/wallet", headers=user_headers).json() == {
        "balance": 0, "lifetimeEarned": 0, "lifetimeSpent": 0,
    }
    assert client.get("/wallet/transactions", headers=user_headers).json() == []


def test_coupon_codes_are_unique_and_upper_cased(client, admin_headers):
    r = make_coupon(client, admin_headers)
    assert r.status_code == 201
    assert r.json()["code"] == "WELCOME50"
    r = make_coupon(client, admin_headers, code="Welcome50")
    assert r.status_code == 409
    assert r.json()["detail"] == "coupon code already exists"


def test_redeem_credits_wallet_once(client, admin_headers, user_headers):
    make_coupon(client, admin_headers)
    r = client.post("/coupons/redeem", json={"code": "welcome50"}, headers=user_headers)
    assert r.status_code == 200
    assert r.json()["balance"] == 50

    txs = client.get("/wallet/transactions", headers=user_headers).json()
    assert [(t["amount"], t["type"]) for t in txs] == [(50, "COUPON")]

    r = client.post("/coupons/redeem", json={"code": "WELCOME50"}, headers=user_headers)
    assert r.status_code == 409
    assert client.get("/wallet", headers=user_headers).json()["balance"] == 50


def test_redeem_respects_total_limit(client, admin_headers, login_learner):
    make_coupon(client, admin_headers, code="ONE", maxUsesTotal=1)
    first, _ = login_learner(telegram_id="a")
    second, _ = login_learner(telegram_id="b")
    assert client.post("/coupons/redeem", json={"code": "ONE"}, headers=first).status_code == 200
    assert client.post("/coupons/redeem", json={"code": "ONE"}, headers=second).status_code == 409


def test_redeem_rejects_unusable_coupons(client, admin_headers, user_headers):
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    make_coupon(client, admin_headers, code="OLD", expiresAt=past)
    make_coupon(client, admin_headers, code="OFF", isActive=False)
    assert client.post("/coupons/redeem", json={"code": "OLD"}, headers=user_headers).status_code == 409
    assert client.post("/coupons/redeem", json={"code": "OFF"}, headers=user_headers).status_code == 409
    assert client.post("/coupons/redeem", json={"code": "NOPE"}, headers=user_headers).status_code == 404


def test_unlimited_per_user(client, admin_headers, user_headers):
    make_coupon(client, admin_headers, code="DAILY", amount=5, maxUsesPerUser=0)
    for _ in range(3):
        client.post("/coupons/redeem", json={"code": "DAILY"}, headers=user_headers)
    assert client.get("/wallet", headers=user_headers).json()["lifetimeEarned"] == 15


def test_coupon_admin_crud(client, admin_headers):
    coupon = make_coupon(client, admin_headers).json()
    make_coupon(client, admin_headers, code="OTHER")

    r = client.patch(f"/admin/coupons/{coupon['id']}",
                     json={"code": "other", "type": "FLAT", "amount": 1}, headers=admin_headers)
    assert r.status_code == 409

    r = client.patch(f"/admin/coupons/{coupon['id']}",
                     json={"code": "welcome50", "type": "FLAT", "amount": 75}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["amount"] == 75

    assert [c["code"] for c in client.get("/admin/coupons", headers=admin_headers).json()] == ["OTHER", "WELCOME50"]
    assert client.delete(f"/admin/coupons/{coupon['id']}", headers=admin_headers).status_code == 204
    assert client.get(f"/admin/coupons/{coupon['id']}", headers=admin_headers).status_code == 404
    assert client.delete(f"/admin/coupons/{uuid.uuid4()}", headers=admin_headers).status_code == 404


def test_referral_summary(client, login_learner):
    headers, user = login_learner()
    body = client.get("/referral", headers=headers).json()
    assert body["referralCode"] == uuid.UUID(user["id"]).hex[:8].upper()
    assert (body["totalInvited"], body["joined"], body["activated"], body["totalEarned"]) == (0, 0, 0, 0)
