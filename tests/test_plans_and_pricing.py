from dataclasses import replace

from sqlalchemy.exc import SQLAlchemyError

import qrgen.api as api_module
from qrgen.accounts import ensure_default_plans
from qrgen.api import create_app
from qrgen.db import session_scope
from qrgen.models import Account, Plan


def _post(client, headers, text):
    return client.post("/generate-qr", json={"text": text}, headers=headers)


def test_plan_limit_blocks_new_text_but_serves_cache(settings, sessions, account, auth_headers):
    client = create_app(replace(settings, default_free_plan_limit=1), session_factory=sessions).test_client()

    assert _post(client, auth_headers, "first").status_code == 200

    blocked = _post(client, auth_headers, "second")
    assert blocked.status_code == 403
    assert blocked.get_json() == {"status": "error", "message": "Conversion limit reached"}

    again = _post(client, auth_headers, "first")
    assert again.status_code == 200
    assert again.get_json()["cached"] is True

    with session_scope(sessions) as session:
        assert session.get(Account, account["id"]).conversions_used == 1


def test_plan_limit_uses_catalogue_for_paid_plans(client, sessions, account, auth_headers):
    with session_scope(sessions) as session:
        session.add(Plan(id="starter", name="Starter", price_monthly_cents=900, monthly_conversions=2, features=[]))
        stored = session.get(Account, account["id"])
        stored.plan = "starter"
        stored.conversions_used = 2

    assert _post(client, auth_headers, "over the cap").status_code == 403


def test_plan_limit_can_be_disabled(settings, sessions, account, auth_headers):
    client = create_app(
        replace(settings, enforce_plan_limits=False, default_free_plan_limit=0), session_factory=sessions
    ).test_client()

    response = _post(client, auth_headers, "unmetered")

    assert response.status_code == 200
    assert response.get_json()["conversionsUsed"] == 1


def test_pricing_lists_active_plans_by_price(client, sessions):
    with session_scope(sessions) as session:
        ensure_default_plans(session)
        session.add(Plan(id="legacy", name="Legacy", price_monthly_cents=100, features=[], is_active=False))

    response = client.get("/pricing")

    assert response.status_code == 200
    plans = response.get_json()
    assert [plan["id"] for plan in plans] == ["starter", "professional", "business"]
    assert plans[0] == {
        "id": "starter",
        "name": "Starter",
        "price_monthly_cents": 900,
        "monthly_conversions": 100,
        "features": [
            "100 QR code conversions/month",
            "Basic QR code designs",
            "PNG download",
            "Standard support",
        ],
    }


def test_pricing_store_failure_is_a_server_error(client, monkeypatch):
    def broken_listing(session):
        raise SQLAlchemyError("plans table unavailable")

    monkeypatch.setattr(api_module, "list_active_plans", broken_listing)

    response = client.get("/pricing")

    assert response.status_code == 500
    assert response.get_json() == {"status": "error", "message": "Failed to load plans"}
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_pricing_preflight_and_methods(client):
    preflight = client.options("/pricing")
    assert preflight.status_code == 204
    assert preflight.headers["Access-Control-Allow-Methods"] == "GET, OPTIONS"

    response = client.post("/pricing")
    assert response.status_code == 405
    assert response.get_json()["message"] == "Method not allowed"


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_unknown_route_is_json(client):
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.get_json()["status"] == "error"
