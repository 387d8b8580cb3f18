# tests/test_api_contract_flow.py
from __future__ import annotations

from arriendo.domain.statuses import KYCType
from arriendo.models import Property, RentalContract


def test_health_and_disclaimer(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.headers.get("X-Request-ID")

    r = client.get("/api/health", headers={"X-Request-ID": "req-abc-12345"})
    assert r.headers["X-Request-ID"] == "req-abc-12345"

    r = client.get("/api/health", headers={"X-Request-ID": "<script>alert(1)</script>"})
    assert r.headers["X-Request-ID"] != "<script>alert(1)</script>"
    assert len(r.headers["X-Request-ID"]) == 32

    d = client.get("/api/meta/disclaimer").json()
    assert d["statement"]
    assert set(d["required_for"]) == {"approve_and_send_contract", "tenant_approve_contract"}


def test_unauthenticated_requests_are_rejected(client, headers):
    assert client.get("/api/contracts/owner").status_code == 401
    assert client.get("/api/contracts/owner", headers=headers("nobody")).status_code == 401


def test_plans_and_active_plan(client, factory, headers):
    r = client.get("/api/plans", params={"user_type": "tenant"})
    assert r.status_code == 200
    ids = {p["id"] for p in r.json()}
    assert "tenant_pro" in ids
    assert all(p["user_type"] == "tenant" for p in r.json())

    free = factory.user()
    assert client.get("/api/plans/active", headers=headers(free.id)).json() is None

    pro = factory.user(plan="tenant_pro")
    body = client.get("/api/plans/active", headers=headers(pro.id)).json()
    assert body["plan_id"] == "tenant_pro"
    assert body["is_pro"] is True


def test_dev_token_then_bearer(client, factory):
    u = factory.user(name="Bea", email="bea@test.local")
    r = client.post("/api/auth/dev-token", json={"user_id": u.id})
    assert r.status_code == 200
    token = r.json()["access_token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json() == {"user_id": u.id, "email": "bea@test.local", "user_type": "tenant"}

    bad = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert bad.status_code == 401


def test_kyc_over_http(client, factory, headers):
    u = factory.user(plan="tenant_pro")
    h = headers(u.id)

    r = client.post(
        "/api/kyc/verifications",
        headers=h,
        json={
            "verification_type": "person",
            "document_type": "cc",
            "document_number": "1020304050",
            "document_front_url": "https://files.test/front.jpg",
            "selfie_url": "https://files.test/selfie.jpg",
        },
    )
    assert r.status_code == 200, r.text
    vid = r.json()["id"]
    assert r.json()["status"] == "pending"

    r = client.post(f"/api/kyc/verifications/{vid}/complete", headers=h)
    assert r.status_code == 200
    assert r.json()["effective_status"] == "verified"

    status = client.get("/api/kyc/status", headers=h, params={"verification_type": "person"}).json()
    assert status["is_verified"] is True

    missing = client.post("/api/kyc/verifications", headers=h, json={"verification_type": "person"})
    assert missing.status_code == 422
    assert missing.json()["error"] == "ValidationError"


def test_error_bodies_carry_kind_and_status(client, factory, headers):
    owner = factory.ready_owner()
    tenant = factory.ready_tenant()
    free_tenant = factory.user()
    unverified = factory.user(plan="tenant_pro")
    prop = factory.property(owner)

    r = client.post("/api/contract-requests", headers=headers(free_tenant.id), json={"property_id": prop.id})
    assert r.status_code == 402
    assert r.json()["error"] == "NotEntitled"

    r = client.post(
        "/api/contracts",
        headers=headers(owner.id),
        json={"property_id": prop.id, "tenant_id": unverified.id},
    )
    assert r.status_code == 428
    assert r.json()["error"] == "KYCRequired"

    r = client.post(
        "/api/contracts",
        headers=headers(tenant.id),
        json={"property_id": prop.id, "tenant_id": tenant.id},
    )
    assert r.status_code == 403
    assert r.json()["error"] == "Forbidden"

    r = client.get("/api/contracts/does-not-exist", headers=headers(owner.id))
    assert r.status_code == 404
    assert r.json()["error"] == "NotFound"

    r = client.post(
        "/api/contracts",
        headers=headers(owner.id),
        json={"property_id": prop.id, "tenant_id": tenant.id, "monthly_rent": -5},
    )
    assert r.status_code == 422
    assert r.json()["error"] == "ValidationError"


def test_request_to_approval_over_http(client, db, factory, headers):
    owner = factory.ready_owner(kyc=KYCType.COMPANY)
    tenant = factory.ready_tenant()
    prop = factory.property(owner, price=3_200_000)
    o, t = headers(owner.id), headers(tenant.id)

    r = client.post("/api/contract-requests", headers=t, json={"property_id": prop.id})
    assert r.status_code == 200, r.text
    req = r.json()
    assert req["eligible_for_contract"] is True
    assert req["tenant_kyc_status"] == "verified"

    dup = client.post("/api/contract-requests", headers=t, json={"property_id": prop.id})
    assert dup.status_code == 409
    assert dup.json()["error"] == "Conflict"

    assert client.get("/api/contract-requests/active", headers=t, params={"property_id": prop.id}).json()[
        "has_active_request"
    ]
    assert [x["id"] for x in client.get("/api/contract-requests/owner", headers=o).json()] == [req["id"]]

    r = client.post(
        "/api/contracts",
        headers=o,
        json={
            "property_id": prop.id,
            "tenant_id": tenant.id,
            "contract_request_id": req["id"],
            "start_date": "2026-01-31",
            "contract_duration_months": 1,
        },
    )
    assert r.status_code == 200, r.text
    contract = r.json()
    cid = contract["id"]
    assert contract["status"] == "draft"
    assert contract["property_status"] == "locked_for_contract"
    assert contract["end_date"] == "2026-02-28"

    again = client.post("/api/contracts", headers=o, json={"property_id": prop.id, "tenant_id": tenant.id})
    assert again.status_code == 409

    r = client.put(
        f"/api/contracts/{cid}/content",
        headers=o,
        json={"content": "Contrato final", "clauses": [{"title": "Mascotas", "content": "No"}]},
    )
    assert r.status_code == 200
    assert r.json()["clauses"] == [{"title": "Mascotas", "content": "No"}]

    r = client.post(f"/api/contracts/{cid}/approve-and-send", headers=o, json={})
    assert r.status_code == 422
    assert client.get(f"/api/contracts/{cid}", headers=o).json()["status"] == "draft"

    r = client.post(f"/api/contracts/{cid}/approve-and-send", headers=o, json={"disclaimer_accepted": True})
    assert r.status_code == 200
    assert r.json()["status"] == "pending_tenant"
    assert r.json()["notification_sent"] is True

    r = client.post(
        f"/api/contracts/{cid}/messages",
        headers=t,
        json={"content": "¿Incluye parqueadero?", "message_type": "comment"},
    )
    assert r.status_code == 200
    assert r.json()["sender_email"] == tenant.email
    assert client.get(f"/api/contracts/{cid}/messages/unread-count", headers=o).json() == {"count": 1}
    assert client.post(f"/api/contracts/{cid}/messages/read-all", headers=o).json() == {"count": 1}

    r = client.post(f"/api/contracts/{cid}/tenant-approve", headers=t, json={"disclaimer_accepted": True})
    assert r.status_code == 200
    assert r.json()["status"] == "approved"

    notes = client.get("/api/notifications", headers=o).json()
    kinds = {n["kind"] for n in notes}
    assert {"contract_request.created", "contract.message", "contract.tenant_approved"} <= kinds
    assert client.get("/api/notifications/unread-count", headers=o).json()["count"] == len(notes)

    db.expire_all()
    assert db.get(RentalContract, cid).status == "approved"


def test_cancel_over_http_unlocks_and_blocks_tenant_approval(client, db, factory, headers):
    owner = factory.ready_owner()
    tenant = factory.ready_tenant()
    prop = factory.property(owner, status="paused")
    o, t = headers(owner.id), headers(tenant.id)

    cid = client.post("/api/contracts", headers=o, json={"property_id": prop.id, "tenant_id": tenant.id}).json()["id"]
    client.post(f"/api/contracts/{cid}/approve-and-send", headers=o, json={"disclaimer_accepted": True})

    assert client.post(f"/api/contracts/{cid}/cancel", headers=t).status_code == 403

    r = client.post(f"/api/contracts/{cid}/cancel", headers=o)
    assert r.status_code == 200
    assert r.json()["contract_status"] == "cancelled"
    assert r.json()["property_status"] == "paused"

    r = client.post(f"/api/contracts/{cid}/tenant-approve", headers=t, json={"disclaimer_accepted": True})
    assert r.status_code == 409
    body = r.json()
    assert body["error"] == "InvalidState"
    assert body["expected"] == "pending_tenant"
    assert body["actual"] == "cancelled"

    assert client.post(f"/api/contracts/{cid}/cancel", headers=o).status_code == 409

    db.expire_all()
    assert db.get(Property, prop.id).status == "paused"
    active = client.get("/api/contracts/active", headers=o, params={"property_id": prop.id}).json()
    assert active["has_active_contract"] is False


def test_templates_endpoints(client):
    listed = client.get("/api/contract-templates").json()
    assert {t["id"] for t in listed} == {"standard", "simplified", "detailed"}

    r = client.post(
        "/api/contract-templates/preview",
        json={"template_id": "simplified", "bindings": {"landlord_name": "Olga"}},
    )
    assert r.status_code == 200
    assert "**ARRENDADOR:** Olga" in r.json()["content"]
