"""End-to-end checks through the HTTP layer."""
import io

import pytest
from pypdf import PdfReader
from sqlalchemy import select

from pagevault.models import ActivityLog

from factories import auth_headers, create_document, make_pdf


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["success"] is True


@pytest.mark.asyncio
async def test_register_login_and_me(client):
    payload = {
        "firstName": "Ada",
        "lastName": "Reader",
        "email": "Ada@Example.com",
        "username": "ada",
        "password": "password123",
    }
    registered = await client.post("/api/auth/register", json=payload)
    assert registered.status_code == 201
    assert registered.json()["data"]["user"]["role"] == "user"

    duplicate = await client.post("/api/auth/register", json=payload)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "CONFLICT"

    login = await client.post("/api/auth/login", json={"email": "ada@example.com", "password": "password123"})
    assert login.status_code == 200
    token = login.json()["data"]["token"]

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "ada@example.com"
    assert "passwordHash" not in me.json()["data"]


@pytest.mark.asyncio
async def test_bad_credentials_are_rejected(client, reader):
    response = await client.post("/api/auth/login", json={"email": "reader@example.com", "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_validation_errors_use_the_envelope(client):
    response = await client.post("/api/auth/register", json={"email": "not-an-email"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_anonymous_view_gets_preview(client, document):
    response = await client.get(f"/api/documents/{document.id}/view")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["x-preview-mode"] == "true"
    assert response.headers["x-free-pages"] == "3"
    assert response.headers["x-total-pages"] == "10"
    assert "no-store" in response.headers["cache-control"]
    assert len(PdfReader(io.BytesIO(response.content)).pages) == 3


@pytest.mark.asyncio
async def test_view_without_free_pages_requires_sign_in(client, db):
    document = await create_document(db, free_pages=0)

    response = await client.get(f"/api/documents/{document.id}/view")

    assert response.status_code == 401
    body = response.json()
    assert body["error"]["code"] == "AUTHENTICATION_REQUIRED"
    assert body["error"]["details"] == {"freePages": 0, "totalPages": 10}


@pytest.mark.asyncio
async def test_signed_in_view_without_license_or_free_pages(client, db, reader):
    document = await create_document(db, free_pages=0)

    response = await client.get(f"/api/documents/{document.id}/view", headers=auth_headers(reader))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "LICENSE_REQUIRED"


@pytest.mark.asyncio
async def test_purchase_review_unlocks_full_document(client, admin, reader, document):
    created = await client.post(
        "/api/purchases",
        json={"documentId": str(document.id), "transactionId": "TX-1001"},
        headers=auth_headers(reader),
    )
    assert created.status_code == 201
    purchase = created.json()["data"]
    assert purchase["status"] == "pending"
    assert purchase["finalAmount"] == 100.0

    approved = await client.patch(
        f"/api/admin/purchases/{purchase['id']}/status",
        json={"status": "approved", "adminNotes": "Payment seen"},
        headers=auth_headers(admin),
    )
    assert approved.status_code == 200
    assert approved.json()["data"]["status"] == "approved"

    access = await client.get(f"/api/documents/{document.id}/access", headers=auth_headers(reader))
    assert access.json()["data"]["tier"] == "full"

    view = await client.get(f"/api/documents/{document.id}/view", headers=auth_headers(reader))
    assert view.status_code == 200
    assert view.headers["x-preview-mode"] == "false"
    assert len(PdfReader(io.BytesIO(view.content)).pages) == 10

    licenses = await client.get("/api/users/me/licenses", headers=auth_headers(reader))
    assert [item["documentId"] for item in licenses.json()["data"]] == [str(document.id)]

    again = await client.post(
        "/api/purchases", json={"documentId": str(document.id)}, headers=auth_headers(reader)
    )
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "ALREADY_ENTITLED"


@pytest.mark.asyncio
async def test_non_admin_is_refused_and_audited(client, db, reader):
    response = await client.get("/api/admin/purchases", headers=auth_headers(reader))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"
    result = await db.execute(select(ActivityLog.action).where(ActivityLog.actor_user_id == reader.id))
    assert result.scalars().all() == ["access_denied"]


@pytest.mark.asyncio
async def test_admin_cannot_promote_through_api(client, admin, reader):
    response = await client.patch(
        f"/api/admin/users/{reader.id}/role", json={"role": "admin"}, headers=auth_headers(admin)
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "INVARIANT_VIOLATION"


@pytest.mark.asyncio
async def test_admin_upload_reads_page_count(client, admin):
    response = await client.post(
        "/api/admin/documents",
        data={"title": "Field Guide", "price": "49.50", "freePages": "2"},
        files={"file": ("guide.pdf", make_pdf(6), "application/pdf")},
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["totalPages"] == 6
    assert data["freePages"] == 2
    assert data["price"] == 49.5


@pytest.mark.asyncio
async def test_upload_rejects_free_pages_beyond_total(client, admin):
    response = await client.post(
        "/api/admin/documents",
        data={"title": "Tiny", "price": "10", "freePages": "5"},
        files={"file": ("tiny.pdf", make_pdf(2), "application/pdf")},
        headers=auth_headers(admin),
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_deleted_document_cannot_be_reactivated(client, admin, document):
    deleted = await client.delete(f"/api/admin/documents/{document.id}", headers=auth_headers(admin))
    assert deleted.status_code == 200

    toggled = await client.patch(f"/api/admin/documents/{document.id}/toggle", headers=auth_headers(admin))

    assert toggled.status_code == 409
    assert toggled.json()["error"]["code"] == "CONFLICT"

    edited = await client.patch(
        f"/api/admin/documents/{document.id}", json={"isActive": True}, headers=auth_headers(admin)
    )
    assert edited.status_code == 409


@pytest.mark.asyncio
async def test_toggle_round_trip_keeps_document_viewable(client, admin, document):
    off = await client.patch(f"/api/admin/documents/{document.id}/toggle", headers=auth_headers(admin))
    on = await client.patch(f"/api/admin/documents/{document.id}/toggle", headers=auth_headers(admin))

    assert off.json()["data"]["isActive"] is False
    assert on.json()["data"]["isActive"] is True
    view = await client.get(f"/api/documents/{document.id}/view")
    assert view.status_code == 200


@pytest.mark.asyncio
async def test_profile_update_endpoint(client, reader):
    payload = {
        "firstName": "Rita",
        "lastName": "Reads",
        "email": "rita@example.com",
        "username": "rita",
        "currentPassword": "wrong-password",
        "newPassword": "brand-new-pass",
    }
    refused = await client.put("/api/users/me/profile", json=payload, headers=auth_headers(reader))
    assert refused.status_code == 400
    assert refused.json()["error"]["code"] == "VALIDATION_ERROR"

    payload["currentPassword"] = "password123"
    response = await client.put("/api/users/me/profile", json=payload, headers=auth_headers(reader))
    assert response.status_code == 200
    assert response.json()["data"]["username"] == "rita"

    login = await client.post("/api/auth/login", json={"email": "rita@example.com", "password": "brand-new-pass"})
    assert login.status_code == 200

    logs = await client.get("/api/users/me/security-logs", headers=auth_headers(reader))
    assert "profile_updated" in [entry["action"] for entry in logs.json()["data"]]
