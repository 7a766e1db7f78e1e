import os
from urllib.parse import parse_qs, urlparse

import pytest

import models
from auth_utils import create_document_token
from config import settings
from document_service import SIGNED_FILE_ROUTE, signed_url, storage_path
from tests.factories import make_row, reload


def write_document(relative_path: str, content: bytes = b"front-image") -> None:
    target = os.path.join(settings.DOCUMENT_STORAGE_DIR, relative_path)
    os.makedirs(os.path.dirname(target), exist_ok=True)
    with open(target, "wb") as fh:
        fh.write(content)


def token_of(url: str) -> str:
    return parse_qs(urlparse(url).query)["token"][0]


def test_storage_path_strips_url_prefix():
    assert storage_path("https://cdn.bank.com/documents/7/front.png") == "7/front.png"
    assert storage_path("7/front.png") == "7/front.png"
    assert storage_path(None) is None


def test_external_links_pass_through():
    assert signed_url("https://images.bank.com/id/123.png") == "https://images.bank.com/id/123.png"
    assert signed_url(None) is None
    assert signed_url("7/front.png").startswith(f"http://test{SIGNED_FILE_ROUTE}?token=")


@pytest.mark.asyncio
async def test_list_includes_signed_links(api, db, customer):
    await make_row(db, models.IdentityDocument, user_id=customer.id, document_type="passport", front_path="1/front.png")

    body = (await api.get("/api/admin/documents")).json()
    document = body["documents"][0]
    assert document["user_email"] == "john@x.com"
    assert document["front_url"].startswith(f"http://test{SIGNED_FILE_ROUTE}?token=")
    assert document["back_url"] is None
    assert body["summary"]["pending"] == 1


@pytest.mark.asyncio
async def test_signed_link_serves_the_file(api, anon_api, db, customer):
    write_document("1/front.png", b"\x89PNG-front")
    document = await make_row(db, models.IdentityDocument, user_id=customer.id, front_path="1/front.png")

    urls = (await api.get(f"/api/admin/documents/{document.id}/urls")).json()["documents"]
    response = await anon_api.get(SIGNED_FILE_ROUTE, params={"token": token_of(urls["front"])})
    assert response.status_code == 200
    assert response.content == b"\x89PNG-front"


@pytest.mark.asyncio
async def test_expired_or_foreign_tokens_are_refused(anon_api, admin_token):
    write_document("1/front.png")
    expired = create_document_token("1/front.png", expires_seconds=-10)
    assert (await anon_api.get(SIGNED_FILE_ROUTE, params={"token": expired})).status_code == 404
    # a session token is not a document link
    assert (await anon_api.get(SIGNED_FILE_ROUTE, params={"token": admin_token})).status_code == 404
    traversal = create_document_token("../backoffice.db")
    assert (await anon_api.get(SIGNED_FILE_ROUTE, params={"token": traversal})).status_code == 404


@pytest.mark.asyncio
async def test_document_tokens_cannot_authenticate(anon_api):
    token = create_document_token("1/front.png")
    response = await anon_api.get("/api/admin/documents", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_user_document_urls(api, db, customer):
    assert (await api.get(f"/api/admin/users/{customer.id}/documents/urls")).status_code == 404
    await make_row(db, models.IdentityDocument, user_id=customer.id, front_path="https://images.bank.com/a.png")

    response = await api.get(f"/api/admin/users/{customer.id}/documents/urls")
    assert response.json()["documents"]["front"] == "https://images.bank.com/a.png"


@pytest.mark.asyncio
async def test_verify_and_reject(api, db, admin_user, customer):
    first = await make_row(db, models.IdentityDocument, user_id=customer.id)
    second = await make_row(db, models.IdentityDocument, user_id=customer.id)

    response = await api.post(f"/api/admin/documents/{first.id}/actions", json={"action": "verify"})
    assert response.json()["document"]["status"] == "verified"
    assert response.json()["document"]["verified_by"] == admin_user.id

    response = await api.post(f"/api/admin/documents/{second.id}/actions", json={"action": "reject"})
    assert response.status_code == 400

    response = await api.post(
        f"/api/admin/documents/{second.id}/actions", json={"action": "reject", "reason": "Blurry photo"}
    )
    assert response.status_code == 200
    assert (await reload(models.IdentityDocument, second.id)).rejection_reason == "Blurry photo"

    response = await api.post(f"/api/admin/documents/{first.id}/actions", json={"action": "reject", "reason": "x"})
    assert response.status_code == 400
