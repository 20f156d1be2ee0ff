"""Documents API tests — upload, fetch, download, update, delete, ownership."""

import json
import uuid

import pytest
from sqlalchemy import select

from conftest import bearer, document_metadata, register, upload
from docshelf.db.models import Document
from docshelf.schemas.document import DocumentCreate
from docshelf.services.auth_service import AuthService
from docshelf.services.document_service import DocumentService


@pytest.mark.asyncio
async def test_upload_document(client, storage):
    token = await register(client)
    doc = await upload(client, token, filename="score.pdf", content=b"hello")

    assert doc["fileName"] == "score.pdf"
    assert doc["fileURL"].startswith("uploads/")
    assert doc["fileURL"].endswith("_score.pdf")
    assert doc["fileType"] == "pdf"
    assert doc["createTime"] == "2024-01-01T12:00:00"
    assert doc["artistName"] == "Artist"
    assert doc["artistNickname"] == "Nick"
    assert doc["compositionName"] == "Composition"
    assert doc["price"] == "9.99"
    assert doc["comment"] is None
    assert doc["isFavorite"] is False
    assert "userId" not in doc

    stored = storage.public_dir / doc["fileURL"]
    assert stored.read_bytes() == b"hello"


@pytest.mark.asyncio
async def test_upload_same_filename_twice_keeps_both(client, storage):
    token = await register(client)
    first = await upload(client, token, content=b"one")
    second = await upload(client, token, content=b"two")

    assert first["fileURL"] != second["fileURL"]
    assert (storage.public_dir / first["fileURL"]).read_bytes() == b"one"
    assert (storage.public_dir / second["fileURL"]).read_bytes() == b"two"


@pytest.mark.asyncio
async def test_upload_with_comment_and_favorite(client):
    token = await register(client)
    doc = await upload(client, token, comment="first draft", isFavorite=True)
    assert doc["comment"] == "first draft"
    assert doc["isFavorite"] is True


@pytest.mark.asyncio
async def test_upload_invalid_json(client):
    token = await register(client)
    r = await client.post(
        "/api/v1/documents",
        headers=bearer(token),
        files={"file": ("score.pdf", b"x", "application/pdf")},
        data={"data": "{not json"},
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_upload_missing_metadata_field(client):
    token = await register(client)
    metadata = document_metadata()
    del metadata["artistName"]
    r = await client.post(
        "/api/v1/documents",
        headers=bearer(token),
        files={"file": ("score.pdf", b"x", "application/pdf")},
        data={"data": json.dumps(metadata)},
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_upload_missing_file(client):
    token = await register(client)
    r = await client.post(
        "/api/v1/documents",
        headers=bearer(token),
        data={"data": json.dumps(document_metadata())},
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_upload_requires_auth(client):
    r = await client.post(
        "/api/v1/documents",
        files={"file": ("score.pdf", b"x", "application/pdf")},
        data={"data": json.dumps(document_metadata())},
    )
    assert r.status_code == 401


# ─── Reading ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_documents_empty(client):
    token = await register(client)
    r = await client.get("/api/v1/documents", headers=bearer(token))
    assert r.status_code == 200
    assert r.json() == []


@pytest.mark.asyncio
async def test_list_documents_only_own(client):
    alice = await register(client, "alice", "alice@x.com", "pw")
    bob = await register(client, "bob", "bob@x.com", "pw")
    a1 = await upload(client, alice)
    a2 = await upload(client, alice)
    await upload(client, bob)

    r = await client.get("/api/v1/documents", headers=bearer(alice))
    assert r.status_code == 200
    assert {d["id"] for d in r.json()} == {a1["id"], a2["id"]}


@pytest.mark.asyncio
async def test_list_documents_requires_auth(client):
    r = await client.get("/api/v1/documents")
    assert r.status_code == 401

    r = await client.get("/api/v1/documents", headers={"Authorization": "Bearer bogus"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_get_document(client):
    token = await register(client)
    doc = await upload(client, token)

    r = await client.get(f"/api/v1/documents/{doc['id']}", headers=bearer(token))
    assert r.status_code == 200
    assert r.json() == doc


@pytest.mark.asyncio
async def test_get_document_not_found(client):
    token = await register(client)
    r = await client.get(f"/api/v1/documents/{uuid.uuid4()}", headers=bearer(token))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_get_document_malformed_id(client):
    token = await register(client)
    r = await client.get("/api/v1/documents/not-a-uuid", headers=bearer(token))
    assert r.status_code == 404


# ─── Ownership ──────────────────────────────────────────


@pytest.mark.asyncio
async def test_foreign_document_looks_missing(client):
    """Another user's document answers exactly like an unknown id."""
    alice = await register(client, "alice", "alice@x.com", "pw")
    bob = await register(client, "bob", "bob@x.com", "pw")
    doc = await upload(client, alice)
    missing = uuid.uuid4()

    requests = [
        ("GET", "/api/v1/documents/{}", None),
        ("GET", "/api/v1/documents/{}/download", None),
        ("PUT", "/api/v1/documents/{}", {"comment": "mine now"}),
        ("DELETE", "/api/v1/documents/{}", None),
    ]
    for method, path, body in requests:
        foreign = await client.request(
            method, path.format(doc["id"]), headers=bearer(bob), json=body
        )
        unknown = await client.request(
            method, path.format(missing), headers=bearer(bob), json=body
        )
        assert foreign.status_code == unknown.status_code == 404
        assert foreign.json() == unknown.json()

    # Alice's document is untouched
    r = await client.get(f"/api/v1/documents/{doc['id']}", headers=bearer(alice))
    assert r.status_code == 200
    assert r.json()["comment"] is None


# ─── Download ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_download_document(client):
    token = await register(client)
    doc = await upload(client, token, filename="score.pdf", content=b"%PDF-1.4 body")

    r = await client.get(
        f"/api/v1/documents/{doc['id']}/download", headers=bearer(token)
    )
    assert r.status_code == 200
    assert r.content == b"%PDF-1.4 body"
    assert "score.pdf" in r.headers["content-disposition"]


@pytest.mark.asyncio
async def test_download_missing_file(client, storage):
    token = await register(client)
    doc = await upload(client, token)
    (storage.public_dir / doc["fileURL"]).unlink()

    r = await client.get(
        f"/api/v1/documents/{doc['id']}/download", headers=bearer(token)
    )
    assert r.status_code == 404
    assert r.json()["detail"] == "Document file not found"


# ─── Update ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_update_comment_only(client):
    token = await register(client)
    doc = await upload(client, token, isFavorite=True)

    r = await client.put(
        f"/api/v1/documents/{doc['id']}",
        headers=bearer(token),
        json={"comment": "x"},
    )
    assert r.status_code == 200
    assert r.json()["comment"] == "x"
    assert r.json()["isFavorite"] is True


@pytest.mark.asyncio
async def test_update_favorite_only(client):
    token = await register(client)
    doc = await upload(client, token, comment="keep me")

    r = await client.put(
        f"/api/v1/documents/{doc['id']}",
        headers=bearer(token),
        json={"isFavorite": True},
    )
    assert r.status_code == 200
    assert r.json()["isFavorite"] is True
    assert r.json()["comment"] == "keep me"

    r = await client.get(f"/api/v1/documents/{doc['id']}", headers=bearer(token))
    assert r.json()["isFavorite"] is True


@pytest.mark.asyncio
async def test_update_ignores_immutable_fields(client):
    token = await register(client)
    doc = await upload(client, token)

    r = await client.put(
        f"/api/v1/documents/{doc['id']}",
        headers=bearer(token),
        json={"price": "0", "artistName": "Someone else"},
    )
    assert r.status_code == 200
    assert r.json()["price"] == "9.99"
    assert r.json()["artistName"] == "Artist"


# ─── Delete ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_delete_document(client, storage):
    token = await register(client)
    doc = await upload(client, token)
    stored = storage.public_dir / doc["fileURL"]
    assert stored.exists()

    r = await client.delete(f"/api/v1/documents/{doc['id']}", headers=bearer(token))
    assert r.status_code == 204
    assert not stored.exists()

    r = await client.get(f"/api/v1/documents/{doc['id']}", headers=bearer(token))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_delete_document_with_missing_file(client, storage):
    """A file already gone from disk doesn't block deleting the row."""
    token = await register(client)
    doc = await upload(client, token)
    (storage.public_dir / doc["fileURL"]).unlink()

    r = await client.delete(f"/api/v1/documents/{doc['id']}", headers=bearer(token))
    assert r.status_code == 204

    r = await client.get("/api/v1/documents", headers=bearer(token))
    assert r.json() == []


@pytest.mark.asyncio
async def test_delete_all_documents(client, storage):
    alice = await register(client, "alice", "alice@x.com", "pw")
    bob = await register(client, "bob", "bob@x.com", "pw")
    a1 = await upload(client, alice)
    a2 = await upload(client, alice)
    b1 = await upload(client, bob)

    r = await client.delete("/api/v1/documents", headers=bearer(alice))
    assert r.status_code == 204

    r = await client.get("/api/v1/documents", headers=bearer(alice))
    assert r.json() == []
    assert not (storage.public_dir / a1["fileURL"]).exists()
    assert not (storage.public_dir / a2["fileURL"]).exists()

    r = await client.get("/api/v1/documents", headers=bearer(bob))
    assert [d["id"] for d in r.json()] == [b1["id"]]
    assert (storage.public_dir / b1["fileURL"]).exists()


@pytest.mark.asyncio
async def test_delete_all_when_empty(client):
    token = await register(client)
    r = await client.delete("/api/v1/documents", headers=bearer(token))
    assert r.status_code == 204


# ─── Long filenames ─────────────────────────────────────


@pytest.mark.asyncio
async def test_upload_long_filename_is_shortened_on_disk(client, storage):
    token = await register(client)
    filename = "a" * 230 + ".pdf"
    doc = await upload(client, token, filename=filename, content=b"long")

    assert doc["fileName"] == filename
    stored = storage.public_dir / doc["fileURL"]
    assert len(stored.name.encode()) <= 255
    assert stored.name.endswith(".pdf")
    assert stored.read_bytes() == b"long"

    r = await client.get(
        f"/api/v1/documents/{doc['id']}/download", headers=bearer(token)
    )
    assert r.status_code == 200
    assert r.content == b"long"


@pytest.mark.asyncio
async def test_upload_rejects_filename_over_column_limit(client, storage):
    token = await register(client)
    r = await client.post(
        "/api/v1/documents",
        headers=bearer(token),
        files={"file": ("b" * 300 + ".pdf", b"x", "application/pdf")},
        data={"data": json.dumps(document_metadata())},
    )
    assert r.status_code == 400
    assert not storage.uploads_dir.exists() or not any(storage.uploads_dir.iterdir())


# ─── Service level ──────────────────────────────────────


@pytest.mark.asyncio
async def test_delete_all_stops_at_first_failure(db_session, sessions, storage, monkeypatch):
    """Rows deleted before a failure stay deleted; the error propagates."""
    user, _ = await AuthService(db_session).register_user("u1", "a@x.com", "p1")
    user_id = user.id
    svc = DocumentService(db_session, storage)
    metadata = DocumentCreate.model_validate(document_metadata())
    for i in range(3):
        await svc.create(user_id, metadata, b"x", f"doc{i}.pdf")
    before = [d.id for d in await svc.list_documents(user_id)]

    real_delete = db_session.delete
    calls = []

    async def flaky_delete(obj):
        calls.append(obj)
        if len(calls) == 2:
            raise RuntimeError("row delete failed")
        await real_delete(obj)

    monkeypatch.setattr(db_session, "delete", flaky_delete)

    with pytest.raises(RuntimeError, match="row delete failed"):
        await svc.delete_all(user_id)
    await db_session.rollback()

    async with sessions() as s:
        remaining = set(
            (await s.execute(select(Document.id).where(Document.user_id == user_id)))
            .scalars()
            .all()
        )
    assert before[0] not in remaining
    assert remaining == {before[1], before[2]}
