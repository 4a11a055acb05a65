# tests/domains/test_shared_n.py

"""
'shared' 도메인 (첨부파일, 폴더, 태그, 공유 토큰) 관련 API 엔드포인트에 대한 통합 테스트 모듈입니다.

- 폴더/태그 생성과 중복 검사.
- 업로드 폼 값 변환(is_public, tag_keys, metadata)과 소유자/관리자 권한 검증.
- 소프트 삭제와 공유 토큰 만료 검증.
"""

import hashlib
import io
import json
from datetime import datetime, timedelta, UTC

import pytest
from fastapi import UploadFile
from httpx import AsyncClient
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.domains.shared import models as shared_models
from app.domains.shared import schemas as shared_schemas
from app.domains.shared import services as shared_services
from app.domains.usr import models as usr_models

API_PREFIX = "/api/v1/shared"


async def upload(client: AsyncClient, content: bytes = b"hello world", filename: str = "hello.txt", **form) -> dict:
    response = await client.post(
        f"{API_PREFIX}/attachments", files={"file": (filename, content, "text/plain")}, data=form
    )
    assert response.status_code == 201, response.text
    return response.json()


async def create_tags(admin_client: AsyncClient, *keys: str) -> None:
    for key in keys:
        response = await admin_client.post(f"{API_PREFIX}/tags", json={"key": key, "name": key.upper()})
        assert response.status_code == 201, response.text


# =============================================================================
# 1. 폴더 / 태그
# =============================================================================
@pytest.mark.asyncio
async def test_create_folders(authorized_client: AsyncClient):
    response = await authorized_client.post(f"{API_PREFIX}/folders", json={"name": "계약서"})
    assert response.status_code == 201
    root = response.json()
    assert root["path"] == "/계약서"
    assert root["parent_id"] is None

    response = await authorized_client.post(f"{API_PREFIX}/folders", json={"name": "2024", "parent_id": str(root["id"])})
    assert response.status_code == 201
    assert response.json()["path"] == "/계약서/2024"

    response = await authorized_client.post(f"{API_PREFIX}/folders", json={"name": "계약서"})
    assert response.status_code == 400

    response = await authorized_client.post(f"{API_PREFIX}/folders", json={"name": "a/b"})
    assert response.status_code == 422

    response = await authorized_client.post(f"{API_PREFIX}/folders", json={"name": "고아", "parent_id": 999999})
    assert response.status_code == 404

    response = await authorized_client.get(f"{API_PREFIX}/folders", params={"parent_id": "null"})
    assert [f["name"] for f in response.json()] == ["계약서"]

    response = await authorized_client.get(f"{API_PREFIX}/folders", params={"parent_id": root["id"]})
    assert [f["name"] for f in response.json()] == ["2024"]


@pytest.mark.asyncio
async def test_create_tags(admin_client: AsyncClient, authorized_client: AsyncClient):
    await create_tags(admin_client, "contract")

    response = await admin_client.post(f"{API_PREFIX}/tags", json={"key": "contract", "name": "중복"})
    assert response.status_code == 400

    response = await authorized_client.post(f"{API_PREFIX}/tags", json={"key": "memo", "name": "메모"})
    assert response.status_code == 403

    response = await authorized_client.get(f"{API_PREFIX}/tags")
    assert [t["key"] for t in response.json()] == ["contract"]


# =============================================================================
# 2. 업로드 / 조회
# =============================================================================
@pytest.mark.asyncio
async def test_upload_attachment_with_form_fields(
    admin_client: AsyncClient, authorized_client: AsyncClient, test_user: usr_models.User
):
    await create_tags(admin_client, "contract", "legal")
    folder = (await authorized_client.post(f"{API_PREFIX}/folders", json={"name": "문서"})).json()

    data = await upload(
        authorized_client,
        name="임대차 계약서",
        folder_id=str(folder["id"]),
        is_public="yes",
        tag_keys="contract, legal,",
        metadata=json.dumps({"year": 2024}),
        description="원본",
    )
    assert data["name"] == "임대차 계약서"
    assert data["original_name"] == "hello.txt"
    assert data["size"] == len(b"hello world")
    assert data["hash"] is not None
    assert data["is_public"] is True
    assert data["meta"] == {"year": 2024}
    assert data["folder"]["path"] == "/문서"
    assert sorted(t["key"] for t in data["tags"]) == ["contract", "legal"]
    assert data["owner"] == {"id": test_user.id, "name": "테스트 사용자", "email": test_user.email, "deleted": False}


@pytest.mark.asyncio
async def test_upload_attachment_defaults_and_errors(authorized_client: AsyncClient):
    data = await upload(authorized_client, is_public="maybe", metadata="[1, 2]")
    assert data["name"] == "hello.txt"
    assert data["is_public"] is False
    assert data["meta"] is None
    assert data["folder"] is None

    response = await authorized_client.post(
        f"{API_PREFIX}/attachments", files={"file": ("a.txt", b"x", "text/plain")}, data={"tag_keys": "unknown"}
    )
    assert response.status_code == 400

    response = await authorized_client.post(
        f"{API_PREFIX}/attachments", files={"file": ("a.txt", b"x", "text/plain")}, data={"folder_id": "999999"}
    )
    assert response.status_code == 404

    response = await authorized_client.post(f"{API_PREFIX}/attachments", files={"file": ("empty.txt", b"", "text/plain")})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_upload_is_written_in_chunks(authorized_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(shared_services, "CHUNK_SIZE", 4)
    content = b"0123456789" * 3
    data = await upload(authorized_client, content=content)
    assert data["size"] == len(content)
    assert data["hash"] == hashlib.sha256(content).hexdigest()

    response = await authorized_client.get(f"{API_PREFIX}/attachments/{data['id']}/download")
    assert response.status_code == 200
    assert response.content == content


@pytest.mark.asyncio
async def test_upload_removes_file_when_record_is_not_saved(
    db_session: AsyncSession, test_user: usr_models.User, monkeypatch, tmp_path
):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))

    async def failing_commit():
        raise SQLAlchemyError("commit failed")

    monkeypatch.setattr(db_session, "commit", failing_commit)
    upload_file = UploadFile(file=io.BytesIO(b"hello world"), filename="hello.txt")
    with pytest.raises(SQLAlchemyError):
        await shared_services.upload_attachment(
            db_session, upload_file=upload_file, form=shared_schemas.AttachmentUploadForm(), owner=test_user
        )
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_admin_list_attachments(admin_client: AsyncClient, authorized_client: AsyncClient):
    await create_tags(admin_client, "invoice")
    await upload(authorized_client, filename="invoice-01.txt", tag_keys="invoice")
    await upload(authorized_client, filename="notes.txt")

    response = await admin_client.get(f"{API_PREFIX}/attachments", params={"tag_keys": "invoice"})
    assert response.status_code == 200
    assert [a["original_name"] for a in response.json()] == ["invoice-01.txt"]

    response = await admin_client.get(f"{API_PREFIX}/attachments", params={"keyword": " NOTES "})
    assert [a["original_name"] for a in response.json()] == ["notes.txt"]

    response = await admin_client.get(f"{API_PREFIX}/attachments", params={"limit": "1.9"})
    assert len(response.json()) == 1

    response = await admin_client.get(f"{API_PREFIX}/attachments", params={"limit": "51"})
    assert response.status_code == 422

    response = await authorized_client.get(f"{API_PREFIX}/attachments")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_search_attachments_visibility(
    client: AsyncClient, authorized_client: AsyncClient, other_client: AsyncClient
):
    await upload(authorized_client, filename="public.txt", is_public="true")
    await upload(authorized_client, filename="private.txt")
    await upload(other_client, filename="others.txt")

    response = await client.get(f"{API_PREFIX}/attachments/search")
    assert [a["original_name"] for a in response.json()] == ["public.txt"]

    response = await authorized_client.get(f"{API_PREFIX}/attachments/search")
    assert sorted(a["original_name"] for a in response.json()) == ["private.txt", "public.txt"]

    response = await authorized_client.get(f"{API_PREFIX}/attachments/search", params={"public_only": "on"})
    assert [a["original_name"] for a in response.json()] == ["public.txt"]

    response = await client.get(f"{API_PREFIX}/attachments/search", params={"limit": "0"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_read_and_download_permissions(authorized_client: AsyncClient, other_client: AsyncClient):
    private = await upload(authorized_client, content=b"secret", filename="secret.txt")
    public = await upload(authorized_client, content=b"open", filename="open.txt", is_public="1")

    response = await other_client.get(f"{API_PREFIX}/attachments/{private['id']}")
    assert response.status_code == 403

    response = await other_client.get(f"{API_PREFIX}/attachments/{public['id']}")
    assert response.status_code == 200

    response = await authorized_client.get(f"{API_PREFIX}/attachments/{private['id']}/download")
    assert response.status_code == 200
    assert response.content == b"secret"

    response = await other_client.get(f"{API_PREFIX}/attachments/{public['id']}/download")
    assert response.content == b"open"

    response = await authorized_client.get(f"{API_PREFIX}/attachments/999999")
    assert response.status_code == 404


# =============================================================================
# 3. 수정 / 삭제
# =============================================================================
@pytest.mark.asyncio
async def test_update_attachment(admin_client: AsyncClient, authorized_client: AsyncClient, other_client: AsyncClient):
    await create_tags(admin_client, "draft", "final")
    folder = (await authorized_client.post(f"{API_PREFIX}/folders", json={"name": "보관함"})).json()
    data = await upload(authorized_client, folder_id=str(folder["id"]), tag_keys="draft")

    response = await other_client.patch(f"{API_PREFIX}/attachments/{data['id']}", json={"name": "탈취"})
    assert response.status_code == 403

    response = await authorized_client.patch(
        f"{API_PREFIX}/attachments/{data['id']}", json={"name": "최종본", "tag_keys": "final", "is_public": "true"}
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["name"] == "최종본"
    assert updated["is_public"] is True
    assert [t["key"] for t in updated["tags"]] == ["final"]
    assert updated["folder"]["id"] == folder["id"]

    # folder_id 를 null 로 보내면 최상위로 이동합니다.
    response = await authorized_client.patch(f"{API_PREFIX}/attachments/{data['id']}", json={"folder_id": "null"})
    assert response.json()["folder"] is None
    assert response.json()["name"] == "최종본"

    # 관리자는 다른 사용자의 첨부파일도 수정할 수 있습니다.
    response = await admin_client.patch(f"{API_PREFIX}/attachments/{data['id']}", json={"description": "관리자 메모"})
    assert response.status_code == 200
    assert response.json()["description"] == "관리자 메모"


@pytest.mark.asyncio
async def test_soft_delete_attachment(admin_client: AsyncClient, authorized_client: AsyncClient, other_client: AsyncClient):
    data = await upload(authorized_client)

    response = await other_client.delete(f"{API_PREFIX}/attachments/{data['id']}")
    assert response.status_code == 403

    response = await authorized_client.delete(f"{API_PREFIX}/attachments/{data['id']}")
    assert response.status_code == 204

    response = await authorized_client.get(f"{API_PREFIX}/attachments/{data['id']}")
    assert response.status_code == 404

    response = await admin_client.get(f"{API_PREFIX}/attachments")
    assert data["id"] not in [a["id"] for a in response.json()]

    response = await admin_client.get(f"{API_PREFIX}/attachments", params={"include_deleted": "true"})
    deleted = [a for a in response.json() if a["id"] == data["id"]]
    assert len(deleted) == 1
    assert deleted[0]["deleted_at"] is not None


# =============================================================================
# 4. 공유 토큰
# =============================================================================
@pytest.mark.asyncio
async def test_share_token(client: AsyncClient, authorized_client: AsyncClient):
    data = await upload(authorized_client, content=b"shared content", filename="shared.txt")

    response = await authorized_client.post(
        f"{API_PREFIX}/attachments/{data['id']}/share-tokens", json={"expires_in_minutes": 30}
    )
    assert response.status_code == 201
    share = response.json()
    assert share["attachment_id"] == data["id"]

    response = await client.get(f"{API_PREFIX}/share/{share['token']}")
    assert response.status_code == 200
    assert response.json()["id"] == data["id"]

    response = await client.get(f"{API_PREFIX}/share/{share['token']}/download")
    assert response.status_code == 200
    assert response.content == b"shared content"

    response = await client.get(f"{API_PREFIX}/share/not-a-token")
    assert response.status_code == 404

    # 첨부파일이 삭제되면 공유 링크도 더 이상 동작하지 않습니다.
    await authorized_client.delete(f"{API_PREFIX}/attachments/{data['id']}")
    response = await client.get(f"{API_PREFIX}/share/{share['token']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_expired_share_token(
    client: AsyncClient, authorized_client: AsyncClient, db_session: AsyncSession, test_user: usr_models.User
):
    data = await upload(authorized_client)
    db_session.add(
        shared_models.AttachmentShareToken(
            attachment_id=data["id"],
            token="expired-token",
            expires_at=datetime.now(UTC) - timedelta(minutes=1),
            created_by_id=test_user.id,
        )
    )
    await db_session.commit()

    response = await client.get(f"{API_PREFIX}/share/expired-token")
    assert response.status_code == 404
