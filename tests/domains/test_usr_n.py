# tests/domains/test_usr_n.py

"""
'usr' 도메인 (사용자 및 초대 코드 관리) 관련 API 엔드포인트에 대한 통합 테스트 모듈입니다.
"""

import pytest
from httpx import AsyncClient

from fastapi import status
from pydantic import ValidationError

from app.domains.usr import crud as usr_crud
from app.domains.usr import models as usr_models
from app.domains.usr import schemas as usr_schemas

API_PREFIX = "/api/v1/usr"


# =============================================================================
# 1. 사용자 (User) 관리 엔드포인트 테스트
# =============================================================================
@pytest.mark.asyncio
async def test_create_user_success_admin(admin_client: AsyncClient):
    """
    관리자 권한으로 새로운 사용자를 성공적으로 생성하는지 테스트합니다.
    """
    user_data = {
        "email": "Created@Example.com",
        "name": "생성된 사용자",
        "password": "createdpass1",
        "role": usr_models.UserRole.REGISTRY_OFFICER,
    }
    response = await admin_client.post(f"{API_PREFIX}/users", json=user_data)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    created = response.json()
    assert created["email"] == "created@example.com"
    assert created["role"] == usr_models.UserRole.REGISTRY_OFFICER
    assert "password" not in created
    assert "password_hash" not in created

    response = await admin_client.post(f"{API_PREFIX}/users", json=user_data)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Email already registered"


@pytest.mark.asyncio
async def test_create_user_forbidden_for_general_user(authorized_client: AsyncClient):
    response = await authorized_client.post(
        f"{API_PREFIX}/users", json={"email": "x@example.com", "password": "password123"}
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
async def test_create_user_short_password(admin_client: AsyncClient):
    response = await admin_client.post(f"{API_PREFIX}/users", json={"email": "short@example.com", "password": "short"})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_read_users_by_role(
    admin_client: AsyncClient,
    authorized_client: AsyncClient,
    test_user: usr_models.User,
    test_admin_user: usr_models.User,
):
    """관리자는 모든 사용자를, 일반 사용자는 자기 자신만 조회합니다."""
    response = await admin_client.get(f"{API_PREFIX}/users")
    assert response.status_code == 200
    emails = {u["email"] for u in response.json()}
    assert {test_user.email, test_admin_user.email} <= emails

    response = await authorized_client.get(f"{API_PREFIX}/users")
    assert response.status_code == 200
    assert [u["id"] for u in response.json()] == [test_user.id]


@pytest.mark.asyncio
async def test_read_user_by_id_permissions(
    authorized_client: AsyncClient,
    admin_client: AsyncClient,
    test_user: usr_models.User,
    test_other_user: usr_models.User,
):
    response = await authorized_client.get(f"{API_PREFIX}/users/{test_user.id}")
    assert response.status_code == 200

    response = await authorized_client.get(f"{API_PREFIX}/users/{test_other_user.id}")
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await admin_client.get(f"{API_PREFIX}/users/{test_other_user.id}")
    assert response.status_code == 200
    assert response.json()["email"] == test_other_user.email

    response = await admin_client.get(f"{API_PREFIX}/users/999999")
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_update_user_admin(
    admin_client: AsyncClient,
    test_user: usr_models.User,
    test_other_user: usr_models.User,
):
    response = await admin_client.patch(
        f"{API_PREFIX}/users/{test_user.id}", json={"name": "이름 변경", "role": usr_models.UserRole.REGISTRY_OFFICER}
    )
    assert response.status_code == 200
    assert response.json()["name"] == "이름 변경"
    assert response.json()["name_changed_at"] is not None
    assert response.json()["role"] == usr_models.UserRole.REGISTRY_OFFICER

    response = await admin_client.patch(f"{API_PREFIX}/users/{test_user.id}", json={"email": test_other_user.email})
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = await admin_client.patch(f"{API_PREFIX}/users/999999", json={"name": "없음"})
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_delete_user_rules(
    admin_client: AsyncClient,
    user_factory,
    test_admin_user: usr_models.User,
    test_other_user: usr_models.User,
):
    response = await admin_client.delete(f"{API_PREFIX}/users/{test_admin_user.id}")
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    superuser = await user_factory("root@example.com", "rootpass1234", role=usr_models.UserRole.SUPERUSER)
    response = await admin_client.delete(f"{API_PREFIX}/users/{superuser.id}")
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await admin_client.delete(f"{API_PREFIX}/users/999999")
    assert response.status_code == status.HTTP_404_NOT_FOUND

    other_id = test_other_user.id
    response = await admin_client.delete(f"{API_PREFIX}/users/{other_id}")
    assert response.status_code == status.HTTP_204_NO_CONTENT

    response = await admin_client.get(f"{API_PREFIX}/users/{other_id}")
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_deleted_uploader_keeps_attachment_snapshot(
    admin_client: AsyncClient,
    other_client: AsyncClient,
    test_other_user: usr_models.User,
):
    """
    업로더가 삭제되어도 첨부파일은 남고, 업로드 당시의 이름/이메일 스냅샷으로 출처를 보여줍니다.
    """
    response = await other_client.post(
        "/api/v1/shared/attachments",
        files={"file": ("report.txt", b"quarterly report", "text/plain")},
    )
    assert response.status_code == 201, response.text
    attachment = response.json()
    assert attachment["owner"]["id"] == test_other_user.id
    assert attachment["owner"]["deleted"] is False

    response = await admin_client.delete(f"{API_PREFIX}/users/{test_other_user.id}")
    assert response.status_code == status.HTTP_204_NO_CONTENT

    response = await admin_client.get(f"/api/v1/shared/attachments/{attachment['id']}")
    assert response.status_code == 200
    owner = response.json()["owner"]
    assert owner["id"] is None
    assert owner["deleted"] is True
    assert owner["name"] == "다른 사용자"
    assert owner["email"] == "other@example.com"


# =============================================================================
# 2. 초대 코드 (InviteCode) 관리 엔드포인트 테스트
# =============================================================================
@pytest.mark.asyncio
async def test_create_invite_code_generated(admin_client: AsyncClient, test_admin_user: usr_models.User):
    response = await admin_client.post(f"{API_PREFIX}/invite-codes", json={"note": "자동 생성"})
    assert response.status_code == status.HTTP_201_CREATED
    invite = response.json()
    assert len(invite["code"]) == usr_crud.INVITE_CODE_LENGTH
    assert set(invite["code"]) <= set(usr_crud.INVITE_CODE_ALPHABET)
    assert invite["created_by_id"] == test_admin_user.id
    assert invite["used_at"] is None

    response = await admin_client.post(f"{API_PREFIX}/invite-codes", json={"code": invite["code"]})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.parametrize("code", ["short", "has space!", "x" * 65])
def test_invite_code_create_rejects_bad_codes(code):
    with pytest.raises(ValidationError):
        usr_schemas.InviteCodeCreate(code=code)


def test_invite_code_create_accepts_custom_code():
    assert usr_schemas.InviteCodeCreate(code="TEAM_2024-a").code == "TEAM_2024-a"
    assert usr_schemas.InviteCodeCreate().code is None


@pytest.mark.asyncio
async def test_list_invite_codes_filter(admin_client: AsyncClient, client: AsyncClient):
    await admin_client.post(f"{API_PREFIX}/invite-codes", json={"code": "UNUSED-001"})
    await admin_client.post(f"{API_PREFIX}/invite-codes", json={"code": "USED-0001"})
    await client.post(
        f"{API_PREFIX}/auth/register",
        json={"email": "joiner@example.com", "password": "joinerpass1", "invite_code": "USED-0001"},
    )

    response = await admin_client.get(f"{API_PREFIX}/invite-codes", params={"used": "false"})
    assert [i["code"] for i in response.json()] == ["UNUSED-001"]

    response = await admin_client.get(f"{API_PREFIX}/invite-codes", params={"used": "yes"})
    assert [i["code"] for i in response.json()] == ["USED-0001"]

    response = await admin_client.get(f"{API_PREFIX}/invite-codes")
    assert [i["code"] for i in response.json()] == ["USED-0001", "UNUSED-001"]

    response = await admin_client.get(f"{API_PREFIX}/invite-codes", params={"limit": "abc"})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_delete_invite_code(admin_client: AsyncClient, client: AsyncClient):
    unused = (await admin_client.post(f"{API_PREFIX}/invite-codes", json={"code": "DELETE-ME"})).json()
    used = (await admin_client.post(f"{API_PREFIX}/invite-codes", json={"code": "KEEP-ME-1"})).json()
    await client.post(
        f"{API_PREFIX}/auth/register",
        json={"email": "keeper@example.com", "password": "keeperpass1", "invite_code": "KEEP-ME-1"},
    )

    response = await admin_client.delete(f"{API_PREFIX}/invite-codes/{unused['id']}")
    assert response.status_code == status.HTTP_204_NO_CONTENT

    response = await admin_client.delete(f"{API_PREFIX}/invite-codes/{used['id']}")
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = await admin_client.delete(f"{API_PREFIX}/invite-codes/999999")
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_invite_codes_require_admin(authorized_client: AsyncClient):
    response = await authorized_client.get(f"{API_PREFIX}/invite-codes")
    assert response.status_code == status.HTTP_403_FORBIDDEN
