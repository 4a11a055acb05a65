# tests/domains/test_auth_n.py

"""
'usr' 도메인 내의 인증 관련 API 엔드포인트(로그인, 토큰 재발급, 회원 가입, 본인 정보)에 대한 통합 테스트 모듈입니다.
"""

import pytest
from httpx import AsyncClient

from app.core.config import settings
from app.core.security import create_access_token
from app.domains.usr import models as usr_models

API_PREFIX = "/api/v1/usr"


async def login(client: AsyncClient, email: str, password: str):
    return await client.post(f"{API_PREFIX}/auth/token", data={"username": email, "password": password})


# =============================================================================
# 1. 로그인 / 토큰
# =============================================================================
@pytest.mark.asyncio
async def test_login_for_access_token_success(client: AsyncClient, test_user: usr_models.User):
    """
    올바른 이메일과 비밀번호로 로그인하여 토큰 쌍을 발급받고, 로그인 기록이 남는지 테스트합니다.
    """
    response = await login(client, test_user.email, "testpass123")
    assert response.status_code == 200
    tokens = response.json()
    assert tokens["token_type"] == "bearer"
    assert tokens["access_token"]
    assert tokens["refresh_token"]

    response = await client.get(f"{API_PREFIX}/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert response.status_code == 200
    me = response.json()
    assert me["email"] == test_user.email
    assert me["last_login_at"] is not None
    assert me["last_login_ip"] is not None
    assert "password_hash" not in me


@pytest.mark.asyncio
async def test_login_email_is_case_insensitive(client: AsyncClient, test_user: usr_models.User):
    response = await login(client, "  TestUser@Example.COM ", "testpass123")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, test_user: usr_models.User):
    response = await login(client, test_user.email, "wrongpassword")
    assert response.status_code == 401
    assert response.json()["detail"] == "Incorrect email or password"


@pytest.mark.asyncio
async def test_login_unknown_user(client: AsyncClient):
    response = await login(client, "nobody@example.com", "whatever123")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_inactive_user(client: AsyncClient, user_factory):
    await user_factory("inactive@example.com", "inactivepass123", is_active=False)
    response = await login(client, "inactive@example.com", "inactivepass123")
    assert response.status_code == 400
    assert response.json()["detail"] == "Inactive user"


@pytest.mark.asyncio
async def test_refresh_token(client: AsyncClient, test_user: usr_models.User):
    tokens = (await login(client, test_user.email, "testpass123")).json()

    response = await client.post(f"{API_PREFIX}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200
    assert response.json()["access_token"]

    # access token 으로는 재발급할 수 없습니다.
    response = await client.post(f"{API_PREFIX}/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert response.status_code == 401

    response = await client.post(f"{API_PREFIX}/auth/refresh", json={"refresh_token": "not-a-token"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_protected_endpoint_requires_valid_token(client: AsyncClient):
    response = await client.get(f"{API_PREFIX}/auth/me")
    assert response.status_code == 401

    response = await client.get(f"{API_PREFIX}/auth/me", headers={"Authorization": "Bearer invalid"})
    assert response.status_code == 401

    # 존재하지 않는 사용자의 토큰
    token = create_access_token({"sub": "999999"})
    response = await client.get(f"{API_PREFIX}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


# =============================================================================
# 2. 회원 가입 / 초대 코드
# =============================================================================
@pytest.mark.asyncio
async def test_register_without_invite(client: AsyncClient):
    payload = {"email": "New.User@Example.com", "name": "신규", "password": "newuserpass1"}
    response = await client.post(f"{API_PREFIX}/auth/register", json=payload)
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["email"] == "new.user@example.com"
    assert data["role"] == usr_models.UserRole.GENERAL_USER
    assert data["join_date"] is not None

    response = await client.post(f"{API_PREFIX}/auth/register", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already registered"

    response = await login(client, "new.user@example.com", "newuserpass1")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_register_with_invite_code(client: AsyncClient, admin_client: AsyncClient):
    response = await admin_client.post(f"{API_PREFIX}/invite-codes", json={"code": "WELCOME-2024", "note": "신규 입사자"})
    assert response.status_code == 201
    invite = response.json()
    assert invite["is_used"] is False

    response = await client.post(
        f"{API_PREFIX}/auth/register",
        json={"email": "invited@example.com", "password": "invitedpass1", "invite_code": "WELCOME-2024"},
    )
    assert response.status_code == 201
    user_id = response.json()["id"]

    response = await admin_client.get(f"{API_PREFIX}/invite-codes", params={"used": "true"})
    used = [i for i in response.json() if i["id"] == invite["id"]]
    assert len(used) == 1
    assert used[0]["used_by_id"] == user_id
    assert used[0]["used_at"] is not None
    assert used[0]["is_used"] is True

    # 같은 코드는 다시 사용할 수 없고, 실패한 가입은 사용자를 남기지 않습니다.
    response = await client.post(
        f"{API_PREFIX}/auth/register",
        json={"email": "second@example.com", "password": "secondpass1", "invite_code": "WELCOME-2024"},
    )
    assert response.status_code == 409
    response = await login(client, "second@example.com", "secondpass1")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_register_with_unknown_invite_code(client: AsyncClient):
    response = await client.post(
        f"{API_PREFIX}/auth/register",
        json={"email": "ghost@example.com", "password": "ghostpass12", "invite_code": "NO-SUCH-CODE"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid invite code"


@pytest.mark.asyncio
async def test_register_invite_required(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "INVITE_CODE_REQUIRED", True)
    response = await client.post(
        f"{API_PREFIX}/auth/register",
        json={"email": "noinvite@example.com", "password": "noinvite123", "invite_code": "   "},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invite code is required"


# =============================================================================
# 3. 본인 정보 수정
# =============================================================================
@pytest.mark.asyncio
async def test_update_me_name(authorized_client: AsyncClient):
    response = await authorized_client.patch(f"{API_PREFIX}/auth/me", json={"name": "테스트 사용자"})
    assert response.status_code == 200
    assert response.json()["name_changed_at"] is None

    response = await authorized_client.patch(f"{API_PREFIX}/auth/me", json={"name": "  새 이름 "})
    assert response.status_code == 200
    assert response.json()["name"] == "새 이름"
    assert response.json()["name_changed_at"] is not None


@pytest.mark.asyncio
async def test_update_me_password(authorized_client: AsyncClient, client: AsyncClient, test_user: usr_models.User):
    response = await authorized_client.patch(
        f"{API_PREFIX}/auth/me", json={"current_password": "wrongpass", "new_password": "changedpass1"}
    )
    assert response.status_code == 400

    response = await authorized_client.patch(
        f"{API_PREFIX}/auth/me", json={"current_password": "testpass123", "new_password": "changedpass1"}
    )
    assert response.status_code == 200

    assert (await login(client, test_user.email, "testpass123")).status_code == 401
    assert (await login(client, test_user.email, "changedpass1")).status_code == 200
