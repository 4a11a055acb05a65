# tests/domains/test_cfg_n.py

"""
'cfg' 도메인 (설정 네임스페이스/항목) 관련 API 엔드포인트에 대한 통합 테스트 모듈입니다.
"""

import pytest
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from app.domains.cfg import crud as cfg_crud
from app.domains.usr import models as usr_models

API_PREFIX = "/api/v1/cfg"


async def create_namespace(admin_client: AsyncClient, key: str = "mail", name: str = "메일 설정") -> dict:
    response = await admin_client.post(f"{API_PREFIX}/namespaces", json={"key": key, "name": name})
    assert response.status_code == 201, response.text
    return response.json()


async def create_entry(admin_client: AsyncClient, namespace_id: int, key: str, value) -> dict:
    response = await admin_client.post(f"{API_PREFIX}/namespaces/{namespace_id}/entries", json={"key": key, "value": value})
    assert response.status_code == 201, response.text
    return response.json()


# =============================================================================
# 1. 네임스페이스
# =============================================================================
@pytest.mark.asyncio
async def test_namespace_crud(admin_client: AsyncClient):
    namespace = await create_namespace(admin_client)
    assert namespace["key"] == "mail"

    response = await admin_client.post(f"{API_PREFIX}/namespaces", json={"key": "mail", "name": "중복"})
    assert response.status_code == 400

    response = await admin_client.post(f"{API_PREFIX}/namespaces", json={"key": "Mail Server", "name": "잘못된 키"})
    assert response.status_code == 422

    await create_entry(admin_client, namespace["id"], "smtp.host", "smtp.example.com")
    await create_entry(admin_client, namespace["id"], "smtp.port", "587")

    response = await admin_client.get(f"{API_PREFIX}/namespaces")
    assert response.status_code == 200
    rows = {ns["key"]: ns for ns in response.json()}
    assert rows["mail"]["entry_count"] == 2

    response = await admin_client.patch(f"{API_PREFIX}/namespaces/{namespace['id']}", json={"name": "메일"})
    assert response.status_code == 200
    assert response.json()["name"] == "메일"
    assert response.json()["key"] == "mail"


@pytest.mark.asyncio
async def test_delete_namespace_requires_empty(admin_client: AsyncClient):
    namespace = await create_namespace(admin_client, key="feature")
    entry = await create_entry(admin_client, namespace["id"], "beta", True)

    response = await admin_client.delete(f"{API_PREFIX}/namespaces/{namespace['id']}")
    assert response.status_code == 400

    response = await admin_client.delete(f"{API_PREFIX}/entries/{entry['id']}")
    assert response.status_code == 204

    response = await admin_client.delete(f"{API_PREFIX}/namespaces/{namespace['id']}")
    assert response.status_code == 204

    response = await admin_client.delete(f"{API_PREFIX}/namespaces/{namespace['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_config_requires_admin(authorized_client: AsyncClient):
    response = await authorized_client.get(f"{API_PREFIX}/namespaces")
    assert response.status_code == 403

    response = await authorized_client.post(f"{API_PREFIX}/namespaces", json={"key": "x", "name": "x"})
    assert response.status_code == 403


# =============================================================================
# 2. 설정 항목
# =============================================================================
@pytest.mark.asyncio
async def test_entry_values_are_parsed(admin_client: AsyncClient):
    """문자열 값은 JSON 으로 해석하고, 해석할 수 없으면 trim 된 문자열로 저장합니다."""
    namespace = await create_namespace(admin_client, key="ui")

    assert (await create_entry(admin_client, namespace["id"], "page.size", " 42 "))["value"] == 42
    assert (await create_entry(admin_client, namespace["id"], "theme", "  dark  "))["value"] == "dark"
    assert (await create_entry(admin_client, namespace["id"], "colors", '["red", "blue"]'))["value"] == ["red", "blue"]
    assert (await create_entry(admin_client, namespace["id"], "layout", {"sidebar": True}))["value"] == {"sidebar": True}
    assert (await create_entry(admin_client, namespace["id"], "banner", "   "))["value"] is None

    response = await admin_client.get(f"{API_PREFIX}/namespaces/{namespace['id']}/entries")
    assert [e["key"] for e in response.json()] == ["banner", "colors", "layout", "page.size", "theme"]


@pytest.mark.asyncio
async def test_entry_duplicate_key(admin_client: AsyncClient):
    namespace = await create_namespace(admin_client, key="dup")
    await create_entry(admin_client, namespace["id"], "same", 1)

    response = await admin_client.post(f"{API_PREFIX}/namespaces/{namespace['id']}/entries", json={"key": "same", "value": 2})
    assert response.status_code == 400

    response = await admin_client.post(f"{API_PREFIX}/namespaces/999999/entries", json={"key": "x", "value": 1})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_entry_bumps_version(admin_client: AsyncClient, test_admin_user: usr_models.User):
    namespace = await create_namespace(admin_client, key="limits")
    entry = await create_entry(admin_client, namespace["id"], "upload.max_mb", 10)
    assert entry["version"] == 1

    response = await admin_client.patch(f"{API_PREFIX}/entries/{entry['id']}", json={"value": "20"})
    assert response.status_code == 200
    assert response.json()["value"] == 20
    assert response.json()["version"] == 2
    assert response.json()["updated_by_id"] == test_admin_user.id

    # 설명만 바꾸면 값은 유지됩니다.
    response = await admin_client.patch(f"{API_PREFIX}/entries/{entry['id']}", json={"description": "업로드 한도"})
    assert response.json()["value"] == 20
    assert response.json()["description"] == "업로드 한도"
    assert response.json()["version"] == 3

    response = await admin_client.patch(f"{API_PREFIX}/entries/999999", json={"value": 1})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_read_value_by_key(admin_client: AsyncClient, authorized_client: AsyncClient, client: AsyncClient):
    namespace = await create_namespace(admin_client, key="site")
    await create_entry(admin_client, namespace["id"], "title", "BizAdmin")

    response = await authorized_client.get(f"{API_PREFIX}/values/site/title")
    assert response.status_code == 200
    assert response.json()["value"] == "BizAdmin"

    response = await authorized_client.get(f"{API_PREFIX}/values/site/missing")
    assert response.status_code == 404

    response = await client.get(f"{API_PREFIX}/values/site/title")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_ensure_namespace_is_idempotent(db_session: AsyncSession):
    created = await cfg_crud.namespace.ensure(db_session, key="feature.flags", description="기능 플래그")
    assert created.name == "feature.flags"

    again = await cfg_crud.namespace.ensure(db_session, key="feature.flags", name="다른 이름")
    assert again.id == created.id
    assert again.name == "feature.flags"
