# tests/domains/test_wf_n.py

"""
'wf' 도메인 (워크플로 정의/인스턴스) 관리자 API 통합 테스트 모듈입니다.
"""

import pytest
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from app.domains.usr import models as usr_models
from app.domains.wf import services as wf_services

API_PREFIX = "/api/v1/wf"
CODE = "test.document"


def document_definition(**overrides) -> dict:
    definition = {
        "code": CODE,
        "name": "문서 발행",
        "category": "test",
        "states": ["draft", "submitted", "published"],
        "initial_state": "draft",
        "config": {
            "states": {
                "draft": {"label": "작성 중", "actions": [{"key": "submit", "to": "submitted", "roles": ["ADMIN"]}]},
                "submitted": {
                    "label": "제출됨",
                    "actions": [
                        {"key": "publish", "to": "published", "roles": ["ADMIN"]},
                        {"key": "return", "to": "draft", "roles": ["ADMIN"]},
                    ],
                },
                "published": {"label": "발행됨", "final": True},
            }
        },
    }
    definition.update(overrides)
    return definition


async def create_instance(db_session: AsyncSession, user: usr_models.User) -> int:
    db_instance = await wf_services.create_instance(
        db_session, definition_code=CODE, target_type="document", target_id=1, created_by_id=user.id, commit=True
    )
    return db_instance.id


# =============================================================================
# 1. 정의 관리
# =============================================================================
@pytest.mark.asyncio
async def test_upsert_and_read_definition(admin_client: AsyncClient):
    response = await admin_client.put(f"{API_PREFIX}/definitions", json=document_definition())
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["code"] == CODE
    assert data["states"] == ["draft", "submitted", "published"]
    assert data["config"]["states"]["published"]["final"] is True

    # 같은 코드로 다시 보내면 갱신됩니다.
    response = await admin_client.put(f"{API_PREFIX}/definitions", json=document_definition(name="문서 발행 v2"))
    assert response.status_code == 200
    assert response.json()["id"] == data["id"]
    assert response.json()["name"] == "문서 발행 v2"

    response = await admin_client.get(f"{API_PREFIX}/definitions", params={"category": "test"})
    assert [d["code"] for d in response.json()] == [CODE]

    response = await admin_client.get(f"{API_PREFIX}/definitions/{CODE}")
    assert response.status_code == 200

    response = await admin_client.get(f"{API_PREFIX}/definitions/no.such.code")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_upsert_invalid_definition(admin_client: AsyncClient):
    response = await admin_client.put(f"{API_PREFIX}/definitions", json=document_definition(initial_state="missing"))
    assert response.status_code == 400

    response = await admin_client.put(f"{API_PREFIX}/definitions", json=document_definition(code="Bad Code"))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_definitions_require_admin(authorized_client: AsyncClient):
    response = await authorized_client.get(f"{API_PREFIX}/definitions")
    assert response.status_code == 403

    response = await authorized_client.put(f"{API_PREFIX}/definitions", json=document_definition())
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_upsert_refuses_removed_state_with_instances(
    admin_client: AsyncClient, db_session: AsyncSession, test_admin_user: usr_models.User
):
    await admin_client.put(f"{API_PREFIX}/definitions", json=document_definition())
    await create_instance(db_session, test_admin_user)

    shrunk = document_definition(
        states=["submitted", "published"],
        initial_state="submitted",
        config={"states": {"published": {"final": True}}},
    )
    response = await admin_client.put(f"{API_PREFIX}/definitions", json=shrunk)
    assert response.status_code == 409


# =============================================================================
# 2. 인스턴스 전이
# =============================================================================
@pytest.mark.asyncio
async def test_instance_transitions(admin_client: AsyncClient, db_session: AsyncSession, test_admin_user: usr_models.User):
    await admin_client.put(f"{API_PREFIX}/definitions", json=document_definition())
    instance_id = await create_instance(db_session, test_admin_user)

    response = await admin_client.get(f"{API_PREFIX}/instances/{instance_id}")
    assert response.status_code == 200
    assert response.json()["current_state"] == "draft"
    assert [a["key"] for a in response.json()["available_actions"]] == ["submit"]

    response = await admin_client.post(
        f"{API_PREFIX}/instances/{instance_id}/actions", json={"action": "submit", "comment": "검토 요청"}
    )
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["current_state"] == "submitted"
    assert data["status"] == "ACTIVE"
    assert [a["key"] for a in data["available_actions"]] == ["publish", "return"]
    assert len(data["history"]) == 1
    assert data["history"][0]["from_state"] == "draft"
    assert data["history"][0]["to_state"] == "submitted"
    assert data["history"][0]["actor_id"] == test_admin_user.id
    assert data["history"][0]["comment"] == "검토 요청"

    response = await admin_client.post(f"{API_PREFIX}/instances/{instance_id}/actions", json={"action": "publish"})
    data = response.json()
    assert data["current_state"] == "published"
    assert data["status"] == "COMPLETED"
    assert data["completed_at"] is not None
    assert data["available_actions"] == []

    # 종료된 인스턴스에는 더 이상 전이할 수 없습니다.
    response = await admin_client.post(f"{API_PREFIX}/instances/{instance_id}/actions", json={"action": "return"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_instance_transition_errors(admin_client: AsyncClient, db_session: AsyncSession, test_admin_user: usr_models.User):
    await admin_client.put(f"{API_PREFIX}/definitions", json=document_definition())
    instance_id = await create_instance(db_session, test_admin_user)

    response = await admin_client.post(f"{API_PREFIX}/instances/{instance_id}/actions", json={"action": "publish"})
    assert response.status_code == 400

    response = await admin_client.post(
        f"{API_PREFIX}/instances/{instance_id}/actions", json={"action": "submit", "expected_state": "submitted"}
    )
    assert response.status_code == 409

    response = await admin_client.post(f"{API_PREFIX}/instances/999999/actions", json={"action": "submit"})
    assert response.status_code == 404


# =============================================================================
# 3. 상태 폐기
# =============================================================================
@pytest.mark.asyncio
async def test_retire_state_migrates_instances(
    admin_client: AsyncClient, db_session: AsyncSession, test_admin_user: usr_models.User
):
    await admin_client.put(f"{API_PREFIX}/definitions", json=document_definition())
    instance_id = await create_instance(db_session, test_admin_user)
    await admin_client.post(f"{API_PREFIX}/instances/{instance_id}/actions", json={"action": "submit"})

    response = await admin_client.post(
        f"{API_PREFIX}/definitions/{CODE}/retire-state", json={"state": "submitted", "successor": "published"}
    )
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["migrated_instance_ids"] == [instance_id]
    assert data["definition"]["states"] == ["draft", "published"]
    assert "submitted" not in data["definition"]["config"]["states"]
    # 폐기된 상태로 향하던 액션은 후속 상태를 가리킵니다.
    assert data["definition"]["config"]["states"]["draft"]["actions"][0]["to"] == "published"

    response = await admin_client.get(f"{API_PREFIX}/instances/{instance_id}")
    assert response.json()["current_state"] == "published"
    assert response.json()["status"] == "COMPLETED"


@pytest.mark.asyncio
async def test_retire_final_state_reopens_instances(
    admin_client: AsyncClient, db_session: AsyncSession, test_admin_user: usr_models.User
):
    await admin_client.put(f"{API_PREFIX}/definitions", json=document_definition())
    instance_id = await create_instance(db_session, test_admin_user)
    await admin_client.post(f"{API_PREFIX}/instances/{instance_id}/actions", json={"action": "submit"})
    response = await admin_client.post(f"{API_PREFIX}/instances/{instance_id}/actions", json={"action": "publish"})
    assert response.json()["status"] == "COMPLETED"

    response = await admin_client.post(
        f"{API_PREFIX}/definitions/{CODE}/retire-state", json={"state": "published", "successor": "submitted"}
    )
    assert response.status_code == 200, response.text
    assert response.json()["migrated_instance_ids"] == [instance_id]

    response = await admin_client.get(f"{API_PREFIX}/instances/{instance_id}")
    data = response.json()
    assert data["current_state"] == "submitted"
    assert data["status"] == "ACTIVE"
    assert data["completed_at"] is None

    # 다시 열린 인스턴스는 전이할 수 있습니다.
    response = await admin_client.post(f"{API_PREFIX}/instances/{instance_id}/actions", json={"action": "return"})
    assert response.status_code == 200, response.text
    assert response.json()["current_state"] == "draft"


@pytest.mark.asyncio
async def test_retire_state_errors(admin_client: AsyncClient):
    await admin_client.put(f"{API_PREFIX}/definitions", json=document_definition())

    response = await admin_client.post(
        f"{API_PREFIX}/definitions/{CODE}/retire-state", json={"state": "unknown", "successor": "draft"}
    )
    assert response.status_code == 400

    response = await admin_client.post(
        f"{API_PREFIX}/definitions/{CODE}/retire-state", json={"state": "draft", "successor": "draft"}
    )
    assert response.status_code == 400

    response = await admin_client.post(
        f"{API_PREFIX}/definitions/no.such.code/retire-state", json={"state": "draft", "successor": "published"}
    )
    assert response.status_code == 404
