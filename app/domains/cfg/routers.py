# app/domains/cfg/routers.py

"""
'cfg' 도메인 (설정 네임스페이스/항목)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
관리 API 는 관리자 권한이 필요하고, 단건 조회 API 는 로그인한 사용자면 누구나 사용할 수 있습니다.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import get_session
from app.core import dependencies as deps
from app.domains.usr import models as usr_models

from . import crud as cfg_crud
from . import schemas as cfg_schemas

router = APIRouter(
    tags=["Config Management (설정 관리)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. 네임스페이스 (ConfigNamespace) 엔드포인트
# =============================================================================
@router.get("/namespaces", response_model=List[cfg_schemas.ConfigNamespaceWithCount], summary="네임스페이스 목록 (항목 수 포함)")
async def read_namespaces(
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    rows = await cfg_crud.namespace.get_multi_with_counts(db)
    return [
        cfg_schemas.ConfigNamespaceWithCount.model_validate(ns, from_attributes=True).model_copy(update={"entry_count": count})
        for ns, count in rows
    ]


@router.post("/namespaces", response_model=cfg_schemas.ConfigNamespaceRead, status_code=status.HTTP_201_CREATED, summary="네임스페이스 생성")
async def create_namespace(
    namespace_in: cfg_schemas.ConfigNamespaceCreate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    return await cfg_crud.namespace.create(db, obj_in=namespace_in)


@router.patch("/namespaces/{namespace_id}", response_model=cfg_schemas.ConfigNamespaceRead, summary="네임스페이스 수정")
async def update_namespace(
    namespace_id: int,
    namespace_in: cfg_schemas.ConfigNamespaceUpdate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    db_namespace = await cfg_crud.namespace.get(db, id=namespace_id)
    if not db_namespace:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Namespace not found")
    return await cfg_crud.namespace.update(db, db_obj=db_namespace, obj_in=namespace_in.model_dump(exclude_none=True))


@router.delete("/namespaces/{namespace_id}", status_code=status.HTTP_204_NO_CONTENT, summary="네임스페이스 삭제")
async def delete_namespace(
    namespace_id: int,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    await cfg_crud.namespace.remove(db, id=namespace_id)
    return None


# =============================================================================
# 2. 설정 항목 (ConfigEntry) 엔드포인트
# =============================================================================
@router.get("/namespaces/{namespace_id}/entries", response_model=List[cfg_schemas.ConfigEntryRead], summary="네임스페이스의 항목 목록")
async def read_entries(
    namespace_id: int,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    if not await cfg_crud.namespace.get(db, id=namespace_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Namespace not found")
    return await cfg_crud.entry.get_by_namespace(db, namespace_id=namespace_id)


@router.post(
    "/namespaces/{namespace_id}/entries",
    response_model=cfg_schemas.ConfigEntryRead,
    status_code=status.HTTP_201_CREATED,
    summary="설정 항목 생성",
)
async def create_entry(
    namespace_id: int,
    entry_in: cfg_schemas.ConfigEntryCreate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    if not await cfg_crud.namespace.get(db, id=namespace_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Namespace not found")
    return await cfg_crud.entry.create(
        db, namespace_id=namespace_id, obj_in=entry_in, updated_by_id=current_admin_user.id
    )


@router.patch("/entries/{entry_id}", response_model=cfg_schemas.ConfigEntryRead, summary="설정 항목 수정 (버전 증가)")
async def update_entry(
    entry_id: int,
    entry_in: cfg_schemas.ConfigEntryUpdate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    db_entry = await cfg_crud.entry.get(db, id=entry_id)
    if not db_entry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Entry not found")
    return await cfg_crud.entry.update(db, db_obj=db_entry, obj_in=entry_in, updated_by_id=current_admin_user.id)


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT, summary="설정 항목 삭제")
async def delete_entry(
    entry_id: int,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    if not await cfg_crud.entry.delete(db, id=entry_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Entry not found")
    return None


@router.get("/values/{namespace_key}/{entry_key}", response_model=cfg_schemas.ConfigEntryRead, summary="키로 설정 항목 조회")
async def read_entry_by_key(
    namespace_key: str,
    entry_key: str,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    db_entry = await cfg_crud.entry.get_by_keys(db, namespace_key=namespace_key, entry_key=entry_key)
    if not db_entry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Entry not found")
    return db_entry
