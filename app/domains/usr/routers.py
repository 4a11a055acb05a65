# app/domains/usr/routers.py

"""
'usr' 도메인 (사용자 및 초대 코드 관리)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from sqlmodel.ext.asyncio.session import AsyncSession

# 애플리케이션 설정 및 의존성 임포트
from app.core.config import settings
from app.core.database import get_session
from app.core import dependencies as deps
from app.core.security import TOKEN_TYPE_REFRESH, decode_token

# usr 도메인의 CRUD, 모델, 스키마
from . import crud as usr_crud
from . import models as usr_models
from . import schemas as usr_schemas

logger = logging.getLogger(__name__)

# 라우터 인스턴스 생성 (prefix는 main.py에서 관리)
router = APIRouter(
    tags=["User Management (사용자 및 초대 코드 관리)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. 인증 (Authentication) 엔드포인트
# =============================================================================
@router.post("/auth/token", response_model=usr_schemas.Token, summary="Access Token 획득")
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_session),
):
    """
    이메일(username 필드)과 비밀번호로 로그인합니다.
    성공하면 마지막 로그인 시각과 IP 를 기록합니다.
    """
    user = await usr_crud.user.authenticate(db, email=form_data.username, password=form_data.password)
    if not user:
        logger.info("Login failed for %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")

    client_ip = request.client.host if request.client else None
    await usr_crud.user.record_login(db, db_obj=user, ip=client_ip)
    return deps.issue_tokens(user)


@router.post("/auth/refresh", response_model=usr_schemas.Token, summary="Refresh Token 으로 재발급")
async def refresh_access_token(
    refresh_in: usr_schemas.RefreshRequest,
    db: AsyncSession = Depends(get_session),
):
    try:
        user_id = decode_token(refresh_in.refresh_token, expected_type=TOKEN_TYPE_REFRESH)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = await usr_crud.user.get(db, id=user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    return deps.issue_tokens(user)


@router.post("/auth/register", response_model=usr_schemas.UserRead, status_code=status.HTTP_201_CREATED, summary="회원 가입")
async def register(
    register_in: usr_schemas.RegisterRequest,
    db: AsyncSession = Depends(get_session),
):
    """
    자가 회원 가입. INVITE_CODE_REQUIRED 설정이 켜져 있으면 초대 코드가 필요합니다.
    """
    return await usr_crud.register_user(db, obj_in=register_in, invite_required=settings.INVITE_CODE_REQUIRED)


@router.get("/auth/me", response_model=usr_schemas.UserRead, summary="현재 사용자 정보 조회")
async def read_users_me(current_user: usr_models.User = Depends(deps.get_current_active_user)):
    return current_user


@router.patch("/auth/me", response_model=usr_schemas.UserRead, summary="본인 정보 수정")
async def update_users_me(
    user_in: usr_schemas.UserSelfUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await usr_crud.user.update_self(db, db_obj=current_user, obj_in=user_in)


# =============================================================================
# 2. 사용자 (User) 관리 엔드포인트
# =============================================================================
@router.post("/users", response_model=usr_schemas.UserRead, status_code=status.HTTP_201_CREATED, summary="새 사용자 생성")
async def create_user(
    user: usr_schemas.UserCreate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    return await usr_crud.user.create(db, obj_in=user)


@router.get("/users", response_model=List[usr_schemas.UserRead], summary="모든 사용자 조회")
async def read_users(
    db: AsyncSession = Depends(get_session),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """
    모든 사용자 목록을 조회합니다.
    - 관리자(role <= 10)는 모든 사용자를 조회할 수 있습니다.
    - 일반 사용자(role > 10)는 자신의 정보만 조회합니다.
    """
    if current_user.role > usr_models.UserRole.ADMIN:
        return [current_user]
    return await usr_crud.user.get_multi(db, skip=skip, limit=limit)


@router.get("/users/{user_id}", response_model=usr_schemas.UserRead, summary="특정 사용자 조회")
async def read_user(
    user_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """
    ID로 특정 사용자 정보를 조회합니다.
    일반 사용자는 자신의 정보만 조회할 수 있습니다.
    """
    user = await usr_crud.user.get(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if current_user.role > usr_models.UserRole.ADMIN and user.id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions to view other user's information."
        )
    return user


@router.patch("/users/{user_id}", response_model=usr_schemas.UserRead, summary="사용자 업데이트 (관리자)")
async def update_user(
    user_id: int,
    user_in: usr_schemas.UserUpdate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    db_user = await usr_crud.user.get(db, user_id)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return await usr_crud.user.update(db, db_obj=db_user, obj_in=user_in)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="사용자 삭제")
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    """
    ID로 사용자를 삭제합니다. 관리자 권한이 필요하며 자기 자신은 삭제할 수 없습니다.
    사용자가 올린 첨부파일은 업로더 스냅샷과 함께 남습니다.
    """
    await usr_crud.user.remove(db, id=user_id, current_user=current_admin_user)
    return None


# =============================================================================
# 3. 초대 코드 (InviteCode) 관리 엔드포인트
# =============================================================================
@router.post("/invite-codes", response_model=usr_schemas.InviteCodeRead, status_code=status.HTTP_201_CREATED, summary="초대 코드 생성")
async def create_invite_code(
    invite_in: usr_schemas.InviteCodeCreate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    """코드를 지정하지 않으면 무작위 코드를 생성합니다."""
    return await usr_crud.invite_code.create(db, obj_in=invite_in, created_by_id=current_admin_user.id)


@router.get("/invite-codes", response_model=List[usr_schemas.InviteCodeRead], summary="초대 코드 목록")
async def read_invite_codes(
    used: Optional[str] = Query(None, description="true: 사용된 코드, false: 미사용 코드"),
    skip: Optional[str] = None,
    limit: Optional[str] = None,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    query = deps.validate_request_model(usr_schemas.InviteCodeQuery, {"used": used, "skip": skip, "limit": limit})
    return await usr_crud.invite_code.get_list(db, used=query.used, skip=query.skip, limit=query.limit)


@router.delete("/invite-codes/{invite_code_id}", status_code=status.HTTP_204_NO_CONTENT, summary="초대 코드 삭제 (미사용만)")
async def delete_invite_code(
    invite_code_id: int,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    await usr_crud.invite_code.remove(db, id=invite_code_id)
    return None
