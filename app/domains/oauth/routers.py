# app/domains/oauth/routers.py

"""
'oauth' 도메인의 API 엔드포인트를 정의하는 모듈입니다.

- 공개 API: 제공자 목록, 인가 시작, 콜백, 결과 조회, 연결 해제
- 관리자 API (/admin): 제공자 CRUD, 연결 계정 조회/삭제, 인증 이력 조회, 일별 통계
"""

from typing import List, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.database import get_session
from app.core import dependencies as deps
from app.domains.usr import models as usr_models

from . import crud as oauth_crud
from . import schemas as oauth_schemas
from . import services as oauth_services

router = APIRouter(
    tags=["OAuth (외부 계정 로그인/연결)"],
    responses={404: {"description": "Not found"}},
)


def _with_query(url: str, **params: str) -> str:
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query))
    query.update(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


# =============================================================================
# 1. 공개 인가 흐름 엔드포인트
# =============================================================================
@router.get("/providers", response_model=List[oauth_schemas.OAuthProviderPublic], summary="사용 가능한 제공자 목록")
async def read_enabled_providers(db: AsyncSession = Depends(get_session)):
    return await oauth_crud.provider.get_enabled(db)


@router.post("/providers/{provider_key}/authorize", response_model=oauth_schemas.StartOAuthResponse, summary="인가 흐름 시작")
async def start_authorize(
    provider_key: str,
    request_in: oauth_schemas.StartOAuthRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
    current_user: Optional[usr_models.User] = Depends(deps.get_optional_user),
):
    """
    LOGIN 은 누구나, BIND 는 로그인한 사용자만 시작할 수 있습니다.
    응답의 authorize_url 로 사용자를 보내면 제공자가 callback 으로 돌아옵니다.
    """
    return await oauth_services.start(
        db,
        provider_key=provider_key,
        request_in=request_in,
        user=current_user,
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


@router.get("/providers/{provider_key}/callback", summary="제공자 리다이렉트 콜백")
async def handle_callback(
    provider_key: str,
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    db: AsyncSession = Depends(get_session),
    client: oauth_services.ProviderClient = Depends(oauth_services.get_provider_client),
):
    if not code or not state:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing authorization response")
    redirect_uri, _ = await oauth_services.handle_callback(
        db,
        client,
        provider_key=provider_key,
        state=state,
        code=code,
        ip=request.client.host if request.client else None,
    )
    target = _with_query(redirect_uri or settings.APP_PUBLIC_BASE_URL, provider=provider_key, state=state)
    return RedirectResponse(url=target, status_code=status.HTTP_302_FOUND)


@router.get("/providers/{provider_key}/result", response_model=oauth_schemas.OAuthResultPayload, summary="state 로 결과 조회 (1회)")
async def fetch_result(
    provider_key: str,
    state: Optional[str] = None,
    db: AsyncSession = Depends(get_session),
):
    if not state:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="state is required")
    result = await oauth_services.consume_result(db, state=state)
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Result expired or missing")
    return result


@router.delete("/providers/{provider_key}/bindings", status_code=status.HTTP_204_NO_CONTENT, summary="내 계정 연결 해제")
async def unlink_provider(
    provider_key: str,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    await oauth_services.unlink(db, provider_key=provider_key, user=current_user)
    return None


# =============================================================================
# 2. 관리자 엔드포인트
# =============================================================================
@router.get("/admin/providers", response_model=List[oauth_schemas.OAuthProviderRead], summary="제공자 목록 (관리자)")
async def read_providers(
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    providers = await oauth_crud.provider.get_multi(db)
    return [oauth_services.to_provider_read(p) for p in providers]


@router.post(
    "/admin/providers",
    response_model=oauth_schemas.OAuthProviderRead,
    status_code=status.HTTP_201_CREATED,
    summary="제공자 생성",
)
async def create_provider(
    provider_in: oauth_schemas.OAuthProviderCreate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    db_provider = await oauth_crud.provider.create(db, obj_in=provider_in)
    return oauth_services.to_provider_read(db_provider)


@router.patch("/admin/providers/{provider_id}", response_model=oauth_schemas.OAuthProviderRead, summary="제공자 수정")
async def update_provider(
    provider_id: int,
    provider_in: oauth_schemas.OAuthProviderUpdate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    db_provider = await oauth_crud.provider.get(db, id=provider_id)
    if not db_provider:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Provider not found")
    db_provider = await oauth_crud.provider.update(db, db_obj=db_provider, obj_in=provider_in)
    return oauth_services.to_provider_read(db_provider)


@router.delete("/admin/providers/{provider_id}", status_code=status.HTTP_204_NO_CONTENT, summary="제공자 삭제")
async def delete_provider(
    provider_id: int,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    if not await oauth_crud.provider.delete(db, id=provider_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Provider not found")
    return None


@router.get("/admin/accounts", response_model=oauth_schemas.OAuthAccountPage, summary="연결 계정 목록")
async def read_accounts(
    provider_key: Optional[str] = None,
    email: Optional[str] = None,
    user_id: Optional[str] = None,
    page: Optional[str] = None,
    page_size: Optional[str] = None,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    query = deps.validate_request_model(
        oauth_schemas.OAuthAccountQuery,
        {"provider_key": provider_key, "email": email, "user_id": user_id, "page": page, "page_size": page_size},
    )
    current_page = query.page or 1
    size = query.page_size or 20
    rows, total = await oauth_crud.account.get_page(
        db,
        provider_key=query.provider_key,
        email=query.email,
        user_id=query.user_id,
        page=current_page,
        page_size=size,
    )
    items = [
        oauth_schemas.OAuthAccountRead(
            id=db_account.id,
            provider_key=db_account.provider_key,
            provider_account_id=db_account.provider_account_id,
            user_id=db_account.user_id,
            email=db_account.email,
            display_name=db_account.display_name,
            created_at=db_account.created_at,
            user=oauth_schemas.OAuthAccountUser.model_validate(db_user),
        )
        for db_account, db_user in rows
    ]
    return oauth_schemas.OAuthAccountPage(
        items=items,
        pagination=oauth_schemas.Pagination(
            total=total, page=current_page, page_size=size, page_count=max(-(-total // size), 1)
        ),
    )


@router.delete("/admin/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT, summary="연결 계정 삭제")
async def delete_account(
    account_id: int,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    if not await oauth_crud.account.delete(db, id=account_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return None


@router.get("/admin/logs", response_model=oauth_schemas.OAuthLogPage, summary="인증 이력 목록")
async def read_logs(
    provider_key: Optional[str] = None,
    action: Optional[str] = None,
    log_status: Optional[str] = Query(None, alias="status"),
    user_id: Optional[str] = None,
    search: Optional[str] = None,
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    page: Optional[str] = None,
    page_size: Optional[str] = None,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    query = deps.validate_request_model(
        oauth_schemas.OAuthLogQuery,
        {
            "provider_key": provider_key,
            "action": action,
            "status": log_status,
            "user_id": user_id,
            "search": search,
            "date_from": date_from,
            "date_to": date_to,
            "page": page,
            "page_size": page_size,
        },
    )
    current_page = query.page or 1
    size = query.page_size or 20
    rows, total = await oauth_crud.log.get_page(
        db,
        provider_key=query.provider_key,
        action=query.action,
        log_status=query.status,
        user_id=query.user_id,
        search=query.search,
        date_from=query.date_from,
        date_to=query.date_to,
        page=current_page,
        page_size=size,
    )
    items = [
        oauth_schemas.OAuthLogRead(
            id=db_log.id,
            provider_key=db_log.provider_key,
            provider_type=db_log.provider_type,
            action=db_log.action,
            status=db_log.status,
            user_id=db_log.user_id,
            account_id=db_log.account_id,
            ip=db_log.ip,
            message=db_log.message,
            meta=db_log.meta,
            created_at=db_log.created_at,
            user=oauth_schemas.OAuthAccountUser.model_validate(db_user) if db_user else None,
        )
        for db_log, db_user in rows
    ]
    return oauth_schemas.OAuthLogPage(
        items=items,
        pagination=oauth_schemas.Pagination(
            total=total, page=current_page, page_size=size, page_count=max(-(-total // size), 1)
        ),
    )


@router.get("/admin/stats", response_model=List[oauth_schemas.OAuthStatRow], summary="일별 OAuth 통계")
async def read_stats(
    provider_key: Optional[str] = None,
    days: Optional[str] = None,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    query = deps.validate_request_model(oauth_schemas.OAuthStatsQuery, {"provider_key": provider_key, "days": days})
    return await oauth_crud.log.daily_stats(db, provider_key=query.provider_key, days=query.days or 14)
