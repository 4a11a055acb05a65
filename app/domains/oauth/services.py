# app/domains/oauth/services.py

"""
'oauth' 도메인의 비즈니스 로직을 담당하는 모듈입니다.

- state 저장소: 인가 요청마다 무작위 state 를 DB(oauth.oauth_states)에 TTL 과 함께 저장합니다.
  생성 -> 조회(peek) -> 1회 소비(consume) -> 결과 저장 -> 결과 1회 소비(행 삭제) 순서로 사용됩니다.
- ProviderClient: httpx 로 토큰 교환과 프로필 조회를 수행합니다.
- 인가 흐름: start / handle_callback / consume_result / unlink
"""

import logging
import secrets
import string
from datetime import datetime, timedelta, UTC
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

import httpx
from fastapi import HTTPException, status
from sqlalchemy import delete, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app import API_PREFIX
from app.core.config import settings
from app.core.security import issue_tokens
from app.domains.usr import models as usr_models
from app.domains.usr import crud as usr_crud
from . import crud as oauth_crud
from . import models as oauth_models
from . import schemas as oauth_schemas

logger = logging.getLogger(__name__)

STATE_LENGTH = 64
STATE_ALPHABET = string.ascii_lowercase + string.digits

DEFAULT_AUTHORIZE_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/authorize"
DEFAULT_TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
DEFAULT_GRAPH_USER_URL = "https://graph.microsoft.com/v1.0/me"
DEFAULT_SCOPES = ["openid", "profile", "email", "offline_access", "User.Read"]


# =============================================================================
# 1. state 저장소
# =============================================================================
def generate_state() -> str:
    return "".join(secrets.choice(STATE_ALPHABET) for _ in range(STATE_LENGTH))


def _ttl_deadline() -> datetime:
    return datetime.now(UTC) + timedelta(minutes=settings.OAUTH_STATE_TTL_MINUTES)


async def create_state(db: AsyncSession, *, payload: oauth_schemas.OAuthStatePayload) -> str:
    """state 를 만들어 저장합니다 (커밋은 호출자가 담당)."""
    state = generate_state()
    db.add(oauth_models.OAuthState(state=state, payload=payload.model_dump(mode="json"), expires_at=_ttl_deadline()))
    await db.flush()
    logger.debug("OAuth state created for provider %s (%s)", payload.provider_key, payload.mode.value)
    return state


async def peek_state(db: AsyncSession, *, state: str) -> Optional[oauth_models.OAuthState]:
    """만료되지 않은 state 를 변경 없이 조회합니다."""
    if not state:
        return None
    query = select(oauth_models.OAuthState).where(
        oauth_models.OAuthState.state == state,
        oauth_models.OAuthState.expires_at > datetime.now(UTC),
    )
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def consume_state(db: AsyncSession, *, state: str) -> Optional[oauth_schemas.OAuthStatePayload]:
    """
    state 를 한 번만 소비합니다. 이미 소비되었거나 만료되었으면 None.
    소비 후 결과 보관을 위해 만료 시각을 연장합니다.
    """
    if not state:
        return None
    now = datetime.now(UTC)
    statement = (
        update(oauth_models.OAuthState)
        .where(
            oauth_models.OAuthState.state == state,
            oauth_models.OAuthState.consumed_at.is_(None),
            oauth_models.OAuthState.expires_at > now,
        )
        .values(consumed_at=now, expires_at=_ttl_deadline())
        .returning(oauth_models.OAuthState.payload)
    )
    payload = (await db.execute(statement)).scalar_one_or_none()
    if payload is None:
        return None
    return oauth_schemas.OAuthStatePayload.model_validate(payload)


async def store_result(db: AsyncSession, *, state: str, result: oauth_schemas.OAuthResultPayload) -> bool:
    statement = (
        update(oauth_models.OAuthState)
        .where(oauth_models.OAuthState.state == state, oauth_models.OAuthState.expires_at > datetime.now(UTC))
        .values(result=result.model_dump(mode="json"), expires_at=_ttl_deadline())
    )
    return ((await db.execute(statement)).rowcount or 0) > 0


async def consume_result(db: AsyncSession, *, state: str) -> Optional[oauth_schemas.OAuthResultPayload]:
    """
    저장된 결과를 한 번만 반환하고 state 행을 삭제합니다.
    결과가 아직 없으면 행을 남겨 두고 None 을 반환합니다.
    """
    if not state:
        return None
    statement = (
        delete(oauth_models.OAuthState)
        .where(
            oauth_models.OAuthState.state == state,
            oauth_models.OAuthState.result.is_not(None),
            oauth_models.OAuthState.expires_at > datetime.now(UTC),
        )
        .returning(oauth_models.OAuthState.result)
    )
    stored = (await db.execute(statement)).scalar_one_or_none()
    await db.commit()
    if stored is None:
        return None
    return oauth_schemas.OAuthResultPayload.model_validate(stored)


async def cleanup_expired_states(db: AsyncSession) -> int:
    statement = delete(oauth_models.OAuthState).where(oauth_models.OAuthState.expires_at < datetime.now(UTC))
    return (await db.execute(statement)).rowcount or 0


# =============================================================================
# 2. 제공자 설정 / HTTP 클라이언트
# =============================================================================
def load_provider_settings(provider: oauth_models.OAuthProvider) -> oauth_schemas.OAuthProviderSettings:
    return oauth_schemas.OAuthProviderSettings.model_validate(provider.settings or {})


def to_provider_read(provider: oauth_models.OAuthProvider) -> oauth_schemas.OAuthProviderRead:
    """client_secret 을 제거하고 보유 여부(has_client_secret)만 노출합니다."""
    sanitized = None
    if provider.settings is not None:
        provider_settings = load_provider_settings(provider)
        sanitized = oauth_schemas.OAuthProviderSettingsRead(
            **provider_settings.model_dump(exclude={"client_secret"}),
            has_client_secret=bool(provider_settings.client_secret),
        )
    return oauth_schemas.OAuthProviderRead(
        id=provider.id,
        key=provider.key,
        name=provider.name,
        type=provider.type,
        description=provider.description,
        enabled=provider.enabled,
        settings=sanitized,
        created_at=provider.created_at,
        updated_at=provider.updated_at,
    )


def resolve_redirect_uri(provider_settings: oauth_schemas.OAuthProviderSettings, provider_key: str) -> str:
    base = provider_settings.redirect_uri or (
        f"{settings.OAUTH_CALLBACK_BASE_URL}{API_PREFIX}/oauth/providers/{{provider}}/callback"
    )
    return base.replace("{provider}", provider_key)


def build_authorize_url(provider_settings: oauth_schemas.OAuthProviderSettings, provider_key: str, state: str) -> str:
    tenant = provider_settings.tenant_id or "common"
    authorize_url = (provider_settings.authorize_url or DEFAULT_AUTHORIZE_URL).replace("{tenant}", tenant)
    params = {
        "client_id": provider_settings.client_id or "",
        "response_type": "code",
        "response_mode": "query",
        "scope": " ".join(provider_settings.scopes or DEFAULT_SCOPES),
        "redirect_uri": resolve_redirect_uri(provider_settings, provider_key),
        "state": state,
        "prompt": "select_account",
    }
    return f"{authorize_url}?{urlencode(params)}"


class ProviderClient:
    """
    OAuth 제공자와 통신하는 httpx 기반 클라이언트.
    테스트에서는 httpx.MockTransport 를 주입합니다.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=settings.OAUTH_HTTP_TIMEOUT_SECONDS)

    async def exchange_code(
        self, provider_settings: oauth_schemas.OAuthProviderSettings, *, provider_key: str, code: str
    ) -> Dict[str, Any]:
        tenant = provider_settings.tenant_id or "common"
        token_url = (provider_settings.token_url or DEFAULT_TOKEN_URL).replace("{tenant}", tenant)
        form = {
            "client_id": provider_settings.client_id or "",
            "client_secret": provider_settings.client_secret or "",
            "scope": " ".join(provider_settings.scopes or DEFAULT_SCOPES),
            "code": code,
            "redirect_uri": resolve_redirect_uri(provider_settings, provider_key),
            "grant_type": "authorization_code",
        }
        try:
            async with self._client() as client:
                response = await client.post(token_url, data=form)
        except httpx.HTTPError as e:
            logger.warning("Token endpoint of %s unreachable: %s", provider_key, e)
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="OAuth provider is unavailable")
        if response.status_code >= 400:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Token exchange failed: {response.text}")
        try:
            token = response.json()
        except ValueError:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Token response is not valid JSON")
        if not token.get("access_token"):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token response missing access_token")
        return token

    async def fetch_profile(
        self, provider_settings: oauth_schemas.OAuthProviderSettings, *, access_token: str
    ) -> Dict[str, Any]:
        """
        사용자 프로필을 조회해 {id, email, display_name, raw} 로 정규화합니다.
        """
        url = provider_settings.graph_user_url or DEFAULT_GRAPH_USER_URL
        try:
            async with self._client() as client:
                response = await client.get(url, headers={"Authorization": f"Bearer {access_token}"})
        except httpx.HTTPError as e:
            logger.warning("Profile endpoint unreachable: %s", e)
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="OAuth provider is unavailable")
        if response.status_code >= 400:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Failed to fetch provider profile")
        try:
            raw = response.json()
        except ValueError:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Provider profile is not valid JSON")
        external_id = raw.get("id") or raw.get("sub")
        if not external_id:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Provider profile has no id")
        return {
            "id": str(external_id),
            "email": raw.get("email") or raw.get("mail") or raw.get("userPrincipalName"),
            "display_name": raw.get("displayName") or raw.get("name"),
            "raw": raw,
        }


def get_provider_client() -> ProviderClient:
    return ProviderClient()


# =============================================================================
# 3. 인가 흐름
# =============================================================================
async def require_runtime_provider(db: AsyncSession, *, provider_key: str) -> oauth_models.OAuthProvider:
    provider = await oauth_crud.provider.get_by_key(db, key=provider_key)
    if not provider or not provider.enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="OAuth provider not found or disabled")
    return provider


async def start(
    db: AsyncSession,
    *,
    provider_key: str,
    request_in: oauth_schemas.StartOAuthRequest,
    user: Optional[usr_models.User],
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> oauth_schemas.StartOAuthResponse:
    """인가 흐름을 시작합니다. BIND 는 로그인한 사용자만 시작할 수 있습니다."""
    if request_in.mode == oauth_models.OAuthFlowMode.BIND and user is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Binding requires authenticated user")
    provider = await require_runtime_provider(db, provider_key=provider_key)

    payload = oauth_schemas.OAuthStatePayload(
        provider_key=provider.key,
        mode=request_in.mode,
        redirect_uri=str(request_in.redirect_uri),
        user_id=user.id if request_in.mode == oauth_models.OAuthFlowMode.BIND else None,
        remember_me=request_in.remember_me,
    )
    state = await create_state(db, payload=payload)
    authorize_url = build_authorize_url(load_provider_settings(provider), provider.key, state)
    oauth_crud.log.record(
        db,
        provider=provider,
        action=oauth_models.OAuthLogAction.AUTHORIZE,
        user_id=payload.user_id,
        message=f"Start {request_in.mode.value} flow",
        meta={"redirect_uri": payload.redirect_uri},
        ip=ip,
        user_agent=user_agent,
    )
    await db.commit()
    return oauth_schemas.StartOAuthResponse(authorize_url=authorize_url, state=state)


def _user_summary(user: usr_models.User) -> Dict[str, Any]:
    return {"id": user.id, "email": user.email, "name": user.name, "role": int(user.role)}


async def _handle_login(
    db: AsyncSession,
    *,
    provider: oauth_models.OAuthProvider,
    payload: oauth_schemas.OAuthStatePayload,
    profile: Dict[str, Any],
    ip: Optional[str],
) -> oauth_schemas.OAuthResultPayload:
    """
    연결된 계정이 있으면 그 사용자로, 없으면 이메일로 사용자를 찾거나 만들어 연결한 뒤 로그인합니다.
    """
    db_account = await oauth_crud.account.get_by_provider_account(
        db, provider_key=provider.key, provider_account_id=profile["id"]
    )
    if db_account:
        db_user = await db.get(usr_models.User, db_account.user_id)
        db_account.profile = profile["raw"]
        db.add(db_account)
    else:
        email = (profile["email"] or f"{profile['id']}@{provider.key}.local").strip().lower()
        db_user = await usr_crud.user.get_by_email(db, email=email)
        if db_user is None:
            db_user = usr_models.User(email=email, name=profile["display_name"], password_hash=None)
            db.add(db_user)
            await db.flush()
            oauth_crud.log.record(
                db, provider=provider, action=oauth_models.OAuthLogAction.REGISTER, user_id=db_user.id, ip=ip
            )
        db_account = oauth_models.OAuthAccount(
            provider_key=provider.key,
            provider_account_id=profile["id"],
            user_id=db_user.id,
            email=profile["email"],
            display_name=profile["display_name"],
            profile=profile["raw"],
        )
        db.add(db_account)
        await db.flush()

    if not db_user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")

    db_user.last_login_at = datetime.now(UTC)
    db_user.last_login_ip = ip[:64] if ip else None
    db.add(db_user)
    oauth_crud.log.record(
        db, provider=provider, action=oauth_models.OAuthLogAction.LOGIN, user_id=db_user.id, account_id=db_account.id, ip=ip
    )
    logger.info("OAuth login via %s for user %s", provider.key, db_user.id)
    return oauth_schemas.OAuthResultPayload(
        success=True,
        mode=oauth_models.OAuthFlowMode.LOGIN,
        tokens=oauth_schemas.OAuthTokens(**issue_tokens(db_user, remember_me=bool(payload.remember_me))),
        user=_user_summary(db_user),
    )


async def _handle_binding(
    db: AsyncSession,
    *,
    provider: oauth_models.OAuthProvider,
    payload: oauth_schemas.OAuthStatePayload,
    profile: Dict[str, Any],
) -> oauth_schemas.OAuthResultPayload:
    if payload.user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Binding requires authenticated user")
    if await db.get(usr_models.User, payload.user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    db_account = await oauth_crud.account.get_by_provider_account(
        db, provider_key=provider.key, provider_account_id=profile["id"]
    )
    if db_account and db_account.user_id != payload.user_id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This account is already bound to another user")
    if db_account is None:
        if await oauth_crud.account.get_for_user(db, provider_key=provider.key, user_id=payload.user_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="User is already bound to another account of this provider"
            )
        db_account = oauth_models.OAuthAccount(
            provider_key=provider.key,
            provider_account_id=profile["id"],
            user_id=payload.user_id,
        )
    db_account.email = profile["email"]
    db_account.display_name = profile["display_name"]
    db_account.profile = profile["raw"]
    db.add(db_account)
    await db.flush()

    oauth_crud.log.record(
        db,
        provider=provider,
        action=oauth_models.OAuthLogAction.BIND,
        user_id=payload.user_id,
        account_id=db_account.id,
        meta={"provider_account_id": profile["id"]},
    )
    logger.info("OAuth account %s (%s) bound to user %s", profile["id"], provider.key, payload.user_id)
    return oauth_schemas.OAuthResultPayload(
        success=True,
        mode=oauth_models.OAuthFlowMode.BIND,
        binding=oauth_schemas.OAuthBinding(provider_key=provider.key, user_id=payload.user_id),
    )


async def handle_callback(
    db: AsyncSession,
    client: ProviderClient,
    *,
    provider_key: str,
    state: str,
    code: str,
    ip: Optional[str] = None,
) -> Tuple[Optional[str], oauth_schemas.OAuthResultPayload]:
    """
    제공자 콜백을 처리하고 결과를 state 에 저장합니다. (redirect_uri, 결과) 를 반환합니다.
    처리 중 오류가 나면 실패 결과를 저장한 뒤 같은 오류를 다시 발생시킵니다.
    """
    provider = await require_runtime_provider(db, provider_key=provider_key)
    payload = await consume_state(db, state=state)
    if payload is None or payload.provider_key != provider.key:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired state")
    await db.commit()

    provider_settings = load_provider_settings(provider)
    try:
        token = await client.exchange_code(provider_settings, provider_key=provider.key, code=code)
        profile = await client.fetch_profile(provider_settings, access_token=token["access_token"])
        if payload.mode == oauth_models.OAuthFlowMode.BIND:
            result = await _handle_binding(db, provider=provider, payload=payload, profile=profile)
        else:
            result = await _handle_login(db, provider=provider, payload=payload, profile=profile, ip=ip)
        await store_result(db, state=state, result=result)
        await db.commit()
    except Exception as e:
        await db.rollback()
        # state 는 이미 소비되었으므로 어떤 오류든 실패 결과를 남깁니다.
        detail = str(e.detail) if isinstance(e, HTTPException) else "OAuth callback failed"
        provider = await oauth_crud.provider.get_by_key(db, key=provider_key)
        failure = oauth_schemas.OAuthResultPayload(success=False, mode=payload.mode, error=detail)
        await store_result(db, state=state, result=failure)
        oauth_crud.log.record(
            db,
            provider=provider,
            action=oauth_models.OAuthLogAction.ERROR,
            log_status=oauth_models.OAuthLogStatus.FAILURE,
            user_id=payload.user_id,
            message=detail if isinstance(e, HTTPException) else f"{detail}: {e!r}",
            ip=ip,
        )
        await db.commit()
        if isinstance(e, HTTPException):
            logger.warning("OAuth callback for %s failed: %s", provider.key, detail)
        else:
            logger.exception("OAuth callback for %s failed unexpectedly", provider.key)
        raise
    return payload.redirect_uri, result


async def unlink(db: AsyncSession, *, provider_key: str, user: usr_models.User) -> None:
    db_account = await oauth_crud.account.get_for_user(db, provider_key=provider_key, user_id=user.id)
    if db_account is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current account is not bound to this provider")
    provider_account_id = db_account.provider_account_id
    await db.delete(db_account)
    provider = await oauth_crud.provider.get_by_key(db, key=provider_key)
    if provider is not None:
        oauth_crud.log.record(
            db,
            provider=provider,
            action=oauth_models.OAuthLogAction.UNBIND,
            user_id=user.id,
            message="User removed OAuth binding",
            meta={"provider_account_id": provider_account_id},
        )
    await db.commit()
    logger.info("User %s unbound %s account %s", user.id, provider_key, provider_account_id)
