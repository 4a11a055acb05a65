# app/core/security.py

"""
애플리케이션의 보안 관련 유틸리티 함수 및 의존성 주입을 정의하는 모듈입니다.

- 비밀번호 해싱 및 검증.
- JWT(JSON Web Token) 생성 및 검증.
- OAuth2 Password Bearer 스키마를 사용하여 현재 사용자 획득.
- 사용자 역할(role) 기반 권한 부여(Authorization) 검사.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from app import API_PREFIX
from app.core.config import settings
from app.core.database import get_session
from app.domains.usr import models as usr_models

logger = logging.getLogger(__name__)

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"

# --- 비밀번호 해싱 설정 ---
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """일반 텍스트 비밀번호와 해싱된 비밀번호를 비교합니다."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """주어진 비밀번호를 해싱합니다."""
    return pwd_context.hash(password)


# --- OAuth2 스키마 설정 ---
# /usr/auth/token 엔드포인트로 토큰을 요청하도록 설정합니다.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{API_PREFIX}/usr/auth/token")
# 로그인이 선택 사항인 엔드포인트(OAuth 시작 등)용
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{API_PREFIX}/usr/auth/token", auto_error=False)


# --- JWT 토큰 생성 및 검증 ---
def _encode(data: dict, expire: datetime, token_type: str) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": expire, "type": token_type})
    return jwt.encode(to_encode, settings.SECRET_KEY.get_secret_value(), algorithm=settings.ALGORITHM)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Access Token을 생성합니다."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    return _encode(data, expire, TOKEN_TYPE_ACCESS)


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Refresh Token을 생성합니다.
    Refresh Token 만료 시간은 Access Token보다 훨씬 길게 설정합니다.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))
    return _encode(data, expire, TOKEN_TYPE_REFRESH)


def issue_tokens(user: usr_models.User, remember_me: bool = False) -> dict:
    """로그인 성공 시 access/refresh 토큰 쌍을 발급합니다."""
    claims = {"sub": str(user.id)}
    refresh_days = settings.REMEMBER_ME_REFRESH_TOKEN_EXPIRE_DAYS if remember_me else settings.REFRESH_TOKEN_EXPIRE_DAYS
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims, expires_delta=timedelta(days=refresh_days)),
        "token_type": "bearer",
    }


def decode_token(token: str, expected_type: str = TOKEN_TYPE_ACCESS) -> int:
    """
    토큰을 검증하고 사용자 ID(sub)를 반환합니다. 유효하지 않으면 JWTError 를 발생시킵니다.
    """
    payload = jwt.decode(token, settings.SECRET_KEY.get_secret_value(), algorithms=[settings.ALGORITHM])
    if payload.get("type", TOKEN_TYPE_ACCESS) != expected_type:
        raise JWTError("Unexpected token type")
    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        raise JWTError("Missing subject")
    return int(subject)


async def get_current_user_from_token(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_session),
) -> usr_models.User:
    """
    JWT 토큰을 디코딩하고 검증하여 현재 사용자를 데이터베이스에서 가져옵니다.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        user_id = decode_token(token)
    except JWTError as e:
        logger.debug("JWT validation failed: %s", e)
        raise credentials_exception

    user = await db.get(usr_models.User, user_id)
    if user is None:
        raise credentials_exception
    return user


async def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: AsyncSession = Depends(get_session),
) -> Optional[usr_models.User]:
    """토큰이 있으면 사용자, 없거나 유효하지 않으면 None 을 반환합니다."""
    if not token:
        return None
    try:
        user_id = decode_token(token)
    except JWTError:
        return None
    user = await db.get(usr_models.User, user_id)
    if user is None or not user.is_active:
        return None
    return user


# --- 역할 기반 권한 부여 의존성 ---

def get_current_active_user(
    current_user: usr_models.User = Depends(get_current_user_from_token),
) -> usr_models.User:
    """
    현재 인증된 활성 사용자를 반환합니다.
    계정이 비활성화된 경우 400 Bad Request를 발생시킵니다.
    """
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return current_user


def get_current_admin_user(
    current_user: usr_models.User = Depends(get_current_active_user),
) -> usr_models.User:
    """
    현재 인증된 관리자 사용자를 반환합니다 (role <= ADMIN).
    관리자 권한이 없는 경우 403 Forbidden을 발생시킵니다.
    """
    if current_user.role > usr_models.UserRole.ADMIN:
        logger.info("Admin access denied for user %s (role=%s)", current_user.id, current_user.role.name)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions. Admin role required."
        )
    return current_user
