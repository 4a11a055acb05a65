# app/core/dependencies.py

"""
FastAPI 애플리케이션의 의존성 주입(Dependency Injection)을 정의하는 모듈입니다.

- 데이터베이스 세션 관리 (get_db_session).
- 현재 인증된 사용자 정보 획득 (get_current_active_user 등).
- 쿼리 스트링/폼 값을 DTO 로 변환·검증 (validate_request_model).
"""

from typing import Any, AsyncGenerator, Dict, Type, TypeVar

from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import get_session as get_main_app_session

# flake8: noqa
from app.core.security import (
    create_access_token,
    create_refresh_token,
    issue_tokens,
    get_password_hash,
    verify_password,
    oauth2_scheme,
    get_current_user_from_token,
    get_current_active_user,
    get_current_admin_user,
    get_optional_user,
)

SchemaType = TypeVar("SchemaType", bound=BaseModel)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 의존성 주입을 위한 비동기 데이터베이스 세션 제너레이터입니다.
    app.core.database.get_session을 래핑하여 사용합니다.
    """
    async for session in get_main_app_session():
        yield session


def validate_request_model(schema: Type[SchemaType], data: Dict[str, Any], *, location: str = "query") -> SchemaType:
    """
    원시 쿼리/폼 값으로 DTO 를 만듭니다. 실패한 모든 필드를 담아 422 로 응답합니다.
    값이 None 인 키는 전달하지 않아 필드 기본값이 적용됩니다.
    """
    try:
        return schema.model_validate({k: v for k, v in data.items() if v is not None})
    except ValidationError as e:
        errors = []
        for error in e.errors(include_url=False):
            error = dict(error)
            error["loc"] = (location, *error.get("loc", ()))
            error.pop("ctx", None)
            errors.append(error)
        raise RequestValidationError(errors)
