# app/core/config.py

from typing import Any
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
import os

# 프로젝트의 루트 디렉토리 경로를 계산합니다.
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class Settings(BaseSettings):
    """
    애플리케이션의 모든 설정을 정의하는 Pydantic BaseSettings 모델입니다.
    환경 변수 및 .env 파일에서 값을 자동으로 로드합니다.
    """

    # --- Pydantic Settings 설정 ---
    model_config = SettingsConfigDict(
        env_file=os.path.join(BASE_DIR, '.env'),  # 프로젝트 루트의 .env 파일을 명시적으로 지정
        env_file_encoding='utf-8',
        extra='ignore',                      # .env 파일에 정의되었지만 모델에 없는 변수는 무시
        case_sensitive=True                  # 환경 변수 이름 대소문자 구분
    )

    # --- 애플리케이션 기본 설정 ---
    APP_NAME: str = "BizAdmin FastAPI API"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Business administration backend (users, config, attachments, company registration) API"
    APP_ENV: str = Field("development", description="Application environment (e.g., development, production, testing)")
    DEBUG_MODE: bool = Field(False, description="Enable debug mode for detailed logging and error messages")
    LOG_LEVEL: str = Field("INFO", description="Root log level (DEBUG, INFO, WARNING, ERROR)")

    # --- 데이터베이스 설정 ---
    DATABASE_URL: SecretStr = Field(..., description="PostgreSQL database connection URL")

    # --- JWT (JSON Web Token) 설정 ---
    SECRET_KEY: SecretStr = Field(..., description="Secret key for JWT token signing. Keep this highly secure!")
    ALGORITHM: str = Field("HS256", description="Algorithm used for JWT signing (e.g., HS256)")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(30, description="Access token expiration time in minutes")
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(7, description="Refresh token expiration time in days")
    REMEMBER_ME_REFRESH_TOKEN_EXPIRE_DAYS: int = Field(30, description="Refresh token lifetime when 'remember me' is requested")

    # --- 회원 가입 설정 ---
    INVITE_CODE_REQUIRED: bool = Field(False, description="Require a valid invite code on self registration")

    # --- 파일 업로드 설정 ---
    UPLOAD_DIR: str = Field("/app/data/uploads", description="Directory for uploaded files.")
    ATTACHMENT_SHARE_TOKEN_DEFAULT_MINUTES: int = Field(60, description="Default lifetime of an attachment share token")
    ATTACHMENT_PURGE_AFTER_DAYS: int = Field(30, description="Soft-deleted attachments are purged from disk after this many days")

    # --- OAuth 설정 ---
    OAUTH_STATE_TTL_MINUTES: int = Field(10, description="Lifetime of an OAuth redirect state")
    OAUTH_HTTP_TIMEOUT_SECONDS: float = Field(10.0, description="Timeout for token/profile requests to OAuth providers")
    OAUTH_CALLBACK_BASE_URL: str = Field("http://localhost:8000", description="Public base URL of this API, used to build provider callback URLs")
    APP_PUBLIC_BASE_URL: str = Field("http://localhost:3000", description="Frontend URL to redirect to when a flow carries no redirect_uri")

    # --- ARQ (Redis) 설정 ---
    REDIS_HOST: str = Field("localhost", description="Redis host for the ARQ worker")
    REDIS_PORT: int = Field(6379, description="Redis port for the ARQ worker")

    # Post-initialization validation (Pydantic v2 BaseSettings)
    def model_post_init(self, __context: Any) -> None:  # noqa: ANN001
        # APP_ENV가 development이고, UPLOAD_DIR이 기본값인 경우 로컬 경로로 변경
        if self.APP_ENV == "development" and self.UPLOAD_DIR == "/app/data/uploads":
            self.UPLOAD_DIR = os.path.join(BASE_DIR, "data", "uploads")


settings = Settings()
