# app/core/log.py

"""
애플리케이션 로깅 초기화 모듈입니다.
각 모듈은 `logging.getLogger(__name__)`로 로거를 얻고, 핸들러/레벨 설정은 여기서 한 번만 적용합니다.
"""

import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

_configured = False


def setup_logging() -> None:
    """루트 로거를 설정합니다. 여러 번 호출되어도 한 번만 적용됩니다."""
    global _configured
    if _configured:
        return

    level = logging.DEBUG if settings.DEBUG_MODE else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    # SQL 로그는 DEBUG_MODE의 engine echo 설정으로만 제어합니다.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
