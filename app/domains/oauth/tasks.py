# app/domains/oauth/tasks.py

import logging

from app.core.database import get_async_session_context

from . import services as oauth_services

logger = logging.getLogger(__name__)


async def cleanup_expired_oauth_states_task(ctx):
    """ARQ 워커에 의해 실행될 만료 OAuth state 정리 태스크."""
    async with get_async_session_context() as session:
        deleted_count = await oauth_services.cleanup_expired_states(session)
    logger.info("만료된 OAuth state %s개 삭제", deleted_count)
    return {"status": "success", "deleted_count": deleted_count}
