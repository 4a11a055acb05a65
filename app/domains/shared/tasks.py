# app/domains/shared/tasks.py

import logging
from datetime import datetime, timedelta, UTC

from app.core.database import get_async_session_context
from app.core.config import settings

from . import crud as shared_crud
from .services import get_full_storage_path

logger = logging.getLogger(__name__)


async def cleanup_attachments_task(ctx):
    """
    ARQ 워커에 의해 실행될 첨부파일 정리 태스크.
    보존 기간이 지난 소프트 삭제 첨부파일의 파일과 레코드, 만료된 공유 토큰을 삭제합니다.
    """
    logger.info("ARQ 태스크: 첨부파일 정리 작업 시작")
    deleted_before = datetime.now(UTC) - timedelta(days=settings.ATTACHMENT_PURGE_AFTER_DAYS)
    purged_count = 0

    async with get_async_session_context() as session:
        purgeable = await shared_crud.attachment.get_purgeable(session, deleted_before=deleted_before)
        for attachment in purgeable:
            file_path = get_full_storage_path(attachment.storage_key)
            try:
                file_path.unlink(missing_ok=True)
            except OSError as e:
                logger.error("첨부파일 삭제 실패 (ID: %s, 경로: %s): %s", attachment.id, file_path, e)
                continue
            await session.delete(attachment)
            purged_count += 1

        expired_tokens = await shared_crud.share_token.delete_expired(session)

    logger.info("첨부파일 %s개, 만료 공유 토큰 %s개 정리 완료", purged_count, expired_tokens)
    return {"status": "success", "purged_count": purged_count, "expired_tokens": expired_tokens}
