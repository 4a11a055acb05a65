# app/domains/shared/services.py

import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timedelta, UTC
from pathlib import Path
from typing import List, Optional

import aiofiles
from fastapi import UploadFile, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.domains.usr import models as usr_models
from . import models, crud, schemas

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def get_full_storage_path(storage_key: str) -> Path:
    return Path(settings.UPLOAD_DIR) / storage_key


async def _save_attachment_to_disk(upload_file: UploadFile) -> tuple[str, int, str]:
    """
    UploadFile 을 CHUNK_SIZE 단위로 디스크에 기록하고 (storage_key, 크기, sha256) 을 반환합니다.
    빈 파일이거나 쓰기에 실패하면 남은 파일을 지우고 HTTPException 을 발생시킵니다.
    """
    # monkeypatch 로 바뀐 settings 값을 참조하도록 런타임에 경로를 계산합니다.
    upload_directory = Path(settings.UPLOAD_DIR)
    upload_directory.mkdir(parents=True, exist_ok=True)

    storage_key = f"{uuid.uuid4()}-{Path(upload_file.filename or 'file').name}"
    file_path = upload_directory / storage_key
    digest = hashlib.sha256()
    size = 0
    try:
        async with aiofiles.open(file_path, "wb") as f:
            while True:
                chunk = await upload_file.read(CHUNK_SIZE)
                if not chunk:
                    break
                digest.update(chunk)
                size += len(chunk)
                await f.write(chunk)
    except OSError as e:
        file_path.unlink(missing_ok=True)
        logger.error("Failed to write attachment %s: %s", storage_key, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"파일 저장 중 오류 발생: {e}",
        )

    if size == 0:
        file_path.unlink(missing_ok=True)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="업로드된 파일이 비어있습니다."
        )
    return storage_key, size, digest.hexdigest()


def to_attachment_read(attachment: models.Attachment) -> schemas.AttachmentRead:
    """
    첨부파일을 응답 스키마로 변환합니다.
    업로더 계정이 남아 있으면 현재 이름/이메일을, 없으면 업로드 당시 스냅샷을 사용합니다.
    """
    if attachment.owner is not None:
        owner = schemas.AttachmentOwner(
            id=attachment.owner.id,
            name=attachment.owner.display_name,
            email=attachment.owner.email,
        )
    else:
        owner = schemas.AttachmentOwner(
            name=attachment.uploader_name_snapshot,
            email=attachment.uploader_email_snapshot,
            deleted=True,
        )
    return schemas.AttachmentRead(
        id=attachment.id,
        name=attachment.name,
        original_name=attachment.original_name,
        mime_type=attachment.mime_type,
        size=attachment.size,
        hash=attachment.hash,
        is_public=attachment.is_public,
        description=attachment.description,
        meta=attachment.meta,
        folder=schemas.AttachmentFolderBrief.model_validate(attachment.folder) if attachment.folder else None,
        owner=owner,
        tags=[schemas.AttachmentTagRead.model_validate(t) for t in attachment.tags],
        deleted_at=attachment.deleted_at,
        created_at=attachment.created_at,
        updated_at=attachment.updated_at,
    )


async def _resolve_folder_and_tags(
    db: AsyncSession, *, folder_id: Optional[int], tag_keys: Optional[List[str]]
) -> List[models.AttachmentTag]:
    if folder_id is not None and not await crud.folder.get(db, id=folder_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Folder not found")
    if not tag_keys:
        return []
    tags = await crud.tag.get_by_keys(db, keys=tag_keys)
    missing = sorted(set(tag_keys) - {t.key for t in tags})
    if missing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown tag keys: {', '.join(missing)}")
    return tags


async def upload_attachment(
    db: AsyncSession,
    *,
    upload_file: UploadFile,
    form: schemas.AttachmentUploadForm,
    owner: usr_models.User,
) -> models.Attachment:
    """
    파일을 저장하고 첨부파일 레코드를 만듭니다.
    업로더 이름/이메일 스냅샷은 이 시점에 기록되고 이후 지워지지 않습니다.
    """
    tags = await _resolve_folder_and_tags(db, folder_id=form.folder_id, tag_keys=form.tag_keys)
    storage_key, size, digest = await _save_attachment_to_disk(upload_file)

    original_name = upload_file.filename or storage_key
    db_obj = models.Attachment(
        name=form.name or original_name,
        original_name=original_name,
        mime_type=upload_file.content_type,
        size=size,
        storage_key=storage_key,
        hash=digest,
        is_public=bool(form.is_public),
        description=form.description,
        meta=form.meta,
        folder_id=form.folder_id,
        owner_id=owner.id,
        uploader_name_snapshot=owner.display_name,
        uploader_email_snapshot=owner.email,
    )
    db_obj.tags = tags
    try:
        db.add(db_obj)
        await db.commit()
    except Exception:
        await db.rollback()
        # 레코드 없이 남는 파일을 지웁니다.
        get_full_storage_path(storage_key).unlink(missing_ok=True)
        logger.error("Attachment record for %s was not saved; stored file removed", storage_key)
        raise
    logger.info("Attachment %s uploaded by user %s (%s bytes)", db_obj.id, owner.id, size)
    return await crud.attachment.get_with_relations(db, id=db_obj.id)


def ensure_can_modify(attachment: models.Attachment, user: usr_models.User) -> None:
    """업로더 본인 또는 관리자만 수정/삭제할 수 있습니다."""
    is_owner = attachment.owner_id is not None and attachment.owner_id == user.id
    is_admin = user.role <= usr_models.UserRole.ADMIN
    if not (is_owner or is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions to modify this attachment."
        )


def ensure_can_read(attachment: models.Attachment, user: usr_models.User) -> None:
    if attachment.is_public:
        return
    ensure_can_modify(attachment, user)


async def update_attachment(
    db: AsyncSession, *, attachment: models.Attachment, obj_in: schemas.AttachmentUpdate
) -> models.Attachment:
    update_data = obj_in.model_dump(exclude_none=True, exclude={"tag_keys"})
    if "folder_id" in obj_in.model_fields_set:
        # folder_id 를 명시적으로 null 로 보내면 최상위로 이동합니다.
        update_data["folder_id"] = obj_in.folder_id
    tags = await _resolve_folder_and_tags(db, folder_id=update_data.get("folder_id"), tag_keys=obj_in.tag_keys)

    for field, value in update_data.items():
        setattr(attachment, field, value)
    if obj_in.tag_keys is not None:
        attachment.tags = tags
    db.add(attachment)
    await db.commit()
    return await crud.attachment.get_with_relations(db, id=attachment.id)


async def soft_delete_attachment(db: AsyncSession, *, attachment: models.Attachment, user: usr_models.User) -> None:
    await crud.attachment.soft_delete(db, db_obj=attachment)
    logger.info("Attachment %s soft-deleted by user %s", attachment.id, user.id)


async def create_share_token(
    db: AsyncSession, *, attachment: models.Attachment, obj_in: schemas.ShareTokenCreate, user: usr_models.User
) -> models.AttachmentShareToken:
    minutes = obj_in.expires_in_minutes or settings.ATTACHMENT_SHARE_TOKEN_DEFAULT_MINUTES
    db_obj = models.AttachmentShareToken(
        attachment_id=attachment.id,
        token=secrets.token_urlsafe(32),
        expires_at=datetime.now(UTC) + timedelta(minutes=minutes),
        created_by_id=user.id,
    )
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def resolve_share_token(db: AsyncSession, *, token: str) -> models.Attachment:
    """유효한 공유 토큰이 가리키는 (삭제되지 않은) 첨부파일을 반환합니다."""
    share = await crud.share_token.get_valid(db, token=token)
    if not share:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Share link not found or expired")
    attachment = await crud.attachment.get_with_relations(db, id=share.attachment_id)
    if not attachment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")
    return attachment


def prepare_attachment_for_download(attachment: models.Attachment) -> tuple[Path, str]:
    """
    다운로드할 파일의 전체 경로와 표시 파일명을 반환합니다.
    """
    full_path = get_full_storage_path(attachment.storage_key)
    if not full_path.exists():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found on disk."
        )
    return full_path, attachment.name
