# app/domains/shared/routers.py

"""
'shared' 도메인 (첨부파일, 폴더, 태그, 공유 토큰)의 API 엔드포인트를 정의하는 모듈입니다.

업로드 폼 필드와 목록/검색 쿼리 스트링은 원시 문자열로 받아
app.core.coercion 의 변환기를 거친 DTO 로 검증합니다.
"""
from typing import List, Optional

from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, Form, File, Query
from fastapi.responses import FileResponse

from app.core import dependencies as deps
from app.domains.usr import models as usr_models

from . import crud as shared_crud
from . import schemas as shared_schemas
from . import services as shared_services


router = APIRouter(
    tags=["Shared (첨부파일 관리)"],
    responses={404: {"description": "Not found"}},
)


async def _get_attachment_or_404(db: AsyncSession, attachment_id: int, include_deleted: bool = False):
    db_attachment = await shared_crud.attachment.get_with_relations(db, id=attachment_id, include_deleted=include_deleted)
    if db_attachment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")
    return db_attachment


# =============================================================================
# 1. shared.attachment_folders 엔드포인트
# =============================================================================
@router.post("/folders", response_model=shared_schemas.AttachmentFolderRead, status_code=status.HTTP_201_CREATED)
async def create_folder(
    folder_in: shared_schemas.AttachmentFolderCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user)
):
    """새 폴더를 만듭니다. 같은 상위 폴더 안에서 이름은 중복될 수 없습니다."""
    return await shared_crud.folder.create(db, obj_in=folder_in, created_by_id=current_user.id)


@router.get("/folders", response_model=List[shared_schemas.AttachmentFolderRead])
async def read_folders(
    parent_id: Optional[str] = Query(None, description="상위 폴더 ID (비우거나 'null' 이면 최상위)"),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user)
):
    query = deps.validate_request_model(shared_schemas.AttachmentQuery, {"folder_id": parent_id})
    return await shared_crud.folder.get_children(db, parent_id=query.folder_id)


# =============================================================================
# 2. shared.attachment_tags 엔드포인트
# =============================================================================
@router.post("/tags", response_model=shared_schemas.AttachmentTagRead, status_code=status.HTTP_201_CREATED)
async def create_tag(
    tag_in: shared_schemas.AttachmentTagCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_admin_user)
):
    """새 태그를 만듭니다. (관리자 권한 필요)"""
    return await shared_crud.tag.create(db, obj_in=tag_in)


@router.get("/tags", response_model=List[shared_schemas.AttachmentTagRead])
async def read_tags(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user)
):
    return await shared_crud.tag.get_multi(db, limit=500)


# =============================================================================
# 3. shared.attachments 엔드포인트 (파일 업로드 포함)
# =============================================================================
@router.post("/attachments", response_model=shared_schemas.AttachmentRead, status_code=status.HTTP_201_CREATED)
async def upload_attachment(
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    folder_id: Optional[str] = Form(None),
    is_public: Optional[str] = Form(None),
    tag_keys: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    metadata: Optional[str] = Form(None),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user)
):
    """
    새 첨부파일을 업로드합니다.
    is_public 은 "true/1/yes/on", tag_keys 는 쉼표 구분 문자열, metadata 는 JSON 객체 문자열을 받습니다.
    """
    form = deps.validate_request_model(
        shared_schemas.AttachmentUploadForm,
        {
            "name": name,
            "folder_id": folder_id,
            "is_public": is_public,
            "tag_keys": tag_keys,
            "description": description,
            "meta": metadata,
        },
        location="body",
    )
    db_attachment = await shared_services.upload_attachment(db, upload_file=file, form=form, owner=current_user)
    return shared_services.to_attachment_read(db_attachment)


@router.get("/attachments", response_model=List[shared_schemas.AttachmentRead])
async def read_attachments(
    folder_id: Optional[str] = None,
    tag_keys: Optional[str] = None,
    keyword: Optional[str] = None,
    include_deleted: Optional[str] = None,
    limit: Optional[str] = None,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_admin_user)
):
    """
    첨부파일 관리 목록을 조회합니다. (관리자 권한 필요)
    """
    query = deps.validate_request_model(
        shared_schemas.AttachmentQuery,
        {
            "folder_id": folder_id,
            "tag_keys": tag_keys,
            "keyword": keyword,
            "include_deleted": include_deleted,
            "limit": limit,
        },
    )
    attachments = await shared_crud.attachment.get_list(
        db,
        folder_id=query.folder_id,
        tag_keys=query.tag_keys,
        keyword=query.keyword,
        include_deleted=bool(query.include_deleted),
        limit=query.limit or shared_schemas.DEFAULT_SEARCH_LIMIT,
    )
    return [shared_services.to_attachment_read(a) for a in attachments]


@router.get("/attachments/search", response_model=List[shared_schemas.AttachmentRead])
async def search_attachments(
    keyword: Optional[str] = None,
    limit: Optional[str] = None,
    public_only: Optional[str] = None,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: Optional[usr_models.User] = Depends(deps.get_optional_user)
):
    """
    첨부파일을 검색합니다. limit 기본값은 20, 허용 범위는 1~50 입니다.
    로그인하지 않은 사용자에게는 항상 공개 첨부파일만 보여줍니다.
    """
    query = deps.validate_request_model(
        shared_schemas.AttachmentSearchQuery,
        {"keyword": keyword, "limit": limit, "public_only": public_only},
    )
    attachments = await shared_crud.attachment.get_list(
        db,
        keyword=query.keyword,
        public_only=bool(query.public_only) or current_user is None,
        limit=query.limit or shared_schemas.DEFAULT_SEARCH_LIMIT,
    )
    if current_user is not None and current_user.role > usr_models.UserRole.ADMIN:
        attachments = [a for a in attachments if a.is_public or a.owner_id == current_user.id]
    return [shared_services.to_attachment_read(a) for a in attachments]


@router.get("/attachments/{attachment_id}", response_model=shared_schemas.AttachmentRead)
async def read_attachment(
    attachment_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user)
):
    db_attachment = await _get_attachment_or_404(db, attachment_id)
    shared_services.ensure_can_read(db_attachment, current_user)
    return shared_services.to_attachment_read(db_attachment)


@router.get("/attachments/{attachment_id}/download")
async def download_attachment(
    attachment_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user)
):
    db_attachment = await _get_attachment_or_404(db, attachment_id)
    shared_services.ensure_can_read(db_attachment, current_user)
    full_path, filename = shared_services.prepare_attachment_for_download(db_attachment)
    return FileResponse(path=full_path, filename=filename, media_type=db_attachment.mime_type)


@router.patch("/attachments/{attachment_id}", response_model=shared_schemas.AttachmentRead)
async def update_attachment(
    attachment_id: int,
    attachment_update: shared_schemas.AttachmentUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user)
):
    """
    첨부파일 정보를 수정합니다. 업로더 본인 또는 관리자만 가능합니다.
    """
    db_attachment = await _get_attachment_or_404(db, attachment_id)
    shared_services.ensure_can_modify(db_attachment, current_user)
    updated = await shared_services.update_attachment(db, attachment=db_attachment, obj_in=attachment_update)
    return shared_services.to_attachment_read(updated)


@router.delete("/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(
    attachment_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user)
):
    """
    첨부파일을 소프트 삭제합니다. 파일은 보존 기간이 지난 뒤 정리 태스크가 삭제합니다.
    """
    db_attachment = await _get_attachment_or_404(db, attachment_id)
    shared_services.ensure_can_modify(db_attachment, current_user)
    await shared_services.soft_delete_attachment(db, attachment=db_attachment, user=current_user)
    return None


# =============================================================================
# 4. shared.attachment_share_tokens 엔드포인트
# =============================================================================
@router.post(
    "/attachments/{attachment_id}/share-tokens",
    response_model=shared_schemas.ShareTokenRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_share_token(
    attachment_id: int,
    share_in: shared_schemas.ShareTokenCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user)
):
    """첨부파일 공유 링크를 발급합니다. 만료 시간을 생략하면 기본값(설정)을 사용합니다."""
    db_attachment = await _get_attachment_or_404(db, attachment_id)
    shared_services.ensure_can_modify(db_attachment, current_user)
    db_token = await shared_services.create_share_token(db, attachment=db_attachment, obj_in=share_in, user=current_user)
    return shared_schemas.ShareTokenRead(
        token=db_token.token, attachment_id=db_token.attachment_id, expires_at=db_token.expires_at
    )


@router.get("/share/{token}", response_model=shared_schemas.AttachmentRead, summary="공유 토큰으로 첨부파일 조회")
async def resolve_share_token(
    token: str,
    db: AsyncSession = Depends(deps.get_db_session),
):
    db_attachment = await shared_services.resolve_share_token(db, token=token)
    return shared_services.to_attachment_read(db_attachment)


@router.get("/share/{token}/download", summary="공유 토큰으로 첨부파일 다운로드")
async def download_shared_attachment(
    token: str,
    db: AsyncSession = Depends(deps.get_db_session),
):
    db_attachment = await shared_services.resolve_share_token(db, token=token)
    full_path, filename = shared_services.prepare_attachment_for_download(db_attachment)
    return FileResponse(path=full_path, filename=filename, media_type=db_attachment.mime_type)
