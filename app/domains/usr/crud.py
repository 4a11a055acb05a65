# app/domains/usr/crud.py

"""
'usr' 도메인의 CRUD 작업을 담당하는 모듈입니다.
"""

import logging
import secrets
from datetime import datetime, UTC
from typing import List, Optional

from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from app.core.crud_base import CRUDBase
from app.core.security import get_password_hash, verify_password
from . import models as usr_models
from . import schemas as usr_schemas

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
INVITE_CODE_LENGTH = 10


# =============================================================================
# 1. usr.users 테이블 CRUD
# =============================================================================
class CRUDUser(CRUDBase[usr_models.User, usr_schemas.UserCreate, usr_schemas.UserUpdate]):
    def __init__(self):
        super().__init__(model=usr_models.User)

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[usr_models.User]:
        """이메일로 사용자를 조회합니다 (대소문자 무시)."""
        return await self.get_by_attribute(db, attribute="email", value=email.strip().lower())

    def build(self, *, obj_in: usr_schemas.UserCreate) -> usr_models.User:
        """커밋하지 않고 User 객체만 만듭니다 (가입 트랜잭션에서 사용)."""
        user_data = obj_in.model_dump(exclude={"password"})
        user_data["email"] = user_data["email"].strip().lower()
        return usr_models.User(**user_data, password_hash=get_password_hash(obj_in.password))

    async def create(self, db: AsyncSession, *, obj_in: usr_schemas.UserCreate) -> usr_models.User:
        """새로운 사용자를 생성하며 비밀번호를 해싱하고 중복을 검사합니다."""
        if await self.get_by_email(db, email=obj_in.email):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

        db_user = self.build(obj_in=obj_in)
        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)
        return db_user

    async def authenticate(self, db: AsyncSession, *, email: str, password: str) -> Optional[usr_models.User]:
        """이메일과 비밀번호를 사용하여 사용자를 인증합니다."""
        user = await self.get_by_email(db, email=email)
        if not user or not user.password_hash:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    async def record_login(self, db: AsyncSession, *, db_obj: usr_models.User, ip: Optional[str]) -> usr_models.User:
        """로그인 성공 시각과 IP를 함께 기록합니다."""
        db_obj.last_login_at = datetime.now(UTC)
        db_obj.last_login_ip = ip[:64] if ip else None
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        logger.info("User %s logged in from %s", db_obj.id, db_obj.last_login_ip)
        return db_obj

    async def update_self(
        self, db: AsyncSession, *, db_obj: usr_models.User, obj_in: usr_schemas.UserSelfUpdate
    ) -> usr_models.User:
        """
        본인 정보를 수정합니다. 이름이 실제로 바뀐 경우에만 name_changed_at 을 갱신하고,
        비밀번호 변경은 현재 비밀번호 확인 후에만 허용합니다.
        """
        if obj_in.name is not None and obj_in.name != db_obj.name:
            db_obj.name = obj_in.name
            db_obj.name_changed_at = datetime.now(UTC)

        if obj_in.new_password is not None:
            if not db_obj.password_hash or not obj_in.current_password or \
               not verify_password(obj_in.current_password, db_obj.password_hash):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
            db_obj.password_hash = get_password_hash(obj_in.new_password)

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def update(self, db: AsyncSession, *, db_obj: usr_models.User, obj_in: usr_schemas.UserUpdate) -> usr_models.User:
        """
        관리자용 사용자 정보 수정. 이메일 중복을 막고, 이름 변경 시 name_changed_at 을 갱신합니다.
        """
        update_data = obj_in.model_dump(exclude_unset=True)
        if update_data.get("email"):
            update_data["email"] = update_data["email"].strip().lower()
            if update_data["email"] != db_obj.email and await self.get_by_email(db, email=update_data["email"]):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
        if "name" in update_data and update_data["name"] != db_obj.name:
            update_data["name_changed_at"] = datetime.now(UTC)
        return await super().update(db, db_obj=db_obj, obj_in=update_data)

    async def remove(self, db: AsyncSession, *, id: int, current_user: usr_models.User) -> usr_models.User:
        """
        사용자를 삭제합니다. 자기 자신은 삭제할 수 없습니다.
        첨부파일은 남고 owner_id 만 NULL 이 됩니다 (업로더 스냅샷 유지).
        """
        user_to_delete = await self.get(db, id=id)
        if not user_to_delete:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        if user_to_delete.id == current_user.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete your own account.")
        if user_to_delete.role < current_user.role:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot delete a user with a higher role.")

        deleted = await super().delete(db, id=id)
        logger.info("User %s deleted by %s", id, current_user.id)
        return deleted


user = CRUDUser()


# =============================================================================
# 2. usr.invite_codes 테이블 CRUD
# =============================================================================
def generate_invite_code(length: int = INVITE_CODE_LENGTH) -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


class CRUDInviteCode(CRUDBase[usr_models.InviteCode, usr_schemas.InviteCodeCreate, usr_schemas.InviteCodeCreate]):
    def __init__(self):
        super().__init__(model=usr_models.InviteCode)

    async def get_by_code(self, db: AsyncSession, *, code: str) -> Optional[usr_models.InviteCode]:
        return await self.get_by_attribute(db, attribute="code", value=code)

    async def create(
        self, db: AsyncSession, *, obj_in: usr_schemas.InviteCodeCreate, created_by_id: Optional[int] = None
    ) -> usr_models.InviteCode:
        code = obj_in.code or generate_invite_code()
        if await self.get_by_code(db, code=code):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invite code already exists")
        db_obj = usr_models.InviteCode(code=code, note=obj_in.note, created_by_id=created_by_id)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def get_list(
        self, db: AsyncSession, *, used: Optional[bool] = None, skip: int = 0, limit: int = 100
    ) -> List[usr_models.InviteCode]:
        query = select(self.model)
        if used is True:
            query = query.where(self.model.used_at.is_not(None))
        elif used is False:
            query = query.where(self.model.used_at.is_(None))
        query = query.order_by(self.model.id.desc()).offset(skip).limit(limit)
        result = await db.execute(query)
        return result.scalars().all()

    async def consume(self, db: AsyncSession, *, code: str, user_id: int) -> int:
        """
        초대 코드를 사용 처리합니다 (커밋하지 않음).
        미사용 코드에 대해서만 used_by_id, used_at 을 한 UPDATE 문으로 함께 설정하므로
        동시에 같은 코드를 사용하려 해도 한 요청만 성공합니다.
        """
        statement = (
            update(self.model)
            .where(
                self.model.code == code,
                self.model.used_by_id.is_(None),
                self.model.used_at.is_(None),
            )
            .values(used_by_id=user_id, used_at=datetime.now(UTC))
            .returning(self.model.id)
        )
        result = await db.execute(statement)
        invite_id = result.scalar_one_or_none()
        if invite_id is None:
            existing = await self.get_by_code(db, code=code)
            if existing is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid invite code")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Invite code already used")
        logger.info("Invite code %s consumed by user %s", invite_id, user_id)
        return invite_id

    async def remove(self, db: AsyncSession, *, id: int) -> usr_models.InviteCode:
        """미사용 초대 코드만 삭제할 수 있습니다."""
        invite = await self.get(db, id=id)
        if not invite:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invite code not found")
        if invite.is_used:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete a used invite code")
        return await super().delete(db, id=id)


invite_code = CRUDInviteCode()


# =============================================================================
# 3. 회원 가입 (사용자 생성 + 초대 코드 사용을 하나의 트랜잭션으로)
# =============================================================================
async def register_user(
    db: AsyncSession, *, obj_in: usr_schemas.RegisterRequest, invite_required: bool
) -> usr_models.User:
    """
    자가 회원 가입. 초대 코드가 주어지면(또는 필수이면) 사용자 생성과 코드 사용을
    한 트랜잭션에서 처리하고, 어느 한쪽이 실패하면 모두 롤백합니다.
    """
    if invite_required and not obj_in.invite_code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invite code is required")
    if await user.get_by_email(db, email=obj_in.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    db_user = user.build(obj_in=usr_schemas.UserCreate(email=obj_in.email, name=obj_in.name, password=obj_in.password))
    try:
        db.add(db_user)
        await db.flush()
        if obj_in.invite_code:
            await invite_code.consume(db, code=obj_in.invite_code, user_id=db_user.id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(db_user)
    logger.info("User %s registered (invite=%s)", db_user.id, bool(obj_in.invite_code))
    return db_user
