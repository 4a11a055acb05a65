# flake8: noqa
# scripts/create_admin.py

import asyncio
import typer
from fastapi import HTTPException
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import AsyncSessionLocal, engine
from app.domains.usr import crud as usr_crud
from app.domains.usr import schemas as usr_schemas
from app.domains.usr.models import UserRole

cli = typer.Typer()


async def create_admin_user(db: AsyncSession, user_in: usr_schemas.UserCreate) -> bool:
    """
    데이터베이스에 관리자 사용자를 생성하는 비동기 함수
    """
    try:
        db_user = await usr_crud.user.create(db, obj_in=user_in)
    except HTTPException as e:
        typer.echo(f"오류: {e.detail} ({user_in.email})", err=True)
        return False
    typer.echo(f"관리자 계정이 생성되었습니다: {db_user.email} (id={db_user.id}, role={db_user.role.name})")
    return True


@cli.command()
def main(
    email: str = typer.Option(
        ..., '--email', '-e',
        prompt="관리자 이메일을 입력하세요",
        help="생성할 관리자 계정의 이메일 주소입니다."
    ),
    password: str = typer.Option(
        ..., '--password', '-p',
        prompt="관리자 비밀번호를 입력하세요",
        hide_input=True,
        confirmation_prompt=True,
        help="생성할 관리자 계정의 비밀번호입니다. (최소 8자 이상)"
    ),
    name: str = typer.Option(
        "Admin", '--name', '-n',
        help="관리자의 표시 이름입니다."
    ),
    superuser: bool = typer.Option(
        False, '--superuser',
        help="ADMIN 대신 SUPERUSER 역할로 생성합니다."
    ),
):
    """
    BizAdmin 관리자(Admin/Superuser) 계정을 생성합니다.
    """
    if len(password) < 8:
        typer.echo("오류: 비밀번호는 최소 8자 이상이어야 합니다.", err=True)
        raise typer.Exit(code=1)

    user_data = usr_schemas.UserCreate(
        email=email,
        name=name,
        password=password,
        role=UserRole.SUPERUSER if superuser else UserRole.ADMIN,
    )

    async def run_creation() -> bool:
        try:
            async with AsyncSessionLocal() as db:
                return await create_admin_user(db=db, user_in=user_data)
        finally:
            await engine.dispose()

    if not asyncio.run(run_creation()):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    cli()
