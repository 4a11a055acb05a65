# flake8: noqa
# scripts/seed_workflows.py

import asyncio
import typer

from app.core.database import AsyncSessionLocal, engine
from app.domains.corp.workflows import registration_definition
from app.domains.wf import services as wf_services

cli = typer.Typer()

# 기본으로 등록하는 워크플로 정의 목록
DEFAULT_DEFINITIONS = [registration_definition]


@cli.command()
def main(
    dry_run: bool = typer.Option(False, '--dry-run', help="DB 에 쓰지 않고 등록할 정의만 출력합니다."),
):
    """
    기본 워크플로 정의를 등록하거나 최신 내용으로 갱신합니다 (upsert).
    """
    definitions = [factory() for factory in DEFAULT_DEFINITIONS]
    if dry_run:
        for definition_in in definitions:
            typer.echo(f"{definition_in.code}: states={definition_in.states} initial={definition_in.initial_state}")
        return

    async def run_seed() -> None:
        try:
            async with AsyncSessionLocal() as db:
                for definition_in in definitions:
                    db_definition = await wf_services.upsert_definition(db, definition_in=definition_in)
                    typer.echo(f"워크플로 정의 등록 완료: {db_definition.code} (id={db_definition.id})")
        finally:
            await engine.dispose()

    asyncio.run(run_seed())


if __name__ == "__main__":
    cli()
