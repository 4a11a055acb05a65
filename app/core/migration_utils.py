# app/core/migration_utils.py

"""
Alembic 리비전에서 사용하는 멱등(idempotent) DDL 생성 헬퍼 모듈입니다.

모든 함수는 SQL 문자열만 만들어 반환하므로 DB 없이 테스트할 수 있고,
리비전에서는 `op.execute(...)`로 실행합니다. 같은 리비전을 여러 번 적용해도
이미 존재하는 컬럼/인덱스/제약/enum 값은 건너뜁니다.

PostgreSQL enum 값은 추가만 가능합니다. 값 제거용 헬퍼는 제공하지 않습니다.
"""

import re
from typing import Iterable, Optional

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _ident(name: str) -> str:
    """식별자를 검증하고 큰따옴표로 감쌉니다."""
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return f'"{name}"'


def _literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def qualified(schema: Optional[str], name: str) -> str:
    """스키마 한정 이름 ("schema"."name")을 만듭니다."""
    return f"{_ident(schema)}.{_ident(name)}" if schema else _ident(name)


def add_column_if_not_exists(table: str, column: str, ddl_type: str, *, schema: Optional[str] = None) -> str:
    return f"ALTER TABLE {qualified(schema, table)} ADD COLUMN IF NOT EXISTS {_ident(column)} {ddl_type}"


def create_index_if_not_exists(
    index_name: str, table: str, columns: Iterable[str], *, schema: Optional[str] = None, unique: bool = False
) -> str:
    cols = ", ".join(_ident(col) for col in columns)
    unique_sql = "UNIQUE " if unique else ""
    return f"CREATE {unique_sql}INDEX IF NOT EXISTS {_ident(index_name)} ON {qualified(schema, table)} ({cols})"


def add_foreign_key_if_not_exists(
    constraint_name: str,
    table: str,
    column: str,
    ref_table: str,
    ref_column: str = "id",
    *,
    schema: Optional[str] = None,
    ref_schema: Optional[str] = None,
    on_delete: str = "SET NULL",
) -> str:
    """
    pg_constraint 에 같은 이름의 제약이 없을 때만 FK 를 추가하는 DO 블록을 만듭니다.
    """
    if on_delete.upper() not in {"SET NULL", "CASCADE", "RESTRICT", "NO ACTION"}:
        raise ValueError(f"Unsupported ON DELETE action: {on_delete}")
    return (
        "DO $$\n"
        "BEGIN\n"
        f"    IF NOT EXISTS (SELECT 1 FROM pg_constraint WHERE conname = {_literal(constraint_name)}) THEN\n"
        f"        ALTER TABLE {qualified(schema, table)}\n"
        f"            ADD CONSTRAINT {_ident(constraint_name)} FOREIGN KEY ({_ident(column)})\n"
        f"            REFERENCES {qualified(ref_schema if ref_schema is not None else schema, ref_table)} ({_ident(ref_column)})\n"
        f"            ON DELETE {on_delete.upper()} ON UPDATE CASCADE;\n"
        "    END IF;\n"
        "END $$;"
    )


def drop_constraint_if_exists(constraint_name: str, table: str, *, schema: Optional[str] = None) -> str:
    return f"ALTER TABLE {qualified(schema, table)} DROP CONSTRAINT IF EXISTS {_ident(constraint_name)}"


def create_enum_if_not_exists(type_name: str, values: Iterable[str], *, schema: Optional[str] = None) -> str:
    """enum 타입이 이미 있으면(duplicate_object) 조용히 건너뛰는 DO 블록을 만듭니다."""
    values = list(values)
    if not values:
        raise ValueError("An enum type needs at least one value")
    labels = ", ".join(_literal(v) for v in values)
    return (
        "DO $$\n"
        "BEGIN\n"
        f"    CREATE TYPE {qualified(schema, type_name)} AS ENUM ({labels});\n"
        "EXCEPTION\n"
        "    WHEN duplicate_object THEN NULL;\n"
        "END $$;"
    )


def add_enum_value(type_name: str, value: str, *, schema: Optional[str] = None) -> str:
    """
    enum 값 추가 (append-only). PostgreSQL 12 미만에서는 트랜잭션 밖에서 실행해야 하므로
    리비전에서는 `op.get_context().autocommit_block()` 안에서 실행합니다.
    """
    return f"ALTER TYPE {qualified(schema, type_name)} ADD VALUE IF NOT EXISTS {_literal(value)}"
