# pgsql_scripts/__init__.py
"""
alembic_utils 로 관리하는 PostgreSQL 함수/트리거 정의 패키지입니다.

주요 파일:
- `functions.py`: pgsql 함수 정의 (워크플로 상태 검사, 첨부파일 업로더 스냅샷)
- `triggers.py`: pgsql trigger 정의

패키지 안의 모듈을 순회하여 ReplaceableEntity(PGFunction, PGTrigger 등) 객체를
`all_db_objects` 에 모읍니다. migrations/env.py 와 리비전 스크립트가 이 목록을 사용합니다.
"""

__title__ = "BizAdmin Pgsql script"
__description__ = "Database function-scripts and trigger-scripts managed by Alembic."
__version__ = "0.1.0"
__all__ = ["all_db_objects"]

import pkgutil
import importlib
import inspect

# PGFunction, PGTrigger 를 부모 클래스 하나로 확인합니다.
from alembic_utils.replaceable_entity import ReplaceableEntity

# 아래의 자동 탐색 로직으로 채워집니다.
all_db_objects = []

# 1. 현재 패키지('pgsql_scripts') 내의 모든 모듈을 찾아 임포트합니다.
for loader, module_name, is_pkg in pkgutil.iter_modules(__path__):
    module = importlib.import_module(f".{module_name}", __package__)

    # 2. 모듈 안의 ReplaceableEntity 객체를 목록에 추가합니다.
    for name, obj in inspect.getmembers(module):
        if isinstance(obj, ReplaceableEntity):
            all_db_objects.append(obj)
