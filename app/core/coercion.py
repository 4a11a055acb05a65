# app/core/coercion.py

"""
요청 DTO 필드의 값 변환(coercion) 함수 모음입니다.

모든 함수는 원시 입력값만으로 결과가 결정되는 순수 함수이며,
Pydantic `BeforeValidator`로 연결되어 **검증 전에** 실행됩니다.
변환 결과 `None`은 '값 없음(absent)'을 의미하고, 업데이트 시에는
`exclude_none=True`로 덤프하여 기존 값을 덮어쓰지 않습니다.

    필드 파이프라인: 원시값 -> coerce(본 모듈) -> 타입/길이/범위/패턴 검증(Pydantic)
"""

import json
import math
import re
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BeforeValidator, Field

TRUTHY_STRINGS = frozenset({"true", "1", "yes", "on"})

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def to_absent_if_blank(value: Any) -> Any:
    """빈 문자열/None 을 absent(None)로 바꿉니다."""
    if _is_blank(value):
        return None
    return value


def to_boolean(value: Any) -> Optional[bool]:
    """
    불리언 변환.
    - "" / None -> absent
    - bool -> 그대로
    - 문자열 -> 'true', '1', 'yes', 'on' (대소문자 무시) 이면 True, 그 외 문자열은 모두 False
    - 숫자 -> 0 이 아니면 True
    """
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in TRUTHY_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    return bool(value)


def to_limit(value: Any) -> Optional[int]:
    """
    목록 조회 limit 변환. 유한한 숫자만 0 방향으로 절삭하여 정수로 만들고,
    그 외(공백, 숫자가 아닌 값, inf/nan)는 absent 로 처리합니다.
    범위([1, 50]) 검증은 필드 제약에서 수행합니다.
    """
    if _is_blank(value) or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return math.trunc(number)


def to_int(value: Any) -> Optional[int]:
    """
    정수 변환. 숫자는 내림(floor), 문자열은 앞부분의 10진 정수만 해석합니다 ("12abc" -> 12).
    해석할 수 없으면 absent.
    """
    if _is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return math.floor(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else None
    return None


def to_keyword(value: Any) -> Optional[str]:
    """검색어 변환: 문자열만 허용하고 앞뒤 공백 제거, 비어 있으면 absent."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def to_string_array(value: Any) -> Optional[List[str]]:
    """
    문자열 배열 변환.
    - list -> 비어 있지 않은 문자열 항목만 (trim)
    - "a, b,c" -> ["a", "b", "c"]
    """
    if isinstance(value, (list, tuple)):
        items = [item.strip() for item in value if isinstance(item, str)]
    elif isinstance(value, str):
        items = [item.strip() for item in value.split(",")]
    else:
        return None
    items = [item for item in items if item]
    return items or None


def to_json_object(value: Any) -> Optional[Dict[str, Any]]:
    """dict 는 그대로, JSON 문자열은 파싱 결과가 객체일 때만 받아들입니다."""
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value.strip():
        try:
            parsed = json.loads(value)
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


def to_json_value(value: Any) -> Any:
    """
    설정 값(config entry value) 변환.
    구조화된 값은 그대로 두고, 문자열은 trim 후 JSON 으로 해석합니다.
    해석에 실패하면 trim 된 문자열 자체를 값으로 사용합니다. 빈 값은 JSON null.
    """
    if value is None:
        return None
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            return json.loads(trimmed)
        except ValueError:
            return trimmed
    return value


def normalize_folder_id(value: Any) -> Any:
    """폴더 ID: None / "" / "null" 은 최상위(root)를 뜻하는 명시적 null 입니다."""
    if value is None:
        return None
    if isinstance(value, str):
        trimmed = value.strip()
        if trimmed == "" or trimmed.lower() == "null":
            return None
        return trimmed
    return value


# =============================================================================
# Pydantic 필드 타입 별칭 (coerce -> validate 파이프라인)
# =============================================================================
CoercedBool = Annotated[Optional[bool], BeforeValidator(to_boolean)]
CoercedInt = Annotated[Optional[int], BeforeValidator(to_int)]
Keyword = Annotated[Optional[Annotated[str, Field(max_length=100)]], BeforeValidator(to_keyword)]
StringList = Annotated[Optional[List[str]], BeforeValidator(to_string_array)]
JsonObject = Annotated[Optional[Dict[str, Any]], BeforeValidator(to_json_object)]
JsonValue = Annotated[Any, BeforeValidator(to_json_value)]
FolderId = Annotated[Optional[int], BeforeValidator(normalize_folder_id)]
SearchLimit = Annotated[Optional[Annotated[int, Field(ge=1, le=50)]], BeforeValidator(to_limit)]
