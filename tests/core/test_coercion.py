# tests/core/test_coercion.py

"""
app.core.coercion 변환 함수와 DTO 필드 별칭에 대한 단위 테스트입니다.
"""

import math

import pytest
from pydantic import BaseModel, ValidationError

from app.core import coercion
from app.core.coercion import CoercedBool, FolderId, JsonValue, Keyword, SearchLimit, StringList


class _Query(BaseModel):
    flag: CoercedBool = None
    keyword: Keyword = None
    limit: SearchLimit = None
    tags: StringList = None
    folder_id: FolderId = None
    value: JsonValue = None


# =============================================================================
# 1. 불리언
# =============================================================================
@pytest.mark.parametrize("raw", ["on", "1", "yes", "true", "TRUE", "Yes", True, 1])
def test_to_boolean_truthy(raw):
    assert coercion.to_boolean(raw) is True


@pytest.mark.parametrize("raw", ["off", "0", "no", "false", "maybe", " yes ", False, 0])
def test_to_boolean_falsy(raw):
    assert coercion.to_boolean(raw) is False


@pytest.mark.parametrize("raw", ["", None])
def test_to_boolean_blank_is_absent(raw):
    assert coercion.to_boolean(raw) is None


# =============================================================================
# 2. limit
# =============================================================================
@pytest.mark.parametrize(
    "raw, expected",
    [("10", 10), (12.9, 12), ("7.99", 7), (-3.7, -3), ("abc", None), ("", None), (None, None),
     (math.inf, None), ("nan", None), ("-inf", None), (True, None)],
)
def test_to_limit(raw, expected):
    assert coercion.to_limit(raw) == expected


def test_search_limit_bounds():
    assert _Query(limit="50").limit == 50
    assert _Query(limit="1.9").limit == 1
    assert _Query(limit="inf").limit is None
    assert _Query(limit="abc").limit is None
    assert _Query().limit is None
    assert _Query(keyword=None).keyword is None
    with pytest.raises(ValidationError):
        _Query(limit="51")
    with pytest.raises(ValidationError):
        _Query(limit="0.5")


# =============================================================================
# 3. 정수 / 검색어 / 배열
# =============================================================================
def test_to_int_parses_leading_digits_and_floors_numbers():
    assert coercion.to_int("12abc") == 12
    assert coercion.to_int(" -4") == -4
    assert coercion.to_int(3.7) == 3
    assert coercion.to_int(-3.2) == -4
    assert coercion.to_int("abc") is None
    assert coercion.to_int(True) is None


def test_keyword_is_trimmed_and_blank_is_absent():
    assert _Query(keyword="  회사  ").keyword == "회사"
    assert _Query(keyword="   ").keyword is None
    assert _Query(keyword=123).keyword is None
    with pytest.raises(ValidationError):
        _Query(keyword="x" * 101)


def test_string_list_from_csv_and_list():
    assert _Query(tags="a, b,,c ").tags == ["a", "b", "c"]
    assert _Query(tags=[" x ", "", 3, "y"]).tags == ["x", "y"]
    assert _Query(tags=" , ").tags is None


# =============================================================================
# 4. JSON / 폴더 ID
# =============================================================================
def test_json_object_accepts_only_objects():
    assert coercion.to_json_object('{"a": 1}') == {"a": 1}
    assert coercion.to_json_object({"b": 2}) == {"b": 2}
    assert coercion.to_json_object("[1, 2]") is None
    assert coercion.to_json_object("not json") is None


def test_json_value_parses_or_keeps_trimmed_string():
    assert _Query(value=" 42 ").value == 42
    assert _Query(value='{"k": [1]}').value == {"k": [1]}
    assert _Query(value="  plain text ").value == "plain text"
    assert _Query(value="").value is None
    assert _Query(value=[1, 2]).value == [1, 2]


@pytest.mark.parametrize("raw", [None, "", "null", " NULL "])
def test_folder_id_null_means_root(raw):
    assert _Query(folder_id=raw).folder_id is None


def test_folder_id_numeric_string():
    assert _Query(folder_id="7").folder_id == 7
    with pytest.raises(ValidationError):
        _Query(folder_id="root")
