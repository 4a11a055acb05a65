# tests/domains/test_corp_schemas.py

"""
'corp' 도메인 등록 신청 DTO 검증과 동의 대상 산출 로직에 대한 단위 테스트입니다. DB 를 사용하지 않습니다.
"""

import pytest
from pydantic import ValidationError

from app.domains.corp import models as corp_models
from app.domains.corp import schemas as corp_schemas
from app.domains.corp.services import build_required_consents

CR = corp_models.CompanyApplicationConsentRole


def llc_payload(**overrides) -> dict:
    payload = {
        "domicile_division_id": "11-110",
        "domicile_division_path": {"level1": {"id": "11", "name": "서울"}, "level2": {"id": "11-110", "name": "종로구"}},
        "registered_capital": 1000000,
        "administrative_division_level": 2,
        "brand_name": "한빛",
        "industry_feature": "소프트웨어",
        "registration_authority_name": "종로구 등기소",
        "domicile_address": "서울 종로구 1",
        "operating_term": {"type": "LONG_TERM"},
        "business_scope": "소프트웨어 개발",
        "shareholders": [{"kind": "USER", "user_id": 1, "ratio": 100}],
        "legal_representative_id": 1,
    }
    payload.update(overrides)
    return payload


# =============================================================================
# 1. LLC 등록 입력 검증
# =============================================================================
def test_voting_ratio_defaults_to_capital_ratio():
    llc = corp_schemas.LlcRegistrationIn.model_validate(
        llc_payload(shareholders=[
            {"kind": "USER", "user_id": 1, "ratio": 60},
            {"kind": "USER", "user_id": 2, "ratio": 40, "voting_ratio": 10},
        ])
    )
    assert [s.voting_ratio for s in llc.shareholders] == [60, 40]


def test_ratios_must_sum_to_100():
    with pytest.raises(ValidationError):
        corp_schemas.LlcRegistrationIn.model_validate(
            llc_payload(shareholders=[{"kind": "USER", "user_id": 1, "ratio": 99.5}])
        )


def test_custom_voting_rights_require_all_ratios():
    shareholders = [
        {"kind": "USER", "user_id": 1, "ratio": 50, "voting_ratio": 70},
        {"kind": "USER", "user_id": 2, "ratio": 50},
    ]
    with pytest.raises(ValidationError):
        corp_schemas.LlcRegistrationIn.model_validate(llc_payload(voting_rights_mode="CUSTOM", shareholders=shareholders))

    shareholders[1]["voting_ratio"] = 30
    llc = corp_schemas.LlcRegistrationIn.model_validate(llc_payload(voting_rights_mode="CUSTOM", shareholders=shareholders))
    assert [s.voting_ratio for s in llc.shareholders] == [70, 30]


def test_shareholder_kind_requires_matching_id():
    with pytest.raises(ValidationError):
        corp_schemas.LlcShareholderIn(kind="COMPANY", user_id=1, ratio=100)
    with pytest.raises(ValidationError):
        corp_schemas.LlcShareholderIn(kind="USER", company_id=1, ratio=100)


def test_registration_authority_is_required():
    with pytest.raises(ValidationError):
        corp_schemas.LlcRegistrationIn.model_validate(llc_payload(registration_authority_name=None))
    llc = corp_schemas.LlcRegistrationIn.model_validate(
        llc_payload(registration_authority_name=None, registration_authority_company_id=5)
    )
    assert llc.registration_authority_company_id == 5


def test_operating_term():
    assert corp_schemas.LlcOperatingTermIn(type="LONG_TERM", years=10).years is None
    assert corp_schemas.LlcOperatingTermIn(type="YEARS", years=20).years == 20
    with pytest.raises(ValidationError):
        corp_schemas.LlcOperatingTermIn(type="YEARS")


def test_company_name_is_stripped():
    registration = corp_schemas.CompanyRegistrationCreate.model_validate({"name": "  한빛 유한회사 ", "llc": llc_payload()})
    assert registration.name == "한빛 유한회사"
    with pytest.raises(ValidationError):
        corp_schemas.CompanyRegistrationCreate.model_validate({"name": " 가 ", "llc": llc_payload()})


def test_administrative_division_update():
    assert corp_schemas.AdministrativeDivisionUpdate(division_id=None).division_id is None
    with pytest.raises(ValidationError):
        corp_schemas.AdministrativeDivisionUpdate(division_id="11-110", name="종로구")
    with pytest.raises(ValidationError):
        corp_schemas.AdministrativeDivisionUpdate(division_id="11-110", name="종로구", level=4)


def test_company_query_coerces_raw_values():
    query = corp_schemas.CompanyQuery.model_validate({"keyword": "  한빛 ", "limit": "5.9"})
    assert query.keyword == "한빛"
    assert query.limit == 5
    with pytest.raises(ValidationError):
        corp_schemas.CompanyQuery.model_validate({"limit": "100"})


# =============================================================================
# 2. 필요한 동의 목록
# =============================================================================
def test_build_required_consents():
    llc = corp_schemas.LlcRegistrationIn.model_validate(
        llc_payload(
            shareholders=[
                {"kind": "USER", "user_id": 1, "ratio": 50},
                {"kind": "USER", "user_id": 2, "ratio": 30},
                {"kind": "COMPANY", "company_id": 77, "ratio": 20},
            ],
            directors={"director_ids": [2, 3], "chairperson_id": 3},
            managers={"manager_id": 4},
            financial_officer_id=4,
        )
    )
    shareholder_company = corp_models.Company(id=77, name="주주 회사", slug="holder", legal_representative_id=9)

    consents = build_required_consents(llc, {77: shareholder_company})

    assert consents == {
        (1, CR.LEGAL_REPRESENTATIVE): None,
        (1, CR.SHAREHOLDER_USER): None,
        (2, CR.SHAREHOLDER_USER): None,
        (9, CR.SHAREHOLDER_COMPANY_LEGAL): 77,
        (2, CR.DIRECTOR): None,
        (3, CR.DIRECTOR): None,
        (3, CR.CHAIRPERSON): None,
        (4, CR.MANAGER): None,
        (4, CR.FINANCIAL_OFFICER): None,
    }
