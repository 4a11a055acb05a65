# app/domains/corp/schemas.py

"""
'corp' 도메인 (회사, 등록 신청, 동의, 유한책임회사 등록 정보)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.coercion import CoercedBool, Keyword, SearchLimit
from app.domains.wf import schemas as wf_schemas
from . import models as corp_models

RATIO_TOLERANCE = 1e-6


# =============================================================================
# 1. 유한책임회사 등록 입력 스키마
# =============================================================================
class LlcShareholderIn(BaseModel):
    kind: corp_models.ShareholderKind
    user_id: Optional[int] = None
    company_id: Optional[int] = None
    ratio: float = Field(..., ge=0, le=100, description="출자 비율 (%)")
    voting_ratio: Optional[float] = Field(None, ge=0, le=100, description="의결권 비율 (%), 생략 시 출자 비율")

    @model_validator(mode="after")
    def check_holder(self) -> "LlcShareholderIn":
        if self.kind == corp_models.ShareholderKind.USER and self.user_id is None:
            raise ValueError("user_id is required for a USER shareholder")
        if self.kind == corp_models.ShareholderKind.COMPANY and self.company_id is None:
            raise ValueError("company_id is required for a COMPANY shareholder")
        return self


class LlcDirectorsIn(BaseModel):
    director_ids: List[int] = Field(default_factory=list)
    chairperson_id: Optional[int] = None
    vice_chairperson_id: Optional[int] = None


class LlcManagersIn(BaseModel):
    manager_id: Optional[int] = None
    deputy_manager_id: Optional[int] = None


class LlcSupervisorsIn(BaseModel):
    supervisor_ids: List[int] = Field(default_factory=list)
    chairperson_id: Optional[int] = None


class LlcOperatingTermIn(BaseModel):
    type: corp_models.OperatingTermType
    years: Optional[int] = Field(None, ge=1, le=200)

    @model_validator(mode="after")
    def check_years(self) -> "LlcOperatingTermIn":
        if self.type == corp_models.OperatingTermType.YEARS and self.years is None:
            raise ValueError("years is required when the operating term type is YEARS")
        if self.type == corp_models.OperatingTermType.LONG_TERM:
            self.years = None
        return self


class LlcRegistrationIn(BaseModel):
    domicile_division_id: str = Field(..., min_length=1, max_length=64)
    domicile_division_path: Optional[Dict[str, Any]] = None
    registered_capital: float = Field(..., ge=0)
    administrative_division_level: int = Field(..., ge=1, le=3)
    brand_name: str = Field(..., min_length=1, max_length=40)
    industry_feature: str = Field(..., min_length=1, max_length=40)
    registration_authority_company_id: Optional[int] = None
    registration_authority_name: Optional[str] = Field(None, min_length=1, max_length=80)
    domicile_address: str = Field(..., min_length=1, max_length=200)
    operating_term: LlcOperatingTermIn
    business_scope: str = Field(..., min_length=1, max_length=2000)
    shareholders: List[LlcShareholderIn] = Field(..., min_length=1)
    voting_rights_mode: corp_models.VotingRightsMode = corp_models.VotingRightsMode.BY_CAPITAL_RATIO
    directors: LlcDirectorsIn = Field(default_factory=LlcDirectorsIn)
    managers: LlcManagersIn = Field(default_factory=LlcManagersIn)
    legal_representative_id: int
    supervisors: Optional[LlcSupervisorsIn] = None
    financial_officer_id: Optional[int] = None

    @model_validator(mode="after")
    def check_registration(self) -> "LlcRegistrationIn":
        if self.registration_authority_company_id is None and not self.registration_authority_name:
            raise ValueError("registration_authority_company_id or registration_authority_name is required")

        total = sum(s.ratio for s in self.shareholders)
        if abs(total - 100) > RATIO_TOLERANCE:
            raise ValueError("Shareholder ratios must sum to 100")

        if self.voting_rights_mode == corp_models.VotingRightsMode.CUSTOM:
            if any(s.voting_ratio is None for s in self.shareholders):
                raise ValueError("voting_ratio is required for every shareholder in CUSTOM mode")
            if abs(sum(s.voting_ratio for s in self.shareholders) - 100) > RATIO_TOLERANCE:
                raise ValueError("Shareholder voting ratios must sum to 100")
        else:
            for s in self.shareholders:
                s.voting_ratio = s.ratio
        return self


class CompanyRegistrationCreate(BaseModel):
    """유한책임회사 등록 신청"""
    name: str = Field(..., min_length=2, max_length=120)
    summary: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=64)
    llc: LlcRegistrationIn

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Company name must be at least 2 characters")
        return v


# =============================================================================
# 2. 회사 (Company) 스키마
# =============================================================================
class CompanyRead(BaseModel):
    id: int
    name: str
    slug: str
    status: corp_models.CompanyStatus
    category: Optional[str] = None
    summary: Optional[str] = None
    legal_representative_id: Optional[int] = None
    administrative_division_id: Optional[str] = None
    administrative_division_name: Optional[str] = None
    administrative_division_level: Optional[int] = None
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AdministrativeDivisionUpdate(BaseModel):
    """관리자 행정구역 지정. division_id 를 null 로 보내면 세 필드를 모두 비웁니다."""
    division_id: Optional[str] = Field(None, min_length=1, max_length=64)
    name: Optional[str] = Field(None, max_length=120)
    level: Optional[int] = Field(None, ge=1, le=3)

    @model_validator(mode="after")
    def check_complete(self) -> "AdministrativeDivisionUpdate":
        if self.division_id is not None and (self.name is None or self.level is None):
            raise ValueError("name and level are required when division_id is set")
        return self


class CompanyQuery(BaseModel):
    keyword: Keyword = None
    status: Optional[corp_models.CompanyStatus] = None
    limit: SearchLimit = None


# =============================================================================
# 3. 신청 (CompanyApplication) / 동의 (Consent) 스키마
# =============================================================================
class ConsentRead(BaseModel):
    id: int
    required_user_id: int
    role: corp_models.CompanyApplicationConsentRole
    shareholder_company_id: Optional[int] = None
    status: corp_models.ConsentStatus
    decided_at: Optional[datetime] = None
    comment: Optional[str] = None

    class Config:
        from_attributes = True


class ApplicationRead(BaseModel):
    id: int
    company_id: int
    workflow_instance_id: Optional[int] = None
    workflow_code: str
    type: corp_models.ApplicationType
    status: corp_models.ApplicationStatus
    current_stage: Optional[str] = None
    consent_status: corp_models.ConsentStatus
    consent_completed_at: Optional[datetime] = None
    applicant_id: Optional[int] = None
    submitted_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ApplicationDetail(ApplicationRead):
    company: CompanyRead
    consents: List[ConsentRead] = []
    available_actions: List[wf_schemas.AvailableAction] = []
    payload: Optional[Dict[str, Any]] = None


class ApplicationQuery(BaseModel):
    status: Optional[corp_models.ApplicationStatus] = None
    mine: CoercedBool = None
    limit: SearchLimit = None


class ConsentDecision(BaseModel):
    comment: Optional[str] = Field(None, max_length=500)


class ApplicationActionRequest(wf_schemas.TransitionRequest):
    """신청에 대한 워크플로 액션 (approve, request_changes, reject, resubmit, withdraw, ...)"""
