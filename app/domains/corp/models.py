# app/domains/corp/models.py

"""
'corp' 도메인 (PostgreSQL 'corp' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- companies: 회사 (상태, 분류, 행정구역 정보)
- company_applications: 회사 관련 신청 (워크플로 인스턴스와 연결, 상태/단계는 인스턴스와 함께 갱신)
- company_application_consents: 신청에 필요한 관계자 동의
- company_llc_registrations (+ shareholders, officers): 유한책임회사 등록 정보
"""

from typing import Any, Dict, Optional
from datetime import datetime, UTC
from enum import Enum

from sqlalchemy import Enum as SAEnum, Float, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
from sqlmodel import Field, SQLModel, Column


# =============================================================================
# Enum 정의
# =============================================================================
class CompanyStatus(str, Enum):
    UNDER_REVIEW = "UNDER_REVIEW"
    NEEDS_REVISION = "NEEDS_REVISION"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    ARCHIVED = "ARCHIVED"
    REJECTED = "REJECTED"


class ApplicationStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    NEEDS_CHANGES = "NEEDS_CHANGES"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"


class ApplicationType(str, Enum):
    REGISTRATION = "REGISTRATION"


class ConsentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class CompanyApplicationConsentRole(str, Enum):
    """DB 의 enum 타입(corp.company_application_consent_role). 값은 추가만 가능합니다."""
    LEGAL_REPRESENTATIVE = "LEGAL_REPRESENTATIVE"
    SHAREHOLDER_USER = "SHAREHOLDER_USER"
    SHAREHOLDER_COMPANY_LEGAL = "SHAREHOLDER_COMPANY_LEGAL"
    DIRECTOR = "DIRECTOR"
    CHAIRPERSON = "CHAIRPERSON"
    VICE_CHAIRPERSON = "VICE_CHAIRPERSON"
    MANAGER = "MANAGER"
    DEPUTY_MANAGER = "DEPUTY_MANAGER"
    SUPERVISOR = "SUPERVISOR"
    SUPERVISOR_CHAIRPERSON = "SUPERVISOR_CHAIRPERSON"
    FINANCIAL_OFFICER = "FINANCIAL_OFFICER"
    TRANSFEREE_USER = "TRANSFEREE_USER"
    TRANSFEREE_COMPANY_LEGAL = "TRANSFEREE_COMPANY_LEGAL"


class CompanyLlcOfficerRole(str, Enum):
    LEGAL_REPRESENTATIVE = "LEGAL_REPRESENTATIVE"
    DIRECTOR = "DIRECTOR"
    CHAIRPERSON = "CHAIRPERSON"
    VICE_CHAIRPERSON = "VICE_CHAIRPERSON"
    MANAGER = "MANAGER"
    DEPUTY_MANAGER = "DEPUTY_MANAGER"
    SUPERVISOR = "SUPERVISOR"
    SUPERVISOR_CHAIRPERSON = "SUPERVISOR_CHAIRPERSON"
    FINANCIAL_OFFICER = "FINANCIAL_OFFICER"


class ShareholderKind(str, Enum):
    USER = "USER"
    COMPANY = "COMPANY"


class OperatingTermType(str, Enum):
    LONG_TERM = "LONG_TERM"
    YEARS = "YEARS"


class VotingRightsMode(str, Enum):
    BY_CAPITAL_RATIO = "BY_CAPITAL_RATIO"
    CUSTOM = "CUSTOM"


CONSENT_ROLE_ENUM_NAME = "company_application_consent_role"


# =============================================================================
# 1. corp.companies 테이블 모델
# =============================================================================
class Company(SQLModel, table=True):
    __tablename__ = "companies"
    __table_args__ = (
        Index("ix_companies_administrative_division_id", "administrative_division_id"),
        {'schema': 'corp'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=120, index=True, description="회사명")
    slug: str = Field(max_length=160, sa_column_kwargs={"unique": True})
    status: CompanyStatus = Field(
        default=CompanyStatus.UNDER_REVIEW, sa_column=Column(String(20), nullable=False, server_default="UNDER_REVIEW")
    )
    category: Optional[str] = Field(default=None, max_length=64, description="회사 분류")
    summary: Optional[str] = Field(default=None, max_length=200)
    legal_representative_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL"), index=True)
    )

    # --- 행정구역 (정식 컬럼) ---
    administrative_division_id: Optional[str] = Field(default=None, max_length=64)
    administrative_division_name: Optional[str] = Field(default=None, max_length=120)
    administrative_division_level: Optional[int] = Field(default=None, ge=1, le=3)

    # 이전 버전의 자유 형식 데이터. 마이그레이션 백필에서만 읽습니다.
    extra: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONB))

    created_by_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL"))
    )
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


# =============================================================================
# 2. corp.company_applications 테이블 모델
# =============================================================================
class CompanyApplication(SQLModel, table=True):
    __tablename__ = "company_applications"
    __table_args__ = {'schema': 'corp'}

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: int = Field(
        sa_column=Column(ForeignKey("corp.companies.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    workflow_instance_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("wf.workflow_instances.id", ondelete="SET NULL"), unique=True),
    )
    workflow_code: str = Field(max_length=100)
    type: ApplicationType = Field(
        default=ApplicationType.REGISTRATION, sa_column=Column(String(32), nullable=False, server_default="REGISTRATION")
    )
    status: ApplicationStatus = Field(
        default=ApplicationStatus.SUBMITTED, sa_column=Column(String(20), nullable=False, server_default="SUBMITTED", index=True)
    )
    current_stage: Optional[str] = Field(default=None, max_length=64, description="워크플로 현재 상태 캐시")
    consent_status: ConsentStatus = Field(
        default=ConsentStatus.PENDING, sa_column=Column(String(20), nullable=False, server_default="PENDING")
    )
    consent_completed_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    applicant_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL"), index=True)
    )
    payload: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONB), description="제출 원본")
    submitted_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    resolved_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


# =============================================================================
# 3. corp.company_application_consents 테이블 모델
# =============================================================================
class CompanyApplicationConsent(SQLModel, table=True):
    __tablename__ = "company_application_consents"
    __table_args__ = (
        UniqueConstraint("application_id", "required_user_id", "role", name="uq_company_application_consents"),
        {'schema': 'corp'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    application_id: int = Field(
        sa_column=Column(ForeignKey("corp.company_applications.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    required_user_id: int = Field(
        sa_column=Column(ForeignKey("usr.users.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    role: CompanyApplicationConsentRole = Field(
        sa_column=Column(
            SAEnum(CompanyApplicationConsentRole, name=CONSENT_ROLE_ENUM_NAME, schema="corp"),
            nullable=False,
        )
    )
    shareholder_company_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("corp.companies.id", ondelete="SET NULL"))
    )
    status: ConsentStatus = Field(
        default=ConsentStatus.PENDING, sa_column=Column(String(20), nullable=False, server_default="PENDING")
    )
    decided_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    comment: Optional[str] = Field(default=None, max_length=500)
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


# =============================================================================
# 4. corp.company_llc_registrations (+ shareholders, officers) 테이블 모델
# =============================================================================
class CompanyLlcRegistration(SQLModel, table=True):
    __tablename__ = "company_llc_registrations"
    __table_args__ = (
        Index("idx_company_llc_reg_authority_company", "registration_authority_company_id"),
        {'schema': 'corp'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: int = Field(
        sa_column=Column(ForeignKey("corp.companies.id", ondelete="CASCADE"), nullable=False, unique=True)
    )
    application_id: int = Field(
        sa_column=Column(ForeignKey("corp.company_applications.id", ondelete="CASCADE"), nullable=False, unique=True)
    )
    domicile_division_id: str = Field(max_length=64)
    domicile_division_path: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONB))
    registered_capital: float = Field(sa_column=Column(Float, nullable=False))
    administrative_division_level: int = Field(ge=1, le=3)
    brand_name: str = Field(max_length=40)
    industry_feature: str = Field(max_length=40)
    registration_authority_company_id: Optional[int] = Field(
        default=None, sa_column=Column(
            ForeignKey("corp.companies.id", ondelete="SET NULL", onupdate="CASCADE", name="fk_company_llc_reg_authority_company")
        )
    )
    # 표시용 (정식 참조는 registration_authority_company_id)
    registration_authority_name: Optional[str] = Field(default=None, max_length=80)
    domicile_address: str = Field(max_length=200)
    operating_term_type: OperatingTermType = Field(sa_column=Column(String(20), nullable=False))
    operating_term_years: Optional[int] = Field(default=None)
    business_scope: str = Field(sa_column=Column(Text, nullable=False))
    voting_rights_mode: VotingRightsMode = Field(
        default=VotingRightsMode.BY_CAPITAL_RATIO,
        sa_column=Column(String(20), nullable=False, server_default="BY_CAPITAL_RATIO"),
    )
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


class CompanyLlcShareholder(SQLModel, table=True):
    __tablename__ = "company_llc_registration_shareholders"
    __table_args__ = {'schema': 'corp'}

    id: Optional[int] = Field(default=None, primary_key=True)
    registration_id: int = Field(
        sa_column=Column(ForeignKey("corp.company_llc_registrations.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    kind: ShareholderKind = Field(sa_column=Column(String(20), nullable=False))
    user_id: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL")))
    company_id: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("corp.companies.id", ondelete="SET NULL")))
    ratio: float = Field(sa_column=Column(Float, nullable=False), description="출자 비율 (%)")
    voting_ratio: float = Field(sa_column=Column(Float, nullable=False), description="의결권 비율 (%)")


class CompanyLlcOfficer(SQLModel, table=True):
    __tablename__ = "company_llc_registration_officers"
    __table_args__ = (
        UniqueConstraint("registration_id", "user_id", "role", name="uq_company_llc_officers"),
        {'schema': 'corp'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    registration_id: int = Field(
        sa_column=Column(ForeignKey("corp.company_llc_registrations.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    user_id: int = Field(sa_column=Column(ForeignKey("usr.users.id", ondelete="CASCADE"), nullable=False, index=True))
    role: CompanyLlcOfficerRole = Field(sa_column=Column(String(40), nullable=False))
