"""
shared/schemas/schemas.py
All Pydantic v2 request/response schemas for the back office.
Fields are snake_case in Python and camelCase on the wire.
"""

import uuid
from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from shared.models.models import (
    ApprovalStatus,
    AuditOutcome,
    DocumentStatus,
    DocumentType,
    Gender,
    InterviewStatus,
    RejectionStage,
)

T = TypeVar("T")


# ── Base ──────────────────────────────────────────────────────

class BaseSchema(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Page(BaseSchema, Generic[T]):
    data: List[T]
    total_count: int
    current_page: int
    total_pages: int


class MessageResponse(BaseSchema):
    message: str


# ── Access Control ────────────────────────────────────────────

class PermissionCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class PermissionUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None


class PermissionResponse(BaseSchema):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoleCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    permission_ids: List[uuid.UUID] = Field(default_factory=list)


class RoleUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    # None keeps the current set; a list (even empty) replaces it
    permission_ids: Optional[List[uuid.UUID]] = None


class AssignPermissionsRequest(BaseSchema):
    permission_ids: List[uuid.UUID] = Field(..., min_length=1)


class RoleResponse(BaseSchema):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    permissions: List[PermissionResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoleSummary(BaseSchema):
    id: uuid.UUID
    name: str


# ── Admin ─────────────────────────────────────────────────────

class AdminCreate(BaseSchema):
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    phone_no: str = Field(..., min_length=7, max_length=20)
    password: str = Field(..., min_length=8, max_length=72)
    role_id: uuid.UUID
    department: Optional[str] = Field(None, max_length=100)


class AdminUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    phone_no: Optional[str] = Field(None, min_length=7, max_length=20)
    password: Optional[str] = Field(None, min_length=8, max_length=72)
    role_id: Optional[uuid.UUID] = None
    department: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None


class AdminResponse(BaseSchema):
    id: uuid.UUID
    name: str
    email: str
    phone_no: str
    department: Optional[str] = None
    is_active: bool
    role: RoleSummary
    created_at: Optional[datetime] = None


class AuditLogResponse(BaseSchema):
    id: uuid.UUID
    admin_id: Optional[uuid.UUID] = None
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    outcome: AuditOutcome
    payload: Optional[dict] = None
    created_at: Optional[datetime] = None


# ── Auth ──────────────────────────────────────────────────────

class AdminLoginRequest(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseSchema):
    refresh_token: str = Field(..., min_length=1)


class AdminAuthResponse(BaseSchema):
    admin: AdminResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


# ── User ──────────────────────────────────────────────────────

class UserUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    mobile: Optional[str] = Field(None, pattern=r"^\+?\d{7,15}$")
    gender: Optional[Gender] = None
    birth_date: Optional[datetime] = None
    birth_time: Optional[str] = Field(None, max_length=20)
    occupation: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None


class UserResponse(BaseSchema):
    id: uuid.UUID
    name: Optional[str] = None
    mobile: Optional[str] = None
    gender: Optional[Gender] = None
    birth_date: Optional[datetime] = None
    birth_time: Optional[str] = None
    occupation: Optional[str] = None
    is_active: bool
    is_deleted: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ── Astrologer ────────────────────────────────────────────────

class AddressInput(BaseSchema):
    street: str = Field(..., max_length=255)
    city: str = Field(..., max_length=100)
    state: str = Field(..., max_length=100)
    country: str = Field(..., max_length=100)
    pincode: str = Field(..., max_length=10)


class AddressResponse(AddressInput):
    id: int


class ExperiencePlatformInput(BaseSchema):
    platform_name: str = Field(..., max_length=255)
    years_worked: int = Field(..., ge=0)


class ExperiencePlatformResponse(ExperiencePlatformInput):
    id: int


class AstrologerCreate(BaseSchema):
    profile_pic: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    contact_no: str = Field(..., min_length=7, max_length=20)
    gender: Gender
    date_of_birth: datetime
    languages: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    experience: int = Field(0, ge=0)
    price: float = Field(0, ge=0)
    about: str = Field(..., min_length=1)
    addresses: List[AddressInput] = Field(default_factory=list)
    experiences: List[ExperiencePlatformInput] = Field(default_factory=list)


class AstrologerUpdate(BaseSchema):
    """Profile fields only. Approval status is owned by the workflow endpoints."""
    profile_pic: Optional[str] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    contact_no: Optional[str] = Field(None, min_length=7, max_length=20)
    gender: Optional[Gender] = None
    date_of_birth: Optional[datetime] = None
    languages: Optional[List[str]] = None
    skills: Optional[List[str]] = None
    experience: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    about: Optional[str] = Field(None, min_length=1)


class InterviewResponse(BaseSchema):
    id: int
    astrologer_id: uuid.UUID
    round_number: int
    interviewer_name: str
    scheduled_at: datetime
    status: InterviewStatus
    remarks: Optional[str] = None


class DocumentResponse(BaseSchema):
    id: int
    astrologer_id: uuid.UUID
    document_type: DocumentType
    document_url: str
    status: DocumentStatus
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None


class RejectionHistoryResponse(BaseSchema):
    id: int
    stage: RejectionStage
    reason: str
    rejected_by: str
    created_at: Optional[datetime] = None


class AstrologerResponse(BaseSchema):
    id: uuid.UUID
    profile_pic: str
    name: str
    email: str
    contact_no: str
    gender: Gender
    date_of_birth: datetime
    languages: List[str]
    skills: List[str]
    experience: int
    price: float
    rating: float
    about: str
    approval_status: ApprovalStatus
    admin_remarks: Optional[str] = None
    approved_by_id: Optional[uuid.UUID] = None
    addresses: List[AddressResponse] = []
    experiences: List[ExperiencePlatformResponse] = []
    interviews: List[InterviewResponse] = []
    documents: List[DocumentResponse] = []
    rejection_history: List[RejectionHistoryResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ── Approval Workflow ─────────────────────────────────────────

class InterviewCreate(BaseSchema):
    round_number: int = Field(..., ge=1)
    interviewer_name: str = Field(..., min_length=1, max_length=255)
    scheduled_at: datetime


class InterviewResultUpdate(BaseSchema):
    status: InterviewStatus
    remarks: Optional[str] = None


class DocumentUpload(BaseSchema):
    document_type: DocumentType
    document_url: str = Field(..., min_length=1)


class DocumentVerifyRequest(BaseSchema):
    status: DocumentStatus
    remarks: Optional[str] = None


class RejectAstrologerRequest(BaseSchema):
    # Checked against RejectionStage by the workflow so the error message is stable
    stage: str
    reason: str = Field(..., min_length=1)


# ── Recharge Packs ────────────────────────────────────────────

class RechargePackCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    coins: int = Field(..., ge=0)
    talktime: int = Field(..., ge=0)
    validity_days: int = Field(..., ge=1)
    is_active: bool = True


class RechargePackUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    coins: Optional[int] = Field(None, ge=0)
    talktime: Optional[int] = Field(None, ge=0)
    validity_days: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None


class RechargePackResponse(BaseSchema):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    price: float
    coins: int
    talktime: int
    validity_days: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
