"""
shared/models/models.py
All SQLAlchemy ORM models for the astrologer marketplace back office.
UUID primary keys for top-level records, integer keys for astrologer child rows.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from config.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ── Enumerations ──────────────────────────────────────────────

class RoleName(str, PyEnum):
    """Role names the authorization policy refers to. Roles themselves are data."""
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"


class Gender(str, PyEnum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class ApprovalStatus(str, PyEnum):
    PENDING = "PENDING"
    INTERVIEW = "INTERVIEW"
    DOCUMENT_VERIFICATION = "DOCUMENT_VERIFICATION"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# Still moving through onboarding
IN_REVIEW_STATUSES = (
    ApprovalStatus.PENDING,
    ApprovalStatus.INTERVIEW,
    ApprovalStatus.DOCUMENT_VERIFICATION,
)


class InterviewStatus(str, PyEnum):
    SCHEDULED = "SCHEDULED"
    PASSED = "PASSED"
    FAILED = "FAILED"
    RESCHEDULED = "RESCHEDULED"


class DocumentStatus(str, PyEnum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class DocumentType(str, PyEnum):
    ID_PROOF = "ID_PROOF"
    CERTIFICATE = "CERTIFICATE"
    EXPERIENCE_PROOF = "EXPERIENCE_PROOF"


class RejectionStage(str, PyEnum):
    PROFILE = "PROFILE"
    INTERVIEW = "INTERVIEW"
    DOCUMENT = "DOCUMENT"


class AuditOutcome(str, PyEnum):
    SUCCESS = "SUCCESS"
    DENIED = "DENIED"
    FAILED = "FAILED"


# ── Mixins ────────────────────────────────────────────────────

class TimestampMixin:
    """Adds created_at and updated_at to any model."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# ── Access Control ────────────────────────────────────────────

class Permission(TimestampMixin, Base):
    """Named capability. Bundled into roles; not evaluated by the guard."""
    __tablename__ = "permissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("ix_permissions_created_at", "created_at"),)

    def __repr__(self) -> str:
        return f"<Permission {self.name}>"


class Role(TimestampMixin, Base):
    """Named bundle of permissions. Each admin holds exactly one role."""
    __tablename__ = "roles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    permission_links: Mapped[List["RolePermission"]] = relationship(
        back_populates="role",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_roles_created_at", "created_at"),)

    @property
    def permissions(self) -> List[Permission]:
        return [link.permission for link in self.permission_links]

    def __repr__(self) -> str:
        return f"<Role {self.name}>"


class RolePermission(Base):
    """Join row between Role and Permission."""
    __tablename__ = "role_permissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    role_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False
    )
    permission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("permissions.id", ondelete="RESTRICT"), nullable=False
    )

    role: Mapped["Role"] = relationship(back_populates="permission_links")
    permission: Mapped["Permission"] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
        Index("ix_role_permissions_permission_id", "permission_id"),
    )


class Admin(TimestampMixin, Base):
    """Internal staff identity with a single role."""
    __tablename__ = "admins"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone_no: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    refresh_token_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    refresh_token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    role_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("roles.id", ondelete="RESTRICT"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    role: Mapped["Role"] = relationship(lazy="selectin")

    __table_args__ = (
        Index("ix_admins_role_id", "role_id"),
        Index("ix_admins_is_active", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<Admin {self.email}>"


# ── End Users ─────────────────────────────────────────────────

class User(TimestampMixin, Base):
    """End customer. Soft-deleted only, never purged."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    mobile: Mapped[Optional[str]] = mapped_column(String(20), unique=True, nullable=True)
    gender: Mapped[Optional[Gender]] = mapped_column(Enum(Gender), nullable=True)
    birth_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    birth_time: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    occupation: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (Index("ix_users_created_at", "created_at"),)

    def __repr__(self) -> str:
        return f"<User {self.mobile}>"


# ── Astrologers ───────────────────────────────────────────────

class Astrologer(TimestampMixin, Base):
    """
    Service-provider profile subject to the approval workflow.
    approval_status is written only by the workflow engine.
    """
    __tablename__ = "astrologers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_pic: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    contact_no: Mapped[str] = mapped_column(String(20), nullable=False)
    gender: Mapped[Gender] = mapped_column(Enum(Gender), nullable=False)
    date_of_birth: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    languages: Mapped[List[str]] = mapped_column(JSONType, default=list, nullable=False)
    skills: Mapped[List[str]] = mapped_column(JSONType, default=list, nullable=False)
    experience: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), default=0, nullable=False)
    about: Mapped[str] = mapped_column(Text, nullable=False)

    approval_status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus), default=ApprovalStatus.PENDING, nullable=False
    )
    admin_remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True
    )

    addresses: Mapped[List["Address"]] = relationship(
        back_populates="astrologer", lazy="selectin", cascade="all, delete-orphan"
    )
    experiences: Mapped[List["ExperiencePlatform"]] = relationship(
        back_populates="astrologer", lazy="selectin", cascade="all, delete-orphan"
    )
    interviews: Mapped[List["Interview"]] = relationship(
        back_populates="astrologer",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="Interview.round_number",
    )
    documents: Mapped[List["AstrologerDocument"]] = relationship(
        back_populates="astrologer", lazy="selectin", cascade="all, delete-orphan"
    )
    rejection_history: Mapped[List["AstrologerRejectionHistory"]] = relationship(
        back_populates="astrologer",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="AstrologerRejectionHistory.id",
    )

    __table_args__ = (
        Index("ix_astrologers_approval_status", "approval_status"),
        Index("ix_astrologers_experience", "experience"),
        Index("ix_astrologers_price", "price"),
        Index("ix_astrologers_rating", "rating"),
    )

    def __repr__(self) -> str:
        return f"<Astrologer {self.email} ({self.approval_status})>"


class Address(Base):
    __tablename__ = "astrologer_addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    astrologer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("astrologers.id", ondelete="CASCADE"), nullable=False
    )
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    pincode: Mapped[str] = mapped_column(String(10), nullable=False)

    astrologer: Mapped["Astrologer"] = relationship(back_populates="addresses")

    __table_args__ = (
        Index("ix_astrologer_addresses_astrologer_id", "astrologer_id"),
        Index("ix_astrologer_addresses_city", "city"),
    )


class ExperiencePlatform(Base):
    """Prior platforms the astrologer has worked on."""
    __tablename__ = "astrologer_experience_platforms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    astrologer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("astrologers.id", ondelete="CASCADE"), nullable=False
    )
    platform_name: Mapped[str] = mapped_column(String(255), nullable=False)
    years_worked: Mapped[int] = mapped_column(Integer, nullable=False)

    astrologer: Mapped["Astrologer"] = relationship(back_populates="experiences")


class Interview(TimestampMixin, Base):
    """One interview round. Round numbers are unique per astrologer."""
    __tablename__ = "interviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    astrologer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("astrologers.id", ondelete="CASCADE"), nullable=False
    )
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    interviewer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[InterviewStatus] = mapped_column(
        Enum(InterviewStatus), default=InterviewStatus.SCHEDULED, nullable=False
    )
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    astrologer: Mapped["Astrologer"] = relationship(back_populates="interviews")

    __table_args__ = (
        UniqueConstraint("astrologer_id", "round_number", name="uq_interview_round"),
        Index("ix_interviews_scheduled_at", "scheduled_at"),
        Index("ix_interviews_status", "status"),
    )


class AstrologerDocument(Base):
    """Uploaded verification document. One per astrologer and type."""
    __tablename__ = "astrologer_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    astrologer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("astrologers.id", ondelete="CASCADE"), nullable=False
    )
    document_type: Mapped[DocumentType] = mapped_column(Enum(DocumentType), nullable=False)
    document_url: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus), default=DocumentStatus.PENDING, nullable=False
    )
    verified_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    astrologer: Mapped["Astrologer"] = relationship(back_populates="documents")

    __table_args__ = (
        UniqueConstraint("astrologer_id", "document_type", name="uq_astrologer_document_type"),
        Index("ix_astrologer_documents_status", "status"),
    )


class AstrologerRejectionHistory(Base):
    """Immutable record of why, when and by whom an astrologer was rejected."""
    __tablename__ = "astrologer_rejection_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    astrologer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("astrologers.id", ondelete="CASCADE"), nullable=False
    )
    stage: Mapped[RejectionStage] = mapped_column(Enum(RejectionStage), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    rejected_by: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    astrologer: Mapped["Astrologer"] = relationship(back_populates="rejection_history")

    __table_args__ = (
        Index("ix_rejection_history_astrologer_id", "astrologer_id"),
        Index("ix_rejection_history_stage", "stage"),
    )


@event.listens_for(AstrologerRejectionHistory, "before_update")
def _refuse_rejection_history_update(mapper, connection, target):
    raise ValueError(
        f"AstrologerRejectionHistory {target.id} is append-only and cannot be modified"
    )


# ── Catalogue ─────────────────────────────────────────────────

class RechargePack(TimestampMixin, Base):
    """Coin/talk-time bundle sold to end users."""
    __tablename__ = "recharge_packs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    coins: Mapped[int] = mapped_column(Integer, nullable=False)
    talktime: Mapped[int] = mapped_column(Integer, nullable=False)
    validity_days: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


# ── Audit ─────────────────────────────────────────────────────

class AdminAuditLog(Base):
    """Immutable log of admin actions and authorization outcomes. Written by the audit worker."""
    __tablename__ = "admin_audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # No FK: entries outlive the admins they mention
    admin_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    outcome: Mapped[AuditOutcome] = mapped_column(
        Enum(AuditOutcome), default=AuditOutcome.SUCCESS, nullable=False
    )
    payload: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_admin_audit_admin_id", "admin_id"),
        Index("ix_admin_audit_created_at", "created_at"),
    )
