"""SQLAlchemy ORM models for tenants, users, and the diagnosis catalog."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, ForeignKey, Index, Integer, String, Text, Uuid, func, text
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from triage_catalog.db.base import Base
from triage_catalog.db.enums import DEFAULT_CODING_SYSTEM


JsonType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Auth & Tenant Models
# =============================================================================

class Organization(Base):
    """
    A tenant/company in the multi-tenant system.

    Organization-scoped diagnoses are owned by the organization's
    company admin, not stored against the organization row.
    """
    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow,
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False
    )

    # Relationships
    users: Mapped[list["User"]] = relationship(back_populates="organization")


class User(Base):
    """
    Application user and source of the request principal.

    A null organization_id marks an individual (unaffiliated) account.
    Role and organization are read from this row on every request.
    """
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_org_role", "organization_id", "role", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True
    )
    token_version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        server_default=text("1"),
        nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default=text("true"),
        nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow,
        server_default=func.now(),
        nullable=False
    )

    # Relationships
    organization: Mapped["Organization | None"] = relationship(back_populates="users")


# =============================================================================
# Diagnosis Catalog
# =============================================================================

class Diagnosis(Base):
    """
    A catalog entry visible at one of three scopes.

    - global: platform-wide, organization_id is NULL
    - organization: owned by the org's company admin, organization_id set
    - personal: owned by one clinician, organization_id is NULL

    name, coding_system, code, scope, owner_id and organization_id are
    write-once. organization_key mirrors organization_id as a non-null
    string so the partial unique indexes below treat "no organization"
    as one value.
    """
    __tablename__ = "diagnoses"
    __table_args__ = (
        CheckConstraint(
            "(scope = 'organization' AND organization_id IS NOT NULL) "
            "OR (scope <> 'organization' AND organization_id IS NULL)",
            name="ck_diagnoses_scope_org",
        ),
        Index(
            "uq_diagnoses_name_dsm5",
            "name", "dsm5_code", "organization_key",
            unique=True,
            postgresql_where=text("dsm5_code IS NOT NULL"),
            sqlite_where=text("dsm5_code IS NOT NULL"),
        ),
        Index(
            "uq_diagnoses_name_icd10",
            "name", "icd10_code", "organization_key",
            unique=True,
            postgresql_where=text("icd10_code IS NOT NULL"),
            sqlite_where=text("icd10_code IS NOT NULL"),
        ),
        Index(
            "uq_diagnoses_name_system_code",
            "name", "coding_system", "code", "organization_key",
            unique=True,
            postgresql_where=text("code IS NOT NULL"),
            sqlite_where=text("code IS NOT NULL"),
        ),
        Index("idx_diagnoses_scope_owner", "scope", "owner_id"),
        Index("idx_diagnoses_created", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Identity (write-once)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    coding_system: Mapped[str] = mapped_column(
        String(10),
        default=DEFAULT_CODING_SYSTEM.value,
        server_default=text(f"'{DEFAULT_CODING_SYSTEM.value}'"),
        nullable=False
    )
    code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    dsm5_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    icd10_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Visibility (write-once)
    scope: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )
    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True
    )
    organization_key: Mapped[str] = mapped_column(
        String(36),
        default="",
        server_default=text("''"),
        nullable=False
    )

    # Matching
    symptoms: Mapped[list] = mapped_column(JsonType, default=list, nullable=False)

    # Clinical metadata
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    section: Mapped[str | None] = mapped_column(String(255), nullable=True)
    chapter: Mapped[str | None] = mapped_column(String(255), nullable=True)
    key_symptoms_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    full_criteria_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    typical_duration: Mapped[dict | None] = mapped_column(JsonType, nullable=True)  # {min, unit, max}
    duration_context: Mapped[str | None] = mapped_column(Text, nullable=True)
    severity: Mapped[Any] = mapped_column(JsonType, nullable=True)
    course: Mapped[str | None] = mapped_column(String(20), nullable=True)
    specifiers: Mapped[Any] = mapped_column(JsonType, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    criteria_page: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow,
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False
    )

    # Relationships
    owner: Mapped["User"] = relationship()
    note_entries: Mapped[list["DiagnosisNote"]] = relationship(
        back_populates="diagnosis",
        cascade="all, delete-orphan",
        order_by="DiagnosisNote.created_at.desc()",
    )

    @validates("organization_id")
    def _sync_organization_key(self, key, value):
        self.organization_key = str(value) if value else ""
        return value


class DiagnosisNote(Base):
    """
    Clinician note attached to a diagnosis.

    Readable by anyone who can read the diagnosis; editable and
    deletable only by its author.
    """
    __tablename__ = "diagnosis_notes"
    __table_args__ = (
        Index("idx_diagnosis_notes_lookup", "diagnosis_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    diagnosis_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("diagnoses.id", ondelete="CASCADE"),
        nullable=False
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)  # HTML allowed, sanitized

    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow,
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False
    )

    diagnosis: Mapped["Diagnosis"] = relationship(back_populates="note_entries")
    author: Mapped["User"] = relationship()


# =============================================================================
# Symptom Vocabulary
# =============================================================================

class Symptom(Base):
    """
    Previously seen symptom name, used only for autocomplete suggestions.

    key is the normalized token; name is its display form ("Depressed mood").
    """
    __tablename__ = "symptoms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow,
        server_default=func.now(),
        nullable=False
    )
