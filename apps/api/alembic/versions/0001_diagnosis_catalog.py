"""Diagnosis catalog baseline

Revision ID: 0001_diagnosis_catalog
Revises:
Create Date: 2026-10-16

Creates tenants, users, the diagnosis catalog with its notes, and the
symptom vocabulary. organization_key mirrors organization_id as a
non-null string so the partial unique indexes treat "no organization"
as one value.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_diagnosis_catalog"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=50), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=True),
        sa.Column("token_version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("idx_users_org_role", "users", ["organization_id", "role", "is_active"])

    op.create_table(
        "diagnoses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("coding_system", sa.String(length=10), server_default=sa.text("'DSM-5'"), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=True),
        sa.Column("dsm5_code", sa.String(length=20), nullable=True),
        sa.Column("icd10_code", sa.String(length=20), nullable=True),
        sa.Column("scope", sa.String(length=20), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=True),
        sa.Column("organization_key", sa.String(length=36), server_default=sa.text("''"), nullable=False),
        sa.Column("symptoms", json_type, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("section", sa.String(length=255), nullable=True),
        sa.Column("chapter", sa.String(length=255), nullable=True),
        sa.Column("key_symptoms_summary", sa.Text(), nullable=True),
        sa.Column("full_criteria_summary", sa.Text(), nullable=True),
        sa.Column("typical_duration", json_type, nullable=True),
        sa.Column("duration_context", sa.Text(), nullable=True),
        sa.Column("severity", json_type, nullable=True),
        sa.Column("course", sa.String(length=20), nullable=True),
        sa.Column("specifiers", json_type, nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("criteria_page", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "(scope = 'organization' AND organization_id IS NOT NULL) "
            "OR (scope <> 'organization' AND organization_id IS NULL)",
            name="ck_diagnoses_scope_org",
        ),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_diagnoses_scope", "diagnoses", ["scope"])
    op.create_index("idx_diagnoses_scope_owner", "diagnoses", ["scope", "owner_id"])
    op.create_index("idx_diagnoses_created", "diagnoses", ["created_at"])
    op.create_index(
        "uq_diagnoses_name_dsm5",
        "diagnoses",
        ["name", "dsm5_code", "organization_key"],
        unique=True,
        postgresql_where=sa.text("dsm5_code IS NOT NULL"),
        sqlite_where=sa.text("dsm5_code IS NOT NULL"),
    )
    op.create_index(
        "uq_diagnoses_name_icd10",
        "diagnoses",
        ["name", "icd10_code", "organization_key"],
        unique=True,
        postgresql_where=sa.text("icd10_code IS NOT NULL"),
        sqlite_where=sa.text("icd10_code IS NOT NULL"),
    )
    op.create_index(
        "uq_diagnoses_name_system_code",
        "diagnoses",
        ["name", "coding_system", "code", "organization_key"],
        unique=True,
        postgresql_where=sa.text("code IS NOT NULL"),
        sqlite_where=sa.text("code IS NOT NULL"),
    )

    op.create_table(
        "diagnosis_notes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("diagnosis_id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["diagnosis_id"], ["diagnoses.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_diagnosis_notes_lookup", "diagnosis_notes", ["diagnosis_id", "created_at"])

    op.create_table(
        "symptoms",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("symptoms")
    op.drop_index("idx_diagnosis_notes_lookup", table_name="diagnosis_notes")
    op.drop_table("diagnosis_notes")
    op.drop_index("uq_diagnoses_name_system_code", table_name="diagnoses")
    op.drop_index("uq_diagnoses_name_icd10", table_name="diagnoses")
    op.drop_index("uq_diagnoses_name_dsm5", table_name="diagnoses")
    op.drop_index("idx_diagnoses_created", table_name="diagnoses")
    op.drop_index("idx_diagnoses_scope_owner", table_name="diagnoses")
    op.drop_index("ix_diagnoses_scope", table_name="diagnoses")
    op.drop_table("diagnoses")
    op.drop_index("idx_users_org_role", table_name="users")
    op.drop_table("users")
    op.drop_table("organizations")
