"""Pydantic schemas for the diagnosis catalog and triage matching.

Wire names are camelCase (codingSystem, ownerId, matchCount, ...); Python
attribute names stay snake_case. Requests accept either form.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
)
from pydantic.alias_generators import to_camel

from triage_catalog.db.enums import CodingSystem, Course, DiagnosisScope, DurationUnit
from triage_catalog.utils.normalization import (
    normalize_code, normalize_name, parse_symptom_field
)


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class TypicalDuration(CamelModel):
    """Typical duration range of a disorder."""

    min: float | None = Field(None, ge=0)
    unit: DurationUnit | None = None
    max: float | None = Field(None, ge=0)

    @model_validator(mode="after")
    def check_range(self) -> "TypicalDuration":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("typicalDuration.min must not exceed typicalDuration.max")
        return self


class _ClinicalFields(CamelModel):
    """Mutable clinical metadata shared by create and update."""

    dsm5_code: str | None = Field(None, max_length=20)
    icd10_code: str | None = Field(None, max_length=20)
    symptoms: list[str] | None = None
    description: str | None = None
    section: str | None = Field(None, max_length=255)
    chapter: str | None = Field(None, max_length=255)
    key_symptoms_summary: str | None = None
    full_criteria_summary: str | None = None
    typical_duration: TypicalDuration | None = None
    duration_context: str | None = None
    severity: str | list[str] | None = None
    course: Course | None = None
    specifiers: str | list[str] | None = None
    notes: str | None = None
    criteria_page: str | None = Field(None, max_length=50)

    @field_validator("symptoms", mode="before")
    @classmethod
    def validate_symptoms(cls, v: Any) -> list[str] | None:
        """Normalize, drop empties and de-duplicate."""
        if v is None:
            return None
        if not isinstance(v, (str, list, tuple)):
            raise ValueError("symptoms must be a list of strings")
        return parse_symptom_field(v)

    @field_validator("dsm5_code", "icd10_code")
    @classmethod
    def validate_codes(cls, v: str | None) -> str | None:
        return normalize_code(v)


class DiagnosisCreate(_ClinicalFields):
    """Request schema for creating a diagnosis."""

    name: str = Field(..., min_length=1, max_length=255)
    coding_system: CodingSystem = CodingSystem.DSM5
    code: str | None = Field(None, max_length=20)
    # Advisory only: honoured for company admins choosing "personal"
    scope: DiagnosisScope | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        cleaned = normalize_name(v)
        if not cleaned:
            raise ValueError("name must not be blank")
        return cleaned

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str | None) -> str | None:
        return normalize_code(v)


class DiagnosisUpdate(_ClinicalFields):
    """
    Request schema for updating a diagnosis (partial).

    Write-once fields (name, codingSystem, code, scope, ownerId,
    organizationId) are not declared and are dropped silently.
    """

    model_config = ConfigDict(extra="ignore")


class DiagnosisRead(CamelModel):
    """Diagnosis response."""

    id: UUID
    name: str
    coding_system: str
    code: str | None = None
    dsm5_code: str | None = None
    icd10_code: str | None = None
    scope: str
    owner_id: UUID
    organization_id: UUID | None = None
    symptoms: list[str] = []
    description: str | None = None
    section: str | None = None
    chapter: str | None = None
    key_symptoms_summary: str | None = None
    full_criteria_summary: str | None = None
    typical_duration: TypicalDuration | None = None
    duration_context: str | None = None
    severity: str | list[str] | None = None
    course: str | None = None
    specifiers: str | list[str] | None = None
    notes: str | None = None
    criteria_page: str | None = None
    created_at: datetime
    updated_at: datetime


class PageMetaRead(CamelModel):
    """Pagination metadata."""

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


class DiagnosisListResponse(CamelModel):
    entries: list[DiagnosisRead]
    pagination: PageMetaRead


# =============================================================================
# Triage matching
# =============================================================================

class TriageContext(CamelModel):
    """
    Triage session context submitted alongside symptoms.

    Reported per result as contextMatches; it does not affect ranking.
    """

    duration: float | None = Field(None, ge=0)
    duration_unit: DurationUnit | None = None
    course: Course | None = None
    severity: str | None = None
    preliminary_diagnosis: str | None = None
    notes: str | None = None


class MatchRequest(CamelModel):
    """Symptom match request. page/pageSize are coerced, never rejected."""

    symptoms: list[str] = []
    coding_system: str | None = Field(
        None, validation_alias=AliasChoices("codingSystem", "coding_system", "system")
    )
    page: Any = None
    page_size: Any = Field(
        None, validation_alias=AliasChoices("pageSize", "page_size", "limit")
    )
    show_all: bool = False
    context: TriageContext | None = None


class MatchedDiagnosis(DiagnosisRead):
    """Diagnosis with its match score against the submitted symptoms."""

    matched_symptoms: list[str]
    matched_entry_symptoms: list[str]
    match_count: int
    match_percentage: float
    all_symptoms: list[str]
    context_matches: dict[str, bool] | None = None


class MatchResponse(CamelModel):
    results: list[MatchedDiagnosis]
    pagination: PageMetaRead


# =============================================================================
# Bulk import
# =============================================================================

class ImportRequest(BaseModel):
    """Loosely shaped spreadsheet records."""

    records: list[dict[str, Any]] = Field(
        ..., validation_alias=AliasChoices("records", "diagnoses")
    )


class ImportErrorRead(CamelModel):
    index: int
    errors: list[str]


class ImportSummaryRead(CamelModel):
    inserted_count: int
    failed_count: int
    entries: list[DiagnosisRead]
    errors: list[ImportErrorRead]
