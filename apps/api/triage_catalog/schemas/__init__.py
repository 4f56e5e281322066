"""Pydantic schemas for API request/response models."""

from triage_catalog.schemas.auth import Principal, TokenPayload
from triage_catalog.schemas.diagnosis import (
    DiagnosisCreate,
    DiagnosisListResponse,
    DiagnosisRead,
    DiagnosisUpdate,
    ImportRequest,
    ImportSummaryRead,
    MatchedDiagnosis,
    MatchRequest,
    MatchResponse,
    TriageContext,
)
from triage_catalog.schemas.note import NoteCreate, NoteRead, NoteUpdate

__all__ = [
    # Auth
    "TokenPayload",
    "Principal",
    # Diagnosis
    "DiagnosisCreate",
    "DiagnosisUpdate",
    "DiagnosisRead",
    "DiagnosisListResponse",
    # Matching
    "MatchRequest",
    "MatchResponse",
    "MatchedDiagnosis",
    "TriageContext",
    # Import
    "ImportRequest",
    "ImportSummaryRead",
    # Note
    "NoteCreate",
    "NoteUpdate",
    "NoteRead",
]
