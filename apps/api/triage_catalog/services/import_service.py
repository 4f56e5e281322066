"""Bulk import service for global catalog entries.

Features:
- Accepts spreadsheet-shaped records with loose key casing
  ("DSM-5 Code", "dsm5Code", "dsm5_code" are one column)
- Validates using the same rules as DiagnosisCreate
- Forces global scope owned by the importer
- Inserts each record in its own savepoint; failures are reported per
  record and never roll back the rest of the batch
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from triage_catalog.core.structured_logging import build_log_context
from triage_catalog.db.enums import DiagnosisScope
from triage_catalog.db.models import Diagnosis
from triage_catalog.schemas.auth import Principal
from triage_catalog.schemas.diagnosis import DiagnosisCreate
from triage_catalog.services import vocabulary_service


logger = logging.getLogger(__name__)


# =============================================================================
# Column Mapping
# =============================================================================

# Normalized record key -> DiagnosisCreate field
COLUMN_MAPPING = {
    # name variations
    "name": "name",
    "diagnosis": "name",
    "diagnosisname": "name",
    "disorder": "name",
    # codes
    "codingsystem": "coding_system",
    "system": "coding_system",
    "code": "code",
    "dsm5code": "dsm5_code",
    "dsm5": "dsm5_code",
    "icd10code": "icd10_code",
    "icd10": "icd10_code",
    # matching
    "symptoms": "symptoms",
    "symptom": "symptoms",
    # clinical metadata
    "description": "description",
    "section": "section",
    "chapter": "chapter",
    "keysymptomssummary": "key_symptoms_summary",
    "keysymptoms": "key_symptoms_summary",
    "fullcriteriasummary": "full_criteria_summary",
    "criteriasummary": "full_criteria_summary",
    "typicalduration": "typical_duration",
    "durationcontext": "duration_context",
    "severity": "severity",
    "course": "course",
    "specifiers": "specifiers",
    "notes": "notes",
    "criteriapage": "criteria_page",
    "page": "criteria_page",
}

# Text columns a spreadsheet may hand over as numbers (codes, page numbers)
TEXT_FIELDS = frozenset({
    "name", "code", "dsm5_code", "icd10_code", "section", "chapter", "criteria_page",
    "description", "duration_context", "notes", "severity", "specifiers",
})


def normalize_column_name(col: str) -> str:
    """Normalize column name for matching."""
    return "".join(ch for ch in str(col).lower() if ch.isalnum())


def _cell_to_text(value: Any) -> Any:
    """Render a numeric cell as text; 160.0 becomes "160"."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def canonicalize_import_record(record: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """
    Map a loosely keyed record to DiagnosisCreate field names.

    Blank cells are dropped and numeric cells in text columns become
    strings. Returns (payload, unmapped_keys). Scope
    related keys are never mapped; the importer decides scope.
    """
    payload: dict[str, Any] = {}
    unmapped: list[str] = []
    for key, value in record.items():
        target = COLUMN_MAPPING.get(normalize_column_name(key))
        if target is None:
            unmapped.append(str(key))
            continue
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        if target in TEXT_FIELDS:
            value = _cell_to_text(value)
        # First spelling wins when a record carries two for one column
        payload.setdefault(target, value)
    return payload, unmapped


def _format_validation_errors(exc: ValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "record"
        messages.append(f"{location}: {error.get('msg', 'invalid value')}")
    return messages


# =============================================================================
# Import
# =============================================================================

@dataclass
class ImportRecordError:
    index: int
    errors: list[str]


@dataclass
class ImportSummary:
    """Outcome of a bulk import."""
    inserted: list[Diagnosis] = field(default_factory=list)
    errors: list[ImportRecordError] = field(default_factory=list)

    @property
    def inserted_count(self) -> int:
        return len(self.inserted)

    @property
    def failed_count(self) -> int:
        return len(self.errors)


def _build_entry(data: DiagnosisCreate, importer: Principal) -> Diagnosis:
    payload = data.model_dump(mode="json", exclude={"scope", "coding_system", "name", "code"})
    payload["symptoms"] = payload.get("symptoms") or []
    return Diagnosis(
        **payload,
        name=data.name,
        coding_system=data.coding_system.value,
        code=data.code,
        scope=DiagnosisScope.GLOBAL.value,
        owner_id=importer.user_id,
        organization_id=None,
    )


def bulk_import_diagnoses(
    db: Session,
    importer: Principal,
    records: list[dict[str, Any]],
) -> ImportSummary:
    """
    Insert records as global entries owned by the importer.

    No duplicate pre-check is made; a record violating a unique index
    fails on its own and the batch continues.
    """
    summary = ImportSummary()

    for index, record in enumerate(records):
        if not isinstance(record, dict):
            summary.errors.append(ImportRecordError(index, ["record: must be an object"]))
            continue

        payload, _ = canonicalize_import_record(record)
        try:
            data = DiagnosisCreate.model_validate(payload)
        except ValidationError as exc:
            summary.errors.append(ImportRecordError(index, _format_validation_errors(exc)))
            continue

        entry = _build_entry(data, importer)
        try:
            with db.begin_nested():
                db.add(entry)
                db.flush()
        except IntegrityError:
            summary.errors.append(ImportRecordError(
                index, ["record: conflicts with an existing diagnosis (name + code)"]
            ))
            continue
        summary.inserted.append(entry)

    db.commit()
    for entry in summary.inserted:
        db.refresh(entry)

    logger.info(
        "Bulk import finished inserted=%d failed=%d",
        summary.inserted_count,
        summary.failed_count,
        extra=build_log_context(user_id=importer.user_id),
    )

    symptoms = [token for entry in summary.inserted for token in entry.symptoms or []]
    vocabulary_service.record_symptoms_safely(db, symptoms)
    return summary
