"""Diagnosis catalog service - visibility-aware reads and writes.

Reads go through the visibility predicate, so an entry outside the
principal's visibility behaves exactly like a missing one. Writes check
ownership on the loaded entry.
"""

import logging
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from triage_catalog.core.structured_logging import build_log_context
from triage_catalog.db.enums import DiagnosisScope
from triage_catalog.db.models import Diagnosis
from triage_catalog.schemas.auth import Principal
from triage_catalog.schemas.diagnosis import DiagnosisCreate, DiagnosisUpdate
from triage_catalog.services import catalog_repository, vocabulary_service
from triage_catalog.services.membership_service import OrgDirectory
from triage_catalog.services.visibility_service import (
    assign_scope, can_write, coding_system_clause, read_predicate
)
from triage_catalog.utils.pagination import PageMeta, coerce_page_params


logger = logging.getLogger(__name__)

ACCESS_DENIED_MESSAGE = "Diagnosis not found or access denied"

# Write-once after creation; silently dropped from updates
IMMUTABLE_FIELDS = frozenset(
    {"name", "coding_system", "code", "scope", "owner_id", "organization_id"}
)

# API sort key -> column
SORT_COLUMNS = {
    "createdAt": Diagnosis.created_at,
    "updatedAt": Diagnosis.updated_at,
    "name": Diagnosis.name,
    "codingSystem": Diagnosis.coding_system,
    "code": Diagnosis.code,
    "scope": Diagnosis.scope,
}
DEFAULT_SORT = "createdAt"


class CatalogError(Exception):
    """Base exception for diagnosis catalog errors."""

    pass


class CatalogValidationError(CatalogError):
    """Payload is well-formed JSON but not a valid diagnosis."""

    pass


class CatalogForbiddenError(CatalogError):
    """Entry is readable but the principal may not change it."""

    def __init__(self, message: str = ACCESS_DENIED_MESSAGE):
        super().__init__(message)


class CatalogNotFoundError(CatalogError):
    """Entry does not exist or is not visible to the principal."""

    def __init__(self, message: str = ACCESS_DENIED_MESSAGE):
        super().__init__(message)


class DuplicateDiagnosisError(CatalogError):
    """An entry with the same name and code already exists in this organization."""

    def __init__(self, dimension: str, existing_id: UUID | None = None):
        self.dimension = dimension
        self.existing_id = existing_id
        super().__init__(f"A diagnosis with the same {dimension} already exists")


# =============================================================================
# Reads
# =============================================================================

def _search_clause(search: str):
    pattern = f"%{search.strip()}%"
    return or_(
        Diagnosis.name.ilike(pattern),
        Diagnosis.code.ilike(pattern),
        Diagnosis.dsm5_code.ilike(pattern),
        Diagnosis.icd10_code.ilike(pattern),
    )


def list_diagnoses(
    db: Session,
    principal: Principal,
    search: str | None = None,
    scope_filter: str | None = None,
    system_filter: str | None = None,
    sort_by: str | None = None,
    sort_order: str = "desc",
    page: object = None,
    page_size: object = None,
) -> tuple[list[Diagnosis], PageMeta]:
    """
    List diagnoses visible to the principal.

    Filters narrow the visible set, never widen it. Unknown scope or
    coding system values mean no filter; unknown sort keys fall back to
    createdAt.
    """
    clauses = [read_predicate(principal, OrgDirectory(db))]
    if search and search.strip():
        clauses.append(_search_clause(search))
    if scope_filter in DiagnosisScope._value2member_map_:
        clauses.append(Diagnosis.scope == scope_filter)
    system_clause = coding_system_clause(system_filter)
    if system_clause is not None:
        clauses.append(system_clause)
    predicate = and_(*clauses)

    column = SORT_COLUMNS.get(sort_by or DEFAULT_SORT, SORT_COLUMNS[DEFAULT_SORT])
    if (sort_order or "").lower() == "asc":
        order_by = (column.asc(), Diagnosis.id.asc())
    else:
        order_by = (column.desc(), Diagnosis.id.desc())

    pagination = coerce_page_params(page, page_size)
    total = catalog_repository.count(db, predicate)
    entries = catalog_repository.find(
        db,
        predicate,
        order_by=order_by,
        offset=pagination.offset,
        limit=pagination.per_page,
    )
    return entries, PageMeta.create(total, pagination)


def get_diagnosis(db: Session, principal: Principal, diagnosis_id: UUID) -> Diagnosis:
    """Get a readable diagnosis. Missing and invisible are both NotFound."""
    entry = catalog_repository.get_matching(
        db, diagnosis_id, read_predicate(principal, OrgDirectory(db))
    )
    if entry is None:
        raise CatalogNotFoundError()
    return entry


def _get_writable(db: Session, principal: Principal, diagnosis_id: UUID) -> Diagnosis:
    entry = get_diagnosis(db, principal, diagnosis_id)
    if not can_write(principal, entry):
        raise CatalogForbiddenError()
    return entry


# =============================================================================
# Writes
# =============================================================================

def _raise_if_duplicate(db: Session, exc: IntegrityError, **identity) -> None:
    """Turn a unique index violation into DuplicateDiagnosisError; other violations pass."""
    duplicate = catalog_repository.find_duplicate(db, **identity)
    if duplicate is not None:
        raise DuplicateDiagnosisError(duplicate.dimension, duplicate.entry.id) from exc


def create_diagnosis(db: Session, principal: Principal, data: DiagnosisCreate) -> Diagnosis:
    """
    Create a diagnosis at the scope the principal's role dictates.

    Raises:
        DuplicateDiagnosisError: same name and code in the same organization
    """
    scope, organization_id = assign_scope(principal, data.scope)
    coding_system = data.coding_system.value

    identity = dict(
        name=data.name,
        organization_id=organization_id,
        dsm5_code=data.dsm5_code,
        icd10_code=data.icd10_code,
        coding_system=coding_system,
        code=data.code,
    )
    duplicate = catalog_repository.find_duplicate(db, **identity)
    if duplicate is not None:
        raise DuplicateDiagnosisError(duplicate.dimension, duplicate.entry.id)

    payload = data.model_dump(mode="json", exclude={"scope", "coding_system", "name", "code"})
    payload["symptoms"] = payload.get("symptoms") or []
    entry = Diagnosis(
        **payload,
        name=data.name,
        coding_system=coding_system,
        code=data.code,
        scope=scope.value,
        owner_id=principal.user_id,
        organization_id=organization_id,
    )

    try:
        catalog_repository.insert(db, entry)
        db.commit()
    except IntegrityError as exc:
        # Concurrent insert won the race past find_duplicate
        db.rollback()
        _raise_if_duplicate(db, exc, **identity)
        raise
    db.refresh(entry)

    logger.info(
        "Diagnosis created scope=%s",
        entry.scope,
        extra=build_log_context(
            user_id=principal.user_id, org_id=organization_id, diagnosis_id=entry.id
        ),
    )
    vocabulary_service.record_symptoms_safely(db, entry.symptoms)
    return entry


def update_diagnosis(
    db: Session,
    principal: Principal,
    diagnosis_id: UUID,
    data: DiagnosisUpdate,
) -> Diagnosis:
    """
    Apply a partial update. Write-once fields are ignored.

    Raises:
        CatalogNotFoundError: not readable
        CatalogForbiddenError: readable but not writable
        DuplicateDiagnosisError: a new code collides with another entry
    """
    entry = _get_writable(db, principal, diagnosis_id)

    changes = {
        field: value
        for field, value in data.model_dump(mode="json", exclude_unset=True).items()
        if field not in IMMUTABLE_FIELDS
    }
    if "symptoms" in changes and changes["symptoms"] is None:
        changes["symptoms"] = []
    if not changes:
        return entry

    identity = dict(
        name=entry.name,
        organization_id=entry.organization_id,
        dsm5_code=changes.get("dsm5_code", entry.dsm5_code),
        icd10_code=changes.get("icd10_code", entry.icd10_code),
        coding_system=entry.coding_system,
        code=entry.code,
        exclude_id=entry.id,
    )
    try:
        catalog_repository.update(db, entry, changes)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        _raise_if_duplicate(db, exc, **identity)
        raise
    db.refresh(entry)

    logger.info(
        "Diagnosis updated fields=%s",
        ",".join(sorted(changes)),
        extra=build_log_context(user_id=principal.user_id, diagnosis_id=entry.id),
    )
    if changes.get("symptoms"):
        vocabulary_service.record_symptoms_safely(db, changes["symptoms"])
    return entry


def delete_diagnosis(db: Session, principal: Principal, diagnosis_id: UUID) -> None:
    """
    Hard delete a diagnosis and its notes.

    Raises:
        CatalogNotFoundError: not readable
        CatalogForbiddenError: readable but not writable
    """
    entry = _get_writable(db, principal, diagnosis_id)
    catalog_repository.delete(db, entry)
    db.commit()
    logger.info(
        "Diagnosis deleted",
        extra=build_log_context(user_id=principal.user_id, diagnosis_id=diagnosis_id),
    )
