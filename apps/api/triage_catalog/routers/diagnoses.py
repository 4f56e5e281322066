"""Diagnosis catalog router - listing, CRUD, bulk import and symptom matching."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from triage_catalog.core.config import settings
from triage_catalog.core.deps import (
    get_current_session,
    get_db,
    require_csrf_header,
    require_roles,
)
from triage_catalog.core.rate_limit import limiter
from triage_catalog.db.enums import Role
from triage_catalog.schemas.auth import Principal
from triage_catalog.schemas.diagnosis import (
    DiagnosisCreate,
    DiagnosisListResponse,
    DiagnosisRead,
    DiagnosisUpdate,
    ImportErrorRead,
    ImportRequest,
    ImportSummaryRead,
    MatchedDiagnosis,
    MatchRequest,
    MatchResponse,
    PageMetaRead,
)
from triage_catalog.services import diagnosis_service, import_service, match_service, vocabulary_service
from triage_catalog.services.diagnosis_service import (
    CatalogError,
    CatalogForbiddenError,
    CatalogNotFoundError,
    CatalogValidationError,
    DuplicateDiagnosisError,
)

router = APIRouter()


def _http_error(exc: CatalogError) -> HTTPException:
    """Translate a catalog service error into an HTTP error."""
    if isinstance(exc, CatalogNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, CatalogForbiddenError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, DuplicateDiagnosisError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, CatalogValidationError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _ranked_to_read(item: match_service.RankedEntry) -> MatchedDiagnosis:
    base = DiagnosisRead.model_validate(item.entry).model_dump()
    return MatchedDiagnosis(
        **base,
        matched_symptoms=item.matched_symptoms,
        matched_entry_symptoms=item.matched_entry_symptoms,
        match_count=item.match_count,
        match_percentage=item.match_percentage,
        all_symptoms=item.all_symptoms,
        context_matches=item.context_matches,
    )


# =============================================================================
# Collection
# =============================================================================

@router.get("", response_model=DiagnosisListResponse)
def list_diagnoses(
    search: str | None = Query(None, max_length=100),
    scope: str | None = Query(None),
    coding_system: str | None = Query(None, alias="codingSystem"),
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    page: str | None = Query(None),
    page_size: str | None = Query(None, alias="pageSize"),
    session: Principal = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    List diagnoses visible to the caller.

    page/pageSize are coerced: invalid values fall back to defaults.
    """
    entries, meta = diagnosis_service.list_diagnoses(
        db,
        session,
        search=search,
        scope_filter=scope,
        system_filter=coding_system,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )
    return DiagnosisListResponse(
        entries=[DiagnosisRead.model_validate(e) for e in entries],
        pagination=PageMetaRead.model_validate(meta),
    )


@router.post(
    "",
    response_model=DiagnosisRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_diagnosis(
    data: DiagnosisCreate,
    session: Principal = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Create a diagnosis. Scope follows the caller's role."""
    try:
        entry = diagnosis_service.create_diagnosis(db, session, data)
    except CatalogError as e:
        raise _http_error(e)
    return DiagnosisRead.model_validate(entry)


@router.post(
    "/bulk-import",
    response_model=ImportSummaryRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(settings.RATE_LIMIT_IMPORT)
def bulk_import(
    request: Request,
    data: ImportRequest,
    session: Principal = Depends(require_roles([Role.SUPER_ADMIN])),
    db: Session = Depends(get_db),
):
    """
    Import spreadsheet records into the global catalog.

    Requires: super_admin. Bad records are reported per index; the
    rest of the batch is kept.
    """
    summary = import_service.bulk_import_diagnoses(db, session, data.records)
    return ImportSummaryRead(
        inserted_count=summary.inserted_count,
        failed_count=summary.failed_count,
        entries=[DiagnosisRead.model_validate(e) for e in summary.inserted],
        errors=[ImportErrorRead(index=err.index, errors=err.errors) for err in summary.errors],
    )


@router.post("/match", response_model=MatchResponse)
def match_symptoms(
    data: MatchRequest,
    session: Principal = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Rank visible diagnoses against a triage symptom set."""
    result = match_service.match_diagnoses(
        db,
        session,
        symptoms=data.symptoms,
        coding_system=data.coding_system,
        page=data.page,
        page_size=data.page_size,
        show_all=data.show_all,
        context=data.context,
    )
    return MatchResponse(
        results=[_ranked_to_read(item) for item in result.results],
        pagination=PageMetaRead.model_validate(result.pagination),
    )


@router.get("/symptoms", response_model=list[str])
def list_symptoms(
    q: str | None = Query(None, max_length=100),
    session: Principal = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Symptom names for autocomplete, alphabetical."""
    return vocabulary_service.list_symptom_names(db, query=q)


# =============================================================================
# Single entry
# =============================================================================

@router.get("/{diagnosis_id}", response_model=DiagnosisRead)
def get_diagnosis(
    diagnosis_id: UUID,
    session: Principal = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Get a diagnosis. Invisible entries are reported as not found."""
    try:
        entry = diagnosis_service.get_diagnosis(db, session, diagnosis_id)
    except CatalogError as e:
        raise _http_error(e)
    return DiagnosisRead.model_validate(entry)


@router.put("/{diagnosis_id}", response_model=DiagnosisRead, dependencies=[Depends(require_csrf_header)])
def update_diagnosis(
    diagnosis_id: UUID,
    data: DiagnosisUpdate,
    session: Principal = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Update clinical metadata.

    Requires: owner, super_admin, or the company admin for organization entries.
    Name, coding system, legacy code, scope and ownership cannot change.
    """
    try:
        entry = diagnosis_service.update_diagnosis(db, session, diagnosis_id, data)
    except CatalogError as e:
        raise _http_error(e)
    return DiagnosisRead.model_validate(entry)


@router.delete("/{diagnosis_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_diagnosis(
    diagnosis_id: UUID,
    session: Principal = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Delete a diagnosis and its notes."""
    try:
        diagnosis_service.delete_diagnosis(db, session, diagnosis_id)
    except CatalogError as e:
        raise _http_error(e)
    return None
