"""Diagnosis notes router - clinician notes on catalog entries."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from triage_catalog.core.deps import get_current_session, get_db, require_csrf_header
from triage_catalog.schemas.auth import Principal
from triage_catalog.schemas.note import NoteCreate, NoteRead, NoteUpdate
from triage_catalog.services import note_service
from triage_catalog.services.diagnosis_service import (
    CatalogForbiddenError,
    CatalogNotFoundError,
    CatalogValidationError,
)

router = APIRouter()


@router.get("/{diagnosis_id}/notes", response_model=list[NoteRead])
def list_notes(
    diagnosis_id: UUID,
    session: Principal = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List notes for a diagnosis the caller can read, newest first."""
    try:
        notes = note_service.list_notes(db, session, diagnosis_id)
    except CatalogNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return [note_service.to_note_read(n) for n in notes]


@router.post(
    "/{diagnosis_id}/notes",
    response_model=NoteRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_note(
    diagnosis_id: UUID,
    data: NoteCreate,
    session: Principal = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Add a note to a diagnosis the caller can read."""
    try:
        note = note_service.add_note(db, session, diagnosis_id, data.body)
    except CatalogNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CatalogValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return note_service.to_note_read(note)


@router.patch(
    "/{diagnosis_id}/notes/{note_id}",
    response_model=NoteRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_note(
    diagnosis_id: UUID,
    note_id: UUID,
    data: NoteUpdate,
    session: Principal = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Edit a note. Requires: author."""
    try:
        note = note_service.update_note(db, session, diagnosis_id, note_id, data.body)
    except CatalogNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CatalogForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except CatalogValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return note_service.to_note_read(note)


@router.delete(
    "/{diagnosis_id}/notes/{note_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_note(
    diagnosis_id: UUID,
    note_id: UUID,
    session: Principal = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Delete a note. Requires: author."""
    try:
        note_service.delete_note(db, session, diagnosis_id, note_id)
    except CatalogNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CatalogForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return None
