"""Note service - clinician notes attached to diagnoses.

Anyone who can read a diagnosis can read and add its notes. Only the
author can edit or delete a note.
"""

import logging
from uuid import UUID

import nh3
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from triage_catalog.core.structured_logging import build_log_context
from triage_catalog.db.models import DiagnosisNote
from triage_catalog.schemas.auth import Principal
from triage_catalog.schemas.note import NoteRead
from triage_catalog.services.diagnosis_service import (
    CatalogForbiddenError, CatalogNotFoundError, CatalogValidationError, get_diagnosis
)


logger = logging.getLogger(__name__)

# Allowed HTML tags for TipTap rich text
ALLOWED_TAGS = {"p", "br", "strong", "em", "ul", "ol", "li", "a", "blockquote", "h1", "h2", "h3", "code", "pre"}
ALLOWED_ATTRIBUTES = {"a": {"href", "target"}}


def sanitize_html(html: str) -> str:
    """Sanitize HTML to prevent XSS, allowing only safe rich text tags."""
    return nh3.clean(html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES)


def _clean_body(body: str) -> str:
    clean = sanitize_html(body).strip()
    if not clean:
        raise CatalogValidationError("Note is empty after sanitization")
    return clean


def list_notes(db: Session, principal: Principal, diagnosis_id: UUID) -> list[DiagnosisNote]:
    """List notes for a readable diagnosis, newest first."""
    get_diagnosis(db, principal, diagnosis_id)
    return list(
        db.execute(
            select(DiagnosisNote)
            .options(joinedload(DiagnosisNote.author))
            .where(DiagnosisNote.diagnosis_id == diagnosis_id)
            .order_by(DiagnosisNote.created_at.desc(), DiagnosisNote.id.desc())
        ).scalars().all()
    )


def add_note(db: Session, principal: Principal, diagnosis_id: UUID, body: str) -> DiagnosisNote:
    """Add a note to a readable diagnosis."""
    get_diagnosis(db, principal, diagnosis_id)
    note = DiagnosisNote(
        diagnosis_id=diagnosis_id,
        author_id=principal.user_id,
        content=_clean_body(body),
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    logger.info(
        "Diagnosis note added",
        extra=build_log_context(user_id=principal.user_id, diagnosis_id=diagnosis_id),
    )
    return note


def _get_authored_note(
    db: Session,
    principal: Principal,
    diagnosis_id: UUID,
    note_id: UUID,
) -> DiagnosisNote:
    get_diagnosis(db, principal, diagnosis_id)
    note = db.get(DiagnosisNote, note_id)
    if note is None or note.diagnosis_id != diagnosis_id:
        raise CatalogNotFoundError("Note not found")
    if note.author_id != principal.user_id:
        raise CatalogForbiddenError("Only the author can change this note")
    return note


def update_note(
    db: Session,
    principal: Principal,
    diagnosis_id: UUID,
    note_id: UUID,
    body: str,
) -> DiagnosisNote:
    """Edit a note's body. Author only."""
    note = _get_authored_note(db, principal, diagnosis_id, note_id)
    note.content = _clean_body(body)
    db.commit()
    db.refresh(note)
    return note


def delete_note(db: Session, principal: Principal, diagnosis_id: UUID, note_id: UUID) -> None:
    """Delete a note. Author only."""
    note = _get_authored_note(db, principal, diagnosis_id, note_id)
    db.delete(note)
    db.commit()
    logger.info(
        "Diagnosis note deleted",
        extra=build_log_context(user_id=principal.user_id, diagnosis_id=diagnosis_id),
    )


def to_note_read(note: DiagnosisNote) -> NoteRead:
    """Convert DiagnosisNote model to NoteRead schema."""
    author_name = note.author.display_name if note.author else None
    return NoteRead(
        id=note.id,
        diagnosis_id=note.diagnosis_id,
        author_id=note.author_id,
        author_name=author_name,
        body=note.content,
        created_at=note.created_at,
        updated_at=note.updated_at,
    )
