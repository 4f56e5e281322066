"""Tests for clinician notes on diagnoses."""

import uuid

import pytest

from triage_catalog.db.enums import DiagnosisScope
from triage_catalog.services import note_service
from triage_catalog.services.diagnosis_service import (
    CatalogForbiddenError,
    CatalogNotFoundError,
    CatalogValidationError,
)


def test_add_note_sanitizes_html(db, make_entry, super_admin, psychologist, as_principal):
    entry = make_entry(super_admin, DiagnosisScope.GLOBAL)

    note = note_service.add_note(
        db, as_principal(psychologist), entry.id, "<p>Check sleep</p><script>alert(1)</script>"
    )

    assert note.content == "<p>Check sleep</p>"
    assert note.author_id == psychologist.id


def test_note_that_sanitizes_to_nothing_is_rejected(db, make_entry, super_admin, psychologist, as_principal):
    entry = make_entry(super_admin, DiagnosisScope.GLOBAL)

    with pytest.raises(CatalogValidationError):
        note_service.add_note(db, as_principal(psychologist), entry.id, "<script>x</script>")


def test_notes_require_read_access(db, make_entry, colleague, psychologist, as_principal):
    hidden = make_entry(colleague, DiagnosisScope.PERSONAL)

    with pytest.raises(CatalogNotFoundError):
        note_service.add_note(db, as_principal(psychologist), hidden.id, "<p>hello</p>")
    with pytest.raises(CatalogNotFoundError):
        note_service.list_notes(db, as_principal(psychologist), hidden.id)


def test_list_notes_newest_first(db, make_entry, super_admin, psychologist, colleague, as_principal):
    entry = make_entry(super_admin, DiagnosisScope.GLOBAL)
    first = note_service.add_note(db, as_principal(psychologist), entry.id, "<p>first</p>")
    second = note_service.add_note(db, as_principal(colleague), entry.id, "<p>second</p>")
    first.created_at = second.created_at.replace(year=second.created_at.year - 1)
    db.flush()

    notes = note_service.list_notes(db, as_principal(psychologist), entry.id)

    assert [n.id for n in notes] == [second.id, first.id]
    assert note_service.to_note_read(notes[0]).author_name == colleague.display_name


def test_only_author_can_edit_or_delete(db, make_entry, super_admin, psychologist, colleague, as_principal):
    entry = make_entry(super_admin, DiagnosisScope.GLOBAL)
    note = note_service.add_note(db, as_principal(psychologist), entry.id, "<p>mine</p>")

    with pytest.raises(CatalogForbiddenError):
        note_service.update_note(db, as_principal(colleague), entry.id, note.id, "<p>theirs</p>")
    with pytest.raises(CatalogForbiddenError):
        note_service.delete_note(db, as_principal(colleague), entry.id, note.id)

    edited = note_service.update_note(db, as_principal(psychologist), entry.id, note.id, "<p>edited</p>")
    assert edited.content == "<p>edited</p>"

    note_service.delete_note(db, as_principal(psychologist), entry.id, note.id)
    assert note_service.list_notes(db, as_principal(psychologist), entry.id) == []


def test_unknown_note_is_not_found(db, make_entry, super_admin, psychologist, as_principal):
    entry = make_entry(super_admin, DiagnosisScope.GLOBAL)

    with pytest.raises(CatalogNotFoundError):
        note_service.update_note(db, as_principal(psychologist), entry.id, uuid.uuid4(), "<p>x</p>")
