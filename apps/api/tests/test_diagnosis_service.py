"""Tests for the diagnosis write service and visibility-aware reads."""

import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from triage_catalog.db.enums import DiagnosisScope
from triage_catalog.db.models import Diagnosis, DiagnosisNote, Symptom
from triage_catalog.schemas.diagnosis import DiagnosisCreate, DiagnosisUpdate
from triage_catalog.services import catalog_repository, diagnosis_service, vocabulary_service
from triage_catalog.services.diagnosis_service import (
    ACCESS_DENIED_MESSAGE,
    CatalogForbiddenError,
    CatalogNotFoundError,
    DuplicateDiagnosisError,
)


# =============================================================================
# Create
# =============================================================================

def test_create_scope_follows_role(db, super_admin, company_admin, psychologist, as_principal):
    global_entry = diagnosis_service.create_diagnosis(
        db, as_principal(super_admin), DiagnosisCreate(name="Global One")
    )
    org_entry = diagnosis_service.create_diagnosis(
        db, as_principal(company_admin), DiagnosisCreate(name="Org One")
    )
    personal = diagnosis_service.create_diagnosis(
        db, as_principal(psychologist), DiagnosisCreate(name="Mine", scope="global")
    )

    assert (global_entry.scope, global_entry.organization_id) == ("global", None)
    assert (org_entry.scope, org_entry.organization_id) == ("organization", company_admin.organization_id)
    assert (personal.scope, personal.organization_id) == ("personal", None)
    assert personal.owner_id == psychologist.id


def test_create_normalizes_and_dedupes_symptoms(db, psychologist, as_principal):
    entry = diagnosis_service.create_diagnosis(
        db,
        as_principal(psychologist),
        DiagnosisCreate(name="Mood", symptoms=["#Depressed_Mood", "depressed mood", "Insomnia"]),
    )
    assert entry.symptoms == ["depressed_mood", "insomnia"]


def test_blank_name_is_rejected():
    with pytest.raises(ValueError):
        DiagnosisCreate(name="   ")


@pytest.mark.parametrize(
    "first, second, dimension",
    [
        ({"dsm5_code": "296.23"}, {"dsm5_code": "296.23", "icd10_code": "F32.9"}, "name + DSM-5 code"),
        ({"icd10_code": "F32.1"}, {"icd10_code": "F32.1"}, "name + ICD-10 code"),
        ({"code": "296.23"}, {"code": "296.23"}, "name + coding system + code"),
    ],
)
def test_duplicate_in_same_org_names_dimension(db, company_admin, as_principal, first, second, dimension):
    principal = as_principal(company_admin)
    diagnosis_service.create_diagnosis(db, principal, DiagnosisCreate(name="Major Depressive Disorder", **first))

    with pytest.raises(DuplicateDiagnosisError) as exc_info:
        diagnosis_service.create_diagnosis(
            db, principal, DiagnosisCreate(name="Major Depressive Disorder", **second)
        )
    assert exc_info.value.dimension == dimension
    assert dimension in str(exc_info.value)


def test_same_name_and_code_allowed_in_different_orgs(db, company_admin, other_admin, as_principal):
    data = DiagnosisCreate(name="Major Depressive Disorder", dsm5_code="296.23")
    diagnosis_service.create_diagnosis(db, as_principal(company_admin), data)
    entry = diagnosis_service.create_diagnosis(db, as_principal(other_admin), data)
    assert entry.organization_id == other_admin.organization_id


def test_entries_without_codes_never_conflict(db, company_admin, as_principal):
    principal = as_principal(company_admin)
    diagnosis_service.create_diagnosis(db, principal, DiagnosisCreate(name="Uncoded"))
    diagnosis_service.create_diagnosis(db, principal, DiagnosisCreate(name="Uncoded"))

    count = len(db.execute(select(Diagnosis).where(Diagnosis.name == "Uncoded")).scalars().all())
    assert count == 2


def test_create_records_vocabulary(db, psychologist, as_principal):
    diagnosis_service.create_diagnosis(
        db, as_principal(psychologist), DiagnosisCreate(name="Sleep", symptoms=["Early waking"])
    )
    assert "Early waking" in vocabulary_service.list_symptom_names(db)


def test_vocabulary_failure_does_not_fail_create(db, psychologist, as_principal, monkeypatch, caplog):
    def broken(db, symptoms):
        raise OperationalError("INSERT INTO symptoms", {}, Exception("disk full"))

    monkeypatch.setattr(vocabulary_service, "record_symptoms", broken)

    entry = diagnosis_service.create_diagnosis(
        db, as_principal(psychologist), DiagnosisCreate(name="Resilient", symptoms=["fatigue"])
    )

    assert db.get(Diagnosis, entry.id) is not None
    assert db.execute(select(Symptom).where(Symptom.key == "fatigue")).scalar_one_or_none() is None
    assert "Symptom vocabulary update failed" in caplog.text


# =============================================================================
# Read
# =============================================================================

def test_get_invisible_entry_is_not_found(db, make_entry, colleague, psychologist, as_principal):
    hidden = make_entry(colleague, DiagnosisScope.PERSONAL)

    with pytest.raises(CatalogNotFoundError) as exc_info:
        diagnosis_service.get_diagnosis(db, as_principal(psychologist), hidden.id)
    assert str(exc_info.value) == ACCESS_DENIED_MESSAGE

    with pytest.raises(CatalogNotFoundError) as missing:
        diagnosis_service.get_diagnosis(db, as_principal(psychologist), uuid.uuid4())
    assert str(missing.value) == str(exc_info.value)


def test_list_filters_and_sorts(db, make_entry, super_admin, company_admin, psychologist, as_principal):
    make_entry(super_admin, DiagnosisScope.GLOBAL, name="Bipolar I", dsm5_code="296.41")
    make_entry(company_admin, DiagnosisScope.ORGANIZATION, name="Anxiety Local", icd10_code="F41.9")
    make_entry(psychologist, DiagnosisScope.PERSONAL, name="Custom Mood")
    principal = as_principal(psychologist)

    entries, meta = diagnosis_service.list_diagnoses(db, principal, sort_by="name", sort_order="asc")
    assert [e.name for e in entries] == ["Anxiety Local", "Bipolar I", "Custom Mood"]
    assert meta.total_items == 3

    entries, _ = diagnosis_service.list_diagnoses(db, principal, search="296")
    assert [e.name for e in entries] == ["Bipolar I"]

    entries, _ = diagnosis_service.list_diagnoses(db, principal, scope_filter="personal")
    assert [e.name for e in entries] == ["Custom Mood"]

    entries, _ = diagnosis_service.list_diagnoses(db, principal, system_filter="ICD-10")
    assert [e.name for e in entries] == ["Anxiety Local"]


def test_list_defaults_to_newest_first(db, make_entry, super_admin, psychologist, as_principal):
    make_entry(super_admin, DiagnosisScope.GLOBAL, name="First")
    make_entry(super_admin, DiagnosisScope.GLOBAL, name="Second")

    entries, meta = diagnosis_service.list_diagnoses(
        db, as_principal(psychologist), sort_by="bogus", page="x", page_size="1"
    )
    assert [e.name for e in entries] == ["Second"]
    assert meta.total_pages == 2
    assert meta.items_per_page == 1


# =============================================================================
# Update / Delete
# =============================================================================

def test_update_ignores_write_once_fields(db, make_entry, psychologist, as_principal):
    entry = make_entry(psychologist, DiagnosisScope.PERSONAL, name="Original", code="F99")
    data = DiagnosisUpdate.model_validate({
        "name": "Renamed",
        "code": "X00",
        "scope": "global",
        "ownerId": str(uuid.uuid4()),
        "description": "Updated description",
        "symptoms": ["#New Sign"],
    })

    updated = diagnosis_service.update_diagnosis(db, as_principal(psychologist), entry.id, data)

    assert updated.name == "Original"
    assert updated.code == "F99"
    assert updated.scope == "personal"
    assert updated.owner_id == psychologist.id
    assert updated.description == "Updated description"
    assert updated.symptoms == ["new_sign"]


def test_update_readable_but_not_writable_is_forbidden(
    db, make_entry, company_admin, psychologist, as_principal
):
    org_entry = make_entry(company_admin, DiagnosisScope.ORGANIZATION)

    with pytest.raises(CatalogForbiddenError):
        diagnosis_service.update_diagnosis(
            db, as_principal(psychologist), org_entry.id, DiagnosisUpdate(description="x")
        )


def test_update_unreadable_is_not_found(db, make_entry, psychologist, other_admin, as_principal):
    foreign = make_entry(other_admin, DiagnosisScope.ORGANIZATION)

    with pytest.raises(CatalogNotFoundError):
        diagnosis_service.update_diagnosis(
            db, as_principal(psychologist), foreign.id, DiagnosisUpdate(description="x")
        )


def test_company_admin_updates_org_entry(db, make_entry, company_admin, as_principal):
    entry = make_entry(company_admin, DiagnosisScope.ORGANIZATION)
    updated = diagnosis_service.update_diagnosis(
        db, as_principal(company_admin), entry.id, DiagnosisUpdate(course="Either")
    )
    assert updated.course == "Either"


def test_delete_removes_entry_and_notes(db, make_entry, psychologist, as_principal):
    entry = make_entry(psychologist, DiagnosisScope.PERSONAL)
    db.add(DiagnosisNote(diagnosis_id=entry.id, author_id=psychologist.id, content="<p>note</p>"))
    db.flush()
    entry_id = entry.id

    diagnosis_service.delete_diagnosis(db, as_principal(psychologist), entry_id)

    assert db.get(Diagnosis, entry_id) is None
    notes = db.execute(select(DiagnosisNote).where(DiagnosisNote.diagnosis_id == entry_id)).scalars().all()
    assert notes == []


def test_company_admin_cannot_delete_clinician_entry(db, make_entry, company_admin, psychologist, as_principal):
    entry = make_entry(psychologist, DiagnosisScope.PERSONAL)

    with pytest.raises(CatalogForbiddenError):
        diagnosis_service.delete_diagnosis(db, as_principal(company_admin), entry.id)


# =============================================================================
# Storage-level conflicts
# =============================================================================

def test_create_racing_past_duplicate_check_is_conflict(db, company_admin, as_principal, monkeypatch):
    principal = as_principal(company_admin)
    data = DiagnosisCreate(name="Major Depressive Disorder", dsm5_code="296.23")
    first_id = diagnosis_service.create_diagnosis(db, principal, data).id

    real_find_duplicate = catalog_repository.find_duplicate
    calls = []

    def miss_first_check(db, **identity):
        # The concurrent insert lands between the check and the insert
        calls.append(identity)
        if len(calls) == 1:
            return None
        return real_find_duplicate(db, **identity)

    monkeypatch.setattr(catalog_repository, "find_duplicate", miss_first_check)

    with pytest.raises(DuplicateDiagnosisError) as exc_info:
        diagnosis_service.create_diagnosis(db, principal, data)

    assert exc_info.value.dimension == "name + DSM-5 code"
    assert exc_info.value.existing_id == first_id
    assert len(calls) == 2


def test_update_into_taken_code_is_conflict(db, company_admin, as_principal):
    principal = as_principal(company_admin)
    taken_id = diagnosis_service.create_diagnosis(
        db, principal, DiagnosisCreate(name="Major Depressive Disorder", dsm5_code="296.23")
    ).id
    other_id = diagnosis_service.create_diagnosis(
        db, principal, DiagnosisCreate(name="Major Depressive Disorder", icd10_code="F32.1")
    ).id

    with pytest.raises(DuplicateDiagnosisError) as exc_info:
        diagnosis_service.update_diagnosis(
            db, principal, other_id, DiagnosisUpdate(dsm5_code="296.23")
        )

    assert exc_info.value.dimension == "name + DSM-5 code"
    assert exc_info.value.existing_id == taken_id
    assert db.get(Diagnosis, other_id).dsm5_code is None


def test_other_integrity_errors_are_not_reported_as_duplicates(db, psychologist, as_principal):
    unknown_owner = as_principal(psychologist).model_copy(update={"user_id": uuid.uuid4()})

    with pytest.raises(IntegrityError):
        diagnosis_service.create_diagnosis(
            db, unknown_owner, DiagnosisCreate(name="Orphan Entry", dsm5_code="999.99")
        )
