"""Tests for the sample catalog seeder used by the CLI."""

from click.testing import CliRunner
from sqlalchemy import select

from triage_catalog.cli import SAMPLE_DIAGNOSES, cli, seed_sample_diagnoses
from triage_catalog.db.models import Diagnosis
from triage_catalog.services import vocabulary_service


def test_seed_creates_global_dual_coded_entries(db, super_admin):
    created, updated = seed_sample_diagnoses(db, super_admin.id)

    assert (created, updated) == (len(SAMPLE_DIAGNOSES), 0)
    mdd = db.execute(
        select(Diagnosis).where(Diagnosis.name == "Major Depressive Disorder")
    ).scalar_one()
    assert mdd.scope == "global"
    assert (mdd.dsm5_code, mdd.icd10_code) == ("296.23", "F32.1")
    assert mdd.owner_id == super_admin.id
    assert "Depressed mood" in vocabulary_service.list_symptom_names(db)


def test_seed_is_non_destructive_upsert(db, super_admin):
    seed_sample_diagnoses(db, super_admin.id)
    mdd = db.execute(
        select(Diagnosis).where(Diagnosis.name == "Major Depressive Disorder")
    ).scalar_one()
    mdd.severity = "Severe"
    db.flush()

    created, updated = seed_sample_diagnoses(db, super_admin.id)

    assert (created, updated) == (0, len(SAMPLE_DIAGNOSES))
    assert mdd.severity == "Moderate"
    total = db.execute(select(Diagnosis)).scalars().all()
    assert len(total) == len(SAMPLE_DIAGNOSES)


def test_cli_lists_commands():
    result = CliRunner().invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("create-org", "create-user", "seed-diagnoses", "list-symptoms", "revoke-sessions"):
        assert command in result.output
