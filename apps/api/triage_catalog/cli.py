"""CLI tools for catalog administration."""

from uuid import UUID

import click
from sqlalchemy import select
from sqlalchemy.orm import Session

from triage_catalog.db.enums import DiagnosisScope, Role
from triage_catalog.db.models import Diagnosis, Organization, User
from triage_catalog.db.session import SessionLocal
from triage_catalog.services import vocabulary_service
from triage_catalog.utils.normalization import normalize_symptoms


# Dual-coded sample entries for a fresh global catalog
SAMPLE_DIAGNOSES = [
    {
        "name": "Major Depressive Disorder",
        "section": "Depressive Disorders",
        "chapter": "Mood Disorders",
        "dsm5_code": "296.23",
        "icd10_code": "F32.1",
        "coding_system": "DSM-5",
        "code": "296.23",
        "course": "Episodic",
        "symptoms": ["depressed_mood", "loss_of_interest", "insomnia"],
        "key_symptoms_summary": "Depressed mood, anhedonia, sleep disturbance",
        "full_criteria_summary": "Depressed mood or loss of interest with associated symptoms for 2+ weeks",
        "severity": "Moderate",
        "specifiers": "With anxious distress",
    },
    {
        "name": "Generalized Anxiety Disorder",
        "section": "Anxiety Disorders",
        "chapter": "Anxiety Disorders",
        "dsm5_code": "300.02",
        "icd10_code": "F41.1",
        "coding_system": "DSM-5",
        "code": "300.02",
        "course": "Continuous",
        "symptoms": ["excessive_worry", "restlessness", "muscle_tension"],
        "key_symptoms_summary": "Excessive anxiety and worry most days for 6+ months",
        "full_criteria_summary": "Difficult to control worry with associated physical symptoms",
        "severity": "Mild",
        "specifiers": None,
    },
    {
        "name": "Persistent Depressive Disorder (Dysthymia)",
        "section": "Depressive Disorders",
        "chapter": "Mood Disorders",
        "dsm5_code": "300.4",
        "icd10_code": "F34.1",
        "coding_system": "DSM-5",
        "code": "300.4",
        "course": "Continuous",
        "symptoms": ["low_energy", "low_self_esteem", "poor_concentration"],
        "key_symptoms_summary": "Depressed mood for most of the day, more days than not",
        "full_criteria_summary": "At least 2 years in adults (1 year in youth) with additional symptoms",
        "severity": "Moderate",
        "specifiers": None,
    },
]

# Identity fields are only written on insert
_INSERT_ONLY = {"name", "coding_system", "code"}


def seed_sample_diagnoses(db: Session, owner_id: UUID) -> tuple[int, int]:
    """
    Upsert the sample diagnoses as global entries, matched by name.

    Existing entries keep their identity and owner; clinical fields are
    refreshed. Returns (created, updated). Does not commit.
    """
    created = updated = 0
    for sample in SAMPLE_DIAGNOSES:
        data = dict(sample, symptoms=normalize_symptoms(sample["symptoms"]))
        existing = db.execute(
            select(Diagnosis).where(
                Diagnosis.name == data["name"],
                Diagnosis.organization_id.is_(None),
                Diagnosis.scope == DiagnosisScope.GLOBAL.value,
            )
        ).scalar_one_or_none()

        if existing is None:
            db.add(Diagnosis(
                **data,
                scope=DiagnosisScope.GLOBAL.value,
                owner_id=owner_id,
                organization_id=None,
            ))
            created += 1
        else:
            for field, value in data.items():
                if field not in _INSERT_ONLY:
                    setattr(existing, field, value)
            updated += 1
    db.flush()
    vocabulary_service.record_symptoms(
        db, [token for sample in SAMPLE_DIAGNOSES for token in sample["symptoms"]]
    )
    return created, updated


@click.group()
def cli():
    """Triage catalog CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Organization name")
@click.option("--slug", required=True, help="URL-friendly slug (lowercase, no spaces)")
def create_org(name: str, slug: str):
    """
    Create an organization (tenant).

    Example:
        python -m triage_catalog.cli create-org --name "Calm Clinic" --slug "calm"
    """
    db = SessionLocal()
    try:
        # Validate slug format
        slug = slug.lower().strip()
        if not slug.replace("-", "").replace("_", "").isalnum():
            click.echo("❌ Slug must be alphanumeric (with optional hyphens/underscores)")
            return

        existing = db.query(Organization).filter(Organization.slug == slug).first()
        if existing:
            click.echo(f"❌ Organization with slug '{slug}' already exists")
            return

        org = Organization(name=name, slug=slug)
        db.add(org)
        db.commit()

        click.echo(f"✓ Created organization: {name}")
        click.echo(f"  ID: {org.id}")
        click.echo(f"  Slug: {slug}")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email address")
@click.option("--name", "display_name", required=True, help="Display name")
@click.option(
    "--role",
    required=True,
    type=click.Choice([r.value for r in Role]),
    help="User role",
)
@click.option("--org-slug", default=None, help="Organization slug (omit for individual accounts)")
def create_user(email: str, display_name: str, role: str, org_slug: str | None):
    """
    Create a user, optionally inside an organization.

    Example:
        python -m triage_catalog.cli create-user --email "dr@calm.org" --name "Dr. Lee" --role psychologist --org-slug calm
    """
    db = SessionLocal()
    try:
        email = email.lower().strip()
        if db.query(User).filter(User.email == email).first():
            click.echo(f"❌ User already exists: {email}")
            return

        org = None
        if org_slug:
            org = db.query(Organization).filter(Organization.slug == org_slug.lower()).first()
            if not org:
                click.echo(f"❌ Organization not found: {org_slug}")
                return

        user = User(
            email=email,
            display_name=display_name,
            role=role,
            organization_id=org.id if org else None,
        )
        db.add(user)
        db.commit()

        click.echo(f"✓ Created {role}: {email}")
        click.echo(f"  ID: {user.id}")
        if org:
            click.echo(f"  Organization: {org.name}")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        python -m triage_catalog.cli revoke-sessions --email "user@example.com"
    """
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user:
            click.echo(f"❌ User not found: {email}")
            return

        old_version = user.token_version
        user.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--owner-email", default=None, help="Super admin to own the entries (default: first one)")
def seed_diagnoses(owner_email: str | None):
    """
    Upsert the sample dual-coded diagnoses into the global catalog.

    Non-destructive: existing entries are refreshed, nothing is removed.

    Example:
        python -m triage_catalog.cli seed-diagnoses
    """
    db = SessionLocal()
    try:
        query = db.query(User).filter(User.role == Role.SUPER_ADMIN.value)
        if owner_email:
            query = query.filter(User.email == owner_email.lower())
        owner = query.order_by(User.created_at.asc()).first()
        if not owner:
            click.echo("❌ No super admin found. Create one with create-user first.")
            return

        created, updated = seed_sample_diagnoses(db, owner.id)
        db.commit()
        click.echo(f"✓ Seeded diagnoses: {created} created, {updated} updated")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
def list_symptoms():
    """Print the symptom vocabulary, alphabetically."""
    db = SessionLocal()
    try:
        for name in vocabulary_service.list_symptom_names(db):
            click.echo(name)
    finally:
        db.close()


if __name__ == "__main__":
    cli()
