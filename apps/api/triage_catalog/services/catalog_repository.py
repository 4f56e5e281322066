"""Catalog repository - predicate-based persistence for diagnoses.

Services never build queries against the diagnoses table directly; they
hand a predicate (from visibility_service plus their own filters) to
these functions.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import ColumnElement, and_, func, or_, select
from sqlalchemy.orm import Session

from triage_catalog.db.models import Diagnosis


# Repository's natural order: newest first, id as a stable tie-break
NATURAL_ORDER = (Diagnosis.created_at.desc(), Diagnosis.id.desc())


def find(
    db: Session,
    predicate: ColumnElement[bool],
    order_by: tuple | None = None,
    offset: int | None = None,
    limit: int | None = None,
) -> list[Diagnosis]:
    """Return diagnoses matching the predicate, in order_by or natural order."""
    query = select(Diagnosis).where(predicate).order_by(*(order_by or NATURAL_ORDER))
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return list(db.execute(query).scalars().all())


def count(db: Session, predicate: ColumnElement[bool]) -> int:
    """Count diagnoses matching the predicate."""
    return db.execute(
        select(func.count()).select_from(Diagnosis).where(predicate)
    ).scalar_one()


def get_matching(
    db: Session,
    entry_id: UUID,
    predicate: ColumnElement[bool],
) -> Diagnosis | None:
    """Get a diagnosis by id only if it also satisfies the predicate."""
    return db.execute(
        select(Diagnosis).where(and_(Diagnosis.id == entry_id, predicate))
    ).scalar_one_or_none()


def insert(db: Session, entry: Diagnosis) -> Diagnosis:
    """Stage and flush a new diagnosis. Unique index violations propagate."""
    db.add(entry)
    db.flush()
    return entry


def update(db: Session, entry: Diagnosis, changes: dict) -> Diagnosis:
    """Apply attribute changes and flush."""
    for field, value in changes.items():
        setattr(entry, field, value)
    db.flush()
    return entry


def delete(db: Session, entry: Diagnosis) -> None:
    """Hard delete a diagnosis; its notes go with it via the relationship cascade."""
    db.delete(entry)
    db.flush()


# =============================================================================
# Uniqueness
# =============================================================================

@dataclass
class DuplicateHit:
    """An existing entry sharing a uniqueness shape, and which shape."""
    entry: Diagnosis
    dimension: str


DIMENSION_DSM5 = "name + DSM-5 code"
DIMENSION_ICD10 = "name + ICD-10 code"
DIMENSION_LEGACY = "name + coding system + code"


def find_duplicate(
    db: Session,
    *,
    name: str,
    organization_id: UUID | None,
    dsm5_code: str | None = None,
    icd10_code: str | None = None,
    coding_system: str | None = None,
    code: str | None = None,
    exclude_id: UUID | None = None,
) -> DuplicateHit | None:
    """
    Find an entry colliding on any uniqueness shape within the same
    organization (NULL organization counts as one shared value).

    Shapes whose code is not set are skipped. exclude_id leaves an entry
    out of the search so an update does not collide with itself.
    """
    shapes: list[tuple[str, ColumnElement[bool]]] = []
    if dsm5_code:
        shapes.append((DIMENSION_DSM5, Diagnosis.dsm5_code == dsm5_code))
    if icd10_code:
        shapes.append((DIMENSION_ICD10, Diagnosis.icd10_code == icd10_code))
    if code:
        shapes.append((
            DIMENSION_LEGACY,
            and_(Diagnosis.coding_system == coding_system, Diagnosis.code == code),
        ))
    if not shapes:
        return None

    org_clause = (
        Diagnosis.organization_id.is_(None)
        if organization_id is None
        else Diagnosis.organization_id == organization_id
    )
    clauses = [Diagnosis.name == name, org_clause, or_(*(clause for _, clause in shapes))]
    if exclude_id is not None:
        clauses.append(Diagnosis.id != exclude_id)
    existing = db.execute(
        select(Diagnosis)
        .where(*clauses)
        .limit(1)
    ).scalar_one_or_none()
    if existing is None:
        return None

    for dimension, _ in shapes:
        if dimension == DIMENSION_DSM5 and existing.dsm5_code == dsm5_code:
            return DuplicateHit(existing, dimension)
        if dimension == DIMENSION_ICD10 and existing.icd10_code == icd10_code:
            return DuplicateHit(existing, dimension)
        if dimension == DIMENSION_LEGACY and existing.code == code:
            return DuplicateHit(existing, dimension)
    return DuplicateHit(existing, shapes[0][0])
