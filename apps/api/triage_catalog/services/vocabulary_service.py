"""Symptom vocabulary - display names for autocomplete suggestions.

The vocabulary is advisory. Matching never reads it, and a failure to
record new names must not fail the write that produced them.
"""

import logging
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from triage_catalog.db.models import Symptom
from triage_catalog.utils.normalization import normalize_symptoms, prettify_symptom


logger = logging.getLogger(__name__)


def record_symptoms(db: Session, symptoms: Iterable[str]) -> int:
    """
    Insert display names for tokens not yet in the vocabulary.

    Returns the number of new rows. Does not commit.
    """
    tokens = normalize_symptoms(symptoms)
    if not tokens:
        return 0

    existing = set(
        db.execute(select(Symptom.key).where(Symptom.key.in_(tokens))).scalars().all()
    )
    added = 0
    for token in tokens:
        if token in existing:
            continue
        db.add(Symptom(key=token, name=prettify_symptom(token)))
        added += 1
    db.flush()
    return added


def record_symptoms_safely(db: Session, symptoms: Iterable[str]) -> int:
    """
    Best-effort vocabulary upsert inside a savepoint, then commit.

    Errors are logged and swallowed; the caller's data is already committed.
    """
    try:
        with db.begin_nested():
            added = record_symptoms(db, symptoms)
    except SQLAlchemyError as exc:
        logger.warning("Symptom vocabulary update failed error=%s", exc)
        return 0
    db.commit()
    return added


def list_symptom_names(db: Session, query: str | None = None, limit: int | None = None) -> list[str]:
    """List display names alphabetically, optionally filtered by a prefix/substring."""
    stmt = select(Symptom.name).order_by(func.lower(Symptom.name).asc())
    if query:
        stmt = stmt.where(Symptom.name.ilike(f"%{query.strip()}%"))
    if limit:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars().all())
