"""Match service - rank visible diagnoses against a triage symptom set.

Scoring is bidirectional substring overlap between normalized tokens, so
"insomnia" matches a stored "chronic_insomnia" and vice versa. Ranking is
by (match_count, match_percentage) descending; ties keep the repository's
natural order.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import and_
from sqlalchemy.orm import Session

from triage_catalog.core.structured_logging import build_log_context
from triage_catalog.db.models import Diagnosis
from triage_catalog.schemas.auth import Principal
from triage_catalog.schemas.diagnosis import TriageContext
from triage_catalog.services import catalog_repository
from triage_catalog.services.membership_service import OrgDirectory
from triage_catalog.services.triage_context import evaluate_context
from triage_catalog.services.visibility_service import coding_system_clause, read_predicate
from triage_catalog.utils.normalization import (
    collapse_similar, normalize_symptoms, symptoms_overlap
)
from triage_catalog.utils.pagination import PageMeta, coerce_page_params, paginate_list


logger = logging.getLogger(__name__)


@dataclass
class RankedEntry:
    """A candidate diagnosis with its match score."""
    entry: Diagnosis
    matched_symptoms: list[str]
    matched_entry_symptoms: list[str]
    match_count: int
    match_percentage: float
    all_symptoms: list[str]
    context_matches: dict[str, bool] | None = None

    @property
    def score(self) -> tuple[int, float]:
        return self.match_count, self.match_percentage


@dataclass
class MatchResult:
    results: list[RankedEntry]
    pagination: PageMeta


def score_entry(input_tokens: list[str], entry: Diagnosis) -> RankedEntry:
    """Score one entry against already normalized input tokens."""
    entry_tokens = normalize_symptoms(entry.symptoms or [])
    matched = [
        token for token in input_tokens
        if any(symptoms_overlap(token, stored) for stored in entry_tokens)
    ]
    matched_entry = [
        stored for stored in entry_tokens
        if any(symptoms_overlap(token, stored) for token in input_tokens)
    ]

    percentage = 0.0
    if entry_tokens:
        percentage = round(min(100.0, len(matched) / len(entry_tokens) * 100), 2)

    return RankedEntry(
        entry=entry,
        matched_symptoms=matched,
        matched_entry_symptoms=matched_entry,
        match_count=len(matched),
        match_percentage=percentage,
        all_symptoms=list(entry.symptoms or []),
    )


def rank(scored: list[RankedEntry]) -> list[RankedEntry]:
    """Sort by score descending. sorted() is stable, so ties keep input order."""
    return sorted(scored, key=lambda item: item.score, reverse=True)


def match_diagnoses(
    db: Session,
    principal: Principal,
    symptoms: list[str] | None,
    coding_system: str | None = None,
    page: object = None,
    page_size: object = None,
    show_all: bool = False,
    context: TriageContext | None = None,
) -> MatchResult:
    """
    Rank the principal's visible diagnoses against a symptom set.

    An empty normalized symptom set without show_all is a valid empty
    result; the catalog is not queried. With show_all, every visible
    candidate is returned, zero scores included.
    """
    pagination = coerce_page_params(page, page_size)

    # Similar input tokens ("anxiety", "anxiety_or_tension") count once
    input_tokens = collapse_similar(normalize_symptoms(symptoms or []))
    if not input_tokens and not show_all:
        return MatchResult(results=[], pagination=PageMeta.create(0, pagination))

    clauses = [read_predicate(principal, OrgDirectory(db))]
    system_clause = coding_system_clause(coding_system)
    if system_clause is not None:
        clauses.append(system_clause)
    candidates = catalog_repository.find(db, and_(*clauses))

    scored = [score_entry(input_tokens, entry) for entry in candidates]
    if not show_all:
        scored = [item for item in scored if item.match_count > 0]
    ranked = rank(scored)

    page_items = paginate_list(ranked, pagination)
    for item in page_items:
        item.context_matches = evaluate_context(context, item.entry)

    logger.info(
        "Symptom match candidates=%d matched=%d",
        len(candidates),
        len(ranked),
        extra=build_log_context(user_id=principal.user_id, org_id=principal.org_id),
    )
    return MatchResult(results=page_items, pagination=PageMeta.create(len(ranked), pagination))
