"""Membership service - organization membership lookups for visibility checks."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from triage_catalog.core.structured_logging import build_log_context
from triage_catalog.db.enums import Role
from triage_catalog.db.models import User


logger = logging.getLogger(__name__)


def get_current_admin_id(db: Session, org_id: UUID) -> UUID | None:
    """Get the organization's current active company admin (earliest created)."""
    return db.execute(
        select(User.id)
        .where(
            User.organization_id == org_id,
            User.role == Role.COMPANY_ADMIN.value,
            User.is_active.is_(True),
        )
        .order_by(User.created_at.asc(), User.id.asc())
        .limit(1)
    ).scalar_one_or_none()


def list_active_psychologist_ids(db: Session, org_id: UUID) -> list[UUID]:
    """List ids of active psychologists belonging to an organization."""
    return list(
        db.execute(
            select(User.id).where(
                User.organization_id == org_id,
                User.role == Role.PSYCHOLOGIST.value,
                User.is_active.is_(True),
            )
        ).scalars().all()
    )


class OrgDirectory:
    """
    Organization membership lookups for a single request.

    Results are memoised on the instance only. Create one per request so
    visibility always reflects the latest membership and admin assignment.
    """

    def __init__(self, db: Session):
        self.db = db
        self._admin_ids: dict[UUID, UUID | None] = {}
        self._psychologist_ids: dict[UUID, list[UUID]] = {}

    def current_admin_id(self, org_id: UUID) -> UUID | None:
        if org_id not in self._admin_ids:
            self._admin_ids[org_id] = get_current_admin_id(self.db, org_id)
            if self._admin_ids[org_id] is None:
                logger.info("Organization has no active company admin", extra=build_log_context(org_id=org_id))
        return self._admin_ids[org_id]

    def active_psychologist_ids(self, org_id: UUID) -> list[UUID]:
        if org_id not in self._psychologist_ids:
            self._psychologist_ids[org_id] = list_active_psychologist_ids(self.db, org_id)
        return self._psychologist_ids[org_id]
