"""Centralized visibility rules for the diagnosis catalog.

Read access is a SQL predicate built per role:
- super_admin: every entry
- company_admin (in an org): global, organization entries they own, and
  personal entries of the org's active psychologists (plus their own)
- psychologist (in an org): global, organization entries owned by the
  org's current company admin, and their own personal entries
- anyone without an organization: global and their own personal entries

Write access is a plain boolean check on a loaded entry. Nothing in this
module raises for a well-formed principal; callers turn a failed check
into Forbidden/NotFound.
"""

from typing import Callable
from uuid import UUID

from sqlalchemy import ColumnElement, and_, false, or_, true

from triage_catalog.db.enums import CodingSystem, DiagnosisScope, Role
from triage_catalog.db.models import Diagnosis
from triage_catalog.schemas.auth import Principal
from triage_catalog.services.membership_service import OrgDirectory


PredicateBuilder = Callable[[Principal, OrgDirectory], ColumnElement[bool]]


# =============================================================================
# Clause helpers
# =============================================================================

def _global_entries() -> ColumnElement[bool]:
    return Diagnosis.scope == DiagnosisScope.GLOBAL.value


def _organization_entries_owned_by(owner_id: UUID) -> ColumnElement[bool]:
    return and_(
        Diagnosis.scope == DiagnosisScope.ORGANIZATION.value,
        Diagnosis.owner_id == owner_id,
    )


def _personal_entries_owned_by(owner_ids: list[UUID]) -> ColumnElement[bool]:
    if not owner_ids:
        return false()
    return and_(
        Diagnosis.scope == DiagnosisScope.PERSONAL.value,
        Diagnosis.owner_id.in_(owner_ids),
    )


# =============================================================================
# Read predicate builders (one per role)
# =============================================================================

def _unrestricted(principal: Principal, directory: OrgDirectory) -> ColumnElement[bool]:
    return true()


def _individual(principal: Principal, directory: OrgDirectory) -> ColumnElement[bool]:
    return or_(
        _global_entries(),
        _personal_entries_owned_by([principal.user_id]),
    )


def _company_admin(principal: Principal, directory: OrgDirectory) -> ColumnElement[bool]:
    if principal.org_id is None:
        return _individual(principal, directory)

    clinician_ids = directory.active_psychologist_ids(principal.org_id)
    return or_(
        _global_entries(),
        _organization_entries_owned_by(principal.user_id),
        _personal_entries_owned_by([*clinician_ids, principal.user_id]),
    )


def _psychologist(principal: Principal, directory: OrgDirectory) -> ColumnElement[bool]:
    if principal.org_id is None:
        return _individual(principal, directory)

    branches = [_global_entries()]
    admin_id = directory.current_admin_id(principal.org_id)
    if admin_id is not None:
        branches.append(_organization_entries_owned_by(admin_id))
    branches.append(_personal_entries_owned_by([principal.user_id]))
    return or_(*branches)


READ_PREDICATE_BUILDERS: dict[Role, PredicateBuilder] = {
    Role.SUPER_ADMIN: _unrestricted,
    Role.COMPANY_ADMIN: _company_admin,
    Role.PSYCHOLOGIST: _psychologist,
}


def read_predicate(principal: Principal, directory: OrgDirectory) -> ColumnElement[bool]:
    """Build the predicate matching every diagnosis the principal may read."""
    builder = READ_PREDICATE_BUILDERS.get(principal.role, _individual)
    return builder(principal, directory)


# =============================================================================
# Write access
# =============================================================================

def can_write(principal: Principal, entry: Diagnosis) -> bool:
    """
    Check if the principal may update or delete this diagnosis.

    - super_admin: always
    - owner: always
    - company_admin: organization entries of their own organization
    """
    if principal.is_super_admin:
        return True
    if entry.owner_id == principal.user_id:
        return True
    return (
        principal.is_company_admin
        and principal.org_id is not None
        and entry.scope == DiagnosisScope.ORGANIZATION.value
        and entry.organization_id == principal.org_id
    )


def assign_scope(
    principal: Principal,
    requested_scope: DiagnosisScope | None = None,
) -> tuple[DiagnosisScope, UUID | None]:
    """
    Decide (scope, organization_id) for a new diagnosis.

    The requested scope is only honoured when a company admin asks for
    "personal"; otherwise the principal's role decides.
    """
    if principal.is_super_admin:
        return DiagnosisScope.GLOBAL, None
    if principal.is_company_admin and principal.org_id is not None:
        if requested_scope == DiagnosisScope.PERSONAL:
            return DiagnosisScope.PERSONAL, None
        return DiagnosisScope.ORGANIZATION, principal.org_id
    return DiagnosisScope.PERSONAL, None


# =============================================================================
# Coding system filter
# =============================================================================

def coding_system_clause(system: str | None) -> ColumnElement[bool] | None:
    """
    Candidate filter for a coding system.

    DSM-5 matches entries whose legacy system is DSM-5 or that carry a
    non-empty DSM-5 code; ICD-10 is symmetric. Unknown values mean no filter.
    """
    if system == CodingSystem.DSM5.value:
        code_column = Diagnosis.dsm5_code
    elif system == CodingSystem.ICD10.value:
        code_column = Diagnosis.icd10_code
    else:
        return None
    return or_(
        Diagnosis.coding_system == system,
        and_(code_column.is_not(None), code_column != ""),
    )
