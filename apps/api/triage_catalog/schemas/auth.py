"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from triage_catalog.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    org_id: UUID | None = None
    role: str
    token_version: int


class Principal(BaseModel):
    """
    Authenticated actor making a request.

    Built by the get_current_session dependency from the user's current
    row, so role and organization always reflect the latest assignment.
    org_id is None for individual accounts and platform admins.
    """
    user_id: UUID
    role: Role  # Validated enum
    org_id: UUID | None = None
    email: str = ""
    display_name: str = ""

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    @property
    def is_company_admin(self) -> bool:
        return self.role == Role.COMPANY_ADMIN
