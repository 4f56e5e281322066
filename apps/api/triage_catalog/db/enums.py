"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    User roles.

    - SUPER_ADMIN: Platform operator, curates the global catalog
    - COMPANY_ADMIN: Owns one organization's catalog and audits its clinicians
    - PSYCHOLOGIST: Clinician, inside an organization or as an individual account
    """
    SUPER_ADMIN = "super_admin"
    COMPANY_ADMIN = "company_admin"
    PSYCHOLOGIST = "psychologist"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class DiagnosisScope(str, Enum):
    """Visibility tier of a catalog entry."""
    GLOBAL = "global"
    ORGANIZATION = "organization"
    PERSONAL = "personal"


class CodingSystem(str, Enum):
    """Diagnostic code standard."""
    DSM5 = "DSM-5"
    ICD10 = "ICD-10"


class Course(str, Enum):
    """Typical course of a disorder."""
    CONTINUOUS = "Continuous"
    EPISODIC = "Episodic"
    EITHER = "Either"


class DurationUnit(str, Enum):
    """Units for typical duration and triage duration."""
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


DEFAULT_CODING_SYSTEM = CodingSystem.DSM5
