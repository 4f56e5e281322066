"""Triage context annotations.

Compares the clinician's triage context (duration, course, severity,
free text) with an entry's clinical metadata. The result is reported next
to each match and never changes which entries match or their order.
"""

from triage_catalog.db.enums import Course, DurationUnit
from triage_catalog.db.models import Diagnosis
from triage_catalog.schemas.diagnosis import TriageContext


DAYS_PER_UNIT = {
    DurationUnit.DAYS.value: 1,
    DurationUnit.WEEKS.value: 7,
    DurationUnit.MONTHS.value: 30,
    DurationUnit.YEARS.value: 365,
}

# Duration agreement tolerance around the entry's typical range
DURATION_TOLERANCE = 0.2


def to_days(amount: float | None, unit: str | None) -> float | None:
    if amount is None:
        return None
    return amount * DAYS_PER_UNIT.get(unit or DurationUnit.DAYS.value, 1)


def _enum_value(value) -> str | None:
    return getattr(value, "value", value)


def duration_matches(context: TriageContext, entry: Diagnosis) -> bool | None:
    """True when the context duration falls within the typical range +/- 20%."""
    if context.duration is None or not entry.typical_duration:
        return None
    typical = entry.typical_duration
    unit = typical.get("unit")
    low = to_days(typical.get("min"), unit)
    high = to_days(typical.get("max"), unit)
    if low is None and high is None:
        return None

    observed = to_days(context.duration, _enum_value(context.duration_unit))
    if low is not None and observed < low * (1 - DURATION_TOLERANCE):
        return False
    if high is not None and observed > high * (1 + DURATION_TOLERANCE):
        return False
    return True


def course_matches(context: TriageContext, entry: Diagnosis) -> bool | None:
    if context.course is None or not entry.course:
        return None
    if entry.course == Course.EITHER.value:
        return True
    return entry.course == _enum_value(context.course)


def severity_matches(context: TriageContext, entry: Diagnosis) -> bool | None:
    if not context.severity or not entry.severity:
        return None
    levels = entry.severity if isinstance(entry.severity, list) else [entry.severity]
    wanted = context.severity.strip().lower()
    return any(wanted == str(level).strip().lower() for level in levels)


def _text_mentions(text: str | None, entry: Diagnosis) -> bool | None:
    if not text or not text.strip():
        return None
    haystack = text.lower()
    names = [entry.name, entry.code, entry.dsm5_code, entry.icd10_code]
    return any(name and name.lower() in haystack for name in names)


def evaluate_context(context: TriageContext | None, entry: Diagnosis) -> dict[str, bool] | None:
    """
    Report which context criteria agree with the entry.

    Criteria the context or the entry leaves blank are omitted. Returns
    None when no context was submitted.
    """
    if context is None:
        return None

    checks = {
        "duration": duration_matches(context, entry),
        "course": course_matches(context, entry),
        "severity": severity_matches(context, entry),
        "preliminaryDiagnosis": _text_mentions(context.preliminary_diagnosis, entry),
        "notes": _text_mentions(context.notes, entry),
    }
    return {name: result for name, result in checks.items() if result is not None}
