"""Utility modules."""

from triage_catalog.utils.normalization import (
    normalize_code,
    normalize_name,
    normalize_symptom,
    normalize_symptoms,
)
from triage_catalog.utils.pagination import (
    PageMeta,
    PaginationParams,
    coerce_page_params,
)
