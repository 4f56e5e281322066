"""API routers."""

from triage_catalog.routers.diagnoses import router as diagnoses_router
from triage_catalog.routers.diagnosis_notes import router as diagnosis_notes_router
