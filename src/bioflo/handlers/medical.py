"""Handler for non-urgent medical questions."""

from __future__ import annotations

from bioflo.handlers.base import BaseHandler
from bioflo.triage.base import Category


class MedicalNonUrgentHandler(BaseHandler):
    """
    Restricted wellness education for symptoms, labs and medications.

    Never diagnoses or adjusts treatment; always points to a clinician.
    """

    category = Category.MEDICAL_NON_URGENT
    temperature = 0.4
    include_history = False
