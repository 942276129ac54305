"""Handlers for biohacking protocol requests."""

from __future__ import annotations

from bioflo.handlers.base import BaseHandler
from bioflo.triage.base import Category


class ModerateRiskProtocolHandler(BaseHandler):
    """Safety-wrapped education for short fasts, heat/cold exposure and stacks."""

    category = Category.MODERATE_RISK_PROTOCOL
    temperature = 0.5
    include_history = False


class ExtremeRiskProtocolHandler(BaseHandler):
    """Refusal plus safer alternatives; never a protocol."""

    category = Category.EXTREME_RISK_PROTOCOL
    temperature = 0.3
    include_history = False
