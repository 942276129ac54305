"""
Base types for message triage.

Defines the closed set of safety categories, their precedence order, and the
classification result produced once per inbound message.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Category(str, Enum):
    """Safety category assigned to an inbound message."""

    GENERAL_WELLNESS = "general_wellness"
    MENTAL_HEALTH_NON_CRISIS = "mental_health_non_crisis"
    MENTAL_HEALTH_CRISIS = "mental_health_crisis"
    MEDICAL_NON_URGENT = "medical_non_urgent"
    MEDICAL_EMERGENCY = "medical_emergency"
    MODERATE_RISK_PROTOCOL = "moderate_risk_protocol"
    EXTREME_RISK_PROTOCOL = "extreme_risk_protocol"

    @property
    def severity(self) -> int:
        """Rank in the precedence order; higher wins when two categories compete."""
        return CATEGORY_PRECEDENCE.index(self)

    @property
    def is_terminal(self) -> bool:
        """Terminal categories are answered from the fixed-response store only."""
        return self in TERMINAL_CATEGORIES

    @property
    def is_high_risk(self) -> bool:
        """Categories whose answers must carry a clinician-consultation disclaimer."""
        return self in HIGH_RISK_CATEGORIES


# Least to most severe
CATEGORY_PRECEDENCE: tuple[Category, ...] = (
    Category.GENERAL_WELLNESS,
    Category.MENTAL_HEALTH_NON_CRISIS,
    Category.MEDICAL_NON_URGENT,
    Category.MODERATE_RISK_PROTOCOL,
    Category.EXTREME_RISK_PROTOCOL,
    Category.MEDICAL_EMERGENCY,
    Category.MENTAL_HEALTH_CRISIS,
)

TERMINAL_CATEGORIES = frozenset(
    {Category.MENTAL_HEALTH_CRISIS, Category.MEDICAL_EMERGENCY}
)

HIGH_RISK_CATEGORIES = frozenset(
    {
        Category.MEDICAL_NON_URGENT,
        Category.MODERATE_RISK_PROTOCOL,
        Category.EXTREME_RISK_PROTOCOL,
    }
)


def most_severe(*categories: Category) -> Category:
    """Return the most severe of the given categories."""
    return max(categories, key=lambda c: c.severity)


@dataclass(frozen=True)
class Classification:
    """Result of triaging one message."""

    category: Category
    reason: str
    remote_used: bool = False
    matched_rule: str | None = None
