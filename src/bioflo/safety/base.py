"""
Base types for reviewing generated answers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Verdict(str, Enum):
    """Outcome of reviewing one generated answer."""

    SAFE = "safe"  # Answer may be shown as is
    WARN = "warn"  # Minor issues, may be rewritten
    BLOCK = "block"  # Never shown; replaced by the safe fallback

    @property
    def rank(self) -> int:
        return _VERDICT_RANK[self]


_VERDICT_RANK = {Verdict.SAFE: 0, Verdict.WARN: 1, Verdict.BLOCK: 2}


@dataclass
class SafetyVerdict:
    """Result of a safety review, computed once per generated answer."""

    outcome: Verdict
    reasons: list[str] = field(default_factory=list)
    needs_rewrite: bool = False

    @classmethod
    def safe(cls) -> "SafetyVerdict":
        return cls(outcome=Verdict.SAFE)

    @classmethod
    def block(cls, *reasons: str) -> "SafetyVerdict":
        return cls(outcome=Verdict.BLOCK, reasons=list(reasons))

    @property
    def is_safe(self) -> bool:
        return self.outcome is Verdict.SAFE

    @property
    def is_blocked(self) -> bool:
        return self.outcome is Verdict.BLOCK

    def merge(self, other: "SafetyVerdict") -> "SafetyVerdict":
        """Combine two verdicts; the stricter outcome wins."""
        outcome = self.outcome if self.outcome.rank >= other.outcome.rank else other.outcome
        reasons = list(self.reasons)
        reasons.extend(r for r in other.reasons if r not in reasons)
        return SafetyVerdict(
            outcome=outcome,
            reasons=reasons,
            needs_rewrite=(
                outcome is Verdict.WARN and (self.needs_rewrite or other.needs_rewrite)
            ),
        )
