"""
Fast local pattern check for generated answers.

Runs before any remote judge call and can by itself downgrade an answer:
- Explicit numeric dosages (BLOCK)
- Step-by-step protocols for extreme-risk requests (BLOCK)
- Dosing frequencies (WARN, rewrite)
- Diagnostic or prescriptive phrasing (WARN, rewrite)
- Missing clinician disclaimer on high-risk categories (WARN, rewrite)

Zero external calls, microseconds per answer.
"""

from __future__ import annotations

import re

from bioflo.safety.base import SafetyVerdict, Verdict
from bioflo.triage.base import Category


class LocalPatternCheck:
    """Regex checks over a generated answer."""

    DOSAGE_PATTERNS = [
        r"\b\d+(\.\d+)?\s?(mg|mcg|µg|milligrams?|micrograms?|iu|ml)\b",
        r"\b\d+(\.\d+)?\s?(tablets?|pills?|capsules?|drops|doses?|units)\b",
    ]

    FREQUENCY_PATTERNS = [
        r"\b(twice|three times|four times) (a day|daily|per day)\b",
        r"\b\d+ times (a|per) day\b",
        r"\bevery \d+ hours\b",
        r"\btake\b[^.\n]{0,60}\b(once|twice) (a day|daily|per day|a week|weekly)\b",
    ]

    PRESCRIPTIVE_PATTERNS = [
        r"\byou (have|likely have|probably have|are suffering from) "
        r"(an? )?(\w+ ){0,2}(disorder|disease|deficiency|syndrome|infection|diabetes|hypothyroidism)\b",
        r"\b(i|we) (diagnose|prescribe)\b",
        r"\bthis (is|sounds like) (a )?(clear )?(case of|diagnosis of)\b",
        r"\b(stop|start|increase|decrease|reduce|double) (taking )?your "
        r"(medication|meds|dose|dosage|prescription|insulin)\b",
        r"\byou (should|must) (stop|start) taking\b",
    ]

    STEP_PROTOCOL_PATTERNS = [
        r"^\s*(step|day|hour) \d+\s*[:.)\-]",
        r"\bstep 1\b",
    ]

    DISCLAIMER_PATTERNS = [
        r"\b(consult|talk to|speak (to|with)|check with|see|ask) (your|a|an) "
        r"(own )?(clinician|doctor|gp|physician|healthcare|medical|pharmacist|health ?care)",
        r"\bnot a (doctor|clinician|medical professional)\b",
        r"\bnot medical advice\b",
    ]

    def __init__(self):
        self._dosage_re = [re.compile(p, re.IGNORECASE) for p in self.DOSAGE_PATTERNS]
        self._frequency_re = [
            re.compile(p, re.IGNORECASE) for p in self.FREQUENCY_PATTERNS
        ]
        self._prescriptive_re = [
            re.compile(p, re.IGNORECASE) for p in self.PRESCRIPTIVE_PATTERNS
        ]
        self._step_re = [
            re.compile(p, re.IGNORECASE | re.MULTILINE)
            for p in self.STEP_PROTOCOL_PATTERNS
        ]
        self._disclaimer_re = [
            re.compile(p, re.IGNORECASE) for p in self.DISCLAIMER_PATTERNS
        ]

    @staticmethod
    def _first(patterns: list[re.Pattern[str]], text: str) -> str | None:
        for pattern in patterns:
            found = pattern.search(text)
            if found:
                return found.group(0).strip()
        return None

    def check(self, answer: str, category: Category | None = None) -> SafetyVerdict:
        """Return SAFE, WARN or BLOCK for an answer without any network call."""
        block_reasons: list[str] = []
        warn_reasons: list[str] = []

        dosage = self._first(self._dosage_re, answer)
        if dosage:
            block_reasons.append(f"explicit dosage: '{dosage}'")

        if category is Category.EXTREME_RISK_PROTOCOL:
            step = self._first(self._step_re, answer)
            if step:
                block_reasons.append(f"step-by-step protocol: '{step}'")

        if block_reasons:
            return SafetyVerdict(outcome=Verdict.BLOCK, reasons=block_reasons)

        frequency = self._first(self._frequency_re, answer)
        if frequency:
            warn_reasons.append(f"dosing frequency: '{frequency}'")

        prescriptive = self._first(self._prescriptive_re, answer)
        if prescriptive:
            warn_reasons.append(f"diagnostic or prescriptive phrasing: '{prescriptive}'")

        if category is not None and category.is_high_risk:
            if self._first(self._disclaimer_re, answer) is None:
                warn_reasons.append("missing clinician-consultation disclaimer")

        if warn_reasons:
            return SafetyVerdict(
                outcome=Verdict.WARN,
                reasons=warn_reasons,
                needs_rewrite=True,
            )
        return SafetyVerdict.safe()
