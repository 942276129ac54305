"""
Ordered rule table for deterministic triage.

Rules are evaluated top-to-bottom and the first match wins. The table is
ordered by severity so that an ambiguous message always lands in the more
serious category:

1. Mental health crisis
2. Medical emergency
3. Extreme-risk protocol
4. Moderate-risk protocol
5. Non-urgent medical
6. Non-crisis mental health

Matching is pure and offline: the same text always yields the same result.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from bioflo.triage.base import Category


@dataclass(frozen=True)
class TriageRule:
    """A named pattern set that maps to one category."""

    name: str
    category: Category
    patterns: tuple[str, ...]


@dataclass(frozen=True)
class RuleMatch:
    rule: str
    category: Category
    matched_text: str


TRIAGE_RULES: tuple[TriageRule, ...] = (
    TriageRule(
        name="crisis_language",
        category=Category.MENTAL_HEALTH_CRISIS,
        patterns=(
            r"\bkill(ing)? myself\b",
            r"\bsuicid(e|al)\b",
            r"\bend (my|my own) life\b",
            r"\bend it all\b",
            r"\bwant(ed)? to die\b",
            r"\bwish i (was|were) dead\b",
            r"\bbetter off dead\b",
            r"\bno reason to live\b",
            r"\b(hurt|harm|cut)(ing)? myself\b",
            r"\bself[- ]?harm",
            r"\bhurt someone\b",
            r"\bvoices (are )?telling me\b",
        ),
    ),
    TriageRule(
        name="emergency_signs",
        category=Category.MEDICAL_EMERGENCY,
        patterns=(
            r"\bchest (pain|tightness)\b",
            r"\bface (is )?drooping\b",
            r"\b(having|had|have) a stroke\b",
            r"\bstroke (symptoms|signs)\b",
            r"\b(signs|symptoms) of (a )?stroke\b",
            r"\b(can'?t|cannot|can not) breathe\b",
            r"\btrouble breathing\b",
            r"\bshortness of breath\b",
            r"\bsevere allergic\b",
            r"\banaphyla(xis|ctic)\b",
            r"\bthroat (is )?(swelling|closing)\b",
            r"\bheart attack\b",
            r"\bcoughing up blood\b",
            r"\bseizure\b",
            r"\b(passed|passing) out\b",
        ),
    ),
    TriageRule(
        name="extreme_protocol",
        category=Category.EXTREME_RISK_PROTOCOL,
        patterns=(
            r"\bdry[- ]fast(s|ing)?\b",
            r"\b([5-9]|[1-9]\d|five|six|seven|ten|fourteen)[- ]day (water[- ])?fast",
            r"\bwater[- ]fast(ing)? for (a|one|two|2) weeks?\b",
            r"\bwater[- ]only fast",
            r"\bmulti[- ]day fast",
            r"\bstacking extreme stressors\b",
            r"\bsauna endurance\b",
            r"\bmega[- ]?dos(e|es|ing)\b",
            r"\bhow (many|much) (mg|milligrams?|pills?|tablets?|capsules?)\b",
        ),
    ),
    TriageRule(
        name="moderate_protocol",
        category=Category.MODERATE_RISK_PROTOCOL,
        patterns=(
            r"\b(2|3|two|three|48|72)[- ](day|hour) (water[- ])?fast",
            r"\bextended fast",
            r"\bprolonged fast",
            r"\bice[- ]bath protocol\b",
            r"\bsauna protocol\b",
            r"\bcold plunge\b",
            r"\b(nootropic|peptide) stack\b",
        ),
    ),
    TriageRule(
        name="medical_non_urgent",
        category=Category.MEDICAL_NON_URGENT,
        patterns=(
            r"\bsymptoms?\b",
            r"\blab (results?|values?|work)\b",
            r"\bblood (test|work|results?|pressure|sugar)\b",
            r"\bdiagnos(ed|is)\b",
            r"\b(thyroid|cholesterol|a1c|insulin resistance)\b",
            r"\bmedications?\b",
            r"\bprescri(bed|ption)\b",
            r"\bside effects?\b",
            r"\b(rash|migraines?|headaches?)\b",
            r"\bpain in my\b",
        ),
    ),
    TriageRule(
        name="mental_health_non_crisis",
        category=Category.MENTAL_HEALTH_NON_CRISIS,
        patterns=(
            r"\banxi(ety|ous)\b",
            r"\bpanic attacks?\b",
            r"\bstress(ed|ful)?\b",
            r"\bburn(ed|t)?[- ]?out\b",
            r"\bdepress(ed|ion)\b",
            r"\boverwhelmed\b",
            r"\blonely\b",
            r"\bfeeling (down|low|sad|hopeless)\b",
            r"\bworr(y|ied|ying)\b",
        ),
    ),
)

# Vocabulary that makes an unmatched message worth a remote second opinion
AMBIGUOUS_VOCABULARY: tuple[str, ...] = (
    r"\btired\b",
    r"\bfatigue",
    r"\bdizz(y|iness)\b",
    r"\bheart (rate|racing)\b",
    r"\bpalpitations?\b",
    r"\bnumb(ness)?\b",
    r"\bpills?\b",
    r"\bdos(e|age)\b",
    r"\bsupplements?\b",
    r"\bfast(ing)?\b",
    r"\bsad\b",
    r"\bhopeless\b",
    r"\bcan'?t sleep\b",
    r"\bweight loss\b",
    r"\bhurts?\b",
)

# Messages longer than this are always worth a remote second opinion
LONG_MESSAGE_CHARS = 400


def normalize(text: str) -> str:
    """Lowercase and fold typographic apostrophes so patterns stay simple."""
    return text.lower().replace("’", "'").replace("‘", "'")


class RuleTable:
    """Compiled, ordered rule table evaluated by a single function."""

    def __init__(self, rules: tuple[TriageRule, ...] = TRIAGE_RULES):
        self.rules = rules
        self._compiled = [
            (rule, [re.compile(p, re.IGNORECASE) for p in rule.patterns])
            for rule in rules
        ]
        self._ambiguous = [re.compile(p, re.IGNORECASE) for p in AMBIGUOUS_VOCABULARY]

    def match(self, text: str) -> RuleMatch | None:
        """Return the first (most severe) matching rule, or None."""
        normalized = normalize(text)
        for rule, patterns in self._compiled:
            for pattern in patterns:
                found = pattern.search(normalized)
                if found:
                    return RuleMatch(
                        rule=rule.name,
                        category=rule.category,
                        matched_text=found.group(0),
                    )
        return None

    def is_ambiguous(self, text: str) -> bool:
        """Whether an unmatched message deserves a remote classification call."""
        if len(text) > LONG_MESSAGE_CHARS:
            return True
        normalized = normalize(text)
        return any(p.search(normalized) for p in self._ambiguous)
