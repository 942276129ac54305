"""
Message triage: categories, the ordered rule table, the classifier and the
fixed-response store for terminal categories.
"""

from bioflo.triage.base import (
    CATEGORY_PRECEDENCE,
    Category,
    Classification,
    most_severe,
)
from bioflo.triage.classifier import TriageClassifier
from bioflo.triage.fixed_responses import FixedResponseStore
from bioflo.triage.rules import RuleMatch, RuleTable, TriageRule

__all__ = [
    "CATEGORY_PRECEDENCE",
    "Category",
    "Classification",
    "FixedResponseStore",
    "RuleMatch",
    "RuleTable",
    "TriageClassifier",
    "TriageRule",
    "most_severe",
]
