"""
Safety review of generated answers.

A fast local pattern check runs first; a remote judge handles nuanced cases
and fails to BLOCK.
"""

from bioflo.safety.base import SafetyVerdict, Verdict
from bioflo.safety.patterns import LocalPatternCheck
from bioflo.safety.reviewer import SafetyReviewer

__all__ = [
    "LocalPatternCheck",
    "SafetyReviewer",
    "SafetyVerdict",
    "Verdict",
]
