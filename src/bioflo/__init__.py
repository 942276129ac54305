"""
BioFlo - triage-and-routing gateway for a safety-first wellness coach.

Classifies each message into a safety category, answers crisis and emergency
messages from fixed text, and routes everything else through category
handlers, a retrying multi-provider model router and a safety reviewer.
"""

__version__ = "0.1.0"
__author__ = "BioFlo Team"

from bioflo.gateway import Gateway, GatewayResponse, build_gateway
from bioflo.triage import Category, Classification

__all__ = [
    "Category",
    "Classification",
    "Gateway",
    "GatewayResponse",
    "build_gateway",
]
