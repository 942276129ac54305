"""
Provider adapters package.

One adapter per upstream text-generation provider. Clients are constructed
once at process start by ``build_adapters`` and handed to the model router.
"""

from __future__ import annotations

from bioflo.config import Settings
from bioflo.providers.anthropic_adapter import AnthropicAdapter
from bioflo.providers.base import BaseProviderAdapter, GenerationRequest, Turn
from bioflo.providers.gemini_adapter import GeminiAdapter
from bioflo.providers.openai_adapter import OpenAIAdapter


def build_adapters(settings: Settings) -> list[BaseProviderAdapter]:
    """Construct every provider adapter with its own explicit client."""
    return [
        OpenAIAdapter.from_settings(settings),
        AnthropicAdapter.from_settings(settings),
        GeminiAdapter.from_settings(settings),
    ]


__all__ = [
    "AnthropicAdapter",
    "BaseProviderAdapter",
    "GeminiAdapter",
    "GenerationRequest",
    "OpenAIAdapter",
    "Turn",
    "build_adapters",
]
