"""
Base tool interface for BioFlo.

Tools are pure functions over structured parameters that return structured
data. The general coaching handler may run one matching tool and append its
result to the prompt; no tool carries safety-critical branching.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from bioflo.prompts import CoachContext


@dataclass
class ToolResult:
    """
    Result returned by a tool execution.

    Attributes:
        success: Whether the tool executed successfully
        data: The result data (type depends on tool)
        error: Error message if success is False
        metadata: Additional metadata about the execution
    """

    success: bool
    data: Any = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_context(self, tool_name: str) -> str:
        """Format result for inclusion in the coach prompt."""
        if self.success:
            return f"[TOOL_RESULT: {tool_name}]\n{self.data}"
        return f"[TOOL_ERROR: {tool_name}]\n{self.error}"


class BaseTool(ABC):
    """
    Abstract base class for coaching tools.

    Subclasses declare trigger patterns and know which ``CoachContext``
    fields they need.
    """

    # Regexes over the user message that make this tool relevant
    TRIGGERS: tuple[str, ...] = ()

    def __init__(self):
        self._trigger_re = [re.compile(p, re.IGNORECASE) for p in self.TRIGGERS]

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for the tool."""
        ...

    def matches(self, message: str) -> bool:
        return any(p.search(message) for p in self._trigger_re)

    @abstractmethod
    def params_from_context(self, context: CoachContext) -> dict[str, Any] | None:
        """Build parameters from the user's context, or None if data is missing."""
        ...

    @abstractmethod
    async def execute(self, **kwargs) -> ToolResult:
        """
        Execute the tool with given parameters.

        Returns:
            ToolResult with execution outcome
        """
        ...
