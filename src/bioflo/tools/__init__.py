"""
Coaching tools the general handler may run before generating a reply.
"""

from bioflo.tools.base import BaseTool, ToolResult
from bioflo.tools.macros import MacroCalculatorTool
from bioflo.tools.sleep import SleepScheduleTool


def default_tools() -> list[BaseTool]:
    return [MacroCalculatorTool(), SleepScheduleTool()]


__all__ = [
    "BaseTool",
    "MacroCalculatorTool",
    "SleepScheduleTool",
    "ToolResult",
    "default_tools",
]
