"""
Sleep schedule tool.

Suggests bedtimes that line up with full 90-minute sleep cycles before a
fixed wake time.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from bioflo.logging import get_logger
from bioflo.prompts import CoachContext
from bioflo.tools.base import BaseTool, ToolResult

logger = get_logger(__name__)

CYCLE_MINUTES = 90
FALL_ASLEEP_MINUTES = 15


class SleepScheduleTool(BaseTool):
    """Bedtime options from a wake time and sleep cycles."""

    TRIGGERS = (
        r"\bbed ?time\b",
        r"\bwhat time should i (go to bed|sleep)\b",
        r"\bsleep schedule\b",
        r"\bwake up at\b",
    )

    @property
    def name(self) -> str:
        return "sleep_schedule"

    def params_from_context(self, context: CoachContext) -> dict[str, Any] | None:
        if not context.wake_time:
            return None
        return {"wake_time": context.wake_time}

    async def execute(
        self,
        wake_time: str,
        cycles: list[int] | None = None,
        **kwargs,
    ) -> ToolResult:
        try:
            wake = datetime.strptime(wake_time, "%H:%M")
        except ValueError:
            return ToolResult(success=False, error=f"Invalid wake time: {wake_time}")

        options = []
        for count in cycles or [6, 5]:
            bedtime = wake - timedelta(minutes=count * CYCLE_MINUTES + FALL_ASLEEP_MINUTES)
            options.append(
                {
                    "bedtime": bedtime.strftime("%H:%M"),
                    "cycles": count,
                    "sleep_hours": count * CYCLE_MINUTES / 60,
                }
            )

        logger.info("sleep_schedule_executed", wake_time=wake_time, options=len(options))

        return ToolResult(
            success=True,
            data={"wake_time": wake.strftime("%H:%M"), "options": options},
            metadata={"fall_asleep_minutes": FALL_ASLEEP_MINUTES},
        )
