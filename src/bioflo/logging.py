"""
Logging and observability for BioFlo.

Provides structured logging with tracing support for triage decisions,
provider routing, and safety verdicts.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

import logging

import structlog

from bioflo.config import get_settings


def configure_logging() -> None:
    """Configure structured logging for the application."""
    settings = get_settings()

    # Safely get log level string
    log_level = getattr(settings, "log_level", "INFO")
    if not isinstance(log_level, str):
        log_level = "INFO"

    is_dev = getattr(settings, "is_development", True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            # Use pretty console output in development
            (
                structlog.dev.ConsoleRenderer()
                if is_dev
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance with the given name."""
    return structlog.get_logger(name)


class TraceContext:
    """
    Context manager for tracing a single gateway request.

    The gateway is the only component that records category, provider,
    retry count and verdict; it does so through this trace.
    """

    def __init__(
        self,
        operation: str,
        session_id: str | None = None,
        user_id: str | None = None,
    ):
        self.operation = operation
        self.trace_id = str(uuid4())[:8]
        self.user_id = user_id
        self.session_id = session_id or str(uuid4())[:8]
        self.start_time = datetime.now()
        self.events: list[dict[str, Any]] = []
        self.logger = get_logger("trace")

    def __enter__(self) -> "TraceContext":
        self.logger.info(
            "trace_start",
            trace_id=self.trace_id,
            operation=self.operation,
            session_id=self.session_id,
            user_id=self.user_id,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        duration_ms = (datetime.now() - self.start_time).total_seconds() * 1000
        self.logger.info(
            "trace_end",
            trace_id=self.trace_id,
            operation=self.operation,
            duration_ms=round(duration_ms, 2),
            event_count=len(self.events),
            error=type(exc_val).__name__ if exc_val else None,
        )

    def log_event(
        self,
        event_type: str,
        data: dict[str, Any] | None = None,
        **kwargs,
    ) -> None:
        """Log an event within this trace."""
        event = {
            "type": event_type,
            "timestamp": datetime.now().isoformat(),
            "data": data or {},
            **kwargs,
        }
        self.events.append(event)
        self.logger.info(
            f"trace_event_{event_type}",
            trace_id=self.trace_id,
            **event,
        )

    def log_triage(self, category: str, reason: str, remote_used: bool) -> None:
        """Log the triage decision for this request."""
        self.log_event(
            "triage",
            data={
                "category": category,
                "reason": reason,
                "remote_used": remote_used,
            },
        )

    def log_generation(
        self,
        provider: str | None,
        retries: int,
        fell_back: bool,
        error: str | None = None,
    ) -> None:
        """Log which provider served the request and how many retries it took."""
        self.log_event(
            "generation",
            data={
                "provider": provider,
                "retries": retries,
                "fell_back": fell_back,
                "error": error,
            },
        )

    def log_verdict(
        self,
        outcome: str,
        reasons: list[str],
        rewritten: bool = False,
    ) -> None:
        """Log the safety verdict for a generated answer."""
        self.log_event(
            "verdict",
            data={
                "outcome": outcome,
                "reasons": reasons,
                "rewritten": rewritten,
            },
        )


# Configure logging on module import
configure_logging()
