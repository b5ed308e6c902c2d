"""Structured logging for schedule saves."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class StructuredTimelineLogger:
    """Structured logger for schedule save attempts."""

    def log_save(
        self,
        route_id: int | None,
        kind: str,
        element_id: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log a save attempt with structured data."""
        log_data: dict[str, Any] = {
            "route_id": route_id,
            "kind": kind,
            "element_id": element_id,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Schedule save: {kind} {element_id} - {outcome}"

        if outcome in ("success", "conflict"):
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
