"""
Structured Logging Configuration for the AI Tutor Orchestration Engine

Every record can carry a component tag, an event name and the identifiers of
the tutor turn it belongs to (user, session, conversation, agent), so one
turn can be followed across routing, agent calls and persistence.

Usage:
    from tutor_engine.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger("dispatcher")
    logger.info("Turn started", extra={"user_id": 42, "session_id": 7})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pathlib import Path

from tutor_engine.config import settings


# Identifiers of the turn a record belongs to; grouped under "turn" in JSON
TURN_FIELDS = ("user_id", "session_id", "conversation_id", "agent", "mode")

# Everything else a caller may pass through `extra`
DETAIL_FIELDS = (
    "data",
    "duration_ms",
    "status",
    "model",
    "caller",
    "params",
    "output",
    "attempts",
    "error",
)


def _collect(record: logging.LogRecord, fields) -> Dict[str, Any]:
    collected = {}
    for field in fields:
        value = getattr(record, field, None)
        if value is not None:
            collected[field] = value
    return collected


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Example:
        {"ts": "2025-01-14T10:23:45.123+00:00", "level": "INFO",
         "logger": "tutor_engine.router", "component": "router",
         "event": "routing_decided", "msg": "Routed to beatrice-peer (keyword)",
         "turn": {"agent": "beatrice-peer"}, "data": {...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "component": getattr(record, "component", None) or record.name.rsplit(".", 1)[-1],
            "event": getattr(record, "event", None),
            "msg": record.getMessage(),
        }

        turn = _collect(record, TURN_FIELDS)
        if turn:
            entry["turn"] = turn
        entry.update(_collect(record, DETAIL_FIELDS))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps({k: v for k, v in entry.items() if v is not None}, default=str)


class TextFormatter(logging.Formatter):
    """Coloured single-line output for local runs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    MAX_DATA_CHARS = 120

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        component = getattr(record, "component", None) or record.name

        line = f"{color}{clock} {record.levelname:<7} {component}{self.RESET} {record.getMessage()}"

        turn = _collect(record, TURN_FIELDS)
        if turn:
            line += " {" + ", ".join(f"{k}={v}" for k, v in turn.items()) + "}"

        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            line += f" ({duration_ms}ms)"

        data = getattr(record, "data", None)
        if data:
            summary = json.dumps(data, default=str)
            if len(summary) > self.MAX_DATA_CHARS:
                summary = summary[: self.MAX_DATA_CHARS] + "..."
            line += f"\n    {summary}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure the root logger. Call once at startup.

    Args:
        level: Overrides settings.log_level
        log_format: "json" or "text"; overrides settings.log_format
    """
    level_no = getattr(logging, (level or settings.log_level).upper())
    formatter = JSONFormatter() if (log_format or settings.log_format) == "json" else TextFormatter()

    root = logging.getLogger()
    root.setLevel(level_no)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    console.setLevel(level_no)
    root.addHandler(console)

    if settings.log_to_file:
        path = Path(settings.log_file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)

    for noisy in ("httpx", "httpcore", "openai", "anthropic", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger for one engine component, e.g. get_logger("router")."""
    return logging.getLogger(f"tutor_engine.{name}")


# ===========================================
# Event helpers
# ===========================================


def log_agent_event(
    logger: logging.Logger,
    agent_name: str,
    event: str,
    data: Optional[dict] = None,
    duration_ms: Optional[int] = None,
    level: int = logging.INFO,
) -> None:
    """
    Record something a tutor agent did (replied, contributed, failed).

    Args:
        logger: Logger instance
        agent_name: Machine name of the agent
        event: Event name, e.g. "agent_replied" or "agent_failed"
        data: Optional event data
        duration_ms: Time spent in the completion call
        level: Log level
    """
    extra: Dict[str, Any] = {"component": f"agent:{agent_name}", "event": event, "agent": agent_name}
    if data:
        extra["data"] = data
    if duration_ms is not None:
        extra["duration_ms"] = duration_ms
    logger.log(level, f"{agent_name}: {event}", extra=extra)


def log_llm_event(
    logger: logging.Logger,
    model: str,
    status: str,
    caller: str,
    params: Optional[dict] = None,
    output: Optional[dict] = None,
    error: Optional[str] = None,
    duration_ms: Optional[int] = None,
    attempts: Optional[int] = None,
) -> None:
    """
    Record one stage of a completion call.

    `status` is "starting", "complete" or "failed"; failures log at ERROR.
    `caller` is "router" or "agent:<name>".
    """
    extra: Dict[str, Any] = {
        "component": "llm",
        "event": f"llm_{status}",
        "status": status,
        "model": model,
        "caller": caller,
    }
    if caller.startswith("agent:"):
        extra["agent"] = caller.split(":", 1)[1]
    for key, value in (
        ("params", params),
        ("output", output),
        ("error", error),
        ("duration_ms", duration_ms),
        ("attempts", attempts),
    ):
        if value is not None:
            extra[key] = value

    level = logging.ERROR if status == "failed" else logging.DEBUG if status == "starting" else logging.INFO
    logger.log(level, f"{model} call {status} ({caller})", extra=extra)


def log_routing_decision(
    logger: logging.Logger,
    strategy: str,
    selected: str,
    reason: str,
    confidence: float,
    alternatives: Optional[list] = None,
) -> None:
    """Record which agent a routing strategy picked and why."""
    logger.info(
        f"Routed to {selected} ({strategy})",
        extra={
            "component": "router",
            "event": "routing_decided",
            "agent": selected,
            "data": {
                "strategy": strategy,
                "reason": reason,
                "confidence": confidence,
                "alternatives": alternatives or [],
            },
        },
    )
