"""
Centralized logging configuration for the sequence engine.

This module provides standardized logging configuration using structlog
for all components. All logging throughout the engine should use this
configuration to ensure consistent formatting and structured logging.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"  # structlog will handle formatting
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                       structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_command_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for device command correlation.

    Binds the correlator subsystem so every command send, acknowledgment
    and timeout can be traced back to the step that caused it.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger for command correlation
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="correlator",
        audit_trail=True
    )


def get_state_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger specifically configured for run state transitions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger for state transitions
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="state_machine",
        audit_trail=True
    )


def log_command_ack(
    logger: FilteringBoundLogger,
    command_id: str,
    status: str,
    device_id: Optional[str] = None,
    elapsed_ms: Optional[float] = None,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log the resolution of a device command with standardized format.

    Args:
        logger: Structlog logger instance
        command_id: Correlation id attached to the outgoing command
        status: Resolution status (acknowledged, rejected, timed_out, cancelled)
        device_id: Addressed device, if known
        elapsed_ms: Time between send and resolution
        context: Additional context data
    """
    bound_logger = logger.bind(
        command_id=command_id,
        ack_status=status,
        device_id=device_id,
        elapsed_ms=round(elapsed_ms, 1) if elapsed_ms is not None else None,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if status == "acknowledged":
        bound_logger.info("Command acknowledged")
    elif status == "cancelled":
        bound_logger.debug("Command wait cancelled")
    else:
        bound_logger.warning("Command not acknowledged")


def log_state_transition(
    logger: FilteringBoundLogger,
    sequence_id: Optional[str],
    from_phase: str,
    to_phase: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a run state transition with standardized format.

    Args:
        logger: Structlog logger instance
        sequence_id: ID of the sequence being played, if any
        from_phase: Current phase
        to_phase: Target phase
        trigger: What triggered the transition
        context: Additional context data
    """
    bound_logger = logger.bind(
        sequence_id=sequence_id,
        from_phase=from_phase,
        to_phase=to_phase,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("State transition")
