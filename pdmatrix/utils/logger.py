# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Structured Logging
JSON-formatted logs via structlog. Every log entry carries the app name
and the run_id that PersistenceDiagramDistanceMatrix binds for the length
of one execute() / run_clustering() call. numpy scalars and arrays in the
event context are rendered as plain numbers and lists.
"""

import logging
import sys
from typing import Any

import numpy as np
import structlog
from structlog.types import EventDict, Processor

from pdmatrix.config import Settings, get_settings


def _add_app_info(
    logger: Any, method: str, event_dict: EventDict
) -> EventDict:
    """Inject application name into every log entry."""
    event_dict["app"] = "pdmatrix"
    return event_dict


def _plain_numbers(
    logger: Any, method: str, event_dict: EventDict
) -> EventDict:
    """Turn numpy values (costs, thresholds, sizes) into JSON-native ones."""
    for key, value in event_dict.items():
        if isinstance(value, np.ndarray):
            event_dict[key] = value.tolist()
        elif isinstance(value, np.generic):
            event_dict[key] = value.item()
    return event_dict


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure structlog for JSON output by default and
    human-readable console output at DEBUG level.
    Call once before running the engine; the engine itself only binds
    and clears the run_id context variable around each run.
    """
    settings = settings or get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_app_info,
        _plain_numbers,
    ]

    if settings.log_level == "DEBUG":
        processors: list[Processor] = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True)
        ]
    else:
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )


def get_logger(name: str = "pdmatrix") -> structlog.BoundLogger:
    """
    Return a structlog bound logger.

    Usage:
        log = get_logger(__name__)
        log.info("distance_matrix_complete", n_diagrams=12, n_pairs=66)

    Events logged inside execute() or run_clustering() carry the run_id
    of that call; outside a run they carry none.
    """
    return structlog.get_logger(name)
