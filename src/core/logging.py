"""Logging estructurado (structlog).

Por qué structlog:
- Eventos con nombre estable (`remote_fallback`, `storage_corrupt`) y campos
  clave/valor, fáciles de filtrar.
- La salida va a stderr para no mezclarse con tablas/JSON de la CLI.
"""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(level: str = "WARNING", *, json_format: bool = False) -> structlog.BoundLogger:
    """Configura structlog para todo el proceso.

    Args:
        level: nivel mínimo (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON por línea en vez del renderer de consola

    Returns:
        Logger raíz ya configurado.
    """

    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level)

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
    return structlog.get_logger("domain_tracker")
