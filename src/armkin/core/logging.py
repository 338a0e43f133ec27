"""
structlog setup for armkin.

The kinematics modules log through module level structlog loggers. Events are
routed through the standard library so that armkin and third-party records
end up with the same renderer::

    from armkin.core.logging import configure_logging, get_logger

    configure_logging("DEBUG")
    logger = get_logger(__name__)
    logger.debug("ik_solved", robot="IRB4600", selected=0)

Diagnostics recorded on kinematics results are logged as warnings, one event
per diagnostic kind.
"""

import logging
import sys
from typing import TYPE_CHECKING, Any, Iterable, Optional, Union

import structlog

if TYPE_CHECKING:
    from armkin.core.exceptions import Diagnostic

_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    resolved = getattr(logging, level.upper(), None)
    return resolved if isinstance(resolved, int) else logging.INFO


def _handlers(log_file: Optional[str]) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    return handlers


def configure_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Route structlog events through stdlib logging handlers.

    Args:
        level: Level name or number. Unknown names fall back to INFO.
        json_output: Render JSON lines instead of the colored console format.
        log_file: Also write records to this file.
    """
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=_PROCESSORS,
    )

    handlers = _handlers(log_file)
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=_resolve_level(level), handlers=handlers, force=True)

    structlog.configure(
        processors=[*_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def verbosity_level(verbose: bool) -> str:
    """Level used by the command line: debug output or errors only."""
    return "DEBUG" if verbose else "ERROR"


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return the structlog logger for a module, usually ``__name__``."""
    return structlog.get_logger(name)


def log_diagnostics(
    logger: structlog.stdlib.BoundLogger,
    diagnostics: Iterable["Diagnostic"],
    **context: Any,
) -> None:
    """
    Emit one warning per kinematics diagnostic.

    Args:
        logger: Logger of the calling module.
        diagnostics: Diagnostics recorded on a result object.
        **context: Extra fields bound to every event, such as the robot name.
    """
    for diagnostic in diagnostics:
        logger.warning(diagnostic.kind.value, detail=diagnostic.message, **context)
