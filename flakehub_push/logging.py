"""femtologging setup and percent-style logging helpers.

Every module creates its own ``logger = get_logger(__name__)`` and logs
through the ``log_*`` helpers, which format the message eagerly so that
femtologging only ever receives finished strings.

Example:
>>> from flakehub_push.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Preparing release of %s/%s", "owner/flake", "v1.2.3")

"""

from __future__ import annotations

import enum
import typing as typ

from femtologging import basicConfig, get_logger

DEFAULT_LOG_LEVEL = "INFO"


class LogLevel(enum.StrEnum):
    """Level names femtologging understands."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Return the canonical level name and whether ``level`` was unusable.

    Blank and unknown values fall back to ``INFO``.

    Examples
    --------
    >>> normalize_log_level(" debug ")
    ('DEBUG', False)
    >>> normalize_log_level("chatty")
    ('INFO', True)

    """
    candidate = (level or "").strip().upper()
    if candidate in LogLevel.__members__:
        return candidate, False
    return DEFAULT_LOG_LEVEL, True


def configure_logging(level: str | None, *, force: bool = False) -> tuple[str, bool]:
    """Install the femtologging root handler at ``level``.

    Parameters
    ----------
    level : str | None
        Requested level, usually from ``--log-level``.
    force : bool, optional
        Replace handlers that are already configured.

    Returns
    -------
    tuple[str, bool]
        The level actually used and whether the request was invalid, so the
        caller can warn once logging works.

    """
    normalized, invalid = normalize_log_level(level)
    basicConfig(level=normalized, force=force)
    return normalized, invalid


def format_log_message(template: str, *args: object) -> str:
    """Interpolate ``args`` into ``template`` with ``%`` formatting.

    A template without arguments is returned untouched, so literal ``%``
    signs need no escaping.
    """
    return template % args if args else template


class _SupportsLog(typ.Protocol):
    """The subset of the femtologging logger interface used here."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def _emit(
    logger: _SupportsLog,
    level: LogLevel,
    message: str,
    exc_info: object | None = None,
) -> None:
    logger.log(str(level), message, exc_info=exc_info, stack_info=False)


def log_debug(logger: _SupportsLog, template: str, *args: object) -> None:
    """Log at DEBUG."""
    _emit(logger, LogLevel.DEBUG, format_log_message(template, *args))


def log_info(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log at INFO, optionally attaching ``exc_info``."""
    _emit(logger, LogLevel.INFO, format_log_message(template, *args), exc_info)


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log at WARNING, optionally attaching ``exc_info``.

    Parameters
    ----------
    logger : _SupportsLog
        Destination logger.
    template : str
        ``%``-style message template.
    *args : object
        Template arguments.
    exc_info : object | None, optional
        Exception to attach to the record.

    """
    _emit(logger, LogLevel.WARNING, format_log_message(template, *args), exc_info)


__all__ = [
    "DEFAULT_LOG_LEVEL",
    "LogLevel",
    "configure_logging",
    "format_log_message",
    "get_logger",
    "log_debug",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
