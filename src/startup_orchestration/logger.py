"""Logger for startup orchestration"""
import logging
import os
import typing as t

from rich.logging import RichHandler

if t.TYPE_CHECKING:

    class Representable(t.Protocol):
        def __str__(self) -> str:
            ...

    class LogMethod(t.Protocol):
        """Protocol for logger methods."""

        def __call__(
            self, message: Representable, *args: t.Any, **kwargs: t.Any
        ) -> None:
            ...


__all__ = [
    "configure",
    "create",
    "set_level",
    "LOG_LEVEL",
    "LOGGER",
]


class StartupLoggerAdapter(logging.LoggerAdapter):
    extra: t.Dict[str, t.Any]
    logger: logging.Logger


LOGGER = StartupLoggerAdapter(logging.getLogger("startup_orchestration"), {})
"""Package logger instance."""

LOG_LEVEL: t.Union[int, str] = os.getenv(
    "STARTUP_ORCHESTRATION_LOG_LEVEL", "INFO"
).upper()
"""The active log level for the package."""


def configure(level: t.Optional[t.Union[int, str]] = None) -> None:
    """Configure logging.

    Args:
        level (int | str, optional): Logging level. Defaults to the level read from
            STARTUP_ORCHESTRATION_LOG_LEVEL, or INFO.
    """
    global LOG_LEVEL

    if LOGGER.extra.get("configured"):
        return
    if level is not None:
        LOG_LEVEL = level
    LOGGER.setLevel(LOG_LEVEL)
    console_handler = RichHandler(
        markup=False,
        rich_tracebacks=True,
        omit_repeated_times=False,
    )
    LOGGER.logger.addHandler(console_handler)
    LOGGER.extra["configured"] = True


@t.overload
def create(name: None = None) -> StartupLoggerAdapter:
    ...


@t.overload
def create(name: str) -> logging.Logger:
    ...


def create(
    name: t.Optional[str] = None,
) -> t.Union[StartupLoggerAdapter, logging.Logger]:
    """Get or create a logger.

    Args:
        name (str, optional): The name of the logger. If None, the package logger is
            returned. Defaults to None. If a name is provided, a child logger is
            created.

    Returns:
        The logger.
    """
    if name is None:
        return LOGGER
    return LOGGER.logger.getChild(name)


def set_level(level: t.Union[int, str]) -> None:
    """Set the package log level.

    Args:
        level (int | str): The new log level.

    Raises:
        ValueError: If the log level is not valid.
    """
    global LOG_LEVEL

    if not LOGGER.extra.get("configured"):
        configure(level)
    else:
        LOG_LEVEL = level
        LOGGER.setLevel(level)


def __getattr__(name: str) -> "LogMethod":
    """Get a logger method from the package logger."""
    if name.startswith("__"):
        raise AttributeError(name)
    if not LOGGER.extra.get("configured"):
        configure()
    return getattr(LOGGER, name)
