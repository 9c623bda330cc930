"""Console and run-log configuration for edgewaf.

Progress messages go to stderr through rich. When ``log_path`` is set in the
configuration, the same messages are appended to that file so a provisioning
run leaves a record next to the service it touched.
"""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from edgewaf.errors import ConfigurationError

LOGGER_NAME = "edgewaf"
RUN_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Libraries whose request chatter drowns out progress messages.
NOISY_LOGGERS = ("httpx", "httpcore")


def verbosity_level(verbose: bool = False, quiet: bool = False) -> int:
    """Map the CLI verbosity flags to a log level.

    ``verbose`` wins when both flags are given.
    """
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def configure_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Attach a rich console handler to the edgewaf logger.

    Calling it again only adjusts the level, so the console handler is never
    duplicated.

    Args:
        verbose: Show debug messages, including every HTTP request.
        quiet: Show warnings and errors only.

    Returns:
        The package logger.
    """
    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(verbosity_level(verbose, quiet))

    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        package_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given module name.

    Args:
        name: Module name (typically __name__).

    Returns:
        Logger under the edgewaf hierarchy.
    """
    return logging.getLogger(name)


def log_to_file(filepath: str | Path) -> logging.FileHandler:
    """Append edgewaf messages to a run log.

    The file is opened in append mode and created if missing. Asking for a
    path that already has a handler returns that handler.

    Args:
        filepath: Path to the run log.

    Returns:
        The file handler writing to ``filepath``.

    Raises:
        ConfigurationError: If the file cannot be opened.
    """
    path = Path(filepath).resolve()
    package_logger = logging.getLogger(LOGGER_NAME)

    for existing in package_logger.handlers:
        if isinstance(existing, logging.FileHandler) and Path(existing.baseFilename) == path:
            return existing

    try:
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Cannot open log file {path}: {e.strerror}",
            hint="Check 'log_path' in the configuration file.",
        ) from e

    handler.setFormatter(logging.Formatter(RUN_LOG_FORMAT))
    package_logger.addHandler(handler)
    return handler
