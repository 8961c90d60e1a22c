"""Unified logging for Blueprint with console and file output."""
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

console = Console()

ROOT_LOGGER = "blueprint"

# Log file configuration
LOG_DIR = Path.home() / ".local" / "state" / "blueprint"
LOG_FILE = LOG_DIR / "blueprint.log"

# Track if file logging has been set up
_file_logging_configured = False


def setup_file_logging(log_file: str = None, verbose: bool = False):
    """Set up file logging for Blueprint operations.

    Args:
        log_file: Path to log file (defaults to ~/.local/state/blueprint/blueprint.log)
        verbose: Enable debug-level logging

    Note:
        Creates log directory if it doesn't exist.
        Falls back to /tmp if the state directory is not writable.
    """
    global _file_logging_configured

    if _file_logging_configured:
        return

    target_log_file = Path(log_file) if log_file else LOG_FILE

    try:
        target_log_file.parent.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        target_log_file = Path("/tmp/blueprint.log")
        target_log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger(ROOT_LOGGER)
    file_handler = logging.FileHandler(target_log_file)
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    file_formatter = logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(file_formatter)
    root_logger.addHandler(file_handler)

    set_verbose(verbose)

    _file_logging_configured = True

    root_logger.info(f"Blueprint logging initialized: {target_log_file}")


def set_verbose(verbose: bool) -> None:
    """Switch the whole ``blueprint`` logger tree between INFO and DEBUG.

    Swallowed, expected conditions (a secret that was already gone, a unit that
    was already stopped) are only logged at DEBUG, so they stay invisible during
    routine re-runs unless ``--verbose`` is given.
    """
    logging.getLogger(ROOT_LOGGER).setLevel(logging.DEBUG if verbose else logging.INFO)


def is_verbose() -> bool:
    """Return True when debug output is enabled."""
    return logging.getLogger(ROOT_LOGGER).isEnabledFor(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance with console output.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger with Rich console handler

    Note:
        The level is inherited from the ``blueprint`` root logger so that
        ``set_verbose`` affects every module at once. File logging must be
        enabled separately via setup_file_logging().
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    if root_logger.level == logging.NOTSET:
        root_logger.setLevel(logging.INFO)

    logger = logging.getLogger(name)

    # Only add console handler if not already present
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)

    return logger
