"""
Logging setup for Modguard.

Every module asks for ``get_logger("<component>")`` and receives a child of
the ``modguard`` logger. Handlers live on that parent only:

- console output through prompt_toolkit, coloured per level when stderr is a TTY
- one rotating log file per session under ``logs/``
"""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

ROOT_LOGGER_NAME = "modguard"
LOGS_DIR: Path = (Path(__file__).parents[3] / "logs").resolve()

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H-%M-%S"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

NOISY_LOGGERS = (
    "discord",
    "discord.gateway",
    "discord.client",
    "discord.http",
    "openai",
    "httpx",
    "httpcore",
    "websockets",
    "aiohttp",
)

_session_log_path: Path | None = None


class ColorFormatter(logging.Formatter):
    """Formatter that wraps each line in the ANSI colour of its level."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        return f"{color}{text}{RESET_COLOR}" if color else text


class PromptToolkitHandler(logging.Handler):
    """Console handler printing through prompt_toolkit so ANSI codes render on every terminal."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


def get_log_filepath() -> Path:
    """Return the log file shared by the whole process, choosing it on first call."""
    global _session_log_path
    if _session_log_path is None:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        _session_log_path = LOGS_DIR / f"{datetime.now().strftime(DATE_FORMAT)}.log"
    return _session_log_path


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if any(isinstance(handler, PromptToolkitHandler) for handler in root.handlers):
        return root

    root.setLevel(logging.DEBUG)
    root.propagate = False

    console = PromptToolkitHandler()
    console.setLevel(logging.INFO)
    formatter_class = ColorFormatter if should_use_color() else logging.Formatter
    console.setFormatter(formatter_class(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(console)

    log_file = RotatingFileHandler(get_log_filepath(), maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    log_file.setLevel(logging.DEBUG)
    log_file.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(log_file)

    return root


def get_logger(logger_name: str) -> logging.Logger:
    """Return the ``modguard.<logger_name>`` logger, configuring output on first use."""
    _configure_root()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{logger_name}")


def silence_noisy_loggers() -> None:
    """Only let third-party libraries through at ERROR and above."""
    for name in NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.setLevel(logging.ERROR)
        noisy.propagate = False
        noisy.handlers = []


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` replacement: log uncaught exceptions, let Ctrl+C through."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    logging.getLogger(ROOT_LOGGER_NAME).critical(
        "Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback)
    )


silence_noisy_loggers()
sys.excepthook = handle_exception
