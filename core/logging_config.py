"""
Logging setup shared by the source package, the service and the CLI.

Log files live under logs/ (or ASURA_LOG_DIR), prefixed by date.
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_env_log_dir = os.getenv("ASURA_LOG_DIR")
LOG_DIR = (
    Path(_env_log_dir).expanduser()
    if _env_log_dir
    else Path(__file__).parent.parent / "logs"
)


def _fallback_dir() -> Path:
    return Path(os.getenv("ASURA_LOG_DIR_FALLBACK", "/tmp/asura-logs"))


def _ensure_log_dir() -> None:
    global LOG_DIR
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        return
    except OSError:
        fallback = _fallback_dir()
        if fallback != LOG_DIR:
            LOG_DIR = fallback
            LOG_DIR.mkdir(parents=True, exist_ok=True)
            return
        raise


def _is_truthy(value: str) -> bool:
    return value.strip().lower() not in {"", "0", "false", "off", "no"}


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console: bool = True,
):
    """
    Configure the root logger.

    Args:
        level: root log level
        log_file: file name under LOG_DIR, prefixed with the current date
        console: also log to stdout
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    _ensure_log_dir()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        try:
            date_str = datetime.now().strftime("%Y%m%d")
            file_handler = logging.FileHandler(
                LOG_DIR / f"{date_str}_{log_file}", encoding="utf-8"
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError:
            pass

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root_logger


def setup_module_logger(
    name: str,
    log_file: str,
    level: int = logging.INFO,
    console_env: Optional[str] = None,
) -> logging.Logger:
    """
    Give a logger its own dated file without touching the root handlers.

    A log_file with a directory part ("source/pages.log") is written to
    LOG_DIR/source/<date>/pages.log.
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    _ensure_log_dir()

    date_str = datetime.now().strftime("%Y%m%d")
    log_path = LOG_DIR / log_file
    if log_path.parent != LOG_DIR:
        log_path = log_path.parent / date_str / log_path.name
    else:
        log_path = LOG_DIR / f"{date_str}_{log_file}"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        fallback = _fallback_dir()
        fallback.mkdir(parents=True, exist_ok=True)
        log_path = fallback / log_path.name
    for handler in logger.handlers:
        if (
            isinstance(handler, logging.FileHandler)
            and Path(handler.baseFilename) == log_path
        ):
            return logger

    try:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError:
        pass

    enable_console = _is_truthy(os.getenv("MODULE_LOG_TO_STDOUT", "0"))
    if console_env:
        enable_console = enable_console or _is_truthy(os.getenv(console_env, "0"))

    if enable_console:
        has_stdout_handler = any(
            isinstance(handler, logging.StreamHandler)
            and not isinstance(handler, logging.FileHandler)
            and getattr(handler, "stream", None) is sys.stdout
            for handler in logger.handlers
        )
        if not has_stdout_handler:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_log_level(env_var: str, default: int = logging.INFO) -> int:
    """Read a level name such as DEBUG from env_var; unknown names give default."""
    value = os.getenv(env_var, "").upper().strip()
    if not value:
        return default
    level = getattr(logging, value, default)
    return level if isinstance(level, int) else default


_initialized = False


def init_default_logging():
    """Root logging for the service, once per process."""
    global _initialized
    if not _initialized:
        setup_logging(
            level=get_log_level("ASURA_LOG_LEVEL"),
            log_file="app.log",
            console=True,
        )
        _initialized = True


__all__ = [
    "setup_logging",
    "setup_module_logger",
    "get_logger",
    "get_log_level",
    "LOG_DIR",
    "init_default_logging",
]
