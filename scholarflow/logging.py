"""Logging setup, crash reporting and the ``log_call`` decorator."""

from __future__ import annotations

import functools
import inspect
import logging
import os
import platform
import sys
import threading
import time
import traceback
from pathlib import Path
from typing import Any, Optional

from .config import CONFIG_DIR_NAME, get_user_config_dir

LOG_FILENAME = "scholarflow.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ENV_LOG_LEVEL = "SCHOLARFLOW_LOG_LEVEL"

# Argument names whose values never reach the log.
REDACTED_ARGUMENTS = frozenset({"api_key", "authorization", "password"})

_log_path: Optional[Path] = None
_hooks_installed = False
_hooks_lock = threading.Lock()


def _resolve_level(level: int | str | None) -> int:
    override = os.environ.get(ENV_LOG_LEVEL, "").strip().upper()
    if override:
        resolved = logging.getLevelName(override)
        if isinstance(resolved, int):
            return resolved
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        return resolved if isinstance(resolved, int) else logging.INFO
    return logging.INFO if level is None else level


def setup_logging(
    app_name: str = CONFIG_DIR_NAME,
    *,
    level: int | str | None = None,
    log_filename: Optional[str] = None,
) -> logging.Logger:
    """Send records from every ``scholarflow`` logger to stderr and a log file.

    ``SCHOLARFLOW_LOG_LEVEL`` overrides ``level``. Only the first call
    installs handlers; later calls return the application logger.
    """

    global _log_path

    app_logger = logging.getLogger(app_name)
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return app_logger

    resolved_level = _resolve_level(level)
    log_path = get_user_config_dir(app_name) / (log_filename or LOG_FILENAME)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [
        logging.StreamHandler(),
        logging.FileHandler(log_path, encoding="utf-8"),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=resolved_level, handlers=handlers)
    _log_path = log_path

    app_logger.info(
        "Logging to %s",
        log_path,
        extra={"level": logging.getLevelName(resolved_level)},
    )
    app_logger.debug(
        "Python %s on %s",
        platform.python_version(),
        platform.platform(),
        extra={"executable": sys.executable, "cwd": os.getcwd()},
    )
    return app_logger


def get_log_file_path(logger: logging.Logger | None = None) -> Optional[Path]:
    """Return the log file written by :func:`setup_logging`, if any."""

    if _log_path is not None:
        return _log_path
    candidates = (logger or logging.getLogger()).handlers
    for handler in candidates:
        filename = getattr(handler, "baseFilename", None)
        if filename:
            return Path(filename)
    return None


def install_exception_hook(logger: logging.Logger) -> None:
    """Route uncaught exceptions, including worker-thread ones, to ``logger``."""

    global _hooks_installed
    with _hooks_lock:
        if _hooks_installed:
            return
        _hooks_installed = True

    previous_hook = sys.excepthook
    previous_thread_hook = threading.excepthook

    def on_exception(exc_type, exc_value, exc_traceback) -> None:
        if not issubclass(exc_type, KeyboardInterrupt):
            logger.critical(
                "Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback)
            )
            details = "".join(traceback.format_exception(exc_type, exc_value, exc_traceback))
            _show_crash_message(logger, details)
        previous_hook(exc_type, exc_value, exc_traceback)

    def on_thread_exception(args) -> None:
        if not issubclass(args.exc_type, KeyboardInterrupt):
            thread_name = args.thread.name if args.thread is not None else "?"
            logger.critical(
                "Uncaught exception in thread %s",
                thread_name,
                exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
            )
        previous_thread_hook(args)

    sys.excepthook = on_exception
    threading.excepthook = on_thread_exception


def _show_crash_message(logger: logging.Logger, details: str) -> None:
    # Dialogs can only be shown from the GUI thread of a running app.
    if threading.current_thread() is not threading.main_thread():
        return
    try:
        from PyQt6.QtWidgets import QApplication, QMessageBox
    except ImportError:
        logger.debug("Qt unavailable; crash dialog skipped")
        return
    if QApplication.instance() is None:
        return

    box = QMessageBox(
        QMessageBox.Icon.Critical,
        "ScholarFlow",
        "ScholarFlow hit an unexpected error.",
    )
    log_path = get_log_file_path(logger)
    if log_path is not None:
        box.setInformativeText(f"See {log_path} for details.")
    box.setDetailedText(details)
    box.exec()


def _short_repr(value: Any, limit: int = 2000) -> str:
    try:
        text = repr(value)
    except Exception:
        text = object.__repr__(value)
    return text if len(text) <= limit else text[: limit - 1] + "…"


def _describe_arguments(signature: inspect.Signature, args: tuple, kwargs: dict) -> str:
    try:
        bound = signature.bind_partial(*args, **kwargs)
    except TypeError:
        return "?"
    parts = []
    for name, value in bound.arguments.items():
        if name in ("self", "cls"):
            continue
        shown = "***" if name in REDACTED_ARGUMENTS and value else _short_repr(value)
        parts.append(f"{name}={shown}")
    return ", ".join(parts)


def log_call(
    _func: Optional[Any] = None,
    *,
    logger: logging.Logger | str | None = None,
    level: int = logging.DEBUG,
    include_args: bool = True,
    include_result: bool = False,
    exc_level: int = logging.ERROR,
) -> Any:
    """Log entry, exit and failures of the decorated function.

    Works bare (``@log_call``) or with options
    (``@log_call(include_result=True)``). Arguments named in
    :data:`REDACTED_ARGUMENTS` are masked.
    """

    def decorator(func: Any) -> Any:
        signature = inspect.signature(func)
        name = f"{func.__module__}.{func.__qualname__}"
        if isinstance(logger, logging.Logger):
            target = logger
        else:
            target = logging.getLogger(logger or func.__module__)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if include_args:
                target.log(level, "-> %s(%s)", name, _describe_arguments(signature, args, kwargs))
            else:
                target.log(level, "-> %s", name)
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception:
                target.log(
                    exc_level,
                    "%s raised after %.3fs",
                    name,
                    time.perf_counter() - started,
                    exc_info=True,
                )
                raise
            elapsed = time.perf_counter() - started
            if include_result:
                target.log(level, "<- %s = %s (%.3fs)", name, _short_repr(result), elapsed)
            else:
                target.log(level, "<- %s (%.3fs)", name, elapsed)
            return result

        return wrapper

    if callable(_func):
        return decorator(_func)
    return decorator


__all__ = [
    "get_log_file_path",
    "install_exception_hook",
    "log_call",
    "setup_logging",
]
