"""Structured logging setup for the solar assessor."""

import functools
import inspect
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional, Dict, Any
from pathlib import Path


DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(assessment_id)s] %(message)s"

# Task-local so concurrent assessments keep their own ids
_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


class ContextFilter(logging.Filter):
    """Add context information to log records."""

    defaults: Dict[str, Any] = {"assessment_id": "-"}

    @property
    def context(self) -> Dict[str, Any]:
        return _log_context.get()

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context fields to log record."""
        for key, value in self.defaults.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        for key, value in self.context.items():
            setattr(record, key, value)
        return True

    def clear_context(self):
        """Clear all context fields."""
        _log_context.set({})


_context_filter = ContextFilter()


def setup_logging(
    level: str = "INFO",
    log_format: str = DEFAULT_FORMAT,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up structured logging with optional file output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format string for log messages
        log_file: Optional path to log file

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(_context_filter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(_context_filter)
        root_logger.addHandler(file_handler)

    return root_logger


def clear_context():
    """Clear all context fields."""
    _context_filter.clear_context()


def get_context() -> Dict[str, Any]:
    return dict(_log_context.get())


@contextmanager
def log_context(**kwargs):
    """
    Scope context fields to a block.

    Example:
        with log_context(assessment_id=assessment_id):
            await run_stages()
    """
    token = _log_context.set({**_log_context.get(), **kwargs})
    try:
        yield
    finally:
        _log_context.reset(token)


def with_context(**context_kwargs):
    """
    Decorator to add context to all log messages within a function.

    Works on both plain and ``async`` functions; the previous context is
    restored when the call returns.

    Example:
        @with_context(component="orchestrator")
        async def run_assessment(request):
            logger.info("Starting")  # Includes component
    """
    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                token = _log_context.set({**_log_context.get(), **context_kwargs})
                try:
                    return await func(*args, **kwargs)
                finally:
                    _log_context.reset(token)
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            token = _log_context.set({**_log_context.get(), **context_kwargs})
            try:
                return func(*args, **kwargs)
            finally:
                _log_context.reset(token)

        return wrapper
    return decorator
