"""
vfshost Logger Module

Logging for the filesystem and compiler-host layers:
- One logger per subsystem (vfs, host, compiler_host, fetcher, ...)
- Records tagged with the invocation generation that produced them
- Structured ``context`` rendered after the message
- In-memory diagnostic buffer the editor can surface next to its output

Author: YSNRFD
Version: 1.0.0
"""

import logging
import sys
import threading
from collections import deque
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Any, Deque, List, Optional


class LogLevel(IntEnum):
    """Numeric log levels, aligned with the stdlib ones."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class LogFormatter(logging.Formatter):
    """
    Line formatter for vfshost records.

    Produces lines of the form::

        [2024-01-01 12:00:00.000] INFO     [fetcher] (gen=3) Fetched package {package=x}
    """

    LEVEL_COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and getattr(sys.stdout, 'isatty', lambda: False)()

    def _level(self, name: str) -> str:
        padded = name.ljust(8)
        color = self.LEVEL_COLORS.get(name) if self.use_colors else None
        return f"{color}{padded}{self.RESET}" if color else padded

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).isoformat(sep=' ', timespec='milliseconds')
        parts = [f"[{stamp}]", self._level(record.levelname)]

        subsystem = getattr(record, 'subsystem', None)
        if subsystem:
            parts.append(f"[{subsystem}]")

        generation = getattr(record, 'generation', None)
        if generation is not None:
            parts.append(f"(gen={generation})")

        parts.append(record.getMessage())

        context = getattr(record, 'context', None)
        if context:
            parts.append("{" + " ".join(f"{key}={value}" for key, value in context.items()) + "}")

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class DiagnosticLogHandler(logging.Handler):
    """
    Keeps the most recent records in memory.

    The editor has no console of its own, so warnings recorded here
    (deferred fetch failures, best-effort read failures) are what gets
    shown next to the output panel.
    """

    def __init__(self, max_entries: int = 1000):
        super().__init__()
        self._entries: Deque[dict[str, Any]] = deque(maxlen=max_entries)
        self._entries_lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        entry = {
            'timestamp': record.created,
            'level': record.levelname,
            'subsystem': getattr(record, 'subsystem', None),
            'generation': getattr(record, 'generation', None),
            'message': record.getMessage(),
            'context': dict(getattr(record, 'context', None) or {}),
        }
        with self._entries_lock:
            self._entries.append(entry)

    def get_logs(
        self,
        level: Optional[str] = None,
        subsystem: Optional[str] = None,
        limit: int = 100
    ) -> List[dict[str, Any]]:
        """Newest ``limit`` entries matching the optional filters, oldest first."""
        with self._entries_lock:
            entries = list(self._entries)

        selected = [
            entry for entry in entries
            if (level is None or entry['level'] == level)
            and (subsystem is None or entry['subsystem'] == subsystem)
        ]
        return selected[-limit:] if limit else []

    def clear(self) -> None:
        with self._entries_lock:
            self._entries.clear()


class Logger:
    """
    Subsystem logger.

    One instance exists per subsystem name; all of them hang off the
    ``vfshost`` stdlib logger so handlers are configured once.

    Example:
        >>> log = Logger('fetcher')
        >>> log.info("Fetched package", context={'package': 'left-pad'})
        >>> log.warning("Stale fetch dropped", generation=4)
    """

    _instances: dict[str, 'Logger'] = {}
    _lock = threading.Lock()
    _initialized = False
    _diagnostic_handler: Optional[DiagnosticLogHandler] = None
    _handlers: List[logging.Handler] = []
    _settings: Optional[tuple] = None

    def __new__(cls, subsystem: str = 'host') -> 'Logger':
        with cls._lock:
            logger = cls._instances.get(subsystem)
            if logger is None:
                logger = super().__new__(cls)
                logger._subsystem = subsystem
                logger._logger = logging.getLogger(f'vfshost.{subsystem}')
                cls._instances[subsystem] = logger
            return logger

    @property
    def subsystem(self) -> str:
        return self._subsystem

    @classmethod
    def initialize(
        cls,
        level: int = LogLevel.INFO,
        log_file: Optional[str] = None,
        use_colors: bool = True,
        console_output: bool = True,
        buffer_size: int = 1000
    ) -> None:
        """
        Configure handlers on the ``vfshost`` logger.

        Repeating a call with the same settings is a no-op. Different
        settings replace the installed handlers, which also starts a fresh
        diagnostic buffer.

        Args:
            level: Minimum level captured by every handler
            log_file: Also append formatted lines to this file
            use_colors: Color the level name on a terminal
            console_output: Attach a stdout handler
            buffer_size: Number of records kept by the diagnostic buffer
        """
        settings = (int(level), log_file, use_colors, console_output, buffer_size)

        with cls._lock:
            if cls._initialized and cls._settings == settings:
                return

            package_logger = logging.getLogger('vfshost')
            for handler in cls._handlers:
                package_logger.removeHandler(handler)
                handler.close()
            package_logger.setLevel(level)

            cls._diagnostic_handler = DiagnosticLogHandler(max_entries=buffer_size)
            handlers: List[logging.Handler] = [cls._diagnostic_handler]

            if console_output:
                console = logging.StreamHandler(sys.stdout)
                console.setFormatter(LogFormatter(use_colors=use_colors))
                handlers.append(console)

            if log_file:
                Path(log_file).parent.mkdir(parents=True, exist_ok=True)
                to_file = logging.FileHandler(log_file, encoding='utf-8')
                to_file.setFormatter(LogFormatter(use_colors=False))
                handlers.append(to_file)

            for handler in handlers:
                handler.setLevel(level)
                package_logger.addHandler(handler)

            cls._handlers = handlers
            cls._settings = settings
            cls._initialized = True

    @classmethod
    def shutdown(cls) -> None:
        """Detach and close the handlers installed by initialize()."""
        with cls._lock:
            package_logger = logging.getLogger('vfshost')
            for handler in cls._handlers:
                package_logger.removeHandler(handler)
                handler.close()
            cls._handlers = []
            cls._diagnostic_handler = None
            cls._settings = None
            cls._initialized = False

    @classmethod
    def get_diagnostics(
        cls,
        level: Optional[str] = None,
        subsystem: Optional[str] = None,
        limit: int = 100
    ) -> List[dict[str, Any]]:
        """Records from the diagnostic buffer; [] before initialize()."""
        if cls._diagnostic_handler is None:
            return []
        return cls._diagnostic_handler.get_logs(level=level, subsystem=subsystem, limit=limit)

    def _extra(self, generation: Optional[int], context: Optional[dict[str, Any]]) -> dict[str, Any]:
        return {
            'subsystem': self._subsystem,
            'generation': generation,
            'context': context or {},
        }

    def _log(
        self,
        level: int,
        message: str,
        generation: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        self._logger.log(level, message, extra=self._extra(generation, context))

    def debug(self, message: str, generation: Optional[int] = None,
              context: Optional[dict[str, Any]] = None) -> None:
        self._log(LogLevel.DEBUG, message, generation, context)

    def info(self, message: str, generation: Optional[int] = None,
             context: Optional[dict[str, Any]] = None) -> None:
        self._log(LogLevel.INFO, message, generation, context)

    def warning(self, message: str, generation: Optional[int] = None,
                context: Optional[dict[str, Any]] = None) -> None:
        self._log(LogLevel.WARNING, message, generation, context)

    def error(self, message: str, generation: Optional[int] = None,
              context: Optional[dict[str, Any]] = None) -> None:
        self._log(LogLevel.ERROR, message, generation, context)

    def critical(self, message: str, generation: Optional[int] = None,
                 context: Optional[dict[str, Any]] = None) -> None:
        self._log(LogLevel.CRITICAL, message, generation, context)

    def exception(
        self,
        message: str,
        exc: Optional[BaseException] = None,
        generation: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        """Log an error with the stack trace of ``exc`` (or the active one)."""
        self._logger.error(
            message,
            exc_info=exc if exc is not None else True,
            extra=self._extra(generation, context)
        )


def get_logger(subsystem: str) -> Logger:
    """Shorthand for ``Logger(subsystem)``."""
    return Logger(subsystem)
