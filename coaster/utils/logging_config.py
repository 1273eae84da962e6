"""Unified logging configuration for the CLI and worker pools.

Provides consistent logging across the single-instance pass, the
parallel coordinator and its workers:
    - Console and file handlers
    - JSON output mode for log ingestion
    - Contextual fields (run, chunk)
    - Warning capture (Python warnings → logging)
    - Uncaught exception logging
    - Worker-process support (QueueHandler in workers, QueueListener
      in the coordinator)

Public API:
    setup_logging(log_level="DEBUG", context={"run": run_id})
    push_context(chunk=3)
    pop_context(keys=["chunk"])
    start_queue_listener(queue) / setup_worker_logging(queue, level)
    install_excepthook()

Format examples:
    Human: 2026-10-19T13:45:12.345Z | DEBUG    | run=1a2b chunk=3 | Found destring at line 812
    JSON: {"t":"2026-10-19T13:45:12.345Z","lvl":"DEBUG","chunk":3,"msg":"..."}

Context uses contextvars, so threads in a pool keep separate fields.
Idempotent: repeated setup_logging() calls don't duplicate handlers.
"""

import contextvars
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


_context_var: contextvars.ContextVar = contextvars.ContextVar('coaster_log_context')

_configured = False


def _current_context() -> Dict[str, Any]:
    return _context_var.get({})


class ContextFormatter(logging.Formatter):
    """Formatter that renders contextual fields alongside each record.

    Supports:
        - Human-readable format with optional ANSI colors
        - JSON lines for machine ingestion
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt_mode: str = "human", use_color: bool = True, tz: str = "UTC"):
        super().__init__()
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()
        self.tz = tz

    def format(self, record: logging.LogRecord) -> str:
        context = dict(_current_context())
        # Records forwarded from worker processes carry their own context
        context.update(getattr(record, 'context', None) or {})

        if self.tz == "UTC":
            ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        else:
            ts = datetime.fromtimestamp(record.created)

        if self.fmt_mode == "json":
            return self._format_json(record, ts, context)
        return self._format_human(record, ts, context)

    def _format_json(self, record: logging.LogRecord, ts: datetime, context: dict) -> str:
        payload = {
            't': ts.isoformat(),
            'lvl': record.levelname,
            'name': record.name,
            'pid': record.process or os.getpid(),
            'msg': record.getMessage(),
        }
        payload.update(context)
        if record.exc_info:
            payload['exc'] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)

    def _format_human(self, record: logging.LogRecord, ts: datetime, context: dict) -> str:
        ts_str = ts.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'

        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        parts = [ts_str, '|', level, '|']
        if context:
            parts.append(' '.join(f"{k}={v}" for k, v in context.items()))
            parts.append('|')
        parts.append(record.getMessage())

        line = ' '.join(parts)
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


class _ContextQueueHandler(logging.handlers.QueueHandler):
    """QueueHandler that snapshots the worker's context onto each record."""

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        record.context = dict(_current_context())
        return super().prepare(record)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    tz: str = "UTC",
    capture_warnings: bool = True,
    context: Optional[Dict[str, Any]] = None,
) -> List[logging.Handler]:
    """Configure the root logger (idempotent).

    Parameters
    ----------
    log_level : str
        Logging level: "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"
    log_file : str, optional
        Log file path; None for no file logging
    json : bool
        Use JSON lines in the log file, default False
    color : bool
        Use ANSI colors in console output, default True
    to_stderr : bool
        Log to stderr (console), default True
    tz : str
        Timezone for timestamps, "UTC" (default) or "local"
    capture_warnings : bool
        Capture Python warnings to logging, default True
    context : dict, optional
        Initial contextual fields (e.g., {"run": "5f2c"})

    Returns
    -------
    list[logging.Handler]
        Handlers installed on the root logger

    Examples
    --------
    >>> setup_logging(log_level="DEBUG", log_file="logs/coast.log",
    ...               context={"run": "5f2c"})
    """
    global _configured

    root = logging.getLogger()
    if _configured:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

    root.setLevel(getattr(logging, log_level.upper()))

    handlers: List[logging.Handler] = []
    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ContextFormatter("human", color, tz))
        handlers.append(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setFormatter(
            ContextFormatter("json" if json else "human", use_color=False, tz=tz)
        )
        handlers.append(file_handler)

    for handler in handlers:
        root.addHandler(handler)

    if context:
        push_context(**context)

    if capture_warnings:
        logging.captureWarnings(True)

    _configured = True
    return handlers


def start_queue_listener(queue: Any) -> logging.handlers.QueueListener:
    """Forward records arriving on *queue* to the root logger's handlers.

    Parameters
    ----------
    queue : multiprocessing.Queue
        Queue shared with worker processes

    Returns
    -------
    logging.handlers.QueueListener
        Started listener; call ``stop()`` once the workers have exited.

    Notes
    -----
    Called by the coordinator before spawning process workers.
    """
    listener = logging.handlers.QueueListener(
        queue, *logging.getLogger().handlers, respect_handler_level=True
    )
    listener.start()
    return listener


def setup_worker_logging(queue: Any, log_level: str = "INFO") -> None:
    """Route a worker process's logging through *queue*.

    Parameters
    ----------
    queue : multiprocessing.Queue
        Queue drained by the coordinator's listener
    log_level : str
        Level for the worker's root logger

    Notes
    -----
    Used as the ``initializer`` of a ProcessPoolExecutor. Any handlers
    inherited through fork are dropped so records are emitted once.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.addHandler(_ContextQueueHandler(queue))
    root.setLevel(getattr(logging, log_level.upper()))


def push_context(**kwargs) -> None:
    """Add contextual fields to all subsequent log records.

    Examples
    --------
    >>> push_context(run="5f2c")
    >>> logger.info("Started")   # → "... | run=5f2c | Started"
    >>> push_context(chunk=2)
    >>> logger.debug("Coasted")  # → "... | run=5f2c chunk=2 | Coasted"
    """
    _context_var.set({**_current_context(), **kwargs})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Remove contextual fields; all of them when *keys* is None."""
    if keys is None:
        _context_var.set({})
        return
    _context_var.set({k: v for k, v in _current_context().items() if k not in keys})


def install_excepthook() -> None:
    """Log uncaught exceptions before the interpreter exits."""
    def log_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logging.getLogger(__name__).critical(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback)
        )

    sys.excepthook = log_exception


def shutdown() -> None:
    """Flush and close all handlers. Call at the end of main()."""
    logging.shutdown()
