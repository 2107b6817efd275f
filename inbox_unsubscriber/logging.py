"""
Structured logging for the classification and unsubscribe pipeline.

Each ``PipelineLogger`` belongs to one component and writes one JSON
object per record: component, event text, bound context and call fields.
Keys, tokens and bearer credentials are masked before anything is written.
"""

import json
import logging
import re
import time
from collections import Counter
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

ROOT_LOGGER_NAME = "inbox_unsubscriber"

MASK = '***'


class SensitiveDataFilter(logging.Filter):
    """Mask credentials in log text and structured fields.

    Works standalone (``mask``/``mask_fields``) and as a handler filter,
    so plain ``logging`` calls from third-party code are covered too.
    """

    SENSITIVE_KEYS = frozenset({
        'api_key', 'authorization', 'token', 'access_token', 'refresh_token',
        'client_secret', 'secret',
    })

    PATTERNS = (
        (re.compile(r'sk-[A-Za-z0-9_-]{8,}'), 'sk-' + MASK),
        (re.compile(r'(Bearer\s+)\S+', re.IGNORECASE), r'\g<1>' + MASK),
        (re.compile(r'([?&](?:token|key|access_token)=)[^&\s]+', re.IGNORECASE), r'\g<1>' + MASK),
        (re.compile(r'(api_key["\']?\s*[:=]\s*["\']?)[^"\'\s&,}]+', re.IGNORECASE), r'\g<1>' + MASK),
    )

    def mask(self, text: str) -> str:
        for pattern, replacement in self.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def mask_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        masked = {}
        for key, value in data.items():
            if key.lower() in self.SENSITIVE_KEYS:
                masked[key] = MASK
            elif isinstance(value, dict):
                masked[key] = self.mask_fields(value)
            elif isinstance(value, str):
                masked[key] = self.mask(value)
            else:
                masked[key] = value
        return masked

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.mask(record.msg)
        return True


_masker = SensitiveDataFilter()


class PipelineLogger:
    """JSON logger for one pipeline component.

    Context bound with ``bind`` is attached to every later record;
    ``scoped`` attaches context only for the duration of a block.
    """

    def __init__(self, component: str):
        self.component = component
        self.logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")
        self.context: Dict[str, Any] = {}
        self._counts: Counter = Counter()

    def bind(self, **context: Any) -> None:
        self.context.update(context)

    @contextmanager
    def scoped(self, **context: Any) -> Iterator[None]:
        saved = dict(self.context)
        self.context.update(context)
        try:
            yield
        finally:
            self.context = saved

    def _record(self, level: int, event: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        record = {
            'ts': datetime.now(timezone.utc).isoformat(),
            'level': logging.getLevelName(level),
            'component': self.component,
            'event': _masker.mask(event),
        }
        if self.context:
            record['context'] = _masker.mask_fields(self.context)
        if fields:
            record['fields'] = _masker.mask_fields(fields)
        return record

    def log(self, level: int, event: str, exc_info: bool = False, **fields: Any) -> None:
        if self.logger.isEnabledFor(level):
            payload = json.dumps(self._record(level, event, fields), default=str)
            self.logger.log(level, payload, exc_info=exc_info)

    def debug(self, event: str, **fields: Any) -> None:
        self.log(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self.log(logging.INFO, event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.log(logging.WARNING, event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self.log(logging.ERROR, event, **fields)

    def exception(self, error: BaseException, **fields: Any) -> None:
        """Log ``error`` with its type, any ``context`` it carries, and the traceback."""
        fields['error_type'] = type(error).__name__
        fields['error'] = str(error)
        error_context = getattr(error, 'context', None)
        if error_context:
            fields['error_context'] = error_context
        self.log(logging.ERROR, f"{type(error).__name__} raised", exc_info=True, **fields)

    @contextmanager
    def timed(self, operation: str) -> Iterator[None]:
        """Log the duration and outcome of the block; exceptions propagate."""
        started = time.monotonic()
        try:
            yield
        except Exception as e:
            self.error(f"{operation} failed", operation=operation, outcome='failure',
                       seconds=round(time.monotonic() - started, 3), error=str(e))
            raise
        self.info(f"{operation} finished", operation=operation, outcome='success',
                  seconds=round(time.monotonic() - started, 3))

    def count(self, operation: str, success: bool) -> None:
        self._counts[(operation, 'success' if success else 'failure')] += 1

    def counts(self) -> Dict[str, Dict[str, int]]:
        """Per-operation totals, e.g. ``{'bulk_unsubscribe': {'success': 3, 'failure': 1, 'total': 4}}``."""
        summary: Dict[str, Dict[str, int]] = {}
        for (operation, outcome), n in self._counts.items():
            entry = summary.setdefault(operation, {'success': 0, 'failure': 0, 'total': 0})
            entry[outcome] += n
            entry['total'] += n
        return summary


def configure_logging(
    level: str = "INFO",
    output: str = "console",
    filename: Optional[str] = None,
) -> logging.Logger:
    """Attach handlers to the package root logger, replacing earlier ones.

    Args:
        level: Level name, case-insensitive
        output: "console", "file" or "both"
        filename: Log file path; ignored unless ``output`` includes a file

    Returns:
        The package root logger
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    handlers = []
    if output in ("console", "both"):
        handlers.append(logging.StreamHandler())
    if output in ("file", "both") and filename:
        handlers.append(logging.FileHandler(filename))

    formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s')
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(_masker)
        root.addHandler(handler)
    return root
