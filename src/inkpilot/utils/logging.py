"""Logging for inkpilot.

Everything goes to one rotating file, ``~/.inkpilot/logs/inkpilot.log``
(``INKPILOT_LOG_DIR`` moves it), with an optional console echo. Two knobs
control verbosity:

* the root level, lowered to DEBUG by ``INKPILOT_DEBUG``;
* AI traffic, which opens up only the ``inkpilot.ai`` loggers (gateway,
  backends, busy tracker) to DEBUG. ``Settings.debug_logging`` drives it, so
  request traces can be captured without the selection and event-bus chatter
  that a global DEBUG level brings along.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from dataclasses import dataclass, field
from pathlib import Path

__all__ = [
    "AI_TRAFFIC_LOGGER",
    "get_log_path",
    "log_file_path",
    "set_ai_traffic",
    "setup_logging",
]

AI_TRAFFIC_LOGGER = "inkpilot.ai"
LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

_DEFAULT_LOG_DIR = Path.home() / ".inkpilot" / "logs"
_LOG_DIR_ENV = "INKPILOT_LOG_DIR"
_LIBRARY_LOGGERS = ("asyncio", "qasync", "httpx", "httpcore", "openai")


@dataclass(slots=True)
class _LogState:
    path: Path
    level: int
    handlers: list[logging.Handler] = field(default_factory=list)
    ai_traffic: bool = False


_STATE: _LogState | None = None


def log_file_path(log_dir: Path | str | None = None) -> Path:
    """Where the log file lives for ``log_dir`` (or the environment/default)."""

    directory = log_dir or os.environ.get(_LOG_DIR_ENV) or _DEFAULT_LOG_DIR
    return Path(directory).expanduser() / "inkpilot.log"


def setup_logging(
    level: int = logging.INFO,
    *,
    ai_traffic: bool = False,
    log_dir: Path | str | None = None,
    console: bool = True,
    force: bool = False,
) -> Path:
    """Attach inkpilot's handlers to the root logger and return the log path.

    A second call is a no-op unless ``force`` is set. Reconfiguring swaps out
    only the handlers installed here; handlers added by others stay.
    """

    global _STATE
    if _STATE is not None and not force:
        return _STATE.path

    path = log_file_path(log_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    root = logging.getLogger()
    if _STATE is not None:
        for handler in _STATE.handlers:
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)
    logging.captureWarnings(True)

    library_level = max(logging.WARNING, level)
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    _STATE = _LogState(path=path, level=level, handlers=handlers)
    set_ai_traffic(ai_traffic)
    return path


def set_ai_traffic(enabled: bool) -> None:
    """Switch DEBUG output for the ``inkpilot.ai`` loggers on or off."""

    logging.getLogger(AI_TRAFFIC_LOGGER).setLevel(logging.DEBUG if enabled else logging.NOTSET)
    if _STATE is None:
        return
    _STATE.ai_traffic = enabled
    # Handlers must pass the DEBUG records the AI loggers now emit.
    handler_level = min(_STATE.level, logging.DEBUG) if enabled else _STATE.level
    for handler in _STATE.handlers:
        handler.setLevel(handler_level)


def get_log_path() -> Path | None:
    return _STATE.path if _STATE is not None else None
