"""Application bootstrap for the inkpilot desktop editor."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO

from .ai.context import AIContext
from .services.settings import Settings, SettingsStore, redact_secret
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


def configure_logging(debug: bool = False, *, ai_traffic: bool = False, force: bool = False) -> Path:
    level = logging.DEBUG if debug else logging.INFO
    log_path = logging_utils.setup_logging(level, ai_traffic=ai_traffic, force=force)
    _LOGGER.debug(
        "Logging to %s (level=%s, ai_traffic=%s)", log_path, logging.getLevelName(level), ai_traffic
    )
    return log_path


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings, falling back to defaults when the store is unreadable."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def create_qapp() -> QtRuntime:
    """Create a QApplication driven by a qasync event loop."""

    from PySide6.QtWidgets import QApplication
    from qasync import QEventLoop

    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName("inkpilot")
    app.setApplicationDisplayName("inkpilot")

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    app.aboutToQuit.connect(loop.stop)
    return QtRuntime(app=app, loop=loop)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the ``inkpilot`` console script."""

    args = _parse_cli_args(argv)
    debug = _env_flag("INKPILOT_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("INKPILOT_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    store = SettingsStore(resolved_path)
    try:
        overrides = coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    if args.demo:
        overrides["demo_mode"] = True

    settings = load_settings(resolved_path, store=store, overrides=overrides or None)
    if args.dump_settings:
        dump_settings(settings, store, overrides=overrides)
        return

    logging_utils.set_ai_traffic(settings.debug_logging)

    from .ui.widgets.assistant_window import AssistantWindow

    runtime = create_qapp()
    context = AIContext(settings, store=store)
    window = AssistantWindow(context)
    window.show()

    loop = runtime.loop
    try:
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        with contextlib.suppress(RuntimeError):
            loop.run_until_complete(window.session.aclose())
        loop.close()


def coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    """Parse repeated ``KEY=VALUE`` arguments into typed ``Settings`` overrides."""

    defaults = Settings()
    known = {field.name for field in fields(Settings)}
    overrides: Dict[str, Any] = {}
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = (part.strip() for part in entry.split("=", 1))
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in known:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _coerce_value(getattr(defaults, key), raw_value)
    return overrides


def dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    """Write the effective settings as JSON with the credentials redacted."""

    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    payload["search_api_key"] = redact_secret(settings.search_api_key)
    output = {
        "settings": payload,
        "meta": {
            "path": str(store.path),
            "log_path": str(logging_utils.get_log_path() or logging_utils.log_file_path()),
            "cli_overrides": sorted(overrides),
            "environment_variables": sorted(name for name in os.environ if name.startswith("INKPILOT_")),
        },
    }
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _coerce_value(default: Any, raw_value: str) -> Any:
    if isinstance(default, bool):
        return _parse_bool(raw_value)
    if isinstance(default, int):
        return int(raw_value, 10)
    if isinstance(default, float):
        return float(raw_value)
    return raw_value


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="inkpilot",
        description="Launch the inkpilot editor or inspect its configuration.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.inkpilot/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings before launch (repeatable).",
    )
    parser.add_argument("--demo", action="store_true", help="Force demo mode for this run.")
    return parser.parse_args(argv)


if __name__ == "__main__":  # pragma: no cover
    main()
