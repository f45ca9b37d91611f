"""Settings dataclass and its on-disk store.

The API credential is the only secret: it is written encrypted under the fixed
``api_key_ciphertext`` field and decrypted on load. When nothing is stored the
``INKPILOT_API_KEY`` environment variable supplies the default.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Literal, Mapping

from cryptography.fernet import Fernet, InvalidToken

__all__ = ["Settings", "SettingsStore", "SecretVault", "redact_secret"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".inkpilot"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_API_KEY_FIELD = "api_key_ciphertext"
_API_KEY_ENV = "INKPILOT_API_KEY"
_ENV_OVERRIDES: Mapping[str, str] = {
    "INKPILOT_PROVIDER": "provider",
    "INKPILOT_MODEL": "model",
    "INKPILOT_GEMINI_BASE_URL": "gemini_base_url",
    "INKPILOT_OPENAI_BASE_URL": "openai_base_url",
    "INKPILOT_SEARCH_API_KEY": "search_api_key",
    "INKPILOT_SEARCH_API_URL": "search_api_url",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "INKPILOT_DEMO_MODE": "demo_mode",
    "INKPILOT_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "INKPILOT_TEMPERATURE": "temperature",
    "INKPILOT_REQUEST_TIMEOUT": "request_timeout",
}
_TRUE_VALUES = {"1", "true", "yes", "on"}

Provider = Literal["gemini", "openai"]


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    provider: Provider = "gemini"
    api_key: str = ""
    model: str = "gemini-1.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    openai_base_url: str = "https://api.openai.com/v1"
    temperature: float = 0.7
    max_output_tokens: int = 500
    request_timeout: float = 60.0
    demo_mode: bool = False
    demo_delay_seconds: float = 1.0
    demo_search_delay_seconds: float = 1.5
    search_api_key: str = ""
    search_api_url: str = ""
    search_max_results: int = 5
    debug_logging: bool = False


class SecretVault:
    """Fernet encryption for the stored credential, keyed by a file beside the settings."""

    def __init__(self, *, key_path: Path | None = None) -> None:
        self._key_path = key_path or (_SETTINGS_DIR / "settings.key")
        self._fernet: Fernet | None = None

    def encrypt(self, secret: str) -> str:
        if not secret:
            return ""
        return self._get_fernet().encrypt(secret.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str | None) -> str:
        if not token:
            return ""
        try:
            return self._get_fernet().decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken as exc:
            raise ValueError("Stored credential could not be decrypted") from exc

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            self._fernet = Fernet(self._load_or_create_key())
        return self._fernet

    def _load_or_create_key(self) -> bytes:
        path = self._key_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            return path.read_bytes().strip()
        key = Fernet.generate_key()
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_bytes(key)
        if os.name != "nt":  # pragma: no cover - depends on OS
            os.chmod(tmp_path, 0o600)
        tmp_path.replace(path)
        return key


class SettingsStore:
    """JSON persistence for :class:`Settings` with an encrypted credential."""

    def __init__(self, path: Path | None = None, *, vault: SecretVault | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH
        self._vault = vault or SecretVault(key_path=self._path.with_suffix(".key"))

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Read settings from disk, then apply ``overrides`` and ``INKPILOT_*`` variables."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            api_key = self._decrypt_api_key(payload.pop(_API_KEY_FIELD, None))
            data = _filter_fields(payload)
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            if api_key:
                settings = replace(settings, api_key=api_key)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="caller")
        settings = self._apply_env_overrides(settings)
        LOGGER.debug("Settings loaded from %s (credential stored=%s)", self._path, bool(settings.api_key))
        return settings

    def save(self, settings: Settings) -> Path:
        """Write settings atomically, encrypting the credential."""

        data = asdict(settings)
        api_key = data.pop("api_key", "") or ""
        if api_key:
            data[_API_KEY_FIELD] = self._vault.encrypt(api_key)
        data["version"] = _SETTINGS_VERSION
        body = json.dumps(data, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def save_credential(self, api_key: str) -> Settings:
        """Persist a new credential, keeping every other stored field."""

        current = self._read_settings_without_env()
        updated = replace(current, api_key=api_key)
        self.save(updated)
        return updated

    def _read_settings_without_env(self) -> Settings:
        payload = self._read_payload()
        if not payload:
            return Settings()
        api_key = self._decrypt_api_key(payload.pop(_API_KEY_FIELD, None))
        try:
            settings = Settings(**_filter_fields(payload))
        except TypeError:
            settings = Settings()
        return replace(settings, api_key=api_key)

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        return payload if isinstance(payload, dict) else {}

    def _decrypt_api_key(self, ciphertext: str | None) -> str:
        if not ciphertext:
            return ""
        try:
            return self._vault.decrypt(ciphertext)
        except ValueError as exc:
            LOGGER.warning("Unable to decrypt stored API key: %s", exc)
            return ""

    def _apply_overrides(self, settings: Settings, overrides: Mapping[str, Any], *, source: str) -> Settings:
        allowed = {field.name for field in fields(Settings)}
        filtered = {key: value for key, value in overrides.items() if key in allowed and value is not None}
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
        env_key = os.environ.get(_API_KEY_ENV)
        if env_key and not settings.api_key:
            overrides["api_key"] = env_key
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(Settings)} - {"api_key"}
    return {key: value for key, value in payload.items() if key in allowed}


def redact_secret(value: str) -> str:
    stripped = (value or "").strip()
    if not stripped:
        return ""
    if len(stripped) <= 4:
        return "*" * len(stripped)
    return f"{stripped[:2]}{'*' * (len(stripped) - 4)}{stripped[-2:]}"
