"""Dashboard settings: environment defaults overlaid by an encrypted JSON file.

Secret fields (dashboard password, provider API keys) are stored with
AES-256-GCM. Each value carries its own random nonce, prepended to the
ciphertext and base64-encoded for JSON storage.
"""

from __future__ import annotations

import base64
import json
import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from usage_dashboard.config import (
    DEFAULT_BILLING_CYCLE_DAY,
    DEFAULT_DASHBOARD_PASSWORD,
    ENV_ANTHROPIC_API_KEY,
    ENV_ANTHROPIC_BILLING_DATE,
    ENV_DASHBOARD_PASSWORD,
    ENV_ENCRYPTION_KEY,
    ENV_OPENAI_API_KEY,
    ENV_OPENAI_BILLING_DATE,
    ENV_OPENROUTER_API_KEY,
    ENV_OPENROUTER_BILLING_DATE,
)
from usage_dashboard.models import ProviderConfig, ProviderId

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
KEY_SIZE = 32

SECRET_FIELDS = frozenset({"dashboard_password", "openai_key", "anthropic_key", "openrouter_key"})

_MASKS = {
    "dashboard_password": "••••••••",
    "openai_key": "sk-...••••",
    "anthropic_key": "sk-ant-...••••",
    "openrouter_key": "sk-or-...••••",
}


class SecretCipher:
    """Encrypts and decrypts individual string values with AES-256-GCM."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise ValueError(f"Key must be exactly {KEY_SIZE} bytes, got {len(key)}")
        self._aesgcm = AESGCM(key)

    @classmethod
    def from_hex(cls, hex_key: str) -> "SecretCipher":
        try:
            key = bytes.fromhex(hex_key.strip()[: KEY_SIZE * 2])
        except ValueError as exc:
            raise ValueError("Encryption key must be hex-encoded.") from exc
        return cls(key)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SecretCipher":
        env = os.environ if environ is None else environ
        hex_key = env.get(ENV_ENCRYPTION_KEY, "")
        if not hex_key:
            logger.warning(
                "%s is not set; generated a temporary key. Saved secrets will not survive a restart.",
                ENV_ENCRYPTION_KEY,
            )
            return cls(AESGCM.generate_key(bit_length=KEY_SIZE * 8))
        return cls.from_hex(hex_key)

    def encrypt(self, plaintext: str) -> str:
        if not plaintext:
            return ""
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + ciphertext).decode("ascii")

    def decrypt(self, encrypted: str) -> str:
        """Decrypt a stored value.

        Raises:
            ValueError: If the value is malformed or was sealed with another key.
        """
        if not encrypted:
            return ""
        try:
            combined = base64.b64decode(encrypted.encode("ascii"), validate=True)
            nonce, ciphertext = combined[:NONCE_SIZE], combined[NONCE_SIZE:]
            return self._aesgcm.decrypt(nonce, ciphertext, None).decode("utf-8")
        except (InvalidTag, ValueError) as exc:
            raise ValueError(f"Decryption failed: {str(exc) or type(exc).__name__}") from exc


@dataclass(frozen=True)
class DashboardSettings:
    dashboard_password: str = DEFAULT_DASHBOARD_PASSWORD
    openai_key: str = ""
    anthropic_key: str = ""
    openrouter_key: str = ""
    openai_cycle: int = DEFAULT_BILLING_CYCLE_DAY
    anthropic_cycle: int = DEFAULT_BILLING_CYCLE_DAY
    openrouter_cycle: int = DEFAULT_BILLING_CYCLE_DAY

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DashboardSettings":
        env = os.environ if environ is None else environ
        return cls(
            dashboard_password=env.get(ENV_DASHBOARD_PASSWORD) or DEFAULT_DASHBOARD_PASSWORD,
            openai_key=env.get(ENV_OPENAI_API_KEY, ""),
            anthropic_key=env.get(ENV_ANTHROPIC_API_KEY, ""),
            openrouter_key=env.get(ENV_OPENROUTER_API_KEY, ""),
            openai_cycle=parse_cycle_day(env.get(ENV_OPENAI_BILLING_DATE)),
            anthropic_cycle=parse_cycle_day(env.get(ENV_ANTHROPIC_BILLING_DATE)),
            openrouter_cycle=parse_cycle_day(env.get(ENV_OPENROUTER_BILLING_DATE)),
        )

    def provider_config(self, provider: ProviderId) -> ProviderConfig:
        return ProviderConfig(
            api_key=getattr(self, f"{provider.value}_key"),
            billing_cycle_start_day=getattr(self, f"{provider.value}_cycle"),
        )

    def provider_configs(self) -> dict[ProviderId, ProviderConfig]:
        return {provider: self.provider_config(provider) for provider in ProviderId}

    def masked(self) -> dict[str, Any]:
        """Display-safe view: secrets replaced by a fixed mask, empty stays empty."""
        view: dict[str, Any] = {}
        for name, value in asdict(self).items():
            if name in SECRET_FIELDS:
                view[name] = _MASKS[name] if value else ""
            else:
                view[name] = value
        return view


def parse_cycle_day(value: Any, default: int = DEFAULT_BILLING_CYCLE_DAY) -> int:
    """Lenient parse used for stored/env values; invalid input degrades to ``default``."""
    try:
        day = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return day if 1 <= day <= 31 else default


def validate_cycle_day(value: Any) -> int:
    """Strict parse used for user updates."""
    try:
        day = int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Billing cycle day must be a whole number, got {value!r}.") from exc
    if not 1 <= day <= 31:
        raise ValueError(f"Billing cycle day must be between 1 and 31, got {day}.")
    return day


class SettingsStore:
    """Loads, updates and persists ``DashboardSettings``.

    The store is the only place credentials are encrypted or written to disk;
    the usage core only ever sees the ``ProviderConfig`` values it returns.
    """

    def __init__(
        self,
        path: Path | str,
        cipher: SecretCipher,
        defaults: DashboardSettings | None = None,
    ) -> None:
        self.path = Path(path)
        self.cipher = cipher
        self.defaults = defaults or DashboardSettings()
        self._settings = self.defaults

    @property
    def settings(self) -> DashboardSettings:
        return self._settings

    def provider_configs(self) -> dict[ProviderId, ProviderConfig]:
        return self._settings.provider_configs()

    def masked(self) -> dict[str, Any]:
        return self._settings.masked()

    def load(self) -> DashboardSettings:
        if not self.path.exists():
            logger.info("No settings file at %s; using environment defaults.", self.path)
            self._settings = self.defaults
            return self._settings

        try:
            stored = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Error loading settings from %s: %s", self.path, exc)
            self._settings = self.defaults
            return self._settings

        if not isinstance(stored, dict):
            logger.error("Settings file %s does not contain an object; ignoring it.", self.path)
            self._settings = self.defaults
            return self._settings

        values: dict[str, Any] = {}
        for item in fields(DashboardSettings):
            raw = stored.get(item.name)
            if not raw:
                continue
            if item.name in SECRET_FIELDS:
                try:
                    values[item.name] = self.cipher.decrypt(str(raw))
                except ValueError as exc:
                    logger.error("Could not decrypt %s; keeping default: %s", item.name, exc)
            else:
                values[item.name] = parse_cycle_day(raw, getattr(self.defaults, item.name))

        self._settings = replace(self.defaults, **values)
        logger.info("Settings loaded from %s.", self.path)
        return self._settings

    def save(self) -> None:
        payload: dict[str, Any] = {}
        for name, value in asdict(self._settings).items():
            payload[name] = self.cipher.encrypt(value) if name in SECRET_FIELDS else value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info("Settings saved to %s.", self.path)

    def update(self, **changes: Any) -> DashboardSettings:
        """Apply the provided non-empty fields, validate, and persist.

        Raises:
            ValueError: On unknown fields or an invalid billing cycle day.
        """
        known = {item.name for item in fields(DashboardSettings)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

        values: dict[str, Any] = {}
        for name, value in changes.items():
            if value is None or value == "":
                continue
            if name in SECRET_FIELDS:
                values[name] = str(value).strip()
            else:
                values[name] = validate_cycle_day(value)

        if not values:
            return self._settings

        self._settings = replace(self._settings, **values)
        self.save()
        return self._settings
