"""Configuration management for the link bridge.

Configuration is read from the environment (optionally seeded from ``.env``
files) exactly once at process start and frozen into a ``BridgeConfig`` that is
passed explicitly to the handler and the reconciler.
"""

import os
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Tuple
from dotenv import load_dotenv

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_REDIRECT_URI = "https://auth.majestic-tech.net/auth/discord/callback"
DEFAULT_CREDS_PATH = "/etc/secrets/google_creds.json"
DEFAULT_CALLBACK_PATH = "/auth/discord/callback"

AUTH_MODES = ("jwt", "default")
MESSAGE_FORMATS = ("html", "plain")


@dataclass(frozen=True)
class BridgeConfig:
    """Immutable settings shared by the callback handler and the reconciler."""

    discord_client_id: str = ""
    discord_client_secret: str = ""
    redirect_uri: str = DEFAULT_REDIRECT_URI
    bot_token: str = ""
    google_creds_path: str = DEFAULT_CREDS_PATH
    google_auth_mode: str = "jwt"
    sheet_id: str = ""
    sheet_name: str = ""
    key_column_marker: str = "discord"
    link_column_markers: Tuple[str, ...] = ("telegram", "tg", "telegram id")
    link_column_label: str = "telegram"
    header_scan_width: int = 26
    max_scan_rows: int = 1000
    message_format: str = "html"
    http_timeout: int = 30
    reconcile_lock: bool = False
    callback_path: str = DEFAULT_CALLBACK_PATH
    log_level: str = "INFO"
    port: int = 3000

    def validate(self) -> List[str]:
        """Return warnings for missing or invalid settings.

        Missing values are not fatal at start-up; the operation that needs a
        value raises ``ConfigurationError`` via :meth:`require`.
        """
        warnings = []

        if not (self.discord_client_id and self.discord_client_secret and self.bot_token):
            warnings.append(
                "Missing DISCORD_CLIENT_ID / DISCORD_CLIENT_SECRET / BOT_TOKEN in env"
            )
        if not self.sheet_id:
            warnings.append("Missing GOOGLE_SHEET_ID in env")
        if not self.sheet_name:
            warnings.append(
                'Missing SHEET_NAME in env (set exact sheet/tab name, e.g. "Stats (RU)")'
            )
        if self.google_auth_mode not in AUTH_MODES:
            warnings.append(
                f"GOOGLE_AUTH_MODE must be one of {list(AUTH_MODES)}, got '{self.google_auth_mode}'"
            )
        if self.message_format not in MESSAGE_FORMATS:
            warnings.append(
                f"MESSAGE_FORMAT must be one of {list(MESSAGE_FORMATS)}, got '{self.message_format}'"
            )
        if not self.key_column_marker:
            warnings.append("KEY_COLUMN_MARKER must not be empty")
        if not self.link_column_markers:
            warnings.append("LINK_COLUMN_MARKERS must contain at least one marker")
        if self.header_scan_width <= 0:
            warnings.append("HEADER_SCAN_WIDTH must be positive")
        if self.max_scan_rows < 2:
            warnings.append("MAX_SCAN_ROWS must be at least 2")
        if self.http_timeout <= 0:
            warnings.append("HTTP_TIMEOUT must be positive")

        return warnings

    def is_configured(self) -> bool:
        """Check whether all values needed for a full link flow are present."""
        return not self.validate()

    def require(self, *names: str) -> None:
        """Raise ``ConfigurationError`` if any of the named settings is empty."""
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            env_names = ", ".join(ENV_NAMES.get(name, name.upper()) for name in missing)
            raise ConfigurationError(
                f"{env_names} not set in env", error_code="missing_config"
            )

    def with_overrides(self, **overrides: Any) -> "BridgeConfig":
        """Return a copy with the given settings replaced."""
        return replace(self, **overrides)

    def get_summary(self) -> Dict[str, Any]:
        """Summary safe for logging: secrets are reduced to set/missing."""
        return {
            "discord_client_id": _mask(self.discord_client_id),
            "discord_client_secret": "SET" if self.discord_client_secret else "NOT SET",
            "bot_token": "SET" if self.bot_token else "NOT SET",
            "redirect_uri": self.redirect_uri,
            "google_auth_mode": self.google_auth_mode,
            "google_creds_path": self.google_creds_path,
            "sheet_id": _mask(self.sheet_id),
            "sheet_name": self.sheet_name,
            "key_column_marker": self.key_column_marker,
            "link_column_markers": list(self.link_column_markers),
            "link_column_label": self.link_column_label,
            "header_scan_width": self.header_scan_width,
            "max_scan_rows": self.max_scan_rows,
            "message_format": self.message_format,
            "reconcile_lock": self.reconcile_lock,
            "callback_path": self.callback_path,
        }


ENV_NAMES = {
    "discord_client_id": "DISCORD_CLIENT_ID",
    "discord_client_secret": "DISCORD_CLIENT_SECRET",
    "redirect_uri": "REDIRECT_URI",
    "bot_token": "BOT_TOKEN",
    "google_creds_path": "GOOGLE_CREDS_PATH",
    "sheet_id": "GOOGLE_SHEET_ID",
    "sheet_name": "SHEET_NAME",
}


def _mask(value: str) -> str:
    if not value:
        return "NOT SET"
    return f"SET ({value[:4]}...)" if len(value) > 4 else "SET"


class ConfigManager:
    """Builds the bridge configuration from environment variables."""

    def __init__(self, config_dir: str = "config", load_env_files: bool = True) -> None:
        """Initialize configuration manager."""
        self.config_dir = config_dir
        if load_env_files:
            self._load_environment()

    def _load_environment(self) -> None:
        """Load environment variables from .env files."""
        try:
            env_file = os.path.join(os.getcwd(), ".env")
            if os.path.exists(env_file):
                load_dotenv(env_file)
                logger.debug("Loaded environment from .env file")

            env = os.getenv("ENVIRONMENT", "development")
            env_specific_file = os.path.join(self.config_dir, f"{env}.env")

            if os.path.exists(env_specific_file):
                load_dotenv(env_specific_file)
                logger.debug(f"Loaded environment from {env_specific_file}")

        except Exception as e:
            logger.warning(f"Failed to load environment configuration: {e}")

    def _get_env_bool(self, key: str, default: bool) -> bool:
        """Get boolean value from environment variable."""
        value = os.getenv(key, str(default)).lower()
        return value in ("true", "1", "yes", "on")

    def _get_env_int(self, key: str, default: int) -> int:
        """Get integer value from environment variable."""
        try:
            return int(os.getenv(key, str(default)))
        except (ValueError, TypeError):
            return default

    def _get_env_str(self, key: str, default: str) -> str:
        """Get string value from environment variable."""
        return os.getenv(key, default) or default

    def _get_env_list(
        self, key: str, default: List[str], separator: str = ","
    ) -> List[str]:
        """Get list value from environment variable."""
        value = os.getenv(key)
        if value:
            return [item.strip() for item in value.split(separator) if item.strip()]
        return default

    def build_config(self, **overrides: Any) -> BridgeConfig:
        """Build the frozen configuration from the environment."""
        defaults = BridgeConfig()
        config = BridgeConfig(
            discord_client_id=self._get_env_str("DISCORD_CLIENT_ID", ""),
            discord_client_secret=self._get_env_str("DISCORD_CLIENT_SECRET", ""),
            redirect_uri=self._get_env_str("REDIRECT_URI", DEFAULT_REDIRECT_URI),
            bot_token=self._get_env_str("BOT_TOKEN", ""),
            google_creds_path=self._get_env_str("GOOGLE_CREDS_PATH", DEFAULT_CREDS_PATH),
            google_auth_mode=self._get_env_str("GOOGLE_AUTH_MODE", "jwt").lower(),
            sheet_id=self._get_env_str("GOOGLE_SHEET_ID", ""),
            sheet_name=self._get_env_str("SHEET_NAME", ""),
            key_column_marker=self._get_env_str(
                "KEY_COLUMN_MARKER", defaults.key_column_marker
            ).strip().lower(),
            link_column_markers=tuple(
                marker.lower()
                for marker in self._get_env_list(
                    "LINK_COLUMN_MARKERS", list(defaults.link_column_markers)
                )
            ),
            link_column_label=self._get_env_str(
                "LINK_COLUMN_LABEL", defaults.link_column_label
            ),
            header_scan_width=self._get_env_int(
                "HEADER_SCAN_WIDTH", defaults.header_scan_width
            ),
            max_scan_rows=self._get_env_int("MAX_SCAN_ROWS", defaults.max_scan_rows),
            message_format=self._get_env_str("MESSAGE_FORMAT", "html").lower(),
            http_timeout=self._get_env_int("HTTP_TIMEOUT", defaults.http_timeout),
            reconcile_lock=self._get_env_bool("RECONCILE_LOCK", False),
            callback_path=self._get_env_str("CALLBACK_PATH", DEFAULT_CALLBACK_PATH),
            log_level=self._get_env_str("LOG_LEVEL", "INFO").upper(),
            port=self._get_env_int("PORT", defaults.port),
        )
        if overrides:
            config = config.with_overrides(**overrides)
        return config

    def load_and_validate(self, **overrides: Any) -> BridgeConfig:
        """Build the configuration and log any start-up warnings."""
        config = self.build_config(**overrides)
        for warning in config.validate():
            logger.warning(warning)
        logger.debug(f"Bridge configuration: {config.get_summary()}")
        return config
