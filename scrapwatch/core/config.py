"""Settings loading and validation.

Settings come from a YAML file, with secrets and a few knobs overridable from
the environment (a local ``.env`` is loaded first when present). Every
problem found here is a :class:`ConfigurationError`: the service must not
start with an unusable configuration.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from scrapwatch.core.backoff import DEFAULT_MAX_DELAY_SECONDS
from scrapwatch.core.errors import ConfigurationError
from scrapwatch.core.filtering import DEFAULT_TRACKED_APPS
from scrapwatch.core.poller import DEFAULT_POLL_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "scrapwatch.yaml"
SECRET_FILE = ".env"

_KNOWN_KEYS = {
    "username",
    "password",
    "max_reconnect_delay_seconds",
    "poll_interval_seconds",
    "webhooks",
    "webhooks_path",
    "feed_client",
    "feed_client_options",
    "tracked_apps",
    "state_file",
    "log_level",
    "shutdown_grace_seconds",
    "delivery_timeout_seconds",
}


@dataclass(frozen=True)
class DestinationConfig:
    """One entry of the destination list."""

    type: str
    token: str
    revolt_chat: str | None = None
    label: str = ""
    options: Mapping[str, Any] = field(default_factory=dict)

    def as_plugin_config(self) -> dict[str, Any]:
        config = dict(self.options)
        config.update(token=self.token, label=self.label)
        if self.revolt_chat is not None:
            config["revolt_chat"] = self.revolt_chat
        return config


@dataclass(frozen=True)
class Settings:
    """Validated service settings."""

    destinations: tuple[DestinationConfig, ...]
    username: str | None = None
    password: str | None = None
    max_reconnect_delay_seconds: float = DEFAULT_MAX_DELAY_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    feed_client: str = "steam"
    feed_client_options: Mapping[str, Any] = field(default_factory=dict)
    tracked_apps: Mapping[int, str] = field(default_factory=lambda: dict(DEFAULT_TRACKED_APPS))
    state_file: str | None = None
    log_level: str = "INFO"
    shutdown_grace_seconds: float = 5.0
    delivery_timeout_seconds: float = 30.0

    @property
    def is_anonymous(self) -> bool:
        return not (self.username and self.password)

    def secrets(self) -> list[str]:
        """Values that must never show up in logs."""
        values = [self.password or ""]
        values.extend(dest.token for dest in self.destinations)
        return [value for value in values if value]


def load_settings(
    config_path: str | None = None,
    environ: Mapping[str, str] | None = None,
    load_env_file: bool = True,
) -> Settings:
    """Load settings from YAML and the environment.

    Args:
        config_path: YAML settings file. Defaults to ``$SCRAPWATCH_CONFIG`` or
            ``scrapwatch.yaml``; a missing default file means "all defaults",
            a missing explicit file is an error.
        environ: Environment mapping (defaults to ``os.environ``).
        load_env_file: Load ``.env`` into the process environment first.
    """
    if load_env_file and environ is None and os.path.exists(SECRET_FILE):
        logger.info("Loading environment from %s", SECRET_FILE)
        load_dotenv(SECRET_FILE)
    env = os.environ if environ is None else environ

    explicit = config_path or env.get("SCRAPWATCH_CONFIG")
    path = explicit or DEFAULT_CONFIG_PATH
    if Path(path).exists():
        raw = _read_yaml(path)
        base_dir = Path(path).resolve().parent
    elif explicit:
        raise ConfigurationError(f"Settings file not found: {path}")
    else:
        raw = {}
        base_dir = Path.cwd()

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Settings in {path} must be a mapping, got {type(raw).__name__}")
    unknown = sorted(set(raw) - _KNOWN_KEYS)
    if unknown:
        logger.warning("Ignoring unknown settings keys: %s", ", ".join(unknown))

    return build_settings(raw, env, base_dir)


def build_settings(raw: Mapping[str, Any], env: Mapping[str, str], base_dir: Path | None = None) -> Settings:
    """Validate a raw settings mapping merged with environment overrides."""
    base_dir = base_dir or Path.cwd()

    username = env.get("STEAM_USERNAME") or raw.get("username") or None
    password = env.get("STEAM_PASSWORD") or raw.get("password") or None

    webhooks_path = env.get("SCRAPWATCH_WEBHOOKS") or raw.get("webhooks_path")
    if webhooks_path:
        entries = load_destination_list(_resolve(webhooks_path, base_dir))
    elif "webhooks" in raw:
        entries = raw["webhooks"]
    else:
        raise ConfigurationError("No destinations configured: set 'webhooks' or 'webhooks_path'")

    state_file = env.get("SCRAPWATCH_STATE_FILE") or raw.get("state_file") or None
    if state_file:
        state_file = str(_resolve(state_file, base_dir))

    feed_options = raw.get("feed_client_options") or {}
    if not isinstance(feed_options, dict):
        raise ConfigurationError("'feed_client_options' must be a mapping")

    return Settings(
        destinations=parse_destinations(entries),
        username=str(username) if username else None,
        password=str(password) if password else None,
        max_reconnect_delay_seconds=_positive_number(
            "max_reconnect_delay_seconds",
            env.get("SCRAPWATCH_MAX_RECONNECT_DELAY", raw.get("max_reconnect_delay_seconds")),
            DEFAULT_MAX_DELAY_SECONDS,
        ),
        poll_interval_seconds=_positive_number(
            "poll_interval_seconds",
            env.get("SCRAPWATCH_POLL_INTERVAL", raw.get("poll_interval_seconds")),
            DEFAULT_POLL_INTERVAL_SECONDS,
        ),
        feed_client=str(raw.get("feed_client") or "steam"),
        feed_client_options=feed_options,
        tracked_apps=_tracked_apps(raw.get("tracked_apps")),
        state_file=state_file,
        log_level=str(env.get("SCRAPWATCH_LOG_LEVEL") or raw.get("log_level") or "INFO").upper(),
        shutdown_grace_seconds=_positive_number(
            "shutdown_grace_seconds", raw.get("shutdown_grace_seconds"), 5.0
        ),
        delivery_timeout_seconds=_positive_number(
            "delivery_timeout_seconds", raw.get("delivery_timeout_seconds"), 30.0
        ),
    )


def load_destination_list(path: str | Path) -> Any:
    """Read a destination list file (YAML or JSON).

    The document is either a list of entries or a mapping with a
    ``webhooks`` list.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Destination list not found: {path}")
    data = _read_yaml(path)
    if isinstance(data, dict) and "webhooks" in data:
        data = data["webhooks"]
    return data


def parse_destinations(entries: Any) -> tuple[DestinationConfig, ...]:
    """Validate destination entries ``{type, token, revolt_chat?}``."""
    if not isinstance(entries, list):
        raise ConfigurationError(f"Destination list must be a list, got {type(entries).__name__}")
    if not entries:
        raise ConfigurationError("Destination list is empty")

    destinations = []
    for index, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Destination #{index} must be a mapping")
        kind = entry.get("type")
        if not isinstance(kind, str) or not kind.strip():
            raise ConfigurationError(f"Destination #{index} is missing 'type'")
        token = entry.get("token")
        if not isinstance(token, str) or not token.strip():
            raise ConfigurationError(f"Destination #{index} ({kind}) is missing 'token'")
        chat = entry.get("revolt_chat")
        if chat is not None and not isinstance(chat, (str, int)):
            raise ConfigurationError(f"Destination #{index} ({kind}) has an invalid 'revolt_chat'")
        kind = kind.strip().lower()
        options = {
            key: value
            for key, value in entry.items()
            if key not in {"type", "token", "revolt_chat", "label"}
        }
        destinations.append(
            DestinationConfig(
                type=kind,
                token=token.strip(),
                revolt_chat=str(chat) if chat is not None else None,
                label=str(entry.get("label") or f"{kind}#{index}"),
                options=options,
            )
        )
    return tuple(destinations)


def _read_yaml(path: str | Path) -> Any:
    try:
        with open(path, encoding="utf-8") as fh:
            return yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"Failed to read {path}: {exc}") from exc


def _resolve(value: str, base_dir: Path) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else base_dir / path


def _positive_number(name: str, raw: Any, default: float) -> float:
    if raw is None or raw == "":
        return default
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'{name}' must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"'{name}' must be positive, got {raw!r}")
    return value


def _tracked_apps(raw: Any) -> dict[int, str]:
    if raw is None:
        return dict(DEFAULT_TRACKED_APPS)
    if not isinstance(raw, dict) or not raw:
        raise ConfigurationError("'tracked_apps' must be a non-empty mapping of app id to name")
    apps = {}
    for key, name in raw.items():
        try:
            apps[int(key)] = str(name)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"'tracked_apps' key must be an integer app id: {key!r}") from exc
    return apps
