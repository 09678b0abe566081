"""
Configuration for Unclaimed Domains MCP.

Settings lookup order (later wins):
1. Built-in defaults
2. Config file (~/.config/unclaimed-domains-mcp/config.json)
3. Environment variables (UNCLAIMED_DOMAINS_*)

Invalid values are ignored and the default is kept.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .rdap_bootstrap import IANA_BOOTSTRAP_URL

logger = logging.getLogger(__name__)

ENV_PREFIX = "UNCLAIMED_DOMAINS_"


def get_config_dir() -> Path:
    """Get the config directory for this app."""
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('APPDATA', Path.home()))
    else:  # macOS, Linux
        base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))

    return base / 'unclaimed-domains-mcp'


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / 'config.json'


def load_config() -> dict:
    """Load the config file. Missing or unreadable files give an empty dict."""
    config_file = get_config_file()
    try:
        if config_file.exists():
            config = json.loads(config_file.read_text())
            if isinstance(config, dict):
                return config
            logger.warning("Ignoring config file %s: not a JSON object", config_file)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring config file %s: %s", config_file, e)
    return {}


def _as_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off", ""):
            return False
    return default


def _as_float(value: object, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _as_domain_list(value: object) -> list[str]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = [v for v in value if isinstance(v, str)]
    else:
        return []
    return [item.strip().lower() for item in items if item.strip()]


@dataclass
class Settings:
    """Resolved runtime settings."""

    bootstrap_url: str = IANA_BOOTSTRAP_URL
    bootstrap_timeout: float = 30.0
    rdap_timeout: float = 15.0
    cache_bootstrap: bool = True
    persist_seen: bool = True
    include_private_suffixes: bool = False
    skip_domains: list[str] = field(default_factory=list)
    debug: bool = False

    @classmethod
    def from_sources(cls, config: dict, environ: dict[str, str]) -> "Settings":
        """Merge a config-file dict and an environment mapping over the defaults."""
        defaults = cls()

        def pick(key: str, env_name: str | None = None) -> object:
            env_value = environ.get(ENV_PREFIX + (env_name or key.upper()))
            if env_value is not None:
                return env_value
            return config.get(key)

        bootstrap_url = pick("bootstrap_url")
        if not isinstance(bootstrap_url, str) or not bootstrap_url.strip():
            bootstrap_url = defaults.bootstrap_url

        return cls(
            bootstrap_url=bootstrap_url.strip(),
            bootstrap_timeout=_as_float(pick("bootstrap_timeout"), defaults.bootstrap_timeout),
            rdap_timeout=_as_float(pick("rdap_timeout"), defaults.rdap_timeout),
            cache_bootstrap=_as_bool(pick("cache_bootstrap"), defaults.cache_bootstrap),
            persist_seen=_as_bool(pick("persist_seen"), defaults.persist_seen),
            include_private_suffixes=_as_bool(
                pick("include_private_suffixes", "PRIVATE_SUFFIXES"),
                defaults.include_private_suffixes,
            ),
            skip_domains=_as_domain_list(pick("skip_domains", "SKIP")),
            debug=_as_bool(pick("debug"), defaults.debug),
        )


def get_settings() -> Settings:
    """Load settings from the config file and the process environment."""
    return Settings.from_sources(load_config(), dict(os.environ))


def debug_enabled() -> bool:
    """True when verbose logging was requested (UNCLAIMED_DOMAINS_DEBUG or config)."""
    return get_settings().debug
