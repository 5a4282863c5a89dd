"""Configuration loader for the chat proxy.

Reads an optional JSON or YAML config file containing server, rate-limit and
backend settings, then applies environment overrides. The backend API key is
never stored in the config; it is resolved from an environment variable at
the moment it is needed.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash"


@dataclass
class BackendConfig:
    """Configuration for the generative text backend."""

    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    api_key_env: str = "GOOGLE_API_KEY"
    timeout_seconds: float = 30.0

    @property
    def api_key(self) -> Optional[str]:
        """Resolve the API key from the environment variable."""
        return os.getenv(self.api_key_env) or None


@dataclass
class RateLimitConfig:
    """Rate-limit parameters (per client identity)."""

    window_ms: int = 60_000
    max_requests: int = 10


@dataclass
class ChatProxyConfig:
    """Top-level chat proxy configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    static_dir: str = "public"
    log_file: str = "logs/chat_proxy.log"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    trust_forwarded_for: bool = False
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)


def _read_raw(path: Path) -> Dict[str, Any]:
    with open(path) as f:
        if path.suffix in (".yaml", ".yml"):
            raw = yaml.safe_load(f)
        else:
            raw = json.load(f)

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("Config file must contain a mapping at the top level")
    return raw


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError("Config section {!r} must be a mapping".format(name))
    return section


def load_config(path: Optional[Union[str, Path]] = None) -> ChatProxyConfig:
    """Load chat proxy configuration.

    The file path defaults to the ``CHAT_PROXY_CONFIG`` environment variable.
    With no file at all, built-in defaults are used. The ``PORT`` environment
    variable, when set, overrides the configured port.

    Args:
        path: Optional path to a JSON (``.json``) or YAML (``.yaml``/``.yml``)
            config file.

    Returns:
        A fully resolved ChatProxyConfig instance.

    Raises:
        FileNotFoundError: If a config path was given but does not exist.
        ValueError: If the config file contains invalid data.
    """
    if path is None:
        path = os.getenv("CHAT_PROXY_CONFIG") or None

    raw: Dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        raw = _read_raw(path)

    rate_limit_raw = _section(raw, "rate_limit")
    rate_limit = RateLimitConfig(
        window_ms=int(rate_limit_raw.get("window_ms", 60_000)),
        max_requests=int(rate_limit_raw.get("max_requests", 10)),
    )
    if rate_limit.window_ms <= 0 or rate_limit.max_requests <= 0:
        raise ValueError("rate_limit.window_ms and rate_limit.max_requests must be positive")

    backend_raw = _section(raw, "backend")
    backend = BackendConfig(
        base_url=backend_raw.get("base_url", DEFAULT_BASE_URL),
        api_key_env=backend_raw.get("api_key_env", "GOOGLE_API_KEY"),
        timeout_seconds=float(backend_raw.get("timeout_seconds", 30.0)),
    )

    port = raw.get("port", 8000)
    env_port = os.getenv("PORT")
    if env_port:
        try:
            port = int(env_port)
        except ValueError:
            raise ValueError("PORT must be an integer, got {!r}".format(env_port)) from None

    return ChatProxyConfig(
        host=raw.get("host", "0.0.0.0"),
        port=int(port),
        static_dir=raw.get("static_dir", "public"),
        log_file=raw.get("log_file", "logs/chat_proxy.log"),
        cors_origins=list(raw.get("cors_origins", ["*"])),
        trust_forwarded_for=bool(raw.get("trust_forwarded_for", False)),
        rate_limit=rate_limit,
        backend=backend,
    )
