"""Runtime configuration for forgecompat.

Defaults live as module-level constants. A YAML file may override them and
environment variables take precedence over the file::

    releases_url: https://api.github.com/repos/sp-tarkov/build/releases
    brand_aliases: [SPT, SPT-AKI, AKI]
    defer_full_rescan: true

Environment overrides:
    FORGECOMPAT_GITHUB_TOKEN   -- token sent to the releases API.
    FORGECOMPAT_RELEASES_URL   -- alternative releases endpoint.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from forgecompat.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_RELEASES_URL: str = "https://api.github.com/repos/sp-tarkov/build/releases"

# Tokens that may precede an engine version mention in release notes.
DEFAULT_BRAND_ALIASES: tuple[str, ...] = ("SPT", "SPT-AKI", "AKI")

ENV_GITHUB_TOKEN: str = "FORGECOMPAT_GITHUB_TOKEN"
ENV_RELEASES_URL: str = "FORGECOMPAT_RELEASES_URL"


@dataclass(frozen=True)
class ForgeCompatConfig:
    """Resolved configuration.

    Attributes:
        releases_url: Endpoint listing engine releases (GitHub releases API shape).
        github_token: Optional bearer token for the releases endpoint.
        brand_aliases: Brand tokens accepted before a version mention on import.
        defer_full_rescan: Queue catalog-wide rescans instead of running them
            inside the triggering write.
        request_timeout: HTTP timeout in seconds for release fetching.
    """

    releases_url: str = DEFAULT_RELEASES_URL
    github_token: str | None = None
    brand_aliases: tuple[str, ...] = field(default=DEFAULT_BRAND_ALIASES)
    defer_full_rescan: bool = False
    request_timeout: float = 30.0


_KNOWN_KEYS = {
    "releases_url",
    "github_token",
    "brand_aliases",
    "defer_full_rescan",
    "request_timeout",
}


def _from_mapping(data: dict[str, Any]) -> ForgeCompatConfig:
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    kwargs: dict[str, Any] = {}
    if "releases_url" in data:
        kwargs["releases_url"] = str(data["releases_url"])
    if data.get("github_token"):
        kwargs["github_token"] = str(data["github_token"])
    if "brand_aliases" in data:
        aliases = data["brand_aliases"]
        if not isinstance(aliases, list) or not all(isinstance(a, str) for a in aliases):
            raise ConfigError("brand_aliases must be a list of strings")
        kwargs["brand_aliases"] = tuple(aliases)
    if "defer_full_rescan" in data:
        kwargs["defer_full_rescan"] = bool(data["defer_full_rescan"])
    if "request_timeout" in data:
        try:
            kwargs["request_timeout"] = float(data["request_timeout"])
        except (TypeError, ValueError) as exc:
            raise ConfigError("request_timeout must be a number") from exc
    return ForgeCompatConfig(**kwargs)


def load_config(path: Path | None = None) -> ForgeCompatConfig:
    """Load configuration from an optional YAML file plus the environment.

    Args:
        path: YAML file to read. ``None`` means defaults only.

    Returns:
        The resolved ``ForgeCompatConfig``.

    Raises:
        ConfigError: If the file is unreadable, not a mapping, or holds
            unknown keys or wrongly-typed values.
    """
    config = ForgeCompatConfig()
    if path is not None:
        try:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read config {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must contain a mapping")
        config = _from_mapping(data)
        logger.debug("Loaded configuration from %s", path)

    token = os.environ.get(ENV_GITHUB_TOKEN, "").strip()
    if token:
        config = replace(config, github_token=token)
    url = os.environ.get(ENV_RELEASES_URL, "").strip()
    if url:
        config = replace(config, releases_url=url)
    return config
