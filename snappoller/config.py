"""Configuration loading for snappoller (.snappoller.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .github.client import DEFAULT_API_URL
from .github.url import DEFAULT_PREFIX

CONFIG_FILENAME = ".snappoller.yml"

ENV_TOKEN_KEYS = ("SNAPPOLLER_GITHUB_TOKEN", "GITHUB_AUTH_CLIENT_TOKEN")
ENV_API_URL_KEYS = ("SNAPPOLLER_GITHUB_API_URL", "GITHUB_API_ENDPOINT")
ENV_PREFIX_KEYS = ("SNAPPOLLER_REPOSITORY_PREFIX", "GITHUB_REPOSITORY_PREFIX")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class GitHubConfig:
    """Hosting API settings."""

    api_url: str = DEFAULT_API_URL
    token: Optional[str] = None
    repository_prefix: str = DEFAULT_PREFIX
    request_timeout: float = 30.0
    # The branch endpoint does not reliably honour If-Modified-Since.
    trust_branch_not_modified: bool = True


@dataclass
class PollConfig:
    """Poll cycle settings."""

    max_workers: int = 1
    directory: Optional[Path] = None
    trigger_command: List[str] = field(default_factory=list)
    cache_ttl: float = 3600.0
    cache_path: Optional[Path] = None


@dataclass
class SnapPollerConfig:
    """Represents the settings defined in .snappoller.yml plus environment overrides."""

    root: Path
    github: GitHubConfig = field(default_factory=GitHubConfig)
    poll: PollConfig = field(default_factory=PollConfig)


def load_config(
    config_path: Path, *, environ: Mapping[str, str] | None = None
) -> SnapPollerConfig:
    """Load configuration from disk, then apply environment overrides."""
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    github_data = _as_dict(data.get("github"))
    github = GitHubConfig()
    if github_data:
        github.api_url = _as_str(github_data.get("api_url")) or github.api_url
        github.token = _as_str(github_data.get("token"))
        github.repository_prefix = (
            _as_str(github_data.get("repository_prefix")) or github.repository_prefix
        )
        timeout = _as_float(github_data.get("request_timeout"))
        if timeout is not None and timeout > 0:
            github.request_timeout = timeout
        trust = _as_bool(github_data.get("trust_branch_not_modified"))
        if trust is not None:
            github.trust_branch_not_modified = trust

    github.token = _first_env_value(env, ENV_TOKEN_KEYS) or github.token
    github.api_url = _first_env_value(env, ENV_API_URL_KEYS) or github.api_url
    github.repository_prefix = (
        _first_env_value(env, ENV_PREFIX_KEYS) or github.repository_prefix
    )

    poll_data = _as_dict(data.get("poll"))
    poll = PollConfig()
    if poll_data:
        workers = _as_int(poll_data.get("max_workers"))
        if workers is not None and workers > 0:
            poll.max_workers = workers
        directory = _as_str(poll_data.get("directory"))
        poll.directory = root / directory if directory else None
        poll.trigger_command = _as_str_list(poll_data.get("trigger_command"))
        ttl = _as_float(poll_data.get("cache_ttl"))
        if ttl is not None and ttl >= 0:
            poll.cache_ttl = ttl
        cache_path = _as_str(poll_data.get("cache_path"))
        poll.cache_path = root / cache_path if cache_path else None

    return SnapPollerConfig(root=root, github=github, poll=poll)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _first_env_value(env: Mapping[str, str], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = env.get(key)
        if value:
            return value
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "GitHubConfig",
    "PollConfig",
    "SnapPollerConfig",
    "load_config",
]
