"""Configuration loading for check-links (.checklinks.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError
from .extract import SUPPORTED_SUFFIXES

CONFIG_FILENAME = ".checklinks.yml"

DEFAULT_INCLUDE_PATTERNS = tuple(f"*{suffix}" for suffix in SUPPORTED_SUFFIXES)


@dataclass
class Configuration:
    """Settings for a single check-links run."""

    root: Path = field(default_factory=Path.cwd)
    concurrency: int = 16
    per_host_interval: float = 0.25
    request_timeout: float = 10.0
    max_retries: int = 2
    max_redirects: int = 10
    run_timeout: Optional[float] = None
    backoff_base: float = 0.5
    backoff_max: float = 8.0
    include_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE_PATTERNS))
    exclude_patterns: List[str] = field(default_factory=list)
    follow_local_anchors: bool = True
    strict_fragments: bool = False
    allowed_statuses: List[int] = field(default_factory=list)
    exclude_urls: List[str] = field(default_factory=list)
    user_agent: str = "check-links/0.3 (+https://github.com/check-links/check-links)"
    offline: bool = False
    max_depth: Optional[int] = None

    def merged(self, **overrides: Any) -> "Configuration":
        """Return a copy with every non-None override applied, then validated."""
        known = {item.name for item in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration options: {', '.join(unknown)}")
        updates = {key: value for key, value in overrides.items() if value is not None}
        config = replace(self, **updates)
        config.validate()
        return config

    def validate(self) -> None:
        if self.concurrency < 1:
            raise ConfigError("concurrency must be at least 1")
        if self.max_retries < 0:
            raise ConfigError("max_retries must not be negative")
        if self.max_redirects < 0:
            raise ConfigError("max_redirects must not be negative")
        for name in ("per_host_interval", "backoff_base", "backoff_max"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        for name in ("request_timeout", "run_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.max_depth is not None and self.max_depth < 0:
            raise ConfigError("max_depth must not be negative")
        for status in self.allowed_statuses:
            if not 100 <= status <= 599:
                raise ConfigError(f"allowed_statuses contains an invalid HTTP status: {status}")


# Scalar options and the type each is coerced to; list options are handled separately.
_SCALAR_OPTIONS: Dict[str, type] = {
    "concurrency": int,
    "per_host_interval": float,
    "request_timeout": float,
    "max_retries": int,
    "max_redirects": int,
    "run_timeout": float,
    "backoff_base": float,
    "backoff_max": float,
    "follow_local_anchors": bool,
    "strict_fragments": bool,
    "user_agent": str,
    "offline": bool,
    "max_depth": int,
}
_PATTERN_OPTIONS = ("include_patterns", "exclude_patterns", "exclude_urls")
_TRUE_WORDS = frozenset({"true", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0"})


def load_config(config_path: Path) -> Configuration:
    """Load ``.checklinks.yml`` for a project, falling back to defaults when absent.

    ``config_path`` may be the project directory, a file inside it, or an
    explicit ``.yml``/``.yaml`` file. Unknown keys and values of the wrong type
    raise ``ConfigError``.
    """
    expanded = config_path.expanduser()
    root = expanded.resolve() if expanded.is_dir() else expanded.resolve().parent
    if expanded.is_dir():
        config_file = root / CONFIG_FILENAME
    elif expanded.suffix in {".yml", ".yaml"}:
        config_file = expanded.resolve()
    else:
        config_file = root / CONFIG_FILENAME

    config = Configuration(root=root)
    if not config_file.is_file():
        return config

    data = _read_mapping(config_file)
    known = set(_SCALAR_OPTIONS) | set(_PATTERN_OPTIONS) | {"allowed_statuses"}
    unknown = sorted(str(key) for key in data if key not in known)
    if unknown:
        raise ConfigError(f"Unknown keys in {config_file.name}: {', '.join(unknown)}")

    overrides: Dict[str, Any] = {}
    for key, kind in _SCALAR_OPTIONS.items():
        raw = data.get(key)
        if raw is None:
            continue
        value = _coerce(raw, kind)
        if value is None:
            raise ConfigError(f"Invalid value for '{key}' in {config_file.name}: {raw!r}")
        overrides[key] = value

    for key in _PATTERN_OPTIONS:
        if key in data:
            overrides[key] = [str(item) for item in _listify(data[key]) if isinstance(item, (str, int, float))]

    if "allowed_statuses" in data:
        statuses = [_coerce(item, int) for item in _listify(data["allowed_statuses"])]
        if any(status is None for status in statuses):
            raise ConfigError(f"allowed_statuses in {config_file.name} must list integers")
        overrides["allowed_statuses"] = statuses

    return config.merged(**overrides)


def _read_mapping(path: Path) -> Dict[str, Any]:
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _coerce(value: Any, kind: type) -> Any:
    """Convert a YAML scalar to ``kind``, or return None when it does not fit."""
    if kind is bool:
        if isinstance(value, bool):
            return value
        word = str(value).strip().lower() if isinstance(value, (str, int)) else ""
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    if kind is int and isinstance(value, float):
        return None
    try:
        return kind(value)
    except ValueError:
        return None


def _listify(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "Configuration",
    "DEFAULT_INCLUDE_PATTERNS",
    "load_config",
]
