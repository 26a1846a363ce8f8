"""Configuration loading for wikisync (.wikisync.yml plus environment overrides)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".wikisync.yml"

DEFAULT_EXCLUDED_DIRS: tuple[str, ...] = ("node_modules",)
DEFAULT_MAX_DEPTH = 3

_ENV_LOG_LEVEL = "LOG_LEVEL"
_ENV_REPOSITORY_ROOT = "REPOSITORY_ROOT"


@dataclass
class DetectionConfig:
    """Directory pruning and depth settings for repository discovery."""

    exclude_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_DIRS))
    max_depth: int = DEFAULT_MAX_DEPTH


@dataclass
class WikiSyncConfig:
    """Represents the settings defined in .wikisync.yml and the environment."""

    root: Path
    log_level: Optional[str] = None
    repository_root: Optional[Path] = None
    detection: DetectionConfig = field(default_factory=DetectionConfig)

    @property
    def anchor(self) -> Path:
        """Directory the context detector should start from."""
        return self.repository_root or self.root


def load_config(config_path: Path, env: Mapping[str, str] | None = None) -> WikiSyncConfig:
    """Load configuration from disk, then apply environment overrides."""
    environ = os.environ if env is None else env
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    data: dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    detection_data = _as_dict(data.get("detection"))
    detection = DetectionConfig()
    if detection_data:
        if "exclude_dirs" in detection_data:
            detection.exclude_dirs = _as_str_list(detection_data.get("exclude_dirs"))
        max_depth = _as_int(detection_data.get("max_depth"))
        if max_depth is not None:
            if max_depth < 0:
                raise ConfigError("detection.max_depth must be zero or greater")
            detection.max_depth = max_depth

    log_level = _as_str(data.get("log_level"))
    repository_root = _as_path(root, data.get("repository_root"))

    env_level = environ.get(_ENV_LOG_LEVEL)
    if env_level:
        log_level = env_level
    env_root = environ.get(_ENV_REPOSITORY_ROOT)
    if env_root:
        repository_root = _as_path(root, env_root)

    return WikiSyncConfig(
        root=root,
        log_level=log_level,
        repository_root=repository_root,
        detection=detection,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
    return loaded


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


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


def _as_path(root: Path, value: Any) -> Optional[Path]:
    text = _as_str(value)
    if not text:
        return None
    path = Path(text).expanduser()
    if not path.is_absolute():
        path = root / path
    return path.resolve()


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "DetectionConfig",
    "WikiSyncConfig",
    "load_config",
]
