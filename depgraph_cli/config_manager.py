"""Configuration manager for depgraph using TOML files."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import toml

from . import config
from .errors import ConfigError

logger = logging.getLogger(__name__)

SECTION = "depgraph"


@dataclass
class Settings:
    """Effective analyzer settings (defaults <- config file <- CLI options)."""

    project_root: str = "."
    src_dir: str = config.DEFAULT_SRC_DIR
    extensions: Tuple[str, ...] = config.SUPPORTED_EXTENSIONS
    resolve_extensions: Tuple[str, ...] = config.RESOLVE_EXTENSIONS
    exclude_dirs: Tuple[str, ...] = tuple(sorted(config.EXCLUDE_DIRS))
    aliases: Dict[str, str] = field(default_factory=dict)
    alias_prefix: str = config.DEFAULT_ALIAS_PREFIX
    skip_same_directory: bool = True
    max_file_bytes: int = config.MAX_FILE_BYTES
    read_timeout: float = config.READ_TIMEOUT
    max_workers: int = config.MAX_WORKERS
    top_n: int = config.TOP_N
    deep_relative_threshold: int = config.DEEP_RELATIVE_THRESHOLD

    def _absolute(self, path: str) -> str:
        if os.path.isabs(path):
            return os.path.normpath(path)
        return os.path.normpath(os.path.join(os.path.abspath(self.project_root), path))

    @property
    def src_root(self) -> str:
        return self._absolute(self.src_dir)

    def alias_roots(self) -> Dict[str, str]:
        """Alias prefix -> absolute root directory.

        Without configured aliases the rewrite prefix maps onto the source
        directory.
        """
        aliases = self.aliases or {self.alias_prefix: self.src_dir}
        return {prefix: self._absolute(target) for prefix, target in aliases.items()}

    def with_overrides(self, **overrides: Any) -> "Settings":
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("extensions", "resolve_extensions", "exclude_dirs"):
            data[key] = list(data[key])
        return data


_TUPLE_KEYS = {"extensions", "resolve_extensions", "exclude_dirs"}
_INT_KEYS = {"max_file_bytes", "max_workers", "top_n", "deep_relative_threshold"}


def config_file_path(project_root: Optional[Path] = None) -> Optional[Path]:
    """Locate the config file: project ``depgraph.toml`` first, then the user file."""
    root = Path(project_root) if project_root else Path.cwd()
    project_file = root / config.PROJECT_CONFIG_NAME
    if project_file.is_file():
        return project_file
    if config.USER_CONFIG_FILE.is_file():
        return config.USER_CONFIG_FILE
    return None


def load_full_config(path: Path) -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc


def load_config(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """Return the ``[depgraph]`` table, or an empty dict when no file exists."""
    path = config_file_path(project_root)
    if path is None:
        return {}
    logger.debug("Loading configuration from %s", path)
    return load_full_config(path).get(SECTION, {})


def settings_from_dict(values: Dict[str, Any], project_root: str = ".") -> Settings:
    known = set(Settings.__dataclass_fields__)
    unknown = sorted(set(values) - known)
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))

    kwargs: Dict[str, Any] = {"project_root": project_root}
    for key, value in values.items():
        if key not in known or key == "project_root":
            continue
        if key in _TUPLE_KEYS:
            if not isinstance(value, (list, tuple)):
                raise ConfigError(f"'{key}' must be a list")
            value = tuple(str(v) for v in value)
        elif key in _INT_KEYS:
            if not isinstance(value, int) or value < 1:
                raise ConfigError(f"'{key}' must be a positive integer")
        elif key == "read_timeout":
            if not isinstance(value, (int, float)) or value <= 0:
                raise ConfigError("'read_timeout' must be a positive number")
            value = float(value)
        elif key == "aliases":
            if not isinstance(value, dict):
                raise ConfigError("'aliases' must be a table of prefix = directory")
            value = {str(k): str(v) for k, v in value.items()}
        kwargs[key] = value
    return Settings(**kwargs)


def load_settings(project_root: Optional[Path] = None) -> Settings:
    root = Path(project_root) if project_root else Path.cwd()
    values = load_config(root)
    settings = settings_from_dict(values, project_root=str(root))
    if not settings.aliases:
        tsconfig_aliases = load_tsconfig_aliases(root)
        if tsconfig_aliases:
            settings = replace(settings, aliases=tsconfig_aliases)
    return settings


def load_tsconfig_aliases(project_root: Path) -> Dict[str, str]:
    """Read ``compilerOptions.paths`` wildcard aliases from ``tsconfig.json``.

    ``"@/*": ["./src/*"]`` becomes ``{"@/": "src"}``. Only the first target
    of each mapping is used, and only ``/*`` wildcard mappings are kept.
    """
    tsconfig = Path(project_root) / "tsconfig.json"
    if not tsconfig.is_file():
        return {}
    try:
        payload = json.loads(tsconfig.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read path aliases from %s: %s", tsconfig, exc)
        return {}

    options = payload.get("compilerOptions", {}) or {}
    base_url = options.get("baseUrl", ".")
    aliases: Dict[str, str] = {}
    for pattern, targets in (options.get("paths") or {}).items():
        if not pattern.endswith("/*") or not targets:
            continue
        target = targets[0]
        if not target.endswith("/*"):
            continue
        target_dir = os.path.normpath(os.path.join(base_url, target[:-2]))
        aliases[pattern[:-1]] = target_dir
    return aliases


def save_config(settings: Settings, path: Path) -> Path:
    """Write *settings* as the ``[depgraph]`` table, preserving other sections."""
    full: Dict[str, Any] = load_full_config(path) if path.is_file() else {}
    data = settings.to_dict()
    data.pop("project_root", None)
    if not data["aliases"]:
        data.pop("aliases")
    full[SECTION] = data
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        toml.dump(full, f)
    return path


def describe(settings: Settings) -> List[Tuple[str, str]]:
    """Flatten settings into (key, value) rows for display."""
    rows = []
    for key, value in settings.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(value)
        rows.append((key, str(value)))
    rows.append(("alias roots", ", ".join(f"{k} -> {v}" for k, v in settings.alias_roots().items())))
    return rows
