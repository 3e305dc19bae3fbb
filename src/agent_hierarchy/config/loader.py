"""
agent-hierarchy — config loader.

File: src/agent_hierarchy/config/loader.py

Purpose
- Load effective config from defaults, ``hierarchy.toml``, env vars, and CLI overrides.

What is included in this file
- Precedence logic: CLI > env (AGENT_HIERARCHY_) > file > defaults.
- TOML loading via ``tomllib``.
- A fixed table of supported environment variables, one per ``hierarchy.toml`` field.
- Path normalization: the workspace root relative to the config file location, source
  locations relative to the workspace root.

Non-functional requirements
- Keep loading deterministic and reproducible.
"""

from __future__ import annotations

import json
import os
import shlex
import tomllib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Final

from agent_hierarchy.config.schema import (
    PATH_FIELDS,
    WORKSPACE_RELATIVE_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "hierarchy.toml"
ENV_PREFIX: Final[str] = "AGENT_HIERARCHY_"

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


def _text(raw: str) -> str:
    return raw.strip()


def _flag(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _BOOLEAN_TRUE:
        return True
    if lowered in _BOOLEAN_FALSE:
        return False
    raise ValueError("must be a boolean (true/false/1/0/yes/no/on/off)")


def _seconds(raw: str) -> float:
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise ValueError("must be a number of seconds") from exc


def _argv(raw: str) -> list[str]:
    return shlex.split(raw)


def _names(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


# Env var suffix -> (config path, parser). ``meta.schema_version`` is file-only.
ENV_BINDINGS: Final[dict[str, tuple[tuple[str, str], Callable[[str], object]]]] = {
    "SOURCES_WORKSPACE_ROOT": (("sources", "workspace_root"), _text),
    "SOURCES_CONFIG_DOCUMENT": (("sources", "config_document"), _text),
    "SOURCES_DOCUMENTS_DIR": (("sources", "documents_dir"), _text),
    "SOURCES_FALLBACK_DOCUMENT": (("sources", "fallback_document"), _text),
    "SOURCES_ROSTER_FILE": (("sources", "roster_file"), _text),
    "RUNTIME_ENABLED": (("runtime", "enabled"), _flag),
    "RUNTIME_COMMAND": (("runtime", "command"), _argv),
    "RUNTIME_COMMAND_ID": (("runtime", "command_id"), _text),
    "RUNTIME_TIMEOUT_SECONDS": (("runtime", "timeout_seconds"), _seconds),
    "DOCUMENTS_AGENT_PREFIX": (("documents", "agent_prefix"), _text),
    "DOCUMENTS_IDENTITY_FILENAME": (("documents", "identity_filename"), _text),
    "DOCUMENTS_EXCLUDED_FILENAMES": (("documents", "excluded_filenames"), _names),
    "DOCUMENTS_ROLE_TOKENS": (("documents", "role_tokens"), _names),
    "OBSERVABILITY_LOG_LEVEL": (("observability", "log_level"), _text),
    "OBSERVABILITY_LOG_FORMAT": (("observability", "log_format"), _text),
}


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load effective config with deterministic precedence: CLI > env > file > defaults.

    An explicit ``config_path`` must exist; the implicit ``./hierarchy.toml`` is optional.
    """

    if config_path is None:
        resolved_path = (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    else:
        resolved_path = Path(config_path).expanduser().resolve()

    file_payload = _load_toml_file(resolved_path, required=config_path is not None)
    merged = assert_valid_config(merge_config(default_config(), file_payload))

    env_overrides = env_overrides_from(os.environ if environ is None else environ)
    merged = merge_config(merged, env_overrides)
    merged = merge_config(merged, _expand_dotted(cli_overrides or {}))
    merged = assert_valid_config(merged)

    return normalize_paths(merged, base_dir=resolved_path.parent)


def env_overrides_from(environ: Mapping[str, str]) -> dict[str, Any]:
    """Translate the supported ``AGENT_HIERARCHY_*`` variables into a nested override."""

    overrides: dict[str, Any] = {}
    for suffix in sorted(ENV_BINDINGS):
        env_name = ENV_PREFIX + suffix
        raw = environ.get(env_name)
        if raw is None:
            continue
        (section, field), parse = ENV_BINDINGS[suffix]
        try:
            value = parse(raw)
        except ValueError as exc:
            raise ConfigLoadError(f"{env_name} -> {section}.{field} {exc}") from exc
        overrides.setdefault(section, {})[field] = value
    return overrides


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Make every configured source location absolute.

    ``sources.workspace_root`` resolves against ``base_dir``; the other source paths resolve
    against the workspace root. An empty ``roster_file`` stays empty.
    """

    materialized = merge_config({}, config)
    sources = materialized.get("sources")
    if not isinstance(sources, dict):
        return materialized

    for _, field in PATH_FIELDS:
        _absolutize(sources, field, base_dir)

    workspace_root = sources.get("workspace_root")
    workspace_dir = Path(workspace_root) if isinstance(workspace_root, str) else base_dir
    for _, field in WORKSPACE_RELATIVE_FIELDS:
        _absolutize(sources, field, workspace_dir)

    return materialized


def dump_effective_config(config: Mapping[str, object]) -> str:
    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _load_toml_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}

    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _expand_dotted(cli_overrides: Mapping[str, object]) -> dict[str, Any]:
    """Expand ``{"runtime.enabled": False}`` into ``{"runtime": {"enabled": False}}``."""

    payload: dict[str, Any] = {}
    for key in sorted(cli_overrides):
        parts = [part for part in key.split(".") if part]
        if not parts:
            raise ConfigLoadError(f"invalid CLI override key {key!r}")
        cursor = payload
        for part in parts[:-1]:
            nested = cursor.get(part)
            if not isinstance(nested, dict):
                nested = cursor[part] = {}
            cursor = nested
        cursor[parts[-1]] = cli_overrides[key]
    return payload


def _absolutize(sources: dict[str, Any], field: str, base_dir: Path) -> None:
    raw = sources.get(field)
    if not isinstance(raw, str) or not raw:
        return
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    sources[field] = Path(os.path.normpath(str(candidate))).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_BINDINGS",
    "ENV_PREFIX",
    "dump_effective_config",
    "env_overrides_from",
    "load_config",
    "normalize_paths",
]
