"""Configuration models and loaders for vstfs."""

from __future__ import annotations

import json
import os
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from vstfs.execution.base import DEFAULT_MAX_OUTPUT_BYTES

DEFAULT_TF_PATH = (
    "C:\\Program Files\\Microsoft Visual Studio\\2022\\Community\\Common7\\IDE\\"
    "CommonExtensions\\Microsoft\\TeamFoundation\\Team Explorer\\TF.exe"
)
CONFIG_FILE_NAMES: tuple[str, ...] = (".vstfs.json", "vstfs.yaml", "vstfs.yml", "pyproject.toml")
SUPPORTED_AUTH_TYPES = frozenset({"integrated"})

# Settings that can also come from the environment, keyed by field name.
ENV_VARS: dict[str, str] = {
    "server_url": "VSTFS_SERVER_URL",
    "project": "VSTFS_PROJECT",
    "workspace": "VSTFS_WORKSPACE",
    "tf_path": "VSTFS_TF_PATH",
    "root": "VSTFS_ROOT",
    "server_path": "VSTFS_SERVER_PATH",
}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass(frozen=True)
class VstfsConfig:
    """Settings for talking to a TFVC server through ``TF.exe``.

    Attributes:
        server_url: Server or organization URL; the collection URL is derived from it.
        project: Team project name.
        workspace: TFVC workspace name.
        tf_path: Path to ``TF.exe``.
        root: Local working directory mapped to ``server_path``.
        server_path: Server path (``$/...``) mapped to ``root``.
        auth_type: Authentication mode; only integrated authentication is supported.
        encoding: Encoding of the tool's console output. None uses the locale encoding.
        max_output_bytes: Largest accepted output per stream.
        timeout_s: Optional timeout for each invocation.
        env: Extra environment variables for the tool.
    """

    server_url: str = ""
    project: str = ""
    workspace: str = ""
    tf_path: str = DEFAULT_TF_PATH
    root: Path = Path(".")
    server_path: str = ""
    auth_type: str = "integrated"
    encoding: str | None = None
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
    timeout_s: int | None = None
    env: dict[str, str] = field(default_factory=dict)


def load_config(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> VstfsConfig:
    """Load configuration from disk and the environment.

    Each setting is taken from the config file when present and non-empty,
    then from its ``VSTFS_*`` environment variable, then from the default.

    Args:
        path: Optional path to a configuration file or workspace directory.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        Parsed VstfsConfig.
    """

    environ = os.environ if environ is None else environ
    config_path = _resolve_config_path(path)
    if config_path is None:
        base_path = path if path is not None and path.is_dir() else Path.cwd()
        return _parse_config({}, base_path=base_path, environ=environ)

    if config_path.suffix == ".json":
        raw_data = _load_json(config_path)
    elif config_path.suffix in {".yaml", ".yml"}:
        raw_data = _load_yaml(config_path)
    elif config_path.suffix == ".toml":
        raw_data = _load_toml(config_path)
    else:
        raise ValueError(f"Unsupported config file type: {config_path}")

    return _parse_config(raw_data, base_path=config_path.parent, environ=environ)


def config_to_dict(config: VstfsConfig) -> dict[str, Any]:
    """Serialize a VstfsConfig into the ``.vstfs.json`` layout."""

    return {
        "serverUrl": config.server_url,
        "project": config.project,
        "workspace": config.workspace,
        "tfPath": config.tf_path,
        "root": str(config.root),
        "serverPath": config.server_path,
        "authType": config.auth_type,
    }


def update_root(config: VstfsConfig, root: Path) -> VstfsConfig:
    """Return a config copy with an updated working directory."""

    return replace(config, root=root)


def _resolve_config_path(path: Path | None) -> Path | None:
    if path is not None and not path.is_dir():
        return path if path.exists() else None

    directory = path if path is not None else Path(".")
    for name in CONFIG_FILE_NAMES:
        candidate = directory / name
        if not candidate.exists():
            continue
        # A pyproject.toml without [tool.vstfs] belongs to someone else.
        if name == "pyproject.toml" and not _load_toml(candidate):
            continue
        return candidate
    return None


def _load_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse {path.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("JSON configuration must be a mapping.")
    return data


def _load_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as handle:
        data = tomllib.load(handle)
    if path.name == "pyproject.toml":
        tool_config = data.get("tool", {}).get("vstfs", {})
        if not isinstance(tool_config, dict):
            raise ValueError("tool.vstfs must be a mapping.")
        return tool_config
    return data


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Failed to parse {path.name}: {exc}") from exc
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError("YAML configuration must be a mapping.")
    return parsed


def _parse_config(
    raw_data: dict[str, Any],
    *,
    base_path: Path,
    environ: Mapping[str, str],
) -> VstfsConfig:
    raw = {_snake_case(str(key)): value for key, value in raw_data.items()}
    defaults = VstfsConfig()

    def setting(name: str, default: str) -> str:
        value = _optional_str(raw.get(name))
        if value is None and name in ENV_VARS:
            value = _optional_str(environ.get(ENV_VARS[name]))
        return value if value is not None else default

    auth_type = setting("auth_type", defaults.auth_type).lower()
    if auth_type not in SUPPORTED_AUTH_TYPES:
        raise ValueError(f"Unsupported authType: {auth_type}")

    root = Path(setting("root", "."))
    if not root.is_absolute() and not _is_windows_absolute(str(root)):
        root = (base_path / root).resolve()

    env = raw.get("env", {})
    env_map: dict[str, str] = {}
    if isinstance(env, dict):
        env_map = {str(key): str(value) for key, value in env.items()}

    return VstfsConfig(
        server_url=setting("server_url", defaults.server_url),
        project=setting("project", defaults.project),
        workspace=setting("workspace", defaults.workspace),
        tf_path=setting("tf_path", defaults.tf_path),
        root=root,
        server_path=setting("server_path", defaults.server_path),
        auth_type=auth_type,
        encoding=_optional_str(raw.get("encoding")),
        max_output_bytes=int(raw.get("max_output_bytes", DEFAULT_MAX_OUTPUT_BYTES)),
        timeout_s=_optional_int(raw.get("timeout_s")),
        env=env_map,
    )


def _snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _is_windows_absolute(value: str) -> bool:
    return bool(re.match(r"^[A-Za-z]:[\\/]", value))


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)
