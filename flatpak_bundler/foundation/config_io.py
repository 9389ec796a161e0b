"""YAML config and manifest loading.

A run is configured from `config/bundle.yaml` under the repo root, with an
optional `bundle.local.yaml` next to it deep-merged on top. An explicit path,
or `$FLATPAK_BUNDLER_CONFIG`, names a single file instead and skips the
overlay.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

CONFIG_ENV_VAR = "FLATPAK_BUNDLER_CONFIG"
DEFAULT_CONFIG_DIR = "config"
DEFAULT_CONFIG_NAME = "bundle"
ROOT_MARKERS = ("pyproject.toml", ".git")


def expand_path(value: str | os.PathLike[str]) -> str:
    return os.path.abspath(os.path.expandvars(os.path.expanduser(str(value).strip())))


def find_repo_root(start: str | os.PathLike[str] | None = None) -> str:
    start_path = Path(start or os.getcwd()).resolve()
    if start_path.is_file():
        start_path = start_path.parent

    for candidate in (start_path, *start_path.parents):
        if any((candidate / marker).exists() for marker in ROOT_MARKERS):
            return str(candidate)

    raise FileNotFoundError(
        f"Cannot locate repo root above {start_path} (looked for {', '.join(ROOT_MARKERS)})"
    )


def read_yaml_mapping(path: str, *, what: str = "Config file") -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"{what} must contain a YAML mapping: {path}")
    return dict(payload)


def _kind(value: Any) -> str:
    if isinstance(value, Mapping):
        return "mapping"
    if isinstance(value, (list, tuple)):
        return "list"
    return type(value).__name__


def merge_overlay(base: Any, overlay: Any, *, path: str = "") -> Any:
    """Merge `overlay` onto `base`.

    Mappings merge key by key, lists are replaced whole, scalars are replaced
    and an explicit `None` in the overlay clears the base value. A mapping or
    list may only be overlaid by the same kind.
    """

    if overlay is None or base is None:
        return overlay

    base_kind, overlay_kind = _kind(base), _kind(overlay)
    if "mapping" in (base_kind, overlay_kind) or "list" in (base_kind, overlay_kind):
        if base_kind != overlay_kind:
            raise ValueError(
                f"Invalid config overlay merge at {path or '<root>'}: "
                f"base is {base_kind} but overlay is {overlay_kind}"
            )

    if base_kind == "mapping":
        merged = dict(base)
        for key, value in overlay.items():
            child_path = f"{path}.{key}" if path else str(key)
            merged[key] = merge_overlay(base[key], value, path=child_path) if key in base else value
        return merged
    if base_kind == "list":
        return list(overlay)
    return overlay


def load_manifest(path: str | os.PathLike[str]) -> dict[str, Any]:
    """Read a manifest file into a mapping.

    JSON is a subset of YAML, so both `.json` and `.yaml` manifests go through
    the same loader.
    """

    expanded = expand_path(path)
    if not os.path.exists(expanded):
        raise FileNotFoundError(f"Manifest file not found: {expanded}")
    return read_yaml_mapping(expanded, what="Manifest file")


def load_config(
    config_path: str | os.PathLike[str] | None = None,
    *,
    env_var: str | None = CONFIG_ENV_VAR,
    config_name: str = DEFAULT_CONFIG_NAME,
    config_type: str = ".yaml",
    config_rel_path: str = DEFAULT_CONFIG_DIR,
    start_dir: str | os.PathLike[str] | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Load the bundler config.

    Returns `(cfg, meta)`; `meta["mode"]` is `explicit`, `env`, `base` or
    `base+local` and `meta["paths"]` lists the files read, base first.
    """

    single_file: str | None = None
    mode = "explicit"
    if config_path is not None:
        single_file = str(config_path).strip() or None
    if single_file is None and env_var:
        single_file = os.environ.get(env_var, "").strip() or None
        mode = "env"

    if single_file:
        resolved = expand_path(single_file)
        cfg = read_yaml_mapping(resolved)
        return cfg, {"mode": mode, "paths": [resolved], "env_var": env_var, "repo_root": None}

    repo_root: str | None = None
    config_dir = config_rel_path
    if not os.path.isabs(config_dir):
        repo_root = find_repo_root(start_dir)
        config_dir = os.path.join(repo_root, config_dir)

    base_path = os.path.abspath(os.path.join(config_dir, config_name + config_type))
    local_path = os.path.abspath(os.path.join(config_dir, f"{config_name}.local{config_type}"))
    if not os.path.exists(base_path):
        raise FileNotFoundError(f"Missing base config file: {base_path}")

    cfg = read_yaml_mapping(base_path)
    paths = [base_path]
    if os.path.exists(local_path):
        cfg = merge_overlay(cfg, read_yaml_mapping(local_path), path="")
        paths.append(local_path)

    mode = "base+local" if len(paths) == 2 else "base"
    return cfg, {"mode": mode, "paths": paths, "env_var": env_var, "repo_root": repo_root}
