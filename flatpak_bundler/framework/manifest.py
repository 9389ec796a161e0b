"""Manifest defaults and the structural checks the bundler relies on.

The manifest is otherwise opaque: modules, build options and extensions are
handed to flatpak-builder exactly as supplied.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from typing import Any

from flatpak_bundler.foundation.keys import normalize_keys
from flatpak_bundler.framework.errors import ManifestError

MANIFEST_DEFAULTS: Mapping[str, Any] = {
    "branch": "master",
    "sdk": "org.freedesktop.Sdk",
    "runtime": "org.freedesktop.Platform",
    "modules": [],
    "files": [],
    "symlinks": [],
}
DEFAULT_RUNTIME_VERSION = "1.4"

# Subtrees handed to flatpak-builder untouched; their keys (env vars, extension
# names) are meaningful as written.
VERBATIM_MANIFEST_KEYS: tuple[str, ...] = (
    "modules",
    "build-options",
    "add-extensions",
    "add-build-extensions",
)


def normalize_manifest_keys(manifest: Mapping[str, Any]) -> dict[str, Any]:
    """Kebab-case manifest keys, leaving the flatpak-builder-owned subtrees verbatim."""
    if not isinstance(manifest, Mapping):
        raise ManifestError(f"Manifest must be a mapping (type={type(manifest).__name__})")
    return normalize_keys(manifest, verbatim_keys=VERBATIM_MANIFEST_KEYS)


def apply_manifest_defaults(manifest: Mapping[str, Any]) -> dict[str, Any]:
    """Fill structural defaults without overwriting anything the caller set.

    `runtime-version` is only defaulted when the caller did not name a
    runtime: the check runs against the input, before `runtime` itself is
    defaulted.
    """

    out: dict[str, Any] = copy.deepcopy(dict(manifest))
    runtime_supplied = "runtime" in manifest
    for key, value in MANIFEST_DEFAULTS.items():
        if key not in out:
            out[key] = copy.deepcopy(value)
    if not runtime_supplied and "runtime-version" not in out:
        out["runtime-version"] = DEFAULT_RUNTIME_VERSION
    return out


def _validate_pairs(manifest: Mapping[str, Any], key: str) -> list[list[str]]:
    value = manifest.get(key)
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise ManifestError(f"Manifest {key} must be a list of pairs (type={type(value).__name__})")
    pairs: list[list[str]] = []
    for idx, pair in enumerate(value):
        if isinstance(pair, (str, bytes)) or not isinstance(pair, Sequence) or len(pair) != 2:
            raise ManifestError(f"Manifest {key}[{idx}] must be a two-element list: {pair!r}")
        first, second = pair
        if not isinstance(first, str) or not first.strip():
            raise ManifestError(f"Manifest {key}[{idx}][0] must be a non-empty string: {first!r}")
        if not isinstance(second, str) or not second.strip():
            raise ManifestError(f"Manifest {key}[{idx}][1] must be a non-empty string: {second!r}")
        pairs.append([first, second])
    return pairs


def validate_manifest(manifest: Mapping[str, Any]) -> dict[str, Any]:
    """Check the staging lists are usable; returns a copy with pairs as lists.

    Only the structure the bundler itself consumes is checked. Everything
    else is left for flatpak-builder to accept or reject.
    """

    out = dict(manifest)
    modules = manifest.get("modules")
    if isinstance(modules, (str, bytes)) or not isinstance(modules, Sequence):
        raise ManifestError(f"Manifest modules must be a list (type={type(modules).__name__})")
    out["files"] = _validate_pairs(manifest, "files")
    out["symlinks"] = _validate_pairs(manifest, "symlinks")
    return out


def require_manifest_id(manifest: Mapping[str, Any]) -> str:
    """Return the app id; `flatpak build-bundle` cannot run without one."""
    app_id = manifest.get("id")
    if not isinstance(app_id, str) or not app_id.strip():
        raise ManifestError("Manifest id is required to export a bundle")
    return app_id
