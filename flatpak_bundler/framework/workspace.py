"""Working directory allocation and the manifest file flatpak-builder reads."""

from __future__ import annotations

import atexit
import json
import logging
import os
import shutil
import tempfile
from typing import Any, Mapping, MutableMapping

from flatpak_bundler.framework.errors import WorkspaceError
from flatpak_bundler.framework.options import resolve_path

TEMP_ROOT = "/var/tmp"
TEMP_PREFIX = "flatpak-bundler-"


def _schedule_removal(path: str) -> None:
    atexit.register(shutil.rmtree, path, ignore_errors=True)


def ensure_working_dir(
    options: MutableMapping[str, Any],
    *,
    temp_root: str | None = None,
    logger: logging.Logger | None = None,
) -> str:
    """Make sure `options["working-dir"]` names an existing directory.

    Without a caller-supplied directory a fresh one is allocated under
    `TEMP_ROOT` and recorded in `options`; it is removed when the interpreter
    exits. A supplied directory has `~` and `$VARS` expanded, is made
    absolute and written back into `options`, then created with its parents;
    existing content is left alone.
    """

    working_dir = options.get("working-dir")
    if not working_dir or not str(working_dir).strip():
        root = temp_root or TEMP_ROOT
        try:
            working_dir = tempfile.mkdtemp(prefix=TEMP_PREFIX, dir=root)
        except OSError as exc:
            raise WorkspaceError(f"Cannot allocate a working directory under {root}: {exc}") from exc
        _schedule_removal(working_dir)
        options["working-dir"] = working_dir
        if logger:
            logger.info("Allocated temporary working directory %s", working_dir)
        return working_dir

    working_dir = resolve_path(str(working_dir))
    options["working-dir"] = working_dir
    try:
        os.makedirs(working_dir, exist_ok=True)
    except OSError as exc:
        raise WorkspaceError(f"Cannot create working directory {working_dir}: {exc}") from exc
    return working_dir


def write_manifest(manifest_path: str, manifest: Mapping[str, Any]) -> str:
    """Persist the manifest as pretty-printed JSON for flatpak-builder to read."""

    try:
        parent = os.path.dirname(manifest_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(manifest_path, "w", encoding="utf-8") as handle:
            json.dump(manifest, handle, indent=2, ensure_ascii=False)
            handle.write("\n")
    except OSError as exc:
        raise WorkspaceError(f"Cannot write manifest {manifest_path}: {exc}") from exc
    except TypeError as exc:
        raise WorkspaceError(f"Manifest is not JSON-serializable: {exc}") from exc
    return manifest_path
