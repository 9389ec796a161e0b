"""Staging of auxiliary files and symlinks into `<build-dir>/files`.

Runs between the builder's build-only and finish-only passes. Each phase
fans out over its items concurrently and only succeeds if every item did;
nothing already copied or linked is rolled back on failure.
"""

from __future__ import annotations

import logging
import os
import posixpath
import shutil
from collections.abc import Sequence
from typing import Any, Mapping

from pipelinekit.engine.patterns import FanoutError, fanout

from flatpak_bundler.framework.errors import StagingError
from flatpak_bundler.framework.options import BundleOptions

APP_PREFIX = "/app"


def _is_dir_destination(destination: str) -> bool:
    return destination.endswith("/") or destination.endswith(os.sep)


def build_files_path(options: BundleOptions, destination: str) -> str:
    """Resolve a manifest destination under `<build-dir>/files`.

    Leading separators are dropped so `/bin/tool` and `bin/tool` land in the
    same place.
    """
    relative = destination.lstrip("/" + os.sep)
    return os.path.normpath(os.path.join(options.files_dir, relative))


def app_link_target(target: str) -> str:
    return posixpath.normpath(posixpath.join(APP_PREFIX, target.lstrip("/")))


def _copy_one(options: BundleOptions, pair: Sequence[str], logger: logging.Logger) -> str:
    source = os.path.abspath(pair[0])
    destination = build_files_path(options, pair[1])

    logger.info("Copying %s to %s", source, destination)
    if _is_dir_destination(pair[1]):
        os.makedirs(destination, exist_ok=True)
        if os.path.isdir(source):
            shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
            return destination
        target = os.path.join(destination, os.path.basename(source))
        shutil.copy2(source, target)
        return target

    os.makedirs(os.path.dirname(destination), exist_ok=True)
    if os.path.isdir(source):
        shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
    else:
        shutil.copy2(source, destination)
    return destination


def _link_one(options: BundleOptions, pair: Sequence[str], logger: logging.Logger) -> str:
    target = app_link_target(pair[0])
    destination = build_files_path(options, pair[1])

    logger.info("Symlinking %s at %s", target, destination)
    os.makedirs(os.path.dirname(destination), exist_ok=True)
    os.symlink(target, destination)
    return destination


def _staging_error(action: str, exc: FanoutError) -> StagingError:
    failures = [(item, error) for _idx, item, error in exc.failures]
    details = "; ".join(f"{list(item)!r}: {error}" for item, error in failures)
    return StagingError(
        f"{action} failed for {len(failures)} of {exc.total} item(s): {details}",
        failures=failures,
    )


def copy_files(
    options: BundleOptions, manifest: Mapping[str, Any], *, logger: logging.Logger
) -> list[str]:
    """Copy every `[source, destination]` pair in `manifest["files"]`.

    Returns the written paths in manifest order.
    """
    pairs = list(manifest.get("files") or [])
    try:
        return fanout("copy_files", items=pairs, fn=lambda pair: _copy_one(options, pair, logger))
    except FanoutError as exc:
        raise _staging_error("Copying files", exc) from exc.first


def create_symlinks(
    options: BundleOptions, manifest: Mapping[str, Any], *, logger: logging.Logger
) -> list[str]:
    """Create a link to `/app/<target>` for every `[target, destination]` pair."""
    pairs = list(manifest.get("symlinks") or [])
    try:
        return fanout(
            "create_symlinks", items=pairs, fn=lambda pair: _link_one(options, pair, logger)
        )
    except FanoutError as exc:
        raise _staging_error("Creating symlinks", exc) from exc.first
