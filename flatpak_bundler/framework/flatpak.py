"""Command lines for flatpak-builder and `flatpak build-bundle`."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any, Mapping

from flatpak_bundler.framework.errors import WorkspaceError
from flatpak_bundler.framework.manifest import require_manifest_id
from flatpak_bundler.framework.options import BundleOptions
from flatpak_bundler.framework.process import add_command_line_option, run_logged

FLATPAK_BUILDER = "flatpak-builder"
FLATPAK = "flatpak"

BUILDER_ENV_VAR = "FLATPAK_BUILDER_PATH"
FLATPAK_ENV_VAR = "FLATPAK_PATH"


def find_command(explicit_path: str | None, env_var: str, default_name: str) -> str:
    """Locate an external tool.

    Search order:
      1) explicit_path (from options)
      2) env var
      3) PATH lookup for default_name

    Falls back to the bare name so a missing tool surfaces as a launch error
    from the spawn itself.
    """
    if explicit_path:
        return explicit_path

    env_path = os.environ.get(env_var, "").strip()
    if env_path:
        return env_path

    found = shutil.which(default_name)
    if found:
        return found
    return default_name


def flatpak_builder_args(options: BundleOptions, *, finish: bool) -> list[str]:
    args: list[str] = []
    add_command_line_option(args, "arch", options.arch)
    add_command_line_option(args, "gpg-sign", options.gpg_sign)
    add_command_line_option(args, "gpg-homedir", options.gpg_homedir)
    add_command_line_option(args, "subject", options.subject)
    add_command_line_option(args, "body", options.body)
    add_command_line_option(args, "repo", options.repo_dir)
    add_command_line_option(args, "force-clean", True)
    if finish:
        add_command_line_option(args, "finish-only", True)
    else:
        add_command_line_option(args, "build-only", True)
    args.extend(options.extra_flatpak_builder_args)

    args.append(options.build_dir)
    args.append(options.manifest_path)
    return args


def build_bundle_args(options: BundleOptions, manifest: Mapping[str, Any]) -> list[str]:
    if options.bundle_path is None:
        raise ValueError("build_bundle_args requires options.bundle_path")

    args: list[str] = ["build-bundle"]
    add_command_line_option(args, "arch", options.arch)
    add_command_line_option(args, "gpg-sign", options.gpg_sign)
    add_command_line_option(args, "gpg-homedir", options.gpg_homedir)
    add_command_line_option(args, "repo-url", options.bundle_repo_url)
    add_command_line_option(args, "runtime", options.build_runtime)
    args.extend(options.extra_flatpak_build_bundle_args)

    args.append(options.repo_dir)
    args.append(options.bundle_path)
    args.append(require_manifest_id(manifest))
    args.append(str(manifest["branch"]))
    return args


def run_flatpak_builder(options: BundleOptions, *, finish: bool, logger: logging.Logger) -> None:
    command = find_command(options.flatpak_builder_command, BUILDER_ENV_VAR, FLATPAK_BUILDER)
    run_logged(
        command,
        flatpak_builder_args(options, finish=finish),
        cwd=options.working_dir,
        logger=logger,
    )


def run_build_bundle(
    options: BundleOptions, manifest: Mapping[str, Any], *, logger: logging.Logger
) -> str | None:
    """Export the repo into a single-file bundle; a no-op without `bundle_path`.

    Returns the bundle path when one was written.
    """
    if options.bundle_path is None:
        logger.info("No bundle-path configured; skipping build-bundle")
        return None

    args = build_bundle_args(options, manifest)
    bundle_dir = Path(options.bundle_path).parent
    try:
        bundle_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WorkspaceError(f"Cannot create bundle directory {bundle_dir}: {exc}") from exc

    command = find_command(options.flatpak_command, FLATPAK_ENV_VAR, FLATPAK)
    run_logged(command, args, cwd=options.working_dir, logger=logger)
    return options.bundle_path
