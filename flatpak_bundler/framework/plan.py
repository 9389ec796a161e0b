"""The bundle pipeline as a pipelinekit node tree.

Stages run strictly in order; the first failure ends the run and nothing
already written to the working directory is cleaned up.
"""

from __future__ import annotations

import json
from typing import Any

from pipelinekit.engine.patterns import sequence
from pipelinekit.engine.pipeline import ActionStep, Block, FlowContext, StepRecorder

from flatpak_bundler.foundation.keys import normalize_keys
from flatpak_bundler.framework.flatpak import run_build_bundle, run_flatpak_builder
from flatpak_bundler.framework.manifest import (
    apply_manifest_defaults,
    normalize_manifest_keys,
    require_manifest_id,
    validate_manifest,
)
from flatpak_bundler.framework.options import BundleOptions
from flatpak_bundler.framework.runtime import BundleContext
from flatpak_bundler.framework.staging import copy_files, create_symlinks
from flatpak_bundler.framework.workspace import ensure_working_dir, write_manifest


def normalize_inputs(ctx: BundleContext) -> None:
    ctx.normalized_manifest = normalize_manifest_keys(ctx.raw_manifest or {})
    options = normalize_keys(ctx.raw_options or {})
    if not isinstance(options, dict):
        raise ValueError(f"Options must be a mapping (type={type(ctx.raw_options).__name__})")
    ctx.normalized_options = options


def prepare_workspace(ctx: BundleContext) -> dict[str, Any]:
    raw_options = dict(ctx.normalized_options or {})
    ensure_working_dir(raw_options, logger=ctx.logger)

    options, warnings = BundleOptions.from_dict(raw_options)
    for warning in warnings:
        ctx.logger.warning("%s", warning)
    ctx.warnings.extend(warnings)

    manifest = validate_manifest(apply_manifest_defaults(ctx.normalized_manifest or {}))
    if options.bundle_path is not None:
        require_manifest_id(manifest)

    ctx.options = options
    ctx.manifest = manifest

    ctx.logger.debug("Using manifest...\n%s", json.dumps(manifest, indent=2, ensure_ascii=False))
    ctx.logger.debug("Using options...\n%s", json.dumps(options.to_dict(), indent=2, ensure_ascii=False))

    write_manifest(options.manifest_path, manifest)
    return {"working_dir": options.working_dir, "manifest_path": options.manifest_path}


def build_only(ctx: BundleContext) -> None:
    options, _manifest = ctx.require_inputs()
    run_flatpak_builder(options, finish=False, logger=ctx.logger)


def stage_copy_files(ctx: BundleContext) -> list[str]:
    options, manifest = ctx.require_inputs()
    return copy_files(options, manifest, logger=ctx.logger)


def stage_create_symlinks(ctx: BundleContext) -> list[str]:
    options, manifest = ctx.require_inputs()
    return create_symlinks(options, manifest, logger=ctx.logger)


def finish_only(ctx: BundleContext) -> None:
    options, _manifest = ctx.require_inputs()
    run_flatpak_builder(options, finish=True, logger=ctx.logger)


def build_bundle(ctx: BundleContext) -> str | None:
    options, manifest = ctx.require_inputs()
    return run_build_bundle(options, manifest, logger=ctx.logger)


def build_bundle_pipeline() -> Block:
    return Block(
        name="bundle",
        nodes=[
            ActionStep(name="normalize_inputs", fn=normalize_inputs),
            ActionStep(name="prepare_workspace", fn=prepare_workspace, capture_key="workspace"),
            ActionStep(name="build_only", fn=build_only),
            sequence(
                "stage_files",
                steps=[
                    ("copy_files", stage_copy_files),
                    ("create_symlinks", stage_create_symlinks),
                ],
            ),
            ActionStep(name="finish_only", fn=finish_only),
            ActionStep(name="build_bundle", fn=build_bundle, capture_key="bundle_path"),
        ],
    )


class StateTrackingRecorder:
    """Wraps another recorder and mirrors the active step onto the context."""

    def __init__(self, inner: StepRecorder):
        self._inner = inner

    def on_step_start(self, ctx: FlowContext, path: str, **metrics: Any) -> None:
        if isinstance(ctx, BundleContext):
            ctx.current_step = path
        self._inner.on_step_start(ctx, path, **metrics)

    def on_step_end(self, ctx: FlowContext, record: dict[str, Any]) -> None:
        self._inner.on_step_end(ctx, record)

    def on_step_error(self, ctx: FlowContext, path: str, step_name: str, exc: Exception) -> None:
        self._inner.on_step_error(ctx, path, step_name, exc)
