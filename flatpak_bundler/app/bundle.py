from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pipelinekit.engine.pipeline import DefaultStepRecorder, PipelineRunner, StepRecorder, utc_now_iso8601

from flatpak_bundler.foundation.config_io import load_config, load_manifest
from flatpak_bundler.foundation.logging_utils import (
    generate_run_id,
    get_logger,
    setup_operational_logger,
)
from flatpak_bundler.framework.options import BundleOptions, parse_bool
from flatpak_bundler.framework.plan import StateTrackingRecorder, build_bundle_pipeline
from flatpak_bundler.framework.runtime import BundleContext

BundleCallback = Callable[[Exception | None, dict[str, Any] | None, dict[str, Any] | None], None]


@dataclass(frozen=True)
class BundleResult:
    options: BundleOptions
    manifest: dict[str, Any]
    bundle_path: str | None
    steps: list[dict[str, Any]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def working_dir(self) -> str:
        return self.options.working_dir


def _record_failure(ctx: BundleContext, exc: Exception) -> None:
    ctx.state = "failed"
    ctx.error = {
        "type": type(exc).__name__,
        "message": str(exc),
        "step": getattr(exc, "pipeline_step", None),
        "path": getattr(exc, "pipeline_path", None),
    }
    working_dir = ctx.options.working_dir if ctx.options else None
    if working_dir:
        ctx.logger.error(
            "Bundle run %s failed at %s: %s (partial state kept in %s)",
            ctx.run_id,
            ctx.error["path"],
            exc,
            working_dir,
        )
    else:
        ctx.logger.error("Bundle run %s failed at %s: %s", ctx.run_id, ctx.error["path"], exc)


def run_bundle(ctx: BundleContext, *, recorder: StepRecorder | None = None) -> BundleResult:
    """Drive `ctx` through the bundle pipeline, raising on the first failure."""

    runner = PipelineRunner(recorder=StateTrackingRecorder(recorder or DefaultStepRecorder()))
    ctx.state = "running"
    try:
        runner.run(ctx, build_bundle_pipeline())
    except Exception as exc:
        _record_failure(ctx, exc)
        raise

    options, manifest = ctx.require_inputs()
    ctx.state = "done"
    ctx.current_step = None
    ctx.logger.info("Bundle run %s finished (working dir %s)", ctx.run_id, options.working_dir)
    return BundleResult(
        options=options,
        manifest=manifest,
        bundle_path=ctx.outputs.get("bundle_path"),
        steps=list(ctx.steps),
        warnings=list(ctx.warnings),
    )


def bundle(
    manifest: Mapping[str, Any],
    options: Mapping[str, Any] | None = None,
    callback: BundleCallback | None = None,
    *,
    logger: logging.Logger | None = None,
    recorder: StepRecorder | None = None,
    run_id: str | None = None,
) -> BundleResult | None:
    """Build `manifest` with flatpak-builder and optionally export a bundle.

    Option and manifest keys may use any casing (`buildDir`, `build_dir`,
    `build-dir`). Without `callback` the result is returned and failures are
    raised. With `callback` it is called exactly once, as
    `callback(None, options_dict, manifest)` or `callback(error, None, None)`,
    and nothing is raised.
    """

    ctx = BundleContext(
        run_id=run_id or generate_run_id(),
        logger=logger or get_logger(),
        created_at=utc_now_iso8601(),
        raw_manifest=manifest,
        raw_options=options or {},
    )

    if callback is None:
        return run_bundle(ctx, recorder=recorder)

    try:
        result = run_bundle(ctx, recorder=recorder)
    except Exception as exc:
        callback(exc, None, None)
        return None
    callback(None, result.options.to_dict(), result.manifest)
    return result


def _resolve_manifest(raw: Any, *, config_paths: list[str]) -> Mapping[str, Any]:
    if isinstance(raw, Mapping):
        return raw
    if isinstance(raw, str) and raw.strip():
        path = raw.strip()
        if not os.path.isabs(path) and config_paths:
            path = os.path.join(os.path.dirname(config_paths[0]), path)
        return load_manifest(path)
    raise ValueError("Config key manifest must be a mapping or a path to a manifest file")


def run_from_config(config_path: str | None = None, **load_kwargs: Any) -> BundleResult:
    """Load a YAML config (see `load_config`) and run one bundle.

    Config keys: `manifest` (mapping or path, relative to the config file),
    `options` (mapping), optional `log-dir` and `strict`.
    """

    cfg, meta = load_config(config_path=config_path, **load_kwargs)
    run_id = generate_run_id()

    log_dir = cfg.get("log-dir") or cfg.get("log_dir")
    if log_dir:
        logger, _log_file = setup_operational_logger(str(log_dir), run_id)
    else:
        logger = get_logger()

    paths = meta.get("paths") or []
    if len(paths) == 1:
        logger.info("Loaded config from %s", paths[0])
    elif paths:
        logger.info("Loaded config base=%s local=%s", paths[0], paths[-1])

    manifest = _resolve_manifest(cfg.get("manifest"), config_paths=list(paths))
    raw_options = cfg.get("options") or {}
    if not isinstance(raw_options, Mapping):
        raise ValueError("Config key options must be a mapping")
    options = dict(raw_options)
    if "strict" in cfg and "strict" not in options:
        options["strict"] = parse_bool(cfg.get("strict"), "strict")

    result = bundle(manifest, options, logger=logger, run_id=run_id)
    assert result is not None
    return result


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
    try:
        result = run_from_config()
    except Exception as exc:
        get_logger().error("flatpak-bundler failed: %s", exc)
        return 1

    if result.bundle_path:
        print(result.bundle_path)
    else:
        print(result.options.repo_dir)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
