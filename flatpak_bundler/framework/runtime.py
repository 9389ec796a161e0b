"""Mutable per-run state threaded through the bundle pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal

from flatpak_bundler.framework.options import BundleOptions

RunState = Literal["pending", "running", "done", "failed"]


@dataclass
class BundleContext:
    """Inputs, resolved values and progress of one bundle run."""

    run_id: str
    logger: logging.Logger
    created_at: str

    raw_manifest: Any
    raw_options: Any

    normalized_manifest: dict[str, Any] | None = None
    normalized_options: dict[str, Any] | None = None
    options: BundleOptions | None = None
    manifest: dict[str, Any] | None = None

    state: RunState = "pending"
    current_step: str | None = None
    warnings: list[str] = field(default_factory=list)
    outputs: dict[str, Any] = field(default_factory=dict)
    steps: list[dict[str, Any]] = field(default_factory=list)

    error: dict[str, Any] | None = None

    def require_inputs(self) -> tuple[BundleOptions, dict[str, Any]]:
        if self.options is None or self.manifest is None:
            raise RuntimeError("Workspace has not been prepared for this run")
        return self.options, self.manifest
