"""Reusable pipeline kernel (sequential runner + concurrent fan-out).

This package is intentionally independent of `flatpak_bundler.*`. Any project-specific
conventions (stage names, option schemas, external tool contracts) must live in the
consuming application.
"""

from pipelinekit.engine.patterns import FanoutError, fanout, sequence
from pipelinekit.engine.pipeline import (
    ActionStep,
    Block,
    DefaultStepRecorder,
    FlowContext,
    Node,
    PipelineRunner,
    StepRecorder,
    utc_now_iso8601,
)

__all__ = [
    "ActionStep",
    "Block",
    "DefaultStepRecorder",
    "FanoutError",
    "FlowContext",
    "Node",
    "PipelineRunner",
    "StepRecorder",
    "fanout",
    "sequence",
    "utc_now_iso8601",
]
