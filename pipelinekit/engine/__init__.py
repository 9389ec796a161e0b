"""Engine primitives for building and running Block/ActionStep trees."""

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
from pipelinekit.engine.patterns import FanoutError, fanout, sequence

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
