"""Sequential runner for named Block/ActionStep trees.

App-agnostic: nothing here may import `flatpak_bundler.*`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Protocol, TypeAlias


def utc_now_iso8601() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class FlowContext(Protocol):
    logger: logging.Logger
    outputs: dict[str, Any]
    steps: list[dict[str, Any]]


def _clean_name(kind: str, name: Any) -> str:
    if not isinstance(name, str):
        raise TypeError(f"{kind} name must be a string (type={type(name).__name__})")
    name = name.strip()
    if not name:
        raise ValueError(f"{kind} name cannot be empty")
    return name


@dataclass(frozen=True)
class ActionStep:
    """A named callable run against the flow context.

    When `capture_key` is set the return value is stored in `ctx.outputs`.
    """

    name: str
    fn: Callable[[FlowContext], Any]
    capture_key: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _clean_name("Action", self.name))
        if not callable(self.fn):
            raise TypeError(f"Action fn must be callable (type={type(self.fn).__name__})")
        if self.capture_key is not None:
            object.__setattr__(self, "capture_key", _clean_name("Action capture_key", self.capture_key))


@dataclass(frozen=True)
class Block:
    name: str
    nodes: list["Node"] = field(default_factory=list)

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _clean_name("Block", self.name))
        seen: set[str] = set()
        duplicates: set[str] = set()
        for node in self.nodes:
            if node.name in seen:
                duplicates.add(node.name)
            seen.add(node.name)
        if duplicates:
            raise ValueError(
                f"Duplicate node name(s) in block {self.name}: {', '.join(sorted(duplicates))}"
            )


Node: TypeAlias = ActionStep | Block


class StepRecorder(Protocol):
    def on_step_start(self, ctx: FlowContext, path: str, **metrics: Any) -> None:
        ...

    def on_step_end(self, ctx: FlowContext, record: dict[str, Any]) -> None:
        ...

    def on_step_error(self, ctx: FlowContext, path: str, step_name: str, exc: Exception) -> None:
        ...


class DefaultStepRecorder:
    def on_step_start(self, ctx: FlowContext, path: str, **metrics: Any) -> None:
        source = metrics.get("source")
        if source:
            ctx.logger.info("Step: %s (source=%s)", path, source)
        else:
            ctx.logger.info("Step: %s", path)

    def on_step_end(self, ctx: FlowContext, record: dict[str, Any]) -> None:
        ctx.steps.append(record)
        ctx.logger.info("Completed action %s", record.get("path", "<unknown>"))

    def on_step_error(self, ctx: FlowContext, path: str, step_name: str, exc: Exception) -> None:
        ctx.logger.error("Step failed: %s (%s)", path, exc)


class PipelineRunner:
    """Runs a node tree depth-first, strictly in declaration order.

    The first exception aborts the run: later siblings never execute and the
    exception propagates with `pipeline_path`/`pipeline_step` attached.
    """

    def __init__(self, *, recorder: StepRecorder | None = None):
        recorder = recorder or DefaultStepRecorder()
        for name in ("on_step_start", "on_step_end", "on_step_error"):
            if not callable(getattr(recorder, name, None)):
                raise TypeError(f"Step recorder missing required method: {name}")
        self._recorder = recorder

    def run(self, ctx: FlowContext, node: Node) -> None:
        self._execute_node(ctx, node, path_segments=[node.name])

    def _execute_node(self, ctx: FlowContext, node: Node, *, path_segments: list[str]) -> None:
        pipeline_path = "/".join(path_segments)
        try:
            if isinstance(node, Block):
                for child in node.nodes:
                    self._execute_node(ctx, child, path_segments=[*path_segments, child.name])
            else:
                self._execute_action(ctx, node, pipeline_path)
        except Exception as exc:
            # Innermost node wins: outer blocks never overwrite what a child attached.
            if not hasattr(exc, "pipeline_path"):
                exc.pipeline_path = pipeline_path  # type: ignore[attr-defined]
                exc.pipeline_step = node.name  # type: ignore[attr-defined]
            raise

    def _execute_action(self, ctx: FlowContext, action: ActionStep, pipeline_path: str) -> None:
        fn = action.fn
        source = f"{getattr(fn, '__module__', '<unknown_module>')}.{getattr(fn, '__qualname__', '<callable>')}"
        self._recorder.on_step_start(ctx, pipeline_path, source=source)
        try:
            result = fn(ctx)
        except Exception as exc:
            try:
                self._recorder.on_step_error(ctx, pipeline_path, action.name, exc)
            except Exception:
                ctx.logger.exception("Step recorder failed during error handling for %s", pipeline_path)
            raise

        if action.capture_key is not None:
            ctx.outputs[action.capture_key] = result

        record: dict[str, Any] = {
            "type": "action",
            "name": action.name,
            "path": pipeline_path,
            "created_at": utc_now_iso8601(),
            "source": source,
        }
        if result is not None:
            record["result"] = result
        self._recorder.on_step_end(ctx, record)
