import logging
import threading
from dataclasses import dataclass, field
from typing import Any

import pytest

from pipelinekit import (
    ActionStep,
    Block,
    FanoutError,
    PipelineRunner,
    fanout,
    sequence,
)


@dataclass
class _Ctx:
    logger: logging.Logger
    outputs: dict[str, Any] = field(default_factory=dict)
    steps: list[dict[str, Any]] = field(default_factory=list)


def _make_ctx() -> _Ctx:
    logger = logging.getLogger("test.pipelinekit")
    logger.handlers.clear()
    logger.addHandler(logging.NullHandler())
    logger.propagate = False
    return _Ctx(logger=logger)


def test_actions_run_in_order_and_record_paths():
    ctx = _make_ctx()
    order: list[str] = []

    root = Block(
        name="pipeline",
        nodes=[
            ActionStep(name="first", fn=lambda c: order.append("first")),
            sequence("inner", steps=[("second", lambda c: order.append("second"))]),
            ActionStep(name="third", fn=lambda c: {"ok": True}, capture_key="third_result"),
        ],
    )

    PipelineRunner().run(ctx, root)

    assert order == ["first", "second"]
    assert [step["path"] for step in ctx.steps] == [
        "pipeline/first",
        "pipeline/inner/second",
        "pipeline/third",
    ]
    assert ctx.outputs["third_result"] == {"ok": True}
    assert ctx.steps[-1]["result"] == {"ok": True}


def test_failure_stops_later_steps_and_tags_exception():
    ctx = _make_ctx()
    ran: list[str] = []

    def _boom(_ctx):
        raise RuntimeError("boom")

    root = Block(
        name="pipeline",
        nodes=[
            sequence("group", steps=[("fails", _boom)]),
            ActionStep(name="after", fn=lambda c: ran.append("after")),
        ],
    )

    with pytest.raises(RuntimeError, match="boom") as excinfo:
        PipelineRunner().run(ctx, root)

    assert ran == []
    assert excinfo.value.pipeline_path == "pipeline/group/fails"
    assert excinfo.value.pipeline_step == "fails"
    assert ctx.steps == []


def test_duplicate_sibling_names_rejected():
    with pytest.raises(ValueError, match="Duplicate node name"):
        Block(
            name="pipeline",
            nodes=[ActionStep(name="a", fn=lambda c: None), ActionStep(name="a", fn=lambda c: None)],
        )


def test_block_requires_a_name():
    with pytest.raises(ValueError, match="Block name cannot be empty"):
        Block(name=" ")


def test_recorder_must_implement_protocol():
    with pytest.raises(TypeError, match="on_step_start"):
        PipelineRunner(recorder=object())  # type: ignore[arg-type]


def test_action_step_validation():
    with pytest.raises(ValueError, match="Action name cannot be empty"):
        ActionStep(name="  ", fn=lambda c: None)
    with pytest.raises(TypeError, match="Action fn must be callable"):
        ActionStep(name="x", fn="nope")  # type: ignore[arg-type]


def test_fanout_returns_results_in_item_order():
    assert fanout("square", items=[3, 1, 2], fn=lambda n: n * n) == [9, 1, 4]


def test_fanout_runs_items_concurrently():
    barrier = threading.Barrier(3, timeout=5)

    def _wait(_item):
        barrier.wait()
        return True

    assert fanout("barrier", items=[1, 2, 3], fn=_wait, max_workers=3) == [True, True, True]


def test_fanout_collects_every_failure():
    attempted: list[int] = []
    lock = threading.Lock()

    def _fn(item: int) -> int:
        with lock:
            attempted.append(item)
        if item % 2:
            raise ValueError(f"odd {item}")
        return item

    with pytest.raises(FanoutError) as excinfo:
        fanout("evens", items=[1, 2, 3, 4], fn=_fn)

    error = excinfo.value
    assert sorted(attempted) == [1, 2, 3, 4]
    assert [(idx, item) for idx, item, _exc in error.failures] == [(0, 1), (2, 3)]
    assert str(error.first) == "odd 1"
    assert error.total == 4


def test_fanout_empty_is_a_no_op():
    assert fanout("nothing", items=[], fn=lambda item: item) == []
