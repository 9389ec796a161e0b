"""Reusable composition helpers.

These helpers are intentionally generic (no `flatpak_bundler.*` dependencies) and work
for any Block/ActionStep pipeline built on `pipelinekit.engine.pipeline`.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, TypeVar

from pipelinekit.engine.pipeline import ActionStep, Block, Node

T = TypeVar("T")
U = TypeVar("U")


class FanoutError(RuntimeError):
    """Raised when one or more fan-out items failed.

    `failures` holds `(index, item, exc)` tuples in item order, so `first` is
    deterministic even though items complete in any order.
    """

    def __init__(self, name: str, failures: list[tuple[int, Any, BaseException]], total: int):
        self.name = name
        self.failures = failures
        self.total = total
        first = failures[0][2] if failures else None
        super().__init__(f"{name}: {len(failures)} of {total} item(s) failed; first error: {first}")

    @property
    def first(self) -> BaseException | None:
        return self.failures[0][2] if self.failures else None


def fanout(
    name: str,
    *,
    items: Sequence[T],
    fn: Callable[[T], U],
    max_workers: int | None = None,
) -> list[U]:
    """Pattern: run `fn` over every item concurrently, then join.

    Every item is attempted; results come back in item order. If any item
    raised, a single FanoutError carrying all failures is raised after the
    join. Completed side effects of the successful items are left in place.
    """

    if not isinstance(name, str) or not name.strip():
        raise TypeError("name must be a non-empty string")

    items = list(items)
    if not items:
        return []

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name.strip()) as executor:
        futures: list[Future[U]] = [executor.submit(fn, item) for item in items]

    results: list[U] = []
    failures: list[tuple[int, Any, BaseException]] = []
    for idx, (item, future) in enumerate(zip(items, futures, strict=True)):
        exc = future.exception()
        if exc is not None:
            failures.append((idx, item, exc))
            continue
        results.append(future.result())

    if failures:
        raise FanoutError(name.strip(), failures, len(items))
    return results


def sequence(
    name: str,
    *,
    steps: Sequence[tuple[str, Callable[[Any], Any]]],
) -> Block:
    """Pattern: wrap `(name, fn)` pairs into a Block of ActionSteps, in order."""

    if not isinstance(name, str) or not name.strip():
        raise TypeError("name must be a non-empty string")

    nodes: list[Node] = []
    for step_name, fn in steps:
        nodes.append(ActionStep(name=step_name, fn=fn))
    return Block(name=name.strip(), nodes=nodes)
