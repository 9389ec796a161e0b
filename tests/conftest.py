import logging
import stat
from dataclasses import dataclass
from pathlib import Path

import pytest

CALL_SEPARATOR = "--8<--"


@dataclass
class FakeTool:
    path: Path
    calls_log: Path

    def calls(self) -> list[list[str]]:
        if not self.calls_log.exists():
            return []
        calls: list[list[str]] = []
        for line in self.calls_log.read_text(encoding="utf-8").splitlines():
            if line == CALL_SEPARATOR:
                calls.append([])
            else:
                calls[-1].append(line)
        return calls


def write_fake_tool(
    directory: Path,
    name: str,
    *,
    exit_code: int = 0,
    fail_on: str | None = None,
    fail_code: int = 1,
    stdout: str = "fake stdout",
    stderr: str = "fake stderr",
) -> FakeTool:
    """Write an executable shell script that records its argv and exits as told."""
    calls_log = directory / f"{name}.calls"
    script = directory / name
    lines = [
        "#!/bin/sh",
        f"printf '%s\\n' '{CALL_SEPARATOR}' >> '{calls_log}'",
        f"for arg in \"$@\"; do printf '%s\\n' \"$arg\" >> '{calls_log}'; done",
        f"echo '{stdout}'",
        f"echo '{stderr}' >&2",
    ]
    if fail_on is not None:
        lines.append(f"for arg in \"$@\"; do [ \"$arg\" = '{fail_on}' ] && exit {fail_code}; done")
    lines.append(f"exit {exit_code}")
    script.write_text("\n".join(lines) + "\n", encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return FakeTool(path=script, calls_log=calls_log)


@pytest.fixture
def tools_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "bin"
    directory.mkdir()
    return directory


@pytest.fixture
def quiet_logger() -> logging.Logger:
    logger = logging.getLogger("test.flatpak_bundler")
    logger.handlers.clear()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger


@pytest.fixture(autouse=True)
def _no_tool_env(monkeypatch):
    monkeypatch.delenv("FLATPAK_BUILDER_PATH", raising=False)
    monkeypatch.delenv("FLATPAK_PATH", raising=False)
    monkeypatch.delenv("FLATPAK_BUNDLER_CONFIG", raising=False)


@pytest.fixture
def fake_tool(tools_dir: Path):
    def _make(name: str, **kwargs) -> FakeTool:
        return write_fake_tool(tools_dir, name, **kwargs)

    return _make
