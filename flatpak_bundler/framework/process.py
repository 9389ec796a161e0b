"""Subprocess driver for the external flatpak tools.

Output is streamed line by line into the logger while the tool runs; nothing
is buffered for the caller. There is no timeout: a hung tool hangs the run.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import threading
from collections.abc import Sequence
from typing import IO, Any

from flatpak_bundler.framework.errors import ProcessExitError, ProcessLaunchError


def add_command_line_option(args: list[str], name: str, value: Any) -> None:
    """Append `--name` for True, `--name=value` for other truthy values, nothing otherwise."""

    if not value:
        return
    if value is True:
        args.append(f"--{name}")
        return
    args.append(f"--{name}={value}")


def _pump(stream: IO[str], prefix: str, logger: logging.Logger) -> None:
    with stream:
        for line in stream:
            logger.debug("%s %s", prefix, line.rstrip("\r\n"))


def run_logged(
    command: str,
    args: Sequence[str],
    *,
    cwd: str | None,
    logger: logging.Logger,
) -> None:
    """Run `command args...` in `cwd`, logging stdout as `1>` and stderr as `2>` lines.

    Raises:
        ProcessLaunchError: the executable could not be started.
        ProcessExitError: the process exited non-zero; `returncode` carries the status.
    """

    argv = [command, *args]
    logger.info("$ %s", shlex.join(argv))

    try:
        proc = subprocess.Popen(
            argv,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        raise ProcessLaunchError(f"{command} could not be started: {exc}", command=command) from exc

    assert proc.stdout is not None and proc.stderr is not None
    readers = [
        threading.Thread(target=_pump, args=(proc.stdout, "1>", logger), daemon=True),
        threading.Thread(target=_pump, args=(proc.stderr, "2>", logger), daemon=True),
    ]
    for reader in readers:
        reader.start()

    returncode = proc.wait()
    for reader in readers:
        reader.join()

    if returncode != 0:
        raise ProcessExitError(
            f"{command} failed with status code {returncode}",
            command=command,
            returncode=returncode,
        )
