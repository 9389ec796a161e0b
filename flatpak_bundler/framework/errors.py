"""Exceptions raised by a bundle run."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class BundlerError(RuntimeError):
    """Base class for failures that abort a bundle run."""


class WorkspaceError(BundlerError):
    """Raised when the working directory or manifest file cannot be prepared."""


class StagingError(BundlerError):
    """Raised when copying files or creating symlinks into the build tree fails.

    `failures` holds `(item, exc)` pairs for every item that failed, in
    manifest order.
    """

    def __init__(self, message: str, failures: Sequence[tuple[Any, BaseException]] = ()):
        super().__init__(message)
        self.failures = list(failures)


class ProcessLaunchError(BundlerError):
    """Raised when an external tool could not be started at all."""

    def __init__(self, message: str, *, command: str):
        super().__init__(message)
        self.command = command


class ProcessExitError(BundlerError):
    """Raised when an external tool exits with a non-zero status."""

    def __init__(self, message: str, *, command: str, returncode: int):
        super().__init__(message)
        self.command = command
        self.returncode = returncode


class ManifestError(ValueError):
    """Raised when a manifest is structurally unusable."""
