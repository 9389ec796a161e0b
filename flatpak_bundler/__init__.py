"""Drive flatpak-builder and `flatpak build-bundle` from a manifest and options."""

from flatpak_bundler.app.bundle import BundleResult, bundle, run_from_config
from flatpak_bundler.framework.errors import (
    BundlerError,
    ManifestError,
    ProcessExitError,
    ProcessLaunchError,
    StagingError,
    WorkspaceError,
)
from flatpak_bundler.framework.options import BundleOptions

__all__ = [
    "BundleOptions",
    "BundleResult",
    "BundlerError",
    "ManifestError",
    "ProcessExitError",
    "ProcessLaunchError",
    "StagingError",
    "WorkspaceError",
    "bundle",
    "run_from_config",
]
