"""Run options: accepted keys, strict parsing and the resolved `BundleOptions`."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

OPTION_KEYS: tuple[str, ...] = (
    "working-dir",
    "build-dir",
    "repo-dir",
    "manifest-path",
    "bundle-path",
    "arch",
    "gpg-sign",
    "gpg-homedir",
    "subject",
    "body",
    "bundle-repo-url",
    "build-runtime",
    "extra-flatpak-builder-args",
    "extra-flatpak-build-bundle-args",
    "flatpak-builder-command",
    "flatpak-command",
    "strict",
)


def parse_bool(value: Any, path: str) -> bool:
    """
    Strict boolean parsing to avoid bool('false') footguns.

    Accepts:
      - True/False
      - 0/1 (ints)
      - strings: true/false/1/0/yes/no (case-insensitive, surrounding whitespace ignored)

    Raises:
      ValueError for anything else, with the provided option key.
    """

    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"Invalid boolean for {path}: {value!r}")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes"}:
            return True
        if normalized in {"false", "0", "no"}:
            return False
        raise ValueError(f"Invalid boolean for {path}: {value!r}")

    raise ValueError(f"Invalid boolean for {path}: {value!r}")


def resolve_path(value: str) -> str:
    """Strip, expand `~` and `$VARS`, and make absolute against the cwd."""

    expanded = os.path.expandvars(os.path.expanduser(value.strip()))
    return os.path.abspath(expanded)


@dataclass(frozen=True)
class BundleOptions:
    working_dir: str
    build_dir: str
    repo_dir: str
    manifest_path: str
    bundle_path: str | None = None

    arch: str | None = None
    gpg_sign: str | None = None
    gpg_homedir: str | None = None
    subject: str | None = None
    body: str | None = None
    bundle_repo_url: str | None = None
    build_runtime: bool = False

    extra_flatpak_builder_args: tuple[str, ...] = ()
    extra_flatpak_build_bundle_args: tuple[str, ...] = ()

    flatpak_builder_command: str | None = None
    flatpak_command: str | None = None

    extra: Mapping[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> tuple["BundleOptions", list[str]]:
        """
        Resolve kebab-cased options into a BundleOptions, returning (options, warnings).

        `working-dir` must already be set; the dependent directories default
        beneath it and every path comes back absolute. An absent or empty
        `bundle-path` stays None.

        Raises:
            ValueError: if a value has the wrong type, or on unknown keys in strict mode.
        """

        if not isinstance(raw, Mapping):
            raise ValueError("Options must be a mapping")

        warnings: list[str] = []

        strict_unknown_keys = False
        if "strict" in raw and raw.get("strict") is not None:
            strict_unknown_keys = parse_bool(raw.get("strict"), "strict")

        def optional_str(key: str) -> str | None:
            value = raw.get(key)
            if value is None:
                return None
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise ValueError(f"Invalid option type for {key}: expected string")
            if not value:
                return None
            text = str(value)
            if not text.strip():
                return None
            return text

        def optional_path(key: str) -> str | None:
            value = optional_str(key)
            if value is None:
                return None
            return resolve_path(value)

        def optional_bool(key: str, *, default: bool) -> bool:
            value = raw.get(key)
            if value is None:
                return default
            return parse_bool(value, key)

        def optional_args(key: str) -> tuple[str, ...]:
            value = raw.get(key)
            if value is None:
                return ()
            if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
                raise ValueError(f"Invalid option type for {key}: expected a list of strings")
            args: list[str] = []
            for idx, item in enumerate(value):
                if not isinstance(item, str):
                    raise ValueError(
                        f"Invalid option type for {key}[{idx}]: expected string, got {type(item).__name__}"
                    )
                args.append(item)
            return tuple(args)

        working_dir = optional_path("working-dir")
        if working_dir is None:
            raise ValueError("Missing required option: working-dir")

        build_dir = optional_path("build-dir") or os.path.join(working_dir, "build")
        repo_dir = optional_path("repo-dir") or os.path.join(working_dir, "repo")
        manifest_path = optional_path("manifest-path") or os.path.join(working_dir, "manifest.json")

        extra: dict[str, Any] = {}
        unknown_keys: list[str] = []
        for key, value in raw.items():
            if key in OPTION_KEYS:
                continue
            extra[key] = value
            unknown_keys.append(str(key))
        if unknown_keys:
            unknown_keys = sorted(set(unknown_keys))
            if strict_unknown_keys:
                raise ValueError("Unknown option keys: " + ", ".join(unknown_keys))
            warnings.extend(f"Unknown option key: {key}" for key in unknown_keys)

        options = BundleOptions(
            working_dir=working_dir,
            build_dir=build_dir,
            repo_dir=repo_dir,
            manifest_path=manifest_path,
            bundle_path=optional_path("bundle-path"),
            arch=optional_str("arch"),
            gpg_sign=optional_str("gpg-sign"),
            gpg_homedir=optional_str("gpg-homedir"),
            subject=optional_str("subject"),
            body=optional_str("body"),
            bundle_repo_url=optional_str("bundle-repo-url"),
            build_runtime=optional_bool("build-runtime", default=False),
            extra_flatpak_builder_args=optional_args("extra-flatpak-builder-args"),
            extra_flatpak_build_bundle_args=optional_args("extra-flatpak-build-bundle-args"),
            flatpak_builder_command=optional_str("flatpak-builder-command"),
            flatpak_command=optional_str("flatpak-command"),
            extra=extra,
        )
        return options, warnings

    @property
    def files_dir(self) -> str:
        return os.path.join(self.build_dir, "files")

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        out.update(
            {
                "working-dir": self.working_dir,
                "build-dir": self.build_dir,
                "repo-dir": self.repo_dir,
                "manifest-path": self.manifest_path,
                "bundle-path": self.bundle_path,
                "arch": self.arch,
                "gpg-sign": self.gpg_sign,
                "gpg-homedir": self.gpg_homedir,
                "subject": self.subject,
                "body": self.body,
                "bundle-repo-url": self.bundle_repo_url,
                "build-runtime": self.build_runtime,
                "extra-flatpak-builder-args": list(self.extra_flatpak_builder_args),
                "extra-flatpak-build-bundle-args": list(self.extra_flatpak_build_bundle_args),
                "flatpak-builder-command": self.flatpak_builder_command,
                "flatpak-command": self.flatpak_command,
            }
        )
        return out
