import pytest

from flatpak_bundler.framework import flatpak
from flatpak_bundler.framework.errors import ManifestError
from flatpak_bundler.framework.flatpak import build_bundle_args, find_command, flatpak_builder_args
from flatpak_bundler.framework.options import BundleOptions


def _options(tmp_path, **extra) -> BundleOptions:
    raw = {"working-dir": str(tmp_path)}
    raw.update(extra)
    options, _warnings = BundleOptions.from_dict(raw)
    return options


def test_builder_args_minimal(tmp_path):
    options = _options(tmp_path)

    args = flatpak_builder_args(options, finish=False)

    assert args == [
        f"--repo={options.repo_dir}",
        "--force-clean",
        "--build-only",
        options.build_dir,
        options.manifest_path,
    ]


def test_builder_args_full_finish_pass(tmp_path):
    options = _options(
        tmp_path,
        **{
            "arch": "aarch64",
            "gpg-sign": "ABCD1234",
            "gpg-homedir": "/keys",
            "subject": "Release 1.0",
            "body": "Notes",
            "extra-flatpak-builder-args": ["--ccache", "--verbose"],
        },
    )

    args = flatpak_builder_args(options, finish=True)

    assert args == [
        "--arch=aarch64",
        "--gpg-sign=ABCD1234",
        "--gpg-homedir=/keys",
        "--subject=Release 1.0",
        "--body=Notes",
        f"--repo={options.repo_dir}",
        "--force-clean",
        "--finish-only",
        "--ccache",
        "--verbose",
        options.build_dir,
        options.manifest_path,
    ]


def test_bundle_args(tmp_path):
    options = _options(
        tmp_path,
        **{
            "bundle-path": str(tmp_path / "out" / "app.flatpak"),
            "arch": "x86_64",
            "bundle-repo-url": "https://example.org/repo",
            "build-runtime": True,
            "extra-flatpak-build-bundle-args": ["--runtime-repo=https://example.org/r.flatpakrepo"],
        },
    )
    manifest = {"id": "org.example.App", "branch": "stable"}

    args = build_bundle_args(options, manifest)

    assert args == [
        "build-bundle",
        "--arch=x86_64",
        "--repo-url=https://example.org/repo",
        "--runtime",
        "--runtime-repo=https://example.org/r.flatpakrepo",
        options.repo_dir,
        str(tmp_path / "out" / "app.flatpak"),
        "org.example.App",
        "stable",
    ]


def test_bundle_args_without_runtime_flag(tmp_path):
    options = _options(tmp_path, **{"bundle-path": str(tmp_path / "app.flatpak")})

    args = build_bundle_args(options, {"id": "org.example.App", "branch": "master"})

    assert "--runtime" not in args


def test_bundle_args_require_manifest_id(tmp_path):
    options = _options(tmp_path, **{"bundle-path": str(tmp_path / "app.flatpak")})

    with pytest.raises(ManifestError):
        build_bundle_args(options, {"branch": "master"})


def test_find_command_search_order(tmp_path, monkeypatch):
    monkeypatch.setattr(flatpak.shutil, "which", lambda name: f"/usr/bin/{name}")

    assert find_command("/opt/fb", "FLATPAK_BUILDER_PATH", "flatpak-builder") == "/opt/fb"

    monkeypatch.setenv("FLATPAK_BUILDER_PATH", "/env/fb")
    assert find_command(None, "FLATPAK_BUILDER_PATH", "flatpak-builder") == "/env/fb"

    monkeypatch.delenv("FLATPAK_BUILDER_PATH")
    assert find_command(None, "FLATPAK_BUILDER_PATH", "flatpak-builder") == "/usr/bin/flatpak-builder"


def test_find_command_falls_back_to_bare_name(monkeypatch):
    monkeypatch.setattr(flatpak.shutil, "which", lambda name: None)

    assert find_command(None, "FLATPAK_PATH", "flatpak") == "flatpak"
