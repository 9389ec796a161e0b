import os

import pytest

from flatpak_bundler.framework.errors import StagingError
from flatpak_bundler.framework.options import BundleOptions
from flatpak_bundler.framework.staging import (
    app_link_target,
    build_files_path,
    copy_files,
    create_symlinks,
)


@pytest.fixture
def options(tmp_path) -> BundleOptions:
    resolved, _warnings = BundleOptions.from_dict({"working-dir": str(tmp_path / "work")})
    return resolved


def test_copy_file_into_directory_destination(tmp_path, monkeypatch, options, quiet_logger):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.txt").write_text("payload", encoding="utf-8")

    written = copy_files(options, {"files": [["a.txt", "sub/"]]}, logger=quiet_logger)

    staged = os.path.join(options.build_dir, "files", "sub", "a.txt")
    assert written == [staged]
    with open(staged, encoding="utf-8") as handle:
        assert handle.read() == "payload"


def test_copy_file_to_exact_path(tmp_path, monkeypatch, options, quiet_logger):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.txt").write_text("payload", encoding="utf-8")

    copy_files(options, {"files": [["a.txt", "share/doc/renamed.txt"]]}, logger=quiet_logger)

    staged = os.path.join(options.build_dir, "files", "share", "doc", "renamed.txt")
    with open(staged, encoding="utf-8") as handle:
        assert handle.read() == "payload"


def test_copy_overwrites_existing_file(tmp_path, options, quiet_logger):
    source = tmp_path / "a.txt"
    source.write_text("new", encoding="utf-8")
    staged = os.path.join(options.build_dir, "files", "a.txt")
    os.makedirs(os.path.dirname(staged))
    with open(staged, "w", encoding="utf-8") as handle:
        handle.write("old")

    copy_files(options, {"files": [[str(source), "a.txt"]]}, logger=quiet_logger)

    with open(staged, encoding="utf-8") as handle:
        assert handle.read() == "new"


def test_copy_directory_recursively(tmp_path, options, quiet_logger):
    tree = tmp_path / "assets"
    (tree / "icons").mkdir(parents=True)
    (tree / "icons" / "app.svg").write_text("<svg/>", encoding="utf-8")
    (tree / "readme").write_text("hi", encoding="utf-8")

    copy_files(options, {"files": [[str(tree), "share/assets/"]]}, logger=quiet_logger)

    root = os.path.join(options.build_dir, "files", "share", "assets")
    assert os.path.isfile(os.path.join(root, "icons", "app.svg"))
    assert os.path.isfile(os.path.join(root, "readme"))


def test_absolute_destination_stays_inside_build_tree(options):
    assert build_files_path(options, "/bin/tool") == os.path.join(options.build_dir, "files", "bin", "tool")


def test_copy_collects_every_failure(tmp_path, options, quiet_logger):
    (tmp_path / "ok.txt").write_text("ok", encoding="utf-8")
    files = [
        [str(tmp_path / "missing-1"), "one"],
        [str(tmp_path / "ok.txt"), "ok.txt"],
        [str(tmp_path / "missing-2"), "two"],
    ]

    with pytest.raises(StagingError) as excinfo:
        copy_files(options, {"files": files}, logger=quiet_logger)

    error = excinfo.value
    assert "2 of 3" in str(error)
    assert [item for item, _exc in error.failures] == [files[0], files[2]]
    assert isinstance(error.__cause__, FileNotFoundError)
    # Successful copies are not rolled back.
    assert os.path.isfile(os.path.join(options.build_dir, "files", "ok.txt"))


def test_symlink_points_into_app_prefix(options, quiet_logger):
    create_symlinks(options, {"symlinks": [["bin/foo", "foo-link"]]}, logger=quiet_logger)

    link = os.path.join(options.build_dir, "files", "foo-link")
    assert os.path.islink(link)
    assert os.readlink(link) == "/app/bin/foo"


def test_symlink_creates_parent_directories(options, quiet_logger):
    create_symlinks(options, {"symlinks": [["lib/libfoo.so.1", "lib/deep/libfoo.so"]]}, logger=quiet_logger)

    link = os.path.join(options.build_dir, "files", "lib", "deep", "libfoo.so")
    assert os.readlink(link) == "/app/lib/libfoo.so.1"


def test_symlink_failures_propagate(options, quiet_logger):
    existing = os.path.join(options.build_dir, "files", "taken")
    os.makedirs(os.path.dirname(existing))
    with open(existing, "w", encoding="utf-8") as handle:
        handle.write("")

    with pytest.raises(StagingError, match="Creating symlinks failed") as excinfo:
        create_symlinks(options, {"symlinks": [["bin/foo", "taken"]]}, logger=quiet_logger)

    assert isinstance(excinfo.value.__cause__, FileExistsError)


def test_empty_lists_are_a_no_op(options, quiet_logger):
    assert copy_files(options, {"files": []}, logger=quiet_logger) == []
    assert create_symlinks(options, {"symlinks": []}, logger=quiet_logger) == []


@pytest.mark.parametrize(
    "target, expected",
    [("bin/foo", "/app/bin/foo"), ("/bin/foo", "/app/bin/foo"), ("share/../lib/x", "/app/lib/x")],
)
def test_app_link_target(target, expected):
    assert app_link_target(target) == expected
