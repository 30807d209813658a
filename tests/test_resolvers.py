"""Tests for the local executable and payload resolvers."""

import os
import threading

import pytest

from relbisect.runner.resolvers import (
    ExecutableNotFoundError,
    InvalidPayloadError,
    LocalExecutableResolver,
    LocalPayloadResolver,
    ResolutionError,
    default_executable_name,
)

KNOWN = {"10.0.0", "11.0.0"}


def is_version(ref):
    return ref.lstrip("v") in KNOWN


def make_build(root, name, executable="electron"):
    directory = root / name
    directory.mkdir(parents=True)
    binary = directory / executable
    binary.write_text("", encoding="utf-8")
    return str(binary)


class TestLocalExecutableResolver:
    """Tests for LocalExecutableResolver.resolve()."""

    def test_existing_file_used_as_is(self, tmp_path):
        binary = make_build(tmp_path, "custom")
        resolver = LocalExecutableResolver(is_version, executable_name="electron")
        assert resolver.resolve(binary) == binary

    def test_directory_searched_for_executable(self, tmp_path):
        binary = make_build(tmp_path, "out", executable="app")
        resolver = LocalExecutableResolver(is_version, executable_name="app")
        assert resolver.resolve(str(tmp_path / "out")) == binary

    def test_directory_without_executable(self, tmp_path):
        (tmp_path / "empty").mkdir()
        resolver = LocalExecutableResolver(is_version, executable_name="app")
        with pytest.raises(ExecutableNotFoundError):
            resolver.resolve(str(tmp_path / "empty"))

    def test_unknown_name_rejected(self):
        resolver = LocalExecutableResolver(is_version)
        with pytest.raises(ExecutableNotFoundError, match="Unrecognized executable name"):
            resolver.resolve("99.0.0")

    def test_version_found_in_builds_dir(self, tmp_path):
        binary = make_build(tmp_path, "10.0.0")
        resolver = LocalExecutableResolver(
            is_version, builds_dir=str(tmp_path), executable_name="electron"
        )
        assert resolver.resolve("10.0.0") == binary
        assert resolver.resolve("v10.0.0") == binary

    def test_version_found_with_v_prefix_directory(self, tmp_path):
        binary = make_build(tmp_path, "v11.0.0")
        resolver = LocalExecutableResolver(
            is_version, builds_dir=str(tmp_path), executable_name="electron"
        )
        assert resolver.resolve("11.0.0") == binary

    def test_known_version_not_installed(self, tmp_path):
        resolver = LocalExecutableResolver(
            is_version, builds_dir=str(tmp_path), executable_name="electron"
        )
        with pytest.raises(ExecutableNotFoundError, match="not installed"):
            resolver.resolve("10.0.0")

    def test_installer_called_once_per_version(self, tmp_path):
        calls = []
        lock = threading.Lock()

        def installer(version):
            with lock:
                calls.append(version)
            return os.path.join(str(tmp_path), version, "electron")

        resolver = LocalExecutableResolver(is_version, installer=installer)
        results = []
        threads = [
            threading.Thread(target=lambda: results.append(resolver.resolve("10.0.0")))
            for _ in range(5)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(5)

        assert calls == ["10.0.0"]
        assert set(results) == {os.path.join(str(tmp_path), "10.0.0", "electron")}

    def test_installer_errors_wrapped(self):
        def installer(version):
            raise IOError("download failed")

        resolver = LocalExecutableResolver(is_version, installer=installer)
        with pytest.raises(ExecutableNotFoundError, match="download failed"):
            resolver.resolve("11.0.0")

    def test_installer_resolution_errors_propagate(self):
        class Custom(ResolutionError):
            pass

        def installer(version):
            raise Custom("nope")

        resolver = LocalExecutableResolver(is_version, installer=installer)
        with pytest.raises(Custom):
            resolver.resolve("11.0.0")

    def test_failed_resolution_not_memoized(self, tmp_path):
        resolver = LocalExecutableResolver(
            is_version, builds_dir=str(tmp_path), executable_name="electron"
        )
        with pytest.raises(ExecutableNotFoundError):
            resolver.resolve("10.0.0")
        binary = make_build(tmp_path, "10.0.0")
        assert resolver.resolve("10.0.0") == binary


@pytest.mark.parametrize("os_platform, expected", [
    ("linux", "electron"),
    ("win32", "electron.exe"),
    ("darwin", os.path.join("Electron.app", "Contents", "MacOS", "Electron")),
])
def test_default_executable_name(os_platform, expected):
    assert default_executable_name(os_platform) == expected


class TestLocalPayloadResolver:
    """Tests for LocalPayloadResolver.resolve()."""

    def test_directory_resolves_to_entry(self, tmp_path):
        (tmp_path / "main.js").write_text("", encoding="utf-8")
        payload = LocalPayloadResolver().resolve(str(tmp_path))
        assert payload.entry_path == str(tmp_path / "main.js")
        assert payload.source == str(tmp_path)

    def test_custom_entry_name(self, tmp_path):
        (tmp_path / "index.py").write_text("", encoding="utf-8")
        payload = LocalPayloadResolver("index.py").resolve(tmp_path)
        assert payload.entry_path == str(tmp_path / "index.py")

    def test_file_is_its_own_entry(self, tmp_path):
        entry = tmp_path / "test.js"
        entry.write_text("", encoding="utf-8")
        assert LocalPayloadResolver().resolve(str(entry)).entry_path == str(entry)

    def test_directory_without_entry(self, tmp_path):
        with pytest.raises(InvalidPayloadError):
            LocalPayloadResolver().resolve(str(tmp_path))

    @pytest.mark.parametrize("source", [None, 42, {"gist": "abc"}])
    def test_invalid_source_type(self, source):
        with pytest.raises(InvalidPayloadError):
            LocalPayloadResolver().resolve(source)

    def test_missing_path(self, tmp_path):
        with pytest.raises(InvalidPayloadError):
            LocalPayloadResolver().resolve(str(tmp_path / "missing"))
