"""Tests for the current-version pointer and shim generation."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from nvs_core.activation import (
    ActivationSwitch,
    FilePointerStorage,
    LinkPointerStorage,
    ShimWriter,
    default_bin_path,
    make_pointer_storage,
)
from nvs_core.errors import InvalidInstallationError, NotInstalledError, NvsIOError
from nvs_core.events import EventBus
from nvs_core.layout import NvsLayout


class MemoryPointer:
    """In-memory pointer storage that records every write."""

    def __init__(self) -> None:
        self.key: str | None = None
        self.writes: list[str] = []

    def read(self) -> str | None:
        return self.key

    def write(self, key: str, target: Path) -> None:
        self.writes.append(key)
        self.key = key

    def clear(self) -> None:
        self.key = None


@pytest.fixture
def layout(tmp_path: Path) -> NvsLayout:
    layout = NvsLayout.from_root(tmp_path / ".nvs")
    layout.ensure()
    return layout


def _install(layout: NvsLayout, key: str, binaries: tuple[str, ...] = ("node", "npm", "npx")) -> Path:
    bin_dir = layout.version_dir(key) / "bin"
    bin_dir.mkdir(parents=True)
    for name in binaries:
        path = bin_dir / name
        path.write_text(f"#!/bin/sh\necho {key}\n", encoding="utf-8")
        os.chmod(path, 0o755)
    return bin_dir


def _switch(layout: NvsLayout, storage: object, events: EventBus | None = None) -> ActivationSwitch:
    return ActivationSwitch(
        layout,
        storage,  # type: ignore[arg-type]
        shims=ShimWriter(layout.current_bin_dir, windows=False),
        events=events,
    )


def test_use_writes_pointer_and_shims(layout: NvsLayout) -> None:
    bin_dir = _install(layout, "20.1.0")
    pointer = MemoryPointer()
    events = EventBus()
    activated: list[dict] = []
    events.on("activated", lambda event: activated.append(event.payload))
    switch = _switch(layout, pointer, events)

    assert switch.use("20.1.0") == bin_dir

    assert switch.current() == "20.1.0"
    shims = sorted(p.name for p in layout.current_bin_dir.iterdir())
    assert shims == ["node", "npm", "npx"]
    assert (layout.current_bin_dir / "node").resolve() == (bin_dir / "node").resolve()
    assert activated[0]["key"] == "20.1.0" and activated[0]["previous"] is None


def test_use_not_installed_keeps_previous(layout: NvsLayout) -> None:
    _install(layout, "20.1.0")
    pointer = MemoryPointer()
    switch = _switch(layout, pointer)
    switch.use("20.1.0")

    with pytest.raises(NotInstalledError) as excinfo:
        switch.use("99.0.0")

    assert excinfo.value.key == "99.0.0"
    assert str(excinfo.value) == "version 99.0.0 is not installed"
    assert switch.current() == "20.1.0"
    assert pointer.writes == ["20.1.0"]
    assert (layout.current_bin_dir / "node").exists()


def test_use_without_bin_dir_is_invalid(layout: NvsLayout) -> None:
    layout.version_dir("18.0.0").mkdir(parents=True)
    pointer = MemoryPointer()
    switch = _switch(layout, pointer)

    with pytest.raises(InvalidInstallationError):
        switch.use("18.0.0")
    assert pointer.writes == []


def test_shim_set_is_replaced_on_switch(layout: NvsLayout) -> None:
    _install(layout, "20.1.0")
    old_bin = _install(layout, "0.10.0", binaries=("node", "npm"))
    switch = _switch(layout, MemoryPointer())

    switch.use("20.1.0")
    (layout.current_bin_dir / "stale").write_text("", encoding="utf-8")
    switch.use("0.10.0")

    names = sorted(p.name for p in layout.current_bin_dir.iterdir())
    assert names == ["node", "npm"]
    assert (layout.current_bin_dir / "node").resolve() == (old_bin / "node").resolve()


def test_clear_removes_pointer_and_shims(layout: NvsLayout) -> None:
    _install(layout, "20.1.0")
    events = EventBus()
    cleared: list[dict] = []
    events.on("deactivated", lambda event: cleared.append(event.payload))
    switch = _switch(layout, MemoryPointer(), events)
    switch.use("20.1.0")

    switch.clear()

    assert switch.current() is None
    assert not layout.current_bin_dir.exists()
    assert cleared == [{"key": "20.1.0"}]


def test_link_storage_round_trip(layout: NvsLayout) -> None:
    _install(layout, "20.1.0")
    _install(layout, "18.17.0")
    storage = LinkPointerStorage(layout.current, windows=False)
    assert storage.read() is None

    storage.write("20.1.0", layout.version_dir("20.1.0"))
    assert layout.current.is_symlink()
    assert storage.read() == "20.1.0"

    storage.write("18.17.0", layout.version_dir("18.17.0"))
    assert storage.read() == "18.17.0"

    storage.clear()
    assert storage.read() is None
    assert not layout.current.exists()


def test_link_storage_ignores_dangling_and_plain_entries(layout: NvsLayout) -> None:
    storage = LinkPointerStorage(layout.current, windows=False)
    os.symlink(layout.version_dir("gone"), layout.current)
    assert storage.read() is None
    layout.current.unlink()

    layout.current.write_text("20.1.0", encoding="utf-8")
    assert storage.read() is None


def test_link_storage_refuses_real_directory(layout: NvsLayout) -> None:
    layout.current.mkdir()
    storage = LinkPointerStorage(layout.current, windows=False)
    with pytest.raises(NvsIOError):
        storage.clear()


def test_file_storage_round_trip(layout: NvsLayout) -> None:
    _install(layout, "20.1.0")
    storage = FilePointerStorage(layout.current, layout.versions_dir)

    storage.write("20.1.0", layout.version_dir("20.1.0"))
    assert layout.current.read_text(encoding="utf-8").strip() == "20.1.0"
    assert storage.read() == "20.1.0"

    layout.current.write_text("7.0.0\n", encoding="utf-8")
    assert storage.read() is None

    storage.clear()
    assert not layout.current.exists()


def test_make_pointer_storage(layout: NvsLayout) -> None:
    assert isinstance(make_pointer_storage("file", layout), FilePointerStorage)
    assert isinstance(make_pointer_storage("link", layout), LinkPointerStorage)
    with pytest.raises(ValueError):
        make_pointer_storage("registry", layout)


def test_windows_shims_are_batch_files(tmp_path: Path) -> None:
    version_dir = tmp_path / "20.1.0-win-x64"
    version_dir.mkdir()
    for name in ("node.exe", "npm.cmd", "npx.cmd"):
        (version_dir / name).write_bytes(b"")
    writer = ShimWriter(tmp_path / "current-bin", windows=True)

    written = writer.regenerate(default_bin_path(version_dir, "20.1.0-win-x64"))

    assert sorted(p.name for p in written) == ["node.bat", "npm.bat", "npx.bat"]
    body = (tmp_path / "current-bin" / "npm.bat").read_text(encoding="utf-8")
    assert str(version_dir / "npm.cmd") in body
    assert body.startswith("@echo off")


def test_default_bin_path() -> None:
    root = Path("/opt/nvs/versions")
    assert default_bin_path(root / "20.1.0-linux-x64", "20.1.0-linux-x64") == root / "20.1.0-linux-x64" / "bin"
    assert default_bin_path(root / "20.1.0-win-x64", "20.1.0-win-x64") == root / "20.1.0-win-x64"
