"""Shared fixtures: fake Node.js distribution trees, archives and a mock dist server."""

from __future__ import annotations

import hashlib
import http.server
import json
import os
import tarfile
import threading
import zipfile
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterator

import pytest

from nvs_core.archive import ArchiveFormat


def make_node_tree(base: Path, version: str, platform: str = "linux", arch: str = "x64") -> Path:
    """Build a directory shaped like an official Node.js distribution."""
    root = base / f"node-v{version}-{platform}-{arch}"
    if platform == "win":
        root.mkdir(parents=True)
        (root / "node.exe").write_bytes(b"MZ fake node")
        (root / "npm.cmd").write_text("@echo npm\r\n", encoding="utf-8")
        (root / "npx.cmd").write_text("@echo npx\r\n", encoding="utf-8")
        npm_bin = root / "node_modules" / "npm" / "bin"
        npm_bin.mkdir(parents=True)
        (npm_bin / "npm-cli.js").write_text("// npm\n", encoding="utf-8")
        return root

    bin_dir = root / "bin"
    bin_dir.mkdir(parents=True)
    node = bin_dir / "node"
    node.write_text(f"#!/bin/sh\necho v{version}\n", encoding="utf-8")
    os.chmod(node, 0o755)
    npm_bin = root / "lib" / "node_modules" / "npm" / "bin"
    npm_bin.mkdir(parents=True)
    for launcher in ("npm-cli.js", "npx-cli.js"):
        path = npm_bin / launcher
        path.write_text("#!/usr/bin/env node\n", encoding="utf-8")
        os.chmod(path, 0o644)
    os.symlink("../lib/node_modules/npm/bin/npm-cli.js", bin_dir / "npm")
    header = root / "include" / "node" / "node.h"
    header.parent.mkdir(parents=True)
    header.write_text("/* node */\n", encoding="utf-8")
    return root


def make_archive(tree: Path, dest: Path, fmt: ArchiveFormat) -> Path:
    """Pack ``tree`` (its folder name kept as the top-level entry) into ``dest``."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    if fmt is ArchiveFormat.ZIP:
        with zipfile.ZipFile(dest, "w") as zf:
            for path in sorted(tree.rglob("*")):
                arcname = path.relative_to(tree.parent).as_posix()
                if path.is_dir():
                    zf.writestr(arcname + "/", b"")
                else:
                    zf.write(path, arcname)
        return dest
    mode = "w:gz" if fmt is ArchiveFormat.TAR_GZIP else "w:xz"
    with tarfile.open(dest, mode) as tf:
        tf.add(tree, arcname=tree.name)
    return dest


def shasums_for(files: Dict[str, bytes]) -> bytes:
    lines = [f"{hashlib.sha256(data).hexdigest()}  {name}" for name, data in files.items()]
    return ("\n".join(lines) + "\n").encode("utf-8")


class _DistRequestHandler(http.server.BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def do_GET(self) -> None:
        state: MockDistServer = self.server.state  # type: ignore[attr-defined]
        path = self.path.split("?", 1)[0]
        state.hits[path] += 1
        route = state.routes.get(path)
        if route is None:
            self.send_response(404)
            self.send_header("Content-Length", "0")
            self.end_headers()
            return
        status, data = route
        self.send_response(status)
        self.send_header("Content-Type", "application/octet-stream")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, *_: Any) -> None:  # pragma: no cover - avoid noisy logs
        return


class MockDistServer:
    """Serve a tiny nodejs.org/dist lookalike from a background thread."""

    def __init__(self) -> None:
        self.routes: Dict[str, tuple[int, bytes]] = {}
        self.hits: Counter[str] = Counter()
        self.httpd = http.server.ThreadingHTTPServer(("127.0.0.1", 0), _DistRequestHandler)
        self.httpd.state = self  # type: ignore[attr-defined]
        self.thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)
        host, port = self.httpd.server_address[:2]
        self.url = f"http://{host}:{port}"

    def start(self) -> None:
        self.thread.start()

    def stop(self) -> None:
        self.httpd.shutdown()
        self.thread.join(timeout=2)
        self.httpd.server_close()

    def add(self, path: str, data: bytes, status: int = 200) -> None:
        self.routes[path] = (status, data)

    def add_json(self, path: str, payload: Any, status: int = 200) -> None:
        self.add(path, json.dumps(payload).encode("utf-8"), status)

    def publish_release(self, tmp_dir: Path, version: str, filename: str, fmt: ArchiveFormat) -> bytes:
        """Build an archive for ``filename`` and serve it with its SHASUMS256.txt."""
        platform, arch = filename.split("-")[2], filename.split("-")[3].split(".")[0]
        tree = make_node_tree(tmp_dir / f"tree-{filename}", version, platform, arch)
        archive = make_archive(tree, tmp_dir / "dist" / filename, fmt)
        data = archive.read_bytes()
        self.add(f"/v{version}/{filename}", data)
        self.add(f"/v{version}/SHASUMS256.txt", shasums_for({filename: data}))
        return data


SAMPLE_INDEX = [
    {"version": "v20.1.0", "date": "2023-05-03", "lts": False, "files": ["linux-x64"]},
    {"version": "v20.0.0", "date": "2023-04-18", "lts": False, "files": ["linux-x64"]},
    {"version": "v18.17.0", "date": "2023-07-18", "lts": "Hydrogen", "files": ["linux-x64"]},
    {"version": "v16.0.0", "date": "2021-04-20", "lts": False, "files": ["linux-x64"]},
]


@pytest.fixture
def dist_server() -> Iterator[MockDistServer]:
    server = MockDistServer()
    server.start()
    try:
        yield server
    finally:
        server.stop()
