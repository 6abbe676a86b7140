"""Command line surface for NVS."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from nvs_core import NvsApp, NvsError
from nvs_core.events import Event

CLI_VERSION = "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nvs",
        description="Node Version Switcher: install and switch Node.js versions without admin rights.",
    )
    parser.add_argument("--version", action="version", version=f"nvs v{CLI_VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("--mirror", help="release mirror base URL (default https://nodejs.org/dist)")
    parser.add_argument("--timeout", help="HTTP timeout in seconds")
    parser.add_argument(
        "--insecure",
        action="store_const",
        const="true",
        help="skip TLS certificate verification",
    )
    parser.add_argument(
        "--no-verify",
        dest="verify_checksums",
        action="store_const",
        const="false",
        help="skip SHASUMS256 verification of downloaded archives",
    )
    subparsers = parser.add_subparsers(dest="command")

    install = subparsers.add_parser("install", help="install a Node.js version")
    install.add_argument("version", help="18.17.0, 20, lts or latest")
    install.add_argument("--os", dest="target_os", help="target OS: windows, linux, darwin")
    install.add_argument("--arch", dest="target_arch", help="target arch: x64, arm64, x86")
    install.add_argument("--force", action="store_true", help="reinstall even if present")
    install.set_defaults(func=_handle_install)

    use = subparsers.add_parser("use", help="switch the active Node.js version")
    use.add_argument("version", help="installed version, major line, lts or latest")
    use.add_argument("--os", dest="target_os", help="target OS of a cross-platform install")
    use.add_argument("--arch", dest="target_arch", help="target arch of a cross-platform install")
    use.set_defaults(func=_handle_use)

    uninstall = subparsers.add_parser("uninstall", aliases=["remove", "rm"], help="remove a version")
    uninstall.add_argument("version", help="installed version key")
    uninstall.set_defaults(func=_handle_uninstall)

    list_cmd = subparsers.add_parser("list", aliases=["ls"], help="list installed versions")
    list_cmd.set_defaults(func=_handle_list)

    current = subparsers.add_parser("current", help="show the active version")
    current.set_defaults(func=_handle_current)

    remote = subparsers.add_parser("ls-remote", help="list versions available upstream")
    remote.add_argument("--lts", action="store_true", help="only LTS releases")
    remote.add_argument("--limit", type=int, default=20, help="how many releases to show")
    remote.set_defaults(func=_handle_remote)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s" if not args.verbose else "%(levelname)s %(name)s: %(message)s",
    )
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    try:
        app = NvsApp(
            overrides={
                "mirror": args.mirror,
                "timeout": args.timeout,
                "insecure": args.insecure,
                "verify_checksums": args.verify_checksums,
            }
        )
    except ValueError as exc:
        print(f"[nvs] error: {exc}")
        return 1
    try:
        return func(app, args)
    except NvsError as exc:
        print(f"[nvs:{args.command}] error: {exc}")
        return 1
    except KeyboardInterrupt:
        print(f"\n[nvs:{args.command}] interrupted")
        return 130


def _handle_install(app: NvsApp, args: argparse.Namespace) -> int:
    progress = _ProgressPrinter()
    app.events.on("download_progress", progress)
    try:
        installed = app.install(
            args.version,
            args.target_os,
            args.target_arch,
            force=args.force,
        )
    finally:
        app.events.off("download_progress", progress)
        progress.finish()
    print(f"[nvs:install] installed {installed.key}")
    print(f"[nvs:install] dir={installed.path.as_posix()}")
    if installed.is_cross_platform:
        print(f"[nvs:install] note: cross-platform install for {installed.platform_name}-{installed.arch_name}")
    return 0


def _handle_use(app: NvsApp, args: argparse.Namespace) -> int:
    installed = app.use(args.version, args.target_os, args.target_arch)
    print(f"[nvs:use] now using Node.js {installed.key}")
    print(f"[nvs:use] shims in {app.layout.current_bin_dir.as_posix()}")
    return 0


def _handle_uninstall(app: NvsApp, args: argparse.Namespace) -> int:
    if not app.uninstall(args.version):
        print(f"[nvs:uninstall] Node.js {args.version} is not installed")
        return 0
    print(f"[nvs:uninstall] removed {args.version}")
    return 0


def _handle_list(app: NvsApp, args: argparse.Namespace) -> int:
    versions = app.list()
    if not versions:
        print("[nvs:list] no versions installed")
        return 0
    current = app.current()
    for item in versions:
        marker = "*" if item.key == current else " "
        platform = f" ({item.platform_name}-{item.arch_name})" if item.is_cross_platform else ""
        suffix = " (current)" if item.key == current else ""
        print(f"[nvs:list] {marker} {item.version}{platform}{suffix}")
    return 0


def _handle_current(app: NvsApp, args: argparse.Namespace) -> int:
    current = app.current()
    if current is None:
        print("[nvs:current] no version currently selected")
        return 0
    print(f"[nvs:current] {current}")
    return 0


def _handle_remote(app: NvsApp, args: argparse.Namespace) -> int:
    entries = app.remote(lts_only=args.lts)
    for entry in entries[: max(args.limit, 0)]:
        lts = f" (LTS: {entry.codename})" if entry.codename else ""
        print(f"[nvs:ls-remote] {entry.version}{lts}")
    return 0


class _ProgressPrinter:
    """Render download_progress events as a single updating line."""

    def __init__(self) -> None:
        self._last = -1
        self._active = False

    def __call__(self, event: Event) -> None:
        total = event.payload.get("total")
        received = event.payload.get("received", 0)
        if not total:
            return
        percent = int(received * 100 / total)
        if percent == self._last:
            return
        self._last = percent
        self._active = True
        sys.stdout.write(f"\r[nvs:install] {percent:3d}% {received / 1048576:.1f}/{total / 1048576:.1f} MB")
        sys.stdout.flush()

    def finish(self) -> None:
        if self._active:
            sys.stdout.write("\n")
            self._active = False
