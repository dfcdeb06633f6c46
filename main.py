# ──────────────────────────────────────────────────────────────────────────────
# File: main.py
# Purpose: `docmirror` command-line entrypoint (init / add / sync / status / diff)
#
# Guarantees
#   • Exit code 0 only when every selected source succeeded.
#   • Every failure line starts with the source name it belongs to.
#   • Settings (root, token, concurrency) are resolved once and passed down.
#
# Notes
#   • Keep this file small and boring; complex logic belongs in services/.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

# ── Stdlib --------------------------------------------------------------------
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

# ── Local ---------------------------------------------------------------------
from services.config import init_config, read_config, read_or_create_config, select_sources
from services.errors import DocMirrorError, format_error
from services.github_client import GitHubClient
from services.settings import CONFIG_FILENAME, Settings, load_settings
from services.sync import add_source, sync_sources
from services.upstream import BEHIND, FAILED, NEVER_SYNCED, check_all, diff_all, short_sha

__version__ = "0.1.0"

logger = logging.getLogger("docmirror.cli")

ClientFactory = Callable[[Settings], GitHubClient]


def _default_client(settings: Settings) -> GitHubClient:
    return GitHubClient(settings.github_token, timeout=settings.http_timeout)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docmirror",
        description="Keep AGENTS.md docs in sync with upstream repos",
        epilog="Environment:\n  GITHUB_TOKEN  GitHub token for higher rate limits",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--root", type=Path, help="Project root (default: current directory).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr.")

    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init", help=f"Create {CONFIG_FILENAME}")

    p_add = sub.add_parser("add", help="Add a docs source")
    p_add.add_argument("source", help="GitHub tree URL or owner/repo")
    p_add.add_argument("-n", "--name", help="Short name for this source")
    p_add.add_argument("--path", help="Docs directory inside the repo (owner/repo input only; default: docs)")
    p_add.add_argument("--branch", help="Branch to track (default: from URL, else the repo default branch)")

    p_sync = sub.add_parser("sync", help="Download docs + regenerate the AGENTS.md index")
    p_sync.add_argument("name", nargs="?", help="Optional source name to sync")

    p_status = sub.add_parser("status", help="Check if local docs are behind upstream")
    p_status.add_argument("name", nargs="?", help="Optional source name to check")

    p_diff = sub.add_parser("diff", help="Show what changed upstream since last sync")
    p_diff.add_argument("name", nargs="?", help="Optional source name to diff")

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _cmd_init(settings: Settings) -> int:
    if init_config(settings.project_root):
        print(f"Created {CONFIG_FILENAME}")
    else:
        print(f"{CONFIG_FILENAME} already exists")
    return 0


async def _cmd_add(settings: Settings, args: argparse.Namespace, make_client: ClientFactory) -> int:
    config = read_or_create_config(settings.project_root)
    async with make_client(settings) as client:
        result = await add_source(
            config,
            args.source,
            client=client,
            settings=settings,
            name=args.name,
            path=args.path,
            branch=args.branch,
        )
    print(f"✓ {result.source.name}: added and synced {result.file_count} files ({short_sha(result.commit)})")
    return 0


async def _cmd_sync(settings: Settings, name: Optional[str], make_client: ClientFactory) -> int:
    config = read_config(settings.project_root)
    async with make_client(settings) as client:
        report = await sync_sources(config, client=client, settings=settings, name=name)
    for result in report.results:
        if result.ok:
            print(f"✓ {result.name}: synced {result.file_count} files ({short_sha(result.commit)})")
        else:
            print(f"{result.name}: {format_error(result.error)}", file=sys.stderr)
    return 0 if report.ok else 1


async def _cmd_status(settings: Settings, name: Optional[str], make_client: ClientFactory) -> int:
    sources = select_sources(read_config(settings.project_root), name)
    async with make_client(settings) as client:
        statuses = await check_all(sources, client)
    for st in statuses:
        if st.state == NEVER_SYNCED:
            print(f"{st.name}: never synced")
        elif st.state == FAILED:
            print(f"{st.name}: {format_error(st.error)}", file=sys.stderr)
        elif st.state == BEHIND:
            print(
                f"{st.name}: behind upstream "
                f"(local: {short_sha(st.local_commit)} → remote: {short_sha(st.remote_commit)})"
            )
        else:
            print(f"{st.name}: up to date ({short_sha(st.local_commit)})")
    return 0 if all(st.ok for st in statuses) else 1


async def _cmd_diff(settings: Settings, name: Optional[str], make_client: ClientFactory) -> int:
    sources = select_sources(read_config(settings.project_root), name)
    async with make_client(settings) as client:
        diffs = await diff_all(sources, client)
    had_error = False
    for d in diffs:
        if d.error is not None:
            had_error = True
            print(f"{d.name}: {format_error(d.error)}", file=sys.stderr)
        elif not d.synced:
            print(f"{d.name}: never synced, run 'docmirror sync'")
        elif not d.files:
            print(f"{d.name}: no changes")
        else:
            print(f"{d.name}:")
            for f in d.files:
                print(f"  {(f.status + ':').ljust(10)} {f.path}")
    return 1 if had_error else 0


def main(argv: Optional[List[str]] = None, *, make_client: ClientFactory = _default_client) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        settings = load_settings(args.root)
        if args.cmd == "init":
            return _cmd_init(settings)
        if args.cmd == "add":
            return asyncio.run(_cmd_add(settings, args, make_client))
        if args.cmd == "sync":
            return asyncio.run(_cmd_sync(settings, args.name, make_client))
        if args.cmd == "status":
            return asyncio.run(_cmd_status(settings, args.name, make_client))
        return asyncio.run(_cmd_diff(settings, args.name, make_client))
    except DocMirrorError as exc:
        logger.debug("command %s failed", args.cmd, exc_info=True)
        print(format_error(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
