from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from .builder import BuildResult, generate
from .config import DEFAULT_CONFIG_PATH, SiteConfig, load_config
from .errors import BlogError
from .fingerprint import fingerprint
from .serve import serve
from .watch import Watcher

MAX_POLL_MS = 60_000


def build_site(base_dir: Path, config: SiteConfig) -> BuildResult:
    return generate(base_dir, config.generate_options())


def cmd_build(args: argparse.Namespace, config: SiteConfig) -> int:
    start = time.perf_counter()
    result = build_site(args.base_dir, config)
    elapsed = time.perf_counter() - start
    print(f"Generated site in {config.dist_dir}/ ({len(result.posts)} posts, {len(result.drafts)} drafts skipped)")
    print(f"Build completed in {elapsed:.2f}s.")
    return 0


def cmd_fingerprint(args: argparse.Namespace, config: SiteConfig) -> int:
    value = fingerprint(args.base_dir, config.watch_targets(args.config))
    print(f"{value:016x}")
    return 0


def cmd_serve(args: argparse.Namespace, config: SiteConfig) -> int:
    result = build_site(args.base_dir, config)
    print(f"Serving {config.dist_dir}/ at http://{args.host}:{args.port}/")
    if args.watch:
        targets = config.watch_targets(args.config)

        def rebuild() -> None:
            # Pick up edits to the config file as well as content.
            build_site(args.base_dir, load_config(args.base_dir / args.config))

        watcher = Watcher(
            rebuild=rebuild,
            compute_fingerprint=lambda: fingerprint(args.base_dir, targets),
            poll_interval=args.poll_ms / 1000,
        )
        try:
            watcher.start_thread()
        except (BlogError, OSError) as exc:
            print(f"warning: watcher disabled ({exc})", file=sys.stderr)
        else:
            print(f"Watching for changes (polling every {args.poll_ms}ms)")
    serve(result.output_dir, args.host, args.port)
    return 0


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mdblog", description="Markdown blog generator.")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help="Site config file (YAML/TOML/JSON), relative to the base directory.",
    )
    parser.add_argument("--base-dir", type=Path, default=Path("."), help="Project directory.")
    sub = parser.add_subparsers(dest="command", metavar="command")

    build = sub.add_parser("build", help="Generate the site into the output directory.")
    build.set_defaults(handler=cmd_build)

    fp = sub.add_parser("fingerprint", help="Print the fingerprint of the watched inputs.")
    fp.set_defaults(handler=cmd_fingerprint)

    serve_parser = sub.add_parser("serve", help="Generate, then serve the site locally.")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Address to bind.")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to bind.")
    serve_parser.add_argument(
        "--watch",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Rebuild when inputs change.",
    )
    serve_parser.add_argument(
        "--poll-ms",
        type=int,
        default=500,
        help=f"Watch poll interval in milliseconds (1-{MAX_POLL_MS}).",
    )
    serve_parser.set_defaults(handler=cmd_serve)

    help_parser = sub.add_parser("help", help="Show this message.")
    help_parser.set_defaults(handler=None)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = make_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_usage(sys.stderr)
        return 2
    if args.handler is None:
        parser.print_help()
        return 0
    if args.command == "serve" and not 0 < args.poll_ms <= MAX_POLL_MS:
        parser.error(f"--poll-ms must be between 1 and {MAX_POLL_MS}")

    try:
        config = load_config(args.base_dir / args.config)
        return args.handler(args, config)
    except (BlogError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
