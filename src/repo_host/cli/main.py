"""CLI entry point: parse args, load config, run the HTTP server."""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn

from repo_host.lib.config import BLAME_STRATEGIES, Config

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the server command."""
    parser = argparse.ArgumentParser(
        prog="repo-host",
        description="Serve bare Git repositories over HTTP.",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Interface to bind (default: 0.0.0.0).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (default: 3344).",
    )
    parser.add_argument(
        "--repos-root",
        default=None,
        help="Directory holding <user>/<name>.git repositories (default: ./repos).",
    )
    parser.add_argument(
        "--default-branch",
        default=None,
        help="Branch HEAD points at in newly created repositories.",
    )
    parser.add_argument(
        "--blame-strategy",
        choices=BLAME_STRATEGIES,
        default=None,
        help="How file nodes are attributed to commits.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="Enable debug logging.",
    )
    return parser


def configure_logging(verbose: bool) -> None:
    """Route library logs to stderr at INFO, or DEBUG when *verbose*."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = Config.from_env(
            overrides={
                "host": args.host,
                "port": args.port,
                "repos_root": args.repos_root,
                "default_branch": args.default_branch,
                "blame_strategy": args.blame_strategy,
                "verbose": args.verbose,
            }
        )
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.verbose)
    config.repos_root.mkdir(parents=True, exist_ok=True)

    from repo_host.server import app as app_module

    app_module.app.dependency_overrides[app_module.get_config] = lambda: config

    logger.info("Started server on %s:%d", config.host, config.port)
    logger.debug("Serving repositories from %s", config.repos_root.resolve())
    uvicorn.run(
        app_module.app,
        host=config.host,
        port=config.port,
        log_level="debug" if config.verbose else "info",
    )


if __name__ == "__main__":
    main()
