"""Entry point for embercli-mcp server."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from .build import AppManager, EmberCliError
from .config import Configuration
from .server import create_server


def configure_logging() -> None:
    """Configure logging based on environment."""
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def parse_app_spec(spec: str) -> tuple[str, str | None]:
    """Split ``NAME[=PATH]`` into name and optional app path."""
    name, sep, path = spec.partition("=")
    name = name.strip()
    if not name:
        raise argparse.ArgumentTypeError(f"Invalid app spec: {spec!r}")
    return name, (path.strip() or None) if sep else None


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="EmberCLI MCP Server - build and watch Ember CLI apps via MCP"
    )
    parser.add_argument(
        "--root",
        type=str,
        default=None,
        help="Host application root. App paths are relative to it. Defaults to CWD.",
    )
    parser.add_argument(
        "--environment",
        type=str,
        default=os.environ.get("EMBER_CLI_ENV", "development"),
        help="Host environment (production builds copy index.html into public/_apps).",
    )
    parser.add_argument(
        "--app",
        dest="apps",
        action="append",
        type=parse_app_spec,
        default=[],
        metavar="NAME[=PATH]",
        help="Ember app to manage, optionally with its path. Repeatable.",
    )
    parser.add_argument(
        "--build-timeout",
        type=float,
        default=None,
        help="Seconds to wait for the first watch build (default 5, EMBER_CLI_BUILD_TIMEOUT).",
    )
    parser.add_argument(
        "--watcher",
        type=str,
        default=None,
        help="Watcher backend passed to `ember build --watcher`.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--watch",
        action="store_true",
        default=False,
        help="Start watch builds for every app and wait for the first build before serving.",
    )
    mode.add_argument(
        "--install",
        action="store_true",
        default=False,
        help="Install dependencies for every app and exit.",
    )
    mode.add_argument(
        "--compile",
        action="store_true",
        default=False,
        help="Compile every app once and exit.",
    )
    return parser.parse_args(argv)


def build_manager(args: argparse.Namespace) -> AppManager:
    """Create the app manager from parsed arguments and the environment."""
    configuration = Configuration.from_env()
    if args.build_timeout is not None:
        configuration.build_timeout = args.build_timeout
    if args.watcher:
        configuration.watcher = args.watcher

    manager = AppManager(
        host_root=Path(args.root or os.getcwd()).resolve(),
        environment=args.environment,
        configuration=configuration,
    )
    for name, path in args.apps:
        options = {"path": path} if path else {}
        manager.configure_app(name, **options)
    return manager


async def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    configure_logging()
    logger = logging.getLogger(__name__)

    args = parse_args(argv)
    manager = build_manager(args)

    if not manager.apps:
        logger.warning("No apps configured; use --app NAME[=PATH]")

    if args.install or args.compile:
        try:
            for app in manager.apps:
                if args.install:
                    app.install_dependencies()
                else:
                    app.compile()
        except EmberCliError as e:
            logger.error(str(e))
            sys.exit(1)
        return

    logger.info(
        f"Starting EmberCLI MCP Server (root: {manager.host_root}, "
        f"environment: {manager.environment})..."
    )

    try:
        if args.watch:
            for app in manager.apps:
                app.run()
            for app in manager.apps:
                await asyncio.to_thread(app.wait)

        mcp = create_server(manager)
        await mcp.run_stdio_async()
    except Exception:
        logger.exception("Server error")
        raise
    finally:
        manager.stop_all()
        logger.info("Server stopped")


def run() -> None:
    """Run the server."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
