from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

from aiohttp import web

from asset_site.config import YamlConfigLoader
from asset_site.config.models import AppConfig, ConfigLoadRequest
from asset_site.indexer.generator import IndexGenerator
from asset_site.logging import init_logging
from asset_site.worker.server import create_app

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="asset-site", description="Static asset site tooling")
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to config.yaml (default: config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    subparsers.add_parser("generate-indexes", help="Write a listing page into every directory")
    subparsers.add_parser("generate-root-index", help="Write the root file index and size audit")
    subparsers.add_parser("build", help="Run generate-indexes then generate-root-index")

    serve_parser = subparsers.add_parser("serve", help="Run the caching worker as a reverse proxy")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: from config)")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port (default: from config)")
    serve_parser.add_argument(
        "--run-seconds",
        type=float,
        default=None,
        help="Serve for N seconds then exit (useful for smoke testing).",
    )

    return parser


async def _load_config(args: argparse.Namespace) -> AppConfig:
    loader = YamlConfigLoader()
    request = ConfigLoadRequest(
        yaml_path=args.config,
    )
    return await loader.load(request)


def _generate(config: AppConfig, *, listings: bool, root: bool) -> None:
    generator = IndexGenerator(config.indexer)
    if listings:
        logger.info("Generating directory indexes.")
        written = generator.generate_directory_indexes()
        logger.info("Directory indexes generated. count=%d", len(written))
    if root:
        generator.generate_root_index()
        logger.info("Root index generated.")


async def _serve(config: AppConfig, *, host: Optional[str], port: Optional[int], run_seconds: Optional[float]) -> None:
    app = create_app(config.worker)
    runner = web.AppRunner(app)
    await runner.setup()
    bind_host = host or config.server.host
    bind_port = port if port is not None else config.server.port
    site = web.TCPSite(runner, bind_host, bind_port)
    try:
        await site.start()
        logger.info(
            "Serving caching worker. bind=%s:%s origin=%s upstream=%s",
            bind_host,
            bind_port,
            config.worker.origin,
            config.worker.upstream_url,
        )
        if run_seconds is not None:
            await asyncio.sleep(run_seconds)
        else:
            await asyncio.Event().wait()
    finally:
        await runner.cleanup()


async def _main_async() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    config = await _load_config(args)
    init_logging(config.logging)

    if args.command == "generate-indexes":
        _generate(config, listings=True, root=False)
    elif args.command == "generate-root-index":
        _generate(config, listings=False, root=True)
    elif args.command == "build":
        _generate(config, listings=True, root=True)
    elif args.command == "serve":
        await _serve(config, host=args.host, port=args.port, run_seconds=args.run_seconds)


def main() -> None:
    try:
        asyncio.run(_main_async())
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")


if __name__ == "__main__":
    main()
