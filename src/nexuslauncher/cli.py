"""Command-line interface for nexuslauncher.

Provides the main entry point for serving the control page, running a
setup directly in the terminal, or pinging a running server.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PING_URL = "http://localhost:3000"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="nexuslauncher",
        description="Install and launch a Nexus network node over HTTP",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/nexuslauncher.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument("--host", type=str, default=None, help="Override the listen host")
    serve_parser.add_argument("--port", type=int, default=None, help="Override the listen port")

    run_parser = subparsers.add_parser("run", help="Run the setup in this terminal")
    run_parser.add_argument(
        "--node-id", type=str, default=None,
        help="Node ID to start (default: NEXUS_NODE_ID or the configured fallback)",
    )

    ping_parser = subparsers.add_parser("ping", help="Query /ping on a running server")
    ping_parser.add_argument(
        "--url", type=str, default=DEFAULT_PING_URL,
        help=f"Base URL of the server (default: {DEFAULT_PING_URL})",
    )
    ping_parser.add_argument("--timeout", type=float, default=10.0)

    return parser.parse_args(argv)


async def _run_setup(settings) -> int:
    """Run the plan and print each event; 0 on complete, 1 on error."""
    from nexuslauncher.domain.models import TerminalEvent
    from nexuslauncher.orchestrator.plan import Orchestrator, node_launcher

    orchestrator = Orchestrator(
        node=settings.node,
        launcher=node_launcher(settings.launch),
        buffer_capacity=settings.relay.buffer_capacity,
    )
    exit_code = 1
    async for event in orchestrator.run():
        if isinstance(event, TerminalEvent):
            sys.stdout.write(event.output)
            sys.stdout.flush()
        else:
            print(f"[{event.type}] {event.message}")
        if event.type == "complete":
            exit_code = 0
    return exit_code


async def _ping(url: str, timeout: float) -> int:
    """Fetch /ping from a running server and print the snapshot."""
    import httpx

    try:
        async with httpx.AsyncClient(base_url=url.rstrip("/"), timeout=timeout) as client:
            resp = await client.get("/ping")
            resp.raise_for_status()
    except httpx.HTTPError as e:
        print(f"Ping failed: {e}", file=sys.stderr)
        return 1

    data = resp.json()
    print(f"Status:  {data.get('status')}")
    print(f"Message: {data.get('message')}")
    print(f"Uptime:  {data.get('uptime', 0):.0f}s")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the nexuslauncher CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from nexuslauncher.config.settings import load_settings
    from nexuslauncher.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        from nexuslauncher.server.app import create_app
        import uvicorn

        host = args.host or settings.server.host
        port = args.port or settings.server.port
        logger.info("Starting server on %s:%d", host, port)
        uvicorn.run(create_app(settings), host=host, port=port)

    elif args.command == "run":
        if args.node_id:
            settings.node.node_id = args.node_id
        logger.info("Running setup for node %s", settings.node.node_id)
        sys.exit(asyncio.run(_run_setup(settings)))

    elif args.command == "ping":
        sys.exit(asyncio.run(_ping(args.url, args.timeout)))


if __name__ == "__main__":
    main()
