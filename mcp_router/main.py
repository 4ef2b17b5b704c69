"""
MCP Router - Main Entry Point

Route a single request from the command line, or serve the HTTP API.
"""

import asyncio
import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .core import Config, RoutingRequest, build_engine, set_engine
from .core.logging import level_from_name, setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-router",
        description="Route requests to the best-matching MCP server",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--query",
        type=str,
        help="Free-text request to route",
    )
    parser.add_argument(
        "--intent",
        type=str,
        help="Structured intent (use with --capabilities)",
    )
    parser.add_argument(
        "--capabilities",
        type=str,
        help="Comma-separated capability tags",
    )
    parser.add_argument(
        "--category",
        type=str,
        help="Provider category",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Run the HTTP API",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Include debug info and verbose logging",
    )
    return parser


def load_config(path: Optional[str]) -> Config:
    if path and Path(path).exists():
        return Config.load_from_file(path)
    return Config.load_from_env()


async def route_once(config: Config, request: RoutingRequest) -> int:
    engine = build_engine(config)
    response = await engine.handle(request)
    print(json.dumps(response.to_dict(), indent=2, default=str))
    return 0 if response.success else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    if args.debug:
        config.debug = True

    errors = config.validate()
    if errors:
        print("Configuration errors:")
        for error in errors:
            print(f"  - {error}")
        return 1

    setup_logger(level=level_from_name(config.log_level), debug=config.debug)

    if args.serve:
        import uvicorn
        from .api.server import app

        set_engine(build_engine(config))
        uvicorn.run(app, host=args.host, port=args.port)
        return 0

    capabilities = [c.strip() for c in (args.capabilities or "").split(",") if c.strip()]
    if not args.query and not (args.intent and capabilities):
        print("Nothing to route. Use --query, or --intent with --capabilities.")
        print("\nExample:")
        print('  mcp-router --query "weather in Seoul"')
        return 0

    request = RoutingRequest(
        query=args.query,
        intent=args.intent,
        capabilities=capabilities,
        category=args.category,
        return_debug_info=args.debug,
    )
    return asyncio.run(route_once(config, request))


def run():
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
