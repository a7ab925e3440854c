"""Command-line interface for Storefront MCP Server."""

import argparse
import asyncio
import sys


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Storefront MCP Server - variant pricing and cart totals for a storefront"
    )
    parser.add_argument(
        "--mode",
        choices=["stdio", "http"],
        default="stdio",
        help="Server mode: stdio (for MCP clients) or http (REST API)",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="HTTP server host (only for http mode, default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="HTTP server port (only for http mode, default: 8000)",
    )
    return parser


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        if args.mode == "stdio":
            # Run MCP server via stdio
            from .server import main as server_main

            asyncio.run(server_main())
        elif args.mode == "http":
            # Run HTTP server
            from .http_server import run_http_server

            print(f"Starting Storefront HTTP Server on {args.host}:{args.port}", file=sys.stderr)
            print(f"API documentation available at http://{args.host}:{args.port}/docs", file=sys.stderr)
            run_http_server(host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\nShutting down...", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    main()
