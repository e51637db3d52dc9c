"""MCP stdio server exposing the Gmail tools."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import Server

from . import __version__
from .auth import ConfigurationError, build_gmail_service
from .client import GmailClient
from .config import Settings
from .tools import TOOLS, invoke

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp-gmail"


class ToolCallError(Exception):
    """Carries an error envelope's text back through the MCP handler."""


def create_server(client: GmailClient) -> Server:
    server = Server(SERVER_NAME, version=__version__)
    # one tool call at a time; the Google HTTP transport is not thread-safe
    lock = asyncio.Lock()

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=spec.name, description=spec.description, inputSchema=spec.input_schema)
            for spec in TOOLS.values()
        ]

    # Arguments are checked by the tool handlers so that bad input gets the
    # same "Error: ..." envelope as every other failure.
    @server.call_tool(validate_input=False)
    async def handle_call_tool(name: str, arguments: dict | None) -> list[types.TextContent]:
        async with lock:
            result = await asyncio.to_thread(invoke, client, name, arguments)
        text = result["content"][0]["text"]
        if result.get("isError"):
            # the low-level server turns this into {content: [text], isError: true}
            raise ToolCallError(text)
        return [types.TextContent(type="text", text=text)]

    return server


async def serve(client: GmailClient) -> None:
    server = create_server(client)
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def configure_logging(level: str) -> None:
    # stdout carries the protocol; logs go to stderr only
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve Gmail tools over MCP (stdio).")
    parser.add_argument(
        "--credentials",
        help="OAuth client file (default: $GMAIL_CREDENTIALS_PATH or credentials.json).",
    )
    parser.add_argument(
        "--token",
        help="Stored token file (default: $GMAIL_TOKEN_PATH or .gmail-tokens.json).",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (default: $GMAIL_MCP_LOG_LEVEL or INFO).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env().override(
        credentials_path=args.credentials,
        token_path=args.token,
        log_level=args.log_level,
    )
    configure_logging(settings.log_level)

    try:
        service = build_gmail_service(
            credentials_path=settings.credentials_path,
            token_path=settings.token_path,
        )
    except ConfigurationError as exc:
        logger.error("Cannot start: %s", exc)
        raise SystemExit(f"Configuration error: {exc}") from exc

    logger.info("Starting %s %s (user %s)", SERVER_NAME, __version__, settings.user_id)
    asyncio.run(serve(GmailClient(service, user_id=settings.user_id)))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
