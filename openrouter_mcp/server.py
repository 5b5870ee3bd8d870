# server.py
# Purpose: expose OpenRouter as MCP tools + resources
# - stdio transport by default (Claude Desktop style clients)
# - SSE transport through FastAPI / uvicorn for HTTP clients

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

import mcp.types as types
from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.sse import SseServerTransport
from mcp.server.stdio import stdio_server
from pydantic import AnyUrl

from . import __version__
from .client import OpenRouterClient
from .config import Config
from .resources import list_resources, read_resource
from .tools import ToolDispatcher, list_tools

SERVER_NAME = "openrouter-mcp-server"

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
# MCP SERVER
# ─────────────────────────────────────────────

def create_server(config: Config, client: Optional[OpenRouterClient] = None) -> Server:
    client = client or OpenRouterClient(config)
    dispatcher = ToolDispatcher(client, config)
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def handle_list_tools():
        return list_tools()

    # Validation happens in the dispatcher so that bad arguments come back
    # as the same "Error executing ..." text as every other failure.
    @server.call_tool(validate_input=False)
    async def handle_call_tool(name: str, arguments: dict):
        text = await dispatcher.call(name, arguments)
        return [types.TextContent(type="text", text=text)]

    @server.list_resources()
    async def handle_list_resources():
        return list_resources()

    @server.read_resource()
    async def handle_read_resource(uri: AnyUrl):
        text = await read_resource(client, str(uri))
        return [ReadResourceContents(content=text, mime_type="application/json")]

    return server


# ─────────────────────────────────────────────
# TRANSPORTS
# ─────────────────────────────────────────────

async def run_stdio(server: Server) -> None:
    async with stdio_server() as (read_stream, write_stream):
        logger.info("OpenRouter MCP Server running on stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())


def create_sse_app(server: Server) -> FastAPI:
    app = FastAPI()
    sse_transport = SseServerTransport("/messages/")

    @app.get("/sse")
    async def handle_sse(request: Request):
        async with sse_transport.connect_sse(
            request.scope, request.receive, request._send
        ) as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
        return Response()

    app.mount("/messages/", app=sse_transport.handle_post_message)
    return app


# ─────────────────────────────────────────────
# MAIN
# ─────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser("openrouter-mcp", description="OpenRouter MCP Server")
    parser.add_argument("--transport", choices=["stdio", "sse"], default="stdio")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", 8000)))
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    load_dotenv()

    # stdout carries the stdio transport, so logs go to stderr
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    config = Config.from_env()
    server = create_server(config)

    if args.transport == "sse":
        import uvicorn
        uvicorn.run(create_sse_app(server), host=args.host, port=args.port)
        return 0

    try:
        asyncio.run(run_stdio(server))
    except KeyboardInterrupt:
        logger.info("Shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
