import asyncio

import mcp.types as types

from openrouter_mcp.server import SERVER_NAME, build_parser, create_server, create_sse_app


def test_server_registers_tool_and_resource_handlers(config, client):
    server = create_server(config, client)

    assert server.name == SERVER_NAME
    for request_type in (
        types.ListToolsRequest,
        types.CallToolRequest,
        types.ListResourcesRequest,
        types.ReadResourceRequest,
    ):
        assert request_type in server.request_handlers


def test_call_tool_never_faults(config, client):
    server = create_server(config, client)
    handler = server.request_handlers[types.CallToolRequest]
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name="compare_models", arguments={"models": [], "message": "hi"}),
    )

    result = asyncio.run(handler(request)).root

    assert result.isError is False
    assert result.content[0].type == "text"
    assert result.content[0].text.startswith("Error executing compare_models: Invalid arguments")


def test_call_tool_success(config, client):
    server = create_server(config, client)
    handler = server.request_handlers[types.CallToolRequest]
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(
            name="chat_with_model", arguments={"model": "openai/gpt-4", "message": "hi"}
        ),
    )

    result = asyncio.run(handler(request)).root

    assert "**Response:** hello" in result.content[0].text


def test_parser_defaults():
    args = build_parser().parse_args([])

    assert args.transport == "stdio"
    assert args.log_level


def test_sse_app_routes(config, client):
    app = create_sse_app(create_server(config, client))

    paths = {getattr(route, "path", None) for route in app.routes}
    assert "/sse" in paths
    assert "/messages" in paths
