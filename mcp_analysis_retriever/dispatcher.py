"""
JSON-RPC 2.0 dispatcher for the MCP "tools" convention.

handle_message() takes a decoded request body and returns either the
response envelope to send back, or None for notifications (no "id").
Unknown methods and unknown tools come back as -32601 error envelopes;
upstream failures are raised and left to the transport to convert.
"""

from typing import Any

from mcp.types import (
    METHOD_NOT_FOUND,
    Implementation,
    InitializeResult,
    ServerCapabilities,
    TextContent,
    ToolsCapability,
)

from mcp_analysis_retriever.handlers import call_tool
from mcp_analysis_retriever.logging_config import get_logger
from mcp_analysis_retriever.tools import TOOL_NAME, get_mcp_tools
from mcp_analysis_retriever.upstream import AnalysisClient

logger = get_logger(__name__)

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "mcp-analysis-retriever"
SERVER_VERSION = "1.0.0"

# Implementation-defined server error, used for upstream failures
SERVER_ERROR = -32000


def result_envelope(request_id: Any, result: dict[str, Any]) -> dict[str, Any]:  # noqa: ANN401
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_envelope(request_id: Any, code: int, message: str) -> dict[str, Any]:  # noqa: ANN401
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": {"code": code, "message": message},
    }


def initialize_result() -> dict[str, Any]:
    """Fixed capability descriptor, independent of the client's params"""
    result = InitializeResult(
        protocolVersion=PROTOCOL_VERSION,
        capabilities=ServerCapabilities(tools=ToolsCapability()),
        serverInfo=Implementation(name=SERVER_NAME, version=SERVER_VERSION),
    )
    return result.model_dump(by_alias=True, exclude_none=True)


def tools_list_result() -> dict[str, Any]:
    return {
        "tools": [
            tool.model_dump(by_alias=True, exclude_none=True) for tool in get_mcp_tools()
        ]
    }


async def _tools_call(
    upstream: AnalysisClient, request_id: Any, params: dict[str, Any]  # noqa: ANN401
) -> dict[str, Any]:
    name = params.get("name")
    if name != TOOL_NAME:
        logger.warning(f"Herramienta no encontrada: {name}")
        return error_envelope(request_id, METHOD_NOT_FOUND, "Herramienta no encontrada")

    arguments = params.get("arguments")
    text = await call_tool(upstream, name, arguments if isinstance(arguments, dict) else {})
    content = TextContent(type="text", text=text)
    return result_envelope(
        request_id, {"content": [content.model_dump(by_alias=True, exclude_none=True)]}
    )


async def handle_message(upstream: AnalysisClient, body: Any) -> dict[str, Any] | None:  # noqa: ANN401
    """
    Dispatch one decoded JSON-RPC message.

    Returns None for notifications, whatever the method. Raises only what
    the tool call raises (ValueError, UpstreamError).
    """
    message = body if isinstance(body, dict) else {}
    method = message.get("method")

    if "id" not in message:
        logger.info(f"Notificación recibida: {method}")
        return None

    request_id = message["id"]
    params = message.get("params")
    if not isinstance(params, dict):
        params = {}
    logger.info(f"Método MCP: {method}")

    if method == "initialize":
        return result_envelope(request_id, initialize_result())

    if method == "tools/list":
        return result_envelope(request_id, tools_list_result())

    if method == "tools/call":
        return await _tools_call(upstream, request_id, params)

    if method == "ping":
        return result_envelope(request_id, {})

    if method == "notifications/list":
        return result_envelope(request_id, {"notifications": []})

    logger.warning(f"Método no soportado: {method}")
    return error_envelope(request_id, METHOD_NOT_FOUND, f"Método no soportado: {method}")
