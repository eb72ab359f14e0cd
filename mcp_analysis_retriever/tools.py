#!/usr/bin/env python3
"""
MCP Tool Definitions - Single Source of Truth

Tool definition shared between server.py (stdio), server_http.py (HTTP/SSE)
and the JSON-RPC dispatcher. Define once, import everywhere.
"""

from mcp.types import Tool

TOOL_NAME = "getLatestClientAnalysis"

# Analysis types the upstream stores, in the order clients see them
ANALYSIS_TYPES = ["evaluate_portfolio", "ticker_info", "replacement"]
PORTFOLIO_TYPE = "evaluate_portfolio"


def get_mcp_tools() -> list[Tool]:
    """
    Return list of MCP tools.

    Exactly one tool is exposed; both transports import this function.
    """
    return [
        Tool(
            name=TOOL_NAME,
            description=(
                "Obtiene el último análisis guardado para un cliente específico "
                "y un tipo de análisis. Devuelve el análisis completo y su fecha "
                "de creación."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "id_cliente": {
                        "type": "integer",
                        "description": "El ID numérico del cliente a consultar.",
                    },
                    "tipo": {
                        "type": "string",
                        "description": "El tipo de análisis a recuperar.",
                        "enum": list(ANALYSIS_TYPES),
                    },
                },
                "required": ["id_cliente", "tipo"]
            }
        ),
    ]
