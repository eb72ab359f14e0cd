"""
Tool handlers - single source of truth for tool execution logic.

This module contains the core business logic routing that both
server.py (stdio) and server_http.py (HTTP/SSE) use.

Architecture:
- Protocol layer (dispatcher.py, server.py, server_http.py) handles MCP transport
- This module validates arguments and fans out to the upstream
- upstream.py fetches and normalizes, formatters/report.py merges
"""

import asyncio
from typing import Any

from mcp_analysis_retriever.formatters.report import format_report
from mcp_analysis_retriever.logging_config import get_logger
from mcp_analysis_retriever.tools import ANALYSIS_TYPES, PORTFOLIO_TYPE, TOOL_NAME
from mcp_analysis_retriever.upstream import AnalysisClient, FetchOutcome

logger = get_logger(__name__)


def parse_arguments(arguments: dict[str, Any]) -> tuple[int, str]:
    """
    Validate getLatestClientAnalysis arguments.

    Returns (id_cliente, tipo). Raises ValueError on missing or bad values.
    """
    client_id = arguments.get("id_cliente")
    if client_id is None:
        msg = f"{TOOL_NAME}() requires 'id_cliente' parameter"
        raise ValueError(msg)
    # bool is an int subclass; reject it explicitly
    if isinstance(client_id, bool) or not isinstance(client_id, int):
        msg = f"{TOOL_NAME}() 'id_cliente' must be an integer, got {client_id!r}"
        raise ValueError(msg)

    analysis_type = arguments.get("tipo")
    if not analysis_type:
        msg = f"{TOOL_NAME}() requires 'tipo' parameter"
        raise ValueError(msg)
    if analysis_type not in ANALYSIS_TYPES:
        msg = (
            f"{TOOL_NAME}() 'tipo' must be one of {', '.join(ANALYSIS_TYPES)}, "
            f"got {analysis_type!r}"
        )
        raise ValueError(msg)

    return client_id, analysis_type


async def _gather_fail_fast(*aws: Any) -> list[FetchOutcome]:  # noqa: ANN401
    """Await all fetches; the first failure cancels the rest and propagates"""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        # Let cancelled requests unwind before the session closes
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def fetch_and_merge(
    upstream: AnalysisClient, client_id: int, analysis_type: str
) -> str:
    """
    Fetch the portfolio analysis (always) plus the requested type (when it
    is not the portfolio itself), concurrently, and merge them.

    Raises UpstreamError if either fetch fails; no partial report.
    """
    wants_specific = analysis_type != PORTFOLIO_TYPE

    async with upstream.session() as client:
        fetches = [upstream.fetch_one(client, client_id, PORTFOLIO_TYPE)]
        if wants_specific:
            fetches.append(upstream.fetch_one(client, client_id, analysis_type))
        outcomes = await _gather_fail_fast(*fetches)

    portfolio = outcomes[0]
    specific = outcomes[1] if wants_specific else None
    return format_report(portfolio, specific, analysis_type if wants_specific else None)


async def handle_latest_client_analysis(
    upstream: AnalysisClient, arguments: dict[str, Any]
) -> str:
    """Handle getLatestClientAnalysis() tool call"""
    client_id, analysis_type = parse_arguments(arguments)
    logger.info(f"Buscando análisis para cliente: {client_id}, tipo: {analysis_type}")
    report = await fetch_and_merge(upstream, client_id, analysis_type)
    logger.info(f"Análisis obtenido: {len(report)} chars")
    return report


async def call_tool(upstream: AnalysisClient, name: str, arguments: dict[str, Any]) -> str:
    """
    Route tool call to appropriate handler.

    Returns formatted string output.
    Raises ValueError for unknown tools or bad parameters, UpstreamError
    for upstream failures.
    """
    if name == TOOL_NAME:
        return await handle_latest_client_analysis(upstream, arguments)

    msg = f"Unknown tool: {name}"
    raise ValueError(msg)
