#!/usr/bin/env python3
"""
Analysis retriever MCP Server - HTTP/SSE transport

JSON-RPC over plain HTTP POST, plus an SSE keep-alive stream for clients
(agent builders) that open one before posting. Business logic delegated
to dispatcher.py / handlers.py.

Run with: mcp-analysis-retriever

Configuration (see config.py):
- PORT: Server port (default: 10000)
- ANALYSIS_API_URL / ANALYSIS_API_PASSWORD: upstream endpoint and credential
"""

import asyncio
import json
import time
from collections.abc import AsyncIterator
from datetime import datetime, timezone

import httpx
import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route

from .config import Settings, load_settings
from .dispatcher import SERVER_ERROR, SERVER_NAME, error_envelope, handle_message
from .logging_config import get_logger, setup_async_logging, shutdown_async_logging
from .upstream import AnalysisClient

logger = get_logger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def heartbeat_stream(interval: float) -> AsyncIterator[str]:
    """SSE comments only: one on connect, then one per interval"""
    yield ": connected\n\n"
    logger.info("SSE iniciado")
    try:
        while True:
            await asyncio.sleep(interval)
            yield f": heartbeat {int(time.time() * 1000)}\n\n"
    finally:
        logger.info("SSE desconectado")


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Starlette:
    """Build the Starlette app; `transport` overrides the upstream HTTP transport"""
    settings = settings or load_settings()
    upstream = AnalysisClient(settings, transport=transport)

    async def handle_rpc(request: Request) -> Response:
        """JSON-RPC endpoint; upstream failures become -32000 errors"""
        raw = await request.body()
        try:
            body = json.loads(raw) if raw else None
        except ValueError:
            logger.warning(f"Cuerpo no JSON recibido ({len(raw)} bytes)")
            body = None
        logger.info(f"POST recibido: {raw[:100].decode('utf-8', 'replace')}")

        try:
            response = await handle_message(upstream, body)
        except Exception as e:
            logger.exception("Error procesando la solicitud")
            request_id = body.get("id") if isinstance(body, dict) else None
            return JSONResponse(error_envelope(request_id, SERVER_ERROR, str(e)), status_code=500)

        if response is None:
            return Response(status_code=202)
        return JSONResponse(response)

    async def handle_sse(request: Request) -> Response:
        """Keep-alive event stream; all RPC traffic goes through POST"""
        client_addr = request.client.host if request.client else "unknown"
        logger.info(f"Nueva conexión SSE desde {client_addr}")
        return StreamingResponse(
            heartbeat_stream(settings.heartbeat_seconds),
            media_type="text/event-stream; charset=utf-8",
            headers=SSE_HEADERS,
        )

    async def handle_health(_request: Request) -> JSONResponse:
        """Health check endpoint"""
        return JSONResponse({
            "status": "ok",
            "service": SERVER_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    return Starlette(
        routes=[
            Route("/", endpoint=handle_rpc, methods=["POST"]),
            Route("/", endpoint=handle_sse, methods=["GET"]),
            Route("/health", endpoint=handle_health, methods=["GET"]),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["*"],
                expose_headers=["*"],
                allow_credentials=False,
            ),
        ],
    )


def main() -> None:
    """Run the HTTP server with uvicorn"""
    settings = load_settings()
    setup_async_logging(settings.log_file, settings.log_level)
    if not settings.api_url:
        logger.warning("ANALYSIS_API_URL no configurada; las llamadas a herramientas fallarán")
    logger.info(f"Servidor MCP activo en {settings.host}:{settings.port}")
    try:
        uvicorn.run(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            log_config=None,
        )
    finally:
        shutdown_async_logging()


if __name__ == "__main__":
    main()
