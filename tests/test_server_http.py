#!/usr/bin/env python3
"""
Test HTTP transport - status codes, -32000 conversion, health, CORS.
"""

import asyncio
import sys
from pathlib import Path

import pytest
from starlette.testclient import TestClient

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from mcp_analysis_retriever.server_http import create_app, heartbeat_stream
from upstream_fakes import FakeUpstream, found, make_settings

TOOL_CALL = {
    "jsonrpc": "2.0",
    "id": 11,
    "method": "tools/call",
    "params": {"name": "getLatestClientAnalysis", "arguments": {"id_cliente": 3, "tipo": "replacement"}},
}


def client_for(fake: FakeUpstream) -> TestClient:
    return TestClient(create_app(make_settings(), transport=fake.transport()))


def test_request_gets_json_response():
    """Test a request with an id is answered with its envelope"""
    fake = FakeUpstream({"evaluate_portfolio": found("P"), "replacement": found("R")})
    response = client_for(fake).post("/", json=TOOL_CALL)
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == 11
    assert body["result"]["content"][0]["text"].endswith("--- ANÁLISIS DE REPLACEMENT ---\nR")
    print("✓ JSON-RPC POST works")


def test_notification_gets_202_without_body():
    """Test notifications are acknowledged with an empty 202"""
    response = client_for(FakeUpstream({})).post(
        "/", json={"jsonrpc": "2.0", "method": "notifications/initialized"}
    )
    assert response.status_code == 202
    assert response.content == b""
    print("✓ Notification 202 works")


def test_malformed_body_is_treated_as_notification():
    """Test an unparsable body gets no JSON-RPC answer"""
    response = client_for(FakeUpstream({})).post(
        "/", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 202
    print("✓ Malformed body handling works")


def test_invalid_upstream_json_becomes_server_error():
    """Test a 200 HTML upstream page surfaces as -32000"""
    fake = FakeUpstream({
        "evaluate_portfolio": (200, "<html>Service Unavailable</html>"),
        "replacement": found("R"),
    })
    response = client_for(fake).post("/", json=TOOL_CALL)
    assert response.status_code == 500
    body = response.json()
    assert body["jsonrpc"] == "2.0"
    assert body["id"] == 11
    assert body["error"]["code"] == -32000
    assert "no es JSON válido" in body["error"]["message"]
    print("✓ Invalid JSON -> -32000 works")


def test_bad_arguments_become_server_error():
    """Test argument validation errors are converted at the transport"""
    call = dict(TOOL_CALL, params={"name": "getLatestClientAnalysis", "arguments": {"tipo": "replacement"}})
    response = client_for(FakeUpstream({})).post("/", json=call)
    assert response.status_code == 500
    assert response.json()["error"]["code"] == -32000
    assert "id_cliente" in response.json()["error"]["message"]
    print("✓ Bad arguments -> -32000 works")


def test_health():
    """Test health check endpoint"""
    response = client_for(FakeUpstream({})).get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["service"] == "mcp-analysis-retriever"
    assert "timestamp" in body
    print("✓ Health check works")


def test_cors_preflight():
    """Test CORS preflight from any origin"""
    response = client_for(FakeUpstream({})).options(
        "/",
        headers={
            "Origin": "https://agent.example.test",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]
    print("✓ CORS preflight works")


def test_heartbeat_stream_starts_with_connected():
    """Test SSE stream comments"""

    async def first_two():
        stream = heartbeat_stream(0.01)
        events = [await stream.__anext__(), await stream.__anext__()]
        await stream.aclose()
        return events

    connected, heartbeat = asyncio.run(first_two())
    assert connected == ": connected\n\n"
    assert heartbeat.startswith(": heartbeat ")
    assert heartbeat.endswith("\n\n")
    print("✓ SSE heartbeat works")


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
