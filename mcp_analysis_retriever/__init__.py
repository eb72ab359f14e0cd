"""MCP relay for stored client analyses."""

__version__ = "1.0.0"
