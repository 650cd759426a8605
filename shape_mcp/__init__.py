"""MCP server exposing read-only Shape network analytics."""

__version__ = "0.1.0"
