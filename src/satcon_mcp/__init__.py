"""MCP server for managing IBM Cloud Satellite Config cluster groups."""

__version__ = "0.1.0"
