"""Utility modules for Satellite Config MCP."""
