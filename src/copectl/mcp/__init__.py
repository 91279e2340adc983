"""MCP adapter — exposes capability discovery and specialist dispatch as tools.

The adapter only consumes ServiceResult; no routing logic lives here.
"""
