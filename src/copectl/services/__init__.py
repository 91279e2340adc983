"""Service layer — routing and dispatch logic returning ServiceResult.

Services may import from domain, infrastructure, and plugins.
They must never import from commands, output, or mcp.
"""
