"""Infrastructure layer — manifest file, credential store, specialist processes.

Infrastructure may import from domain and config, never from services,
commands, or mcp.
"""
