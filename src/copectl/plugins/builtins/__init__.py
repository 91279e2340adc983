"""Built-in plugins registered by every runtime."""
