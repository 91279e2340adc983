"""Plugin system — pluggy hooks for request observability and specialist registration."""
