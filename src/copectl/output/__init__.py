"""CLI output — ServiceResult rendering for humans (Rich) and machines (JSON)."""
