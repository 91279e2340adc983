"""copectl — capability router and specialist dispatcher for a personal assistant."""

__version__ = "0.1.0"
