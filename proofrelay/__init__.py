"""Light-client proof relayer and health-check service with a SQLite store and HTTP API."""

__version__ = "0.1.0"
__all__ = ["__version__"]