"""R0 API server."""
