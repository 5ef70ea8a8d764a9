"""HTTP API for the library server."""
