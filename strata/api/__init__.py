"""HTTP API for the levies service."""
