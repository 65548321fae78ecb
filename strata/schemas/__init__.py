"""Pydantic request and response schemas for the levies API."""
