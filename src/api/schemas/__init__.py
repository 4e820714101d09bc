"""Pydantic models for request bodies, responses and errors."""
