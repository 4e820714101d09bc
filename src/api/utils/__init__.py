"""Helpers for the API layer."""
