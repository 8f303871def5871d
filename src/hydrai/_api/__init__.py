"""Endpoint modules for the inference services."""
