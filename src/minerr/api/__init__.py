"""Minerr HTTP API."""
