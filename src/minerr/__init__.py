"""Minerr - Minecraft server instance manager."""

__version__ = "0.3.0"
