"""Uptime and incident statistics."""
