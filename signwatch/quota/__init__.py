"""Quota monitoring."""
