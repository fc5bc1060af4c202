"""Adapters for the request log and the durable snapshot store."""
