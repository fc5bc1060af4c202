"""Operational health, uptime and alerting engine for the signing service."""
__version__ = "0.1.0"
