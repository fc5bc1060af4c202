"""Request performance aggregation."""
