"""Job board application package."""
