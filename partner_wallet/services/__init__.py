"""Balance transfer services."""
