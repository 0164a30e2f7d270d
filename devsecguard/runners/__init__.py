"""External detector adapters run alongside the line scanner."""
