"""In-memory group-by with top-k per group."""
