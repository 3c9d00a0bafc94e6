"""Field projection of result items."""
