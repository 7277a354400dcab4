"""Domain models, settings and errors."""
