"""Template compilation, execution and output."""
