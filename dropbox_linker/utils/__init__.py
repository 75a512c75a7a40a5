"""Path, formatting and rendering helpers."""
