"""Core primitives: errors, settings and logging."""
