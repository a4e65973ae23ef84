"""Core metadata logic: coercion, keyword tables, derived quantities."""
