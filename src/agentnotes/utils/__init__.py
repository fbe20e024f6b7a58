"""Shared helpers: logging, atomic file writes, and slugs."""
