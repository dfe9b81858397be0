"""Versioned JSON document store for normalized imports."""
