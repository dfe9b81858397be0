"""Normalization, aggregation, projection and import orchestration services."""
