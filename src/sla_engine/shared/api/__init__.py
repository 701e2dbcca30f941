"""Shared API components (middleware, dependencies)."""
