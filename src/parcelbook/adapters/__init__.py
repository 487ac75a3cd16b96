"""Adapters connecting the domain to external systems."""
