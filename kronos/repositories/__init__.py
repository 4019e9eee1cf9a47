"""Repositories for the persistent score caches."""
