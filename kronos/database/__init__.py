"""Database layer: async engine lifecycle and ORM models."""
