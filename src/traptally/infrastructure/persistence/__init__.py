"""Persistence layer: ORM models, database and repositories."""
