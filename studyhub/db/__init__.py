"""Database layer: engine, session and ORM models."""
