"""Persistence layer: ORM models, repositories, auth helpers."""
