"""Database connection module.

``async_cassandra`` is imported by the application lifespan only when the
Cassandra backend is selected.
"""
