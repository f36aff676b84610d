"""
SQLite persistence for Warden.

Provides the long-lived aiosqlite connection, schema creation and a TTL
query cache used by the repositories.
"""
