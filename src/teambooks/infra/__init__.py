"""Infrastructure adapters (database engine and sessions)."""
