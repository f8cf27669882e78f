"""Store adapters backed by SQLAlchemy."""
