"""TaskHub database layer — SQLAlchemy tables, engine registry and data store."""
