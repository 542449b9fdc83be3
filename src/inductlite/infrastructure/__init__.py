"""Infrastructure adapters: SQLAlchemy repositories and storage backends."""
