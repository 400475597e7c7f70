"""SQLAlchemy models for notifications and the read-only marketplace tables they reference."""
