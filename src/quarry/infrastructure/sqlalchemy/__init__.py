"""SQLAlchemy infrastructure."""
