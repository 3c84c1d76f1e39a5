"""Bronze-layer ingestion for football event, tracking and mapping data."""

__version__ = "0.1.0"
