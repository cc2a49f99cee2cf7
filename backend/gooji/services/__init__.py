"""Core services: path guard, media inspection, storage, ingestion and queries."""
