"""Token discovery, enrichment and live ingestion."""
