"""Data file ingestion for dataset uploads."""
