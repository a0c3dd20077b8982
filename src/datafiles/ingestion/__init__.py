"""
Upload Ingestion Package.

Turns one uploaded stream (or a reference to a stored object) into data file
records, supporting:
- Compressed single files: .gz, gzipped FITS
- Archives: .zip (entries unpacked, folders kept as directory labels)
- Zipped shapefiles: one re-zipped file per complete shapefile set
- Zipped BagIt packages, through a pluggable package handler
Anything else, and any archive that cannot be unpacked, is stored as is.

Public API:
    - ingest(): Main entry point for all ingestion flows
    - create_default_registry(): Get a registry with all built-in unpackers
    - files_to_dataframe(): Manifest table of an ingestion result
"""

from datafiles.ingestion.models import IngestionResult, UploadRequest
from datafiles.ingestion.pipeline import ingest
from datafiles.ingestion.registry import create_default_registry
from datafiles.ingestion.schema_mapper import files_to_dataframe

__all__ = [
    "ingest",
    "create_default_registry",
    "files_to_dataframe",
    "IngestionResult",
    "UploadRequest",
]
