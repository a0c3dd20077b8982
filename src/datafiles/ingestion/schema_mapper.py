"""
Schema Mapper Module.

Renders the files produced by one ingestion call as a manifest table, ready
to be written as parquet or csv or handed to the persistence layer.
"""

import logging

import pandas as pd

from datafiles.ingestion.models import IngestionResult

logger = logging.getLogger(__name__)

MANIFEST_COLUMNS = [
    "filename",
    "directory_label",
    "content_type",
    "size",
    "checksum_type",
    "checksum",
    "storage_location",
    "ingest_warning",
]


def files_to_dataframe(result: IngestionResult) -> pd.DataFrame:
    """
    Convert the produced files of an ingestion result to a DataFrame.

    Target schema columns:
    - filename (str): Short file name
    - directory_label (str): Folder path preserved from an archive, or None
    - content_type (str): Resolved content type
    - size (Int64): Byte length, <NA> when unknown (storage references)
    - checksum_type (str), checksum (str): Fixity algorithm and digest
    - storage_location (str): Scratch path or storage identifier
    - ingest_warning (str): Fallback warning attached to the file, or None

    An error result yields an empty frame with the same columns.
    """
    rows = [
        {
            "filename": f.filename,
            "directory_label": f.directory_label,
            "content_type": f.content_type,
            "size": f.size,
            "checksum_type": f.checksum_type.value if f.checksum_type else None,
            "checksum": f.checksum,
            "storage_location": f.storage_location,
            "ingest_warning": f.ingest_warning,
        }
        for f in result.files
    ]
    if not result.ok:
        logger.info(f"No files to map for failed ingestion of {result.filename}")

    df = pd.DataFrame(rows, columns=MANIFEST_COLUMNS)
    df["size"] = df["size"].astype("Int64")
    # missing text values stay None, not NaN, whatever string dtype pandas infers
    for column in MANIFEST_COLUMNS:
        if column != "size":
            df[column] = df[column].astype(object).where(df[column].notna(), None)
    return df
