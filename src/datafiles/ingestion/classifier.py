"""
Content Classifier.

Resolves the canonical content type of a file: content sniffing (magic
numbers, container inspection for zip archives), refined or replaced by a
filename/extension lookup, then arbitrated against the caller-supplied type.
Classification is a pure function of the bytes and the filename.
"""

import io
import logging
import mimetypes
import zipfile
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable, List, Optional, Union

from datafiles.ingestion.models import ClassifiedType, TypeSource
from datafiles.ingestion.traversal import has_complete_shapefile_set

logger = logging.getLogger(__name__)

MIME_TYPE_UNDETERMINED_DEFAULT = "application/octet-stream"
MIME_TYPE_UNDETERMINED_BINARY = "application/binary"
MIME_TYPE_TEXT = "text/plain"
MIME_TYPE_ZIP = "application/zip"
MIME_TYPE_GZIP = "application/gzip"
MIME_TYPE_FITS_GZIPPED = "application/fits-gzipped"
MIME_TYPE_TARBALL = "application/x-gtar"
MIME_TYPE_SHAPEFILE = "application/zipped-shapefile"
MIME_TYPE_BAGIT = "application/zipped-bagit"

UNDETERMINED_TYPES = {MIME_TYPE_UNDETERMINED_DEFAULT, MIME_TYPE_UNDETERMINED_BINARY}

# Bytes read for magic-number sniffing
SAMPLE_SIZE = 8192

# (offset, signature, content type); first match wins
MAGIC_SIGNATURES = [
    (0, b"PK\x03\x04", MIME_TYPE_ZIP),
    (0, b"PK\x05\x06", MIME_TYPE_ZIP),
    (0, b"PK\x07\x08", MIME_TYPE_ZIP),
    (0, b"\x1f\x8b", MIME_TYPE_GZIP),
    (0, b"%PDF-", "application/pdf"),
    (0, b"\x89PNG\r\n\x1a\n", "image/png"),
    (0, b"\xff\xd8\xff", "image/jpeg"),
    (0, b"GIF87a", "image/gif"),
    (0, b"GIF89a", "image/gif"),
    (0, b"II*\x00", "image/tiff"),
    (0, b"MM\x00*", "image/tiff"),
    (0, b"\x89HDF\r\n\x1a\n", "application/x-hdf5"),
    (0, b"CDF\x01", "application/netcdf"),
    (0, b"CDF\x02", "application/netcdf"),
    (0, b"SIMPLE  =", "application/fits"),
    (0, b"$FL2", "application/x-spss-sav"),
    (0, b"$FL3", "application/x-spss-sav"),
    (0, b"BZh", "application/x-bzip2"),
    (0, b"\xfd7zXZ\x00", "application/x-xz"),
    (0, b"7z\xbc\xaf\x27\x1c", "application/x-7z-compressed"),
    (0, b"<stata_dta>", "application/x-stata-dta"),
    (257, b"ustar", "application/x-tar"),
]

# Extension types the stock mimetypes table lacks or gets wrong for data files
EXTENSION_TYPES = {
    "csv": "text/csv",
    "tsv": "text/tab-separated-values",
    "tab": "text/tab-separated-values",
    "md": "text/markdown",
    "r": "type/x-r-syntax",
    "rdata": "application/x-rlang-transport",
    "do": "application/x-stata-syntax",
    "dta": "application/x-stata",
    "sav": "application/x-spss-sav",
    "por": "application/x-spss-por",
    "sps": "text/x-spss-syntax",
    "sas": "application/x-sas-syntax",
    "sas7bdat": "application/x-sas-data",
    "fits": "application/fits",
    "fit": "application/fits",
    "fts": "application/fits",
    "nc": "application/netcdf",
    "h5": "application/x-hdf5",
    "hdf5": "application/x-hdf5",
    "shp": "application/x-esri-shape",
    "dbf": "application/dbf",
    "ipynb": "application/x-ipynb+json",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "gz": MIME_TYPE_GZIP,
    "tgz": MIME_TYPE_TARBALL,
    "zip": MIME_TYPE_ZIP,
}

FITS_EXTENSIONS = ("fits", "fit", "fts")
TARBALL_SUFFIXES = (".tar.gz", ".tgz")

# Non "text/*" types whose content sniffs as plain text
TEXTUAL_TYPES = {
    "application/json",
    "application/xml",
    "application/x-ipynb+json",
    "application/x-stata-syntax",
    "application/x-sas-syntax",
    "application/javascript",
    "application/x-sh",
    "application/x-tex",
    "type/x-r-syntax",
}

# Only the stock table, so results do not depend on the host's mime.types
_MIME_TYPES = mimetypes.MimeTypes()

Sniffer = Callable[[bytes, Optional[str]], Optional[str]]
Source = Union[bytes, str, Path]


def is_binary(sample: bytes) -> bool:
    """Null bytes or a high ratio of control characters mean binary."""
    if b"\x00" in sample:
        return True
    non_printable = sum(1 for b in sample if b < 32 and b not in (9, 10, 12, 13, 27))
    return len(sample) > 0 and non_printable / len(sample) > 0.3


def sniff_content_type(sample: bytes, filename: Optional[str] = None) -> Optional[str]:
    """
    Default content sniffer: magic numbers, then a text/binary heuristic.

    Returns None when the sample says nothing useful (empty, or binary
    without a known signature).
    """
    if not sample:
        return None

    for offset, signature, content_type in MAGIC_SIGNATURES:
        if sample[offset:offset + len(signature)] == signature:
            if content_type == MIME_TYPE_GZIP and filename:
                name = filename.lower()
                if name.endswith(TARBALL_SUFFIXES):
                    return MIME_TYPE_TARBALL
                if name.endswith(tuple(f".{ext}.gz" for ext in FITS_EXTENSIONS)):
                    return MIME_TYPE_FITS_GZIPPED
            return content_type

    if is_binary(sample):
        return None
    return MIME_TYPE_TEXT


def type_by_name_and_extension(filename: Optional[str]) -> Optional[str]:
    """Content type implied by the filename alone, or None."""
    if not filename:
        return None
    name = filename.lower()
    if name.endswith(TARBALL_SUFFIXES):
        return MIME_TYPE_TARBALL
    ext = name.rpartition(".")[2] if "." in name else ""
    if ext in EXTENSION_TYPES:
        return EXTENSION_TYPES[ext]
    content_type, encoding = _MIME_TYPES.guess_type(name, strict=False)
    if encoding == "gzip":
        return MIME_TYPE_GZIP
    if encoding is not None:
        return None
    return content_type


def use_recognized_type(supplied_type: Optional[str], recognized_type: Optional[str]) -> bool:
    """
    Should the type we recognized replace the one supplied with the upload?

    The recognized type wins unless it is itself undetermined. The one
    exception is our generic "text/plain" guess, which never overrides a more
    specific text type supplied by the caller.
    """
    if not recognized_type or recognized_type.lower() in UNDETERMINED_TYPES:
        return False
    if not supplied_type or supplied_type.lower() in UNDETERMINED_TYPES:
        return True
    if (recognized_type == MIME_TYPE_TEXT
            and supplied_type.lower().startswith("text/")):
        return False
    return True


def is_bagit(entry_names: List[str]) -> bool:
    """A zipped bag holds a bagit.txt at its root or in its single top directory."""
    names = [n.replace("\\", "/") for n in entry_names]
    if "bagit.txt" in names:
        return True
    tops = {PurePosixPath(n).parts[0] for n in names if PurePosixPath(n).parts}
    return len(tops) == 1 and f"{tops.pop()}/bagit.txt" in names


def inspect_zip_container(fileobj: BinaryIO, encoding: str = "utf-8") -> str:
    """Refine a zip archive into a shapefile bundle, a BagIt package or a plain zip."""
    try:
        with zipfile.ZipFile(fileobj, metadata_encoding=encoding) as zf:
            names = [info.filename for info in zf.infolist() if not info.is_dir()]
    except (zipfile.BadZipFile, UnicodeDecodeError, OSError) as e:
        logger.debug(f"Could not list zip entries: {e}")
        return MIME_TYPE_ZIP

    if is_bagit(names):
        return MIME_TYPE_BAGIT
    if has_complete_shapefile_set(names):
        return MIME_TYPE_SHAPEFILE
    return MIME_TYPE_ZIP


def _open_source(source: Source) -> BinaryIO:
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(source)
    return open(source, "rb")


def recognize(
    source: Source,
    filename: Optional[str],
    sniffer: Optional[Sniffer] = None,
    zip_encoding: str = "utf-8",
) -> Optional[ClassifiedType]:
    """Type recognized from the content and the filename; None if nothing is known."""
    sniffer = sniffer or sniff_content_type

    with _open_source(source) as f:
        sample = f.read(SAMPLE_SIZE)
        try:
            sniffed = sniffer(sample, filename)
        except Exception as e:
            logger.warning(f"Failed to run the content type check on file {filename}: {e}")
            sniffed = None

        if sniffed == MIME_TYPE_ZIP:
            f.seek(0)
            return ClassifiedType(inspect_zip_container(f, zip_encoding), TypeSource.SNIFFED)

    if sniffed and sniffed not in UNDETERMINED_TYPES and sniffed != MIME_TYPE_TEXT:
        return ClassifiedType(sniffed, TypeSource.SNIFFED)

    by_name = type_by_name_and_extension(filename)
    if by_name and (sniffed is None or sniffed in UNDETERMINED_TYPES
                    or by_name.startswith("text/") or by_name in TEXTUAL_TYPES):
        return ClassifiedType(by_name, TypeSource.EXTENSION)

    if sniffed:
        return ClassifiedType(sniffed, TypeSource.SNIFFED)
    return None


def classify(
    source: Source,
    filename: Optional[str],
    supplied_type: Optional[str] = None,
    sniffer: Optional[Sniffer] = None,
    zip_encoding: str = "utf-8",
) -> ClassifiedType:
    """
    Resolve the content type of a file (path) or blob (bytes).

    The recognized type (sniffed, or from the extension when sniffing is
    inconclusive) is used when `use_recognized_type` allows it; otherwise the
    supplied type is kept; if there is neither, the undetermined default is
    substituted.
    """
    recognized = recognize(source, filename, sniffer, zip_encoding)
    logger.debug(f"Recognized {filename} as {recognized}")

    if recognized is not None and use_recognized_type(supplied_type, recognized.content_type):
        return recognized
    if supplied_type and supplied_type.strip():
        return ClassifiedType(supplied_type, TypeSource.SUPPLIED)
    return ClassifiedType(MIME_TYPE_UNDETERMINED_DEFAULT, TypeSource.DEFAULT)


def classify_by_name(filename: Optional[str], supplied_type: Optional[str] = None) -> ClassifiedType:
    """Classification without bytes, for uploads that reference stored objects."""
    if supplied_type and supplied_type.strip():
        final = ClassifiedType(supplied_type, TypeSource.SUPPLIED)
    else:
        final = ClassifiedType(MIME_TYPE_UNDETERMINED_DEFAULT, TypeSource.DEFAULT)

    by_name = type_by_name_and_extension(filename)
    if by_name and use_recognized_type(final.content_type, by_name):
        return ClassifiedType(by_name, TypeSource.EXTENSION)
    return final
