"""
Archive Unpacking Module.

Unpacks gzip-compressed single files and zip archives into individual data
files. Entries are streamed one at a time into scratch storage under the
size/quota guard, so a zip bomb is cut short instead of being expanded.
Every problem here is recoverable: the pipeline then stores the archive
itself as a single file.
"""

import gzip
import logging
import re
import zipfile
import zlib
from typing import List

from datafiles.ingestion.classifier import MIME_TYPE_FITS_GZIPPED, MIME_TYPE_GZIP, MIME_TYPE_ZIP
from datafiles.ingestion.errors import StagingError
from datafiles.ingestion.guard import Admission, bytes_to_human_readable
from datafiles.ingestion.staging import StagedBatch, StagedFile
from datafiles.ingestion.traversal import directory_label, is_sidecar, short_name
from datafiles.ingestion.unpacking import BaseUnpacker, IngestContext, UnpackOutcome

logger = logging.getLogger(__name__)

# Errors raised while reading a damaged or unsupported archive. Encrypted zip
# entries raise RuntimeError, unknown compression methods NotImplementedError.
ARCHIVE_READ_ERRORS = (
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    NotImplementedError,
    RuntimeError,
    EOFError,
    zlib.error,
    OSError,
    StagingError,
)


def _limit_warning(context: IngestContext, decision: Admission, prefix: str) -> str:
    if decision is Admission.REJECT_SIZE:
        return context.messages(f"{prefix}.size", bytes_to_human_readable(context.size_limit))
    return context.messages(f"{prefix}.quota", bytes_to_human_readable(context.quota_ceiling))


class GzipUnpacker(BaseUnpacker):
    """
    Uncompresses a gzipped single file (e.g. gzipped FITS) and stores the
    uncompressed payload, re-classified, under the name without '.gz'.
    """

    def unpack(self, staged: StagedFile, context: IngestContext) -> UnpackOutcome:
        filename = context.filename
        final_name = re.sub(r"\.gz$", "", filename, flags=re.IGNORECASE) if filename else filename

        try:
            with gzip.open(staged.path, "rb") as stream:
                unzipped, decision, size = context.stage_admitted(stream)

            if unzipped is None:
                logger.warning(
                    f"Uncompressed size of {filename} ({size} bytes or more) "
                    f"rejected: {decision.value}; saving the file as is."
                )
                return UnpackOutcome.fallback(
                    decision.value,
                    _limit_warning(context, decision, "file.addreplace.warning.gunzip.failed"),
                )

            with unzipped:
                classified = context.classify(unzipped.path, final_name)
                datafile = context.make_file(unzipped, final_name, classified.content_type)
                unzipped.release()

        except ARCHIVE_READ_ERRORS as e:
            logger.warning(f"Failed to uncompress {filename}; saving the file as is. {e}")
            return UnpackOutcome.fallback(
                str(e), context.messages("file.addreplace.warning.gunzip.failed"))

        logger.info(f"Uncompressed {filename} into {final_name} ({datafile.size} bytes)")
        return UnpackOutcome.success([datafile])

    def supported_types(self) -> List[str]:
        return [MIME_TYPE_GZIP, MIME_TYPE_FITS_GZIPPED]


class ZipUnpacker(BaseUnpacker):
    """
    Unpacks a zip archive into one data file per entry.

    Directory entries and MacOS X sidecar entries are skipped; the directory
    part of an entry path is kept as a sanitized directory label. The archive
    is abandoned (and stored as is) when it holds more files than allowed,
    when any entry fails the size/quota guard, when an entry name cannot be
    decoded, or when it turns out to be unreadable.
    """

    def unpack(self, staged: StagedFile, context: IngestContext) -> UnpackOutcome:
        files = []

        try:
            with zipfile.ZipFile(staged.path, metadata_encoding=context.zip_name_encoding) as zf, \
                    StagedBatch() as batch:
                for info in zf.infolist():
                    if info.is_dir():
                        continue

                    entry_name = info.filename
                    name = short_name(entry_name)
                    if is_sidecar(name):
                        continue

                    # only entries that become files count toward the limit
                    if len(files) >= context.max_entry_count:
                        logger.warning("Zip upload - too many files.")
                        return UnpackOutcome.fallback(
                            "too many files",
                            context.messages(
                                "file.addreplace.warning.unzip.failed.too_many_files",
                                context.max_entry_count),
                        )
                    logger.debug(f"ZipEntry, file: {entry_name}")

                    with zf.open(info) as entry:
                        entry_file, decision, size = context.stage_admitted(entry)

                    if entry_file is None:
                        logger.warning(
                            f"Zip entry {entry_name} ({size} bytes or more) rejected: "
                            f"{decision.value}; resorting to saving the file as is."
                        )
                        return UnpackOutcome.fallback(
                            decision.value,
                            _limit_warning(context, decision, "file.addreplace.warning.unzip.failed"),
                        )
                    batch.add(entry_file)

                    classified = context.classify(entry_file.path, name)
                    files.append(context.make_file(
                        entry_file, name, classified.content_type, directory_label(entry_name)))

                if not files:
                    logger.info(f"No files found in zip archive {context.filename}")
                    return UnpackOutcome.fallback("empty archive")

                batch.release_all()

        except UnicodeDecodeError as e:
            logger.warning(
                f"Failed to unpack zip file {context.filename}; unknown character set "
                f"used in a file name? Saving the file as is. {e}"
            )
            return UnpackOutcome.fallback(
                "undecodable entry name",
                context.messages("file.addreplace.warning.unzip.failed.charset"))
        except ARCHIVE_READ_ERRORS as e:
            logger.warning(f"Unzipping failed; rolling back to saving the file as is. {e}")
            return UnpackOutcome.fallback(
                str(e), context.messages("file.addreplace.warning.unzip.failed"))

        logger.info(f"Unpacked {len(files)} file(s) from zip archive {context.filename}")
        return UnpackOutcome.success(files)

    def supported_types(self) -> List[str]:
        return [MIME_TYPE_ZIP]
