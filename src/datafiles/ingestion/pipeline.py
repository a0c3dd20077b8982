"""
Ingestion Pipeline Orchestrator.

Main entry point for all upload ingestion flows. Stages the upload,
classifies it, routes it through the matching unpacker, and falls back to
storing the upload as one file whenever unpacking is not possible.
"""

import logging
from typing import Optional, Union

from datafiles.ingestion.checksum import ChecksumFunction, ChecksumType, compute_checksum
from datafiles.ingestion.classifier import Sniffer, classify_by_name
from datafiles.ingestion.errors import IngestExecutionError, StagingLimitExceeded
from datafiles.ingestion.guard import Admission, admit, bytes_to_human_readable
from datafiles.ingestion.messages import MessageBundle, MessageFormatter
from datafiles.ingestion.models import IngestionResult, UnpackedFile, UploadRequest
from datafiles.ingestion.package_handler import BagItPackageHandler, PackageHandler
from datafiles.ingestion.registry import UnpackerRegistry, create_default_registry
from datafiles.ingestion.settings import IngestSettings
from datafiles.ingestion.staging import StagedFile, stage
from datafiles.ingestion.unpacking import IngestContext, UnpackStatus

logger = logging.getLogger(__name__)


def ingest(
    request: UploadRequest,
    size_limit: Optional[int] = None,
    quota_ceiling: Optional[int] = None,
    max_entry_count: Optional[int] = None,
    fixity_algorithm: Optional[Union[str, ChecksumType]] = None,
    *,
    settings: Optional[IngestSettings] = None,
    registry: Optional[UnpackerRegistry] = None,
    package_handler: Optional[PackageHandler] = None,
    sniffer: Optional[Sniffer] = None,
    checksum: Optional[ChecksumFunction] = None,
    messages: Optional[MessageFormatter] = None,
) -> IngestionResult:
    """
    Ingest one upload and describe the data files it produces.

    Supports:
    - gzipped single files: uncompressed and re-classified
    - zip archives: every entry becomes a file, folders become directory labels
    - zipped shapefiles: one re-zipped file per complete shapefile set
    - package formats (BagIt): handled by `package_handler`, when given
    - everything else, and every archive that cannot be unpacked: one file

    Args:
        request: The upload (stream or storage reference).
        size_limit: Per-file byte limit. None falls back to
            settings.max_file_upload_size (None there means unlimited).
        quota_ceiling: Bytes left in the storage quota; None means untracked.
        max_entry_count: Most zip entries unpacked. Defaults to
            settings.zip_upload_files_limit.
        fixity_algorithm: Checksum algorithm for produced files. Defaults to
            settings.fixity_algorithm.
        settings: Scratch location and defaults. Uses IngestSettings() if None.
        registry: Custom UnpackerRegistry. Uses the default one if None.
        package_handler: Optional package-format capability. When None and
            settings.bagit_handler_enabled is set, a BagItPackageHandler is used.
        sniffer, checksum, messages: Replace the content sniffer, the
            checksum function and the message formatter.

    Returns:
        IngestionResult; a success always carries at least one file.

    Raises:
        IngestExecutionError: scratch storage unconfigured or failing, the raw
            upload exceeding the size limit, or the package handler failing.
    """
    settings = settings if settings else IngestSettings()

    if size_limit is None:
        size_limit = settings.max_file_upload_size
    if max_entry_count is None:
        max_entry_count = settings.zip_upload_files_limit
    fixity = ChecksumType.from_string(fixity_algorithm) if fixity_algorithm else settings.fixity_algorithm

    if registry is None:
        if package_handler is None and settings.bagit_handler_enabled:
            package_handler = BagItPackageHandler()
        registry = create_default_registry(package_handler)

    context = IngestContext(
        filename=request.filename,
        scratch_dir=settings.temp_directory,
        size_limit=size_limit,
        quota_ceiling=quota_ceiling,
        max_entry_count=max_entry_count,
        fixity_algorithm=fixity,
        zip_name_encoding=settings.zip_name_encoding,
        sniffer=sniffer,
        checksum=checksum if checksum else compute_checksum,
        messages=messages if messages else MessageBundle(),
    )

    if request.storage_identifier is not None:
        return _ingest_stored(request, context)
    return _ingest_stream(request, context, registry)


def _ingest_stream(
    request: UploadRequest,
    context: IngestContext,
    registry: UnpackerRegistry,
) -> IngestionResult:
    """Stage, classify and unpack an uploaded byte stream."""
    filename = request.filename

    try:
        staged = stage(request.stream, context.scratch_dir, max_bytes=context.size_limit)
    except StagingLimitExceeded as e:
        logger.error(f"Upload {filename} exceeds the file size limit of {context.size_limit} bytes")
        raise IngestExecutionError(context.messages(
            "file.addreplace.error.file_exceeds_limit",
            f"at least {bytes_to_human_readable(e.bytes_read)}",
            bytes_to_human_readable(context.size_limit),
        )) from e

    with staged:
        logger.info(f"Staged upload {filename} ({staged.size} bytes)")

        final_type = context.classify(staged.path, filename, request.content_type).content_type
        logger.info(f"Content type of {filename}: {final_type}")

        warning = None
        unpacker = registry.get_unpacker(final_type)
        if unpacker is not None:
            context.fresh_quota()
            outcome = unpacker.unpack(staged, context)

            if outcome.status is UnpackStatus.SUCCESS and outcome.files:
                logger.info(f"Unpacked {filename} into {len(outcome.files)} file(s)")
                return IngestionResult.success(filename, final_type, outcome.files, outcome.warning)

            if outcome.status is UnpackStatus.ERROR:
                logger.error(f"Ingestion of {filename} failed: {outcome.reason}")
                return IngestionResult.error(filename, final_type, outcome.reason)

            warning = outcome.warning
            logger.warning(
                f"Could not unpack {filename} ({outcome.reason or 'no files produced'}); "
                f"storing it as a single file"
            )

        return _single_file(staged, request, final_type, context, warning)


def _single_file(
    staged: StagedFile,
    request: UploadRequest,
    content_type: str,
    context: IngestContext,
    warning: Optional[str],
) -> IngestionResult:
    """Store the staged upload as is, under a fresh quota."""
    filename = request.filename

    decision = admit(staged.size, context.size_limit, context.fresh_quota())
    if decision is not Admission.ADMIT:
        message = context.rejection_message(decision, staged.size)
        logger.error(f"Upload {filename} rejected: {message}")
        return IngestionResult.error(filename, content_type, message)

    if request.checksum:
        checksum_type = request.checksum_type or context.fixity_algorithm
        checksum = request.checksum
    else:
        checksum_type = context.fixity_algorithm
        checksum = context.checksum(staged.path, checksum_type)

    datafile = UnpackedFile(
        filename=filename,
        content_type=content_type,
        size=staged.size,
        storage_location=str(staged.release()),
        checksum_type=checksum_type,
        checksum=checksum,
        ingest_warning=warning,
    )
    return IngestionResult.success(filename, content_type, [datafile], warning)


def _ingest_stored(request: UploadRequest, context: IngestContext) -> IngestionResult:
    """Describe an already stored object; there are no bytes to sniff or unpack."""
    filename = request.filename
    content_type = classify_by_name(filename, request.content_type).content_type

    if request.file_size is not None:
        decision = admit(request.file_size, context.size_limit, context.fresh_quota())
        if decision is not Admission.ADMIT:
            message = context.rejection_message(decision, request.file_size)
            logger.error(f"Stored object {request.storage_identifier} rejected: {message}")
            return IngestionResult.error(filename, content_type, message)

    datafile = UnpackedFile(
        filename=filename,
        content_type=content_type,
        size=request.file_size,
        storage_location=request.storage_identifier,
        checksum_type=request.checksum_type,
        checksum=request.checksum,
    )
    logger.info(f"Registered stored object {request.storage_identifier} as {filename} ({content_type})")
    return IngestionResult.success(filename, content_type, [datafile])
